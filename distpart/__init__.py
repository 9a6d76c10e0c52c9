"""Building blocks for distributed multilevel graph partitioning.

Covers graph and matrix types, in-process message passing, communication
setup, diffusion helpers, graph assembly and debugging output.
"""

__version__ = "0.1.0"
__all__ = [
    "structs",
    "messaging",
    "ctrl",
    "graph",
    "gkutil",
    "csrmatch",
    "comm",
    "diffutil",
    "initpart",
    "initbalance",
    "initmsection",
    "debug",
]