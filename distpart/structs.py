"""Core data structures: graphs, sparse matrices, refinement info and meshes."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Neighbor:
    """A subdomain adjacent to a vertex and the edge weight connecting to it."""

    pid: int
    ed: int = 0


@dataclass
class RefineInfo:
    """Degree information of a vertex for cut-based k-way refinement."""

    id: int = 0
    ed: int = 0
    neighbors: list[Neighbor] = field(default_factory=list)

    @property
    def nnbrs(self) -> int:
        """Number of neighbouring subdomains."""
        return len(self.neighbors)


@dataclass
class CSRMatrix:
    """A sparse matrix in CSR form; the diagonal entry comes first in each row."""

    nrows: int
    rowptr: list[int] = field(default_factory=list)
    colind: list[int] = field(default_factory=list)
    values: list[float] = field(default_factory=list)
    transfer: list[float] | None = None

    @property
    def nnzs(self) -> int:
        """Number of stored entries."""
        if not self.rowptr:
            return 0
        return self.rowptr[self.nrows]

    def row(self, i: int) -> list[tuple[int, float]]:
        """Return the (column, value) pairs stored in row ``i``."""
        if not 0 <= i < self.nrows:
            raise IndexError(f"row {i} out of range for {self.nrows} rows")
        start, end = self.rowptr[i], self.rowptr[i + 1]
        return list(zip(self.colind[start:end], self.values[start:end]))


@dataclass
class Graph:
    """The locally stored part of a distributed graph and its derived data."""

    gnvtxs: int = -1
    nvtxs: int = -1
    nedges: int = -1
    ncon: int = 0
    nobj: int = 0
    xadj: list[int] | None = None
    vwgt: list[int] | None = None
    nvwgt: list[float] | None = None
    vsize: list[int] | None = None
    adjncy: list[int] | None = None
    adjwgt: list[int] | None = None
    vtxdist: list[int] | None = None
    home: list[int] | None = None

    # Whether the arrays were allocated here rather than supplied by the caller.
    free_xadj: bool = True
    free_adjncy: bool = True
    free_vwgt: bool = True
    free_adjwgt: bool = True
    free_vsize: bool = True

    # Coarsening
    match: list[int] | None = None
    cmap: list[int] | None = None
    unmatched: list[int] | None = None

    # Initial partitioning
    label: list[int] | None = None

    # Communication setup
    nnbrs: int = -1
    nrecv: int = -1
    nsend: int = -1
    peind: list[int] | None = None
    sendptr: list[int] | None = None
    sendind: list[int] | None = None
    recvptr: list[int] | None = None
    recvind: list[int] | None = None
    imap: list[int] | None = None
    pexadj: list[int] | None = None
    peadjncy: list[int] | None = None
    peadjloc: list[int] | None = None
    nlocal: int = -1
    lperm: list[int] | None = None

    # Projection
    rlens: list[int] | None = None
    slens: list[int] | None = None
    rcand: list[tuple[int, int]] | None = None

    # Partition
    where: list[int] | None = None
    lpwgts: list[int] | None = None
    gpwgts: list[int] | None = None
    lnpwgts: list[float] | None = None
    gnpwgts: list[float] | None = None
    ckrinfo: list[RefineInfo] | None = None

    # Node refinement
    nsep: int = -1
    nrinfo: list[list[int]] | None = None
    sepind: list[int] | None = None

    # Out-of-core storage
    gid: int = 0
    ondisk: bool = False

    lmincut: int = 0
    mincut: int = 0
    level: int = 0
    match_type: int = 0
    edgewgt_type: int = 0

    coarser: Graph | None = field(default=None, repr=False)
    finer: Graph | None = field(default=None, repr=False)

    def neighbors(self, v: int) -> list[tuple[int, int]]:
        """Return the (adjacent vertex, edge weight) pairs of local vertex ``v``."""
        if self.xadj is None or self.adjncy is None or not 0 <= v < self.nvtxs:
            raise IndexError(f"vertex {v} is not stored in this graph")
        start, end = self.xadj[v], self.xadj[v + 1]
        targets = self.adjncy[start:end]
        if self.adjwgt is None:
            weights = [1] * len(targets)
        else:
            weights = self.adjwgt[start:end]
        return list(zip(targets, weights))


@dataclass
class Mesh:
    """A distributed element mesh."""

    etype: int = 0
    gnelms: int = 0
    gnns: int = 0
    nelms: int = 0
    nns: int = 0
    ncon: int = 0
    esize: int = 0
    gminnode: int = 0
    elmdist: list[int] | None = None
    elements: list[int] | None = None
    elmwgt: list[int] | None = None