"""The control structure that carries the settings of one partitioning run."""

from __future__ import annotations

import os
import random
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Sequence

from .messaging import Communicator, ReduceOp

UNBALANCE_FRACTION = 1.05
GLOBAL_DBGLVL = 0
GLOBAL_SEED = 15

# Positions in the options array.
OPTION_DBGLVL = 1
OPTION_SEED = 2
OPTION_PSR = 3

# Debug-level bits.
DBGLVL_TIME = 1
DBGLVL_INFO = 2
DBGLVL_PROGRESS = 4
DBGLVL_REFINEINFO = 8
DBGLVL_MATCHINFO = 16
DBGLVL_RMOVEINFO = 32
DBGLVL_REMAP = 64
DBGLVL_TWOHOP = 128
DBGLVL_DROPEDGES = 256
DBGLVL_FAST = 512
DBGLVL_ONDISK = 1024

# Graphs smaller than this are never moved to disk.
ONDISK_MIN_BYTES = 128 * 1024 * 1024

REFINE_IPC_FACTOR = 1000.0


class OperationType(Enum):
    """The kind of operation a control structure is set up for."""

    KMETIS = auto()
    GKMETIS = auto()
    GMETIS = auto()
    RMETIS = auto()
    AMETIS = auto()
    OMETIS = auto()
    M2DUAL = auto()
    MKMETIS = auto()


class PartitionType(Enum):
    """Whether a partition is computed from scratch, adapted or refined."""

    STATIC_PARTITION = 1
    ADAPTIVE_PARTITION = 2
    REFINE_PARTITION = 3


class PSRelation(Enum):
    """How partitions relate to the processes that hold them."""

    COUPLED = 1
    UNCOUPLED = 2


@dataclass
class Ctrl:
    """Settings and shared state of one partitioning run on one rank."""

    comm: Communicator
    gcomm: Communicator
    optype: OperationType
    mype: int = 0
    npes: int = 1
    ncon: int = 1
    nparts: int = 1
    dbglvl: int = GLOBAL_DBGLVL
    seed: int = 0
    sync: int = 0
    tpwgts: list[float] = field(default_factory=list)
    ubvec: list[float] = field(default_factory=list)
    invtvwgts: list[float] | None = None
    dropedges: bool = False
    twohop: bool = False
    fast: bool = False
    ondisk: bool = False
    part_type: PartitionType | None = None
    ps_relation: PSRelation | None = None
    redist_factor: float = 1.0
    redist_base: float = 1.0
    ipc_factor: float = 0.0
    edge_size_ratio: float = 0.0
    coarsen_to: int = 0
    ubfrac: float = 0.0
    pid: int = field(default_factory=os.getpid)
    ondisk_min_bytes: int = ONDISK_MIN_BYTES
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def setup_invtvwgts(self, graph) -> None:
        """Store the inverse of the global total vertex weight of each constraint."""
        ncon, nvtxs = graph.ncon, graph.nvtxs
        vwgt = graph.vwgt[: nvtxs * ncon]
        local = [sum(vwgt[j::ncon]) for j in range(ncon)]
        totals = self.comm.allreduce(local, ReduceOp.SUM)
        for j, total in enumerate(totals):
            if total == 0:
                raise ValueError(f"constraint {j} has a total vertex weight of zero")
        self.invtvwgts = [1.0 / total for total in totals]


def _ps_relation(
    defopts: bool, options: Sequence[int] | None, npes: int, nparts: int
) -> PSRelation:
    if npes != nparts:
        return PSRelation.UNCOUPLED
    if defopts:
        return PSRelation.COUPLED
    value = options[OPTION_PSR]
    try:
        return PSRelation(value)
    except ValueError:
        raise ValueError(f"invalid partition/process relation option: {value}") from None


def setup_ctrl(optype, options, ncon, nparts, tpwgts, ubvec, comm):
    """Create the control structure for an operation on the ranks of ``comm``."""
    optype = OperationType(optype)
    if ncon < 1:
        raise ValueError(f"ncon must be positive, got {ncon}")
    if nparts < 1:
        raise ValueError(f"nparts must be positive, got {nparts}")

    gcomm = comm.dup()
    mype, npes = gcomm.rank, gcomm.size
    defopts = options is None or options[0] == 0

    part_type = None
    ps_relation = None
    ipc_factor = 0.0
    if optype in (OperationType.KMETIS, OperationType.GKMETIS):
        part_type = PartitionType.STATIC_PARTITION
    elif optype is OperationType.RMETIS:
        part_type = PartitionType.REFINE_PARTITION
        ipc_factor = REFINE_IPC_FACTOR
        ps_relation = _ps_relation(defopts, options, npes, nparts)
    elif optype is OperationType.AMETIS:
        part_type = PartitionType.ADAPTIVE_PARTITION
        ps_relation = _ps_relation(defopts, options, npes, nparts)

    dbglvl = GLOBAL_DBGLVL if defopts else options[OPTION_DBGLVL]
    seed = GLOBAL_SEED if defopts else options[OPTION_SEED]
    sync = gcomm.allreduce(seed, ReduceOp.MAX)
    seed = mype if seed == 0 else seed * mype

    count = nparts * ncon
    if tpwgts is not None:
        if len(tpwgts) < count:
            raise ValueError(f"tpwgts needs {count} entries, got {len(tpwgts)}")
        targets = [float(w) for w in tpwgts[:count]]
    else:
        targets = [1.0 / nparts] * count

    if ubvec is not None:
        if len(ubvec) < ncon:
            raise ValueError(f"ubvec needs {ncon} entries, got {len(ubvec)}")
        imbalance = [float(u) for u in ubvec[:ncon]]
    else:
        imbalance = [UNBALANCE_FRACTION] * ncon

    return Ctrl(
        comm=gcomm,
        gcomm=gcomm,
        optype=optype,
        mype=mype,
        npes=npes,
        ncon=ncon,
        nparts=nparts,
        dbglvl=dbglvl,
        seed=seed,
        sync=sync,
        tpwgts=targets,
        ubvec=imbalance,
        dropedges=bool(dbglvl & DBGLVL_DROPEDGES),
        twohop=bool(dbglvl & DBGLVL_TWOHOP),
        fast=bool(dbglvl & DBGLVL_FAST),
        ondisk=bool(dbglvl & DBGLVL_ONDISK),
        part_type=part_type,
        ps_relation=ps_relation,
        ipc_factor=ipc_factor,
        rng=random.Random(seed),
    )