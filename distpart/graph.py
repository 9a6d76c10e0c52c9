"""Building distributed graphs from user input, clearing them and keeping them on disk."""

from __future__ import annotations

import itertools
from array import array
from pathlib import Path

from .ctrl import Ctrl, OperationType
from .messaging import ReduceOp
from .structs import Graph

_INT = "q"
_REAL = "d"
_IDX_BYTES = 8

_ADAPTIVE_OPS = (OperationType.AMETIS, OperationType.RMETIS)

_gid_counter = itertools.count(1)

_COMM_SETUP_FIELDS = (
    "lperm",
    "peind",
    "sendptr",
    "sendind",
    "recvptr",
    "recvind",
    "imap",
    "pexadj",
    "peadjncy",
    "peadjloc",
)

_NON_SETUP_FIELDS = (
    "match",
    "cmap",
    "label",
    "rlens",
    "slens",
    "rcand",
    "where",
    "lpwgts",
    "gpwgts",
    "lnpwgts",
    "gnpwgts",
    "ckrinfo",
    "nrinfo",
    "sepind",
)


def _clear(graph: Graph, names) -> None:
    for name in names:
        setattr(graph, name, None)


def setup_graph(ctrl, ncon, vtxdist, xadj, vwgt, vsize, adjncy, adjwgt, wgtflag):
    """Create the local graph of this rank from the caller's arrays.

    Missing vertex or edge weights default to one.
    """
    nvtxs = vtxdist[ctrl.mype + 1] - vtxdist[ctrl.mype]
    graph = Graph(
        level=0,
        gnvtxs=vtxdist[ctrl.npes],
        nvtxs=nvtxs,
        ncon=ncon,
        nedges=xadj[nvtxs],
        xadj=xadj,
        vwgt=vwgt,
        vsize=vsize,
        adjncy=adjncy,
        adjwgt=adjwgt,
        vtxdist=vtxdist,
        free_xadj=False,
        free_adjncy=False,
    )

    if (wgtflag & 2) == 0 or vwgt is None:
        graph.vwgt = [1] * (nvtxs * ncon)
    else:
        graph.free_vwgt = False

    if (wgtflag & 1) == 0 or adjwgt is None:
        graph.adjwgt = [1] * graph.nedges
    else:
        graph.free_adjwgt = False

    if ctrl.optype in _ADAPTIVE_OPS:
        if vsize is None:
            graph.vsize = [1] * nvtxs
        else:
            graph.free_vsize = False
        graph.home = [1] * nvtxs

        edge_total, size_total = ctrl.comm.allreduce(
            [sum(graph.adjwgt[: graph.nedges]), sum(graph.vsize[:nvtxs])], ReduceOp.SUM
        )
        ctrl.edge_size_ratio = (0.1 + edge_total) / (0.1 + size_total)

    ctrl.setup_invtvwgts(graph)
    setup_graph_nvwgts(ctrl, graph)
    return graph


def setup_graph_nvwgts(ctrl, graph):
    """Compute the vertex weights normalised by the global constraint totals."""
    ncon = graph.ncon
    inv = ctrl.invtvwgts
    graph.nvwgt = [
        inv[k % ncon] * w for k, w in enumerate(graph.vwgt[: graph.nvtxs * ncon])
    ]


def free_non_graph_fields(graph):
    """Drop everything that is not part of the graph's structure."""
    _clear(graph, _NON_SETUP_FIELDS)
    _clear(graph, _COMM_SETUP_FIELDS)


def free_non_graph_non_setup_fields(graph):
    """Drop derived data but keep the communication setup."""
    _clear(graph, _NON_SETUP_FIELDS)


def free_comm_setup_fields(graph):
    """Drop the data built by the communication setup."""
    _clear(graph, _COMM_SETUP_FIELDS)


def remap_to_global(graph):
    """Restore global numbering in the adjacency lists and drop derived data."""
    if graph.imap is not None:
        imap = graph.imap
        adjncy = graph.adjncy
        adjncy[: graph.nedges] = [imap[v] for v in adjncy[: graph.nedges]]

    free_non_graph_fields(graph)
    _clear(graph, ("nvwgt", "home", "lnpwgts", "gnpwgts"))

    if graph.free_vwgt:
        graph.vwgt = None
    if graph.free_adjwgt:
        graph.adjwgt = None
    if graph.free_vsize:
        graph.vsize = None


def _disk_path(ctrl: Ctrl, gid: int) -> Path:
    return Path(f"parmetis{ctrl.mype}.{ctrl.pid}.{gid}")


def _disk_layout(ctrl: Ctrl, graph: Graph):
    """Yield (field, typecode, count) in file order.

    The edge count is read from ``graph.xadj`` only after ``xadj`` has been
    yielded, so a reader that restores each field before asking for the next
    sees the restored array.
    """
    nvtxs, ncon = graph.nvtxs, graph.ncon
    if graph.free_xadj:
        yield "xadj", _INT, nvtxs + 1
    if graph.free_vwgt:
        yield "vwgt", _INT, nvtxs * ncon
    yield "nvwgt", _REAL, nvtxs * ncon
    nedges = graph.xadj[nvtxs]
    if graph.free_adjncy:
        yield "adjncy", _INT, nedges
    if graph.free_adjwgt:
        yield "adjwgt", _INT, nedges
    if ctrl.optype in _ADAPTIVE_OPS:
        if graph.free_vsize:
            yield "vsize", _INT, nvtxs
        yield "home", _INT, nvtxs


def write_graph_to_disk(ctrl, graph):
    """Move the graph's own arrays to a file in the working directory.

    Returns True if the graph was written and its arrays released.
    """
    if not ctrl.ondisk:
        return False

    nvtxs, ncon = graph.nvtxs, graph.ncon
    footprint = _IDX_BYTES * (nvtxs * (ncon + 1) + 2 * graph.xadj[nvtxs])
    if footprint < ctrl.ondisk_min_bytes:
        return False

    if graph.gid > 0:
        _disk_path(ctrl, graph.gid).unlink(missing_ok=True)

    graph.gid = next(_gid_counter)
    path = _disk_path(ctrl, graph.gid)
    layout = list(_disk_layout(ctrl, graph))

    try:
        fp = path.open("wb")
    except OSError:
        return False

    try:
        with fp:
            for name, code, count in layout:
                data = getattr(graph, name)
                if data is None or len(data) < count:
                    raise ValueError(f"graph field {name} holds fewer than {count} values")
                array(code, data[:count]).tofile(fp)
    except (OSError, ValueError, OverflowError, TypeError):
        print(f"Failed on writing {path}")
        path.unlink(missing_ok=True)
        graph.ondisk = False
        return False

    _clear(graph, (name for name, _, _ in layout))
    graph.ondisk = True
    return True


def read_graph_from_disk(ctrl, graph):
    """Restore arrays written by :func:`write_graph_to_disk` and remove the file.

    Returns True if the graph was restored. Raises OSError if the file is damaged.
    """
    if not graph.ondisk:
        return False

    path = _disk_path(ctrl, graph.gid)
    try:
        fp = path.open("rb")
    except OSError:
        return False

    try:
        with fp:
            for name, code, count in _disk_layout(ctrl, graph):
                values = array(code)
                values.fromfile(fp, count)
                setattr(graph, name, values.tolist())
    except EOFError as exc:
        path.unlink(missing_ok=True)
        graph.ondisk = False
        raise OSError(f"failed to restore graph {path} from the disk") from exc

    path.unlink(missing_ok=True)
    graph.gid = 0
    graph.ondisk = False
    return True