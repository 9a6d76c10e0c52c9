"""Gathering a distributed graph onto every rank for the initial balancing step."""

from __future__ import annotations

from .ctrl import PartitionType
from .gkutil import make_csr
from .structs import Graph

_ADAPTIVE_TYPES = (PartitionType.ADAPTIVE_PARTITION, PartitionType.REFINE_PARTITION)


def assemble_adaptive_graph(ctrl, graph):
    """Assemble the whole distributed graph on every rank of ``ctrl.comm``.

    Vertices appear in global order with global adjacency numbering. Local
    adjacency is mapped back through ``graph.imap`` when the communication
    setup has been done; otherwise it is taken to be global already.
    Vertex sizes are carried along for adaptive and refinement runs. The
    assembled graph gets normalised weights and labels ``0..gnvtxs-1``.
    """
    adaptive = ctrl.part_type in _ADAPTIVE_TYPES
    if ctrl.part_type is not PartitionType.STATIC_PARTITION and not adaptive:
        raise ValueError(f"bad partition type for assembly: {ctrl.part_type!r}")
    if ctrl.invtvwgts is None:
        raise ValueError("the control structure has no inverse vertex weight totals")

    nvtxs, ncon = graph.nvtxs, graph.ncon
    xadj, adjncy, adjwgt, vwgt = graph.xadj, graph.adjncy, graph.adjwgt, graph.vwgt
    imap = graph.imap
    if adaptive and graph.vsize is None:
        raise ValueError("adaptive assembly needs vertex sizes")

    records = []
    for i in range(nvtxs):
        edges = [
            (
                imap[adjncy[j]] if imap is not None else adjncy[j],
                1 if adjwgt is None else adjwgt[j],
            )
            for j in range(xadj[i], xadj[i + 1])
        ]
        records.append(
            (
                list(vwgt[i * ncon : (i + 1) * ncon]),
                graph.vsize[i] if adaptive else None,
                edges,
            )
        )

    gathered = ctrl.comm.allgatherv(records)
    gnvtxs = len(gathered)
    if graph.gnvtxs >= 0 and gnvtxs != graph.gnvtxs:
        raise ValueError(
            f"assembled {gnvtxs} vertices but the graph has {graph.gnvtxs}"
        )

    avwgt: list[int] = []
    avsize: list[int] = []
    aadjncy: list[int] = []
    aadjwgt: list[int] = []
    degrees: list[int] = []
    for weights, size, edges in gathered:
        avwgt.extend(weights)
        if adaptive:
            avsize.append(size)
        degrees.append(len(edges))
        for target, weight in edges:
            aadjncy.append(target)
            aadjwgt.append(weight)

    inv = ctrl.invtvwgts
    anvwgt = [inv[k % ncon] * w for k, w in enumerate(avwgt)]

    return Graph(
        nvtxs=gnvtxs,
        ncon=ncon,
        nedges=len(aadjncy),
        xadj=make_csr(degrees),
        vwgt=avwgt,
        nvwgt=anvwgt,
        vsize=avsize if adaptive else None,
        adjncy=aadjncy,
        adjwgt=aadjwgt,
        label=list(range(gnvtxs)),
    )