"""Gathering a distributed, already bisected graph onto every rank for multisection."""

from __future__ import annotations

from .gkutil import make_csr
from .structs import Graph


def assemble_multisected_graph(ctrl, graph):
    """Assemble the whole distributed graph, with its partition, on every rank.

    Each vertex carries its degree, its first vertex weight, its subdomain in
    ``graph.where`` and its edges. Local adjacency is mapped back to global
    numbering through ``graph.imap`` when the communication setup has been
    done; otherwise it is taken to be global already. The assembled graph
    has a single constraint and labels ``0..gnvtxs-1``.
    """
    if graph.where is None:
        raise ValueError("the graph has no partition to assemble")

    nvtxs, ncon = graph.nvtxs, max(graph.ncon, 1)
    xadj, adjncy, adjwgt, vwgt = graph.xadj, graph.adjncy, graph.adjwgt, graph.vwgt
    where, imap = graph.where, graph.imap

    records = []
    for i in range(nvtxs):
        edges = [
            (
                imap[adjncy[j]] if imap is not None else adjncy[j],
                1 if adjwgt is None else adjwgt[j],
            )
            for j in range(xadj[i], xadj[i + 1])
        ]
        weight = 1 if vwgt is None else vwgt[i * ncon]
        records.append((weight, where[i], edges))

    gathered = ctrl.comm.allgatherv(records)
    gnvtxs = len(gathered)
    if graph.gnvtxs >= 0 and gnvtxs != graph.gnvtxs:
        raise ValueError(
            f"assembled {gnvtxs} vertices but the graph has {graph.gnvtxs}"
        )

    avwgt: list[int] = []
    awhere: list[int] = []
    aadjncy: list[int] = []
    aadjwgt: list[int] = []
    degrees: list[int] = []
    for weight, part, edges in gathered:
        avwgt.append(weight)
        awhere.append(part)
        degrees.append(len(edges))
        for target, edge_weight in edges:
            aadjncy.append(target)
            aadjwgt.append(edge_weight)

    return Graph(
        nvtxs=gnvtxs,
        ncon=1,
        nedges=len(aadjncy),
        xadj=make_csr(degrees),
        vwgt=avwgt,
        where=awhere,
        adjncy=aadjncy,
        adjwgt=aadjwgt,
        label=list(range(gnvtxs)),
    )