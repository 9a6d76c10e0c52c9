"""Support for the recursive-bisection initial partitioning."""

from __future__ import annotations


def keep_part(graph, part, mypart):
    """Reduce ``graph`` in place to the vertices with ``part[i] == mypart``.

    Vertices are renumbered in their original order, edges leaving the kept
    part are dropped, and ``graph.label`` keeps each vertex's original label.
    """
    nvtxs, ncon = graph.nvtxs, graph.ncon
    if len(part) < nvtxs:
        raise ValueError(f"part needs {nvtxs} entries, got {len(part)}")
    xadj, adjncy, adjwgt, vwgt = graph.xadj, graph.adjncy, graph.adjwgt, graph.vwgt
    label = graph.label if graph.label is not None else list(range(nvtxs))

    kept = [i for i in range(nvtxs) if part[i] == mypart]
    rename = {v: n for n, v in enumerate(kept)}

    new_xadj = [0]
    new_adjncy: list[int] = []
    new_adjwgt: list[int] = []
    new_vwgt: list[int] = []
    new_label: list[int] = []
    for i in kept:
        for j in range(xadj[i], xadj[i + 1]):
            k = adjncy[j]
            if part[k] == mypart:
                new_adjncy.append(rename[k])
                new_adjwgt.append(1 if adjwgt is None else adjwgt[j])
        if vwgt is not None:
            new_vwgt.extend(vwgt[i * ncon : (i + 1) * ncon])
        new_label.append(label[i])
        new_xadj.append(len(new_adjncy))

    graph.xadj = new_xadj
    graph.adjncy = new_adjncy
    graph.adjwgt = None if adjwgt is None else new_adjwgt
    graph.vwgt = None if vwgt is None else new_vwgt
    graph.label = new_label
    graph.nvtxs = len(kept)
    graph.nedges = len(new_adjncy)
    return graph