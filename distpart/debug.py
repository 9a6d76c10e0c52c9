"""Rank-ordered debugging output of vectors, graphs and communication setup."""

from __future__ import annotations

import sys
from pathlib import Path

# Offset marking a vertex that is kept during matching.
KEEP_BIT = 99999999


def _print_in_rank_order(ctrl, text: str) -> str:
    """Write ``text`` to stdout with each rank taking its turn in rank order."""
    for penum in range(ctrl.npes):
        if ctrl.mype == penum:
            sys.stdout.write(text)
            sys.stdout.flush()
        ctrl.comm.barrier()
    return text


def print_vector(ctrl, vec, first, title):
    """Print ``vec`` as numbered ``[index value]`` pairs, one line per rank."""
    parts = [f"{title}\n"] if ctrl.mype == 0 else []
    parts.append(f"\t{ctrl.mype:3d}. ")
    parts.extend(f"[{first + i} {v}] " for i, v in enumerate(vec))
    parts.append("\n")
    return _print_in_rank_order(ctrl, "".join(parts))


def print_vector2(ctrl, vec, first, title):
    """Print ``vec`` splitting each entry into its keep flag and its value."""
    parts = [f"{title}\n"] if ctrl.mype == 0 else []
    parts.append(f"\t{ctrl.mype:3d}. ")
    for i, v in enumerate(vec):
        kept = v >= KEEP_BIT
        parts.append(f"[{first + i} {int(kept)}.{v - KEEP_BIT if kept else v}] ")
    parts.append("\n")
    return _print_in_rank_order(ctrl, "".join(parts))


def print_pairs(ctrl, pairs, title):
    """Print ``(key, value)`` pairs with their positions, one line per rank."""
    parts = [f"{title}\n"] if ctrl.mype == 0 else []
    parts.append(f"\t{ctrl.mype:3d}. ")
    parts.extend(f"[{i} {key}, {val}] " for i, (key, val) in enumerate(pairs))
    parts.append("\n")
    return _print_in_rank_order(ctrl, "".join(parts))


def _graph_text(ctrl, graph, with_degrees: bool) -> str:
    firstvtx = graph.vtxdist[ctrl.mype]
    parts = [f"\t{ctrl.mype}"]
    for i in range(graph.nvtxs):
        lead = "\t" if i == 0 else "\t\t"
        parts.append(f"{lead}{firstvtx + i:2d} {graph.vwgt[i]:2d}")
        if with_degrees:
            info = graph.ckrinfo[i]
            parts.append(f" [{graph.where[i]} {info.id} {info.ed}]")
        parts.append("\t")
        parts.extend(f"[{v} {w}] " for v, w in graph.neighbors(i))
        parts.append("\n")
    return "".join(parts)


def print_graph(ctrl, graph):
    """Print each rank's vertices with their weights and adjacency lists."""
    ctrl.comm.barrier()
    return _print_in_rank_order(ctrl, _graph_text(ctrl, graph, False))


def print_graph2(ctrl, graph):
    """Print each rank's vertices with partition and refinement degrees."""
    ctrl.comm.barrier()
    return _print_in_rank_order(ctrl, _graph_text(ctrl, graph, True))


def print_setup_info(ctrl, graph):
    """Print what each rank sends to and receives from its neighbours."""
    ctrl.comm.barrier()
    parts = [f"PE: {ctrl.mype}, nnbrs: {graph.nnbrs}\n", "\tSending...\n"]
    for i, pe in enumerate(graph.peind):
        sent = graph.sendind[graph.sendptr[i] : graph.sendptr[i + 1]]
        parts.append(f"\t\tTo: {pe}: " + "".join(f"{v} " for v in sent) + "\n")
    parts.append("\tReceiving...\n")
    for i, pe in enumerate(graph.peind):
        received = graph.recvind[graph.recvptr[i] : graph.recvptr[i + 1]]
        parts.append(f"\t\tFrom: {pe}: " + "".join(f"{v} " for v in received) + "\n")
    parts.append("\n")
    return _print_in_rank_order(ctrl, "".join(parts))


def _transfer_text(label: str, peind, lens, records) -> list[str]:
    parts: list[str] = []
    ll = 0
    for i, pe in enumerate(peind):
        if lens[i + 1] - lens[i] <= 0:
            continue
        parts.append(f"\n\t{label} {pe}\t")
        for _ in range(lens[i], lens[i + 1]):
            degree = records[ll + 1]
            parts.append(f"{records[ll]} {degree} {records[ll + 2]}, ")
            for jj in range(degree):
                base = ll + 3 + 2 * jj
                parts.append(f"[{records[base]} {records[base + 1]}] ")
            parts.append("\n\t\t")
            ll += 3 + 2 * degree
    return parts


def print_transferred_graphs(ctrl, peind, slens, rlens, sgraph, rgraph):
    """Print the vertex records sent to and received from each neighbour.

    A record is ``vertex, degree, weight`` followed by ``degree`` pairs of
    ``(adjacent vertex, edge weight)``.
    """
    ctrl.comm.barrier()
    parts = [f"PE: {ctrl.mype}, nnbrs: {len(peind)}"]
    parts.extend(_transfer_text("To", peind, slens, sgraph))
    parts.extend(_transfer_text("From", peind, rlens, rgraph))
    parts.append("\n")
    return _print_in_rank_order(ctrl, "".join(parts))


def write_metis_graph(path, xadj, adjncy, vwgt, adjwgt):
    """Write a graph in the serial METIS file format with vertex and edge weights."""
    nvtxs = len(xadj) - 1
    if nvtxs < 0:
        raise ValueError("xadj must hold at least one entry")
    parts = [f"{nvtxs} {xadj[nvtxs] // 2} 11"]
    for i in range(nvtxs):
        parts.append(f"\n{vwgt[i]} ")
        parts.extend(
            f" {adjncy[j] + 1} {adjwgt[j]}" for j in range(xadj[i], xadj[i + 1])
        )
    Path(path).write_text("".join(parts))