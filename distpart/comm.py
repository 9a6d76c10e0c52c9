"""Setting up and carrying out the exchange of boundary data between ranks."""

from __future__ import annotations

from bisect import bisect_left

from .gkutil import make_csr, shift_csr
from .messaging import ReduceOp

_TAG = 1


def comm_setup(ctrl, graph):
    """Build the communication structure of ``graph`` and localise its adjacency.

    Local neighbours are renumbered from zero; remote neighbours become
    ``nvtxs + i`` where ``i`` indexes ``graph.recvind``. Does nothing if the
    structure already exists.
    """
    if graph.lperm is not None:
        return

    comm, mype, npes = ctrl.comm, ctrl.mype, ctrl.npes
    nvtxs, xadj, adjncy, vtxdist = graph.nvtxs, graph.xadj, graph.adjncy, graph.vtxdist
    firstvtx, lastvtx = vtxdist[mype], vtxdist[mype + 1]
    gnvtxs = vtxdist[npes]

    lperm = list(range(nvtxs))
    nlocal = 0
    remote: list[tuple[int, int]] = []
    for i in range(nvtxs):
        islocal = True
        for j in range(xadj[i], xadj[i + 1]):
            k = adjncy[j]
            if firstvtx <= k < lastvtx:
                adjncy[j] = k - firstvtx
            else:
                if not 0 <= k < gnvtxs:
                    raise ValueError(f"vertex {k} is outside the global range 0..{gnvtxs - 1}")
                remote.append((k, j))
                islocal = False
        if islocal:
            lperm[i] = lperm[nlocal]
            lperm[nlocal] = i
            nlocal += 1

    remote.sort(key=lambda pair: pair[0])
    recvind: list[int] = []
    for k, j in remote:
        if not recvind or recvind[-1] != k:
            recvind.append(k)
        adjncy[j] = nvtxs + len(recvind) - 1

    peind: list[int] = []
    recvptr = [0]
    start = 0
    for pe in range(npes):
        end = bisect_left(recvind, vtxdist[pe + 1], lo=start)
        if end > start:
            peind.append(pe)
            recvptr.append(end)
            start = end

    requests = [(0, 0)] * npes
    for i, pe in enumerate(peind):
        requests[pe] = (recvptr[i + 1] - recvptr[i], nvtxs + recvptr[i])
    incoming = comm.alltoall(requests)
    senders = [pe for pe, (count, _) in enumerate(incoming) if count > 0]
    if senders != peind:
        raise ValueError("adjacency structure is not symmetric across ranks")

    sendptr = make_csr(incoming[pe][0] for pe in peind)
    startsind = [incoming[pe][1] for pe in peind]

    for i, pe in enumerate(peind):
        comm.send(recvind[recvptr[i] : recvptr[i + 1]], pe, _TAG)
    sendind: list[int] = []
    for i, pe in enumerate(peind):
        chunk = comm.recv(pe, _TAG)
        if len(chunk) != sendptr[i + 1] - sendptr[i]:
            raise ValueError(f"rank {pe} requested a different number of vertices than announced")
        sendind.extend(chunk)
    nsend = len(sendind)

    counts = [0] * nvtxs
    for v in sendind:
        if not firstvtx <= v < lastvtx:
            raise ValueError(f"vertex {v} was requested from rank {mype}, which does not own it")
        counts[v - firstvtx] += 1
    pexadj = make_csr(counts)
    peadjncy = [0] * nsend
    peadjloc = [0] * nsend
    for i, loc in enumerate(startsind):
        for v in sendind[sendptr[i] : sendptr[i + 1]]:
            k = pexadj[v - firstvtx]
            pexadj[v - firstvtx] += 1
            peadjncy[k] = i
            peadjloc[k] = loc
            loc += 1
    pexadj = shift_csr(pexadj)

    graph.lperm = lperm
    graph.nlocal = nlocal
    graph.nrecv = len(recvind)
    graph.recvind = recvind
    graph.nnbrs = len(peind)
    graph.peind = peind
    graph.recvptr = recvptr
    graph.sendptr = sendptr
    graph.nsend = nsend
    graph.sendind = sendind
    graph.pexadj = pexadj
    graph.peadjncy = peadjncy
    graph.peadjloc = peadjloc
    graph.imap = [firstvtx + i for i in range(nvtxs)] + recvind


def _require_setup(graph) -> None:
    if graph.peind is None:
        raise ValueError("communication setup has not been done for this graph")


def comm_interface_data(ctrl, graph, data):
    """Return the values of ``data`` for the remote neighbours, in ``recvind`` order."""
    _require_setup(graph)
    comm = ctrl.comm
    firstvtx = graph.vtxdist[ctrl.mype]
    sendptr, sendind = graph.sendptr, graph.sendind

    for i, pe in enumerate(graph.peind):
        comm.send([data[v - firstvtx] for v in sendind[sendptr[i] : sendptr[i + 1]]], pe, _TAG)
    received: list = []
    for pe in graph.peind:
        received.extend(comm.recv(pe, _TAG))
    return received


def comm_changed_interface_data(ctrl, graph, changed, data):
    """Send the new values of the ``changed`` local vertices to the ranks that mirror them.

    ``data`` covers local vertices followed by remote neighbours and is
    updated in place with the values received.
    """
    _require_setup(graph)
    comm = ctrl.comm
    pexadj, peadjncy, peadjloc = graph.pexadj, graph.peadjncy, graph.peadjloc

    outgoing: list[list[tuple[int, object]]] = [[] for _ in graph.peind]
    for j in changed:
        for k in range(pexadj[j], pexadj[j + 1]):
            outgoing[peadjncy[k]].append((peadjloc[k], data[j]))

    for pe, pairs in zip(graph.peind, outgoing):
        comm.send(pairs, pe, _TAG)
    for pe in graph.peind:
        for key, value in comm.recv(pe, _TAG):
            data[key] = value


def global_max(comm, value):
    """Return the largest ``value`` over all ranks."""
    return comm.allreduce(value, ReduceOp.MAX)


def global_min(comm, value):
    """Return the smallest ``value`` over all ranks."""
    return comm.allreduce(value, ReduceOp.MIN)


def global_sum(comm, value):
    """Return the sum of ``value`` over all ranks."""
    return comm.allreduce(value, ReduceOp.SUM)