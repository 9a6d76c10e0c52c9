"""Helpers for diffusion-based balancing.

Covers the subdomain connectivity matrix, the conjugate-gradient solver,
transfer vectors and statistics on how far vertices moved.
"""

from __future__ import annotations

import math

from .ctrl import PSRelation
from .messaging import ReduceOp
from .structs import CSRMatrix


def setup_connect_graph(graph, nrows):
    """Build the Laplacian of the subdomain connectivity graph.

    Row ``p`` holds the diagonal entry first, set to the number of
    subdomains adjacent to ``p``. A ``-1`` follows for each of those
    subdomains, in the order they are first met.
    """
    where = graph.where
    xadj, adjncy = graph.xadj, graph.adjncy
    nvtxs = graph.nvtxs

    members: list[list[int]] = [[] for _ in range(nrows)]
    for i in range(nvtxs):
        p = where[i]
        if not 0 <= p < nrows:
            raise ValueError(f"vertex {i} lies in subdomain {p}, outside 0..{nrows - 1}")
        members[p].append(i)

    rowptr = [0]
    colind: list[int] = []
    values: list[float] = []
    for ii, vertices in enumerate(members):
        seen = {ii}
        adjacent: list[int] = []
        for i in vertices:
            for j in range(xadj[i], xadj[i + 1]):
                other = where[adjncy[j]]
                if other not in seen:
                    seen.add(other)
                    adjacent.append(other)
        colind.append(ii)
        values.append(float(len(adjacent)))
        colind.extend(adjacent)
        values.extend([-1.0] * len(adjacent))
        rowptr.append(len(colind))

    return CSRMatrix(nrows=nrows, rowptr=rowptr, colind=colind, values=values)


def compute_move_statistics(ctrl, graph):
    """Return ``(nmoved, maxin, maxout)`` for the current partition.

    ``nmoved`` is the total size of vertices that left their home,
    ``maxout`` the largest total that left any one subdomain and ``maxin``
    the largest total that arrived in any one subdomain.
    """
    nparts = ctrl.nparts
    where, vsize = graph.where, graph.vsize
    coupled = ctrl.ps_relation is PSRelation.COUPLED

    lstart = [0] * nparts
    lleft = [0] * nparts
    lend = [0] * nparts
    for i in range(graph.nvtxs):
        myhome = ctrl.mype if coupled else graph.home[i]
        size = 1 if vsize is None else vsize[i]
        lstart[myhome] += size
        lend[where[i]] += size
        if where[i] != myhome:
            lleft[myhome] += size

    gstart = ctrl.comm.allreduce(lstart, ReduceOp.SUM)
    gleft = ctrl.comm.allreduce(lleft, ReduceOp.SUM)
    gend = ctrl.comm.allreduce(lend, ReduceOp.SUM)

    nmoved = sum(gleft)
    maxout = max(gleft)
    maxin = max(e + l - s for e, l, s in zip(gend, gleft, gstart))
    return nmoved, maxin, maxout


def serial_total_v(graph, home):
    """Return the total size of the vertices not placed in their home subdomain.

    A vertex's size is its first vertex weight when the graph has no sizes.
    """
    total = 0
    for i in range(graph.nvtxs):
        if graph.where[i] != home[i]:
            if graph.vsize is None:
                total += graph.vwgt[i * graph.ncon]
            else:
                total += graph.vsize[i]
    return total


def compute_load(graph, nparts, tpwgts, index):
    """Return each subdomain's weight for constraint ``index`` minus its target."""
    ncon = graph.ncon
    load = [0.0] * nparts
    for i in range(graph.nvtxs):
        load[graph.where[i]] += graph.nvwgt[i * ncon + index]
    return [w - tpwgts[p * ncon + index] for p, w in enumerate(load)]


def mat_vec(matrix, v):
    """Return the product of ``matrix`` and the vector ``v``."""
    if len(v) < matrix.nrows:
        raise ValueError(f"vector needs {matrix.nrows} entries, got {len(v)}")
    rowptr, colind, values = matrix.rowptr, matrix.colind, matrix.values
    return [
        sum(values[j] * v[colind[j]] for j in range(rowptr[i], rowptr[i + 1]))
        for i in range(matrix.nrows)
    ]


def _dot(a, b):
    return sum(x * y for x, y in zip(a, b))


def conj_grad(matrix, b, tol):
    """Solve ``matrix @ x = b`` by Jacobi-preconditioned conjugate gradients.

    Runs at most ``nrows`` iterations and stops once the residual relative
    to ``b`` drops below ``tol``.
    """
    n = matrix.nrows
    if len(b) != n:
        raise ValueError(f"right-hand side needs {n} entries, got {len(b)}")
    diag = [matrix.values[matrix.rowptr[i]] for i in range(n)]
    precond = [1.0 / d if d != 0.0 else 0.0 for d in diag]

    x = [0.0] * n
    ax = mat_vec(matrix, x)
    r = [bi - ai for bi, ai in zip(b, ax)]

    bnrm2 = math.sqrt(_dot(b, b))
    if bnrm2 <= 0.0:
        return x
    if math.sqrt(_dot(r, r)) / bnrm2 <= tol:
        return x

    p = [0.0] * n
    rho_1 = -1.0
    for k in range(n):
        z = [ri * mi for ri, mi in zip(r, precond)]
        rho = _dot(r, z)
        if k == 0:
            p = list(z)
        else:
            beta = rho / rho_1 if rho_1 != 0.0 else 0.0
            p = [zi + beta * pi for zi, pi in zip(z, p)]

        q = mat_vec(matrix, p)
        pq = _dot(p, q)
        alpha = rho / pq if pq != 0.0 else 0.0
        x = [xi + alpha * pi for xi, pi in zip(x, p)]
        r = [ri - alpha * qi for ri, qi in zip(r, q)]
        if math.sqrt(_dot(r, r)) / bnrm2 < tol:
            break
        rho_1 = rho
    return x


def compute_transfer_vector(matrix, solution, ncon, index):
    """Fill constraint ``index`` of ``matrix.transfer`` from a diffusion solution.

    The off-diagonal entry ``(j, c)`` gets ``solution[j] - solution[c]`` when
    that is positive and zero otherwise. The transfer array is created if
    missing and is returned.
    """
    nrows = matrix.nrows
    if len(solution) < nrows:
        raise ValueError(f"solution needs {nrows} entries, got {len(solution)}")
    if not 0 <= index < ncon:
        raise ValueError(f"constraint index {index} outside 0..{ncon - 1}")
    if matrix.transfer is None:
        matrix.transfer = [0.0] * (matrix.nnzs * ncon)
    transfer = matrix.transfer
    rowptr, colind = matrix.rowptr, matrix.colind
    for j in range(nrows):
        for k in range(rowptr[j] + 1, rowptr[j + 1]):
            diff = solution[j] - solution[colind[k]]
            transfer[k * ncon + index] = diff if diff > 0 else 0.0
    return transfer