"""Heavy-edge matching of the rows of a sparse transfer matrix."""

from __future__ import annotations

from .structs import CSRMatrix

UNMATCHED = -1


def csr_match_shem(matrix: CSRMatrix, skip, ncon):
    """Match rows along their heaviest transfers, visiting heavy rows first.

    Returns ``(match, mlist)``: ``match[i]`` is the partner of row ``i`` or
    UNMATCHED, and ``mlist`` lists each matched pair as ``(larger, smaller)``
    flattened in the order they were formed. Entries with a non-zero ``skip``
    are never used.
    """
    if matrix.transfer is None:
        raise ValueError("matrix has no transfer values")
    nrows = matrix.nrows
    rowptr, colind, transfer = matrix.rowptr, matrix.colind, matrix.transfer

    def row_weights(j: int) -> list[float]:
        return [abs(t) for t in transfer[j * ncon : (j + 1) * ncon]]

    links = []
    for i in range(nrows):
        key = 0.0
        for j in range(rowptr[i], rowptr[i + 1]):
            key = max([key, *row_weights(j)])
        links.append((key, i))
    links.sort(key=lambda link: link[0], reverse=True)

    match = [UNMATCHED] * nrows
    mlist: list[int] = []
    for _, i in links:
        if match[i] != UNMATCHED:
            continue
        maxidx, maxwgt = i, 0.0
        for j in range(rowptr[i], rowptr[i + 1]):
            edge = colind[j]
            if match[edge] != UNMATCHED or edge == i or skip[j] != 0:
                continue
            heavier = next((w for w in row_weights(j) if w > maxwgt), None)
            if heavier is not None:
                maxwgt, maxidx = heavier, edge
        if maxidx != i:
            match[i] = maxidx
            match[maxidx] = i
            mlist.extend((max(i, maxidx), min(i, maxidx)))
    return match, mlist