# distpart

Building blocks for distributed, multilevel graph partitioning in pure Python.

A `vtxdist` array splits a graph across a group of ranks. Each rank holds its
own vertices in CSR form (`xadj`, `adjncy`, optional weights). The modules
below build that local graph, work out what each rank must exchange with its
neighbours, and provide the helpers that partitioning steps are built from.

## Modules

- `distpart.structs`: the data types. `Graph` has a `neighbors(v)` method
  that returns `(vertex, weight)` pairs. `CSRMatrix` has `row(i)` and `nnzs`.
  `RefineInfo` and `Neighbor` hold k-way refinement degrees, and `Mesh`
  holds a distributed element mesh.
- `distpart.messaging`: a communicator in the MPI style.
  - `ThreadCommunicator` runs each rank as a thread of the current process.
    It supports `allreduce`, `reduce`, `allgather`, `allgatherv`, `alltoall`,
    `bcast`, `scatterv`, `send`/`recv`, `barrier`, `split` and `dup`.
    `ReduceOp` covers `SUM`, `MAX`, `MIN`, `MINLOC` and `MAXLOC`.
  - `run_parallel(size, func)` calls `func(comm)` on every rank and returns
    the results in rank order. If any rank raises, the whole group is aborted
    and that error is raised again.
  - `create_thread_group(size)` and `serial_communicator()` create
    communicators directly.
- `distpart.ctrl`: `setup_ctrl(optype, options, ncon, nparts, tpwgts, ubvec,
  comm)` builds a `Ctrl`. The run's settings come from an options list whose
  positions are `OPTION_DBGLVL`, `OPTION_SEED` and `OPTION_PSR`.
  - Target weights default to `1/nparts`. Imbalance tolerances default to
    `1.05` per constraint.
  - The module also defines the `OperationType`, `PartitionType` and
    `PSRelation` enums.
- `distpart.graph`:
  - `setup_graph` builds a rank's `Graph` from the caller's arrays. Missing
    weights default to 1, and the normalised weights are computed with it.
  - `setup_graph_nvwgts` recomputes those normalised weights.
  - `free_non_graph_fields`, `free_non_graph_non_setup_fields` and
    `free_comm_setup_fields` drop derived data.
  - `remap_to_global` restores global adjacency numbering.
  - `write_graph_to_disk` and `read_graph_from_disk` move a large graph's
    arrays to a file in the working directory and back. This happens only
    when the `ondisk` debug bit is set and the graph is at least
    `ctrl.ondisk_min_bytes` in size.
- `distpart.comm`:
  - `comm_setup` localises the adjacency lists. It also builds the send and
    receive lists (`peind`, `sendptr`/`sendind`, `recvptr`/`recvind`,
    `imap`, ...) and raises `ValueError` on asymmetric input.
  - `comm_interface_data` returns the values of remote neighbours.
  - `comm_changed_interface_data` pushes changed boundary values to the
    ranks that mirror them.
  - `global_max`, `global_min` and `global_sum` reduce a value over all
    ranks.
- `distpart.gkutil`: `MaxPriorityQueue` is an addressable max-heap with
  `insert`, `delete`, `update`, `get_top`, `see_top`, `see_top_key` and
  `reset`. `make_csr` and `shift_csr` handle row pointers.
- `distpart.csrmatch`: `csr_match_shem(matrix, skip, ncon)` runs heavy-edge
  matching over a matrix's transfer values. It returns `(match, mlist)`.
- `distpart.diffutil`:
  - `setup_connect_graph` builds the subdomain connectivity Laplacian.
  - `conj_grad` is a Jacobi-preconditioned conjugate-gradient solver, and
    `mat_vec` is the matrix–vector product it uses.
  - `compute_transfer_vector` fills in the transfer values from a diffusion
    solution.
  - `compute_load` returns each subdomain's load relative to its target.
  - `serial_total_v` returns the total size of vertices that are not in
    their home subdomain.
  - `compute_move_statistics` returns `(nmoved, maxin, maxout)` across all
    ranks.
- `distpart.initpart`: `keep_part(graph, part, mypart)` shrinks a graph in
  place to one part. It keeps the original labels.
- `distpart.initbalance`: `assemble_adaptive_graph(ctrl, graph)` gathers the
  whole graph onto every rank. Vertex sizes are included for adaptive and
  refinement runs.
- `distpart.initmsection`: `assemble_multisected_graph(ctrl, graph)` gathers
  the whole graph and its current `where` onto every rank.
- `distpart.debug`:
  - `print_vector`, `print_vector2`, `print_pairs`, `print_graph`,
    `print_graph2`, `print_setup_info` and `print_transferred_graphs` print
    one rank at a time, in rank order. Each also returns the text it printed.
  - `write_metis_graph(path, xadj, adjncy, vwgt, adjwgt)` writes a graph in
    the serial METIS file format.

## Example

```python
from distpart.ctrl import OperationType, setup_ctrl
from distpart.graph import setup_graph
from distpart.comm import comm_setup, global_sum
from distpart.messaging import run_parallel

# A path graph 0-1-2-3 split over two ranks.
vtxdist = [0, 2, 4]
local = {
    0: ([0, 1, 3], [1, 0, 2]),
    1: ([0, 2, 3], [1, 3, 2]),
}

def work(comm):
    xadj, adjncy = local[comm.rank]
    ctrl = setup_ctrl(OperationType.KMETIS, None, 1, 2, None, None, comm)
    graph = setup_graph(ctrl, 1, vtxdist, xadj, None, None, list(adjncy), None, 0)
    comm_setup(ctrl, graph)
    return graph.nrecv, global_sum(ctrl.comm, graph.nvtxs)

print(run_parallel(2, work))   # [(1, 4), (1, 4)]
```

## What it does not do

The package has no complete partitioning or repartitioning routine. It has
no coarsening, k-way refinement, remapping or ordering, and no serial
partitioner for the assembled graph. It also has no command-line tool. Ranks
are threads of one Python process; the package does not communicate between
separate processes or machines.

## Tests

```
pip install -e .[test]
pytest
```