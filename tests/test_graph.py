import pytest

from distpart.ctrl import DBGLVL_ONDISK, OperationType, setup_ctrl
from distpart.graph import (
    free_comm_setup_fields,
    free_non_graph_fields,
    free_non_graph_non_setup_fields,
    read_graph_from_disk,
    remap_to_global,
    setup_graph,
    setup_graph_nvwgts,
    write_graph_to_disk,
)
from distpart.messaging import run_parallel, serial_communicator


def _triangle():
    return [0, 3], [0, 2, 4, 6], [1, 2, 0, 2, 0, 1]


def _ctrl(optype=OperationType.KMETIS, options=None, ncon=1):
    return setup_ctrl(optype, options, ncon, 2, None, None, serial_communicator())


def test_default_weights_are_unit():
    vtxdist, xadj, adjncy = _triangle()
    graph = setup_graph(_ctrl(), 1, vtxdist, xadj, None, None, adjncy, None, 0)
    assert (graph.gnvtxs, graph.nvtxs, graph.nedges) == (3, 3, 6)
    assert graph.vwgt == [1, 1, 1]
    assert graph.adjwgt == [1] * 6
    assert graph.free_vwgt and graph.free_adjwgt
    assert not graph.free_xadj and not graph.free_adjncy
    assert sum(graph.nvwgt) == pytest.approx(1.0)
    assert graph.home is None


def test_supplied_weights_are_shared():
    vtxdist, xadj, adjncy = _triangle()
    vwgt = [1, 2, 3]
    adjwgt = [5, 5, 5, 5, 5, 5]
    graph = setup_graph(_ctrl(), 1, vtxdist, xadj, vwgt, None, adjncy, adjwgt, 3)
    assert graph.vwgt is vwgt
    assert graph.adjwgt is adjwgt
    assert not graph.free_vwgt and not graph.free_adjwgt
    assert [w * sum(vwgt) for w in graph.nvwgt] == pytest.approx(vwgt)


def test_weight_flag_ignores_unflagged_arrays():
    vtxdist, xadj, adjncy = _triangle()
    vwgt = [4, 4, 4]
    graph = setup_graph(_ctrl(), 1, vtxdist, xadj, vwgt, None, adjncy, None, 1)
    assert graph.vwgt == [1, 1, 1]
    assert graph.free_vwgt


def test_adaptive_graph_gets_sizes_and_ratio():
    vtxdist, xadj, adjncy = _triangle()
    ctrl = _ctrl(OperationType.AMETIS)
    graph = setup_graph(ctrl, 1, vtxdist, xadj, None, [2, 2, 2], adjncy, None, 0)
    assert graph.vsize == [2, 2, 2]
    assert not graph.free_vsize
    assert graph.home == [1, 1, 1]
    assert ctrl.edge_size_ratio == pytest.approx(1.0)


def test_nvwgts_multi_constraint():
    vtxdist, xadj, adjncy = _triangle()
    ctrl = _ctrl(ncon=2)
    vwgt = [1, 10, 2, 20, 3, 30]
    graph = setup_graph(ctrl, 2, vtxdist, xadj, vwgt, None, adjncy, None, 2)
    assert sum(graph.nvwgt[0::2]) == pytest.approx(1.0)
    assert sum(graph.nvwgt[1::2]) == pytest.approx(1.0)
    graph.nvwgt = None
    setup_graph_nvwgts(ctrl, graph)
    assert len(graph.nvwgt) == 6


def test_distributed_setup():
    vtxdist = [0, 2, 4]
    local = {0: ([0, 1, 3], [1, 0, 2]), 1: ([0, 2, 3], [1, 3, 2])}

    def body(comm):
        ctrl = setup_ctrl(OperationType.AMETIS, None, 1, 2, None, None, comm)
        xadj, adjncy = local[comm.rank]
        graph = setup_graph(ctrl, 1, vtxdist, xadj, None, None, adjncy, None, 0)
        return graph.gnvtxs, graph.nvtxs, sum(graph.nvwgt), ctrl.edge_size_ratio

    results = run_parallel(2, body)
    assert [r[0] for r in results] == [4, 4]
    assert [r[1] for r in results] == [2, 2]
    assert results[0][2] + results[1][2] == pytest.approx(1.0)
    assert results[0][3] == results[1][3]
    assert results[0][3] > 1.0


def test_remap_to_global():
    vtxdist, xadj, adjncy = _triangle()
    adjwgt = [1, 1, 1, 1, 1, 1]
    graph = setup_graph(_ctrl(), 1, vtxdist, xadj, None, None, adjncy, adjwgt, 1)
    graph.imap = [10, 20, 30]
    graph.where = [0, 1, 0]
    remap_to_global(graph)
    assert adjncy == [20, 30, 10, 30, 10, 20]
    assert graph.imap is None and graph.where is None
    assert graph.nvwgt is None
    assert graph.vwgt is None
    assert graph.adjwgt is adjwgt


def test_free_field_groups():
    vtxdist, xadj, adjncy = _triangle()
    graph = setup_graph(_ctrl(), 1, vtxdist, xadj, None, None, adjncy, None, 0)
    graph.peind = [1]
    graph.where = [0, 0, 1]

    free_comm_setup_fields(graph)
    assert graph.peind is None
    assert graph.where == [0, 0, 1]

    graph.peind = [1]
    free_non_graph_non_setup_fields(graph)
    assert graph.where is None
    assert graph.peind == [1]

    graph.where = [0, 0, 1]
    free_non_graph_fields(graph)
    assert graph.peind is None and graph.where is None
    assert graph.xadj is xadj


def _ondisk_graph():
    vtxdist, xadj, adjncy = _triangle()
    ctrl = _ctrl(OperationType.AMETIS, [1, DBGLVL_ONDISK, 0, 2])
    ctrl.ondisk_min_bytes = 0
    graph = setup_graph(ctrl, 1, vtxdist, xadj, [3, 4, 5], None, adjncy, None, 2)
    graph.home = [0, 1, 0]
    return ctrl, graph


def test_disk_round_trip(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    ctrl, graph = _ondisk_graph()
    nvwgt, adjwgt, vsize, home = list(graph.nvwgt), list(graph.adjwgt), list(graph.vsize), list(graph.home)

    assert write_graph_to_disk(ctrl, graph) is True
    assert graph.ondisk
    assert graph.nvwgt is None and graph.adjwgt is None and graph.home is None
    assert graph.vwgt == [3, 4, 5]
    assert len(list(tmp_path.iterdir())) == 1

    assert read_graph_from_disk(ctrl, graph) is True
    assert graph.nvwgt == pytest.approx(nvwgt)
    assert graph.adjwgt == adjwgt
    assert graph.vsize == vsize
    assert graph.home == home
    assert not graph.ondisk and graph.gid == 0
    assert list(tmp_path.iterdir()) == []


def test_disk_write_skipped_without_flag(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    vtxdist, xadj, adjncy = _triangle()
    ctrl = _ctrl()
    ctrl.ondisk_min_bytes = 0
    graph = setup_graph(ctrl, 1, vtxdist, xadj, None, None, adjncy, None, 0)
    assert write_graph_to_disk(ctrl, graph) is False
    assert read_graph_from_disk(ctrl, graph) is False
    assert graph.nvwgt is not None and not graph.ondisk


def test_disk_write_skipped_for_small_graph(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    ctrl, graph = _ondisk_graph()
    ctrl.ondisk_min_bytes = 1 << 30
    assert write_graph_to_disk(ctrl, graph) is False
    assert list(tmp_path.iterdir()) == []