import pytest

from distpart.ctrl import (
    DBGLVL_FAST,
    DBGLVL_ONDISK,
    GLOBAL_SEED,
    REFINE_IPC_FACTOR,
    UNBALANCE_FRACTION,
    OperationType,
    PartitionType,
    PSRelation,
    setup_ctrl,
)
from distpart.messaging import run_parallel, serial_communicator
from distpart.structs import Graph


def test_default_adaptive_ctrl():
    ctrl = setup_ctrl(OperationType.AMETIS, None, 2, 3, None, None, serial_communicator())
    assert ctrl.tpwgts == pytest.approx([1.0 / 3] * 6)
    assert ctrl.ubvec == [UNBALANCE_FRACTION, UNBALANCE_FRACTION]
    assert ctrl.part_type is PartitionType.ADAPTIVE_PARTITION
    assert ctrl.ps_relation is PSRelation.UNCOUPLED
    assert ctrl.sync == GLOBAL_SEED
    assert ctrl.seed == 0
    assert (ctrl.mype, ctrl.npes) == (0, 1)


def test_refine_ctrl_is_coupled_when_parts_match_processes():
    ctrl = setup_ctrl(OperationType.RMETIS, None, 1, 1, None, None, serial_communicator())
    assert ctrl.part_type is PartitionType.REFINE_PARTITION
    assert ctrl.ps_relation is PSRelation.COUPLED
    assert ctrl.ipc_factor == REFINE_IPC_FACTOR


def test_static_ctrl_has_no_ps_relation():
    ctrl = setup_ctrl(OperationType.KMETIS, None, 1, 4, None, None, serial_communicator())
    assert ctrl.part_type is PartitionType.STATIC_PARTITION
    assert ctrl.ps_relation is None


def test_options_are_honoured():
    options = [1, DBGLVL_FAST | DBGLVL_ONDISK, 7, PSRelation.UNCOUPLED.value]
    ctrl = setup_ctrl(OperationType.AMETIS, options, 1, 1, None, None, serial_communicator())
    assert ctrl.ps_relation is PSRelation.UNCOUPLED
    assert ctrl.dbglvl == DBGLVL_FAST | DBGLVL_ONDISK
    assert ctrl.fast and ctrl.ondisk
    assert not ctrl.dropedges and not ctrl.twohop
    assert ctrl.sync == 7


def test_given_weights_are_copied():
    tpwgts = [0.25, 0.75]
    ubvec = [1.2]
    ctrl = setup_ctrl(OperationType.KMETIS, None, 1, 2, tpwgts, ubvec, serial_communicator())
    assert ctrl.tpwgts == tpwgts
    assert ctrl.tpwgts is not tpwgts
    assert ctrl.ubvec == ubvec


def test_short_tpwgts_rejected():
    with pytest.raises(ValueError):
        setup_ctrl(OperationType.KMETIS, None, 2, 2, [0.5, 0.5], None, serial_communicator())


def test_invalid_psr_option_rejected():
    with pytest.raises(ValueError):
        setup_ctrl(OperationType.AMETIS, [1, 0, 0, 99], 1, 1, None, None, serial_communicator())


def test_seed_and_sync_across_ranks():
    seed = 4

    def body(comm):
        ctrl = setup_ctrl(OperationType.KMETIS, [1, 0, seed, 0], 1, 3, None, None, comm)
        return ctrl.mype, ctrl.seed, ctrl.sync, ctrl.npes

    results = run_parallel(3, body)
    assert [r[0] for r in results] == [0, 1, 2]
    assert [r[1] for r in results] == [seed * rank for rank in range(3)]
    assert all(r[2] == seed for r in results)
    assert all(r[3] == 3 for r in results)


def test_invtvwgts_serial():
    ctrl = setup_ctrl(OperationType.KMETIS, None, 2, 2, None, None, serial_communicator())
    graph = Graph(nvtxs=3, ncon=2, vwgt=[1, 2, 3, 4, 5, 6])
    ctrl.setup_invtvwgts(graph)
    assert ctrl.invtvwgts[0] * (1 + 3 + 5) == pytest.approx(1.0)
    assert ctrl.invtvwgts[1] * (2 + 4 + 6) == pytest.approx(1.0)


def test_invtvwgts_across_ranks():
    data = {0: [1, 2, 3, 4], 1: [5, 6, 7, 8]}

    def body(comm):
        ctrl = setup_ctrl(OperationType.KMETIS, None, 2, 2, None, None, comm)
        ctrl.setup_invtvwgts(Graph(nvtxs=2, ncon=2, vwgt=data[comm.rank]))
        return ctrl.invtvwgts

    results = run_parallel(2, body)
    assert results[0] == results[1]
    assert results[0][0] * (1 + 3 + 5 + 7) == pytest.approx(1.0)
    assert results[0][1] * (2 + 4 + 6 + 8) == pytest.approx(1.0)


def test_invtvwgts_zero_weight_rejected():
    ctrl = setup_ctrl(OperationType.KMETIS, None, 1, 2, None, None, serial_communicator())
    with pytest.raises(ValueError):
        ctrl.setup_invtvwgts(Graph(nvtxs=2, ncon=1, vwgt=[0, 0]))