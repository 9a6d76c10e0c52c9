import pytest

from distpart.ctrl import OperationType, setup_ctrl
from distpart.debug import (
    KEEP_BIT,
    print_graph,
    print_graph2,
    print_pairs,
    print_setup_info,
    print_transferred_graphs,
    print_vector,
    print_vector2,
    write_metis_graph,
)
from distpart.messaging import run_parallel, serial_communicator
from distpart.structs import Graph, RefineInfo


@pytest.fixture
def ctrl():
    return setup_ctrl(
        OperationType.KMETIS, None, 1, 1, None, None, serial_communicator()
    )


def _triangle():
    return Graph(
        gnvtxs=3,
        nvtxs=3,
        ncon=1,
        nedges=6,
        xadj=[0, 2, 4, 6],
        adjncy=[1, 2, 0, 2, 0, 1],
        adjwgt=[1, 1, 1, 1, 1, 1],
        vwgt=[1, 1, 1],
        vtxdist=[0, 3],
    )


def test_print_vector(ctrl, capsys):
    text = print_vector(ctrl, [5, 7], 0, "vec")
    assert text == "vec\n\t  0. [0 5] [1 7] \n"
    assert capsys.readouterr().out == text


def test_print_vector_rank_order(capsys):
    def work(comm):
        c = setup_ctrl(OperationType.KMETIS, None, 1, 2, None, None, comm)
        return print_vector(c, [comm.rank + 1], 0, "t")

    texts = run_parallel(2, work)
    assert capsys.readouterr().out == "".join(texts)
    assert texts[0].startswith("t\n")
    assert not texts[1].startswith("t")


def test_print_vector2_splits_keep_bit(ctrl):
    text = print_vector2(ctrl, [KEEP_BIT + 3, 4], 0, "v")
    assert text == "v\n\t  0. [0 1.3] [1 0.4] \n"


def test_print_pairs(ctrl):
    text = print_pairs(ctrl, [(4, 9), (2, 1)], "p")
    assert text == "p\n\t  0. [0 4, 9] [1 2, 1] \n"


def test_print_graph_lines(ctrl):
    text = print_graph(ctrl, _triangle())
    lines = text.split("\n")
    assert lines[0] == "\t0\t 0  1\t[1 1] [2 1] "
    assert lines[1] == "\t\t 1  1\t[0 1] [2 1] "
    assert text.endswith("\n")


def test_print_graph2_includes_degrees(ctrl):
    graph = _triangle()
    graph.where = [0, 0, 0]
    graph.ckrinfo = [RefineInfo(id=2, ed=0) for _ in range(3)]
    text = print_graph2(ctrl, graph)
    assert text.split("\n")[0] == "\t0\t 0  1 [0 2 0]\t[1 1] [2 1] "


def test_print_setup_info(ctrl):
    graph = Graph(
        nnbrs=1,
        peind=[1],
        sendptr=[0, 2],
        sendind=[3, 4],
        recvptr=[0, 1],
        recvind=[7],
    )
    text = print_setup_info(ctrl, graph)
    assert text == (
        "PE: 0, nnbrs: 1\n\tSending...\n\t\tTo: 1: 3 4 \n"
        "\tReceiving...\n\t\tFrom: 1: 7 \n\n"
    )


def test_print_transferred_graphs(ctrl):
    text = print_transferred_graphs(ctrl, [1], [0, 1], [0, 0], [5, 1, 2, 7, 3], [])
    assert text == "PE: 0, nnbrs: 1\n\tTo 1\t5 1 2, [7 3] \n\t\t\n"


def test_write_metis_graph(tmp_path):
    path = tmp_path / "test.graph"
    write_metis_graph(path, [0, 2, 4, 6], [1, 2, 0, 2, 0, 1], [1, 1, 1], [1] * 6)
    lines = path.read_text().split("\n")
    assert lines[0] == "3 3 11"
    assert lines[1] == "1  2 1 3 1"
    assert len(lines) == 4


def test_write_metis_graph_rejects_empty_xadj(tmp_path):
    with pytest.raises(ValueError):
        write_metis_graph(tmp_path / "g", [], [], [], [])