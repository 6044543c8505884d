import numpy as np

from rl_learning_tool.tabular import PolicyTable, QTable, ValueTable


def test_value_table_defaults_to_zero_without_inserting() -> None:
    V = ValueTable(["a", "b"])

    assert V["zzz"] == 0.0
    assert "zzz" not in V
    assert len(V) == 2

    V["a"] = 3
    assert isinstance(V["a"], float)
    assert V.to_dict() == {"a": 3.0, "b": 0.0}
    assert list(V) == ["a", "b"]


def test_policy_table_default_action() -> None:
    pi = PolicyTable(default_action="up")

    assert pi["nowhere"] == "up"
    assert len(pi) == 0

    pi["s"] = "left"
    assert pi["s"] == "left"
    assert pi.to_dict() == {"s": "left"}


def test_q_table_lazy_rows() -> None:
    """
    Reading Q never creates entries: only written states are reported.
    """
    Q = QTable()
    assert Q.get("s", "a") == 0.0
    assert not Q.has_state("s")
    assert len(Q) == 0

    Q.set("s", "a", 1.5)
    assert Q.has_state("s")
    assert Q.states() == ["s"]
    assert Q.row("s") == {"a": 1.5}


def test_q_table_best_action_first_max() -> None:
    """
    Test Goal:
        Ties go to the earliest action in the given order.

    Why this matters:
        Greedy policies (and every test comparing them) must be deterministic.
    """
    Q = QTable()
    Q.set("s", "b", 2.0)
    Q.set("s", "c", 2.0)

    assert Q.best_action("s", ["a", "b", "c"]) == "b"
    assert Q.best_action("s", ["c", "b", "a"]) == "c"
    assert np.isclose(a=Q.max_value("s", ["a", "b", "c"]), b=2.0)


def test_q_table_unwritten_actions_count_as_zero() -> None:
    Q = QTable()
    Q.set("s", "a", -1.0)

    # "b" was never written: 0.0 beats -1.0
    assert Q.best_action("s", ["a", "b"]) == "b"
    assert np.isclose(a=Q.max_value("s", ["a", "b"]), b=0.0)


def test_q_table_to_dict_is_a_copy() -> None:
    Q = QTable()
    Q.set("s", "a", 1.0)

    snapshot = Q.to_dict()
    snapshot["s"]["a"] = 99.0
    assert Q.get("s", "a") == 1.0
