"""Unit tests for the action graph."""

from __future__ import annotations

import pytest

from rcmlet.dag import build_dag, dependencies_of, run_graph, topo_levels
from rcmlet.dsl import action
from rcmlet.model import ActionOutcome, OutcomeStatus


def test_sequential_actions_depend_on_everything_before() -> None:
    deps = dependencies_of([action("a", "x"), action("b", "x"), action("c", "x")])

    assert deps == {"a": [], "b": ["a"], "c": ["a", "b"]}


def test_parallel_actions_depend_on_needs_and_last_barrier() -> None:
    actions = [
        action("setup", "x"),
        action("lint", "x", parallel=True),
        action("compile", "x", parallel=True),
        action("package", "x", parallel=True, needs=["compile"]),
        action("publish", "x"),
    ]

    deps = dependencies_of(actions)

    assert deps["lint"] == ["setup"]
    assert deps["compile"] == ["setup"]
    assert deps["package"] == ["compile", "setup"]
    assert deps["publish"] == ["setup", "lint", "compile", "package"]


def test_topo_levels_groups_independent_actions() -> None:
    actions = [
        action("setup", "x"),
        action("lint", "x", parallel=True),
        action("compile", "x", parallel=True),
        action("package", "x", parallel=True, needs=["compile"]),
    ]

    adj, indeg = build_dag(actions)

    assert topo_levels(adj, indeg) == [["setup"], ["compile", "lint"], ["package"]]


def test_topo_levels_detects_cycles() -> None:
    adj = {"a": {"b"}, "b": {"a"}}
    indeg = {"a": 1, "b": 1}

    with pytest.raises(ValueError, match="cycle"):
        topo_levels(adj, indeg)


def test_needs_on_later_action_is_rejected() -> None:
    with pytest.raises(ValueError, match="not declared before it"):
        dependencies_of([action("a", "x", parallel=True, needs=["b"]), action("b", "x")])


def test_needs_on_self_is_rejected() -> None:
    with pytest.raises(ValueError, match="needs itself"):
        dependencies_of([action("a", "x", parallel=True, needs=["a"])])


def test_run_graph_stops_scheduling_after_failure() -> None:
    actions = [action("a", "x"), action("b", "x"), action("c", "x")]

    def run(a):
        status = OutcomeStatus.FAILED if a.name == "b" else OutcomeStatus.SUCCEEDED
        return ActionOutcome(action=a.name, status=status)

    results, not_run = run_graph(actions, run, max_workers=4)

    assert set(results) == {"a", "b"}
    assert results["b"].failed
    assert not_run == ["c"]


def test_run_graph_reraises_errors() -> None:
    def boom(a):
        raise RuntimeError(f"cannot run {a.name}")

    with pytest.raises(RuntimeError, match="cannot run a"):
        run_graph([action("a", "x"), action("b", "x")], boom, max_workers=2)
