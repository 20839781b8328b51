"""Unit tests for tasks.graph."""

from __future__ import annotations

import random

import pytest

from buildgate.tasks.graph import CycleError, TaskGraph

pytestmark = pytest.mark.unit


def test_topological_sort_is_lexicographic_among_ready_nodes() -> None:
    graph = TaskGraph(
        nodes=("zeta", "alpha"),
        edges=(
            ("root", "b"),
            ("root", "a"),
            ("a", "leaf"),
            ("b", "leaf"),
        ),
    )

    assert graph.topological_sort() == ("alpha", "root", "a", "b", "leaf", "zeta")


def test_cycle_detection_returns_canonical_cycle() -> None:
    graph = TaskGraph(edges=(("B", "C"), ("C", "A"), ("A", "B"), ("C", "D")))

    assert graph.detect_cycles() == (("A", "B", "C", "A"),)
    with pytest.raises(CycleError) as error:
        graph.topological_sort()
    assert error.value.cycles == (("A", "B", "C", "A"),)
    assert "A -> B -> C -> A" in str(error.value)


def test_self_loop_is_a_cycle() -> None:
    graph = TaskGraph(edges=(("A", "A"),))
    assert graph.detect_cycles() == (("A", "A"),)


def test_get_dependencies_direct_and_transitive() -> None:
    graph = TaskGraph(edges=(("a", "b"), ("b", "d"), ("c", "d"), ("x", "c")))

    assert graph.get_dependencies("d") == ("b", "c")
    assert graph.get_dependencies("d", transitive=True) == ("a", "b", "c", "x")
    assert graph.get_dependencies("a") == ()
    with pytest.raises(KeyError):
        graph.get_dependencies("missing")


def test_execution_plan_selects_only_required_nodes() -> None:
    graph = TaskGraph(
        edges=(
            ("MakeDirectory", "Download"),
            ("Download", "Verify"),
            ("Verify", "Check"),
            ("Verify", "Format"),
        )
    )

    assert graph.execution_plan(["Check"]) == ("MakeDirectory", "Download", "Verify", "Check")
    assert graph.execution_plan(["Format", "Check"]) == (
        "MakeDirectory",
        "Download",
        "Verify",
        "Check",
        "Format",
    )
    assert graph.execution_plan(["MakeDirectory"]) == ("MakeDirectory",)


def test_edges_and_nodes_are_sorted() -> None:
    graph = TaskGraph(edges=(("b", "c"), ("a", "c"), ("a", "b")))
    assert graph.nodes == ("a", "b", "c")
    assert graph.edges == (("a", "b"), ("a", "c"), ("b", "c"))
    assert "a" in graph
    assert len(graph) == 3


def test_empty_node_id_rejected() -> None:
    with pytest.raises(ValueError):
        TaskGraph().add_node("")


def test_seeded_random_dag_topological_sort_respects_every_edge() -> None:
    rng = random.Random(20_240_801)
    node_ids = [f"task-{index:03d}" for index in range(300)]
    edges: list[tuple[str, str]] = []
    for child_index in range(1, len(node_ids)):
        for parent_index in rng.sample(range(child_index), k=min(3, child_index)):
            edges.append((node_ids[parent_index], node_ids[child_index]))
    shuffled_nodes = list(node_ids)
    rng.shuffle(shuffled_nodes)

    graph = TaskGraph(nodes=shuffled_nodes, edges=edges)
    order = graph.topological_sort()

    position = {node: index for index, node in enumerate(order)}
    assert len(order) == len(node_ids)
    assert all(position[parent] < position[child] for parent, child in edges)
    assert TaskGraph(nodes=node_ids, edges=reversed(edges)).topological_sort() == order
