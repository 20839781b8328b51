"""Dependency graph of task names.

An edge ``(before, after)`` means ``after`` depends on ``before``. Whenever several
tasks are ready at once they are taken in lexicographic order, so the same task set
always yields the same execution order.
"""

from __future__ import annotations

import heapq
from collections.abc import Collection, Iterable, Sequence

from buildgate.domain.errors import CycleError


class TaskGraph:
    __slots__ = ("_requires", "_required_by")

    def __init__(
        self,
        nodes: Iterable[str] | None = None,
        edges: Iterable[tuple[str, str]] | None = None,
    ) -> None:
        self._requires: dict[str, set[str]] = {}
        self._required_by: dict[str, set[str]] = {}
        for node in nodes or ():
            self.add_node(node)
        for before, after in edges or ():
            self.add_edge(before, after)

    def __contains__(self, node: object) -> bool:
        return node in self._requires

    def __len__(self) -> int:
        return len(self._requires)

    @property
    def nodes(self) -> tuple[str, ...]:
        return tuple(sorted(self._requires))

    @property
    def edges(self) -> tuple[tuple[str, str], ...]:
        return tuple(
            (before, after)
            for before in self.nodes
            for after in sorted(self._required_by[before])
        )

    def add_node(self, node: str) -> None:
        if not node:
            raise ValueError("task name must be non-empty")
        self._requires.setdefault(node, set())
        self._required_by.setdefault(node, set())

    def add_edge(self, before: str, after: str) -> None:
        """Record that ``after`` runs only once ``before`` has run."""

        self.add_node(before)
        self.add_node(after)
        self._requires[after].add(before)
        self._required_by[before].add(after)

    def topological_sort(self) -> tuple[str, ...]:
        """Order every node after its prerequisites; raises ``CycleError`` on a cycle."""

        return self._ordered(self._requires.keys())

    def execution_plan(self, targets: Sequence[str]) -> tuple[str, ...]:
        """Ordered ``targets`` plus everything they transitively require, and nothing else."""

        selected: set[str] = set()
        for target in targets:
            selected.add(target)
            selected.update(self.get_dependencies(target, transitive=True))
        return self._ordered(selected)

    def get_dependencies(self, node: str, *, transitive: bool = False) -> tuple[str, ...]:
        if node not in self._requires:
            raise KeyError(f"unknown task: {node}")
        if not transitive:
            return tuple(sorted(self._requires[node]))

        seen: set[str] = set()
        frontier = list(self._requires[node])
        while frontier:
            current = frontier.pop()
            if current not in seen:
                seen.add(current)
                frontier.extend(self._requires[current] - seen)
        return tuple(sorted(seen))

    def detect_cycles(self) -> tuple[tuple[str, ...], ...]:
        """Return the cycles a depth-first search runs into, as closed paths.

        Each cycle is rotated to start at its smallest name, e.g. ``("A", "B", "A")``.
        """

        found: set[tuple[str, ...]] = set()
        finished: set[str] = set()
        path: list[str] = []
        on_path: dict[str, int] = {}

        def visit(node: str) -> None:
            on_path[node] = len(path)
            path.append(node)
            for successor in sorted(self._required_by[node]):
                if successor in on_path:
                    found.add(_rotate(path[on_path[successor] :]))
                elif successor not in finished:
                    visit(successor)
            path.pop()
            del on_path[node]
            finished.add(node)

        for node in self.nodes:
            if node not in finished:
                visit(node)
        return tuple(sorted(found))

    def _ordered(self, subset: Collection[str]) -> tuple[str, ...]:
        waiting = {node: len(self._requires[node].intersection(subset)) for node in subset}
        ready = [node for node, count in waiting.items() if count == 0]
        heapq.heapify(ready)

        order: list[str] = []
        while ready:
            node = heapq.heappop(ready)
            order.append(node)
            for successor in self._required_by[node]:
                if successor in waiting:
                    waiting[successor] -= 1
                    if waiting[successor] == 0:
                        heapq.heappush(ready, successor)

        if len(order) != len(waiting):
            raise CycleError(self.detect_cycles())
        return tuple(order)


def _rotate(cycle: Sequence[str]) -> tuple[str, ...]:
    start = min(range(len(cycle)), key=lambda index: cycle[index])
    rotated = tuple(cycle[start:]) + tuple(cycle[:start])
    return (*rotated, rotated[0])


__all__ = ["CycleError", "TaskGraph"]
