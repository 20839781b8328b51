"""
buildgate — named task registry and ordered execution.

Purpose
- Hold the tasks defined for one module scope and run a target together with its
  transitive prerequisites in a deterministic order.

Functional requirements
- Exactly one task per name per registry; redefinition raises ``DuplicateTaskError``.
- Prerequisites are resolved when execution is planned; unknown names raise
  ``UnknownTaskError`` and dependency cycles raise ``CycleError``.
- Execution halts at the first failing task: its exception propagates unchanged
  and no later task runs.
- Each task runs at most once per ``run_in_order`` call.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import structlog

from buildgate.constants import ROOT_MODULE_NAME
from buildgate.domain.errors import DuplicateTaskError, UnknownTaskError
from buildgate.observability.logging import correlation_scope
from buildgate.tasks.graph import TaskGraph


class TaskKind(StrEnum):
    MKDIR = "mkdir"
    DOWNLOAD = "download"
    VERIFY = "verify"
    EXEC = "exec"
    ACTION = "action"


class TaskStatus(StrEnum):
    EXECUTED = "executed"
    UP_TO_DATE = "up_to_date"


TaskAction = Callable[[], "TaskStatus | None"]
UpToDatePredicate = Callable[[], bool]


@dataclass(slots=True, eq=False)
class Task:
    """A named unit of work.

    ``action`` may return ``TaskStatus.UP_TO_DATE`` when it found nothing to do;
    any other return value counts as executed.
    """

    name: str
    kind: TaskKind
    action: TaskAction
    depends_on: tuple[str, ...] = ()
    up_to_date: UpToDatePredicate | None = None
    description: str = ""
    outcome: TaskStatus | None = field(default=None, init=False)


@dataclass(frozen=True, slots=True)
class TaskOutcome:
    name: str
    status: TaskStatus
    duration_seconds: float

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "status": self.status.value,
            "duration_seconds": round(self.duration_seconds, 6),
        }


class TaskRegistry:
    """Tasks of a single module scope."""

    def __init__(self, scope: str = ROOT_MODULE_NAME, *, logger: Any | None = None) -> None:
        self.scope = scope
        self._tasks: dict[str, Task] = {}
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __iter__(self) -> Iterator[Task]:
        return iter(tuple(self._tasks.values()))

    def __len__(self) -> int:
        return len(self._tasks)

    def names(self) -> tuple[str, ...]:
        return tuple(self._tasks)

    def get(self, name: str) -> Task:
        try:
            return self._tasks[name]
        except KeyError:
            raise UnknownTaskError(self.scope, name) from None

    def define_task(
        self,
        name: str,
        kind: TaskKind,
        action: TaskAction,
        *,
        depends_on: Sequence[str | Task] = (),
        up_to_date: UpToDatePredicate | None = None,
        description: str = "",
    ) -> Task:
        if not name or not name.strip():
            raise ValueError("task name must be a non-empty string")
        if name in self._tasks:
            raise DuplicateTaskError(self.scope, name)

        task = Task(
            name=name,
            kind=kind,
            action=action,
            depends_on=tuple(dep.name if isinstance(dep, Task) else dep for dep in depends_on),
            up_to_date=up_to_date,
            description=description,
        )
        self._tasks[name] = task
        return task

    def graph(self) -> TaskGraph:
        """Build the dependency graph, rejecting prerequisites that were never defined."""

        graph = TaskGraph(nodes=self._tasks)
        for task in self._tasks.values():
            for dependency in task.depends_on:
                if dependency not in self._tasks:
                    raise UnknownTaskError(self.scope, dependency)
                graph.add_edge(dependency, task.name)
        return graph

    def plan(self, *targets: str | Task) -> tuple[str, ...]:
        names = [target.name if isinstance(target, Task) else target for target in targets]
        for name in names:
            if name not in self._tasks:
                raise UnknownTaskError(self.scope, name)
        return self.graph().execution_plan(names)

    def run_in_order(self, *targets: str | Task) -> tuple[TaskOutcome, ...]:
        """Run ``targets`` and their prerequisites; the first failure propagates."""

        outcomes: list[TaskOutcome] = []
        for name in self.plan(*targets):
            outcomes.append(self._run_one(self._tasks[name]))
        return tuple(outcomes)

    def _run_one(self, task: Task) -> TaskOutcome:
        with correlation_scope(task=task.name):
            started = time.perf_counter()
            if task.up_to_date is not None and task.up_to_date():
                status = TaskStatus.UP_TO_DATE
            else:
                self._logger.debug("task.started", task=task.name, kind=task.kind.value)
                returned = task.action()
                status = (
                    TaskStatus.UP_TO_DATE
                    if returned is TaskStatus.UP_TO_DATE
                    else TaskStatus.EXECUTED
                )
            task.outcome = status
            elapsed = time.perf_counter() - started
            self._logger.info(
                "task.finished",
                task=task.name,
                kind=task.kind.value,
                status=status.value,
                duration_seconds=round(elapsed, 6),
            )
        return TaskOutcome(name=task.name, status=status, duration_seconds=elapsed)


__all__ = [
    "Task",
    "TaskAction",
    "TaskKind",
    "TaskOutcome",
    "TaskRegistry",
    "TaskStatus",
    "UpToDatePredicate",
]
