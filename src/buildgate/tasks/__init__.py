"""Task definitions, dependency ordering and external process execution."""

from buildgate.tasks.graph import TaskGraph
from buildgate.tasks.process import (
    CommandResult,
    CommandRunner,
    SubprocessCommandRunner,
    run_external_process,
)
from buildgate.tasks.registry import Task, TaskKind, TaskOutcome, TaskRegistry, TaskStatus

__all__ = [
    "CommandResult",
    "CommandRunner",
    "SubprocessCommandRunner",
    "Task",
    "TaskGraph",
    "TaskKind",
    "TaskOutcome",
    "TaskRegistry",
    "TaskStatus",
    "run_external_process",
]
