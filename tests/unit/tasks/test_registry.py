"""
buildgate — unit tests for the task registry.

Purpose
- Verify named task definition and ordered execution of a target with its prerequisites.

What this test file should cover
- Duplicate names and undefined prerequisites are rejected.
- Prerequisites run first, each at most once; unrelated tasks never run.
- The first failing task halts execution and its error propagates unchanged.
- Up-to-date predicates and ``UP_TO_DATE`` action results are reported as such.
"""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import MagicMock

import pytest

from buildgate.domain.errors import CycleError, DuplicateTaskError, UnknownTaskError
from buildgate.tasks.registry import TaskKind, TaskRegistry, TaskStatus

pytestmark = pytest.mark.unit


def _recording(calls: list[str], name: str) -> Callable[[], None]:
    def action() -> None:
        calls.append(name)

    return action


def test_duplicate_task_name_rejected() -> None:
    registry = TaskRegistry("core")
    registry.define_task("Build", TaskKind.ACTION, lambda: None)

    with pytest.raises(DuplicateTaskError) as error:
        registry.define_task("Build", TaskKind.ACTION, lambda: None)

    assert error.value.scope == "core"
    assert error.value.name == "Build"


def test_empty_task_name_rejected() -> None:
    with pytest.raises(ValueError):
        TaskRegistry().define_task(" ", TaskKind.ACTION, lambda: None)


def test_get_unknown_task() -> None:
    with pytest.raises(UnknownTaskError):
        TaskRegistry().get("Missing")


def test_undefined_prerequisite_fails_at_planning_time() -> None:
    registry = TaskRegistry()
    registry.define_task("Check", TaskKind.EXEC, lambda: None, depends_on=("Verify",))

    with pytest.raises(UnknownTaskError) as error:
        registry.run_in_order("Check")
    assert error.value.name == "Verify"


def test_unknown_target_rejected() -> None:
    with pytest.raises(UnknownTaskError):
        TaskRegistry().run_in_order("Nothing")


def test_dependency_cycle_rejected() -> None:
    registry = TaskRegistry()
    registry.define_task("A", TaskKind.ACTION, lambda: None, depends_on=("B",))
    registry.define_task("B", TaskKind.ACTION, lambda: None, depends_on=("A",))

    with pytest.raises(CycleError):
        registry.run_in_order("A")


def test_prerequisites_run_first_and_once() -> None:
    calls: list[str] = []
    registry = TaskRegistry()
    mkdir = registry.define_task("MakeDirectory", TaskKind.MKDIR, _recording(calls, "mkdir"))
    download = registry.define_task(
        "Download", TaskKind.DOWNLOAD, _recording(calls, "download"), depends_on=(mkdir,)
    )
    verify = registry.define_task(
        "Verify", TaskKind.VERIFY, _recording(calls, "verify"), depends_on=(download,)
    )
    registry.define_task("Check", TaskKind.EXEC, _recording(calls, "check"), depends_on=(verify,))
    registry.define_task(
        "Format", TaskKind.EXEC, _recording(calls, "format"), depends_on=("Verify",)
    )
    registry.define_task("Unrelated", TaskKind.ACTION, _recording(calls, "unrelated"))

    outcomes = registry.run_in_order("Check", "Format")

    assert calls == ["mkdir", "download", "verify", "check", "format"]
    assert [outcome.name for outcome in outcomes] == [
        "MakeDirectory",
        "Download",
        "Verify",
        "Check",
        "Format",
    ]
    assert all(outcome.status is TaskStatus.EXECUTED for outcome in outcomes)
    assert registry.get("Verify").depends_on == ("Download",)


def test_first_failure_halts_and_propagates_unchanged() -> None:
    calls: list[str] = []
    failure = RuntimeError("download failed")

    def failing() -> None:
        calls.append("download")
        raise failure

    registry = TaskRegistry()
    registry.define_task("MakeDirectory", TaskKind.MKDIR, _recording(calls, "mkdir"))
    registry.define_task("Download", TaskKind.DOWNLOAD, failing, depends_on=("MakeDirectory",))
    registry.define_task(
        "Verify", TaskKind.VERIFY, _recording(calls, "verify"), depends_on=("Download",)
    )

    with pytest.raises(RuntimeError) as error:
        registry.run_in_order("Verify")

    assert error.value is failure
    assert calls == ["mkdir", "download"]
    assert registry.get("Verify").outcome is None


def test_up_to_date_predicate_skips_action() -> None:
    action = MagicMock(return_value=None)
    registry = TaskRegistry()
    registry.define_task("MakeDirectory", TaskKind.MKDIR, action, up_to_date=lambda: True)

    (outcome,) = registry.run_in_order("MakeDirectory")

    action.assert_not_called()
    assert outcome.status is TaskStatus.UP_TO_DATE
    assert registry.get("MakeDirectory").outcome is TaskStatus.UP_TO_DATE


def test_action_may_report_up_to_date() -> None:
    registry = TaskRegistry()
    registry.define_task("Download", TaskKind.DOWNLOAD, lambda: TaskStatus.UP_TO_DATE)

    (outcome,) = registry.run_in_order("Download")

    assert outcome.status is TaskStatus.UP_TO_DATE
    assert outcome.to_dict()["status"] == "up_to_date"


def test_task_events_are_logged_with_status() -> None:
    logger = MagicMock()
    registry = TaskRegistry(logger=logger)
    registry.define_task("Check", TaskKind.EXEC, lambda: None)

    registry.run_in_order("Check")

    logger.info.assert_called_once()
    args, kwargs = logger.info.call_args
    assert args == ("task.finished",)
    assert kwargs["task"] == "Check"
    assert kwargs["kind"] == "exec"
    assert kwargs["status"] == "executed"


def test_registry_container_protocol() -> None:
    registry = TaskRegistry()
    registry.define_task("B", TaskKind.ACTION, lambda: None)
    registry.define_task("A", TaskKind.ACTION, lambda: None)

    assert registry.names() == ("B", "A")
    assert len(registry) == 2
    assert "A" in registry
    assert [task.name for task in registry] == ["B", "A"]
