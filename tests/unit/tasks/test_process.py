"""Unit tests for external process tasks."""

from __future__ import annotations

import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from buildgate.domain.errors import ExternalProcessError
from buildgate.tasks.process import (
    EXIT_COMMAND_NOT_FOUND,
    CommandResult,
    SubprocessCommandRunner,
    execute,
    run_external_process,
)
from buildgate.tasks.registry import TaskKind, TaskRegistry, TaskStatus

pytestmark = pytest.mark.unit


@dataclass
class _FakeRunner:
    returncode: int = 0
    calls: list[tuple[tuple[str, ...], Path | None]] = field(default_factory=list)

    def run(self, command: Sequence[str], *, cwd: Path | None) -> CommandResult:
        self.calls.append((tuple(command), cwd))
        return CommandResult(command=tuple(command), cwd=cwd, returncode=self.returncode)


def test_execute_success_returns_result(tmp_path: Path) -> None:
    runner = _FakeRunner()

    result = execute(["java", "-version"], cwd=tmp_path, runner=runner)

    assert result.returncode == 0
    assert runner.calls == [(("java", "-version"), tmp_path)]


def test_execute_passes_exit_code_through() -> None:
    with pytest.raises(ExternalProcessError) as error:
        execute(["ktlint"], runner=_FakeRunner(returncode=3))

    assert error.value.exit_code == 3
    assert error.value.command == ("ktlint",)


def test_execute_rejects_empty_command() -> None:
    with pytest.raises(ValueError):
        execute([], runner=_FakeRunner())


def test_run_external_process_defines_exec_task(tmp_path: Path) -> None:
    runner = _FakeRunner()
    registry = TaskRegistry()
    registry.define_task("Verify", TaskKind.VERIFY, lambda: None)

    task = run_external_process(
        registry,
        "Check",
        ["java", "-jar", tmp_path / "ktlint.jar"],
        cwd=tmp_path,
        depends_on=("Verify",),
        runner=runner,
    )
    outcomes = registry.run_in_order("Check")

    assert task.kind is TaskKind.EXEC
    assert task.description == f"java -jar {tmp_path / 'ktlint.jar'}"
    assert [outcome.name for outcome in outcomes] == ["Verify", "Check"]
    assert outcomes[-1].status is TaskStatus.EXECUTED
    assert runner.calls == [(("java", "-jar", str(tmp_path / "ktlint.jar")), tmp_path)]


def test_run_external_process_failure_halts_run() -> None:
    registry = TaskRegistry()
    run_external_process(registry, "Check", ["ktlint"], runner=_FakeRunner(returncode=1))

    with pytest.raises(ExternalProcessError) as error:
        registry.run_in_order("Check")
    assert error.value.exit_code == 1


def test_subprocess_runner_missing_executable_is_127(tmp_path: Path) -> None:
    missing = tmp_path / "definitely-not-installed"

    with pytest.raises(ExternalProcessError) as error:
        SubprocessCommandRunner().run([str(missing)], cwd=tmp_path)

    assert error.value.exit_code == EXIT_COMMAND_NOT_FOUND
    assert "executable not found" in str(error.value)


def test_subprocess_runner_reports_exit_code(tmp_path: Path) -> None:
    result = SubprocessCommandRunner().run(
        [sys.executable, "-c", "raise SystemExit(5)"], cwd=tmp_path
    )
    assert result.returncode == 5
