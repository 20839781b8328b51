"""External process tasks whose output is passed through to the caller's terminal."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final, Protocol

from buildgate.domain.errors import ExternalProcessError
from buildgate.tasks.registry import TaskKind

if TYPE_CHECKING:
    from buildgate.tasks.registry import Task, TaskRegistry

# Shell convention for "command not found".
EXIT_COMMAND_NOT_FOUND: Final[int] = 127


@dataclass(frozen=True, slots=True)
class CommandResult:
    command: tuple[str, ...]
    cwd: Path | None
    returncode: int


class CommandRunner(Protocol):
    """Injectable command runner used for deterministic/offline testing."""

    def run(self, command: Sequence[str], *, cwd: Path | None) -> CommandResult: ...


class SubprocessCommandRunner:
    """Default command runner backed by ``subprocess.run`` with inherited stdio."""

    def run(self, command: Sequence[str], *, cwd: Path | None) -> CommandResult:
        try:
            completed = subprocess.run(list(command), cwd=cwd, check=False)
        except FileNotFoundError as exc:
            raise ExternalProcessError(
                command,
                EXIT_COMMAND_NOT_FOUND,
                f"executable not found: {exc.filename or command[0]}",
            ) from exc
        except PermissionError as exc:
            raise ExternalProcessError(command, 126, f"permission denied: {exc}") from exc
        return CommandResult(command=tuple(command), cwd=cwd, returncode=completed.returncode)


def execute(
    command: Sequence[str],
    *,
    cwd: str | os.PathLike[str] | None = None,
    runner: CommandRunner | None = None,
) -> CommandResult:
    """Run ``command`` once; a non-zero exit raises ``ExternalProcessError``."""

    if not command:
        raise ValueError("command must not be empty")
    active_runner = runner if runner is not None else SubprocessCommandRunner()
    result = active_runner.run(tuple(command), cwd=Path(cwd) if cwd is not None else None)
    if result.returncode != 0:
        raise ExternalProcessError(result.command, result.returncode)
    return result


def run_external_process(
    registry: TaskRegistry,
    name: str,
    command: Sequence[str],
    *,
    cwd: str | os.PathLike[str] | None = None,
    depends_on: Sequence[str | Task] = (),
    runner: CommandRunner | None = None,
    description: str = "",
) -> Task:
    """Define a task that runs ``command`` and surfaces its exit code on failure."""

    frozen_command = tuple(str(part) for part in command)
    if not frozen_command:
        raise ValueError("command must not be empty")

    def action() -> None:
        execute(frozen_command, cwd=cwd, runner=runner)

    return registry.define_task(
        name,
        TaskKind.EXEC,
        action,
        depends_on=depends_on,
        description=description or " ".join(frozen_command),
    )


__all__ = [
    "EXIT_COMMAND_NOT_FOUND",
    "CommandResult",
    "CommandRunner",
    "SubprocessCommandRunner",
    "execute",
    "run_external_process",
]
