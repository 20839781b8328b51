"""Executable CLI entrypoint for ``buildgate``."""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

from buildgate.domain.errors import (
    BuildConfigurationError,
    ExternalProcessError,
    ToolIntegrityError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class ExitCode(IntEnum):
    """Deterministic process exit-code contract.

    External tool failures are not listed: they exit with the tool's own code.
    """

    SUCCESS = 0
    CONFIG_ERROR = 2
    TOOL_ERROR = 3
    INTERNAL_ERROR = 4
    INTERRUPTED = 130


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m buildgate`` and tests."""

    try:
        from buildgate.ui.cli import run_cli

        return _normalize_exit_code(run_cli(argv))
    except SystemExit as exc:
        return _normalize_exit_code(exc.code)
    except BaseException as exc:  # noqa: BLE001 - CLI boundary normalization.
        exit_code = route_exception(exc)
        _emit_failure(exc, exit_code)
        return exit_code


def console_entrypoint() -> None:
    """Console-script entrypoint."""

    raise SystemExit(cli_entrypoint())


def route_exception(exc: BaseException) -> int:
    """Map an exception (or anything in its cause chain) to a process exit code."""

    for item in _iter_exception_chain(exc):
        if isinstance(item, KeyboardInterrupt):
            return int(ExitCode.INTERRUPTED)
        if isinstance(item, BuildConfigurationError):
            return int(ExitCode.CONFIG_ERROR)
        if isinstance(item, ToolIntegrityError):
            return int(ExitCode.TOOL_ERROR)
        if isinstance(item, ExternalProcessError):
            return item.exit_code if 0 < item.exit_code < 256 else int(ExitCode.INTERNAL_ERROR)
    return int(ExitCode.INTERNAL_ERROR)


def _normalize_exit_code(raw_code: object) -> int:
    if isinstance(raw_code, int) and 0 <= raw_code < 256:
        return raw_code
    if raw_code is None:
        return int(ExitCode.SUCCESS)
    if isinstance(raw_code, str) and raw_code.strip():
        _write_stderr(raw_code.strip())
    return int(ExitCode.INTERNAL_ERROR)


def _iter_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    # explicit causes first, then implicit context unless suppressed; stop on loops
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None or current.__suppress_context__:
            current = current.__cause__
        else:
            current = current.__context__


def _emit_failure(exc: BaseException, exit_code: int) -> None:
    if exit_code == ExitCode.INTERNAL_ERROR:
        traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
        return
    _write_stderr(f"error: {str(exc).strip() or exc.__class__.__name__}")


def _write_stderr(message: str) -> None:
    sys.stderr.write(message.rstrip("\n") + "\n")


__all__ = ["ExitCode", "cli_entrypoint", "console_entrypoint", "route_exception"]
