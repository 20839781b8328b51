"""Unit tests for exit-code routing at the CLI boundary."""

from __future__ import annotations

from pathlib import Path

import pytest

from buildgate.domain.errors import (
    ChecksumMismatchError,
    DownloadError,
    ExternalProcessError,
    MissingPropertyError,
    UnknownPackagingKindError,
)
from buildgate.main import ExitCode, cli_entrypoint, route_exception

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (MissingPropertyError("core", "GROUP"), ExitCode.CONFIG_ERROR),
        (UnknownPackagingKindError("core", "war", ("jar",)), ExitCode.CONFIG_ERROR),
        (DownloadError("https://example.invalid/a.jar", "HTTP 404"), ExitCode.TOOL_ERROR),
        (
            ChecksumMismatchError(Path("a.jar"), "SHA-256", "0" * 64, "1" * 64),
            ExitCode.TOOL_ERROR,
        ),
        (KeyboardInterrupt(), ExitCode.INTERRUPTED),
        (RuntimeError("boom"), ExitCode.INTERNAL_ERROR),
    ],
)
def test_route_exception(exc: BaseException, expected: ExitCode) -> None:
    assert route_exception(exc) == int(expected)


def test_external_process_exit_code_passes_through() -> None:
    assert route_exception(ExternalProcessError(("java", "-jar", "ktlint.jar"), 1)) == 1
    assert route_exception(ExternalProcessError(("ktlint",), 127)) == 127
    assert route_exception(ExternalProcessError(("ktlint",), -9)) == int(ExitCode.INTERNAL_ERROR)


def test_route_exception_follows_cause_chain() -> None:
    try:
        try:
            raise MissingPropertyError("core", "VERSION_NAME")
        except MissingPropertyError as inner:
            raise RuntimeError("configuration failed") from inner
    except RuntimeError as outer:
        assert route_exception(outer) == int(ExitCode.CONFIG_ERROR)


def test_cli_entrypoint_usage_error_is_exit_code_2(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_entrypoint(["no-such-command"]) == 2
    assert "invalid choice" in capsys.readouterr().err


def test_cli_entrypoint_help_is_success(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_entrypoint(["--help"]) == 0
    assert "buildgate" in capsys.readouterr().out
