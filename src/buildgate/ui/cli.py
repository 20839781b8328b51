"""Command-line interface router for buildgate."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from buildgate.config import (
    BuildSettings,
    ConfigLoadError,
    ConfigValidationError,
    load_config,
)
from buildgate.control_plane import BuildController, BuildReport
from buildgate.domain.models import Module
from buildgate.observability import new_run_id, setup_logging, shutdown_logging
from buildgate.tasks.registry import TaskOutcome
from buildgate.tooling.ktlint import CHECK_TASK, FORMAT_TASK, VERIFY_TASK
from buildgate.ui.render import CLIRenderer, create_renderer


@dataclass(eq=False)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="buildgate",
        description=(
            "buildgate — multi-module build configuration layer.\n\n"
            "Common workflows:\n"
            "  buildgate configure         Configure every module and apply the scope policy\n"
            "  buildgate scopes            List resolution scopes and their transitive flag\n"
            "  buildgate check             Run ktlint over the build (provisions it first)\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--root",
        default=".",
        help="Build root directory (default: current working directory).",
    )
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to buildgate TOML config (default: <root>/buildgate.toml if present).",
    )
    common.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a config value by dotted key, e.g. build.max_workers=2.",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Show detailed output.",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # configure -----------------------------------------------------------
    configure_parser = subparsers.add_parser(
        "configure",
        parents=[common],
        help="Configure every module and apply the transitive resolution policy",
        description=(
            "Classify each module by POM_PACKAGING, apply its toolchain configuration, and\n"
            "deny transitive resolution for every scope not on the allow-list.\n\n"
            "Examples:\n"
            "  buildgate configure\n"
            "  buildgate configure --json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    configure_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    configure_parser.set_defaults(handler=_cmd_configure)

    # scopes --------------------------------------------------------------
    scopes_parser = subparsers.add_parser(
        "scopes",
        parents=[common],
        help="List every module's resolution scopes with their transitive flag",
        description=(
            "Configure the build, then list the resolution scopes of each module.\n\n"
            "Examples:\n"
            "  buildgate scopes\n"
            "  buildgate scopes --module core --json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    scopes_parser.add_argument(
        "--module",
        dest="module_name",
        default=None,
        help="Only list scopes of this module (root is ':').",
    )
    scopes_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    scopes_parser.set_defaults(handler=_cmd_scopes)

    # provision -----------------------------------------------------------
    provision_parser = subparsers.add_parser(
        "provision",
        parents=[common],
        help="Download and verify the pinned ktlint artifact",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    provision_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    provision_parser.set_defaults(handler=_cmd_provision, target=VERIFY_TASK)

    # check / format ------------------------------------------------------
    check_parser = subparsers.add_parser(
        "check",
        parents=[common],
        help="Check Kotlin sources with ktlint",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    check_parser.set_defaults(handler=_cmd_lint, target=CHECK_TASK)

    format_parser = subparsers.add_parser(
        "format",
        parents=[common],
        help="Reformat Kotlin sources with ktlint",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    format_parser.set_defaults(handler=_cmd_lint, target=FORMAT_TASK)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show effective configuration",
        description=(
            "Display the effective config after merging defaults, file, env, and --set.\n\n"
            "Examples:\n"
            "  buildgate config\n"
            "  buildgate config --json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    config_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    config_parser.set_defaults(handler=_cmd_config)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_configure(args: argparse.Namespace) -> int:
    settings = _load_settings(args)
    with _logging_session(settings):
        report = BuildController(settings).configure_all()

    if _flag(args, "json"):
        _emit_json({"command": "configure", **report.to_dict()})
        return 0

    renderer = _get_renderer(args)
    _render_report(renderer, report)
    return 0


def _cmd_scopes(args: argparse.Namespace) -> int:
    settings = _load_settings(args)
    with _logging_session(settings):
        controller = BuildController(settings)
        modules = controller.discover_modules()
        selected = _select_module(modules, getattr(args, "module_name", None))
        controller.configure_all(modules)

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "scopes",
                "modules": [
                    {"name": module.name, "scopes": module.scopes.to_dict()} for module in selected
                ],
            }
        )
        return 0

    renderer = _get_renderer(args)
    for module in selected:
        rows = [
            (scope.name, "transitive" if scope.transitive else "direct only")
            for scope in module.scopes
        ]
        renderer.table(("Scope", "Resolution"), rows, title=f"{module.name} ({len(rows)} scopes)")
    return 0


def _cmd_provision(args: argparse.Namespace) -> int:
    settings = _load_settings(args)
    with _logging_session(settings):
        outcomes = BuildController(settings).root_tasks().run_in_order(VERIFY_TASK)

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "provision",
                "artifact": settings.ktlint.jar.as_posix(),
                "tasks": [outcome.to_dict() for outcome in outcomes],
            }
        )
        return 0

    renderer = _get_renderer(args)
    _render_outcomes(renderer, outcomes)
    renderer.kv("ktlint", settings.ktlint.jar.as_posix())
    return 0


def _cmd_lint(args: argparse.Namespace) -> int:
    settings = _load_settings(args)
    target = str(args.target)
    with _logging_session(settings):
        outcomes = BuildController(settings).root_tasks().run_in_order(target)

    if _flag(args, "verbose"):
        _render_outcomes(_get_renderer(args), outcomes)
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    root = _build_root(args)
    try:
        config = load_config(
            getattr(args, "config_path", None),
            root=root,
            cli_overrides=_parse_overrides(getattr(args, "overrides", [])),
        )
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc

    if _flag(args, "json"):
        _emit_json({"command": "config", "config": config})
        return 0

    renderer = _get_renderer(args)
    renderer.kv("Build root", root.as_posix())
    renderer.text(json.dumps(config, indent=2, sort_keys=True, ensure_ascii=False))
    return 0


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=_flag(args, "no_color"), verbose=_flag(args, "verbose"))


def _render_report(renderer: CLIRenderer, report: BuildReport) -> None:
    rows = [
        (
            module.name,
            module.toolchain.kind.value,
            f"{module.group}:{module.version}",
            str(len(module.policy.allowed)),
            str(len(module.policy.denied)),
        )
        for module in report.modules
    ]
    renderer.table(
        ("Module", "Kind", "Coordinates", "Transitive", "Direct only"),
        rows,
        title=f"Configured {len(rows)} module(s) under {report.root.as_posix()}",
    )
    if renderer.verbose:
        for module in report.modules:
            if module.toolchain.plugins:
                renderer.section(f"{module.name} plugins:")
                renderer.items(module.toolchain.plugins)


def _render_outcomes(renderer: CLIRenderer, outcomes: Sequence[TaskOutcome]) -> None:
    for outcome in outcomes:
        renderer.ok(f"{outcome.name} ({outcome.status.value})")


# ---------------------------------------------------------------------------
# Helpers — config, paths, logging
# ---------------------------------------------------------------------------


def _build_root(args: argparse.Namespace) -> Path:
    candidate = Path(str(getattr(args, "root", "."))).expanduser().resolve()
    if not candidate.is_dir():
        raise CLIError(f"build root is not a directory: {candidate}", exit_code=2)
    return candidate


def _load_settings(args: argparse.Namespace) -> BuildSettings:
    root = _build_root(args)
    try:
        return BuildSettings.load(
            root,
            config_path=getattr(args, "config_path", None),
            cli_overrides=_parse_overrides(getattr(args, "overrides", [])),
        )
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _parse_overrides(raw_items: Sequence[str]) -> dict[str, object]:
    overrides: dict[str, object] = {}
    for item in raw_items:
        key, separator, value = item.partition("=")
        if not separator or not key.strip():
            raise CLIError(f"--set expects KEY=VALUE, got {item!r}", exit_code=2)
        overrides[key.strip()] = _coerce_override(value.strip())
    return overrides


def _coerce_override(value: str) -> object:
    if value in {"true", "false"}:
        return value == "true"
    try:
        return int(value)
    except ValueError:
        return value


def _select_module(modules: Sequence[Module], name: str | None) -> tuple[Module, ...]:
    if name is None:
        return tuple(modules)
    for module in modules:
        if module.name == name:
            return (module,)
    known = ", ".join(module.name for module in modules)
    raise CLIError(f"unknown module {name!r}; known modules: {known}", exit_code=2)


@contextmanager
def _logging_session(settings: BuildSettings) -> Iterator[None]:
    observability = settings.observability
    handle = setup_logging(
        {
            "log_level": observability.log_level,
            "log_to_stderr": observability.log_to_stderr,
            "redact_secrets": observability.redact_secrets,
        },
        run_id=new_run_id(),
        log_dir=observability.log_dir,
    )
    try:
        yield
    finally:
        shutdown_logging(handle)


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "build_parser", "run_cli"]
