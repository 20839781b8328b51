"""
buildgate — runtime config loader.

Purpose
- Produce the effective build config from four layers: built-in defaults,
  ``buildgate.toml``, ``BUILDGATE_*`` environment variables and CLI ``--set`` overrides.

Functional requirements
- Later layers win: CLI > env > file > defaults.
- The file layer is validated on its own so a broken file is reported before any
  override could mask it.
- Environment variables are derived from the scalar fields of the schema; a list or
  unset field has no variable.
- Relative path fields resolve against the directory holding the config file.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from typing import Any, Final

from buildgate.config.schema import (
    PATH_FIELDS,
    assert_valid_config,
    default_config,
    merge_config,
)
from buildgate.constants import CONFIG_FILE_NAME
from buildgate.domain.errors import BuildConfigurationError

DEFAULT_CONFIG_FILE: Final[str] = CONFIG_FILE_NAME
ENV_PREFIX: Final[str] = "BUILDGATE_"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})


class ConfigLoadError(BuildConfigurationError, ValueError):
    """Raised when config cannot be loaded or overrides cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    root: str | Path | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load the effective config.

    Without an explicit ``config_path`` the file is looked up as ``buildgate.toml``
    in ``root`` (default: current directory) and may be absent.
    """

    if config_path is None:
        source = (Path.cwd() if root is None else Path(root).expanduser()) / DEFAULT_CONFIG_FILE
        source = source.resolve()
    else:
        source = Path(config_path).expanduser().resolve()

    from_file = assert_valid_config(
        merge_config(default_config(), _read_toml(source, required=config_path is not None))
    )
    env_layer = _env_layer(from_file, os.environ if environ is None else environ)
    cli_layer = _dotted_to_nested(cli_overrides or {})

    effective = assert_valid_config(merge_config(merge_config(from_file, env_layer), cli_layer))
    return assert_valid_config(normalize_paths(effective, base_dir=source.parent))


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Return a copy of ``config`` with every path field absolute under ``base_dir``."""

    result = merge_config({}, config)
    for field_path in PATH_FIELDS:
        parent: Any = result
        for part in field_path[:-1]:
            parent = parent.get(part) if isinstance(parent, dict) else None
        leaf = field_path[-1]
        if not isinstance(parent, dict):
            continue
        raw = parent.get(leaf)
        if isinstance(raw, str) and raw:
            parent[leaf] = _absolute_posix(raw, base_dir)
    return result


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Return deterministic JSON dump of the effective config."""

    return json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_layer(config: Mapping[str, object], environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, object] = {}
    for dotted, current in _scalar_fields(config):
        coerce = _coercer_for(current)
        if coerce is None:
            continue
        env_name = ENV_PREFIX + dotted.replace(".", "_").upper()
        raw = environ.get(env_name)
        if raw is not None:
            overrides[dotted] = coerce(raw.strip(), f"{env_name} -> {dotted}")
    return _dotted_to_nested(overrides)


def _scalar_fields(
    payload: Mapping[str, object], prefix: str = ""
) -> Iterator[tuple[str, object]]:
    for key in sorted(payload):
        value = payload[key]
        dotted = f"{prefix}{key}"
        if isinstance(value, Mapping):
            yield from _scalar_fields(value, f"{dotted}.")
        else:
            yield dotted, value


def _coercer_for(value: object) -> Callable[[str, str], object] | None:
    # bool first: it is also an int
    if isinstance(value, bool):
        return _to_bool
    if isinstance(value, int):
        return _to_int
    if isinstance(value, str):
        return lambda raw, _label: raw
    return None


def _to_int(raw: str, label: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigLoadError(f"{label} must be an integer, got {raw!r}") from exc


def _to_bool(raw: str, label: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ConfigLoadError(f"{label} must be a boolean (true/false/1/0/yes/no/on/off)")


def _dotted_to_nested(flat: Mapping[str, object]) -> dict[str, Any]:
    nested: dict[str, Any] = {}
    for key in sorted(flat):
        parts = [part for part in key.split(".") if part]
        if not parts:
            raise ConfigLoadError(f"invalid override key {key!r}")
        node = nested
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[parts[-1]] = flat[key]
    return nested


def _absolute_posix(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "load_config",
    "normalize_paths",
]
