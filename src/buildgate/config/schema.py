"""
buildgate — configuration schema and validation.

Purpose
- Define the ``buildgate.toml`` defaults and the strict rules every effective config obeys.

Functional requirements
- Every section and field is declared in one table; unknown or missing fields are issues.
- Validation collects all issues (dotted field path + message) before failing.
- A ``meta.schema_version`` other than the supported one is rejected with upgrade guidance.
- Validation returns a normalized copy (stripped strings, upper-case log level,
  lower-case digest).
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from buildgate.constants import (
    BUILD_DIR,
    CONFIG_SCHEMA_VERSION,
    DIAGNOSTICS_DIR,
    KTLINT_JAR_NAME,
    KTLINT_PATTERNS,
    KTLINT_SHA256,
    KTLINT_URL_TEMPLATE,
    KTLINT_VERSION,
    LOG_DIR,
    PROPERTY_ANDROID_SDK_COMPILE,
    PROPERTY_ANDROID_SDK_MINIMUM,
    PROPERTY_ANDROID_SDK_TARGET,
    PROPERTY_ARTIFACT_ID,
    PROPERTY_GROUP,
    PROPERTY_JDK_BUILD,
    PROPERTY_JDK_BYTECODE_TARGET,
    PROPERTY_PACKAGING,
    PROPERTY_VERSION,
)
from buildgate.domain.errors import BuildConfigurationError

SCHEMA_VERSION: Final[int] = CONFIG_SCHEMA_VERSION
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

# Relative values in these fields resolve against the config file's directory.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("paths", "build_dir"),
    ("paths", "diagnostics_dir"),
    ("paths", "tool_dir"),
    ("policy", "allowlist_path"),
    ("observability", "log_dir"),
)

PROPERTY_KEY_FIELDS: Final[tuple[str, ...]] = (
    "packaging",
    "group",
    "version",
    "artifact_id",
    "jdk_build",
    "jdk_bytecode_target",
    "android_sdk_compile",
    "android_sdk_target",
    "android_sdk_minimum",
)


class MetaConfig(TypedDict):
    schema_version: int


class BuildSection(TypedDict):
    modules: list[str]
    required_version: str
    max_workers: int


class PathsConfig(TypedDict):
    build_dir: str
    diagnostics_dir: str
    tool_dir: str


class PropertyKeysConfig(TypedDict):
    packaging: str
    group: str
    version: str
    artifact_id: str
    jdk_build: str
    jdk_bytecode_target: str
    android_sdk_compile: str
    android_sdk_target: str
    android_sdk_minimum: str


class PolicyConfig(TypedDict):
    allowlist_path: str


class KtlintConfig(TypedDict):
    version: str
    sha256: str
    url: str
    jar: str
    patterns: list[str]


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_dir: str
    log_to_stderr: bool
    redact_secrets: bool


class BuildgateConfig(TypedDict):
    meta: MetaConfig
    build: BuildSection
    paths: PathsConfig
    properties: PropertyKeysConfig
    policy: PolicyConfig
    ktlint: KtlintConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[BuildgateConfig] = {
    "meta": {
        "schema_version": SCHEMA_VERSION,
    },
    "build": {
        "modules": [],
        # empty: any buildgate version may drive the build
        "required_version": "",
        "max_workers": 4,
    },
    "paths": {
        "build_dir": str(BUILD_DIR),
        "diagnostics_dir": str(DIAGNOSTICS_DIR),
        "tool_dir": ".",
    },
    "properties": {
        "packaging": PROPERTY_PACKAGING,
        "group": PROPERTY_GROUP,
        "version": PROPERTY_VERSION,
        "artifact_id": PROPERTY_ARTIFACT_ID,
        "jdk_build": PROPERTY_JDK_BUILD,
        "jdk_bytecode_target": PROPERTY_JDK_BYTECODE_TARGET,
        "android_sdk_compile": PROPERTY_ANDROID_SDK_COMPILE,
        "android_sdk_target": PROPERTY_ANDROID_SDK_TARGET,
        "android_sdk_minimum": PROPERTY_ANDROID_SDK_MINIMUM,
    },
    "policy": {
        # empty: use the allow-list bundled with buildgate
        "allowlist_path": "",
    },
    "ktlint": {
        "version": KTLINT_VERSION,
        "sha256": KTLINT_SHA256,
        "url": KTLINT_URL_TEMPLATE,
        "jar": KTLINT_JAR_NAME,
        "patterns": list(KTLINT_PATTERNS),
    },
    "observability": {
        "log_level": "INFO",
        "log_dir": str(LOG_DIR),
        "log_to_stderr": False,
        "redact_secrets": True,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Normalized config, or ``None`` together with the issues that prevented it."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None


class ConfigValidationError(BuildConfigurationError, ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        lines = [f"- {issue.path}: {issue.message}" for issue in self.issues]
        super().__init__("invalid config:\n" + ("\n".join(lines) or "- <unknown>"))


# ---------------------------------------------------------------------------
# Field checks: return the normalized value, or ``_REJECTED`` after recording an issue.
# ---------------------------------------------------------------------------

_REJECTED: Final = object()

Issues = list[ConfigValidationIssue]
FieldCheck = Callable[[object, str, Issues], object]


def _text(*, allow_empty: bool = False, transform: Callable[[str], str] = str) -> FieldCheck:
    def check(value: object, path: str, issues: Issues) -> object:
        if not isinstance(value, str):
            return _reject(issues, path, f"expected string, got {type(value).__name__}")
        stripped = value.strip()
        if not stripped and not allow_empty:
            return _reject(issues, path, "must not be empty")
        if "\x00" in stripped:
            return _reject(issues, path, "must not contain NUL bytes")
        return transform(stripped)

    return check


def _integer(*, minimum: int) -> FieldCheck:
    def check(value: object, path: str, issues: Issues) -> object:
        if isinstance(value, bool) or not isinstance(value, int):
            return _reject(issues, path, f"expected integer, got {type(value).__name__}")
        if value < minimum:
            return _reject(issues, path, f"must be >= {minimum}")
        return value

    return check


def _boolean(value: object, path: str, issues: Issues) -> object:
    if isinstance(value, bool):
        return value
    return _reject(issues, path, f"expected boolean, got {type(value).__name__}")


def _text_list(*, unique: bool = False, non_empty: bool = False) -> FieldCheck:
    item_check = _text()

    def check(value: object, path: str, issues: Issues) -> object:
        if not isinstance(value, (list, tuple)):
            return _reject(issues, path, f"expected list of strings, got {type(value).__name__}")
        items = [item_check(item, f"{path}[{index}]", issues) for index, item in enumerate(value)]
        kept = [item for item in items if item is not _REJECTED]
        if non_empty and not kept:
            return _reject(issues, path, "must list at least one entry")
        if unique and len(set(kept)) != len(kept):
            return _reject(issues, path, "entries must be unique")
        return kept

    return check


def _schema_version(value: object, path: str, issues: Issues) -> object:
    version = _integer(minimum=1)(value, path, issues)
    if isinstance(version, int) and version != SCHEMA_VERSION:
        return _reject(issues, path, migration_guidance(version))
    return version


def _https_url(value: object, path: str, issues: Issues) -> object:
    url = _text()(value, path, issues)
    if isinstance(url, str) and not url.startswith("https://"):
        return _reject(issues, path, "must be an https:// URL")
    return url


_SHA256_HEX = re.compile(r"[0-9a-fA-F]{64}")


def _sha256(value: object, path: str, issues: Issues) -> object:
    digest = _text()(value, path, issues)
    if isinstance(digest, str) and not _SHA256_HEX.fullmatch(digest):
        return _reject(issues, path, "must be a 64-character SHA-256 hex digest")
    return digest.lower() if isinstance(digest, str) else digest


def _log_level(value: object, path: str, issues: Issues) -> object:
    level = _text(transform=str.upper)(value, path, issues)
    if isinstance(level, str) and level not in LOG_LEVELS:
        return _reject(
            issues, path, f"invalid value {value!r}; expected one of: {', '.join(LOG_LEVELS)}"
        )
    return level


SECTIONS: Final[dict[str, dict[str, FieldCheck]]] = {
    "meta": {"schema_version": _schema_version},
    "build": {
        "modules": _text_list(unique=True),
        "required_version": _text(allow_empty=True),
        "max_workers": _integer(minimum=1),
    },
    "paths": {key: _text() for key in ("build_dir", "diagnostics_dir", "tool_dir")},
    "properties": {key: _text() for key in PROPERTY_KEY_FIELDS},
    "policy": {"allowlist_path": _text(allow_empty=True)},
    "ktlint": {
        "version": _text(),
        "sha256": _sha256,
        "url": _https_url,
        "jar": _text(),
        "patterns": _text_list(non_empty=True),
    },
    "observability": {
        "log_level": _log_level,
        "log_dir": _text(),
        "log_to_stderr": _boolean,
        "redact_secrets": _boolean,
    },
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def default_config() -> BuildgateConfig:
    """Return a fresh copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    if found_version < SCHEMA_VERSION:
        return (
            f"schema version {found_version} is older than supported {SCHEMA_VERSION}; "
            "upgrade buildgate.toml to the current schema"
        )
    if found_version > SCHEMA_VERSION:
        return (
            f"schema version {found_version} is newer than supported {SCHEMA_VERSION}; "
            "upgrade the buildgate runtime"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``; only nested tables merge."""

    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key in sorted(overlay):
        value = overlay[key]
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_config(current, value)
        elif isinstance(value, Mapping):
            merged[key] = merge_config({}, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: object) -> ConfigValidationResult:
    issues: Issues = []
    if not isinstance(config, Mapping):
        _reject(issues, "<root>", f"expected object, got {type(config).__name__}")
        return ConfigValidationResult(config=None, issues=tuple(issues))

    normalized = _check_table(config, {name: _check_section for name in SECTIONS}, "", issues)
    if issues:
        return ConfigValidationResult(config=None, issues=tuple(issues))
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: object) -> dict[str, Any]:
    """Return the normalized config or raise ``ConfigValidationError``."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _check_section(value: object, path: str, issues: Issues) -> object:
    if not isinstance(value, Mapping):
        return _reject(issues, path, f"expected object, got {type(value).__name__}")
    return _check_table(value, SECTIONS[path], path, issues)


def _check_table(
    payload: Mapping[Any, object],
    checks: Mapping[str, FieldCheck],
    path: str,
    issues: Issues,
) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in sorted(payload, key=str):
        if key not in checks:
            _reject(issues, _join(path, str(key)), "unknown field")
    for key, check in checks.items():
        field_path = _join(path, key)
        if key not in payload:
            _reject(issues, field_path, "missing required field")
            continue
        value = check(payload[key], field_path, issues)
        if value is not _REJECTED:
            out[key] = value
    return out


def _reject(issues: Issues, path: str, message: str) -> object:
    issues.append(ConfigValidationIssue(path=path, message=message))
    return _REJECTED


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


__all__ = [
    "BuildgateConfig",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "LOG_LEVELS",
    "PATH_FIELDS",
    "PROPERTY_KEY_FIELDS",
    "SCHEMA_VERSION",
    "SECTIONS",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
