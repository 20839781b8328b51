"""Immutable build settings constructed once and passed into every component."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from buildgate.config.loader import load_config


@dataclass(frozen=True, slots=True)
class PropertyKeys:
    """Names of the module properties the dispatcher reads."""

    packaging: str
    group: str
    version: str
    artifact_id: str
    jdk_build: str
    jdk_bytecode_target: str
    android_sdk_compile: str
    android_sdk_target: str
    android_sdk_minimum: str


@dataclass(frozen=True, slots=True)
class KtlintSettings:
    version: str
    sha256: str
    url: str
    jar: Path
    patterns: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ObservabilitySettings:
    log_level: str
    log_dir: Path
    log_to_stderr: bool
    redact_secrets: bool


@dataclass(frozen=True, slots=True)
class BuildSettings:
    """Validated, path-resolved view of ``buildgate.toml`` for one build root."""

    root: Path
    modules: tuple[str, ...]
    required_version: str | None
    max_workers: int
    build_dir: Path
    diagnostics_dir: Path
    tool_dir: Path
    allowlist_path: Path | None
    property_keys: PropertyKeys
    ktlint: KtlintSettings
    observability: ObservabilitySettings

    @classmethod
    def from_config(cls, config: Mapping[str, Any], root: str | Path) -> BuildSettings:
        build = config["build"]
        paths = config["paths"]
        ktlint = config["ktlint"]
        observability = config["observability"]
        tool_dir = Path(paths["tool_dir"])
        allowlist = config["policy"]["allowlist_path"]
        return cls(
            root=Path(root).resolve(),
            modules=tuple(build["modules"]),
            required_version=build["required_version"] or None,
            max_workers=build["max_workers"],
            build_dir=Path(paths["build_dir"]),
            diagnostics_dir=Path(paths["diagnostics_dir"]),
            tool_dir=tool_dir,
            allowlist_path=Path(allowlist) if allowlist else None,
            property_keys=PropertyKeys(**config["properties"]),
            ktlint=KtlintSettings(
                version=ktlint["version"],
                sha256=ktlint["sha256"],
                url=ktlint["url"].replace("{version}", ktlint["version"]),
                jar=tool_dir / ktlint["jar"],
                patterns=tuple(ktlint["patterns"]),
            ),
            observability=ObservabilitySettings(
                log_level=observability["log_level"],
                log_dir=Path(observability["log_dir"]),
                log_to_stderr=observability["log_to_stderr"],
                redact_secrets=observability["redact_secrets"],
            ),
        )

    @classmethod
    def load(
        cls,
        root: str | Path,
        *,
        config_path: str | Path | None = None,
        cli_overrides: Mapping[str, object] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> BuildSettings:
        """Load ``buildgate.toml`` (optional) from ``root`` and build settings."""

        config = load_config(
            config_path,
            root=root,
            cli_overrides=cli_overrides,
            environ=environ,
        )
        return cls.from_config(config, root)


__all__ = ["BuildSettings", "KtlintSettings", "ObservabilitySettings", "PropertyKeys"]
