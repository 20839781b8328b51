"""Versioned allow-list of resolution scopes permitted to resolve transitively.

The bundled ``transitive_scopes.yaml`` pins the scope names to the toolchain
versions they were authored for. Membership is exact and case-sensitive.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Final, cast

import yaml

from buildgate.constants import ALLOWLIST_SCHEMA_VERSION
from buildgate.domain.errors import AllowListError

BUNDLED_ALLOWLIST_PATH: Final[Path] = Path(__file__).resolve().with_name(
    "transitive_scopes.yaml"
)

_REQUIRED_FIELDS: Final[frozenset[str]] = frozenset(
    {"schema_version", "toolchain", "transitive_scopes"}
)


@dataclass(frozen=True, slots=True)
class AllowList:
    names: frozenset[str]
    toolchain: Mapping[str, str] = field(default_factory=dict)
    source: Path | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "names", frozenset(self.names))
        object.__setattr__(self, "toolchain", MappingProxyType(dict(self.toolchain)))

    @classmethod
    def of(cls, names: Iterable[str]) -> AllowList:
        return cls(names=frozenset(names))

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.names))

    def __len__(self) -> int:
        return len(self.names)

    def allows(self, name: str) -> bool:
        return name in self.names

    def to_dict(self) -> dict[str, object]:
        return {
            "source": self.source.as_posix() if self.source is not None else None,
            "toolchain": dict(self.toolchain),
            "transitive_scopes": sorted(self.names),
        }


def load_allow_list(path: str | Path | None = None) -> AllowList:
    """Load and validate an allow-list file; ``None`` selects the bundled list."""

    source = BUNDLED_ALLOWLIST_PATH if path is None else Path(path)
    try:
        with source.open("r", encoding="utf-8") as handle:
            loaded = cast("object", yaml.safe_load(handle))
    except OSError as exc:
        raise AllowListError(f"{source}: unable to read allow-list ({exc})") from exc
    except yaml.YAMLError as exc:
        raise AllowListError(f"{source}: invalid YAML ({exc})") from exc

    return parse_allow_list(loaded, source=source)


def parse_allow_list(payload: object, *, source: Path | None = None) -> AllowList:
    location = str(source) if source is not None else "<allow-list>"
    if not isinstance(payload, Mapping):
        raise AllowListError(
            f"{location}: expected top-level YAML mapping, got {type(payload).__name__}"
        )

    keys = {str(key) for key in payload}
    missing = sorted(_REQUIRED_FIELDS - keys)
    if missing:
        raise AllowListError(f"{location}: missing required fields: {missing}")
    unknown = sorted(keys - _REQUIRED_FIELDS)
    if unknown:
        raise AllowListError(f"{location}: unexpected fields: {unknown}")

    version = payload["schema_version"]
    if isinstance(version, bool) or version != ALLOWLIST_SCHEMA_VERSION:
        raise AllowListError(
            f"{location}.schema_version: expected {ALLOWLIST_SCHEMA_VERSION}, got {version!r}"
        )

    return AllowList(
        names=_parse_names(payload["transitive_scopes"], f"{location}.transitive_scopes"),
        toolchain=_parse_toolchain(payload["toolchain"], f"{location}.toolchain"),
        source=source,
    )


def _parse_toolchain(value: object, location: str) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise AllowListError(f"{location}: expected mapping of tool name to version")
    toolchain: dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(key, str) or not isinstance(item, str) or not item.strip():
            raise AllowListError(f"{location}.{key}: expected non-empty version string")
        toolchain[key] = item.strip()
    return toolchain


def _parse_names(value: object, location: str) -> frozenset[str]:
    if not isinstance(value, list):
        raise AllowListError(f"{location}: expected a sequence of scope names")
    seen: set[str] = set()
    for index, item in enumerate(value):
        if not isinstance(item, str) or not item.strip() or item != item.strip():
            raise AllowListError(f"{location}[{index}]: expected a non-empty scope name")
        if item in seen:
            raise AllowListError(f"{location}[{index}]: duplicate scope name {item!r}")
        seen.add(item)
    return frozenset(seen)


__all__ = ["BUNDLED_ALLOWLIST_PATH", "AllowList", "load_allow_list", "parse_allow_list"]
