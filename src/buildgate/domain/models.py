"""Dataclass domain models for modules, resolution scopes, and toolchain configuration."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from types import MappingProxyType
from typing import Final

from buildgate.constants import ROOT_MODULE_NAME, ROOT_MODULE_SLUG
from buildgate.domain.errors import ModuleFrozenError, UnknownPackagingKindError

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

# Toolchains resolve every scope transitively unless told otherwise.
_TOOLCHAIN_DEFAULT_TRANSITIVE: Final[bool] = True


class PackagingKind(StrEnum):
    POM = "pom"
    APK = "apk"
    AAR = "aar"
    JAR = "jar"

    @classmethod
    def parse(cls, value: str, *, module: str) -> PackagingKind:
        """Exact, case-sensitive classification of a declared packaging kind."""

        try:
            return cls(value)
        except ValueError:
            raise UnknownPackagingKindError(
                module, value, tuple(member.value for member in cls)
            ) from None


@dataclass(frozen=True, slots=True)
class ResolutionScope:
    """Named dependency bucket with its policy-controlled transitive flag."""

    name: str
    transitive: bool = _TOOLCHAIN_DEFAULT_TRANSITIVE

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("ResolutionScope.name must be a non-empty string")


class ScopeRegistry:
    """Append-only, insertion-ordered mapping of scope name to policy record.

    The set is open-ended: plugins add scopes while they configure a module, so
    readers must enumerate the registry at the moment they need it.
    """

    __slots__ = ("_owner", "_scopes", "_frozen")

    def __init__(self, owner: str = ROOT_MODULE_NAME) -> None:
        self._owner = owner
        self._scopes: dict[str, ResolutionScope] = {}
        self._frozen = False

    def __len__(self) -> int:
        return len(self._scopes)

    def __contains__(self, name: object) -> bool:
        return name in self._scopes

    def __iter__(self) -> Iterator[ResolutionScope]:
        return iter(tuple(self._scopes.values()))

    def __getitem__(self, name: str) -> ResolutionScope:
        return self._scopes[name]

    def names(self) -> tuple[str, ...]:
        return tuple(self._scopes)

    def register(self, name: str) -> ResolutionScope:
        """Register ``name`` if new; re-registration returns the existing record."""

        existing = self._scopes.get(name)
        if existing is not None:
            return existing
        self._assert_mutable()
        scope = ResolutionScope(name=name)
        self._scopes[name] = scope
        return scope

    def set_transitive(self, name: str, transitive: bool) -> ResolutionScope:
        current = self._scopes[name]
        if current.transitive is transitive:
            return current
        self._assert_mutable()
        updated = dataclasses.replace(current, transitive=transitive)
        self._scopes[name] = updated
        return updated

    def freeze(self) -> None:
        self._frozen = True

    def to_dict(self) -> dict[str, JSONValue]:
        return {scope.name: scope.transitive for scope in self._scopes.values()}

    def _assert_mutable(self) -> None:
        if self._frozen:
            raise ModuleFrozenError(self._owner)


@dataclass(frozen=True, slots=True)
class AndroidConfiguration:
    """Android toolchain settings for application and library modules."""

    namespace: str
    compile_sdk: int
    min_sdk: int
    target_sdk: int | None
    multidex_enabled: bool
    test_instrumentation_runner: str
    encoding: str
    source_compatibility: str
    target_compatibility: str
    test_execution: str | None = None
    animations_disabled: bool = False
    include_android_resources: bool = False

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "namespace": self.namespace,
            "compile_sdk": self.compile_sdk,
            "min_sdk": self.min_sdk,
            "target_sdk": self.target_sdk,
            "multidex_enabled": self.multidex_enabled,
            "test_instrumentation_runner": self.test_instrumentation_runner,
            "encoding": self.encoding,
            "source_compatibility": self.source_compatibility,
            "target_compatibility": self.target_compatibility,
            "test_execution": self.test_execution,
            "animations_disabled": self.animations_disabled,
            "include_android_resources": self.include_android_resources,
        }


@dataclass(frozen=True, slots=True)
class TestConfiguration:
    """Unit test task settings."""

    __test__ = False

    use_junit_platform: bool
    system_properties: Mapping[str, str]
    html_report: bool
    junit_xml_report: bool
    logged_events: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "system_properties",
            MappingProxyType(dict(sorted(self.system_properties.items()))),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "use_junit_platform": self.use_junit_platform,
            "system_properties": dict(self.system_properties),
            "html_report": self.html_report,
            "junit_xml_report": self.junit_xml_report,
            "logged_events": list(self.logged_events),
        }


@dataclass(frozen=True, slots=True)
class ToolchainConfiguration:
    """Final, comparable configuration produced for one module."""

    kind: PackagingKind
    plugins: tuple[str, ...] = ()
    jvm_toolchain: int | None = None
    kotlin_jvm_target: str | None = None
    source_compatibility: str | None = None
    target_compatibility: str | None = None
    android: AndroidConfiguration | None = None
    tests: TestConfiguration | None = None

    @property
    def is_built(self) -> bool:
        return self.kind is not PackagingKind.POM

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "kind": self.kind.value,
            "plugins": list(self.plugins),
            "jvm_toolchain": self.jvm_toolchain,
            "kotlin_jvm_target": self.kotlin_jvm_target,
            "source_compatibility": self.source_compatibility,
            "target_compatibility": self.target_compatibility,
            "android": self.android.to_dict() if self.android is not None else None,
            "tests": self.tests.to_dict() if self.tests is not None else None,
        }


@dataclass(slots=True, eq=False)
class Module:
    """Named configuration unit: identity, declared properties, and resolution scopes."""

    name: str
    path: Path
    properties: Mapping[str, str] = field(default_factory=dict)
    group: str | None = None
    version: str | None = None
    packaging_kind: PackagingKind | None = None
    toolchain: ToolchainConfiguration | None = None
    scopes: ScopeRegistry = field(init=False)
    _plugins: dict[str, None] = field(init=False, default_factory=dict, repr=False)
    _frozen: bool = field(init=False, default=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Module.name must be a non-empty string")
        self.path = Path(self.path)
        self.properties = MappingProxyType(dict(self.properties))
        self.scopes = ScopeRegistry(owner=self.name)

    @property
    def is_root(self) -> bool:
        return self.name == ROOT_MODULE_NAME

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    @property
    def plugins(self) -> tuple[str, ...]:
        return tuple(self._plugins)

    @property
    def slug(self) -> str:
        """Filesystem-safe identifier used for module-scoped output paths.

        Path separators become ``-``. A literal ``%`` or ``-`` and a leading ``_`` are
        percent-escaped, so distinct module names never share a slug and ``_root``
        is left to the root module.
        """

        if self.is_root:
            return ROOT_MODULE_SLUG
        escaped = self.name.strip(":/").replace("%", "%25").replace("-", "%2D")
        if escaped.startswith("_"):
            escaped = "%5F" + escaped[1:]
        return escaped.replace(":", "-").replace("/", "-")

    def has_plugin(self, plugin_id: str) -> bool:
        return plugin_id in self._plugins

    def record_plugin(self, plugin_id: str) -> bool:
        """Record ``plugin_id`` as applied; returns ``False`` if it already was."""

        if plugin_id in self._plugins:
            return False
        self._assert_mutable()
        self._plugins[plugin_id] = None
        return True

    def set_identity(self, *, group: str, version: str) -> None:
        self._assert_mutable()
        self.group = group
        self.version = version

    def set_configuration(self, kind: PackagingKind, toolchain: ToolchainConfiguration) -> None:
        self._assert_mutable()
        self.packaging_kind = kind
        self.toolchain = toolchain

    def freeze(self) -> None:
        self._frozen = True
        self.scopes.freeze()

    def _assert_mutable(self) -> None:
        if self._frozen:
            raise ModuleFrozenError(self.name)


__all__ = [
    "AndroidConfiguration",
    "JSONScalar",
    "JSONValue",
    "Module",
    "PackagingKind",
    "ResolutionScope",
    "ScopeRegistry",
    "TestConfiguration",
    "ToolchainConfiguration",
]
