"""
buildgate — packaging dispatcher.

Purpose
- Classify a module by its declared packaging kind and run exactly one
  configuration procedure for that kind.

Functional requirements
- ``GROUP``, ``VERSION_NAME``, ``jdkBuild`` and ``jdkBytecodeTarget`` are read for
  every kind, ``pom`` included, so a missing value fails before anything is applied.
- An unrecognized packaging kind raises ``UnknownPackagingKindError``.
- JDK releases and Android API levels must be positive integers.
- Configuring a module twice yields an identical configuration: plugin
  application and scope registration are set-like and every value is an assignment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from buildgate.config.properties import get_int, get_string
from buildgate.config.settings import PropertyKeys
from buildgate.constants import (
    INSTRUMENTATION_RUNNER,
    SELF_ATTACH_PROPERTY,
    SOURCE_ENCODING,
    TEST_ORCHESTRATOR_EXECUTION,
)
from buildgate.domain.errors import InvalidFormatError
from buildgate.domain.models import (
    AndroidConfiguration,
    Module,
    PackagingKind,
    TestConfiguration,
    ToolchainConfiguration,
)
from buildgate.packaging.plugins import (
    ANDROID_APPLICATION,
    ANDROID_JUNIT5,
    ANDROID_LIBRARY,
    JAVA_LIBRARY,
    KOTLIN_ANDROID,
    KOTLIN_JVM,
    apply_base_scopes,
    apply_plugin,
)


@dataclass(frozen=True, slots=True)
class ModuleDeclaration:
    """Classification values every module must declare."""

    kind: PackagingKind
    group: str
    version: str
    jdk_build: int
    jdk_bytecode_target: int


class PackagingDispatcher:
    """Select and run the configuration procedure for a module's packaging kind."""

    def __init__(self, keys: PropertyKeys, *, logger: Any | None = None) -> None:
        self._keys = keys
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def classify(self, module: Module) -> ModuleDeclaration:
        keys = self._keys
        group = get_string(module, keys.group)
        version = get_string(module, keys.version)
        jdk_build = _release(module, keys.jdk_build)
        jdk_bytecode_target = _release(module, keys.jdk_bytecode_target)
        kind = PackagingKind.parse(get_string(module, keys.packaging), module=module.name)
        return ModuleDeclaration(
            kind=kind,
            group=group,
            version=version,
            jdk_build=jdk_build,
            jdk_bytecode_target=jdk_bytecode_target,
        )

    def configure(
        self, module: Module, declaration: ModuleDeclaration | None = None
    ) -> ToolchainConfiguration:
        decl = declaration if declaration is not None else self.classify(module)
        module.set_identity(group=decl.group, version=decl.version)
        apply_base_scopes(module)

        match decl.kind:
            case PackagingKind.POM:
                toolchain = self._configure_pom(module, decl)
            case PackagingKind.APK:
                toolchain = self._configure_apk(module, decl)
            case PackagingKind.AAR:
                toolchain = self._configure_aar(module, decl)
            case PackagingKind.JAR:
                toolchain = self._configure_jar(module, decl)

        module.set_configuration(decl.kind, toolchain)
        self._logger.info(
            "packaging.configured",
            module_name=module.name,
            kind=decl.kind.value,
            group=decl.group,
            version=decl.version,
            plugins=list(toolchain.plugins),
            scope_count=len(module.scopes),
        )
        return toolchain

    def _configure_pom(self, module: Module, decl: ModuleDeclaration) -> ToolchainConfiguration:
        self._logger.info(
            "configuring module as a pom project", module_name=module.name, version=decl.version
        )
        return ToolchainConfiguration(kind=PackagingKind.POM)

    def _configure_apk(self, module: Module, decl: ModuleDeclaration) -> ToolchainConfiguration:
        self._logger.info(
            "configuring module as an apk project", module_name=module.name, version=decl.version
        )
        plugins = self._apply(module, ANDROID_APPLICATION, KOTLIN_ANDROID)
        bytecode = java_version(decl.jdk_bytecode_target)
        android = AndroidConfiguration(
            namespace=get_string(module, self._keys.artifact_id),
            compile_sdk=_release(module, self._keys.android_sdk_compile),
            target_sdk=_release(module, self._keys.android_sdk_target),
            min_sdk=_release(module, self._keys.android_sdk_minimum),
            multidex_enabled=True,
            test_instrumentation_runner=INSTRUMENTATION_RUNNER,
            encoding=SOURCE_ENCODING,
            source_compatibility=bytecode,
            target_compatibility=bytecode,
        )
        return ToolchainConfiguration(
            kind=PackagingKind.APK,
            plugins=plugins,
            jvm_toolchain=decl.jdk_build,
            kotlin_jvm_target=str(decl.jdk_bytecode_target),
            source_compatibility=bytecode,
            target_compatibility=bytecode,
            android=android,
        )

    def _configure_aar(self, module: Module, decl: ModuleDeclaration) -> ToolchainConfiguration:
        self._logger.info(
            "configuring module as an aar project", module_name=module.name, version=decl.version
        )
        plugins = self._apply(module, ANDROID_LIBRARY, KOTLIN_ANDROID, ANDROID_JUNIT5)
        bytecode = java_version(decl.jdk_bytecode_target)
        android = AndroidConfiguration(
            namespace=get_string(module, self._keys.artifact_id),
            compile_sdk=_release(module, self._keys.android_sdk_compile),
            target_sdk=None,
            min_sdk=_release(module, self._keys.android_sdk_minimum),
            multidex_enabled=True,
            test_instrumentation_runner=INSTRUMENTATION_RUNNER,
            encoding=SOURCE_ENCODING,
            source_compatibility=bytecode,
            target_compatibility=bytecode,
            test_execution=TEST_ORCHESTRATOR_EXECUTION,
            animations_disabled=True,
            include_android_resources=True,
        )
        tests = TestConfiguration(
            use_junit_platform=False,
            system_properties={SELF_ATTACH_PROPERTY: "true"},
            html_report=True,
            junit_xml_report=True,
        )
        return ToolchainConfiguration(
            kind=PackagingKind.AAR,
            plugins=plugins,
            jvm_toolchain=decl.jdk_build,
            kotlin_jvm_target=str(decl.jdk_bytecode_target),
            source_compatibility=bytecode,
            target_compatibility=bytecode,
            android=android,
            tests=tests,
        )

    def _configure_jar(self, module: Module, decl: ModuleDeclaration) -> ToolchainConfiguration:
        self._logger.info(
            "configuring module as a jar project", module_name=module.name, version=decl.version
        )
        plugins = self._apply(module, JAVA_LIBRARY, KOTLIN_JVM)
        bytecode = java_version(decl.jdk_bytecode_target)
        tests = TestConfiguration(
            use_junit_platform=True,
            system_properties={SELF_ATTACH_PROPERTY: "true"},
            html_report=True,
            junit_xml_report=True,
            logged_events=("passed",),
        )
        return ToolchainConfiguration(
            kind=PackagingKind.JAR,
            plugins=plugins,
            jvm_toolchain=decl.jdk_build,
            kotlin_jvm_target=str(decl.jdk_bytecode_target),
            source_compatibility=bytecode,
            target_compatibility=bytecode,
            tests=tests,
        )

    @staticmethod
    def _apply(module: Module, *plugin_ids: str) -> tuple[str, ...]:
        for plugin_id in plugin_ids:
            apply_plugin(module, plugin_id)
        return plugin_ids


def _release(module: Module, key: str) -> int:
    """A JDK release or Android API level; both count up from 1."""

    level = get_int(module, key)
    if level <= 0:
        raise InvalidFormatError(
            module.name, key, get_string(module, key), "a positive release number"
        )
    return level


def java_version(release: int) -> str:
    """Java's own spelling of a release number: ``8`` is ``1.8``, ``11`` is ``11``."""

    if release <= 0:
        raise ValueError(f"invalid Java release {release}")
    if release <= 8:
        return f"1.{release}"
    return str(release)


__all__ = ["ModuleDeclaration", "PackagingDispatcher", "java_version"]
