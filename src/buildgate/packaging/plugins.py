"""Catalog of toolchain plugins and the resolution scopes each one registers.

Applying a plugin is set-like: the plugin id is recorded once and its scopes are
registered idempotently, so re-applying a plugin never changes the module.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Final

from buildgate.domain.errors import UnknownPluginError
from buildgate.domain.models import Module

ANDROID_APPLICATION: Final[str] = "com.android.application"
ANDROID_LIBRARY: Final[str] = "com.android.library"
KOTLIN_ANDROID: Final[str] = "org.jetbrains.kotlin.android"
KOTLIN_JVM: Final[str] = "org.jetbrains.kotlin.jvm"
JAVA_LIBRARY: Final[str] = "java-library"
ANDROID_JUNIT5: Final[str] = "de.mannodermaus.android-junit5"

# Every module carries these before any plugin is applied.
BASE_SCOPES: Final[tuple[str, ...]] = ("default", "archives")

_JAVA_LIBRARY_SCOPES: Final[tuple[str, ...]] = (
    "api",
    "implementation",
    "compileOnly",
    "compileOnlyApi",
    "runtimeOnly",
    "annotationProcessor",
    "compileClasspath",
    "runtimeClasspath",
    "apiElements",
    "runtimeElements",
    "mainSourceElements",
    "testImplementation",
    "testCompileOnly",
    "testRuntimeOnly",
    "testAnnotationProcessor",
    "testCompileClasspath",
    "testRuntimeClasspath",
    "testResultsElementsForTest",
)

_KOTLIN_COMPILER_SCOPES: Final[tuple[str, ...]] = (
    "kotlinBuildToolsApiClasspath",
    "kotlinCompilerClasspath",
    "kotlinCompilerPluginClasspath",
    "kotlinKlibCommonizerClasspath",
    "kotlinNativeCompilerPluginClasspath",
    "kotlinScriptDef",
    "kotlinScriptDefExtensions",
)

_KOTLIN_JVM_SCOPES: Final[tuple[str, ...]] = (
    *_KOTLIN_COMPILER_SCOPES,
    "kotlinCompilerPluginClasspathMain",
    "kotlinCompilerPluginClasspathTest",
    "implementationDependenciesMetadata",
    "apiDependenciesMetadata",
    "compileOnlyDependenciesMetadata",
    "testImplementationDependenciesMetadata",
    "testCompileOnlyDependenciesMetadata",
)

_ANDROID_COMMON_SCOPES: Final[tuple[str, ...]] = (
    "implementation",
    "api",
    "compileOnly",
    "runtimeOnly",
    "annotationProcessor",
    "coreLibraryDesugaring",
    "lintChecks",
    "lintPublish",
    "debugImplementation",
    "debugApi",
    "debugCompileOnly",
    "debugRuntimeOnly",
    "debugAnnotationProcessor",
    "debugAnnotationProcessorClasspath",
    "debugCompileClasspath",
    "debugRuntimeClasspath",
    "releaseImplementation",
    "releaseApi",
    "releaseCompileOnly",
    "releaseRuntimeOnly",
    "releaseAnnotationProcessor",
    "releaseAnnotationProcessorClasspath",
    "releaseCompileClasspath",
    "releaseRuntimeClasspath",
    "testImplementation",
    "testDebugImplementation",
    "testReleaseImplementation",
    "testFixturesImplementation",
    "testFixturesDebugImplementation",
    "testFixturesReleaseImplementation",
    "androidTestImplementation",
    "androidTestDebugImplementation",
    "androidTestReleaseImplementation",
    "androidTestUtil",
    "debugUnitTestCompilationImplementation",
    "debugUnitTestImplementation",
    "debugUnitTestCompileClasspath",
    "debugUnitTestRuntimeClasspath",
    "debugAndroidTestCompilationImplementation",
    "debugAndroidTestImplementation",
    "debugAndroidTestCompileClasspath",
    "debugAndroidTestRuntimeClasspath",
    "releaseUnitTestCompilationImplementation",
    "releaseUnitTestImplementation",
    "releaseUnitTestCompileClasspath",
    "releaseUnitTestRuntimeClasspath",
)

_ANDROID_APPLICATION_SCOPES: Final[tuple[str, ...]] = (
    *_ANDROID_COMMON_SCOPES,
    "wearApp",
    "debugWearApp",
    "releaseWearApp",
)

_ANDROID_LIBRARY_SCOPES: Final[tuple[str, ...]] = (
    *_ANDROID_COMMON_SCOPES,
    "debugApiElements",
    "debugRuntimeElements",
    "releaseApiElements",
    "releaseRuntimeElements",
)

_KOTLIN_ANDROID_SCOPES: Final[tuple[str, ...]] = (
    *_KOTLIN_COMPILER_SCOPES,
    "kotlinCompilerPluginClasspathDebug",
    "kotlinCompilerPluginClasspathDebugAndroidTest",
    "kotlinCompilerPluginClasspathDebugUnitTest",
    "kotlinCompilerPluginClasspathRelease",
    "kotlinCompilerPluginClasspathReleaseUnitTest",
    "implementationDependenciesMetadata",
    "debugImplementationDependenciesMetadata",
    "releaseImplementationDependenciesMetadata",
    "testImplementationDependenciesMetadata",
    "testDebugImplementationDependenciesMetadata",
    "testReleaseImplementationDependenciesMetadata",
    "testFixturesImplementationDependenciesMetadata",
    "testFixturesDebugImplementationDependenciesMetadata",
    "testFixturesReleaseImplementationDependenciesMetadata",
    "androidTestImplementationDependenciesMetadata",
    "androidTestDebugImplementationDependenciesMetadata",
    "androidTestReleaseImplementationDependenciesMetadata",
    "debugUnitTestImplementationDependenciesMetadata",
    "debugAndroidTestImplementationDependenciesMetadata",
    "releaseUnitTestImplementationDependenciesMetadata",
)

PLUGIN_CATALOG: Final[Mapping[str, tuple[str, ...]]] = MappingProxyType(
    {
        JAVA_LIBRARY: _JAVA_LIBRARY_SCOPES,
        KOTLIN_JVM: _KOTLIN_JVM_SCOPES,
        ANDROID_APPLICATION: _ANDROID_APPLICATION_SCOPES,
        ANDROID_LIBRARY: _ANDROID_LIBRARY_SCOPES,
        KOTLIN_ANDROID: _KOTLIN_ANDROID_SCOPES,
        # Adds test engines through existing scopes only.
        ANDROID_JUNIT5: (),
    }
)


def scopes_for(plugin_id: str) -> tuple[str, ...]:
    try:
        return PLUGIN_CATALOG[plugin_id]
    except KeyError:
        raise UnknownPluginError(plugin_id) from None


def apply_base_scopes(module: Module) -> None:
    for name in BASE_SCOPES:
        module.scopes.register(name)


def apply_plugin(module: Module, plugin_id: str) -> bool:
    """Apply ``plugin_id`` to ``module``; returns ``False`` if it was already applied."""

    scope_names = scopes_for(plugin_id)
    if module.has_plugin(plugin_id):
        return False
    module.record_plugin(plugin_id)
    for name in scope_names:
        module.scopes.register(name)
    return True


__all__ = [
    "ANDROID_APPLICATION",
    "ANDROID_JUNIT5",
    "ANDROID_LIBRARY",
    "BASE_SCOPES",
    "JAVA_LIBRARY",
    "KOTLIN_ANDROID",
    "KOTLIN_JVM",
    "PLUGIN_CATALOG",
    "apply_base_scopes",
    "apply_plugin",
    "scopes_for",
]
