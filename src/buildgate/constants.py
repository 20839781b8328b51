"""Stable constants shared across buildgate components."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1
ALLOWLIST_SCHEMA_VERSION: Final[int] = 1

# File names looked up relative to the build root and module directories.
CONFIG_FILE_NAME: Final[str] = "buildgate.toml"
PROPERTIES_FILE_NAME: Final[str] = "gradle.properties"
DIAGNOSTIC_FILE_NAME: Final[str] = "configurations.txt"
ROOT_MODULE_NAME: Final[str] = ":"
# Output directory name of the root module; no other module name maps to it.
ROOT_MODULE_SLUG: Final[str] = "_root"

# Default runtime paths (relative to the build root unless overridden by config).
BUILD_DIR: Final[PurePosixPath] = PurePosixPath("build")
DIAGNOSTICS_DIR: Final[PurePosixPath] = BUILD_DIR / "configurations"
LOG_DIR: Final[PurePosixPath] = BUILD_DIR / "logs"

# Module classification property keys.
PROPERTY_PACKAGING: Final[str] = "POM_PACKAGING"
PROPERTY_GROUP: Final[str] = "GROUP"
PROPERTY_VERSION: Final[str] = "VERSION_NAME"
PROPERTY_ARTIFACT_ID: Final[str] = "POM_ARTIFACT_ID"
PROPERTY_JDK_BUILD: Final[str] = "org.thepalaceproject.build.jdkBuild"
PROPERTY_JDK_BYTECODE_TARGET: Final[str] = "org.thepalaceproject.build.jdkBytecodeTarget"
PROPERTY_ANDROID_SDK_COMPILE: Final[str] = "org.thepalaceproject.build.androidSDKCompile"
PROPERTY_ANDROID_SDK_TARGET: Final[str] = "org.thepalaceproject.build.androidSDKTarget"
PROPERTY_ANDROID_SDK_MINIMUM: Final[str] = "org.thepalaceproject.build.androidSDKMinimum"

# Toolchain values applied by the packaging dispatcher.
SOURCE_ENCODING: Final[str] = "UTF-8"
INSTRUMENTATION_RUNNER: Final[str] = "androidx.test.runner.AndroidJUnitRunner"
TEST_ORCHESTRATOR_EXECUTION: Final[str] = "ANDROIDX_TEST_ORCHESTRATOR"
SELF_ATTACH_PROPERTY: Final[str] = "jdk.attach.allowAttachSelf"

# Pinned ktlint artifact.
KTLINT_VERSION: Final[str] = "0.50.0"
KTLINT_SHA256: Final[str] = "c704fbc28305bb472511a1e98a7e0b014aa13378a571b716bbcf9d99d59a5092"
KTLINT_URL_TEMPLATE: Final[str] = (
    "https://repo1.maven.org/maven2/com/pinterest/ktlint/{version}/ktlint-{version}-all.jar"
)
KTLINT_JAR_NAME: Final[str] = "ktlint.jar"
KTLINT_PATTERNS: Final[tuple[str, ...]] = (
    "*/src/**/*.kt",
    "*/build.gradle.kts",
    "build.gradle.kts",
    "!*/src/test/**",
)
