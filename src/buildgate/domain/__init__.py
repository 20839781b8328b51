"""Domain types shared across components: modules, scopes, toolchain results, errors.

The domain layer is free of IO side effects.
"""

from buildgate.domain.errors import (
    AllowListError,
    BuildConfigurationError,
    BuildError,
    BuildVersionError,
    ChecksumMismatchError,
    CycleError,
    DownloadError,
    DuplicateTaskError,
    ExternalProcessError,
    InvalidFormatError,
    MissingPropertyError,
    ModuleDiscoveryError,
    ModuleFrozenError,
    ToolIntegrityError,
    UnknownPackagingKindError,
    UnknownPluginError,
    UnknownTaskError,
)
from buildgate.domain.models import (
    AndroidConfiguration,
    Module,
    PackagingKind,
    ResolutionScope,
    ScopeRegistry,
    TestConfiguration,
    ToolchainConfiguration,
)

__all__ = [
    "AllowListError",
    "AndroidConfiguration",
    "BuildConfigurationError",
    "BuildError",
    "BuildVersionError",
    "ChecksumMismatchError",
    "CycleError",
    "DownloadError",
    "DuplicateTaskError",
    "ExternalProcessError",
    "InvalidFormatError",
    "MissingPropertyError",
    "Module",
    "ModuleDiscoveryError",
    "ModuleFrozenError",
    "PackagingKind",
    "ResolutionScope",
    "ScopeRegistry",
    "TestConfiguration",
    "ToolIntegrityError",
    "ToolchainConfiguration",
    "UnknownPackagingKindError",
    "UnknownPluginError",
    "UnknownTaskError",
]
