"""Error taxonomy shared by every buildgate component.

Every error is unrecovered locally and surfaces to the top-level invocation, which
aborts the build. Messages always name the module, key, file, or checksum at fault.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path


class BuildError(RuntimeError):
    """Base class for every build-aborting failure."""


class BuildConfigurationError(BuildError):
    """Failures caused by module declarations or build configuration."""


class MissingPropertyError(BuildConfigurationError):
    """A required module property is absent."""

    def __init__(self, module: str, key: str) -> None:
        self.module = module
        self.key = key
        super().__init__(f"module {module!r}: missing required property {key!r}")


class InvalidFormatError(BuildConfigurationError):
    """A module property is present but does not parse as the requested type."""

    def __init__(self, module: str, key: str, value: str, expected: str) -> None:
        self.module = module
        self.key = key
        self.value = value
        self.expected = expected
        super().__init__(
            f"module {module!r}: property {key!r} has value {value!r}; expected {expected}"
        )


class UnknownPackagingKindError(BuildConfigurationError):
    """A module declares a packaging kind outside the fixed set."""

    def __init__(self, module: str, value: str, allowed: Sequence[str]) -> None:
        self.module = module
        self.value = value
        self.allowed = tuple(allowed)
        super().__init__(
            f"module {module!r}: unrecognized packaging kind {value!r}; "
            f"expected one of: {', '.join(self.allowed)}"
        )


class UnknownPluginError(BuildConfigurationError):
    """A configuration procedure asked for a plugin the catalog does not know."""

    def __init__(self, plugin_id: str) -> None:
        self.plugin_id = plugin_id
        super().__init__(f"unknown plugin {plugin_id!r}")


class PropertiesFileError(BuildConfigurationError):
    """A ``.properties`` file cannot be read or is not valid properties syntax."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class ModuleDiscoveryError(BuildConfigurationError):
    """A declared module cannot be located under the build root."""


class ModuleFrozenError(BuildConfigurationError):
    """A module was mutated after its configuration completed."""

    def __init__(self, module: str) -> None:
        self.module = module
        super().__init__(f"module {module!r} is already configured and cannot be modified")


class BuildVersionError(BuildConfigurationError):
    """The running buildgate version differs from the version the build requires."""

    def __init__(self, required: str, received: str) -> None:
        self.required = required
        self.received = received
        super().__init__(
            f"buildgate {required} is required to run this build. "
            f"You are using buildgate {received}"
        )


class AllowListError(BuildConfigurationError):
    """The transitive scope allow-list file is missing or malformed."""


class DuplicateTaskError(BuildConfigurationError):
    """A task name was registered twice in the same module scope."""

    def __init__(self, scope: str, name: str) -> None:
        self.scope = scope
        self.name = name
        super().__init__(f"task {name!r} is already defined in {scope!r}")


class UnknownTaskError(BuildConfigurationError):
    """A task depends on, or a caller requested, a task that was never defined."""

    def __init__(self, scope: str, name: str) -> None:
        self.scope = scope
        self.name = name
        super().__init__(f"task {name!r} is not defined in {scope!r}")


class CycleError(BuildConfigurationError, ValueError):
    """Raised when a cycle is detected in the task graph."""

    cycles: tuple[tuple[str, ...], ...]

    def __init__(self, cycles: Iterable[Sequence[str]]) -> None:
        normalized: tuple[tuple[str, ...], ...] = tuple(tuple(path) for path in cycles)
        self.cycles = normalized

        if not normalized:
            message = "Task graph contains at least one cycle."
        else:
            preview = ", ".join(" -> ".join(path) for path in normalized[:3])
            suffix = "..." if len(normalized) > 3 else ""
            message = f"Task graph contains cycle(s): {preview}{suffix}"
        super().__init__(message)


class ToolIntegrityError(BuildError):
    """Failures while fetching or verifying an external tool artifact."""


class DownloadError(ToolIntegrityError):
    """The artifact could not be fetched. Never retried."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"download of {url} failed: {reason}")


class ChecksumMismatchError(ToolIntegrityError):
    """The artifact on disk does not match its pinned digest."""

    def __init__(self, path: Path, algorithm: str, expected: str, actual: str) -> None:
        self.path = path
        self.algorithm = algorithm
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{algorithm} checksum mismatch for {path}: expected {expected}, got {actual}"
        )


class ExternalProcessError(BuildError):
    """An external command exited non-zero; ``exit_code`` is passed through."""

    def __init__(self, command: Sequence[str], exit_code: int, detail: str = "") -> None:
        self.command = tuple(command)
        self.exit_code = exit_code
        message = f"command failed ({exit_code}): {' '.join(self.command)}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


__all__ = [
    "AllowListError",
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
    "ModuleDiscoveryError",
    "ModuleFrozenError",
    "PropertiesFileError",
    "ToolIntegrityError",
    "UnknownPackagingKindError",
    "UnknownPluginError",
    "UnknownTaskError",
]
