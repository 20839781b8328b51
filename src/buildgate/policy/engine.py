"""
buildgate — resolution policy engine.

Purpose
- Decide, for every resolution scope a module has at evaluation time, whether
  transitive dependency resolution is permitted.

Functional requirements
- The decision is pure set membership: ``transitive = name in allow_list``.
  Unknown names are denied without error.
- The scope set is read at call time, never cached, so scopes registered by
  plugins after engine construction are still governed.
- Every evaluation rewrites ``<diagnostics_dir>/<module-slug>/configurations.txt``
  with the discovered scope names, one per line. Writes to one path are serialized
  and atomic; the file never feeds back into the decision.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from buildgate.constants import DIAGNOSTIC_FILE_NAME
from buildgate.domain.models import Module
from buildgate.policy.allowlist import AllowList
from buildgate.utils.fs import atomic_write, ensure_directory


@dataclass(frozen=True, slots=True)
class PolicyReport:
    """Outcome of one evaluation; names keep registration order."""

    module: str
    allowed: tuple[str, ...]
    denied: tuple[str, ...]
    diagnostic_path: Path | None

    @property
    def scope_names(self) -> tuple[str, ...]:
        return self.allowed + self.denied

    def to_dict(self) -> dict[str, object]:
        return {
            "module": self.module,
            "allowed": list(self.allowed),
            "denied": list(self.denied),
            "diagnostic_path": (
                self.diagnostic_path.as_posix() if self.diagnostic_path is not None else None
            ),
        }


class ResolutionPolicyEngine:
    """Deny-by-default transitive resolution policy over a module's scopes."""

    def __init__(
        self,
        allow_list: AllowList,
        diagnostics_dir: str | os.PathLike[str] | None,
        *,
        logger: Any | None = None,
    ) -> None:
        self._allow_list = allow_list
        self._diagnostics_dir = Path(diagnostics_dir) if diagnostics_dir is not None else None
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._path_locks: dict[str, threading.Lock] = {}
        self._path_locks_guard = threading.Lock()

    @property
    def allow_list(self) -> AllowList:
        return self._allow_list

    def diagnostic_path(self, module: Module) -> Path | None:
        if self._diagnostics_dir is None:
            return None
        return self._diagnostics_dir / module.slug / DIAGNOSTIC_FILE_NAME

    def evaluate(self, module: Module) -> PolicyReport:
        scope_names = module.scopes.names()

        allowed: list[str] = []
        denied: list[str] = []
        for name in scope_names:
            transitive = self._allow_list.allows(name)
            module.scopes.set_transitive(name, transitive)
            (allowed if transitive else denied).append(name)

        path = self.diagnostic_path(module)
        if path is not None:
            self._write_diagnostic(path, scope_names)

        report = PolicyReport(
            module=module.name,
            allowed=tuple(allowed),
            denied=tuple(denied),
            diagnostic_path=path,
        )
        self._logger.info(
            "policy.evaluated",
            module_name=module.name,
            allowed=len(report.allowed),
            denied=len(report.denied),
            diagnostic_path=path.as_posix() if path is not None else None,
        )
        return report

    def _write_diagnostic(self, path: Path, scope_names: tuple[str, ...]) -> None:
        with self._lock_for(path):
            ensure_directory(path.parent)
            atomic_write(path, "\n".join(scope_names))

    def _lock_for(self, path: Path) -> threading.Lock:
        key = os.path.abspath(path)
        with self._path_locks_guard:
            return self._path_locks.setdefault(key, threading.Lock())


__all__ = ["PolicyReport", "ResolutionPolicyEngine"]
