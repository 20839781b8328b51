"""
buildgate — build controller.

Purpose
- Discover the modules of a build root, configure each one exactly once, apply the
  transitive resolution policy, and define the root-level ktlint tasks.

Functional requirements
- Classification properties of every module are read before any module is
  configured, so a missing or malformed declaration aborts the build before any
  policy evaluation or diagnostic write.
- Independent modules are configured concurrently, bounded by ``build.max_workers``;
  the first failure cancels outstanding work and propagates.
- Modules are frozen once configured.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from buildgate import __version__
from buildgate.config.properties import merged_properties
from buildgate.config.settings import BuildSettings
from buildgate.constants import PROPERTIES_FILE_NAME, ROOT_MODULE_NAME
from buildgate.domain.errors import BuildVersionError, ModuleDiscoveryError
from buildgate.domain.models import Module, ToolchainConfiguration
from buildgate.observability.logging import correlation_scope
from buildgate.packaging.dispatcher import ModuleDeclaration, PackagingDispatcher
from buildgate.policy.allowlist import load_allow_list
from buildgate.policy.engine import PolicyReport, ResolutionPolicyEngine
from buildgate.tasks.process import CommandRunner
from buildgate.tasks.registry import TaskRegistry
from buildgate.tooling.acquisition import ClientFactory
from buildgate.tooling.ktlint import create_ktlint_tasks
from buildgate.utils.concurrency import WorkerPool


@dataclass(frozen=True, slots=True)
class ModuleReport:
    name: str
    path: Path
    group: str
    version: str
    toolchain: ToolchainConfiguration
    policy: PolicyReport

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "path": self.path.as_posix(),
            "group": self.group,
            "version": self.version,
            "toolchain": self.toolchain.to_dict(),
            "policy": self.policy.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class BuildReport:
    root: Path
    modules: tuple[ModuleReport, ...]

    def module(self, name: str) -> ModuleReport:
        for report in self.modules:
            if report.name == name:
                return report
        raise KeyError(name)

    def to_dict(self) -> dict[str, object]:
        return {
            "root": self.root.as_posix(),
            "modules": [report.to_dict() for report in self.modules],
        }


class BuildController:
    """Drives one build invocation over every module under ``settings.root``."""

    def __init__(
        self,
        settings: BuildSettings,
        *,
        dispatcher: PackagingDispatcher | None = None,
        engine: ResolutionPolicyEngine | None = None,
        runner: CommandRunner | None = None,
        client_factory: ClientFactory | None = None,
        logger: Any | None = None,
    ) -> None:
        self._settings = settings
        self._dispatcher = (
            dispatcher if dispatcher is not None else PackagingDispatcher(settings.property_keys)
        )
        self._engine = (
            engine
            if engine is not None
            else ResolutionPolicyEngine(
                load_allow_list(settings.allowlist_path), settings.diagnostics_dir
            )
        )
        self._runner = runner
        self._client_factory = client_factory
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def settings(self) -> BuildSettings:
        return self._settings

    @property
    def engine(self) -> ResolutionPolicyEngine:
        return self._engine

    def check_build_version(self, running_version: str = __version__) -> None:
        required = self._settings.required_version
        if required is not None and required != running_version:
            raise BuildVersionError(required, running_version)

    def discover_modules(self) -> tuple[Module, ...]:
        """Root module first, then declared or discovered modules in a stable order."""

        root = self._settings.root
        root_properties = root / PROPERTIES_FILE_NAME
        modules = [
            Module(
                name=ROOT_MODULE_NAME,
                path=root,
                properties=merged_properties(root_properties, None),
            )
        ]
        for name, path in self._module_directories():
            modules.append(
                Module(
                    name=name,
                    path=path,
                    properties=merged_properties(root_properties, path / PROPERTIES_FILE_NAME),
                )
            )
        return tuple(modules)

    def configure_all(self, modules: Sequence[Module] | None = None) -> BuildReport:
        return asyncio.run(self.configure_all_async(modules))

    async def configure_all_async(self, modules: Sequence[Module] | None = None) -> BuildReport:
        self.check_build_version()
        targets = tuple(modules) if modules is not None else self.discover_modules()

        declarations: list[ModuleDeclaration] = []
        for module in targets:
            with correlation_scope(module=module.name):
                declarations.append(self._dispatcher.classify(module))

        pool: WorkerPool[ModuleReport] = WorkerPool(max_concurrency=self._settings.max_workers)
        reports = await pool.gather(
            asyncio.to_thread(self._configure_one, module, declaration)
            for module, declaration in zip(targets, declarations, strict=True)
        )

        self._logger.info(
            "build.configured",
            root=self._settings.root.as_posix(),
            module_count=len(reports),
        )
        return BuildReport(root=self._settings.root, modules=tuple(reports))

    def root_tasks(self) -> TaskRegistry:
        registry = TaskRegistry(ROOT_MODULE_NAME)
        create_ktlint_tasks(
            registry,
            self._settings,
            runner=self._runner,
            client_factory=self._client_factory,
        )
        return registry

    def _configure_one(self, module: Module, declaration: ModuleDeclaration) -> ModuleReport:
        with correlation_scope(module=module.name):
            toolchain = self._dispatcher.configure(module, declaration)
            policy = self._engine.evaluate(module)
            module.freeze()
        return ModuleReport(
            name=module.name,
            path=module.path,
            group=declaration.group,
            version=declaration.version,
            toolchain=toolchain,
            policy=policy,
        )

    def _module_directories(self) -> list[tuple[str, Path]]:
        root = self._settings.root
        if self._settings.modules:
            located: list[tuple[str, Path]] = []
            for declared in self._settings.modules:
                relative = declared.strip(":").replace(":", "/")
                path = root / relative
                if not relative or not path.is_dir():
                    raise ModuleDiscoveryError(
                        f"module {declared!r} is declared but {path} is not a directory"
                    )
                located.append((relative, path))
            return located

        excluded = {self._settings.build_dir.resolve()}
        return [
            (child.name, child)
            for child in sorted(root.iterdir(), key=lambda item: item.name)
            if child.is_dir()
            and not child.name.startswith(".")
            and child.resolve() not in excluded
            and (child / PROPERTIES_FILE_NAME).is_file()
        ]


__all__ = ["BuildController", "BuildReport", "ModuleReport"]
