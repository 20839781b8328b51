"""Build orchestration across all modules of a build root."""

from buildgate.control_plane.controller import BuildController, BuildReport, ModuleReport

__all__ = ["BuildController", "BuildReport", "ModuleReport"]
