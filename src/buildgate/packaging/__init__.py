"""Packaging kind dispatch and plugin application."""

from buildgate.packaging.dispatcher import ModuleDeclaration, PackagingDispatcher, java_version
from buildgate.packaging.plugins import (
    BASE_SCOPES,
    PLUGIN_CATALOG,
    apply_base_scopes,
    apply_plugin,
    scopes_for,
)

__all__ = [
    "BASE_SCOPES",
    "PLUGIN_CATALOG",
    "ModuleDeclaration",
    "PackagingDispatcher",
    "apply_base_scopes",
    "apply_plugin",
    "java_version",
    "scopes_for",
]
