"""Unit tests for the plugin catalog."""

from __future__ import annotations

from pathlib import Path

import pytest

from buildgate.domain.errors import UnknownPluginError
from buildgate.domain.models import Module
from buildgate.packaging.plugins import (
    ANDROID_JUNIT5,
    BASE_SCOPES,
    JAVA_LIBRARY,
    PLUGIN_CATALOG,
    apply_base_scopes,
    apply_plugin,
    scopes_for,
)

pytestmark = pytest.mark.unit


def test_catalog_scope_lists_have_no_duplicates() -> None:
    for plugin_id, scopes in PLUGIN_CATALOG.items():
        assert len(scopes) == len(set(scopes)), plugin_id


def test_unknown_plugin_rejected() -> None:
    with pytest.raises(UnknownPluginError, match="com.example.unknown"):
        scopes_for("com.example.unknown")

    module = Module(name="core", path=Path("core"))
    with pytest.raises(UnknownPluginError):
        apply_plugin(module, "com.example.unknown")
    assert module.plugins == ()


def test_apply_plugin_registers_scopes_once() -> None:
    module = Module(name="core", path=Path("core"))
    apply_base_scopes(module)

    assert apply_plugin(module, JAVA_LIBRARY) is True
    registered = module.scopes.names()
    assert apply_plugin(module, JAVA_LIBRARY) is False

    assert module.scopes.names() == registered
    assert registered[: len(BASE_SCOPES)] == BASE_SCOPES
    assert set(scopes_for(JAVA_LIBRARY)) <= set(registered)


def test_plugin_without_scopes_is_still_recorded() -> None:
    module = Module(name="lib", path=Path("lib"))

    assert apply_plugin(module, ANDROID_JUNIT5) is True
    assert module.has_plugin(ANDROID_JUNIT5)
    assert len(module.scopes) == 0
