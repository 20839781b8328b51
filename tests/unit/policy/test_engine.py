"""
buildgate — unit tests for the resolution policy engine.

Purpose
- Verify the deny-by-default transitive resolution decision and its diagnostic output.

What this test file should cover
- ``transitive`` equals allow-list membership for every scope, in any registration order.
- Scopes registered after engine construction are governed too.
- The diagnostic file lists every scope name, one per line, and is rewritten each time.
- The diagnostic file never feeds back into the decision.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from buildgate.domain.models import Module
from buildgate.policy.allowlist import AllowList, load_allow_list
from buildgate.policy.engine import ResolutionPolicyEngine

pytestmark = pytest.mark.unit

_SCOPE_NAMES = st.text(
    alphabet=st.characters(categories=("Ll", "Lu", "Nd")), min_size=1, max_size=12
)


def _engine(allowed: set[str], diagnostics_dir: Path | None = None) -> ResolutionPolicyEngine:
    return ResolutionPolicyEngine(AllowList.of(allowed), diagnostics_dir, logger=MagicMock())


@settings(max_examples=75, deadline=None)
@given(
    names=st.lists(_SCOPE_NAMES, min_size=0, max_size=25, unique=True),
    allowed=st.sets(_SCOPE_NAMES, max_size=25),
    data=st.data(),
)
def test_transitive_flag_is_allow_list_membership(
    names: list[str], allowed: set[str], data: st.DataObject
) -> None:
    order = data.draw(st.permutations(names))
    module = Module(name="core", path=Path("core"))
    for name in order:
        module.scopes.register(name)

    report = _engine(allowed).evaluate(module)

    for scope in module.scopes:
        assert scope.transitive is (scope.name in allowed)
    assert set(report.allowed) == {name for name in names if name in allowed}
    assert set(report.denied) == {name for name in names if name not in allowed}
    assert report.allowed == tuple(name for name in order if name in allowed)
    assert report.denied == tuple(name for name in order if name not in allowed)


def test_unknown_scopes_are_denied_without_error() -> None:
    module = Module(name="core", path=Path("core"))
    module.scopes.register("kotlinBouncyCastleConfiguration")
    module.scopes.register("implementation")

    report = _engine({"implementation"}).evaluate(module)

    assert report.denied == ("kotlinBouncyCastleConfiguration",)
    assert module.scopes["kotlinBouncyCastleConfiguration"].transitive is False
    assert module.scopes["implementation"].transitive is True


def test_scopes_added_after_engine_construction_are_governed() -> None:
    engine = _engine({"api"})
    module = Module(name="core", path=Path("core"))
    module.scopes.register("api")
    engine.evaluate(module)

    module.scopes.register("lateScope")
    engine.evaluate(module)

    assert module.scopes["lateScope"].transitive is False
    assert module.scopes["api"].transitive is True


def test_diagnostic_file_lists_scope_names(tmp_path: Path) -> None:
    module = Module(name=":libs:net", path=Path("libs/net"))
    for name in ("default", "archives", "implementation"):
        module.scopes.register(name)

    report = _engine({"implementation"}, tmp_path).evaluate(module)

    expected = tmp_path / "libs-net" / "configurations.txt"
    assert report.diagnostic_path == expected
    assert expected.read_text(encoding="utf-8") == "default\narchives\nimplementation"


def test_diagnostic_file_is_rewritten_and_not_read_back(tmp_path: Path) -> None:
    engine = _engine(set(), tmp_path)
    module = Module(name="core", path=Path("core"))
    module.scopes.register("implementation")
    path = engine.diagnostic_path(module)
    assert path is not None
    path.parent.mkdir(parents=True)
    path.write_text("implementation\nstale", encoding="utf-8")

    engine.evaluate(module)

    assert path.read_text(encoding="utf-8") == "implementation"
    assert module.scopes["implementation"].transitive is False


def test_root_module_diagnostic_path(tmp_path: Path) -> None:
    engine = _engine(set(), tmp_path)
    assert engine.diagnostic_path(Module(name=":", path=tmp_path)) == (
        tmp_path / "_root" / "configurations.txt"
    )


def test_no_diagnostics_dir_skips_the_file(tmp_path: Path) -> None:
    module = Module(name="core", path=Path("core"))
    module.scopes.register("api")

    report = _engine({"api"}).evaluate(module)

    assert report.diagnostic_path is None
    assert report.to_dict()["diagnostic_path"] is None


def test_bundled_allow_list_denies_scopes_it_does_not_list() -> None:
    module = Module(name="core", path=Path("core"))
    for name in (
        "testImplementation",
        "kotlinCompilerClasspath",
        "implementation",
        "compileClasspath",
        "default",
    ):
        module.scopes.register(name)

    report = ResolutionPolicyEngine(load_allow_list(), None, logger=MagicMock()).evaluate(module)

    assert report.allowed == ("testImplementation", "kotlinCompilerClasspath")
    assert report.denied == ("implementation", "compileClasspath", "default")


def test_diagnostic_write_locks_are_per_engine(tmp_path: Path) -> None:
    path = tmp_path / "core" / "configurations.txt"
    first = _engine(set(), tmp_path)
    second = _engine(set(), tmp_path)

    assert first._lock_for(path) is first._lock_for(tmp_path / "core" / ".." / "core" / path.name)
    assert first._lock_for(path) is not second._lock_for(path)
