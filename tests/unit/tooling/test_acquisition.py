"""
buildgate — unit tests for tool acquisition tasks.

Purpose
- Exercise the make-directory/download/verify chain against an in-memory transport.

What this test file should cover
- A successful download writes the artifact and applies ``Last-Modified``.
- ``If-Modified-Since`` revalidation and ``304`` as up to date.
- HTTP and transport failures raise ``DownloadError`` and leave no partial file.
- Verification reruns every time and rejects mismatching or missing artifacts.
- Unsupported digest algorithms are rejected when the task is defined.
"""

from __future__ import annotations

import hashlib
import os
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from buildgate.domain.errors import ChecksumMismatchError, DownloadError
from buildgate.tasks.registry import TaskRegistry, TaskStatus
from buildgate.tooling.acquisition import (
    ToolDescriptor,
    build_http_client,
    check_digest,
    download,
    ensure_directory,
    provision_tool,
    verify,
)

pytestmark = pytest.mark.unit

ARTIFACT = b"PK\x03\x04 pretend jar contents"
ARTIFACT_SHA256 = hashlib.sha256(ARTIFACT).hexdigest()
URL = "https://repo.example.invalid/ktlint/ktlint-0.50.0-all.jar"
LAST_MODIFIED = "Wed, 21 Oct 2015 07:28:00 GMT"


def _factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[], httpx.Client]:
    def create() -> httpx.Client:
        return build_http_client(transport=httpx.MockTransport(handler))

    return create


def _serve_artifact(seen: list[httpx.Request]) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=ARTIFACT, headers={"Last-Modified": LAST_MODIFIED})

    return handler


def test_download_writes_artifact_and_applies_last_modified(tmp_path: Path) -> None:
    seen: list[httpx.Request] = []
    target = tmp_path / "ktlint.jar"
    registry = TaskRegistry()
    download(
        registry, URL, target, name="Download", client_factory=_factory(_serve_artifact(seen))
    )

    (outcome,) = registry.run_in_order("Download")

    assert outcome.status is TaskStatus.EXECUTED
    assert target.read_bytes() == ARTIFACT
    assert int(target.stat().st_mtime) == 1445412480
    assert "If-Modified-Since" not in seen[0].headers
    assert seen[0].headers["User-Agent"].startswith("buildgate/")


def test_download_revalidates_existing_artifact(tmp_path: Path) -> None:
    seen: list[httpx.Request] = []
    target = tmp_path / "ktlint.jar"
    target.write_bytes(b"cached")
    os.utime(target, (1445412480, 1445412480))

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(304)

    registry = TaskRegistry()
    download(registry, URL, target, name="Download", client_factory=_factory(handler))

    (outcome,) = registry.run_in_order("Download")

    assert outcome.status is TaskStatus.UP_TO_DATE
    assert seen[0].headers["If-Modified-Since"] == LAST_MODIFIED
    assert target.read_bytes() == b"cached"


def test_download_without_overwrite_skips_existing_artifact(tmp_path: Path) -> None:
    seen: list[httpx.Request] = []
    target = tmp_path / "ktlint.jar"
    target.write_bytes(b"cached")
    registry = TaskRegistry()
    download(
        registry,
        URL,
        target,
        name="Download",
        overwrite_existing=False,
        client_factory=_factory(_serve_artifact(seen)),
    )

    (outcome,) = registry.run_in_order("Download")

    assert outcome.status is TaskStatus.UP_TO_DATE
    assert seen == []


def test_http_error_status_raises_download_error(tmp_path: Path) -> None:
    target = tmp_path / "ktlint.jar"
    registry = TaskRegistry()
    download(
        registry,
        URL,
        target,
        name="Download",
        client_factory=_factory(lambda request: httpx.Response(404)),
    )

    with pytest.raises(DownloadError) as error:
        registry.run_in_order("Download")

    assert error.value.url == URL
    assert "404" in error.value.reason
    assert not target.exists()
    assert list(tmp_path.iterdir()) == []


def test_transport_error_raises_download_error_without_retry(tmp_path: Path) -> None:
    attempts: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    registry = TaskRegistry()
    download(
        registry, URL, tmp_path / "ktlint.jar", name="Download", client_factory=_factory(handler)
    )

    with pytest.raises(DownloadError, match="connection refused"):
        registry.run_in_order("Download")
    assert len(attempts) == 1


def test_download_requires_https(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="https"):
        download(TaskRegistry(), "http://repo.example.invalid/a.jar", tmp_path / "a.jar")


def test_verify_accepts_matching_digest_case_insensitively(tmp_path: Path) -> None:
    artifact = tmp_path / "ktlint.jar"
    artifact.write_bytes(ARTIFACT)
    registry = TaskRegistry()
    verify(registry, artifact, ARTIFACT_SHA256.upper(), name="Verify")

    assert registry.run_in_order("Verify")[0].status is TaskStatus.EXECUTED
    assert check_digest(artifact, ARTIFACT_SHA256) == ARTIFACT_SHA256


def test_verify_rejects_mismatch_every_run(tmp_path: Path) -> None:
    artifact = tmp_path / "ktlint.jar"
    artifact.write_bytes(ARTIFACT)
    registry = TaskRegistry()
    verify(registry, artifact, ARTIFACT_SHA256, name="Verify")

    registry.run_in_order("Verify")
    artifact.write_bytes(b"tampered")

    with pytest.raises(ChecksumMismatchError) as error:
        registry.run_in_order("Verify")

    assert error.value.path == artifact
    assert error.value.expected == ARTIFACT_SHA256
    assert error.value.actual == hashlib.sha256(b"tampered").hexdigest()
    assert error.value.algorithm == "SHA-256"


def test_verify_missing_file_is_a_mismatch(tmp_path: Path) -> None:
    registry = TaskRegistry()
    verify(registry, tmp_path / "ktlint.jar", ARTIFACT_SHA256, name="Verify")

    with pytest.raises(ChecksumMismatchError, match="<missing file>"):
        registry.run_in_order("Verify")


def test_verify_rejects_unsupported_algorithm_at_definition(tmp_path: Path) -> None:
    registry = TaskRegistry()
    with pytest.raises(ValueError, match="unsupported digest algorithm"):
        verify(registry, tmp_path / "a.jar", ARTIFACT_SHA256, algorithm="CRC32", name="Verify")
    assert "Verify" not in registry


def test_verify_rejects_malformed_expected_digest(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="64 hex characters"):
        verify(TaskRegistry(), tmp_path / "a.jar", "abc123")


def test_ensure_directory_task_is_up_to_date_when_present(tmp_path: Path) -> None:
    registry = TaskRegistry()
    ensure_directory(registry, tmp_path / "build", name="MakeDirectory")

    assert registry.run_in_order("MakeDirectory")[0].status is TaskStatus.EXECUTED
    assert (tmp_path / "build").is_dir()
    assert registry.run_in_order("MakeDirectory")[0].status is TaskStatus.UP_TO_DATE


def test_provision_tool_chains_three_tasks(tmp_path: Path) -> None:
    seen: list[httpx.Request] = []
    descriptor = ToolDescriptor(
        name="ktlint",
        version="0.50.0",
        sha256=ARTIFACT_SHA256,
        source_url=URL,
        destination=tmp_path / "ktlint.jar",
    )
    registry = TaskRegistry()

    verified = provision_tool(
        registry,
        descriptor,
        build_dir=tmp_path / "build",
        client_factory=_factory(_serve_artifact(seen)),
    )
    outcomes = registry.run_in_order(verified)

    assert verified.name == "KtlintDownloadVerify"
    assert [outcome.name for outcome in outcomes] == [
        "KtlintMakeDirectory",
        "KtlintDownload",
        "KtlintDownloadVerify",
    ]
    assert (tmp_path / "build").is_dir()
    assert (tmp_path / "ktlint.jar").read_bytes() == ARTIFACT
    assert len(seen) == 1


def test_tool_descriptor_validation(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        ToolDescriptor(
            name="ktlint",
            version="0.50.0",
            sha256="not-a-digest",
            source_url=URL,
            destination=tmp_path / "ktlint.jar",
        )
    with pytest.raises(ValueError):
        ToolDescriptor(
            name="ktlint",
            version="0.50.0",
            sha256=ARTIFACT_SHA256,
            source_url="ftp://repo.example.invalid/ktlint.jar",
            destination=tmp_path / "ktlint.jar",
        )

    descriptor = ToolDescriptor(
        name="ktlint",
        version="0.50.0",
        sha256=ARTIFACT_SHA256.upper(),
        source_url=URL,
        destination=tmp_path / "ktlint.jar",
    )
    assert descriptor.sha256 == ARTIFACT_SHA256
    assert descriptor.task_prefix == "Ktlint"
    assert descriptor.to_dict()["algorithm"] == "SHA-256"
