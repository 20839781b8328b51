"""
buildgate — external tool acquisition.

Purpose
- Fetch a pinned tool artifact over HTTPS and verify it against a pinned digest,
  expressed as three chained tasks: make directory, download, verify.

Functional requirements
- Downloads stream into a temporary file in the destination directory and replace
  the destination atomically; a failed download never leaves a partial artifact.
- With ``skip_if_unmodified`` an existing destination is revalidated with
  ``If-Modified-Since`` and a ``304`` response counts as up to date.
- Transport failures and unexpected statuses raise ``DownloadError``; nothing is retried.
- Verification always runs, even when the download was skipped, and raises
  ``ChecksumMismatchError`` unless the digests match case-insensitively.
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from email.utils import formatdate, parsedate_to_datetime
from pathlib import Path
from typing import TYPE_CHECKING, Final
from urllib.parse import urlsplit

import httpx

from buildgate import __version__
from buildgate.domain.errors import ChecksumMismatchError, DownloadError
from buildgate.tasks.registry import TaskKind, TaskStatus
from buildgate.utils import fs
from buildgate.utils.hashing import digest_file, digests_match, normalize_algorithm

if TYPE_CHECKING:
    from buildgate.tasks.registry import Task, TaskRegistry

ClientFactory = Callable[[], httpx.Client]

DEFAULT_ALGORITHM: Final[str] = "SHA-256"
_HEX_RE: Final[re.Pattern[str]] = re.compile(r"^[0-9a-fA-F]+$")
_DIGEST_HEX_LENGTHS: Final[dict[str, int]] = {"md5": 32, "sha1": 40, "sha256": 64, "sha512": 128}
_CONNECT_TIMEOUT_SECONDS: Final[float] = 10.0
_READ_TIMEOUT_SECONDS: Final[float] = 60.0


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    """Immutable pin of an external tool: where it comes from and what it must hash to."""

    name: str
    version: str
    sha256: str
    source_url: str
    destination: Path
    algorithm: str = DEFAULT_ALGORITHM

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("ToolDescriptor.name must be non-empty")
        object.__setattr__(self, "destination", Path(self.destination))
        object.__setattr__(self, "sha256", _normalize_digest(self.sha256, self.algorithm))
        _require_https(self.source_url)

    @property
    def task_prefix(self) -> str:
        """``ktlint`` -> ``Ktlint``; used to name the provisioning tasks."""
        return self.name[:1].upper() + self.name[1:]

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "version": self.version,
            "algorithm": self.algorithm,
            "sha256": self.sha256,
            "source_url": self.source_url,
            "destination": self.destination.as_posix(),
        }


def build_http_client(*, transport: httpx.BaseTransport | None = None) -> httpx.Client:
    """Create the ``httpx.Client`` used for artifact downloads."""

    return httpx.Client(
        timeout=httpx.Timeout(_READ_TIMEOUT_SECONDS, connect=_CONNECT_TIMEOUT_SECONDS),
        follow_redirects=True,
        headers={"User-Agent": f"buildgate/{__version__}"},
        transport=transport,
    )


def ensure_directory(
    registry: TaskRegistry,
    path: str | os.PathLike[str],
    *,
    name: str | None = None,
    depends_on: Sequence[str | Task] = (),
) -> Task:
    """Define a task creating ``path`` and its parents; an existing directory is fine."""

    directory = Path(path)

    def action() -> None:
        fs.ensure_directory(directory)

    return registry.define_task(
        name or f"mkdir:{directory.as_posix()}",
        TaskKind.MKDIR,
        action,
        depends_on=depends_on,
        up_to_date=directory.is_dir,
        description=f"create {directory.as_posix()}",
    )


def download(
    registry: TaskRegistry,
    source_url: str,
    destination: str | os.PathLike[str],
    *,
    name: str | None = None,
    overwrite_existing: bool = True,
    skip_if_unmodified: bool = True,
    depends_on: Sequence[str | Task] = (),
    client_factory: ClientFactory | None = None,
) -> Task:
    """Define a task that fetches ``source_url`` into ``destination``."""

    _require_https(source_url)
    target = Path(destination)
    factory = client_factory if client_factory is not None else build_http_client

    def action() -> TaskStatus | None:
        if target.exists() and not overwrite_existing:
            return TaskStatus.UP_TO_DATE
        headers: dict[str, str] = {}
        if skip_if_unmodified and target.exists():
            headers["If-Modified-Since"] = formatdate(target.stat().st_mtime, usegmt=True)
        return fetch(factory, source_url, target, headers=headers)

    return registry.define_task(
        name or f"download:{target.name}",
        TaskKind.DOWNLOAD,
        action,
        depends_on=depends_on,
        description=f"download {source_url} -> {target.as_posix()}",
    )


def fetch(
    client_factory: ClientFactory,
    source_url: str,
    target: Path,
    *,
    headers: dict[str, str] | None = None,
) -> TaskStatus | None:
    """Stream ``source_url`` into ``target``; returns ``UP_TO_DATE`` on ``304``."""

    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        with client_factory() as client:
            with client.stream("GET", source_url, headers=headers or {}) as response:
                if response.status_code == httpx.codes.NOT_MODIFIED:
                    return TaskStatus.UP_TO_DATE
                if not response.is_success:
                    raise DownloadError(
                        source_url, f"HTTP {response.status_code} {response.reason_phrase}".strip()
                    )
                with fs.atomic_writer(target) as handle:
                    for chunk in response.iter_bytes():
                        handle.write(chunk)
                last_modified = response.headers.get("Last-Modified")
    except httpx.HTTPError as exc:
        raise DownloadError(source_url, str(exc) or type(exc).__name__) from exc

    _apply_last_modified(target, last_modified)
    return None


def verify(
    registry: TaskRegistry,
    path: str | os.PathLike[str],
    expected: str,
    *,
    algorithm: str = DEFAULT_ALGORITHM,
    name: str | None = None,
    depends_on: Sequence[str | Task] = (),
) -> Task:
    """Define a task that recomputes the digest of ``path`` on every run."""

    normalize_algorithm(algorithm)
    artifact = Path(path)
    expected_hex = _normalize_digest(expected, algorithm)

    def action() -> None:
        check_digest(artifact, expected_hex, algorithm=algorithm)

    return registry.define_task(
        name or f"verify:{artifact.name}",
        TaskKind.VERIFY,
        action,
        depends_on=depends_on,
        description=f"verify {algorithm} of {artifact.as_posix()}",
    )


def check_digest(path: Path, expected: str, *, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Return the digest of ``path`` or raise ``ChecksumMismatchError``."""

    if not path.is_file():
        raise ChecksumMismatchError(path, algorithm, expected, "<missing file>")
    actual = digest_file(path, algorithm)
    if not digests_match(expected, actual):
        raise ChecksumMismatchError(path, algorithm, expected, actual)
    return actual


def provision_tool(
    registry: TaskRegistry,
    descriptor: ToolDescriptor,
    *,
    build_dir: str | os.PathLike[str],
    client_factory: ClientFactory | None = None,
) -> Task:
    """Define ``<Tool>MakeDirectory -> <Tool>Download -> <Tool>DownloadVerify``.

    Returns the verification task, which is what consumers of the tool depend on.
    """

    prefix = descriptor.task_prefix
    make_directory = ensure_directory(registry, build_dir, name=f"{prefix}MakeDirectory")
    fetched = download(
        registry,
        descriptor.source_url,
        descriptor.destination,
        name=f"{prefix}Download",
        overwrite_existing=True,
        skip_if_unmodified=True,
        depends_on=(make_directory,),
        client_factory=client_factory,
    )
    return verify(
        registry,
        descriptor.destination,
        descriptor.sha256,
        algorithm=descriptor.algorithm,
        name=f"{prefix}DownloadVerify",
        depends_on=(fetched,),
    )


def _apply_last_modified(target: Path, header: str | None) -> None:
    if not header:
        return
    try:
        stamp = parsedate_to_datetime(header).timestamp()
    except (TypeError, ValueError):
        return
    os.utime(target, (stamp, stamp))


def _normalize_digest(value: str, algorithm: str) -> str:
    normalized = value.strip().lower()
    expected_length = _DIGEST_HEX_LENGTHS[normalize_algorithm(algorithm)]
    if len(normalized) != expected_length or not _HEX_RE.fullmatch(normalized):
        raise ValueError(
            f"{algorithm} digest must be {expected_length} hex characters, got {value!r}"
        )
    return normalized


def _require_https(url: str) -> None:
    parts = urlsplit(url)
    if parts.scheme != "https" or not parts.netloc:
        raise ValueError(f"artifact URL must be an absolute https URL, got {url!r}")


__all__ = [
    "ClientFactory",
    "DEFAULT_ALGORITHM",
    "ToolDescriptor",
    "build_http_client",
    "check_digest",
    "download",
    "ensure_directory",
    "fetch",
    "provision_tool",
    "verify",
]
