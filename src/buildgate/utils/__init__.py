"""Utility exports for filesystem, hashing, and concurrency helpers."""

from buildgate.utils.concurrency import BoundedSemaphore, CancellationToken, WorkerPool
from buildgate.utils.fs import atomic_write, atomic_writer, ensure_directory
from buildgate.utils.hashing import (
    digest_file,
    digests_match,
    normalize_algorithm,
    sha256_bytes,
    sha256_file,
)

__all__ = [
    "BoundedSemaphore",
    "CancellationToken",
    "WorkerPool",
    "atomic_write",
    "atomic_writer",
    "digest_file",
    "digests_match",
    "ensure_directory",
    "normalize_algorithm",
    "sha256_bytes",
    "sha256_file",
]
