"""
buildgate — hashing utilities

Purpose
- Provide deterministic digest helpers for bytes and files, keyed by the
  algorithm names build scripts use (``SHA-256``, ``SHA-512``, ...).

Functional requirements
- Digest comparison is case-insensitive on the hex encoding.
- Unsupported algorithm names are rejected before any file is read.
"""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Final

PathLike = str | os.PathLike[str]

_FILE_READ_CHUNK_BYTES: Final[int] = 1024 * 1024
_ALGORITHMS: Final[dict[str, str]] = {
    "MD5": "md5",
    "SHA-1": "sha1",
    "SHA-256": "sha256",
    "SHA-512": "sha512",
}

__all__ = [
    "digest_file",
    "digests_match",
    "normalize_algorithm",
    "sha256_bytes",
    "sha256_file",
]


def normalize_algorithm(algorithm: str) -> str:
    """Map a ``SHA-256`` style name to its ``hashlib`` name or raise ``ValueError``."""

    key = algorithm.strip().upper()
    if key in _ALGORITHMS:
        return _ALGORITHMS[key]
    compact = key.replace("-", "").lower()
    for hashlib_name in _ALGORITHMS.values():
        if compact == hashlib_name:
            return hashlib_name
    supported = ", ".join(sorted(_ALGORITHMS))
    raise ValueError(f"unsupported digest algorithm {algorithm!r}; expected one of: {supported}")


def sha256_bytes(data: bytes) -> str:
    """Return SHA-256 hex digest for raw bytes."""

    return hashlib.sha256(data).hexdigest()


def sha256_file(path: PathLike, *, chunk_size: int = _FILE_READ_CHUNK_BYTES) -> str:
    """Return SHA-256 hex digest for a file read in chunks."""

    return digest_file(path, "SHA-256", chunk_size=chunk_size)


def digest_file(
    path: PathLike, algorithm: str, *, chunk_size: int = _FILE_READ_CHUNK_BYTES
) -> str:
    """Return the lowercase hex digest of ``path`` under ``algorithm``."""

    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")
    digest = hashlib.new(normalize_algorithm(algorithm))
    with Path(path).open("rb") as file_handle:
        while True:
            chunk = file_handle.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


def digests_match(expected_hex: str, actual_hex: str) -> bool:
    return expected_hex.strip().lower() == actual_hex.strip().lower()
