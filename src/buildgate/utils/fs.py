"""Filesystem helpers: directory creation and all-or-nothing file writes."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import BinaryIO

PathLike = str | os.PathLike[str]


def ensure_directory(path: PathLike) -> Path:
    """Create ``path`` and its parents; an existing directory is fine."""

    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """Replace ``path`` with ``data`` so readers see either the old or the new content."""

    with atomic_writer(path) as handle:
        handle.write(data.encode(encoding) if isinstance(data, str) else data)


@contextmanager
def atomic_writer(path: PathLike) -> Iterator[BinaryIO]:
    """Yield a binary handle to a sibling temp file.

    On clean exit the temp file is fsynced and renamed over ``path``; on any error
    it is removed and ``path`` is left untouched.
    """

    target = Path(path)
    directory = target.parent.resolve(strict=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "wb") as handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_name, target)
    except BaseException:
        with suppress(OSError):
            os.unlink(temp_name)
        raise
    _sync_directory(directory)


def _sync_directory(directory: Path) -> None:
    # Persist the rename itself; not every platform can open a directory for fsync.
    if os.name == "nt":
        return
    with suppress(OSError):
        dir_fd = os.open(directory, os.O_RDONLY | getattr(os, "O_DIRECTORY", 0))
        try:
            os.fsync(dir_fd)
        finally:
            os.close(dir_fd)


__all__ = [
    "atomic_write",
    "atomic_writer",
    "ensure_directory",
]
