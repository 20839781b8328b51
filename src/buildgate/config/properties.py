"""
buildgate — typed module property access.

Purpose
- Read strongly-typed values from a module's declared properties.
- Parse Java ``.properties`` files and layer module files over the root file.

Functional requirements
- Required reads fail with ``MissingPropertyError`` naming the module and key.
- Integer and boolean reads are strict: booleans are exactly ``true`` or ``false``;
  there is no case folding and no ``1``/``0`` fallback.
- Optional booleans fall back to the default only when the key is wholly absent.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Final, Protocol

from buildgate.domain.errors import (
    InvalidFormatError,
    MissingPropertyError,
    PropertiesFileError,
)

PathLike = str | os.PathLike[str]

PROPERTIES_ENCODING: Final[str] = "latin-1"

_INTEGER_RE: Final[re.Pattern[str]] = re.compile(r"^[+-]?[0-9]+$")
_HEX_RE: Final[re.Pattern[str]] = re.compile(r"[0-9A-Fa-f]{4}")
_BOOLEAN_LITERALS: Final[Mapping[str, bool]] = {"true": True, "false": False}
_SEPARATORS: Final[frozenset[str]] = frozenset({"=", ":"})
_WHITESPACE: Final[frozenset[str]] = frozenset({" ", "\t", "\f"})
_ESCAPES: Final[Mapping[str, str]] = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}


class PropertySource(Protocol):
    """Anything exposing a name and a string-to-string property mapping."""

    @property
    def name(self) -> str: ...

    @property
    def properties(self) -> Mapping[str, str]: ...


def get_string(module: PropertySource, key: str) -> str:
    value = module.properties.get(key)
    if value is None:
        raise MissingPropertyError(module.name, key)
    return value


def get_optional(module: PropertySource, key: str) -> str | None:
    return module.properties.get(key)


def get_int(module: PropertySource, key: str) -> int:
    return _parse_int(module, key, get_string(module, key))


def get_boolean(module: PropertySource, key: str) -> bool:
    return _parse_boolean(module, key, get_string(module, key))


def get_boolean_optional(module: PropertySource, key: str, default: bool) -> bool:
    value = get_optional(module, key)
    if value is None:
        return default
    return _parse_boolean(module, key, value)


def load_properties(path: PathLike) -> dict[str, str]:
    """Load a ``.properties`` file; a missing file yields an empty mapping.

    The file is decoded as ISO-8859-1, like ``java.util.Properties.load``; other
    characters must be written as ``\\uXXXX`` escapes.
    """

    source = Path(path)
    if not source.is_file():
        return {}
    try:
        text = source.read_text(encoding=PROPERTIES_ENCODING)
    except OSError as exc:
        raise PropertiesFileError(source, f"unable to read properties ({exc})") from exc
    try:
        return parse_properties(text)
    except ValueError as exc:
        raise PropertiesFileError(source, str(exc)) from exc


def merged_properties(root_file: PathLike, module_file: PathLike | None) -> dict[str, str]:
    """Root properties overlaid with module properties; module values win."""

    merged = load_properties(root_file)
    if module_file is not None and Path(module_file) != Path(root_file):
        merged.update(load_properties(module_file))
    return merged


def parse_properties(text: str) -> dict[str, str]:
    """Parse Java properties syntax into an ordered mapping.

    Raises ``ValueError`` on a malformed ``\\uXXXX`` escape.
    """

    entries: dict[str, str] = {}
    for logical in _logical_lines(text):
        key, value = _split_entry(logical)
        entries[key] = value
    return entries


def _parse_int(module: PropertySource, key: str, text: str) -> int:
    if not _INTEGER_RE.fullmatch(text):
        raise InvalidFormatError(module.name, key, text, "a decimal integer")
    return int(text)


def _parse_boolean(module: PropertySource, key: str, text: str) -> bool:
    parsed = _BOOLEAN_LITERALS.get(text)
    if parsed is None:
        raise InvalidFormatError(module.name, key, text, "exactly 'true' or 'false'")
    return parsed


def _logical_lines(text: str) -> list[str]:
    lines: list[str] = []
    pending: list[str] = []
    for raw in text.splitlines():
        line = raw.lstrip(" \t\f")
        if not pending and (not line or line[0] in "#!"):
            continue
        if _continues(line):
            pending.append(line[:-1])
            continue
        pending.append(line)
        lines.append("".join(pending))
        pending = []
    if pending:
        lines.append("".join(pending))
    return lines


def _continues(line: str) -> bool:
    trailing = len(line) - len(line.rstrip("\\"))
    return trailing % 2 == 1


def _split_entry(line: str) -> tuple[str, str]:
    index = 0
    length = len(line)
    while index < length:
        char = line[index]
        if char == "\\":
            index += 2
            continue
        if char in _SEPARATORS or char in _WHITESPACE:
            break
        index += 1

    key = line[:index]
    rest = index
    while rest < length and line[rest] in _WHITESPACE:
        rest += 1
    if rest < length and line[rest] in _SEPARATORS:
        rest += 1
        while rest < length and line[rest] in _WHITESPACE:
            rest += 1
    return _unescape(key), _unescape(line[rest:])


def _unescape(text: str) -> str:
    if "\\" not in text:
        return text

    out: list[str] = []
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if char != "\\" or index + 1 >= length:
            out.append(char)
            index += 1
            continue
        marker = text[index + 1]
        if marker == "u":
            digits = text[index + 2 : index + 6]
            if not _HEX_RE.fullmatch(digits):
                raise ValueError(f"malformed \\uxxxx encoding {text[index : index + 6]!r}")
            out.append(chr(int(digits, 16)))
            index += 6
            continue
        out.append(_ESCAPES.get(marker, marker))
        index += 2
    return "".join(out)


__all__ = [
    "PropertySource",
    "get_boolean",
    "get_boolean_optional",
    "get_int",
    "get_optional",
    "get_string",
    "load_properties",
    "merged_properties",
    "parse_properties",
]
