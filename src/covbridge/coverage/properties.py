"""Append-only writer for the scanner properties file."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import structlog

log = structlog.get_logger(__name__)


def _unicode_escape(char: str) -> str:
    # Java reads \u escapes as UTF-16 code units
    units = char.encode("utf-16-be")
    return "".join(
        f"\\u{int.from_bytes(units[i : i + 2], 'big'):04X}" for i in range(0, len(units), 2)
    )


def escape_value(value: str) -> str:
    """Escape a value for the Java properties format.

    Backslashes are doubled. Printable ASCII is kept as is, anything else
    (control characters, non-ASCII) becomes a ``\\uXXXX`` escape.
    """
    out: list[str] = []
    for char in value:
        if char == "\\":
            out.append("\\\\")
        elif " " <= char <= "~":
            out.append(char)
        else:
            out.append(_unicode_escape(char))
    return "".join(out)


def format_property(key: str, values: Iterable[str | Path]) -> str:
    """A single ``key=v1,v2`` line, without the trailing newline."""
    joined = ",".join(escape_value(str(v)) for v in values)
    return f"{key}={joined}"


class PropertiesFileWriter:
    """Appends properties to a file owned by the caller.

    The file is created if it does not exist and never read back.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def append(self, key: str, values: Iterable[str | Path]) -> str:
        line = format_property(key, values)
        with self._path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")
        log.debug("properties.appended", path=str(self._path), key=key)
        return line
