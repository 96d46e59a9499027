"""Invariant number formatting around coverage conversion.

The conversion tool formats coverage ratios using the current culture, so a
build agent with a decimal-comma locale would produce ``12,5`` where the
scanner expects ``12.5``. Conversion therefore runs with the culture pinned,
and the output is normalized afterwards for tools that ignore the pin.
"""

from __future__ import annotations

import locale
import re
import xml.etree.ElementTree as ET
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path

import structlog

log = structlog.get_logger(__name__)

INVARIANT_LOCALE = "C"

_DECIMAL_COMMA = re.compile(r"^-?\d+,\d+$")
_NUMERIC_ATTRIBUTE_SUFFIXES = ("coverage", "rate")


@contextmanager
def invariant_culture() -> Iterator[None]:
    """Pin LC_NUMERIC to the invariant locale for the duration of the block.

    The previous value is restored on exit, including when the block raises.
    Process-wide: not safe to nest across threads.
    """
    previous = locale.setlocale(locale.LC_NUMERIC)
    locale.setlocale(locale.LC_NUMERIC, INVARIANT_LOCALE)
    try:
        yield
    finally:
        locale.setlocale(locale.LC_NUMERIC, previous)


def invariant_environment(base_env: Mapping[str, str]) -> dict[str, str]:
    """Child process environment with the culture pinned to invariant."""
    env = dict(base_env)
    env.update(
        {
            "LC_ALL": INVARIANT_LOCALE,
            "LANG": INVARIANT_LOCALE,
            "DOTNET_SYSTEM_GLOBALIZATION_INVARIANT": "1",
            # Keep the tool quiet and non-interactive
            "DOTNET_CLI_TELEMETRY_OPTOUT": "1",
            "DOTNET_NOLOGO": "1",
            "DOTNET_SKIP_FIRST_TIME_EXPERIENCE": "1",
            "NO_COLOR": "1",
        }
    )
    return env


def _is_numeric_attribute(name: str) -> bool:
    local = name.rsplit("}", 1)[-1].lower()
    return local.endswith(_NUMERIC_ATTRIBUTE_SUFFIXES)


def normalize_decimal_separators(xml_path: Path) -> int:
    """Rewrite decimal-comma ratios in xml_path to dot form.

    Returns the number of attribute values changed. The file is only
    rewritten when something changed.

    Raises:
        ET.ParseError: If the file is not well-formed XML.
        OSError: If the file cannot be read or written.
    """
    tree = ET.parse(xml_path)
    changed = 0
    for elem in tree.iter():
        for name, value in list(elem.attrib.items()):
            if _is_numeric_attribute(name) and _DECIMAL_COMMA.match(value):
                elem.set(name, value.replace(",", "."))
                changed += 1

    if changed:
        tree.write(xml_path, encoding="utf-8", xml_declaration=True)
        log.debug("culture.normalized", path=str(xml_path), values=changed)
    return changed
