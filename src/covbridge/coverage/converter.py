"""Binary to XML coverage conversion.

Binary coverage files are converted by an external tool. Two tools are
supported: ``CodeCoverage.exe`` (shipped with Visual Studio and the VSTest
platform installer) and the cross-platform ``dotnet-coverage`` global tool.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import structlog

from covbridge.config.constants import (
    PATH_TOOL_NAMES,
    VSTEST_PLATFORM_TOOL_SUBPATHS,
)
from covbridge.config.models import ToolStyle
from covbridge.core.errors import ContractError
from covbridge.coverage.culture import (
    invariant_culture,
    invariant_environment,
    normalize_decimal_separators,
)
from covbridge.coverage.models import ConversionResult

log = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 60.0


class CoverageConverter(Protocol):
    """Converts binary coverage files to XML."""

    def initialize(self) -> bool:
        """Prepare the converter. False means no conversion is possible."""
        ...

    def convert(self, input_path: Path, output_path: Path) -> ConversionResult: ...


@dataclass(frozen=True, slots=True)
class ConversionTool:
    """An executable able to convert coverage, and its command line style."""

    executable: Path
    style: str = "codecoverage"

    def build_command(self, input_path: Path, output_path: Path) -> list[str]:
        if self.style == "dotnet-coverage":
            return [
                str(self.executable),
                "merge",
                str(input_path),
                "--output",
                str(output_path),
                "--output-format",
                "xml",
            ]
        return [str(self.executable), "analyze", f"/output:{output_path}", str(input_path)]


def _infer_style(executable: Path) -> str:
    if executable.name.lower().startswith("dotnet-coverage"):
        return "dotnet-coverage"
    return "codecoverage"


def _tool(executable: Path, style: ToolStyle) -> ConversionTool:
    resolved = _infer_style(executable) if style == "auto" else style
    return ConversionTool(executable=executable, style=resolved)


def _from_user_path(user_supplied_path: str, style: ToolStyle) -> ConversionTool | None:
    path = Path(user_supplied_path).expanduser()
    if path.is_file():
        return _tool(path, style)
    if path.is_dir():
        # VSTest platform installer root
        for parts in VSTEST_PLATFORM_TOOL_SUBPATHS:
            candidate = path.joinpath(*parts)
            if candidate.is_file():
                return _tool(candidate, style)
    log.info("converter.user_tool_not_found", path=user_supplied_path)
    return None


def locate_conversion_tool(
    user_supplied_path: str | None = None,
    *,
    style: ToolStyle = "auto",
    search_path: str | None = None,
) -> ConversionTool | None:
    """Find a conversion tool.

    A user supplied path (an executable or a VSTest platform install root)
    is tried first, then the known tool names on PATH.

    Args:
        user_supplied_path: Tool path or install root, if configured.
        style: Command line style, or "auto" to infer it from the file name.
        search_path: PATH override, mainly for tests.
    """
    if user_supplied_path:
        tool = _from_user_path(user_supplied_path, style)
        if tool is not None:
            return tool

    for name, default_style in PATH_TOOL_NAMES:
        found = shutil.which(name, path=search_path)
        if found:
            return ConversionTool(
                executable=Path(found),
                style=default_style if style == "auto" else style,
            )
    return None


def _require_path(value: Path | str | None, param: str) -> Path:
    if value is None or not str(value).strip():
        raise ContractError.missing_argument(param)
    return Path(value)


def _open_for_read(path: Path) -> None:
    """Fail if the file cannot be opened, e.g. while the test host holds it."""
    with path.open("rb") as f:
        f.read(1)


class BinaryToXmlConverter:
    """CoverageConverter backed by an external conversion tool."""

    def __init__(
        self,
        tool: ConversionTool | None = None,
        *,
        tool_path: str | None = None,
        tool_style: ToolStyle = "auto",
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._tool = tool
        self._tool_path = tool_path
        self._tool_style = tool_style
        self._timeout_sec = timeout_sec
        self._env = env if env is not None else os.environ

    @property
    def tool(self) -> ConversionTool | None:
        return self._tool

    def initialize(self) -> bool:
        if self._tool is None:
            self._tool = locate_conversion_tool(self._tool_path, style=self._tool_style)
        if self._tool is None:
            log.warning(
                "converter.tool_not_found",
                reason="Failed to find the code coverage conversion tool. "
                "Possible cause: the tool is not installed on the build agent.",
            )
            return False
        log.debug("converter.tool", path=str(self._tool.executable), style=self._tool.style)
        return True

    def convert(self, input_path: Path | str, output_path: Path | str) -> ConversionResult:
        """Convert one binary coverage file.

        Raises:
            ContractError: If either path is empty.
        """
        source = _require_path(input_path, "input_path")
        target = _require_path(output_path, "output_path")

        if not source.is_file():
            return self._fail(
                source,
                target,
                f"The binary coverage file {source} could not be found. "
                "No coverage information will be uploaded to the Sonar server.",
            )

        try:
            _open_for_read(source)
        except OSError as e:
            return self._fail(
                source, target, f"The binary coverage file {source} could not be read: {e}"
            )

        if self._tool is None:
            return self._fail(source, target, "No code coverage conversion tool is available.")

        error = self._run_tool(self._tool, source, target)
        if error is not None:
            return self._fail(
                source,
                target,
                "Failed to convert the binary code coverage reports to XML. "
                "No code coverage information will be uploaded to the server. "
                f"Check that the downloaded code coverage file ({source}) is valid "
                f"by opening it in Visual Studio. {error}",
            )

        log.debug("converter.converted", input=str(source), output=str(target))
        return ConversionResult.ok(source, target)

    def _run_tool(self, tool: ConversionTool, source: Path, target: Path) -> str | None:
        """Run the tool and normalize its output. Returns an error text or None."""
        cmd = tool.build_command(source, target)
        log.debug("converter.running", cmd=cmd)

        try:
            with invariant_culture():
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    timeout=self._timeout_sec,
                    env=invariant_environment(self._env),
                )
        except subprocess.TimeoutExpired:
            return f"The conversion tool timed out after {self._timeout_sec} seconds."
        except OSError as e:
            return f"The conversion tool could not be started: {e}"

        if result.returncode != 0:
            # Localized tools may print in any code page
            stderr = result.stderr.decode(errors="replace")
            stdout = result.stdout.decode(errors="replace")
            output = (stderr or stdout).strip()
            return f"The conversion tool exited with code {result.returncode}. {output}".strip()
        if not target.is_file():
            return "The conversion tool did not produce an output file."

        try:
            normalize_decimal_separators(target)
        except (ET.ParseError, OSError) as e:
            return f"The converted report is not valid XML: {e}"
        return None

    def _fail(self, source: Path, target: Path, message: str) -> ConversionResult:
        log.warning("converter.conversion_failed", input=str(source), error=message)
        return ConversionResult.failed(source, target, message)

