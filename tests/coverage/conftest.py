"""Shared fixtures for coverage pipeline tests."""

from __future__ import annotations

import sys
import textwrap
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from covbridge.config.constants import TRX_NAMESPACE
from covbridge.coverage.converter import ConversionTool

CODE_COVERAGE_URI = "datacollector://microsoft/CodeCoverage/2.0"


def make_trx(
    attachments: Sequence[str] = (),
    *,
    deployment_root: str | None = None,
    namespace: str | None = TRX_NAMESPACE,
    collector_uri: str = CODE_COVERAGE_URI,
) -> str:
    """Render a minimal result file referencing the given attachments."""
    xmlns = f' xmlns="{namespace}"' if namespace else ""
    settings = ""
    if deployment_root is not None:
        settings = (
            '  <TestSettings name="default">\n'
            f'    <Deployment runDeploymentRoot="{deployment_root}" />\n'
            "  </TestSettings>\n"
        )
    anchors = "".join(
        f'            <UriAttachment><A href="{href}" /></UriAttachment>\n' for href in attachments
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<TestRun id="1"{xmlns}>\n'
        f"{settings}"
        "  <ResultSummary outcome=\"Completed\">\n"
        "    <CollectorDataEntries>\n"
        f'      <Collector agentName="MACHINE" uri="{collector_uri}">\n'
        "        <UriAttachments>\n"
        f"{anchors}"
        "        </UriAttachments>\n"
        "      </Collector>\n"
        "    </CollectorDataEntries>\n"
        "  </ResultSummary>\n"
        "</TestRun>\n"
    )


WriteTrx = Callable[..., Path]


@pytest.fixture
def write_trx() -> WriteTrx:
    """Write a result file: write_trx(directory, name, attachments, **make_trx_kwargs)."""

    def _write(
        directory: Path,
        name: str = "run.trx",
        attachments: Sequence[str] = (),
        **kwargs: object,
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        path.write_text(make_trx(attachments, **kwargs), encoding="utf-8")  # type: ignore[arg-type]
        return path

    return _write


def touch(path: Path, content: bytes = b"coverage") -> Path:
    """Create a file (and its parents) with the given bytes."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path

FAKE_TOOL = textwrap.dedent(
    """
    import os
    import sys
    import time

    mode = os.environ.get("FAKE_TOOL_MODE", "comma")
    source, target = sys.argv[1], sys.argv[2]
    lc_all = os.environ.get("LC_ALL", "")

    if mode == "fail":
        sys.stderr.write("boom")
        sys.exit(3)
    if mode == "garbled_fail":
        sys.stderr.buffer.write(b"Fehler \\xfc\\xff beim Lesen")
        sys.exit(4)
    if mode == "hang":
        time.sleep(30)
    if mode == "badxml":
        open(target, "w").write("<results")
    if mode == "garbled":
        sys.stdout.buffer.write(b"Konvertierung \\xfc\\xff fertig\\n")
        sys.stderr.buffer.write(b"\\xfe\\n")
    if mode in ("comma", "dot", "garbled"):
        ratio = "12,5" if mode != "dot" else "12.5"
        with open(target, "w") as f:
            f.write(
                '<results><module name="%s" block_coverage="%s" lc_all="%s" /></results>'
                % (os.path.basename(source), ratio, lc_all)
            )
    """
)


class ScriptTool(ConversionTool):
    """Runs a Python script with the current interpreter instead of a real tool."""

    def build_command(self, input_path: Path, output_path: Path) -> list[str]:
        return [sys.executable, str(self.executable), str(input_path), str(output_path)]


@pytest.fixture
def script_tool(tmp_path: Path) -> ScriptTool:
    script = tmp_path / "fake_tool.py"
    script.write_text(FAKE_TOOL)
    return ScriptTool(executable=script)
