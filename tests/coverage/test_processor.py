"""Tests for the coverage report processor."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from structlog.testing import capture_logs

from covbridge.build.context import BuildContext, BuildEnvironment
from covbridge.config.constants import (
    COVERAGE_XML_REPORTS_PATHS_PROPERTY,
    TEST_REPORTS_PATHS_PROPERTY,
)
from covbridge.core.errors import ContractError, ErrorCode
from covbridge.coverage import converter as converter_module
from covbridge.coverage.converter import BinaryToXmlConverter, ConversionTool
from covbridge.coverage.locator import ResultFileLocator
from covbridge.coverage.models import ConversionResult
from covbridge.coverage.processor import CoverageReportProcessor, ProcessorState
from covbridge.coverage.properties import format_property
from tests.coverage.conftest import ScriptTool, WriteTrx, touch


class FakeConverter:
    """Writes a stub XML report instead of running a tool."""

    def __init__(self, available: bool = True, fail_for: Iterable[str] = ()) -> None:
        self.available = available
        self.fail_for = set(fail_for)
        self.converted: list[Path] = []

    def initialize(self) -> bool:
        return self.available

    def convert(self, input_path: Path, output_path: Path) -> ConversionResult:
        self.converted.append(input_path)
        if input_path.name in self.fail_for:
            return ConversionResult.failed(input_path, output_path, "corrupt")
        output_path.write_text("<results />")
        return ConversionResult.ok(input_path, output_path)


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    path = tmp_path / "build"
    path.mkdir()
    return path


@pytest.fixture
def agent_temp(tmp_path: Path) -> Path:
    path = tmp_path / "agent_tmp"
    path.mkdir()
    return path


def _context(
    tmp_path: Path,
    *,
    environment: BuildEnvironment = BuildEnvironment.CURRENT_CI,
    agent_temp: Path | None = None,
    **kwargs: object,
) -> BuildContext:
    return BuildContext(
        environment=environment,
        analysis_base_directory=tmp_path / "build" / ".sonarqube",
        properties_file_path=tmp_path / "sonar-project.properties",
        build_directory=tmp_path / "build",
        agent_temp_directory=agent_temp,
        **kwargs,  # type: ignore[arg-type]
    )


def _properties(tmp_path: Path) -> list[str]:
    path = tmp_path / "sonar-project.properties"
    if not path.exists():
        return []
    return path.read_text(encoding="utf-8").splitlines()


def _run(context: BuildContext, converter: FakeConverter | BinaryToXmlConverter) -> CoverageReportProcessor:
    processor = CoverageReportProcessor(converter)
    processor.initialize(context)
    assert processor.process_coverage_reports() is True
    return processor


class TestContract:
    """Misuse of the processor is the only thing that raises."""

    def test_process_before_initialize_raises(self) -> None:
        processor = CoverageReportProcessor(FakeConverter())

        with pytest.raises(ContractError) as exc_info:
            processor.process_coverage_reports()

        assert exc_info.value.code == ErrorCode.PROCESSOR_NOT_INITIALIZED
        assert "not initialized" in exc_info.value.message

    def test_initialize_with_none_raises(self) -> None:
        with pytest.raises(ContractError) as exc_info:
            CoverageReportProcessor(FakeConverter()).initialize(None)  # type: ignore[arg-type]

        assert exc_info.value.param_name == "context"

    def test_none_converter_raises(self) -> None:
        with pytest.raises(ContractError) as exc_info:
            CoverageReportProcessor(None)  # type: ignore[arg-type]

        assert exc_info.value.param_name == "converter"

    def test_state_transitions(self, tmp_path: Path, build_dir: Path) -> None:
        processor = CoverageReportProcessor(FakeConverter())
        assert processor.state is ProcessorState.UNINITIALIZED

        processor.initialize(_context(tmp_path))
        assert processor.state is ProcessorState.INITIALIZED

        processor.process_coverage_reports()
        assert processor.state is ProcessorState.PROCESSED

    def test_second_call_does_not_reprocess(self, tmp_path: Path, build_dir: Path) -> None:
        locator = MagicMock(spec=ResultFileLocator)
        locator.find_result_files.return_value = []
        processor = CoverageReportProcessor(FakeConverter(), locator=locator)
        processor.initialize(_context(tmp_path))

        assert processor.process_coverage_reports() is True
        assert processor.process_coverage_reports() is True
        locator.find_result_files.assert_called_once_with(build_dir)


class TestNoThrow:
    """Data problems never escape process_coverage_reports."""

    def test_zero_result_files(self, tmp_path: Path, build_dir: Path) -> None:
        processor = _run(_context(tmp_path), FakeConverter())

        assert processor.summary.result_files == []
        assert _properties(tmp_path) == []

    def test_zero_coverage_files(self, tmp_path: Path, build_dir: Path, write_trx: WriteTrx) -> None:
        trx = write_trx(build_dir / "TestResults", "run.trx")

        processor = _run(_context(tmp_path), FakeConverter())

        assert processor.summary.coverage_files == []
        assert _properties(tmp_path) == [format_property(TEST_REPORTS_PATHS_PROPERTY, [trx])]

    def test_unparsable_result_file(self, tmp_path: Path, build_dir: Path) -> None:
        touch(build_dir / "TestResults" / "broken.trx", b"<TestRun")

        with capture_logs() as logs:
            processor = _run(_context(tmp_path), FakeConverter())

        assert processor.summary.coverage_files == []
        assert any(e["event"] == "trx.invalid_file" for e in logs)

    def test_locked_input_file(
        self,
        tmp_path: Path,
        build_dir: Path,
        write_trx: WriteTrx,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        results = build_dir / "TestResults"
        touch(results / "run" / "In" / "a.coverage")
        write_trx(results, "run.trx", ["a.coverage"])

        def locked(path: Path) -> None:
            raise PermissionError(13, "in use", str(path))

        monkeypatch.setattr(converter_module, "_open_for_read", locked)
        converter = BinaryToXmlConverter(ConversionTool(executable=tmp_path / "never-run"))

        processor = _run(_context(tmp_path), converter)

        assert processor.summary.xml_reports == []
        assert len(processor.summary.failed_conversions) == 1
        assert all(COVERAGE_XML_REPORTS_PATHS_PROPERTY not in line for line in _properties(tmp_path))

    def test_tool_output_in_foreign_encoding(
        self, tmp_path: Path, build_dir: Path, write_trx: WriteTrx, script_tool: ScriptTool
    ) -> None:
        results = build_dir / "TestResults"
        touch(results / "run" / "In" / "a.coverage")
        write_trx(results, "run.trx", ["a.coverage"])
        converter = BinaryToXmlConverter(
            script_tool, env={**os.environ, "FAKE_TOOL_MODE": "garbled"}
        )

        processor = _run(_context(tmp_path), converter)

        assert processor.summary.xml_reports == [results / "run" / "In" / "a.coveragexml"]
        assert processor.summary.failed_conversions == []

    def test_nothing_logged_at_error_level(
        self, tmp_path: Path, build_dir: Path, write_trx: WriteTrx
    ) -> None:
        results = build_dir / "TestResults"
        write_trx(results, "run.trx", ["missing.coverage"])
        touch(results / "broken.trx", b"<<<")

        with capture_logs() as logs:
            _run(_context(tmp_path), FakeConverter())

        assert all(e["log_level"] not in ("error", "critical") for e in logs)


class TestScenarios:
    """End-to-end behavior of one processor run."""

    def test_underscored_attachment_is_converted_and_published(
        self, tmp_path: Path, build_dir: Path, write_trx: WriteTrx
    ) -> None:
        """The attachment lives under the underscored result name."""
        results = build_dir / "TestResults"
        trx = write_trx(results, "my run.trx", ["M\\a.coverage"])
        coverage = touch(results / "my_run" / "In" / "M" / "a.coverage")
        converter = FakeConverter()

        processor = _run(_context(tmp_path), converter)

        xml = coverage.with_suffix(".coveragexml")
        assert converter.converted == [coverage]
        assert xml.exists()
        assert _properties(tmp_path) == [
            format_property(TEST_REPORTS_PATHS_PROPERTY, [trx]),
            format_property(COVERAGE_XML_REPORTS_PATHS_PROPERTY, [xml]),
        ]
        assert processor.summary.written_properties == {
            TEST_REPORTS_PATHS_PROPERTY: [str(trx)],
            COVERAGE_XML_REPORTS_PATHS_PROPERTY: [str(xml)],
        }

    def test_existing_xml_is_not_reconverted(
        self, tmp_path: Path, build_dir: Path, write_trx: WriteTrx
    ) -> None:
        results = build_dir / "TestResults"
        write_trx(results, "run.trx", ["a.coverage"])
        touch(results / "a.coverage")
        xml = touch(results / "a.coveragexml", b"<results />")
        converter = FakeConverter()

        processor = _run(_context(tmp_path), converter)

        assert converter.converted == []
        assert processor.summary.xml_reports == [xml]

    def test_failed_conversion_skips_only_that_file(
        self, tmp_path: Path, build_dir: Path, write_trx: WriteTrx
    ) -> None:
        results = build_dir / "TestResults"
        write_trx(results, "run.trx", ["bad.coverage", "good.coverage"])
        touch(results / "bad.coverage", b"bad")
        good = touch(results / "good.coverage", b"good")
        converter = FakeConverter(fail_for=["bad.coverage"])

        processor = _run(_context(tmp_path), converter)

        assert processor.summary.xml_reports == [good.with_suffix(".coveragexml")]
        assert [r.input_path.name for r in processor.summary.failed_conversions] == [
            "bad.coverage"
        ]

    def test_unavailable_converter_still_publishes_existing_xml(
        self, tmp_path: Path, build_dir: Path, write_trx: WriteTrx
    ) -> None:
        results = build_dir / "TestResults"
        write_trx(results, "run.trx", ["a.coverage", "b.coverage"])
        touch(results / "a.coverage", b"a")
        touch(results / "b.coverage", b"b")
        xml = touch(results / "a.coveragexml", b"<results />")
        converter = FakeConverter(available=False)

        processor = _run(_context(tmp_path), converter)

        assert converter.converted == []
        assert processor.summary.xml_reports == [xml]


class TestFallback:
    """Agent temp directory recovery."""

    def test_not_used_when_any_attachment_resolves(
        self, tmp_path: Path, build_dir: Path, agent_temp: Path, write_trx: WriteTrx
    ) -> None:
        results = build_dir / "TestResults"
        write_trx(results, "one.trx", ["a.coverage"])
        write_trx(results, "two.trx", ["missing.coverage"])
        resolved = touch(results / "a.coverage", b"resolved")
        touch(agent_temp / "orphan.coverage", b"orphan")
        converter = FakeConverter()

        processor = _run(_context(tmp_path, agent_temp=agent_temp), converter)

        assert converter.converted == [resolved]
        assert processor.summary.used_fallback is False

    def test_used_when_nothing_resolves(
        self, tmp_path: Path, build_dir: Path, agent_temp: Path, write_trx: WriteTrx
    ) -> None:
        write_trx(build_dir / "TestResults", "run.trx", ["missing.coverage"])
        dup1 = touch(agent_temp / "a" / "dup1.coverage", b"same")
        touch(agent_temp / "b" / "dup2.coverage", b"same")
        converter = FakeConverter()

        with capture_logs() as logs:
            processor = _run(_context(tmp_path, agent_temp=agent_temp), converter)

        assert processor.summary.used_fallback is True
        assert converter.converted == [dup1]
        notice = next(e for e in logs if e["event"] == "coverage.fallback_search")
        assert notice["log_level"] == "info"

    def test_used_without_result_files(
        self, tmp_path: Path, build_dir: Path, agent_temp: Path
    ) -> None:
        orphan = touch(agent_temp / "orphan.coverage")
        converter = FakeConverter()

        processor = _run(_context(tmp_path, agent_temp=agent_temp), converter)

        assert converter.converted == [orphan]
        assert _properties(tmp_path) == [
            format_property(COVERAGE_XML_REPORTS_PATHS_PROPERTY, [orphan.with_suffix(".coveragexml")])
        ]
        assert processor.summary.used_fallback is True

    def test_skipped_when_temp_directory_missing(self, tmp_path: Path, build_dir: Path) -> None:
        processor = _run(
            _context(tmp_path, agent_temp=tmp_path / "no-such-dir"), FakeConverter()
        )

        assert processor.summary.used_fallback is False

    def test_not_used_for_legacy_builds(
        self, tmp_path: Path, build_dir: Path, agent_temp: Path
    ) -> None:
        touch(agent_temp / "orphan.coverage")
        converter = FakeConverter()

        processor = _run(
            _context(tmp_path, environment=BuildEnvironment.LEGACY_CI, agent_temp=agent_temp),
            converter,
        )

        assert converter.converted == []
        assert processor.summary.used_fallback is False


class TestSuppliedReports:
    """Categories the caller already supplied are not written again."""

    def _setup(self, build_dir: Path, write_trx: WriteTrx) -> Path:
        results = build_dir / "TestResults"
        write_trx(results, "run.trx", ["a.coverage"])
        return touch(results / "a.coverage")

    def test_supplied_test_reports_are_not_written(
        self, tmp_path: Path, build_dir: Path, write_trx: WriteTrx
    ) -> None:
        coverage = self._setup(build_dir, write_trx)

        _run(_context(tmp_path, test_reports_paths="custom.trx"), FakeConverter())

        assert _properties(tmp_path) == [
            format_property(COVERAGE_XML_REPORTS_PATHS_PROPERTY, [coverage.with_suffix(".coveragexml")])
        ]

    def test_supplied_coverage_reports_are_not_written(
        self, tmp_path: Path, build_dir: Path, write_trx: WriteTrx
    ) -> None:
        self._setup(build_dir, write_trx)

        _run(_context(tmp_path, coverage_xml_reports_paths="custom.xml"), FakeConverter())

        lines = _properties(tmp_path)
        assert len(lines) == 1
        assert lines[0].startswith(TEST_REPORTS_PATHS_PROPERTY + "=")

    def test_both_supplied_writes_nothing(
        self, tmp_path: Path, build_dir: Path, write_trx: WriteTrx
    ) -> None:
        self._setup(build_dir, write_trx)

        processor = _run(
            _context(tmp_path, test_reports_paths="t.trx", coverage_xml_reports_paths="c.xml"),
            FakeConverter(),
        )

        assert _properties(tmp_path) == []
        assert processor.summary.written_properties == {}


class TestLegacyBuilds:
    def test_skip_flag_bypasses_pipeline(self, tmp_path: Path, build_dir: Path) -> None:
        locator = MagicMock(spec=ResultFileLocator)
        processor = CoverageReportProcessor(FakeConverter(), locator=locator)
        processor.initialize(
            _context(tmp_path, environment=BuildEnvironment.LEGACY_CI, skip_legacy_coverage=True)
        )

        with capture_logs() as logs:
            assert processor.process_coverage_reports() is True

        locator.find_result_files.assert_not_called()
        assert processor.summary.skipped is True
        assert any(
            e["event"] == "coverage.legacy_processing_skipped" and e["log_level"] == "info"
            for e in logs
        )

    def test_skip_flag_ignored_outside_legacy_builds(
        self, tmp_path: Path, build_dir: Path, write_trx: WriteTrx
    ) -> None:
        write_trx(build_dir / "TestResults", "run.trx")

        processor = _run(_context(tmp_path, skip_legacy_coverage=True), FakeConverter())

        assert processor.summary.skipped is False
        assert len(processor.summary.result_files) == 1

    def test_legacy_build_searches_result_files(
        self, tmp_path: Path, build_dir: Path, write_trx: WriteTrx
    ) -> None:
        results = build_dir / "TestResults"
        write_trx(results, "run.trx", ["a.coverage"])
        coverage = touch(results / "a.coverage")
        converter = FakeConverter()

        _run(_context(tmp_path, environment=BuildEnvironment.LEGACY_CI), converter)

        assert converter.converted == [coverage]
