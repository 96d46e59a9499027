"""Coverage report processing for one build.

The processor ties the pipeline together:

    ResultFileLocator -> TrxCoverageReader -> (nothing resolved?) FallbackSearcher
        -> CoverageConverter -> properties file

It is initialized once with a BuildContext and processes once. Everything
that goes wrong with the build's own data is logged and skipped, so
processing always reports success; only misuse of the processor raises.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import structlog

from covbridge.build.context import BuildContext, BuildEnvironment
from covbridge.config.constants import (
    COVERAGE_XML_REPORTS_PATHS_PROPERTY,
    TEST_REPORTS_PATHS_PROPERTY,
    XML_COVERAGE_EXTENSION,
)
from covbridge.core.errors import ContractError
from covbridge.coverage.converter import CoverageConverter
from covbridge.coverage.dedupe import ContentHashDeduper
from covbridge.coverage.fallback import FallbackSearcher
from covbridge.coverage.locator import ResultFileLocator
from covbridge.coverage.models import ProcessingSummary
from covbridge.coverage.properties import PropertiesFileWriter
from covbridge.coverage.resolver import TrxCoverageReader

log = structlog.get_logger(__name__)


class ProcessorState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    PROCESSED = "processed"


class CoverageReportProcessor:
    """Finds, converts and publishes the coverage reports of a build.

    Usage::

        processor = CoverageReportProcessor(BinaryToXmlConverter())
        processor.initialize(context)
        processor.process_coverage_reports()
    """

    def __init__(
        self,
        converter: CoverageConverter,
        *,
        locator: ResultFileLocator | None = None,
        reader: TrxCoverageReader | None = None,
        deduper: ContentHashDeduper | None = None,
    ) -> None:
        if converter is None:
            raise ContractError.missing_argument("converter")
        self._converter = converter
        self._locator = locator or ResultFileLocator()
        self._reader = reader or TrxCoverageReader()
        self._deduper = deduper or ContentHashDeduper()

        self._state = ProcessorState.UNINITIALIZED
        self._context: BuildContext | None = None
        self._can_convert = False
        self._summary = ProcessingSummary()

    @property
    def state(self) -> ProcessorState:
        return self._state

    @property
    def summary(self) -> ProcessingSummary:
        """What the last run found and wrote."""
        return self._summary

    def initialize(self, context: BuildContext) -> bool:
        """Bind the processor to a build.

        Raises:
            ContractError: If context is None.
        """
        if context is None:
            raise ContractError.missing_argument("context")
        self._context = context
        self._can_convert = self._converter.initialize()
        self._summary = ProcessingSummary()
        self._state = ProcessorState.INITIALIZED
        log.debug(
            "processor.initialized",
            environment=context.environment.value,
            can_convert=self._can_convert,
        )
        return True

    def process_coverage_reports(self) -> bool:
        """Run the pipeline. Returns True; data problems are logged, not raised.

        Raises:
            ContractError: If called before initialize().
        """
        if self._state is ProcessorState.UNINITIALIZED or self._context is None:
            raise ContractError.not_initialized()
        if self._state is ProcessorState.PROCESSED:
            return True

        context = self._context
        if context.environment is BuildEnvironment.LEGACY_CI and context.skip_legacy_coverage:
            log.info("coverage.legacy_processing_skipped")
            self._summary.skipped = True
        else:
            self._process(context)

        self._state = ProcessorState.PROCESSED
        return True

    def _process(self, context: BuildContext) -> None:
        summary = self._summary

        summary.result_files = self._locator.find_result_files(context.search_root)
        coverage_files = self._reader.find_coverage_files(summary.result_files)

        # Legacy builds keep their coverage on the server, not in the agent temp dir
        if not coverage_files and context.environment is not BuildEnvironment.LEGACY_CI:
            fallback = FallbackSearcher(context.agent_temp_directory, deduper=self._deduper)
            temp_dir = fallback.get_agent_temp_directory()
            if temp_dir is not None:
                log.info(
                    "coverage.fallback_search",
                    reason="No coverage files were found at the expected location.",
                    path=str(temp_dir),
                )
                coverage_files = fallback.find_coverage_files()
                summary.used_fallback = True

        summary.coverage_files = coverage_files
        summary.xml_reports = self._convert_all(coverage_files)
        self._write_properties(context)

    def _convert_all(self, coverage_files: list[Path]) -> list[Path]:
        xml_reports: list[Path] = []
        for coverage_file in coverage_files:
            xml_file = coverage_file.with_suffix(XML_COVERAGE_EXTENSION)
            if xml_file.is_file():
                log.info("coverage.xml_exists_no_conversion", path=str(coverage_file))
                xml_reports.append(xml_file)
                continue

            if not self._can_convert:
                log.debug("coverage.conversion_unavailable", path=str(coverage_file))
                continue

            result = self._converter.convert(coverage_file, xml_file)
            if result:
                xml_reports.append(result.output_path)
            else:
                self._summary.failed_conversions.append(result)
        return xml_reports

    def _write_properties(self, context: BuildContext) -> None:
        writer = PropertiesFileWriter(context.properties_file_path)
        summary = self._summary

        entries: list[tuple[str, list[Path]]] = []
        if context.test_reports_supplied:
            log.info("coverage.test_reports_supplied", key=TEST_REPORTS_PATHS_PROPERTY)
        elif summary.result_files:
            entries.append((TEST_REPORTS_PATHS_PROPERTY, summary.result_files))

        if context.coverage_xml_reports_supplied:
            log.info("coverage.xml_reports_supplied", key=COVERAGE_XML_REPORTS_PATHS_PROPERTY)
        elif summary.xml_reports:
            entries.append((COVERAGE_XML_REPORTS_PATHS_PROPERTY, summary.xml_reports))

        for key, paths in entries:
            try:
                writer.append(key, paths)
            except OSError as e:
                log.warning(
                    "properties.write_failed",
                    path=str(writer.path),
                    key=key,
                    error=str(e),
                )
                continue
            summary.written_properties[key] = [str(p) for p in paths]
