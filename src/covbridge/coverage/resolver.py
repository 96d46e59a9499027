"""Attachment path resolution.

An attachment URI recorded in a result file is relative to a folder whose
location depends on the runner version and settings, so several candidate
locations are probed in a fixed order:

1. ``<resultsDir>/<uri>``
2. ``<resultsDir>/<trxBaseName>/In/<uri>``
3. ``<resultsDir>/<trxBaseName with spaces as underscores>/In/<uri>``
4. ``<resultsDir>/<deploymentRoot>/In/<uri>`` (only if the run records one)

The first candidate that exists wins.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

import structlog

from covbridge.config.constants import ATTACHMENT_IN_FOLDER
from covbridge.coverage.models import CoverageCandidate, InvalidFormat, ResultRun
from covbridge.coverage.trx import TrxFileParser

log = structlog.get_logger(__name__)


def _uri_to_relative(raw_uri: str) -> Path:
    # Attachment URIs use Windows separators, including a MACHINE\ prefix
    return Path(raw_uri.replace("\\", "/"))


class AttachmentPathResolver:
    """Maps raw attachment URIs to files on disk."""

    def candidates(self, run: ResultRun, raw_uri: str) -> list[CoverageCandidate]:
        """All candidate locations for raw_uri, in probe order.

        Duplicates are kept so diagnostics show exactly what was tried.
        """
        results_dir = run.results_directory
        uri = _uri_to_relative(raw_uri)
        base_name = run.base_name

        paths = [
            results_dir / uri,
            results_dir / base_name / ATTACHMENT_IN_FOLDER / uri,
            results_dir / base_name.replace(" ", "_") / ATTACHMENT_IN_FOLDER / uri,
        ]
        if run.deployment_root:
            paths.append(results_dir / run.deployment_root / ATTACHMENT_IN_FOLDER / uri)

        return [CoverageCandidate(path=p, raw_uri=raw_uri, run=run) for p in paths]

    def resolve(self, run: ResultRun, raw_uri: str) -> Path | None:
        """First candidate that is an existing file, or None with a warning."""
        candidates = self.candidates(run, raw_uri)
        for candidate in candidates:
            if candidate.path.is_file():
                log.debug(
                    "coverage.attachment_resolved",
                    uri=raw_uri,
                    path=str(candidate.path),
                )
                return candidate.path

        log.warning(
            "coverage.attachment_not_found",
            uri=raw_uri,
            candidates=[str(c.path) for c in candidates],
            trx_file=str(run.source_path),
        )
        return None


class TrxCoverageReader:
    """Collects the coverage files referenced by a set of result files."""

    def __init__(
        self,
        parser: TrxFileParser | None = None,
        resolver: AttachmentPathResolver | None = None,
    ) -> None:
        self._parser = parser or TrxFileParser()
        self._resolver = resolver or AttachmentPathResolver()

    def find_coverage_files(self, result_files: Iterable[Path]) -> list[Path]:
        """Resolved coverage file paths, de-duplicated, in discovery order."""
        seen: set[str] = set()
        found: list[Path] = []

        for result_file in result_files:
            run = self._parser.parse(result_file)
            if isinstance(run, InvalidFormat):
                continue
            for raw_uri in run.attachment_uris:
                path = self._resolver.resolve(run, raw_uri)
                if path is None:
                    continue
                key = os.path.normcase(str(path))
                if key not in seen:
                    seen.add(key)
                    found.append(path)

        if found:
            log.info("coverage.attachments_found", paths=[str(p) for p in found])
        else:
            log.info("coverage.no_attachments_found")
        return found
