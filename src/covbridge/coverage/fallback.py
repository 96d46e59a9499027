"""Recovery of orphaned coverage files from the agent temp directory.

Some runner configurations write coverage files without referencing them
from any result file. When nothing else resolved, the agent temp directory is
searched directly.
"""

from __future__ import annotations

import os
from pathlib import Path

import structlog

from covbridge.config.constants import BINARY_COVERAGE_EXTENSION
from covbridge.coverage.dedupe import ContentHashDeduper

log = structlog.get_logger(__name__)


class FallbackSearcher:
    def __init__(
        self,
        agent_temp_directory: Path | None,
        deduper: ContentHashDeduper | None = None,
    ) -> None:
        self._agent_temp_directory = agent_temp_directory
        self._deduper = deduper or ContentHashDeduper()

    def get_agent_temp_directory(self) -> Path | None:
        """The temp directory, or None if it is unset or does not exist."""
        directory = self._agent_temp_directory
        if directory is None:
            log.debug("fallback.temp_directory_not_set")
            return None
        if not directory.is_dir():
            log.debug("fallback.temp_directory_missing", path=str(directory))
            return None
        return directory

    def find_coverage_files(self) -> list[Path]:
        directory = self.get_agent_temp_directory()
        if directory is None:
            return []

        log.debug("fallback.searching", path=str(directory))
        wanted = BINARY_COVERAGE_EXTENSION.lower()
        found: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(directory):
            dirnames.sort()
            for name in sorted(filenames):
                if name.lower().endswith(wanted):
                    found.append(Path(dirpath) / name)

        log.debug("fallback.files_found", paths=[str(p) for p in found])
        unique = self._deduper.dedupe(found)
        log.debug("fallback.unique_files", paths=[str(p) for p in unique])
        return unique
