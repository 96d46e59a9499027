"""Result file discovery.

Mirrors what the VSTest build step does: result files are written into a
``TestResults`` folder somewhere under the build directory, so every such
folder (any depth, any casing) is searched for ``*.trx`` files.
"""

from __future__ import annotations

import os
from pathlib import Path

import structlog

from covbridge.config.constants import RESULT_FILE_EXTENSION, TEST_RESULTS_FOLDER_NAME

log = structlog.get_logger(__name__)


def _find_results_directories(root: Path) -> list[Path]:
    """Walk root in sorted order, collecting folders named like TestResults."""
    wanted = TEST_RESULTS_FOLDER_NAME.lower()
    found: list[Path] = []
    for dirpath, dirnames, _filenames in os.walk(root):
        dirnames.sort()
        for name in dirnames:
            if name.lower() == wanted:
                found.append(Path(dirpath) / name)
    return found


def _list_result_files(directory: Path) -> list[Path]:
    try:
        entries = sorted(os.scandir(directory), key=lambda e: e.name)
    except OSError:
        return []
    return [
        Path(entry.path)
        for entry in entries
        if entry.is_file() and entry.name.lower().endswith(RESULT_FILE_EXTENSION)
    ]


class ResultFileLocator:
    """Finds test-run result files under a build directory."""

    def find_result_files(self, root: Path) -> list[Path]:
        """Return the result files to parse, in deterministic order.

        A missing root, or one without results folders, yields an empty list.
        """
        log.info("trx.locating", root=str(root))

        results_dirs = _find_results_directories(root) if root.is_dir() else []
        if not results_dirs:
            log.info("trx.results_directory_not_found", root=str(root))
            return []

        log.info("trx.results_directories", paths=[str(d) for d in results_dirs])

        result_files = [f for d in results_dirs for f in _list_result_files(d)]
        if result_files:
            log.info("trx.files_found", paths=[str(f) for f in result_files])
        else:
            log.info("trx.no_files_found")

        return result_files
