"""Content-hash deduplication of coverage files.

The same coverage payload is often copied to several places under the agent
temp directory. Files are fingerprinted with SHA-256 over their full bytes and
only one file per fingerprint is kept.
"""

from __future__ import annotations

import hashlib
import time
from collections.abc import Iterable
from pathlib import Path

import structlog

from covbridge.config.constants import (
    HASH_CHUNK_SIZE,
    SHARING_VIOLATION_DELAY_SEC,
    SHARING_VIOLATION_RETRIES,
)
from covbridge.coverage.models import FileWithContentHash

log = structlog.get_logger(__name__)


def _hash_once(path: Path) -> bytes:
    digest = hashlib.sha256()
    with path.open("rb") as f:
        while chunk := f.read(HASH_CHUNK_SIZE):
            digest.update(chunk)
    return digest.digest()


def compute_content_hash(
    path: Path,
    *,
    retries: int = SHARING_VIOLATION_RETRIES,
    delay: float = SHARING_VIOLATION_DELAY_SEC,
) -> bytes:
    """SHA-256 digest of the file's bytes.

    A file still held open by the test host can briefly refuse reads, so
    PermissionError is retried. The last failure propagates.
    """
    attempt = 0
    while True:
        try:
            return _hash_once(path)
        except PermissionError:
            attempt += 1
            if attempt >= retries:
                raise
            log.debug("dedupe.read_retry", path=str(path), attempt=attempt)
            time.sleep(delay)


class ContentHashDeduper:
    """Collapses files with identical content."""

    def hash_files(self, paths: Iterable[Path]) -> list[FileWithContentHash]:
        hashed: list[FileWithContentHash] = []
        for path in paths:
            try:
                digest = compute_content_hash(path)
            except OSError as e:
                log.warning("dedupe.unreadable_file", path=str(path), error=str(e))
                continue
            hashed.append(FileWithContentHash(path=path, content_hash=digest))
        return hashed

    def dedupe(self, paths: Iterable[Path]) -> list[Path]:
        """One path per distinct content, in sorted path order.

        The lowest path of each group is kept, so the result does not depend
        on the order paths were found in.
        """
        unique: dict[FileWithContentHash, None] = {}
        for item in self.hash_files(sorted(paths)):
            unique.setdefault(item, None)
        return [item.path for item in unique]
