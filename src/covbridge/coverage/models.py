"""Data model for the coverage pipeline.

Result runs and candidates are short-lived: they exist for the duration of a
single parse/resolve step and are never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ResultRun:
    """Parsed representation of one result (.trx) file.

    A run without attachments is valid and yields no coverage candidates.
    """

    source_path: Path
    deployment_root: str | None = None
    attachment_uris: tuple[str, ...] = ()

    @property
    def results_directory(self) -> Path:
        return self.source_path.parent

    @property
    def base_name(self) -> str:
        """Result file name without extension, spaces preserved."""
        return self.source_path.stem


@dataclass(frozen=True, slots=True)
class InvalidFormat:
    """Tolerated failure: the result file could not be parsed."""

    source_path: Path
    reason: str


@dataclass(frozen=True, slots=True)
class CoverageCandidate:
    """One absolute path to probe for an attachment, with its provenance."""

    path: Path
    raw_uri: str
    run: ResultRun


@dataclass(frozen=True, slots=True)
class FileWithContentHash:
    """A file identified by its content fingerprint.

    The path is informational: equality and hashing use the fingerprint only,
    so identical payloads at different locations compare equal.
    """

    path: Path = field(compare=False, hash=False)
    content_hash: bytes


@dataclass(frozen=True, slots=True)
class ConversionResult:
    """Outcome of converting one binary coverage file to XML."""

    input_path: Path
    output_path: Path
    success: bool
    error: str | None = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, input_path: Path, output_path: Path) -> ConversionResult:
        return cls(input_path=input_path, output_path=output_path, success=True)

    @classmethod
    def failed(cls, input_path: Path, output_path: Path, error: str) -> ConversionResult:
        return cls(input_path=input_path, output_path=output_path, success=False, error=error)


@dataclass
class ProcessingSummary:
    """What one processor run found and wrote."""

    skipped: bool = False
    result_files: list[Path] = field(default_factory=list)
    coverage_files: list[Path] = field(default_factory=list)
    xml_reports: list[Path] = field(default_factory=list)
    failed_conversions: list[ConversionResult] = field(default_factory=list)
    used_fallback: bool = False
    written_properties: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "skipped": self.skipped,
            "result_files": [str(p) for p in self.result_files],
            "coverage_files": [str(p) for p in self.coverage_files],
            "xml_reports": [str(p) for p in self.xml_reports],
            "failed_conversions": [
                {"input": str(r.input_path), "error": r.error} for r in self.failed_conversions
            ],
            "used_fallback": self.used_fallback,
            "written_properties": self.written_properties,
        }
