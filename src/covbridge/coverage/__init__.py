"""Coverage report discovery, resolution and conversion."""

from covbridge.coverage.converter import (
    BinaryToXmlConverter,
    ConversionTool,
    CoverageConverter,
    locate_conversion_tool,
)
from covbridge.coverage.dedupe import ContentHashDeduper, compute_content_hash
from covbridge.coverage.fallback import FallbackSearcher
from covbridge.coverage.locator import ResultFileLocator
from covbridge.coverage.models import (
    ConversionResult,
    CoverageCandidate,
    FileWithContentHash,
    InvalidFormat,
    ProcessingSummary,
    ResultRun,
)
from covbridge.coverage.processor import CoverageReportProcessor, ProcessorState
from covbridge.coverage.properties import PropertiesFileWriter
from covbridge.coverage.resolver import AttachmentPathResolver, TrxCoverageReader
from covbridge.coverage.trx import TrxFileParser

__all__ = [
    # Pipeline
    "CoverageReportProcessor",
    "ProcessorState",
    # Components
    "AttachmentPathResolver",
    "BinaryToXmlConverter",
    "ContentHashDeduper",
    "ConversionTool",
    "CoverageConverter",
    "FallbackSearcher",
    "PropertiesFileWriter",
    "ResultFileLocator",
    "TrxCoverageReader",
    "TrxFileParser",
    "compute_content_hash",
    "locate_conversion_tool",
    # Models
    "ConversionResult",
    "CoverageCandidate",
    "FileWithContentHash",
    "InvalidFormat",
    "ProcessingSummary",
    "ResultRun",
]
