"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable.
These are conventions of the test tooling and of the scanner consuming our
output, not tuning knobs.

For configurable values, see models.py (ConverterConfig, ReportsConfig, etc.).
"""

# =============================================================================
# Test results layout
# =============================================================================

TEST_RESULTS_FOLDER_NAME = "TestResults"
"""Folder the VSTest runner writes result files into (matched case-insensitively)."""

RESULT_FILE_EXTENSION = ".trx"
"""Extension of test-run result files."""

ATTACHMENT_IN_FOLDER = "In"
"""Per-run subfolder holding collector attachments."""

TRX_NAMESPACE = "http://microsoft.com/schemas/VisualStudio/TeamTest/2010"
"""Namespace of current result files. Older and hand-written files may omit it."""

CODE_COVERAGE_COLLECTOR_URI_PREFIX = "datacollector://microsoft/codecoverage"
"""Collector URI prefix for the code coverage data collector (any version)."""

DEFAULT_TEST_SETTINGS_NAME = "default"
"""Name of the TestSettings element carrying the run deployment root."""

# =============================================================================
# Coverage files
# =============================================================================

BINARY_COVERAGE_EXTENSION = ".coverage"
"""Extension of binary coverage files."""

XML_COVERAGE_EXTENSION = ".coveragexml"
"""Extension of converted XML coverage files."""

# =============================================================================
# Scanner properties
# =============================================================================

TEST_REPORTS_PATHS_PROPERTY = "sonar.cs.vstest.reportsPaths"
"""Property listing test-result report paths."""

COVERAGE_XML_REPORTS_PATHS_PROPERTY = "sonar.cs.vscoveragexml.reportsPaths"
"""Property listing converted XML coverage report paths."""

# =============================================================================
# Conversion tool
# =============================================================================

CODE_COVERAGE_EXE_NAME = "CodeCoverage.exe"

VSTEST_PLATFORM_TOOL_SUBPATHS = (
    # Microsoft.TestPlatform 17.3.2 and below
    ("tools", "net451", "Team Tools", "Dynamic Code Coverage Tools", CODE_COVERAGE_EXE_NAME),
    # Microsoft.TestPlatform 17.4.0 and above
    ("tools", "net462", "Team Tools", "Dynamic Code Coverage Tools", CODE_COVERAGE_EXE_NAME),
)
"""Layouts of the VSTest platform installer, relative to its install root."""

PATH_TOOL_NAMES = (
    ("CodeCoverage", "codecoverage"),
    ("dotnet-coverage", "dotnet-coverage"),
)
"""Tool executables looked up on PATH, paired with their command style."""

# =============================================================================
# File access
# =============================================================================

SHARING_VIOLATION_RETRIES = 3
"""Attempts to read a file another process holds open before skipping it."""

SHARING_VIOLATION_DELAY_SEC = 0.1
"""Delay between read attempts."""

HASH_CHUNK_SIZE = 1024 * 1024
"""Read size when fingerprinting files."""
