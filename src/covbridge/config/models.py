"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (COVBRIDGE__SECTION__KEY)
3. Config YAML (--config, or covbridge.yaml in the working directory)
4. Global YAML (~/.config/covbridge/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    COVBRIDGE__<SECTION>__<KEY>=<VALUE>

Examples:
    COVBRIDGE__LOGGING__LEVEL=DEBUG
    COVBRIDGE__CONVERTER__TIMEOUT_SEC=120
    COVBRIDGE__REPORTS__TEST_REPORTS_PATHS=/abs/path/results.trx
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
ToolStyle = Literal["auto", "codecoverage", "dotnet-coverage"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        COVBRIDGE__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG lists every candidate path and tool invocation.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ConverterConfig(BaseModel):
    """Binary-to-XML conversion tool configuration.

    Env vars:
        COVBRIDGE__CONVERTER__TOOL_PATH: Conversion tool or VSTest platform install root
        COVBRIDGE__CONVERTER__TOOL_STYLE: auto, codecoverage or dotnet-coverage
        COVBRIDGE__CONVERTER__TIMEOUT_SEC: Per-file conversion timeout
    """

    tool_path: str | None = Field(
        default=None,
        description="Path to CodeCoverage.exe, dotnet-coverage, or a VSTest platform "
        "installer root. Overrides the VsTestToolsInstallerInstalledToolLocation variable.",
    )
    tool_style: ToolStyle = Field(
        default="auto",
        description="Command line style of the tool. 'auto' infers it from the file name.",
    )
    timeout_sec: float = Field(
        default=60.0,
        description="Conversion timeout in seconds. A hung tool is killed after this.",
    )

    @field_validator("timeout_sec")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v


class ReportsConfig(BaseModel):
    """Report paths the caller has already supplied explicitly.

    When a category is set here, the pipeline does not emit it again.

    Env vars:
        COVBRIDGE__REPORTS__TEST_REPORTS_PATHS
        COVBRIDGE__REPORTS__COVERAGE_XML_REPORTS_PATHS
    """

    test_reports_paths: str | None = None
    coverage_xml_reports_paths: str | None = None


class CovBridgeConfig(BaseModel):
    """Root configuration model."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    converter: ConverterConfig = Field(default_factory=ConverterConfig)
    reports: ReportsConfig = Field(default_factory=ReportsConfig)
