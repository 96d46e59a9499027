"""Config module exports."""

from covbridge.config.loader import CovBridgeSettings, load_config
from covbridge.config.models import (
    ConverterConfig,
    CovBridgeConfig,
    LoggingConfig,
    LogOutputConfig,
    ReportsConfig,
)

__all__ = [
    "load_config",
    "ConverterConfig",
    "CovBridgeConfig",
    "CovBridgeSettings",
    "LoggingConfig",
    "LogOutputConfig",
    "ReportsConfig",
]
