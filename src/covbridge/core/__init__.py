"""Core module exports."""

from covbridge.core.errors import (
    ConfigError,
    ContractError,
    CovBridgeError,
    ErrorCode,
)
from covbridge.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)

__all__ = [
    # Errors
    "ConfigError",
    "ContractError",
    "CovBridgeError",
    "ErrorCode",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
]
