"""covbridge error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 7xxx: Coverage pipeline contract

Only contract violations and configuration failures are raised. Problems with
the build's own data (unparsable result files, missing attachments, failed
conversions) are logged and skipped instead.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2003

    # Coverage pipeline contract (7xxx)
    PROCESSOR_NOT_INITIALIZED = 7001
    ARGUMENT_REQUIRED = 7002


@dataclass(frozen=True, slots=True)
class CovBridgeError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(CovBridgeError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class ContractError(CovBridgeError):
    """Programming-contract violations by the caller of the pipeline."""

    @property
    def param_name(self) -> str | None:
        """Name of the offending parameter, if the violation concerns one."""
        value = self.details.get("param")
        return str(value) if value is not None else None

    @classmethod
    def not_initialized(cls) -> "ContractError":
        return cls(
            code=ErrorCode.PROCESSOR_NOT_INITIALIZED,
            message="The coverage report processor was not initialized before use.",
        )

    @classmethod
    def missing_argument(cls, param: str) -> "ContractError":
        return cls(
            code=ErrorCode.ARGUMENT_REQUIRED,
            message=f"Argument '{param}' is required and must not be empty",
            details={"param": param},
        )
