"""Build environment detection."""

from covbridge.build.context import (
    BuildContext,
    BuildEnvironment,
    EnvironmentVariables,
    detect_build_environment,
)

__all__ = [
    "BuildContext",
    "BuildEnvironment",
    "EnvironmentVariables",
    "detect_build_environment",
]
