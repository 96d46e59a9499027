"""Build environment classification and the immutable build context.

The CI system is detected from environment variables, but those are read from
an explicitly passed mapping so the pipeline never depends on ambient process
state. Callers normally pass ``os.environ``; tests pass plain dicts.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from covbridge.config.models import CovBridgeConfig
from covbridge.core.errors import ContractError


class EnvironmentVariables:
    """Names of the CI variables the pipeline understands."""

    # Common to legacy and current builds
    IS_IN_TEAM_BUILD = "TF_BUILD"

    # Legacy (XAML) builds
    BUILD_URI_LEGACY = "TF_BUILD_BUILDURI"
    BUILD_DIRECTORY_LEGACY = "TF_BUILD_BUILDDIRECTORY"
    SKIP_LEGACY_CODE_COVERAGE = "SQ_SkipLegacyCodeCoverage"

    # Current-generation builds
    BUILD_URI = "BUILD_BUILDURI"
    BUILD_DIRECTORY = "AGENT_BUILDDIRECTORY"
    AGENT_TEMP_DIRECTORY = "AGENT_TEMPDIRECTORY"

    # Set by the VSTest platform installer task, or by users with a custom install
    VSTEST_TOOL_LOCATION = "VsTestToolsInstallerInstalledToolLocation"


class BuildEnvironment(Enum):
    NOT_IN_CI = "not_in_ci"
    LEGACY_CI = "legacy_ci"
    CURRENT_CI = "current_ci"


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized == "true":
        return True
    if normalized == "false":
        return False
    return default


def _non_empty(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(name)
    if value is None or not value.strip():
        return None
    return value


def detect_build_environment(env: Mapping[str, str]) -> BuildEnvironment:
    """Classify the build from its environment variables.

    A legacy build URI wins over a current one when both are present.
    """
    if not _parse_bool(env.get(EnvironmentVariables.IS_IN_TEAM_BUILD), False):
        return BuildEnvironment.NOT_IN_CI
    if _non_empty(env, EnvironmentVariables.BUILD_URI_LEGACY):
        return BuildEnvironment.LEGACY_CI
    if _non_empty(env, EnvironmentVariables.BUILD_URI):
        return BuildEnvironment.CURRENT_CI
    return BuildEnvironment.NOT_IN_CI


@dataclass(frozen=True, slots=True)
class BuildContext:
    """Everything one processor run needs to know about the build.

    Immutable for the lifetime of a run.
    """

    environment: BuildEnvironment
    analysis_base_directory: Path
    properties_file_path: Path
    build_directory: Path | None = None
    agent_temp_directory: Path | None = None
    skip_legacy_coverage: bool = False
    coverage_tool_path: str | None = None
    test_reports_paths: str | None = None
    coverage_xml_reports_paths: str | None = None

    @property
    def search_root(self) -> Path:
        """Directory under which result files are looked for."""
        if self.build_directory is not None:
            return self.build_directory
        return self.analysis_base_directory.parent

    @property
    def test_reports_supplied(self) -> bool:
        return bool(self.test_reports_paths)

    @property
    def coverage_xml_reports_supplied(self) -> bool:
        return bool(self.coverage_xml_reports_paths)

    @classmethod
    def from_environment(
        cls,
        env: Mapping[str, str],
        *,
        analysis_base_directory: Path,
        properties_file_path: Path,
        config: CovBridgeConfig | None = None,
    ) -> BuildContext:
        """Build a context from CI variables plus the caller's settings.

        Args:
            env: Environment mapping, usually ``os.environ``.
            analysis_base_directory: Working directory of the analysis.
            properties_file_path: Properties file the pipeline appends to.
            config: Loaded settings; supplies explicit report paths and
                    overrides the coverage tool location.

        Raises:
            ContractError: If a required path is empty.
        """
        if not str(analysis_base_directory).strip():
            raise ContractError.missing_argument("analysis_base_directory")
        if not str(properties_file_path).strip():
            raise ContractError.missing_argument("properties_file_path")

        config = config or CovBridgeConfig()
        environment = detect_build_environment(env)

        if environment is BuildEnvironment.LEGACY_CI:
            build_dir = _non_empty(env, EnvironmentVariables.BUILD_DIRECTORY_LEGACY)
        elif environment is BuildEnvironment.CURRENT_CI:
            build_dir = _non_empty(env, EnvironmentVariables.BUILD_DIRECTORY)
        else:
            # No reliable way to find the build directory outside CI
            build_dir = None

        agent_temp = _non_empty(env, EnvironmentVariables.AGENT_TEMP_DIRECTORY)
        tool_path = config.converter.tool_path or _non_empty(
            env, EnvironmentVariables.VSTEST_TOOL_LOCATION
        )

        return cls(
            environment=environment,
            analysis_base_directory=Path(analysis_base_directory),
            properties_file_path=Path(properties_file_path),
            build_directory=Path(build_dir) if build_dir else None,
            agent_temp_directory=Path(agent_temp) if agent_temp else None,
            skip_legacy_coverage=_parse_bool(
                env.get(EnvironmentVariables.SKIP_LEGACY_CODE_COVERAGE), False
            ),
            coverage_tool_path=tool_path,
            test_reports_paths=config.reports.test_reports_paths,
            coverage_xml_reports_paths=config.reports.coverage_xml_reports_paths,
        )
