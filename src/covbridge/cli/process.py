"""covbridge process command - run the coverage pipeline for the current build."""

import json
import os
from pathlib import Path

import click
import structlog

from covbridge.build.context import BuildContext
from covbridge.config.loader import load_config
from covbridge.config.models import CovBridgeConfig
from covbridge.core.errors import ConfigError, ContractError
from covbridge.core.logging import (
    clear_run_id,
    configure_logging,
    get_log_file_path,
    set_run_id,
)
from covbridge.coverage.converter import BinaryToXmlConverter
from covbridge.coverage.models import ProcessingSummary
from covbridge.coverage.processor import CoverageReportProcessor

log = structlog.get_logger(__name__)


@click.command()
@click.option(
    "--properties-file",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Scanner properties file to append report paths to",
)
@click.option(
    "--analysis-dir",
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
    help="Analysis working directory (default: current directory)",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: ./covbridge.yaml if present)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def process_command(
    ctx: click.Context,
    properties_file: Path,
    analysis_dir: Path,
    config_path: Path | None,
    as_json: bool,
) -> None:
    """Find, convert and publish the coverage reports of this build.

    The build is detected from the CI environment variables. Problems with
    individual result or coverage files are logged and skipped; the command
    only fails on invalid configuration.
    """
    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    logging_config = config.logging
    if ctx.obj and ctx.obj.get("verbose"):
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    configure_logging(config=logging_config)
    set_run_id()
    try:
        context, summary = _run_pipeline(config, analysis_dir, properties_file)
    finally:
        clear_run_id()

    if as_json:
        click.echo(json.dumps({"environment": context.environment.value, **summary.to_dict()}))
        return

    click.echo(f"Build: {context.environment.value}")
    if summary.skipped:
        click.echo("Coverage processing skipped for this legacy build.")
        return

    click.echo(f"Result files: {len(summary.result_files)}")
    source = " (recovered from agent temp directory)" if summary.used_fallback else ""
    click.echo(f"Coverage files: {len(summary.coverage_files)}{source}")
    click.echo(f"XML reports: {len(summary.xml_reports)}")
    for failed in summary.failed_conversions:
        click.echo(f"  Conversion failed: {failed.input_path}")
    log_file = get_log_file_path()
    if summary.failed_conversions and log_file:
        click.echo(f"See {log_file} for details.")
    for key in summary.written_properties:
        click.echo(f"Wrote {key} to {context.properties_file_path}")


def _run_pipeline(
    config: CovBridgeConfig, analysis_dir: Path, properties_file: Path
) -> tuple[BuildContext, ProcessingSummary]:
    try:
        context = BuildContext.from_environment(
            os.environ,
            analysis_base_directory=analysis_dir.resolve(),
            properties_file_path=properties_file.resolve(),
            config=config,
        )
        converter = BinaryToXmlConverter(
            tool_path=context.coverage_tool_path,
            tool_style=config.converter.tool_style,
            timeout_sec=config.converter.timeout_sec,
        )
        processor = CoverageReportProcessor(converter)
        processor.initialize(context)
        processor.process_coverage_reports()
    except ContractError as e:
        raise click.ClickException(str(e)) from e

    summary = processor.summary
    log.debug("process.complete", **summary.to_dict())
    return context, summary
