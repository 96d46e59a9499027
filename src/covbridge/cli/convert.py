"""covbridge convert command - convert one binary coverage file to XML."""

from pathlib import Path

import click

from covbridge.config.constants import XML_COVERAGE_EXTENSION
from covbridge.config.models import ToolStyle
from covbridge.coverage.converter import BinaryToXmlConverter

_TOOL_STYLES: tuple[ToolStyle, ...] = ("auto", "codecoverage", "dotnet-coverage")


@click.command()
@click.argument("input_path", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("output_path", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--tool",
    "tool_path",
    default=None,
    envvar="VsTestToolsInstallerInstalledToolLocation",
    help="Conversion tool, or VSTest platform install root",
)
@click.option(
    "--tool-style",
    default="auto",
    type=click.Choice(_TOOL_STYLES),
    help="Command line style of the tool",
)
@click.option("--timeout", "timeout_sec", default=60.0, type=float, help="Timeout in seconds")
def convert_command(
    input_path: Path,
    output_path: Path | None,
    tool_path: str | None,
    tool_style: ToolStyle,
    timeout_sec: float,
) -> None:
    """Convert INPUT_PATH to XML.

    OUTPUT_PATH defaults to INPUT_PATH with the .coveragexml extension.
    """
    if output_path is None:
        output_path = input_path.with_suffix(XML_COVERAGE_EXTENSION)

    converter = BinaryToXmlConverter(
        tool_path=tool_path, tool_style=tool_style, timeout_sec=timeout_sec
    )
    if not converter.initialize():
        raise click.ClickException("No code coverage conversion tool found.")

    result = converter.convert(input_path, output_path)
    if not result:
        raise click.ClickException(result.error or "Conversion failed.")
    click.echo(str(result.output_path))
