"""covbridge CLI - covbridge command."""

import click

from covbridge import __version__
from covbridge.cli.convert import convert_command
from covbridge.cli.process import process_command
from covbridge.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="covbridge")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """covbridge - find, convert and publish .NET test coverage reports."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "INFO")


cli.add_command(process_command, name="process")
cli.add_command(convert_command, name="convert")


if __name__ == "__main__":
    cli()
