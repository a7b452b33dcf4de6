"""Main CLI entry point for Pangea."""

import click
from .commands.synth import synth
from .commands.validate import validate
from .commands.resources import resources
from .commands.schema import schema
from .commands.version import version
from .. import __version__
from ..utils.logging import get_logger

logger = get_logger("cli.main")


@click.group()
@click.version_option(version=__version__, prog_name="pangea", message="%(prog)s version %(version)s")
def cli():
    """Pangea - Typed Terraform JSON synthesis."""
    pass


cli.add_command(synth)
cli.add_command(validate)
cli.add_command(resources)
cli.add_command(schema)
cli.add_command(version)
