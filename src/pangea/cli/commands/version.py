"""Version command - show Pangea version."""

import click
from ... import __version__


@click.command()
def version():
    """Show Pangea version."""
    click.echo(f"pangea version {__version__}")
