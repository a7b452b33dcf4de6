"""Schema command - show the attribute schema of a resource type."""

import json
import sys
import click
from ...resources.registry import resource_schema
from ...utils.errors import UnknownResourceError
from ..utils import format_error, suggest_resource_types


@click.command()
@click.argument("resource_type")
def schema(resource_type):
    """Print the JSON schema of RESOURCE_TYPE's attributes."""
    try:
        click.echo(json.dumps(resource_schema(resource_type), indent=2))
    except UnknownResourceError as e:
        suggestions = suggest_resource_types(resource_type)
        suggestion = f"Similar types: {', '.join(suggestions)}" if suggestions else None
        click.echo(format_error(str(e), suggestion), err=True)
        sys.exit(1)
