"""Validate command - check a template without writing output."""

import sys
import click
from ... import build_template
from ...graph.dependency_graph import DependencyGraph
from ...utils.errors import PangeaError
from ...utils.logging import get_logger
from ..utils import format_error
from ..utils.file_resolver import resolve_file_path

logger = get_logger("cli.validate")


@click.command()
@click.argument("template", type=click.Path(exists=False))
def validate(template):
    """Validate a template: attributes, references and dependency cycles."""
    try:
        try:
            template_path = resolve_file_path(template)
        except FileNotFoundError as e:
            click.echo(format_error(str(e)), err=True)
            sys.exit(1)

        result = build_template(str(template_path), validate=True)
        graph = DependencyGraph().build_from_document(result.synthesis)

        click.echo(f"Template {result.name} is valid")
        click.echo(f"  Resources: {len(result.resource_addresses())}")
        click.echo(f"  Dependencies: {graph.graph.number_of_edges()}")
        order = [address for address in graph.topological_order() if not address.startswith("data.")]
        if order:
            click.echo(f"  Creation order: {' -> '.join(order)}")

    except PangeaError as e:
        click.echo(format_error(str(e), "Fix the template and run 'pangea validate' again."), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Validation failed: {e}"), err=True)
        sys.exit(1)
