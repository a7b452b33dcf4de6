"""Resources command - list supported resource types and compositions."""

import json
import click
from ...resources.registry import list_compositions, list_resources


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output the catalogue as JSON")
@click.option("--category", help="Only list resources in this category (e.g. network, storage)")
def resources(as_json, category):
    """List supported resource types and compositions."""
    definitions = list_resources(category)

    if as_json:
        catalogue = {
            "resources": [
                {
                    "type": definition.resource_type,
                    "category": definition.category,
                    "outputs": definition.outputs,
                    "description": definition.description,
                }
                for definition in definitions
            ],
            "compositions": list_compositions(),
        }
        click.echo(json.dumps(catalogue, indent=2))
        return

    current = None
    for definition in sorted(definitions, key=lambda d: (d.category, d.resource_type)):
        if definition.category != current:
            current = definition.category
            click.echo(f"{current}:")
        click.echo(f"  {definition.resource_type:<45} {definition.description}")

    if not category:
        click.echo("compositions:")
        for name in list_compositions():
            click.echo(f"  {name}")
