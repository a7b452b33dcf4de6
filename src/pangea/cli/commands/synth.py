"""Synth command - write a template's Terraform JSON."""

import sys
import click
from ... import build_template
from ...config import load_synthesis_config
from ...utils.errors import PangeaError
from ...utils.logging import get_logger
from ..utils import format_error, write_output
from ..utils.file_resolver import resolve_file_path

logger = get_logger("cli.synth")


@click.command()
@click.argument("template", type=click.Path(exists=False))
@click.option("--output", "-o", type=click.Path(), help="Write Terraform JSON to file (e.g. main.tf.json)")
@click.option("--config", "config_file", type=click.Path(), help="Synthesis config YAML layered over the defaults")
@click.option("--no-validate", is_flag=True, help="Skip reference and cycle validation")
@click.option("--quiet", is_flag=True, help="Suppress progress messages")
def synth(template, output, config_file, no_validate, quiet):
    """
    Synthesize a template into Terraform JSON.

    TEMPLATE is a .py file defining build(template) or a declarative
    .yaml/.yml/.json document. Output goes to stdout unless -o is given.
    """
    try:
        try:
            template_path = resolve_file_path(template)
            config_path = resolve_file_path(config_file) if config_file else None
        except FileNotFoundError as e:
            click.echo(format_error(str(e)), err=True)
            sys.exit(1)

        if not quiet:
            click.echo(f"Loading template: {template_path}", err=True)

        config = load_synthesis_config(config_path)
        result = build_template(str(template_path), config, validate=not no_validate)

        output_settings = config.get("output", {})
        text = result.synth.to_json(indent=output_settings.get("indent", 2),
                                    sort_keys=bool(output_settings.get("sort_keys", False)))

        output_path = write_output(text, output)
        if not quiet:
            counts = ", ".join(f"{count} {key}" for key, count in result.synth.summary().items())
            click.echo(f"Synthesized {result.name}: {counts}", err=True)
            if output_path:
                click.echo(f"Output saved to: {output_path}", err=True)

    except PangeaError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Synthesis failed: {e}"), err=True)
        sys.exit(1)
