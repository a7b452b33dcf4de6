"""CLI utilities package."""

import click
from pathlib import Path
from typing import List, Optional
from ...resources.registry import list_resources
from ...utils.logging import get_logger
from .file_resolver import resolve_file_path

logger = get_logger("cli.utils")


def format_error(message: str, suggestion: Optional[str] = None) -> str:
    """
    Format error message with optional suggestion.

    Args:
        message: Error message
        suggestion: Optional suggestion or help text

    Returns:
        Formatted error string
    """
    error = f"Error: {message}"
    if suggestion:
        error += f"\nTip: {suggestion}"
    return error


def suggest_resource_types(target: str, limit: int = 5) -> List[str]:
    """Registered resource types with names similar to ``target``."""
    target_lower = target.lower()
    parts = [part for part in target_lower.replace("aws_", "").split("_") if len(part) > 2]
    similar = []
    for definition in list_resources():
        resource_type = definition.resource_type
        if target_lower in resource_type or resource_type in target_lower:
            similar.append(resource_type)
        elif any(part in resource_type for part in parts):
            similar.append(resource_type)
    return similar[:limit]


def write_output(text: str, output: Optional[str]) -> Optional[Path]:
    """Write text to ``output`` (creating parent directories) or echo it when no path is given."""
    if not output:
        click.echo(text)
        return None
    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(text)
        if not text.endswith("\n"):
            f.write("\n")
    return output_path


__all__ = ["format_error", "resolve_file_path", "suggest_resource_types", "write_output"]
