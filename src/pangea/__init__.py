"""Pangea - Typed Terraform JSON synthesis."""

from pathlib import Path
from typing import Any, Dict, Optional
from .config import apply_config, load_synthesis_config
from .graph.dependency_graph import validate_references
from .loader.template_loader import load_template
from .template import Template
from .utils.logging import get_logger, set_log_level, setup_logging
from .utils.errors import PangeaError

__version__ = "0.1.0"

__all__ = ["Template", "build_template", "synthesize"]

setup_logging()
logger = get_logger("pangea")


def build_template(template_path: str, config: Optional[Dict[str, Any]] = None, validate: bool = True) -> Template:
    """
    Load a template file and synthesize it into a Template.

    Args:
        template_path: Path to a .py, .yaml, .yml or .json template
        config: Synthesis config; package defaults when omitted
        validate: Check that references resolve and have no cycles

    Returns:
        Template holding the synthesized document

    Raises:
        PangeaError: If loading, synthesis or validation fails
    """
    try:
        logger.info(f"Starting synthesis of template: {template_path}")
        if config is None:
            config = load_synthesis_config()
        if config.get("logging", {}).get("level"):
            set_log_level(config["logging"]["level"])

        loaded = load_template(template_path)
        template = Template(loaded.name)
        loaded.apply(template)
        apply_config(template.synth, config)

        if validate and config.get("output", {}).get("validate_references", True):
            validate_references(template.synthesis)

        summary = ", ".join(f"{count} {key}" for key, count in template.synth.summary().items())
        logger.info(f"Synthesis complete for {template.name}: {summary}")
        return template

    except PangeaError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during synthesis: {e}", exc_info=True)
        raise PangeaError(f"Synthesis failed: {e}") from e


def synthesize(template_path: str, config_path: Optional[str] = None, validate: bool = True) -> Dict[str, Any]:
    """Synthesize a template file and return the Terraform JSON document."""
    config = load_synthesis_config(Path(config_path) if config_path else None)
    return build_template(template_path, config, validate).synthesis
