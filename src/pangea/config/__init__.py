"""Configuration loading for Pangea synthesis."""

import copy
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from .manager import _deep_merge, get_synthesis_settings, load_config, save_config
from .paths import get_config_path, get_defaults_path, get_project_config_path, get_user_config_path
from ..utils.errors import ConfigError
from ..utils.logging import LOG_LEVELS, get_logger

logger = get_logger("config")

SECTIONS = ("terraform", "providers", "default_tags", "output", "logging")

# Provider block keys that belong in terraform.required_providers
REQUIREMENT_KEYS = ("source", "version")


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to load config file {config_path}: {e}") from e
    if not isinstance(config, dict):
        raise ConfigError(f"Config file {config_path} must contain a dictionary")
    return config


def validate_synthesis_config(config: Dict[str, Any]) -> None:
    """
    Check section names and shapes of a synthesis config.

    Raises:
        ConfigError: If a section is unknown or malformed
    """
    unknown = [key for key in config if key not in SECTIONS]
    if unknown:
        raise ConfigError(
            f"Unknown config sections: {', '.join(sorted(unknown))}. "
            f"Supported sections: {', '.join(SECTIONS)}"
        )
    for section in SECTIONS:
        if section in config and not isinstance(config[section], dict):
            raise ConfigError(f"Config section '{section}' must be a dictionary")

    for provider_name, settings in config.get("providers", {}).items():
        if not isinstance(settings, dict):
            raise ConfigError(f"Provider '{provider_name}' settings must be a dictionary")
        if not settings.get("source"):
            raise ConfigError(f"Provider '{provider_name}' requires a 'source' (e.g. hashicorp/{provider_name})")

    for key, value in config.get("default_tags", {}).items():
        if not isinstance(value, str):
            raise ConfigError(f"default_tags value for '{key}' must be a string")

    indent = config.get("output", {}).get("indent")
    if indent is not None and (isinstance(indent, bool) or not isinstance(indent, int) or indent < 0):
        raise ConfigError(f"output.indent must be a non-negative integer, got {indent!r}")

    level = config.get("logging", {}).get("level")
    if level is not None and str(level).upper() not in LOG_LEVELS:
        raise ConfigError(f"logging.level must be one of {', '.join(LOG_LEVELS)}, got {level!r}")


def load_synthesis_config(config_path: Optional[Path] = None, use_settings: bool = True) -> Dict[str, Any]:
    """
    Load synthesis config: package defaults, then settings files, then an explicit file.

    Args:
        config_path: Optional path to a YAML config file layered on top
        use_settings: Merge the ``synthesis`` section of user/project settings

    Returns:
        Validated config dictionary

    Raises:
        ConfigError: If a file is missing, unreadable or invalid
    """
    config = _read_config_file(get_defaults_path())
    if use_settings:
        _deep_merge(config, copy.deepcopy(get_synthesis_settings()))
    if config_path is not None:
        _deep_merge(config, _read_config_file(Path(config_path)))
        logger.info(f"Loaded synthesis config from {config_path}")

    validate_synthesis_config(config)
    return config


def _fill_provider(body: Dict[str, Any], settings: Dict[str, Any], default_tags: Dict[str, str], name: str) -> None:
    for key, value in settings.items():
        if key not in REQUIREMENT_KEYS:
            body.setdefault(key, value)
    if name == "aws" and default_tags:
        tags = body.setdefault("default_tags", {}).setdefault("tags", {})
        for key, value in default_tags.items():
            tags.setdefault(key, value)


def apply_config(synth: Any, config: Dict[str, Any]) -> None:
    """
    Write config-driven blocks into a synthesizer.

    Values already present in the document win over config values, so this
    is applied after the template has been built.

    Args:
        synth: TerraformSynthesizer to update
        config: Validated config from ``load_synthesis_config``
    """
    terraform_settings = config.get("terraform", {})
    providers = config.get("providers", {})
    default_tags = config.get("default_tags", {})

    with synth.terraform() as block:
        for key, value in terraform_settings.items():
            if key not in block:
                block.set(key, value)
        if providers:
            required = block.body.setdefault("required_providers", {})
            for provider_name, settings in providers.items():
                requirement = {key: settings[key] for key in REQUIREMENT_KEYS if key in settings}
                required.setdefault(provider_name, requirement)

    existing = synth.synthesis.get("provider", {})
    for provider_name, settings in providers.items():
        if provider_name in existing:
            bodies = existing[provider_name]
            for body in bodies if isinstance(bodies, list) else [bodies]:
                if "alias" not in body:
                    _fill_provider(body, settings, default_tags, provider_name)
        else:
            with synth.provider(provider_name) as block:
                _fill_provider(block.body, settings, default_tags, provider_name)
        logger.debug(f"Applied provider config for {provider_name}")


__all__ = [
    "apply_config",
    "get_config_path",
    "get_defaults_path",
    "get_project_config_path",
    "get_user_config_path",
    "load_config",
    "load_synthesis_config",
    "save_config",
    "validate_synthesis_config",
]
