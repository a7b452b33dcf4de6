"""Two-tier configuration manager (user + project override)."""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from .paths import get_project_config_path, get_user_config_path
from ..utils.errors import ConfigError
from ..utils.logging import get_logger

logger = get_logger("config.manager")


def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_config() -> Dict[str, Any]:
    """
    Load full settings tree with project override.

    Unreadable files are skipped with a warning.

    Returns:
        Settings dictionary (project config overrides user config)
    """
    config: Dict[str, Any] = {}
    user_config_path = get_user_config_path()
    if user_config_path.exists():
        try:
            config = _read_yaml(user_config_path)
        except (OSError, yaml.YAMLError, ConfigError) as e:
            logger.warning(f"Could not load user config from {user_config_path}: {e}")

    project_config_path = get_project_config_path()
    if project_config_path:
        try:
            _deep_merge(config, _read_yaml(project_config_path))
            logger.info(f"Loaded project config from {project_config_path}")
        except (OSError, yaml.YAMLError, ConfigError) as e:
            logger.warning(f"Could not load project config from {project_config_path}: {e}")

    return config


def get_synthesis_settings(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return the ``synthesis`` subsection of the loaded settings."""
    if config is None:
        config = load_config()
    section = config.get("synthesis") or {}
    if not isinstance(section, dict):
        raise ConfigError("'synthesis' settings must be a mapping")
    return section


def save_config(config: Dict[str, Any], path: Optional[Path] = None) -> Path:
    """
    Save settings to a path (defaults to the user config).

    Raises:
        ConfigError: If the file cannot be written
    """
    if path is None:
        path = get_user_config_path()

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigError(f"Failed to save config to {path}: {e}") from e
    logger.info(f"Saved config to {path}")
    return path


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Deep merge override into base (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
