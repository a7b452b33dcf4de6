"""Config path resolution for two-tier config system."""

from pathlib import Path
from typing import Optional

CONFIG_DIR = ".pangea"
CONFIG_FILE = "config.yaml"


def get_user_config_path() -> Path:
    """Get user config path: ~/.pangea/config.yaml"""
    return Path.home() / CONFIG_DIR / CONFIG_FILE


def get_project_config_path() -> Optional[Path]:
    """Get project config path: .pangea/config.yaml (from current working directory)"""
    project_config = Path.cwd() / CONFIG_DIR / CONFIG_FILE
    if project_config.exists():
        return project_config
    return None


def get_config_path() -> Path:
    """
    Resolve config location (project first, then user).

    Returns:
        Path to config file (project if exists, otherwise user)
    """
    return get_project_config_path() or get_user_config_path()


def get_defaults_path() -> Path:
    return Path(__file__).parent / "defaults.yaml"
