"""
Configuration Loading Utilities.
"""

from pathlib import Path
from typing import Any, Dict

import yaml

REQUIRED_SECTIONS = ["paths", "lists", "app_categories"]


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    for section in REQUIRED_SECTIONS:
        if config.get(section) is None:
            config[section] = {}

    # Relative paths in the file are relative to the file itself
    config.setdefault("config_dir", str(config_path.resolve().parent))

    return config


def save_config(config: Dict[str, Any], config_path: str) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration dictionary
        config_path: Output path
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {k: v for k, v in config.items() if k != "config_dir"}
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration dictionary.

    Returns:
        Default configuration
    """
    return {
        "paths": {
            "nextcloud_root": "..",
            "shipped_json": "core/shipped.json",
            "occ": "occ",
            "external_apps_dir": "apps-external",
            "makefile": "IONOS/Makefile",
            "configs_dir": "IONOS/configs",
        },
        "lists": {
            "disabled_apps": "disabled-apps.list",
            "always_enabled_apps": "always-enabled-apps.list",
            "removed_apps": "removed-apps.txt",
            "enabled_core_apps": "enabled-core-apps.list",
        },
        "app_categories": {
            "full_build": [],
            "composer_only": [],
            "composer_no_scripts": [],
            "composer_no_scripts_with_npm": [],
            "nothing_to_build": [],
            "special": [],
        },
        "validation": {
            "excluded_hardcoded_targets": ["notify_push", "theming"],
        },
        "shipped_app_folders": ["apps-external"],
        "special_builds": {},
        "configure": {},
        "packaging": {
            "package_name": "ncw-server.zip",
        },
    }
