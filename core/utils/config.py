"""
Configuration utility functions
"""

from pathlib import Path
from typing import Any

import yaml


def load_yaml(filepath: str) -> dict[str, Any]:
    """
    Load YAML file and return as dictionary

    Args:
        filepath: Path to YAML file (relative or absolute)

    Returns:
        Dictionary with YAML data (empty dict for an empty file)

    Raises:
        FileNotFoundError: If file doesn't exist
        yaml.YAMLError: If YAML is invalid

    Example:
        >>> config = load_yaml("config/providers/services.yaml")
        >>> print(config['cache']['default_ttl_seconds'])
        300
    """
    path = Path(filepath)

    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {filepath}")

    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_yaml_safe(filepath: str) -> dict[str, Any]:
    """
    Load YAML file with fallback to empty dict if missing or invalid

    Example:
        >>> config = load_yaml_safe("config/optional.yaml")
        >>> # Returns {} if file doesn't exist
    """
    try:
        return load_yaml(filepath)
    except (FileNotFoundError, yaml.YAMLError):
        return {}


def load_layered_yaml(filepath: str, environment: str | None = None) -> dict[str, Any]:
    """
    Load a base YAML file and deep-merge an environment overlay on top

    services.yaml + services.prod.yaml → merged dict. Missing files
    contribute nothing.

    Example:
        >>> load_layered_yaml("config/providers/services.yaml", "prod")
    """
    base = load_yaml_safe(filepath)
    if not environment:
        return base

    path = Path(filepath)
    overlay = load_yaml_safe(str(path.with_name(f"{path.stem}.{environment}{path.suffix}")))
    return deep_merge(base, overlay)


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge overlay into a copy of base (overlay wins)"""
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
