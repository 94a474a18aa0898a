"""
Configuration loader with YAML support and Pydantic validation
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class IndicatorPresetConfig(BaseModel):
    """Single indicator preset: a registry template plus parameter overrides"""

    name: str = Field(min_length=1)
    template: str = Field(min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)
    source: str | None = None
    enabled: bool = True

    @field_validator("name", "template")
    @classmethod
    def normalize_id(cls, v):
        return v.strip().lower()


class IndicatorSettingsConfig(BaseModel):
    default_indicators: list[str] = Field(default_factory=list)


class IndicatorsConfig(BaseModel):
    """Whole indicators.yaml document"""

    indicators: list[IndicatorPresetConfig] = Field(default_factory=list)
    settings: IndicatorSettingsConfig = Field(default_factory=IndicatorSettingsConfig)

    @field_validator("indicators")
    @classmethod
    def names_unique(cls, v):
        names = [preset.name for preset in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate indicator preset names: {', '.join(duplicates)}")
        return v


def load_indicators_config(
    config_path: str = "config/providers/indicators.yaml",
) -> IndicatorsConfig:
    """
    Load and validate indicator presets from YAML

    Args:
        config_path: Path to indicators.yaml file

    Returns:
        IndicatorsConfig: Validated presets and settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid

    Example:
        >>> config = load_indicators_config()
        >>> [p.name for p in config.indicators]
        ['sma5', 'sma10', 'sma20', 'ema12', 'ema26', 'rsi14', 'macd', 'bollinger', 'kdj']
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Indicator config not found: {config_path}")

    # Load YAML
    with open(config_file) as f:
        data = yaml.safe_load(f) or {}

    # Validate with Pydantic
    try:
        config = IndicatorsConfig(**data)
        logger.info(f"✓ Loaded {len(config.indicators)} indicator presets")
        return config

    except Exception as e:
        logger.error(f"Failed to load indicator config: {e}")
        raise


def get_enabled_presets(
    config_path: str = "config/providers/indicators.yaml",
) -> dict[str, IndicatorPresetConfig]:
    """
    Get only enabled presets, keyed by name

    Example:
        >>> enabled = get_enabled_presets()
        >>> "kdj" in enabled
        False
    """
    config = load_indicators_config(config_path)
    enabled = {preset.name: preset for preset in config.indicators if preset.enabled}

    logger.info(f"✓ Enabled indicator presets: {', '.join(enabled.keys()) or 'none'}")
    return enabled


# Convenience exports
__all__ = [
    "IndicatorPresetConfig",
    "IndicatorSettingsConfig",
    "IndicatorsConfig",
    "load_indicators_config",
    "get_enabled_presets",
]
