"""
Indicator Loader - Load indicator presets from config

Responsibility: Bridge between config layer and domain layer
- Read preset entries (config layer)
- Use IndicatorRegistry to build validated specs (domain layer)
- Return ready-to-use specs keyed by preset name

This is SERVICE layer - knows about config, uses domain registry
"""

import logging

from pydantic import ValidationError

from config.loader import IndicatorPresetConfig, get_enabled_presets
from config.settings import get_settings
from core.errors import ConfigurationError
from core.models.indicators import IndicatorSpec
from domain.indicators.registry import IndicatorRegistry

logger = logging.getLogger(__name__)


class IndicatorLoader:
    """Load indicator presets from YAML config using registry"""

    @staticmethod
    def load_from_settings() -> dict[str, IndicatorSpec]:
        """
        Load presets from settings.INDICATOR_PRESETS

        Returns:
            Dict of specs: {"sma5": IndicatorSpec(...), "ema26": IndicatorSpec(...), ...}

        Example:
            >>> presets = IndicatorLoader.load_from_settings()
            >>> presets["ema26"].params
            {'period': 26}
        """
        settings = get_settings()
        presets = []

        for entry in settings.INDICATOR_PRESETS:
            try:
                presets.append(IndicatorPresetConfig(**entry))
            except (TypeError, ValidationError) as e:
                logger.warning(f"  ✗ Skipping invalid preset entry {entry!r}: {e}")

        return IndicatorLoader.build_specs([p for p in presets if p.enabled])

    @staticmethod
    def load_from_file(config_path: str = "config/providers/indicators.yaml") -> dict[str, IndicatorSpec]:
        """Load enabled presets from an explicit indicators.yaml"""
        return IndicatorLoader.build_specs(list(get_enabled_presets(config_path).values()))

    @staticmethod
    def build_specs(presets: list[IndicatorPresetConfig]) -> dict[str, IndicatorSpec]:
        specs = {}

        for preset in presets:
            try:
                # Use domain registry to validate template + overrides
                spec = IndicatorRegistry.build_spec(
                    preset.template, spec_id=preset.name, source=preset.source, **preset.params
                )
                specs[preset.name] = spec
                logger.debug(f"  ✓ Loaded {preset.name}: {spec.kind.value} {spec.params}")

            except ConfigurationError as e:
                logger.warning(f"  ✗ Skipping {preset.name}: {e}")

        logger.info(f"✓ Loaded {len(specs)} indicator presets: {list(specs.keys())}")
        return specs
