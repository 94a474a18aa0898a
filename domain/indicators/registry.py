"""
Indicator registry for templates and spec validation

Fixed table of indicator templates (id → kind, display defaults, params)
plus per-kind parameter models. Carries no computation logic: the
IndicatorEngine turns validated IndicatorSpec objects into series.
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from core.errors import InvalidParameterError, UnknownIndicatorError
from core.models.indicators import (
    IndicatorCategory,
    IndicatorKind,
    IndicatorSpec,
    IndicatorTemplate,
)
from core.models.market_data import SourceField

logger = logging.getLogger(__name__)


# ============================================
# PARAMETER MODELS (one per kind)
# ============================================


class _Params(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class MovingAverageParams(_Params):
    period: int = Field(ge=1, strict=True)


class RSIParams(_Params):
    period: int = Field(default=14, ge=1, strict=True)
    overbought: float = Field(default=70, ge=0, le=100)
    oversold: float = Field(default=30, ge=0, le=100)

    @model_validator(mode="after")
    def check_levels(self):
        if self.oversold >= self.overbought:
            raise ValueError(f"oversold {self.oversold} must be below overbought {self.overbought}")
        return self


class MACDParams(_Params):
    fast_period: int = Field(default=12, ge=1, strict=True)
    slow_period: int = Field(default=26, ge=1, strict=True)
    signal_period: int = Field(default=9, ge=1, strict=True)

    @model_validator(mode="after")
    def check_order(self):
        if self.fast_period >= self.slow_period:
            raise ValueError(
                f"fast_period {self.fast_period} must be below slow_period {self.slow_period}"
            )
        return self


class BollingerParams(_Params):
    period: int = Field(default=20, ge=1, strict=True)
    std_dev: float = Field(default=2.0, ge=0)


class KDJParams(_Params):
    k_period: int = Field(default=9, ge=1, strict=True)
    d_period: int = Field(default=3, ge=1, strict=True)
    j_period: int = Field(default=3, ge=1, strict=True)


PARAM_MODELS: dict[IndicatorKind, type[_Params]] = {
    IndicatorKind.SMA: MovingAverageParams,
    IndicatorKind.EMA: MovingAverageParams,
    IndicatorKind.WMA: MovingAverageParams,
    IndicatorKind.RSI: RSIParams,
    IndicatorKind.MACD: MACDParams,
    IndicatorKind.BOLLINGER: BollingerParams,
    IndicatorKind.KDJ: KDJParams,
}


def _template(
    id: str,
    name: str,
    kind: IndicatorKind,
    category: IndicatorCategory,
    color: str,
    line_width: int = 1,
    **params,
) -> IndicatorTemplate:
    return IndicatorTemplate(
        id=id,
        name=name,
        kind=kind,
        category=category,
        color=color,
        line_width=line_width,
        params=params,
    )


_OVERLAY = IndicatorCategory.OVERLAY
_OSCILLATOR = IndicatorCategory.OSCILLATOR

_TEMPLATES: tuple[IndicatorTemplate, ...] = (
    # Dashboard presets
    _template("sma5", "SMA(5)", IndicatorKind.SMA, _OVERLAY, "#FF6B35", period=5),
    _template("sma10", "SMA(10)", IndicatorKind.SMA, _OVERLAY, "#4ECDC4", period=10),
    _template("sma20", "SMA(20)", IndicatorKind.SMA, _OVERLAY, "#45B7D1", 2, period=20),
    _template("ema12", "EMA(12)", IndicatorKind.EMA, _OVERLAY, "#FFA07A", period=12),
    _template(
        "rsi14", "RSI(14)", IndicatorKind.RSI, _OSCILLATOR, "#FF6B35", 2,
        period=14, overbought=70, oversold=30,
    ),
    _template(
        "macd", "MACD(12,26,9)", IndicatorKind.MACD, _OSCILLATOR, "#4ECDC4", 2,
        fast_period=12, slow_period=26, signal_period=9,
    ),
    _template(
        "bollinger", "Bollinger(20,2)", IndicatorKind.BOLLINGER, _OVERLAY, "#9B59B6",
        period=20, std_dev=2.0,
    ),
    _template(
        "kdj", "KDJ(9,3,3)", IndicatorKind.KDJ, _OSCILLATOR, "#45B7D1", 2,
        k_period=9, d_period=3, j_period=3,
    ),
    # Generic templates: any period via overrides
    _template("sma", "SMA", IndicatorKind.SMA, _OVERLAY, "#FF6B35", period=20),
    _template("ema", "EMA", IndicatorKind.EMA, _OVERLAY, "#FFA07A", period=20),
    _template("wma", "WMA", IndicatorKind.WMA, _OVERLAY, "#F7DC6F", period=20),
    _template(
        "rsi", "RSI", IndicatorKind.RSI, _OSCILLATOR, "#FF6B35", 2,
        period=14, overbought=70, oversold=30,
    ),
)


class IndicatorRegistry:
    """
    Registry of indicator templates

    Provides lookup and validated spec construction

    Example:
        >>> spec = IndicatorRegistry.build_spec("sma20")
        >>> spec.params
        {'period': 20}
        >>> spec = IndicatorRegistry.build_spec("ema", period=50, spec_id="ema50")
        >>> IndicatorRegistry.build_spec("unknown_xyz")
        Traceback (most recent call last):
        ...
        core.errors.UnknownIndicatorError: Unknown indicator: unknown_xyz. Available: ...
    """

    _templates: dict[str, IndicatorTemplate] = {t.id: t for t in _TEMPLATES}

    @classmethod
    def get(cls, indicator_id: str) -> IndicatorTemplate:
        """
        Get template by id

        Raises:
            UnknownIndicatorError: If id is not registered
        """
        template = cls._templates.get(indicator_id.strip().lower())
        if template is None:
            raise UnknownIndicatorError(indicator_id, cls.list_indicators())
        return template

    @classmethod
    def list_templates(cls) -> list[IndicatorTemplate]:
        """All templates in registration order"""
        return list(cls._templates.values())

    @classmethod
    def list_indicators(cls) -> list[str]:
        """
        List all available template ids

        Example:
            >>> IndicatorRegistry.list_indicators()[:3]
            ['bollinger', 'ema', 'ema12']
        """
        return sorted(cls._templates.keys())

    @classmethod
    def build_spec(
        cls,
        indicator_id: str,
        spec_id: str | None = None,
        source: SourceField | str | None = None,
        **overrides: Any,
    ) -> IndicatorSpec:
        """
        Build a validated IndicatorSpec from a template plus overrides

        Args:
            indicator_id: Template id (e.g., "sma20", "macd", "ema")
            spec_id: Id of the resulting series (default: template id)
            source: Bar field to read (default: close)
            **overrides: Parameter overrides, validated against the kind's model

        Returns:
            IndicatorSpec with normalized params

        Raises:
            UnknownIndicatorError: Unknown template id
            InvalidParameterError: Unknown parameter name or invalid value
        """
        template = cls.get(indicator_id)
        params = cls._validate_params(spec_id or template.id, template.kind, {**template.params, **overrides})

        try:
            source_field = SourceField(source) if source is not None else SourceField.CLOSE
        except ValueError:
            raise InvalidParameterError(spec_id or template.id, f"unknown source '{source}'") from None

        return IndicatorSpec(
            id=spec_id or template.id,
            kind=template.kind,
            category=template.category,
            params=params,
            source=source_field,
        )

    @classmethod
    def validate(cls, spec: IndicatorSpec) -> IndicatorSpec:
        """
        Re-check a caller-built spec against its kind's parameter model

        Returns:
            Spec with normalized params (defaults filled in)

        Raises:
            InvalidParameterError: Unknown parameter name or invalid value
        """
        params = cls._validate_params(spec.id, spec.kind, spec.params)
        if params == spec.params:
            return spec
        return spec.model_copy(update={"params": params})

    @staticmethod
    def _validate_params(spec_id: str, kind: IndicatorKind, params: dict[str, Any]) -> dict[str, Any]:
        model = PARAM_MODELS[kind]
        try:
            return model.model_validate(params).model_dump()
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'params'}: {err['msg']}"
                for err in e.errors()
            )
            logger.debug(f"✗ Rejected params for {spec_id}: {details}")
            raise InvalidParameterError(spec_id, details) from e
