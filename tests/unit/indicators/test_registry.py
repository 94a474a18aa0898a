"""
Unit tests for IndicatorRegistry

Tests template lookup, spec construction and parameter validation
"""

import pytest

from core.errors import ErrorKind, InvalidParameterError, UnknownIndicatorError
from core.models.indicators import IndicatorCategory, IndicatorKind, IndicatorSpec
from core.models.market_data import SourceField
from domain.indicators.registry import PARAM_MODELS, IndicatorRegistry


@pytest.mark.unit
class TestRegistryLookup:
    def test_presets_registered(self):
        ids = IndicatorRegistry.list_indicators()

        for preset in ("sma5", "sma10", "sma20", "ema12", "rsi14", "macd", "bollinger", "kdj"):
            assert preset in ids

    def test_every_kind_has_param_model(self):
        assert set(PARAM_MODELS) == set(IndicatorKind)

    def test_lookup_is_case_insensitive(self):
        assert IndicatorRegistry.get(" SMA20 ").id == "sma20"

    def test_unknown_indicator(self):
        """Test unknown id raises a configuration error listing what exists"""
        with pytest.raises(UnknownIndicatorError) as exc_info:
            IndicatorRegistry.get("unknown_xyz")

        assert exc_info.value.kind is ErrorKind.CONFIGURATION
        assert "sma20" in exc_info.value.message

    def test_template_display_defaults(self):
        template = IndicatorRegistry.get("sma20")

        assert template.category is IndicatorCategory.OVERLAY
        assert template.color == "#45B7D1"
        assert template.line_width == 2


@pytest.mark.unit
class TestBuildSpec:
    def test_defaults_from_template(self):
        spec = IndicatorRegistry.build_spec("macd")

        assert spec.kind is IndicatorKind.MACD
        assert spec.params == {"fast_period": 12, "slow_period": 26, "signal_period": 9}
        assert spec.source is SourceField.CLOSE

    def test_overrides_and_spec_id(self):
        spec = IndicatorRegistry.build_spec("ema", spec_id="ema50", period=50)

        assert spec.id == "ema50"
        assert spec.params == {"period": 50}

    def test_source_override(self):
        spec = IndicatorRegistry.build_spec("sma", source="volume")

        assert spec.source is SourceField.VOLUME

    def test_unknown_source(self):
        with pytest.raises(InvalidParameterError):
            IndicatorRegistry.build_spec("sma", source="vwap")

    def test_unknown_parameter_name(self):
        with pytest.raises(InvalidParameterError) as exc_info:
            IndicatorRegistry.build_spec("sma", length=10)

        assert "length" in exc_info.value.message

    @pytest.mark.parametrize("period", [0, -5, 2.5, "20", True])
    def test_invalid_period(self, period):
        with pytest.raises(InvalidParameterError):
            IndicatorRegistry.build_spec("sma", period=period)

    def test_macd_fast_not_below_slow(self):
        with pytest.raises(InvalidParameterError):
            IndicatorRegistry.build_spec("macd", fast_period=30)

    def test_rsi_levels_order(self):
        with pytest.raises(InvalidParameterError):
            IndicatorRegistry.build_spec("rsi", overbought=20, oversold=80)

    def test_bollinger_negative_width(self):
        with pytest.raises(InvalidParameterError):
            IndicatorRegistry.build_spec("bollinger", std_dev=-1)


@pytest.mark.unit
class TestValidateSpec:
    def test_fills_defaults(self):
        spec = IndicatorSpec(
            id="my_rsi",
            kind=IndicatorKind.RSI,
            category=IndicatorCategory.OSCILLATOR,
            params={"period": 7},
        )

        validated = IndicatorRegistry.validate(spec)

        assert validated.params == {"period": 7, "overbought": 70.0, "oversold": 30.0}
        assert validated.id == "my_rsi"

    def test_rejects_bad_params(self):
        spec = IndicatorSpec(
            id="bad",
            kind=IndicatorKind.KDJ,
            category=IndicatorCategory.OSCILLATOR,
            params={"k_period": 0},
        )

        with pytest.raises(InvalidParameterError):
            IndicatorRegistry.validate(spec)
