"""
Unit tests for IndicatorEngine

Tests dispatch, compute_all keying and failure isolation
"""

from unittest.mock import patch

import pytest

from core.models.indicators import IndicatorKind
from domain.indicators.engine import INDICATOR_CLASSES, IndicatorEngine
from domain.indicators.moving_averages import SMA
from domain.indicators.registry import IndicatorRegistry
from tests.fakes import make_bars


@pytest.mark.unit
class TestIndicatorEngine:
    def test_dispatch_is_exhaustive(self):
        assert set(INDICATOR_CLASSES) == set(IndicatorKind)

    @pytest.mark.parametrize("indicator_id", IndicatorRegistry.list_indicators())
    def test_every_template_computes(self, indicator_id):
        """Test each registered template yields a non-empty series on enough history"""
        prices = [100 + (i % 7) * 1.5 - (i % 3) for i in range(60)]

        series = IndicatorEngine().compute(make_bars(prices), IndicatorRegistry.build_spec(indicator_id))

        assert not series.is_empty
        assert series.id == indicator_id

    def test_create_passes_params(self):
        indicator = IndicatorEngine().create(IndicatorRegistry.build_spec("ema", spec_id="ema50", period=50))

        assert indicator.period == 50
        assert indicator.name == "ema50"

    def test_compute_all_keyed_by_spec_id(self):
        specs = [
            IndicatorRegistry.build_spec("sma5"),
            IndicatorRegistry.build_spec("sma20"),
            IndicatorRegistry.build_spec("macd"),
        ]

        results = IndicatorEngine().compute_all(make_bars([100.0 + i for i in range(10)]), specs)

        assert list(results) == ["sma5", "sma20", "macd"]
        assert len(results["sma5"]) == 6
        assert results["sma20"].is_empty
        assert results["macd"].fields == ("macd", "signal", "histogram")

    def test_failing_indicator_yields_empty_series(self):
        """Test one failing indicator doesn't take down the others"""
        specs = [IndicatorRegistry.build_spec("sma5"), IndicatorRegistry.build_spec("ema12")]

        with patch.object(SMA, "compute", side_effect=RuntimeError("boom")):
            results = IndicatorEngine().compute_all(make_bars([100.0 + i for i in range(20)]), specs)

        assert results["sma5"].is_empty
        assert not results["ema12"].is_empty
