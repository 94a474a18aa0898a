"""
Unit tests for BarValidator

Tests invariant checks and sequence cleaning (malformed / out-of-order bars)
"""

from datetime import date

import pytest

from core.models.market_data import Bar
from core.validators.market_data import BarValidator


def bar(day: int, open=10.0, high=11.0, low=9.0, close=10.5, volume=100.0) -> Bar:
    return Bar(time=date(2024, 1, day), open=open, high=high, low=low, close=close, volume=volume)


@pytest.mark.unit
class TestValidateBar:
    """Test single-bar invariant checks"""

    def test_valid_bar(self):
        assert BarValidator().validate_bar(bar(2)) == (True, None)

    def test_high_below_close(self):
        ok, error = BarValidator().validate_bar(bar(2, high=10.2, close=10.5))

        assert not ok
        assert "High" in error

    def test_low_above_open(self):
        ok, error = BarValidator().validate_bar(bar(2, low=10.2, open=10.0))

        assert not ok
        assert "Low" in error

    def test_non_positive_price(self):
        ok, error = BarValidator().validate_bar(bar(2, low=0.0))

        assert not ok
        assert "low" in error

    def test_nan_price(self):
        ok, error = BarValidator().validate_bar(bar(2, close=float("nan")))

        assert not ok
        assert "Non-finite" in error

    def test_negative_volume(self):
        ok, _ = BarValidator().validate_bar(bar(2, volume=-1))

        assert not ok


@pytest.mark.unit
class TestClean:
    """Test sequence cleaning never aborts on bad input"""

    def test_drops_malformed_and_keeps_rest(self, caplog):
        validator = BarValidator()
        bars = [bar(2), bar(3, high=9.5), bar(4)]

        kept = validator.clean(bars, context="600000")

        assert [b.time.day for b in kept] == [2, 4]
        assert validator.get_stats() == {"invalid_count": 1, "out_of_order_count": 0}
        assert "600000" in caplog.text

    def test_drops_duplicates_and_out_of_order(self):
        validator = BarValidator()
        bars = [bar(2), bar(4), bar(4), bar(3), bar(5)]

        kept = validator.clean(bars)

        assert [b.time.day for b in kept] == [2, 4, 5]
        assert validator.out_of_order_count == 2

    def test_reset_stats(self):
        validator = BarValidator()
        validator.clean([bar(2, high=1.0)])

        validator.reset_stats()

        assert validator.get_stats() == {"invalid_count": 0, "out_of_order_count": 0}
