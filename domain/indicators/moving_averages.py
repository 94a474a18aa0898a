"""
Moving average indicators

Implementations:
- SMA: Simple Moving Average
- EMA: Exponential Moving Average
- WMA: Weighted Moving Average

Window helpers (rolling_mean, ema_fold) are shared with the momentum
and volatility indicators.
"""

import logging
from itertools import accumulate

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from core.interfaces.indicators import BaseIndicator, Row
from core.models.indicators import IndicatorKind
from core.models.market_data import Bar

logger = logging.getLogger(__name__)


def rolling_windows(values: list[float], period: int) -> np.ndarray:
    """2-D view of every full window; row i ends at values[i + period - 1]"""
    return sliding_window_view(np.asarray(values, dtype=float), period)


def rolling_mean(values: list[float], period: int) -> list[float]:
    """Arithmetic mean of each full window (len(values) - period + 1 results)"""
    if len(values) < period:
        return []
    return rolling_windows(values, period).mean(axis=1).tolist()


def ema_fold(values: list[float], period: int) -> list[float]:
    """
    Exponential moving average as a left fold

    Seed = SMA of the first `period` values, then
    ema[i] = k * x[i] + (1 - k) * ema[i-1], with k = 2 / (period + 1).

    Returns one value per input from index period - 1 on; empty if
    fewer than `period` values.
    """
    if len(values) < period:
        return []

    k = 2 / (period + 1)
    seed = sum(values[:period]) / period
    return list(accumulate(values[period:], lambda prev, x: k * x + (1 - k) * prev, initial=seed))


class SMA(BaseIndicator):
    """
    Simple Moving Average

    Formula: SMA = SUM(Source) / N

    Example:
        >>> bars = [...]  # 50 bars
        >>> sma = SMA(period=20)
        >>> series = sma.calculate(bars)
    """

    kind = IndicatorKind.SMA

    def compute(self, bars: list[Bar]) -> list[Row]:
        means = rolling_mean(self.values(bars), self.period)
        return [(bar.time, value) for bar, value in zip(bars[self.period - 1 :], means)]


class EMA(BaseIndicator):
    """
    Exponential Moving Average

    Formula: EMA = α × Price + (1-α) × EMA_prev
    where α = 2 / (period + 1), seeded with the SMA of the first N values

    Note:
        EMA(1) reproduces the source series exactly.

    Example:
        >>> bars = [...]  # 200 bars for EMA(50)
        >>> ema = EMA(period=50)
        >>> series = ema.calculate(bars)
    """

    kind = IndicatorKind.EMA

    def compute(self, bars: list[Bar]) -> list[Row]:
        emas = ema_fold(self.values(bars), self.period)
        return [(bar.time, value) for bar, value in zip(bars[self.period - 1 :], emas)]


class WMA(BaseIndicator):
    """
    Weighted Moving Average

    Formula: WMA = SUM(Price × Weight) / SUM(Weight)
    where Weight = 1, 2, ..., N (newest bar weighs N)

    Example:
        >>> wma = WMA(period=20)
        >>> series = wma.calculate(bars)
    """

    kind = IndicatorKind.WMA

    def compute(self, bars: list[Bar]) -> list[Row]:
        weights = np.arange(1, self.period + 1, dtype=float)
        windows = rolling_windows(self.values(bars), self.period)
        wmas = (windows @ weights / weights.sum()).tolist()
        return [(bar.time, value) for bar, value in zip(bars[self.period - 1 :], wmas)]
