"""
Momentum indicators

Implementations:
- RSI: Relative Strength Index
- MACD: Moving Average Convergence Divergence
- KDJ: Stochastic oscillator with recursively smoothed K/D/J lines
"""

from itertools import accumulate

import numpy as np

from core.interfaces.indicators import BaseIndicator, Row
from core.models.indicators import IndicatorKind, IndicatorPoint
from core.models.market_data import Bar, SourceField
from domain.indicators.moving_averages import ema_fold, rolling_mean, rolling_windows


class RSI(BaseIndicator):
    """
    Relative Strength Index

    Formula:
        RS = Average Gain / Average Loss (simple mean over the last N changes)
        RSI = 100 - (100 / (1 + RS))
        RSI = 100 when Average Loss is 0

    Interpretation:
        - RSI > overbought (70): Overbought
        - RSI < oversold (30): Oversold

    Example:
        >>> rsi = RSI(period=14)
        >>> series = rsi.calculate(bars)  # first value at bar index 14
    """

    kind = IndicatorKind.RSI

    def __init__(self, period: int = 14, overbought: float = 70, oversold: float = 30, **kwargs):
        """
        Initialize RSI

        Args:
            period: Number of close-to-close changes averaged (default: 14)
            overbought: Upper reference level (display only)
            oversold: Lower reference level (display only)
        """
        super().__init__(period=period, overbought=overbought, oversold=oversold, **kwargs)
        self.overbought = overbought
        self.oversold = oversold

    @property
    def min_bars(self) -> int:
        # N changes need N + 1 closes
        return self.period + 1

    def compute(self, bars: list[Bar]) -> list[Row]:
        changes = np.diff(np.asarray(self.values(bars), dtype=float))
        gains = np.where(changes > 0, changes, 0.0).tolist()
        losses = np.where(changes < 0, -changes, 0.0).tolist()

        rows = []
        for bar, avg_gain, avg_loss in zip(
            bars[self.period :],
            rolling_mean(gains, self.period),
            rolling_mean(losses, self.period),
        ):
            if avg_loss == 0:
                rsi = 100.0
            else:
                rsi = 100 - 100 / (1 + avg_gain / avg_loss)
            rows.append((bar.time, rsi))
        return rows


class MACD(BaseIndicator):
    """
    Moving Average Convergence Divergence

    Components:
        - MACD Line = EMA(fast) - EMA(slow), aligned on the slow series
        - Signal Line = EMA(signal) of the MACD line, seeded by its own SMA
        - Histogram = MACD Line - Signal Line

    Output:
        (macd, signal, histogram) tuples from the first bar where the
        signal line exists, so histogram == macd - signal at every point.
        The signal_period - 1 MACD values before that (from bar slow - 1)
        have no signal; macd_line() returns the full MACD line for callers
        that draw it on its own.

    Example:
        >>> macd = MACD()
        >>> series = macd.calculate(bars)
        >>> series.line("histogram")[-1].value
    """

    kind = IndicatorKind.MACD
    fields = ("macd", "signal", "histogram")

    def __init__(
        self,
        fast_period: int = 12,
        slow_period: int = 26,
        signal_period: int = 9,
        **kwargs,
    ):
        """
        Initialize MACD

        Args:
            fast_period: Fast EMA period (default: 12)
            slow_period: Slow EMA period (default: 26)
            signal_period: Signal line EMA period (default: 9)

        Raises:
            ValueError: If fast_period >= slow_period or signal_period < 1
        """
        # Use slow_period as the main period for validation
        super().__init__(period=slow_period, fast=fast_period, signal=signal_period, **kwargs)
        if fast_period < 1 or fast_period >= slow_period:
            raise ValueError(f"MACD: fast_period {fast_period} must be in [1, {slow_period})")
        if signal_period < 1:
            raise ValueError("MACD: signal_period must be a positive integer")

        self.fast_period = fast_period
        self.slow_period = slow_period
        self.signal_period = signal_period

    @property
    def min_bars(self) -> int:
        return self.slow_period + self.signal_period - 1

    def macd_line(self, bars: list[Bar]) -> list[IndicatorPoint]:
        """MACD line alone, from the first bar where the slow EMA exists"""
        usable = self.finite_bars(bars)
        return [
            IndicatorPoint(time=bar.time, value=value)
            for bar, value in zip(usable[self.slow_period - 1 :], self._macd_values(usable))
        ]

    def _macd_values(self, bars: list[Bar]) -> list[float]:
        closes = self.values(bars)
        fast = ema_fold(closes, self.fast_period)
        slow = ema_fold(closes, self.slow_period)

        # fast starts at index fast-1, slow at slow-1: drop the fast head
        offset = self.slow_period - self.fast_period
        return [f - s for f, s in zip(fast[offset:], slow)]

    def compute(self, bars: list[Bar]) -> list[Row]:
        macd_line = self._macd_values(bars)
        signal_line = ema_fold(macd_line, self.signal_period)

        # Bar index of the first signal value
        start = self.slow_period + self.signal_period - 2
        return [
            (bar.time, (m, s, m - s))
            for bar, m, s in zip(bars[start:], macd_line[self.signal_period - 1 :], signal_line)
        ]


class KDJ(BaseIndicator):
    """
    KDJ (stochastic oscillator family)

    Formula:
        RSV = (Close - LLV(N)) / (HHV(N) - LLV(N)) × 100
        K = (2 × K_prev + RSV) / 3
        D = (2 × D_prev + K) / 3
        J = 3K - 2D
        K_prev = D_prev = 50 before the first value

    The 1/3 smoothing weight is fixed; d_period and j_period label the
    preset (KDJ(9,3,3)) and do not change the values.
    A flat window (HHV == LLV) carries K forward (RSV := K_prev).

    Example:
        >>> kdj = KDJ()
        >>> series = kdj.calculate(bars)
        >>> k, d, j = series.points[-1].value
    """

    kind = IndicatorKind.KDJ
    fields = ("k", "d", "j")

    def __init__(self, k_period: int = 9, d_period: int = 3, j_period: int = 3, **kwargs):
        """
        Initialize KDJ

        Args:
            k_period: RSV look-back window N (default: 9)
            d_period: D line label (default: 3)
            j_period: J line label (default: 3)
        """
        super().__init__(period=k_period, d=d_period, j=j_period, **kwargs)
        if d_period < 1 or j_period < 1:
            raise ValueError("KDJ: d_period and j_period must be positive integers")

        self.k_period = k_period
        self.d_period = d_period
        self.j_period = j_period

    @property
    def input_fields(self) -> tuple[SourceField, ...]:
        return (SourceField.HIGH, SourceField.LOW, SourceField.CLOSE)

    def compute(self, bars: list[Bar]) -> list[Row]:
        highest = rolling_windows([b.high for b in bars], self.k_period).max(axis=1).tolist()
        lowest = rolling_windows([b.low for b in bars], self.k_period).min(axis=1).tolist()
        closes = [b.close for b in bars[self.k_period - 1 :]]

        def step(state, window):
            prev_k, prev_d = state
            close, hhv, llv = window
            rsv = prev_k if hhv == llv else (close - llv) / (hhv - llv) * 100
            k = (2 * prev_k + rsv) / 3
            d = (2 * prev_d + k) / 3
            return k, d

        states = list(accumulate(zip(closes, highest, lowest), step, initial=(50.0, 50.0)))[1:]
        return [
            (bar.time, (k, d, 3 * k - 2 * d))
            for bar, (k, d) in zip(bars[self.k_period - 1 :], states)
        ]
