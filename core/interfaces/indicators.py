"""
Abstract interface for technical indicators

Pure-calculation indicator base class
"""

import logging
import math
from abc import ABC, abstractmethod
from datetime import date

from core.models.indicators import IndicatorKind, IndicatorPoint, IndicatorSeries
from core.models.market_data import Bar, SourceField

logger = logging.getLogger(__name__)

Row = tuple[date, float | tuple[float, ...]]


class BaseIndicator(ABC):
    """
    Indicator interface

    Design principle:
    - Pure calculation logic (instances hold parameters only, no running state)
    - Testable with plain bar lists
    - Output aligned to a subset of the input bar times

    Implementations:
    - SMA, EMA, WMA (domain/indicators/moving_averages.py)
    - RSI, MACD, KDJ (domain/indicators/momentum.py)
    - BollingerBands (domain/indicators/volatility.py)
    """

    kind: IndicatorKind
    fields: tuple[str, ...] = ("value",)

    def __init__(
        self,
        period: int,
        name: str | None = None,
        source: SourceField = SourceField.CLOSE,
        **kwargs,
    ):
        """
        Initialize indicator

        Args:
            period: Look-back period for calculation
            name: Series id (e.g., "sma20"). If None, uses the kind value.
            source: Bar field the indicator reads
            **kwargs: Additional indicator-specific parameters

        Raises:
            ValueError: If period is not a positive integer
        """
        if isinstance(period, bool) or not isinstance(period, int) or period < 1:
            raise ValueError(f"{self.__class__.__name__}: period must be a positive integer")

        self.period = period
        self.name = name or self.kind.value
        self.source = SourceField(source)
        self.params = {"period": period, **kwargs}

    @property
    def min_bars(self) -> int:
        """Bars needed before the first value is emitted"""
        return self.period

    @property
    def input_fields(self) -> tuple[SourceField, ...]:
        """Bar fields that must be finite for a bar to be used"""
        return (self.source,)

    @abstractmethod
    def compute(self, bars: list[Bar]) -> list[Row]:
        """
        Compute (time, value) rows from finite, ordered bars

        Called only with at least self.min_bars bars.
        """

    def calculate(self, bars: list[Bar]) -> IndicatorSeries:
        """
        Calculate the full indicator series

        Args:
            bars: Bars ordered by time ASC

        Returns:
            IndicatorSeries (empty if history is insufficient)
        """
        usable = self.finite_bars(bars)

        if len(usable) < self.min_bars:
            logger.debug(f"{self!r}: {len(usable)} usable bars, need {self.min_bars}")
            return IndicatorSeries.empty(self.name, self.kind, self.fields)

        points = tuple(IndicatorPoint(time=t, value=v) for t, v in self.compute(usable))
        return IndicatorSeries(id=self.name, kind=self.kind, fields=self.fields, points=points)

    def finite_bars(self, bars: list[Bar]) -> list[Bar]:
        """Skip bars with non-finite inputs so NaN never enters recursive state"""
        usable = [
            bar for bar in bars if all(math.isfinite(bar.value_of(f)) for f in self.input_fields)
        ]
        skipped = len(bars) - len(usable)
        if skipped:
            logger.debug(f"{self!r}: skipped {skipped} bars with non-finite inputs")
        return usable

    def values(self, bars: list[Bar]) -> list[float]:
        """Source values of the given bars"""
        return [bar.value_of(self.source) for bar in bars]

    def __repr__(self) -> str:
        """String representation"""
        params_str = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.__class__.__name__}({params_str})"
