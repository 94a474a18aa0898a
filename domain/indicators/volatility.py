"""
Volatility indicators

Implementations:
- BollingerBands: SMA flanked by population standard-deviation bands
"""

from core.interfaces.indicators import BaseIndicator, Row
from core.models.indicators import IndicatorKind
from core.models.market_data import Bar, SourceField
from domain.indicators.moving_averages import rolling_windows


class BollingerBands(BaseIndicator):
    """
    Bollinger Bands

    Formula:
        Middle = SMA(N) of Close
        StdDev = population standard deviation of the same N closes
        Upper  = Middle + multiplier × StdDev
        Lower  = Middle - multiplier × StdDev

    Output:
        (upper, middle, lower) tuples

    Example:
        >>> bands = BollingerBands(period=20, std_dev=2)
        >>> upper, middle, lower = bands.calculate(bars).points[-1].value
    """

    kind = IndicatorKind.BOLLINGER
    fields = ("upper", "middle", "lower")

    def __init__(self, period: int = 20, std_dev: float = 2.0, **kwargs):
        """
        Initialize Bollinger Bands

        Args:
            period: Window length (default: 20)
            std_dev: Band width in standard deviations (default: 2)
        """
        super().__init__(period=period, std_dev=std_dev, **kwargs)
        if std_dev < 0:
            raise ValueError("BollingerBands: std_dev must be >= 0")
        self.std_dev = float(std_dev)

    @property
    def input_fields(self) -> tuple[SourceField, ...]:
        return (SourceField.CLOSE,)

    def compute(self, bars: list[Bar]) -> list[Row]:
        windows = rolling_windows([b.close for b in bars], self.period)
        middles = windows.mean(axis=1).tolist()
        deviations = windows.std(axis=1, ddof=0).tolist()

        rows = []
        for bar, middle, deviation in zip(bars[self.period - 1 :], middles, deviations):
            width = self.std_dev * deviation
            rows.append((bar.time, (middle + width, middle, middle - width)))
        return rows
