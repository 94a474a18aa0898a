"""
Indicator Engine - dispatch IndicatorSpec → indicator calculation

Bridge between validated specs (registry) and indicator classes:
    IndicatorRegistry → IndicatorSpec
    IndicatorEngine   → BaseIndicator subclass → IndicatorSeries

Nothing raises past the engine boundary: a failing indicator is logged
and yields an empty series so the other indicators still render.
"""

import logging
from collections.abc import Iterable, Sequence

from core.interfaces.indicators import BaseIndicator
from core.models.indicators import IndicatorKind, IndicatorSeries, IndicatorSpec
from core.models.market_data import Bar
from domain.indicators.momentum import KDJ, MACD, RSI
from domain.indicators.moving_averages import EMA, SMA, WMA
from domain.indicators.volatility import BollingerBands

logger = logging.getLogger(__name__)


INDICATOR_CLASSES: dict[IndicatorKind, type[BaseIndicator]] = {
    IndicatorKind.SMA: SMA,
    IndicatorKind.EMA: EMA,
    IndicatorKind.WMA: WMA,
    IndicatorKind.RSI: RSI,
    IndicatorKind.MACD: MACD,
    IndicatorKind.BOLLINGER: BollingerBands,
    IndicatorKind.KDJ: KDJ,
}

_missing = [kind.value for kind in IndicatorKind if kind not in INDICATOR_CLASSES]
if _missing:
    raise RuntimeError(f"No indicator class registered for: {', '.join(_missing)}")


class IndicatorEngine:
    """
    Compute indicator series from bars

    Example:
        >>> engine = IndicatorEngine()
        >>> spec = IndicatorRegistry.build_spec("sma5")
        >>> series = engine.compute(bars, spec)
        >>> results = engine.compute_all(bars, [spec, IndicatorRegistry.build_spec("macd")])
        >>> results["macd"].fields
        ('macd', 'signal', 'histogram')
    """

    def create(self, spec: IndicatorSpec) -> BaseIndicator:
        """
        Instantiate the indicator class for a spec

        Raises:
            KeyError: If the kind has no registered class
            ValueError / TypeError: If params don't fit the class
        """
        indicator_class = INDICATOR_CLASSES[spec.kind]
        return indicator_class(name=spec.id, source=spec.source, **spec.params)

    def compute(self, bars: Sequence[Bar], spec: IndicatorSpec) -> IndicatorSeries:
        """
        Compute one indicator

        Args:
            bars: Bars ordered by time ASC
            spec: Validated indicator spec

        Returns:
            IndicatorSeries (empty on insufficient history or any failure)
        """
        try:
            indicator = self.create(spec)
            return indicator.calculate(list(bars))

        except Exception as e:
            logger.error(f"✗ Error calculating {spec.id} ({spec.kind.value}): {e}", exc_info=True)
            indicator_class = INDICATOR_CLASSES.get(spec.kind)
            fields = indicator_class.fields if indicator_class else ("value",)
            return IndicatorSeries.empty(spec.id, spec.kind, fields)

    def compute_all(
        self, bars: Sequence[Bar], specs: Iterable[IndicatorSpec]
    ) -> dict[str, IndicatorSeries]:
        """
        Compute every spec over the same bars

        Returns:
            Dict keyed by spec id, in spec order
        """
        bars = list(bars)
        results = {spec.id: self.compute(bars, spec) for spec in specs}

        empty = [spec_id for spec_id, series in results.items() if series.is_empty]
        if empty:
            logger.debug(f"Empty indicator series for {len(bars)} bars: {', '.join(empty)}")

        return results
