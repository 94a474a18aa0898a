"""
K-line period aggregation

Re-buckets daily bars into calendar periods:
- day:   identity (validated bars)
- week:  bucket key = Monday of the ISO week
- month: bucket key = (year, month)

Merged bar rules:
    open   = first open        close  = last close
    high   = max(highs)        low    = min(lows)
    volume = sum(volumes)      amount = sum(amounts), missing counted as 0 (None if all missing)
    time   = last bar's date
    price_change         = close - first open
    price_change_percent = price_change / first open × 100
"""

import logging
from collections.abc import Iterable
from datetime import date, timedelta
from itertools import groupby

from core.models.market_data import Bar, Period
from core.validators.market_data import BarValidator

logger = logging.getLogger(__name__)

PERIOD_LABELS: dict[Period, str] = {
    Period.DAY: "Daily",
    Period.WEEK: "Weekly",
    Period.MONTH: "Monthly",
}


def week_key(day: date) -> date:
    """Monday of the week containing `day`"""
    return day - timedelta(days=day.weekday())


def month_key(day: date) -> tuple[int, int]:
    return day.year, day.month


def merge_bars(bucket: list[Bar]) -> Bar:
    """
    Merge one bucket of ordered bars into a single bar

    A single-bar bucket is returned unchanged. Missing amounts count as
    zero; amount stays None when no bar in the bucket carries one.
    """
    if len(bucket) == 1:
        return bucket[0]

    first, last = bucket[0], bucket[-1]
    price_change = last.close - first.open
    amounts = [b.amount for b in bucket if b.amount is not None]

    return Bar(
        time=last.time,
        open=first.open,
        high=max(b.high for b in bucket),
        low=min(b.low for b in bucket),
        close=last.close,
        volume=sum(b.volume for b in bucket),
        amount=sum(amounts) if amounts else None,
        price_change=price_change,
        price_change_percent=price_change / first.open * 100,
    )


class Aggregator:
    """
    Convert daily bars to weekly / monthly K-lines

    Malformed, unsorted or duplicate bars are dropped (with a warning)
    before bucketing; aggregation never aborts on bad input.

    Example:
        >>> aggregator = Aggregator()
        >>> weekly = aggregator.convert(daily_bars, Period.WEEK)
        >>> aggregator.period_label(Period.WEEK)
        'Weekly'
    """

    def __init__(self, validator: BarValidator | None = None):
        self.validator = validator or BarValidator()

    def convert(self, bars: Iterable[Bar], period: Period | str, context: str = "") -> list[Bar]:
        """
        Convert bars to the requested period

        Args:
            bars: Daily bars in ascending date order
            period: Target period (day, week, month)
            context: Label for log lines (e.g. instrument code)

        Returns:
            Aggregated bars, one per bucket, in input order
        """
        period = Period(period)
        clean = self.validator.clean(bars, context=context)

        if period == Period.DAY:
            return clean
        if period == Period.WEEK:
            return self._bucket(clean, week_key)
        return self._bucket(clean, month_key)

    def weekly(self, bars: Iterable[Bar], context: str = "") -> list[Bar]:
        return self.convert(bars, Period.WEEK, context)

    def monthly(self, bars: Iterable[Bar], context: str = "") -> list[Bar]:
        return self.convert(bars, Period.MONTH, context)

    @staticmethod
    def period_label(period: Period | str) -> str:
        """Display label of a period"""
        return PERIOD_LABELS[Period(period)]

    @staticmethod
    def _bucket(bars: list[Bar], key) -> list[Bar]:
        # Bars are strictly ascending, so equal keys are always adjacent
        merged = [merge_bars(list(group)) for _, group in groupby(bars, key=lambda b: key(b.time))]
        logger.debug(f"Aggregated {len(bars)} bars into {len(merged)} buckets")
        return merged
