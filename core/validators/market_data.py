"""
Data quality validator for bar sequences

Validates:
- Price sanity (all prices finite and > 0)
- OHLC consistency (high/low bracket open and close)
- Volume sanity (finite, non-negative)
- Sequence order (strictly increasing trading dates)

Malformed bars are a data-cleaning concern: they are dropped and
logged, never raised to the caller.
"""

import logging
import math
from collections.abc import Iterable

from core.models.market_data import Bar

logger = logging.getLogger(__name__)


class BarValidator:
    """
    Bar invariant checks

    Features:
    - Per-bar invariant validation with a reason string
    - Sequence cleaning (drops malformed, out-of-order and duplicate bars)
    - Rejection tracking for diagnostics
    """

    def __init__(self):
        self.invalid_count = 0
        self.out_of_order_count = 0

    def validate_bar(self, bar: Bar) -> tuple[bool, str | None]:
        """
        Validate a single bar

        Checks:
        1. open/high/low/close finite and > 0
        2. high >= max(open, close)
        3. low <= min(open, close)
        4. volume finite and >= 0

        Returns:
            (is_valid, error_message)
            - (True, None) if valid
            - (False, "error reason") if invalid

        Example:
            >>> validator = BarValidator()
            >>> ok, error = validator.validate_bar(bar)
            >>> if not ok:
            ...     logger.warning(f"Dropping bar: {error}")
        """
        prices = {"open": bar.open, "high": bar.high, "low": bar.low, "close": bar.close}

        # 1. Price validation
        for name, value in prices.items():
            if not math.isfinite(value):
                return False, f"Non-finite {name}: {value}"
            if value <= 0:
                return False, f"Invalid {name}: {value} (must be > 0)"

        # 2./3. OHLC consistency
        if bar.high < max(bar.open, bar.close):
            return False, f"High {bar.high} below max(open, close) {max(bar.open, bar.close)}"
        if bar.low > min(bar.open, bar.close):
            return False, f"Low {bar.low} above min(open, close) {min(bar.open, bar.close)}"

        # 4. Volume validation
        if not math.isfinite(bar.volume) or bar.volume < 0:
            return False, f"Invalid volume: {bar.volume}"

        return True, None

    def clean(self, bars: Iterable[Bar], context: str = "") -> list[Bar]:
        """
        Drop malformed bars and enforce strictly increasing dates

        Bars that fail validate_bar(), or whose date is not after the
        previously kept bar, are excluded with a warning. Processing
        always continues.

        Args:
            bars: Bars in ascending date order
            context: Label for log lines (e.g. instrument code)

        Returns:
            List of valid bars in input order
        """
        kept: list[Bar] = []
        prefix = f"{context}: " if context else ""

        for bar in bars:
            is_valid, error = self.validate_bar(bar)
            if not is_valid:
                self.invalid_count += 1
                logger.warning(f"⚠️ {prefix}Malformed bar {bar.time} dropped: {error}")
                continue

            if kept and bar.time <= kept[-1].time:
                self.out_of_order_count += 1
                logger.warning(
                    f"⚠️ {prefix}Bar {bar.time} dropped: not after previous bar {kept[-1].time}"
                )
                continue

            kept.append(bar)

        return kept

    def get_stats(self) -> dict[str, int]:
        """
        Get validation statistics

        Returns:
            Dictionary with:
            - invalid_count: Bars rejected for invariant violations
            - out_of_order_count: Bars rejected for ordering/duplicates
        """
        return {
            "invalid_count": self.invalid_count,
            "out_of_order_count": self.out_of_order_count,
        }

    def reset_stats(self) -> None:
        """Reset statistics counters"""
        self.invalid_count = 0
        self.out_of_order_count = 0
