"""
Cache key construction

Key format: kline:{instrument}:{period}:{start}:{end}:{digest}

The digest is a SHA-1 of a canonical JSON rendering of the indicator
specs (sorted by id, sorted parameter keys), so two requests with the
same semantics collide on one key regardless of object identity or
ordering.
"""

import hashlib
import json
from collections.abc import Iterable

from core.models.indicators import IndicatorSpec
from core.models.market_data import DateRange, Period

KEY_PREFIX = "kline"
REFERENCE_PREFIX = "ref"


def fingerprint_specs(specs: Iterable[IndicatorSpec]) -> str:
    """
    Stable digest of an indicator parameter set

    Example:
        >>> fingerprint_specs([spec_a, spec_b]) == fingerprint_specs([spec_b, spec_a])
        True
    """
    canonical = sorted((s.fingerprint() for s in specs), key=lambda f: f["id"])
    encoded = json.dumps(canonical, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha1(encoded.encode("utf-8")).hexdigest()[:16]


def build_query_key(
    instrument: str,
    period: Period,
    date_range: DateRange | None,
    specs: Iterable[IndicatorSpec],
) -> str:
    """
    Build the result-cache key for a query

    Example:
        >>> build_query_key("600000", Period.WEEK, DateRange(), [])
        'kline:600000:week:::<digest>'
    """
    date_range = date_range or DateRange()
    start = date_range.start.isoformat() if date_range.start else ""
    end = date_range.end.isoformat() if date_range.end else ""
    return f"{instrument_prefix(instrument)}{period.value}:{start}:{end}:{fingerprint_specs(specs)}"


def instrument_prefix(instrument: str) -> str:
    """Prefix shared by every key of one instrument (for bulk invalidation)"""
    return f"{KEY_PREFIX}:{instrument.strip()}:"


def reference_key(kind: str, instrument: str) -> str:
    """Key for static reference data (instrument metadata)"""
    return f"{REFERENCE_PREFIX}:{kind}:{instrument.strip()}"
