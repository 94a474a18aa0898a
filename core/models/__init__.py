"""Models module - Pydantic data models"""

from .cache import PAYLOAD_TYPES, CacheEntry, CachedPayload
from .indicators import (
    IndicatorCategory,
    IndicatorKind,
    IndicatorPoint,
    IndicatorSeries,
    IndicatorSpec,
    IndicatorTemplate,
    QueryResult,
)
from .market_data import Bar, BarQuery, DateRange, InstrumentInfo, Period, SourceField

__all__ = [
    "Bar",
    "CacheEntry",
    "BarQuery",
    "DateRange",
    "InstrumentInfo",
    "CachedPayload",
    "PAYLOAD_TYPES",
    "Period",
    "SourceField",
    "IndicatorCategory",
    "IndicatorKind",
    "IndicatorPoint",
    "IndicatorSeries",
    "IndicatorSpec",
    "IndicatorTemplate",
    "QueryResult",
]
