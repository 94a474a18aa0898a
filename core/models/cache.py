"""
Cache entry model

A computed payload plus the bookkeeping needed for TTL expiry.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from core.models.indicators import QueryResult
from core.models.market_data import InstrumentInfo

# Payload shapes a result cache accepts; anything else is corrupt
CachedPayload = QueryResult | InstrumentInfo

PAYLOAD_TYPES: dict[str, type[BaseModel]] = {
    "query_result": QueryResult,
    "instrument_info": InstrumentInfo,
}


class CacheEntry(BaseModel):
    """Immutable cache record; replaced wholesale on refresh"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str
    payload: Any
    created_at: float = Field(description="Clock reading (seconds) at insertion")
    ttl: float = Field(gt=0, description="Time to live in seconds")

    def is_expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl

    def remaining(self, now: float) -> float:
        return max(0.0, self.ttl - (now - self.created_at))

    def has_valid_shape(self) -> bool:
        return isinstance(self.payload, tuple(PAYLOAD_TYPES.values()))
