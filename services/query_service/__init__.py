"""
Query Service - K-line queries and live updates

Serves the dashboard:
1. Validates indicator requests against the registry
2. Fetches daily bars, aggregates to week/month
3. Computes indicators, caches results with a TTL
4. Merges live feed deltas for subscribed instruments
"""

from services.query_service.indicator_loader import IndicatorLoader
from services.query_service.service import QueryService
from services.query_service.stream_client import (
    ConnectionState,
    ConnectionStateMachine,
    StreamClient,
)

__all__ = [
    "QueryService",
    "IndicatorLoader",
    "StreamClient",
    "ConnectionState",
    "ConnectionStateMachine",
]
