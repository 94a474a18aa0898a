"""
Abstract base class for bar sources

Vendor-agnostic interface to the historical K-line API
"""

from abc import ABC, abstractmethod
from typing import Any

from core.models.market_data import BarQuery


class BaseBarSource(ABC):
    """
    Abstract base class for bar-source collaborators

    Returns raw records; parsing into Bar models and invariant cleaning
    happen in the query service so every source is treated the same.

    Implementations:
    - HttpBarSource (providers/http/bar_source.py)

    Example:
        >>> source = HttpBarSource(base_url="http://localhost:3000")
        >>> await source.connect()
        >>> records = await source.fetch_bars(BarQuery(instrument_code="600000"))
        >>> await source.close()
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the underlying session"""

    @abstractmethod
    async def fetch_bars(self, query: BarQuery) -> list[dict[str, Any]]:
        """
        Fetch raw daily bar records

        Args:
            query: Instrument code, optional date window, paging and sort

        Returns:
            List of raw records (camelCase API records or plain bar dicts)

        Raises:
            FetchError: On transport errors, timeouts or unsuccessful responses
        """

    @abstractmethod
    async def fetch_instrument_info(self, instrument_code: str) -> dict[str, Any]:
        """
        Fetch raw reference data for one instrument

        Raises:
            FetchError: On transport errors, timeouts or unsuccessful responses
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying session"""
