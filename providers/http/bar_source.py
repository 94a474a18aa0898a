"""
HTTP bar source for the daily K-line query API

Fetches raw daily records with aiohttp:
- POST {base_url}{endpoint}        advanced query → {success, data: {data: [...]}}
- GET  {base_url}{info_endpoint}   instrument profile → {success, data: {company, latestPrice}}

Records are returned raw; see core/utils/records.py for parsing.
"""

import asyncio
import logging
from typing import Any

import aiohttp

from config.settings import get_settings
from core.errors import FetchError
from core.interfaces.market_data import BaseBarSource
from core.models.market_data import BarQuery

logger = logging.getLogger(__name__)


class HttpBarSource(BaseBarSource):
    """
    aiohttp implementation of the bar source

    Features:
    - One shared ClientSession with a total request timeout
    - HTTP errors, timeouts and {success: false} bodies → FetchError
    - Records returned raw; parsing happens in the query service
    """

    def __init__(
        self,
        base_url: str | None = None,
        endpoint: str | None = None,
        info_endpoint: str | None = None,
        timeout_ms: int | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.BAR_SOURCE_URL).rstrip("/")
        self.endpoint = endpoint or settings.BAR_SOURCE_ENDPOINT
        self.info_endpoint = info_endpoint or settings.BAR_SOURCE_INFO_ENDPOINT
        self.timeout_ms = timeout_ms or settings.BAR_SOURCE_TIMEOUT_MS
        self.session = session

        # Statistics
        self.total_requests = 0
        self.failed_requests = 0

    async def connect(self) -> None:
        """Initialize HTTP session"""
        if self.session is None:
            timeout = aiohttp.ClientTimeout(total=self.timeout_ms / 1000)
            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"Content-Type": "application/json"},
            )
            logger.info(f"✓ Bar source session opened: {self.base_url}")

    async def fetch_bars(self, query: BarQuery) -> list[dict[str, Any]]:
        body = await self._request("POST", self.endpoint, query.instrument_code, json=query.to_payload())

        data = body.get("data")
        records = data.get("data") if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise FetchError(
                f"Unexpected response shape from {self.endpoint}",
                instrument=query.instrument_code,
            )

        logger.info(f"Fetched {len(records)} records for {query.instrument_code}")
        return records

    async def fetch_instrument_info(self, instrument_code: str) -> dict[str, Any]:
        body = await self._request(
            "GET", self.info_endpoint, instrument_code, params={"stock_code": instrument_code}
        )
        data = body.get("data")
        if not isinstance(data, dict):
            raise FetchError(f"Unexpected response shape from {self.info_endpoint}", instrument=instrument_code)
        return data

    async def close(self) -> None:
        """Close HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None
            logger.info("✓ Bar source session closed")

    async def _request(self, method: str, endpoint: str, instrument: str, **kwargs) -> dict[str, Any]:
        if self.session is None:
            await self.connect()

        url = f"{self.base_url}{endpoint}"
        self.total_requests += 1

        try:
            async with self.session.request(method, url, **kwargs) as response:
                if response.status != 200:
                    self.failed_requests += 1
                    raise FetchError(
                        f"HTTP {response.status} from {endpoint}",
                        instrument=instrument,
                        status=response.status,
                    )
                body = await response.json()

        except asyncio.TimeoutError as e:
            self.failed_requests += 1
            raise FetchError(f"Timeout after {self.timeout_ms}ms: {endpoint}", instrument=instrument) from e
        except aiohttp.ClientError as e:
            self.failed_requests += 1
            raise FetchError(f"Request to {endpoint} failed: {e}", instrument=instrument) from e

        if not isinstance(body, dict) or body.get("success") is False:
            self.failed_requests += 1
            message = body.get("message") or body.get("error") if isinstance(body, dict) else None
            raise FetchError(
                f"Unsuccessful response from {endpoint}: {message or 'no details'}",
                instrument=instrument,
            )

        return body
