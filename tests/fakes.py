"""
Test doubles for the engine's collaborators

- FakeClock: manual time; sleepers wake only on advance()
- FakeTransport / FakeConnection: scripted push feed
- FakeBarSource: in-memory bar source with injectable failures
- make_bar / make_records: bar and raw-record builders
"""

import asyncio
from datetime import date, timedelta

from core.errors import FetchError
from core.interfaces.market_data import BaseBarSource
from core.interfaces.streaming import BaseFeedTransport, FeedConnection
from core.models.market_data import Bar
from core.utils.clock import Clock


async def settle(rounds: int = 20) -> None:
    """Let pending tasks run until they block again"""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeClock(Clock):
    """
    Deterministic clock

    sleep() records the requested duration and blocks until advance()
    moves time past the wake-up point.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self.sleeps: list[float] = []
        self._sleepers: list[tuple[float, asyncio.Future]] = []

    def now(self) -> float:
        return self._now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        future = asyncio.get_running_loop().create_future()
        self._sleepers.append((self._now + seconds, future))
        await future

    def set(self, seconds: float) -> None:
        """Move time without waking sleepers (for synchronous TTL checks)"""
        self._now = seconds

    async def advance(self, seconds: float) -> None:
        await settle()
        self._now += seconds

        due = [(t, f) for t, f in self._sleepers if t <= self._now]
        self._sleepers = [(t, f) for t, f in self._sleepers if t > self._now]
        for _, future in due:
            if not future.done():
                future.set_result(None)

        await settle()


_CLOSE = object()


class FakeConnection(FeedConnection):
    """Queue-backed feed connection; push() frames, drop() to end it"""

    def __init__(self):
        self.sent: list[str] = []
        self.closed = False
        self._frames: asyncio.Queue = asyncio.Queue()

    def push(self, frame: str) -> None:
        self._frames.put_nowait(frame)

    def drop(self, error: Exception | None = None) -> None:
        """End iteration: cleanly, or by raising `error`"""
        self._frames.put_nowait(error if error is not None else _CLOSE)

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionError("connection closed")
        self.sent.append(message)

    async def __aiter__(self):
        while True:
            frame = await self._frames.get()
            if frame is _CLOSE:
                return
            if isinstance(frame, Exception):
                raise frame
            yield frame

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._frames.put_nowait(_CLOSE)


class FakeTransport(BaseFeedTransport):
    """Hands out FakeConnections; fails the first `fail_times` connects"""

    def __init__(self, fail_times: int = 0, always_fail: bool = False):
        self.fail_times = fail_times
        self.always_fail = always_fail
        self.urls: list[str] = []
        self.connections: list[FakeConnection] = []

    async def connect(self, url: str) -> FeedConnection:
        self.urls.append(url)
        if self.always_fail or self.fail_times > 0:
            self.fail_times -= 1
            raise ConnectionRefusedError("feed unavailable")

        connection = FakeConnection()
        self.connections.append(connection)
        return connection

    @property
    def latest(self) -> FakeConnection:
        return self.connections[-1]


class FakeBarSource(BaseBarSource):
    """
    In-memory bar source

    Set `gate` to an asyncio.Event to hold fetches until it is set.
    """

    def __init__(self, records: list[dict] | None = None, fail_times: int = 0, info: dict | None = None):
        self.records = list(records or [])
        self.fail_times = fail_times
        self.info = info or {}
        self.gate: asyncio.Event | None = None
        self.queries = []
        self.info_calls = 0
        self.connected = False

    @property
    def calls(self) -> int:
        return len(self.queries)

    async def connect(self) -> None:
        self.connected = True

    async def fetch_bars(self, query):
        self.queries.append(query)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_times > 0:
            self.fail_times -= 1
            raise FetchError("upstream unavailable", instrument=query.instrument_code, status=503)
        return list(self.records)

    async def fetch_instrument_info(self, instrument_code: str) -> dict:
        self.info_calls += 1
        if self.fail_times > 0:
            self.fail_times -= 1
            raise FetchError("upstream unavailable", instrument=instrument_code)
        return self.info

    async def close(self) -> None:
        self.connected = False


def make_bar(close: float, index: int = 0, start: date = date(2024, 1, 1), spread: float = 1.0, volume: float = 1000.0) -> Bar:
    """Bar on start + index days with open == close and a symmetric high/low spread"""
    return Bar(
        time=start + timedelta(days=index),
        open=close,
        high=close + spread,
        low=close - spread,
        close=close,
        volume=volume,
    )


def make_bars(closes: list[float], start: date = date(2024, 1, 1)) -> list[Bar]:
    return [make_bar(c, i, start) for i, c in enumerate(closes)]


def trading_days(start: date, count: int) -> list[date]:
    """`count` weekdays from `start` (inclusive)"""
    days = []
    day = start
    while len(days) < count:
        if day.weekday() < 5:
            days.append(day)
        day += timedelta(days=1)
    return days


def make_record(day: date, close: float, volume: float = 1000.0) -> dict:
    """Raw API record as returned by the K-line query endpoint"""
    return {
        "stockCode": "600000",
        "tradingDate": f"{day.isoformat()}T00:00:00.000Z",
        "openingPrice": str(close),
        "highestPrice": str(close + 1),
        "lowestPrice": str(close - 1),
        "closingPrice": str(close),
        "tradingVolume": str(volume),
        "tradingAmount": str(close * volume),
    }


def make_records(closes: list[float], start: date = date(2024, 1, 1)) -> list[dict]:
    return [make_record(day, close) for day, close in zip(trading_days(start, len(closes)), closes)]
