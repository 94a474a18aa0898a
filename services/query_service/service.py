"""
Query Service - K-line query orchestration

Clean separation of concerns:
- Resolve and validate indicator specs (before any I/O)
- Serve from the result cache, or fetch → clean → aggregate → compute
- Share identical in-flight fetches
- Discard stale results for views whose parameters moved on
- Merge live feed deltas into subscribed results

Architecture:
    IndicatorRegistry / IndicatorLoader → IndicatorSpec list
    BaseResultCache                     → cached QueryResult
    BaseBarSource                       → raw daily records
    Aggregator                          → day / week / month bars
    IndicatorEngine                     → indicator series
    StreamClient (one per instrument)   → live deltas
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from config.settings import Settings, get_settings
from core.errors import (
    ConfigurationError,
    FetchError,
    InvalidParameterError,
    MalformedBarError,
    StaleQueryError,
    StreamError,
)
from core.interfaces.cache import BaseResultCache
from core.interfaces.market_data import BaseBarSource
from core.interfaces.streaming import BaseFeedTransport
from core.models.indicators import IndicatorSpec, QueryResult
from core.models.market_data import Bar, BarQuery, DateRange, InstrumentInfo, Period
from core.utils.cache_keys import build_query_key, instrument_prefix, reference_key
from core.utils.clock import SYSTEM_CLOCK, Clock
from core.utils.records import parse_bar_record, parse_instrument_info
from core.validators.market_data import BarValidator
from domain.aggregation.aggregator import Aggregator
from domain.indicators.engine import IndicatorEngine
from domain.indicators.registry import IndicatorRegistry
from services.query_service.indicator_loader import IndicatorLoader
from services.query_service.stream_client import ConnectionState, StreamClient, build_feed_url

logger = logging.getLogger(__name__)

IndicatorRequest = str | IndicatorSpec
UpdateCallback = Callable[[QueryResult], Awaitable[None]]
ErrorCallback = Callable[[StreamError], Awaitable[None]]

FETCH_ATTEMPTS = 2  # one automatic retry


class QueryService:
    """
    K-line query service

    Lifecycle is explicit: await start() before use, await close() after.

    Example:
        >>> service = create_query_service()
        >>> await service.start()
        >>> result = await service.query("600000", Period.WEEK, indicators=["sma5", "macd"])
        >>> result.indicators["macd"].line("histogram")
        >>> await service.close()
    """

    def __init__(
        self,
        bar_source: BaseBarSource,
        cache: BaseResultCache,
        transport: BaseFeedTransport | None = None,
        settings: Settings | None = None,
        clock: Clock = SYSTEM_CLOCK,
        presets: dict[str, IndicatorSpec] | None = None,
        default_indicators: Sequence[str] | None = None,
    ):
        self.bar_source = bar_source
        self.cache = cache
        self.transport = transport
        self.settings = settings or get_settings()
        self.clock = clock

        self.validator = BarValidator()
        self.aggregator = Aggregator(self.validator)
        self.engine = IndicatorEngine()

        self.presets = presets if presets is not None else IndicatorLoader.load_from_settings()
        self.default_indicators = list(
            default_indicators if default_indicators is not None else self.settings.DEFAULT_INDICATORS
        )

        self._inflight: dict[str, asyncio.Task] = {}
        self._view_generations: dict[str, int] = {}
        self._view_tasks: dict[str, asyncio.Task] = {}
        self._streams: dict[str, StreamClient] = {}

    # ============================================
    # LIFECYCLE
    # ============================================

    async def start(self) -> None:
        """Start cache maintenance and open the bar-source session"""
        await self.cache.start()
        await self.bar_source.connect()
        logger.info("✓ Query service started")

    async def close(self) -> None:
        """Cancel view queries, disconnect streams, release cache and session"""
        for task in list(self._view_tasks.values()):
            task.cancel()
        self._view_tasks.clear()

        for client in list(self._streams.values()):
            await client.disconnect()
        self._streams.clear()

        await self.cache.close()
        await self.bar_source.close()
        logger.info("✓ Query service closed")

    # ============================================
    # INDICATOR RESOLUTION
    # ============================================

    def resolve_indicators(
        self, indicators: Sequence[IndicatorRequest] | None = None
    ) -> list[IndicatorSpec]:
        """
        Turn indicator ids / specs into validated specs

        Ids resolve against configured presets first, then registry
        templates. None means the configured default list.

        Raises:
            UnknownIndicatorError: Unknown id
            InvalidParameterError: Bad parameters or duplicate ids
        """
        if indicators is None:
            indicators = self.default_indicators

        specs: list[IndicatorSpec] = []
        for item in indicators:
            if isinstance(item, IndicatorSpec):
                spec = IndicatorRegistry.validate(item)
            elif isinstance(item, str):
                spec = self.presets.get(item.strip().lower()) or IndicatorRegistry.build_spec(item)
            else:
                raise InvalidParameterError(repr(item), "expected an indicator id or IndicatorSpec")
            specs.append(spec)

        ids = [spec.id for spec in specs]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise InvalidParameterError(", ".join(duplicates), "duplicate indicator ids")

        return specs

    # ============================================
    # QUERIES
    # ============================================

    async def query(
        self,
        instrument: str,
        period: Period | str = Period.DAY,
        date_range: DateRange | None = None,
        indicators: Sequence[IndicatorRequest] | None = None,
    ) -> QueryResult:
        """
        Bars + indicators for one instrument

        Steps:
        1. Validate indicator specs (nothing is fetched on failure)
        2. Cache lookup
        3. Join an identical in-flight fetch, or start one
        4. Fetch (one retry) → parse → clean → aggregate → compute → cache

        Raises:
            ConfigurationError: Unknown indicator or invalid parameters
            FetchError: Bar source failed twice
        """
        instrument = self._normalize_instrument(instrument)
        period = self._normalize_period(period)
        specs = self.resolve_indicators(indicators)
        key = build_query_key(instrument, period, date_range, specs)

        cached = await self.cache.get(key)
        if isinstance(cached, QueryResult):
            logger.debug(f"Cache hit: {key}")
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._load(key, instrument, period, date_range, specs))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._finish_inflight(k, t))
        else:
            logger.debug(f"Joining in-flight query: {key}")

        # Shield: a cancelled caller must not cancel the shared fetch
        return await asyncio.shield(task)

    async def query_latest(
        self,
        view: str,
        instrument: str,
        period: Period | str = Period.DAY,
        date_range: DateRange | None = None,
        indicators: Sequence[IndicatorRequest] | None = None,
    ) -> QueryResult:
        """
        Query on behalf of a view that may change parameters mid-flight

        Each call supersedes the view's previous call: the previous task is
        cancelled and its caller receives StaleQueryError instead of a
        result for parameters the view no longer shows.

        Raises:
            StaleQueryError: A newer query for the same view was issued
        """
        generation = self._view_generations.get(view, 0) + 1
        self._view_generations[view] = generation

        previous = self._view_tasks.get(view)
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.create_task(self.query(instrument, period, date_range, indicators))
        self._view_tasks[view] = task

        try:
            result = await task
        except asyncio.CancelledError:
            if self._view_generations.get(view) != generation:
                raise StaleQueryError(f"Query {generation} for view '{view}' was superseded") from None
            task.cancel()
            raise
        finally:
            if self._view_tasks.get(view) is task:
                del self._view_tasks[view]

        if self._view_generations.get(view) != generation:
            raise StaleQueryError(f"Query {generation} for view '{view}' resolved after being superseded")

        return result

    async def get_instrument_info(self, instrument: str) -> InstrumentInfo:
        """
        Reference data for one instrument (cached with the reference TTL)

        Raises:
            FetchError: Bar source failed twice or returned an unexpected payload
        """
        instrument = self._normalize_instrument(instrument)
        key = reference_key("instrument", instrument)

        cached = await self.cache.get(key)
        if isinstance(cached, InstrumentInfo):
            return cached

        data = await self._with_retry(
            lambda: self.bar_source.fetch_instrument_info(instrument), instrument, "instrument info"
        )
        info = parse_instrument_info(instrument, data)
        await self.cache.set(key, info, reference=True)
        return info

    async def invalidate(self, instrument: str) -> int:
        """Drop every cached result of one instrument"""
        return await self.cache.invalidate_prefix(instrument_prefix(self._normalize_instrument(instrument)))

    # ============================================
    # LIVE UPDATES
    # ============================================

    async def subscribe(
        self,
        instrument: str,
        on_update: UpdateCallback,
        period: Period | str = Period.DAY,
        date_range: DateRange | None = None,
        indicators: Sequence[IndicatorRequest] | None = None,
        on_error: ErrorCallback | None = None,
    ) -> Callable[[], Awaitable[None]]:
        """
        Subscribe to live updates for one instrument

        Loads the current result, then merges each feed delta into it
        (same day replaces the last daily bar, a newer day appends),
        re-aggregates, recomputes indicators, refreshes the cache and
        calls on_update. One StreamClient per instrument is shared by
        all subscribers.

        Returns:
            Async unsubscribe; the last unsubscriber disconnects the stream

        Raises:
            ConfigurationError: No feed transport, unknown indicator
            FetchError: Initial load failed
        """
        if self.transport is None:
            raise ConfigurationError("No feed transport configured")

        instrument = self._normalize_instrument(instrument)
        period = self._normalize_period(period)
        specs = self.resolve_indicators(indicators)
        key = build_query_key(instrument, period, date_range, specs)

        daily = await self._fetch_daily(instrument, date_range)
        state: dict[str, Any] = {"daily": daily}

        async def handle_message(message: dict[str, Any]) -> None:
            bar = self._parse_delta(instrument, message)
            if bar is None:
                return

            merged = self._merge_daily(state["daily"], bar, instrument)
            if merged is None:
                return

            state["daily"] = merged
            result = self._build_result(instrument, period, merged, specs)
            await self.cache.set(key, result)
            await on_update(result)

        async def handle_error(error: StreamError) -> None:
            if self._streams.get(instrument) is client:
                del self._streams[instrument]
            if on_error is not None:
                await on_error(error)

        client = self._get_stream(instrument)
        unsubscribe_stream = client.subscribe(handle_message, handle_error)
        if client.state is ConnectionState.IDLE:
            await client.connect()

        logger.info(f"✓ Subscribed to {instrument} ({period.value}, {client.subscriber_count} subscribers)")

        async def unsubscribe() -> None:
            unsubscribe_stream()
            if client.subscriber_count == 0 and self._streams.get(instrument) is client:
                del self._streams[instrument]
                await client.disconnect()

        return unsubscribe

    # ============================================
    # INTERNALS
    # ============================================

    async def _load(
        self,
        key: str,
        instrument: str,
        period: Period,
        date_range: DateRange | None,
        specs: list[IndicatorSpec],
    ) -> QueryResult:
        daily = await self._fetch_daily(instrument, date_range)
        result = self._build_result(instrument, period, daily, specs)

        # Empty results are not cached
        if result.bars:
            await self.cache.set(key, result)

        logger.info(
            f"✓ Loaded {instrument} {period.value}: {len(result.bars)} bars, "
            f"{len(result.indicators)} indicators"
        )
        return result

    def _finish_inflight(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the exception retrieved; awaiting callers still receive it
        if not task.cancelled():
            task.exception()

    async def _fetch_daily(self, instrument: str, date_range: DateRange | None) -> list[Bar]:
        date_range = date_range or DateRange()
        query = BarQuery(
            instrument_code=instrument,
            start_date=date_range.start,
            end_date=date_range.end,
            page_size=self.settings.BAR_SOURCE_PAGE_SIZE,
        )
        records = await self._with_retry(lambda: self.bar_source.fetch_bars(query), instrument, "bars")

        bars = []
        for record in records:
            try:
                bar = parse_bar_record(record)
            except MalformedBarError as e:
                logger.warning(f"⚠️ {instrument}: {e.message}")
                continue
            if date_range.contains(bar.time):
                bars.append(bar)

        bars.sort(key=lambda b: b.time)
        return self.validator.clean(bars, context=instrument)

    async def _with_retry(self, operation, instrument: str, what: str):
        last_error: FetchError | None = None

        for attempt in range(1, FETCH_ATTEMPTS + 1):
            try:
                return await operation()
            except FetchError as e:
                last_error = e
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = FetchError(str(e) or type(e).__name__, instrument=instrument)
            logger.warning(f"⚠️ Fetch {what} for {instrument} failed (attempt {attempt}/{FETCH_ATTEMPTS}): {last_error.message}")

        logger.error(f"✗ Giving up on {what} for {instrument}")
        raise FetchError(
            f"Bar source failed for {instrument} after {FETCH_ATTEMPTS} attempts: {last_error.message}",
            instrument=instrument,
            status=last_error.status,
        ) from last_error

    def _build_result(
        self, instrument: str, period: Period, daily: list[Bar], specs: list[IndicatorSpec]
    ) -> QueryResult:
        bars = self.aggregator.convert(daily, period, context=instrument)
        return QueryResult(
            instrument=instrument,
            period=period,
            bars=tuple(bars),
            indicators=self.engine.compute_all(bars, specs),
        )

    def _get_stream(self, instrument: str) -> StreamClient:
        client = self._streams.get(instrument)
        if client is None or client.state is ConnectionState.CLOSED:
            client = StreamClient(
                instrument,
                build_feed_url(self.settings.FEED_WS_URL, instrument),
                self.transport,
                clock=self.clock,
                ping_interval=self.settings.STREAM_PING_INTERVAL_SECONDS,
                connect_timeout=self.settings.STREAM_CONNECT_TIMEOUT_SECONDS,
                base_delay_ms=self.settings.STREAM_BASE_DELAY_MS,
                max_delay_ms=self.settings.STREAM_MAX_DELAY_MS,
                max_attempts=self.settings.STREAM_MAX_RECONNECT_ATTEMPTS,
            )
            self._streams[instrument] = client
        return client

    def _parse_delta(self, instrument: str, message: dict[str, Any]) -> Bar | None:
        payload = message.get("data", message)
        try:
            bar = parse_bar_record(payload)
        except MalformedBarError as e:
            logger.warning(f"⚠️ {instrument}: dropped live update: {e.message}")
            return None

        is_valid, error = self.validator.validate_bar(bar)
        if not is_valid:
            logger.warning(f"⚠️ {instrument}: dropped live update {bar.time}: {error}")
            return None
        return bar

    @staticmethod
    def _merge_daily(daily: list[Bar], bar: Bar, instrument: str) -> list[Bar] | None:
        """Replace the last bar on the same day, append a newer day, drop older days"""
        if daily and bar.time == daily[-1].time:
            return [*daily[:-1], bar]
        if not daily or bar.time > daily[-1].time:
            return [*daily, bar]

        logger.warning(f"⚠️ {instrument}: dropped live update {bar.time} older than {daily[-1].time}")
        return None

    @staticmethod
    def _normalize_period(period: Period | str) -> Period:
        try:
            return Period(period)
        except ValueError:
            raise InvalidParameterError("period", f"unknown period '{period}'") from None

    @staticmethod
    def _normalize_instrument(instrument: str) -> str:
        instrument = instrument.strip()
        if not instrument:
            raise InvalidParameterError("instrument", "instrument code must not be empty")
        return instrument
