"""
Stream Client - resilient live feed subscription for one instrument

Architecture:
    ConnectionStateMachine → pure state + backoff bookkeeping (no I/O)
    StreamClient           → drives a FeedConnection: connect, keepalive,
                             fan-out to subscribers, reconnect with backoff

States:
    IDLE → CONNECTING → CONNECTED → (RECONNECTING ⇄ CONNECTING) → CLOSED

Backoff:
    delay = min(base × 2^attempt, cap) → 1s, 2s, 4s, 8s, 16s
    After max attempts the client is CLOSED and every subscriber's
    error callback receives a terminal StreamError.
"""

import asyncio
import itertools
import json
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any
from urllib.parse import urlencode

from core.errors import StreamError
from core.interfaces.streaming import BaseFeedTransport, FeedConnection
from core.utils.clock import SYSTEM_CLOCK, Clock

logger = logging.getLogger(__name__)

MessageCallback = Callable[[dict[str, Any]], Awaitable[None]]
ErrorCallback = Callable[[StreamError], Awaitable[None]]

PING_MESSAGE = json.dumps({"type": "ping"})


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


class ConnectionStateMachine:
    """
    Connection lifecycle without I/O

    Events: connect, opened, closed, errored, disconnect.
    closed/errored return the next reconnect delay in milliseconds, or
    None when the machine gave up (state is then CLOSED).

    Example:
        >>> machine = ConnectionStateMachine()
        >>> machine.connect()
        True
        >>> machine.errored()  # first attempt failed
        1000
        >>> machine.connect()
        True
        >>> machine.errored()
        2000
    """

    def __init__(self, base_delay_ms: int = 1000, max_delay_ms: int = 16000, max_attempts: int = 5):
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.max_attempts = max_attempts

        self.state = ConnectionState.IDLE
        self.attempts = 0
        self.next_delay_ms: int | None = None

    def delay_for(self, attempt: int) -> int:
        """Backoff delay before reconnect attempt number `attempt` (0-based)"""
        return min(self.base_delay_ms * 2**attempt, self.max_delay_ms)

    def connect(self) -> bool:
        """Start a connect attempt (from IDLE or RECONNECTING)"""
        if self.state not in (ConnectionState.IDLE, ConnectionState.RECONNECTING):
            return False
        self.state = ConnectionState.CONNECTING
        return True

    def opened(self) -> bool:
        """Connect attempt succeeded; attempts reset"""
        if self.state is not ConnectionState.CONNECTING:
            return False
        self.state = ConnectionState.CONNECTED
        self.attempts = 0
        self.next_delay_ms = None
        return True

    def closed(self) -> int | None:
        """Connection dropped"""
        return self._fail()

    def errored(self) -> int | None:
        """Connect attempt or open connection failed"""
        return self._fail()

    def disconnect(self) -> None:
        """Explicit shutdown from any state"""
        self.state = ConnectionState.CLOSED
        self.next_delay_ms = None

    @property
    def is_terminal(self) -> bool:
        return self.state is ConnectionState.CLOSED

    def _fail(self) -> int | None:
        if self.state not in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            return None

        if self.attempts >= self.max_attempts:
            self.state = ConnectionState.CLOSED
            self.next_delay_ms = None
            return None

        self.next_delay_ms = self.delay_for(self.attempts)
        self.attempts += 1
        self.state = ConnectionState.RECONNECTING
        return self.next_delay_ms


def build_feed_url(base_url: str, instrument: str) -> str:
    """
    Feed URL for one instrument

    Example:
        >>> build_feed_url("ws://localhost:3001/realtime", "600000")
        'ws://localhost:3001/realtime?stock_code=600000'
    """
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'stock_code': instrument})}"


class StreamClient:
    """
    Live feed client for one instrument

    Features:
    - Fan-out: every subscriber receives every parsed message
    - Keepalive: {"type": "ping"} every ping_interval seconds while connected
    - Reconnect with exponential backoff; terminal StreamError after max attempts
    - Malformed frames (non-JSON, non-object) dropped and logged; pong ignored

    Example:
        >>> client = StreamClient("600000", url, WebsocketFeedTransport())
        >>> unsubscribe = client.subscribe(handle_message, on_error=handle_error)
        >>> await client.connect()
        >>> ...
        >>> await client.disconnect()
    """

    def __init__(
        self,
        instrument: str,
        url: str,
        transport: BaseFeedTransport,
        clock: Clock = SYSTEM_CLOCK,
        ping_interval: float = 30,
        connect_timeout: float = 5,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 16000,
        max_attempts: int = 5,
    ):
        self.instrument = instrument
        self.url = url
        self.transport = transport
        self.clock = clock
        self.ping_interval = ping_interval
        self.connect_timeout = connect_timeout
        self.machine = ConnectionStateMachine(base_delay_ms, max_delay_ms, max_attempts)

        self.connection: FeedConnection | None = None
        self._subscribers: dict[int, tuple[MessageCallback, ErrorCallback | None]] = {}
        self._ids = itertools.count()
        self._run_task: asyncio.Task | None = None
        self._keepalive_task: asyncio.Task | None = None
        self._first_attempt = asyncio.Event()

        # Stats
        self.messages_received = 0
        self.messages_dropped = 0

    @property
    def state(self) -> ConnectionState:
        return self.machine.state

    @property
    def is_connected(self) -> bool:
        return self.machine.state is ConnectionState.CONNECTED

    @property
    def reconnect_attempts(self) -> int:
        return self.machine.attempts

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(
        self, callback: MessageCallback, on_error: ErrorCallback | None = None
    ) -> Callable[[], None]:
        """
        Register an async message callback

        Args:
            callback: Receives each parsed message dict
            on_error: Receives the terminal StreamError

        Returns:
            Function removing this subscription
        """
        subscription_id = next(self._ids)
        self._subscribers[subscription_id] = (callback, on_error)

        def unsubscribe() -> None:
            self._subscribers.pop(subscription_id, None)

        return unsubscribe

    async def connect(self) -> bool:
        """
        Start the connection loop and wait for the first attempt

        A failed first attempt enters the same backoff as a dropped
        connection; the loop keeps retrying in the background.

        Returns:
            True if connected after the first attempt
        """
        if not self.machine.connect():
            return self.is_connected

        self._first_attempt.clear()
        self._run_task = asyncio.create_task(self._run())
        await self._first_attempt.wait()
        return self.is_connected

    async def disconnect(self) -> None:
        """Close from any state: stop tasks, close the handle, drop subscribers"""
        self.machine.disconnect()

        current = asyncio.current_task()
        for task in (self._keepalive_task, self._run_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._keepalive_task = None
        self._run_task = None

        await self._close_connection()
        self._subscribers.clear()
        self._first_attempt.set()
        logger.info(f"✓ Stream {self.instrument} disconnected")

    async def _run(self) -> None:
        while not self.machine.is_terminal:
            try:
                connection = await asyncio.wait_for(
                    self.transport.connect(self.url), timeout=self.connect_timeout
                )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"✗ Stream {self.instrument} connect failed: {e!r}")
                delay_ms = self.machine.errored()
                self._first_attempt.set()
                if not await self._backoff(delay_ms):
                    return
                continue

            if self.machine.is_terminal:
                await connection.close()
                return

            self.connection = connection
            self.machine.opened()
            self._first_attempt.set()
            logger.info(f"✓ Stream {self.instrument} connected")

            self._keepalive_task = asyncio.create_task(self._keepalive(connection))
            reason = "closed by peer"
            try:
                async for raw in connection:
                    await self._dispatch(raw)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                reason = repr(e)
            finally:
                await self._stop_keepalive()
                await self._close_connection()

            if self.machine.is_terminal:
                return

            logger.warning(f"⚠️ Stream {self.instrument} dropped: {reason}")
            if not await self._backoff(self.machine.closed()):
                return

    async def _backoff(self, delay_ms: int | None) -> bool:
        """Sleep before the next attempt; False when giving up"""
        if delay_ms is None:
            if self.machine.is_terminal and self._subscribers:
                await self._notify_error(
                    StreamError(
                        f"Stream {self.instrument} closed after "
                        f"{self.machine.max_attempts} reconnect attempts",
                        instrument=self.instrument,
                        terminal=True,
                    )
                )
            self._subscribers.clear()
            return False

        logger.info(
            f"Reconnecting {self.instrument} in {delay_ms}ms "
            f"(attempt {self.machine.attempts}/{self.machine.max_attempts})"
        )
        await self.clock.sleep(delay_ms / 1000)
        return self.machine.connect()

    async def _keepalive(self, connection: FeedConnection) -> None:
        while True:
            await self.clock.sleep(self.ping_interval)
            try:
                await connection.send(PING_MESSAGE)
            except Exception as e:
                logger.warning(f"⚠️ Stream {self.instrument} ping failed: {e!r}")
                return

    async def _stop_keepalive(self) -> None:
        task, self._keepalive_task = self._keepalive_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _close_connection(self) -> None:
        connection, self.connection = self.connection, None
        if connection is None:
            return
        try:
            await connection.close()
        except Exception as e:
            logger.warning(f"⚠️ Error closing stream {self.instrument}: {e!r}")

    async def _dispatch(self, raw: str) -> None:
        self.messages_received += 1

        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            self.messages_dropped += 1
            logger.warning(f"⚠️ Stream {self.instrument}: dropped non-JSON message {str(raw)[:80]!r}")
            return

        if not isinstance(message, dict):
            self.messages_dropped += 1
            logger.warning(f"⚠️ Stream {self.instrument}: dropped non-object message {str(raw)[:80]!r}")
            return

        if message.get("type") == "pong":
            return

        for callback, _ in list(self._subscribers.values()):
            try:
                await callback(message)
            except Exception as e:
                # Don't let callback errors crash the stream
                logger.error(f"Error in stream callback for {self.instrument}: {e}", exc_info=True)

    async def _notify_error(self, error: StreamError) -> None:
        logger.error(f"✗ {error.message}")
        for _, on_error in list(self._subscribers.values()):
            if on_error is None:
                continue
            try:
                await on_error(error)
            except Exception as e:
                logger.error(f"Error in stream error callback for {self.instrument}: {e}", exc_info=True)
