"""
WebSocket transport for the live bar feed

Thin adapter from the websockets library to FeedConnection; reconnect,
keepalive and message parsing live in StreamClient.
"""

import logging
from collections.abc import AsyncIterator

from websockets import connect

from core.interfaces.streaming import BaseFeedTransport, FeedConnection

logger = logging.getLogger(__name__)


class WebsocketFeedConnection(FeedConnection):
    """Open websockets client connection"""

    def __init__(self, websocket, url: str):
        self.websocket = websocket
        self.url = url

    async def send(self, message: str) -> None:
        await self.websocket.send(message)

    async def __aiter__(self) -> AsyncIterator[str]:
        # Clean close ends iteration; abnormal close raises ConnectionClosedError
        async for message in self.websocket:
            if isinstance(message, bytes):
                message = message.decode("utf-8", errors="replace")
            yield message

    async def close(self) -> None:
        await self.websocket.close()
        logger.debug(f"WebSocket closed: {self.url}")


class WebsocketFeedTransport(BaseFeedTransport):
    """
    websockets implementation

    Application-level keepalive ({"type": "ping"}) is sent by the stream
    client, so protocol pings are disabled here.
    """

    def __init__(self, max_size: int | None = 2**20):
        self.max_size = max_size

    async def connect(self, url: str) -> FeedConnection:
        websocket = await connect(url, ping_interval=None, max_size=self.max_size)
        logger.info(f"✓ Connected to feed WebSocket: {url}")
        return WebsocketFeedConnection(websocket, url)
