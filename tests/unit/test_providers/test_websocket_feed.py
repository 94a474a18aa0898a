"""
Unit tests for the websockets feed transport

Mocks websockets.connect to test the adapter
"""

from unittest.mock import AsyncMock, patch

import pytest

from providers.websocket.feed import WebsocketFeedConnection, WebsocketFeedTransport


class StubWebsocket:
    def __init__(self, frames):
        self.frames = frames
        self.send = AsyncMock()
        self.close = AsyncMock()

    async def __aiter__(self):
        for frame in self.frames:
            yield frame


@pytest.mark.unit
class TestWebsocketFeed:
    @pytest.mark.asyncio
    async def test_connect_disables_protocol_pings(self):
        websocket = StubWebsocket([])

        with patch("providers.websocket.feed.connect", AsyncMock(return_value=websocket)) as mock_connect:
            connection = await WebsocketFeedTransport().connect("ws://feed.test/realtime?stock_code=600000")

        mock_connect.assert_awaited_once_with(
            "ws://feed.test/realtime?stock_code=600000", ping_interval=None, max_size=2**20
        )
        assert isinstance(connection, WebsocketFeedConnection)

    @pytest.mark.asyncio
    async def test_iterates_text_and_decodes_bytes(self):
        connection = WebsocketFeedConnection(StubWebsocket(['{"a": 1}', b'{"b": 2}']), "ws://x")

        frames = [frame async for frame in connection]

        assert frames == ['{"a": 1}', '{"b": 2}']

    @pytest.mark.asyncio
    async def test_send_and_close_delegate(self):
        websocket = StubWebsocket([])
        connection = WebsocketFeedConnection(websocket, "ws://x")

        await connection.send('{"type": "ping"}')
        await connection.close()

        websocket.send.assert_awaited_once_with('{"type": "ping"}')
        websocket.close.assert_awaited_once()
