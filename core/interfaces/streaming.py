from abc import ABC, abstractmethod
from collections.abc import AsyncIterator


class FeedConnection(ABC):
    """
    One open push-feed connection

    Async-iterates raw text frames until the peer closes; iteration
    ends normally on a clean close and raises on an abnormal one.
    """

    @abstractmethod
    async def send(self, message: str) -> None:
        """Send a text frame"""

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[str]:
        """Iterate inbound text frames"""

    @abstractmethod
    async def close(self) -> None:
        """Close the connection (idempotent)"""


class BaseFeedTransport(ABC):
    """
    Abstract interface for the live bar feed

    Implementations:
    - WebsocketFeedTransport (providers/websocket/feed.py)
    - FakeTransport (tests/fakes.py)
    """

    @abstractmethod
    async def connect(self, url: str) -> FeedConnection:
        """
        Open a connection

        Args:
            url: Full feed URL including the instrument query string

        Returns:
            Open FeedConnection

        Raises:
            OSError / ConnectionError: If the connection cannot be opened
        """
