"""
Error taxonomy

Every error carries an ErrorKind so callers branch on `err.kind`
instead of matching message strings:

- CONFIGURATION: Unknown indicator id / invalid parameters (before any fetch)
- FETCH: Bar-source collaborator failed or timed out
- STREAM: Push feed exhausted its reconnect attempts
- CACHE_CORRUPTION: Cached payload failed its shape check (evicted, never returned)
- STALE_QUERY: A superseded query resolved after newer parameters were requested
- MALFORMED_BAR: Bar violates OHLC invariants (logged and dropped, never raised to callers)
"""

from enum import Enum


class ErrorKind(str, Enum):
    MALFORMED_BAR = "malformed_bar"
    CONFIGURATION = "configuration"
    FETCH = "fetch"
    STREAM = "stream"
    CACHE_CORRUPTION = "cache_corruption"
    STALE_QUERY = "stale_query"


class EngineError(Exception):
    """Base class for all engine errors"""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(EngineError):
    kind = ErrorKind.CONFIGURATION


class UnknownIndicatorError(ConfigurationError):
    """Indicator id is not in the registry"""

    def __init__(self, indicator_id: str, available: list[str]):
        super().__init__(
            f"Unknown indicator: {indicator_id}. Available: {', '.join(available)}"
        )
        self.indicator_id = indicator_id


class InvalidParameterError(ConfigurationError):
    """Indicator parameters failed validation"""

    def __init__(self, indicator_id: str, detail: str):
        super().__init__(f"Invalid parameters for {indicator_id}: {detail}")
        self.indicator_id = indicator_id


class FetchError(EngineError):
    """Bar-source collaborator failure"""

    kind = ErrorKind.FETCH

    def __init__(self, message: str, instrument: str | None = None, status: int | None = None):
        super().__init__(message)
        self.instrument = instrument
        self.status = status


class StreamError(EngineError):
    """
    Push-feed failure

    terminal=True means the client gave up reconnecting and is CLOSED.
    """

    kind = ErrorKind.STREAM

    def __init__(self, message: str, instrument: str | None = None, terminal: bool = True):
        super().__init__(message)
        self.instrument = instrument
        self.terminal = terminal


class CacheCorruptionError(EngineError):
    kind = ErrorKind.CACHE_CORRUPTION

    def __init__(self, key: str, detail: str):
        super().__init__(f"Corrupt cache entry {key}: {detail}")
        self.key = key


class StaleQueryError(EngineError):
    """Result belongs to parameters the view has since moved away from"""

    kind = ErrorKind.STALE_QUERY


class MalformedBarError(EngineError):
    kind = ErrorKind.MALFORMED_BAR
