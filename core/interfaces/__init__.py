"""Interfaces module - Abstract base classes for pluggable collaborators"""

from .cache import BaseResultCache
from .indicators import BaseIndicator
from .market_data import BaseBarSource
from .streaming import BaseFeedTransport, FeedConnection

__all__ = [
    "BaseBarSource",
    "BaseFeedTransport",
    "BaseIndicator",
    "BaseResultCache",
    "FeedConnection",
]
