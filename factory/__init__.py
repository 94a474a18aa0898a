"""Factory package - Dependency injection for pluggable collaborators"""

from .client_factory import (
    create_bar_source,
    create_feed_transport,
    create_query_service,
    create_result_cache,
)

__all__ = [
    "create_result_cache",
    "create_bar_source",
    "create_feed_transport",
    "create_query_service",
]
