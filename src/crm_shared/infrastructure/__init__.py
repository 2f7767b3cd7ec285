"""
Shared Infrastructure Layer
Cache, messaging, background tasks and observability
"""
from crm_shared.infrastructure.background import BackgroundTaskRunner
from crm_shared.infrastructure.cache import ICacheProvider, RedisClient
from crm_shared.infrastructure.messaging import PubSubNotifier, RedisStreams, StreamMessage
from crm_shared.infrastructure.observability import (
    bound_context,
    configure_logging,
    get_logger,
)

__all__ = [
    # Cache
    "ICacheProvider",
    "RedisClient",
    # Messaging
    "RedisStreams",
    "StreamMessage",
    "PubSubNotifier",
    # Background
    "BackgroundTaskRunner",
    # Observability
    "configure_logging",
    "get_logger",
    "bound_context",
]
