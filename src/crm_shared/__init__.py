"""
Shared Layer - Cross-Cutting Concerns
Configuration, errors, Redis cache/streams/pub-sub and observability
"""
from crm_shared.config import Settings, get_settings
from crm_shared.domain import Failure, Result, Success
from crm_shared.exceptions import (
    CacheUnavailableError,
    ConfigurationError,
    DomainError,
    IndexerNotConfiguredError,
    ValidationError,
)
from crm_shared.infrastructure import (
    BackgroundTaskRunner,
    ICacheProvider,
    PubSubNotifier,
    RedisClient,
    RedisStreams,
    StreamMessage,
    bound_context,
    configure_logging,
    get_logger,
)
from crm_shared.workers import StreamConsumerWorker

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Domain
    "Result",
    "Success",
    "Failure",
    # Errors
    "DomainError",
    "ValidationError",
    "IndexerNotConfiguredError",
    "ConfigurationError",
    "CacheUnavailableError",
    # Infrastructure
    "ICacheProvider",
    "RedisClient",
    "RedisStreams",
    "StreamMessage",
    "PubSubNotifier",
    "BackgroundTaskRunner",
    "StreamConsumerWorker",
    # Observability
    "configure_logging",
    "get_logger",
    "bound_context",
]
