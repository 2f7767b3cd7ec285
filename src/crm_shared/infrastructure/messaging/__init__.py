"""
Shared Messaging Infrastructure
Redis streams for work queues, pub/sub for broadcasts
"""
from crm_shared.infrastructure.messaging.notifier import PubSubNotifier
from crm_shared.infrastructure.messaging.redis_streams import RedisStreams, StreamMessage

__all__ = [
    "RedisStreams",
    "StreamMessage",
    "PubSubNotifier",
]
