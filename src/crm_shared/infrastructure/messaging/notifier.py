"""Fire-and-forget pub/sub broadcasts of state changes over Redis."""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Optional, Union

from redis.asyncio import Redis
from redis.exceptions import RedisError

from crm_shared.constants import DeliveryStatus, PubSubChannel
from crm_shared.exceptions import ValidationError
from crm_shared.infrastructure.cache.redis_client import RedisClient
from crm_shared.infrastructure.observability.logger import get_logger
from crm_shared.utils.serialization import dumps, loads_or_raw

logger = get_logger(__name__)


class PubSubNotifier:
    """Publisher/subscriber helper sharing the process-wide Redis handle."""

    def __init__(self, client: RedisClient) -> None:
        self._client = client

    async def publish(self, channel: str, payload: Any) -> Optional[int]:
        """
        Publish a JSON payload.

        Returns:
            Number of subscribers that received it, or None on failure
        """
        try:
            message = dumps(payload)
        except (TypeError, ValueError) as e:
            logger.error("Pub/sub payload is not JSON serializable", channel=channel, error=str(e))
            return None

        async def _run(r: Redis) -> int:
            receivers = int(await r.publish(channel, message))
            logger.debug("Message published to channel", channel=channel, receivers=receivers)
            return receivers

        return await self._client.guard("PUBLISH", _run, channel=channel)

    async def notify_message_update(
        self,
        tenant_id: str,
        message_id: str,
        status: Union[DeliveryStatus, str],
        **extra: Any,
    ) -> Optional[int]:
        """Broadcast a delivery-status change on the message-updates channel."""
        try:
            status = DeliveryStatus(status)
        except ValueError:
            raise ValidationError(
                f"Unknown delivery status: {status!r}",
                details={"allowed": [s.value for s in DeliveryStatus]},
            )
        payload = {
            "tenant_id": tenant_id,
            "message_id": message_id,
            "status": status.value,
            **extra,
        }
        return await self.publish(PubSubChannel.MESSAGE_UPDATE.value, payload)

    async def listen(
        self,
        channel: str,
        *,
        poll_timeout: float = 1.0,
    ) -> AsyncIterator[Any]:
        """
        Yield decoded payloads published on `channel` until the consumer stops
        iterating. The subscription is closed on exit.
        """
        redis_handle = self._client.connection
        if redis_handle is None:
            logger.error("Redis client not available for subscribe", channel=channel)
            return

        pubsub = redis_handle.pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(channel)
        logger.info("Subscribed to channel", channel=channel)
        try:
            while True:
                try:
                    message = await pubsub.get_message(timeout=poll_timeout)
                except RedisError as e:
                    logger.error("Pub/sub receive failed", channel=channel, error=str(e))
                    return
                if message is None:
                    await asyncio.sleep(0)
                    continue
                if message.get("type") != "message":
                    continue
                yield loads_or_raw(message["data"])
        finally:
            try:
                await pubsub.unsubscribe(channel)
                await pubsub.aclose()
            except RedisError as e:
                logger.warning("Pub/sub close failed", channel=channel, error=str(e))
            logger.info("Unsubscribed from channel", channel=channel)
