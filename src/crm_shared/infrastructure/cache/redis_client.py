"""
Async Redis client (KV client).

Redis is an optimization; the repository remains the source of truth. Every
operation is best-effort: without a live connection, or on a transport error,
the call logs at error level and returns a sentinel instead of raising.
One handle per process, injected into the cache, stream and pub/sub users.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar, Union

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from crm_shared.config import Settings, get_settings
from crm_shared.exceptions import CacheUnavailableError
from crm_shared.infrastructure.observability.logger import get_logger
from crm_shared.utils.serialization import dumps, loads_or_raw

logger = get_logger(__name__)

T = TypeVar("T")

TRANSPORT_ERRORS = (RedisError, OSError)


class RedisClient:
    """
    Async Redis adapter with JSON values and sentinel-on-failure semantics.

    Attributes:
        url: Connection URL
        password: Optional password (overrides the one in the URL)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        redis_client: Optional[Redis] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.url = self._settings.redis_url
        self.password = self._settings.redis_password
        # An injected handle (shared pool, test double) counts as connected
        self._redis: Optional[Redis] = redis_client
        self._closing = False

    # ---------- connection management ----------

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def is_ready(self) -> bool:
        return self._redis is not None and not self._closing

    @property
    def connection(self) -> Optional[Redis]:
        """The shared raw handle, or None before connect()/after close()."""
        if self._redis is None:
            logger.warning("Redis handle requested before the connection was established")
        return self._redis

    async def connect(self) -> None:
        """Create the client and verify it answers PING."""
        if self._redis is not None:
            logger.info("Redis client already connected")
            return
        client = redis.from_url(
            self.url,
            password=self.password,
            encoding="utf-8",
            decode_responses=True,
            health_check_interval=30,
            socket_connect_timeout=self._settings.redis_socket_timeout,
            socket_timeout=None,  # blocking stream reads bound themselves with BLOCK
            retry_on_timeout=True,
            max_connections=self._settings.redis_max_connections,
        )
        try:
            await client.ping()
        except TRANSPORT_ERRORS as e:
            logger.error("Redis connection failed", error=str(e))
            await client.aclose()
            raise CacheUnavailableError(f"Redis connection failed: {e}") from e
        self._redis = client
        self._closing = False
        logger.info("Redis connection established")

    async def close(self) -> None:
        """Close the connection; safe to call more than once."""
        if self._closing:
            logger.debug("Redis close already in progress")
            return
        if self._redis is None:
            logger.info("Redis client was not connected; nothing to close")
            return
        self._closing = True
        try:
            await self._redis.aclose()
            logger.info("Redis client closed")
        except TRANSPORT_ERRORS as e:
            logger.error("Error while closing Redis client", error=str(e))
        finally:
            self._redis = None
            self._closing = False

    async def guard(
        self,
        op: str,
        fn: Callable[[Redis], Awaitable[T]],
        *,
        default: Any = None,
        **log_fields: Any,
    ) -> Union[T, Any]:
        """
        Run `fn` against the live handle, degrading to `default` when the store
        is unavailable or the command fails.
        """
        if not self.is_ready:
            logger.error("Redis client not available", op=op, **log_fields)
            return default
        try:
            return await fn(self._redis)  # type: ignore[arg-type]
        except TRANSPORT_ERRORS as e:
            logger.error(f"Redis {op} failed", error=str(e), **log_fields)
            return default

    # ---------- string & json ----------

    async def set(
        self,
        key: str,
        value: Any,
        *,
        ex: Optional[int] = None,
        nx: bool = False,
    ) -> Optional[bool]:
        """
        Store `value` JSON-encoded under `key`.

        Returns:
            True when written, False when nx=True and the key already existed,
            None on invalid input or when the store is unavailable
        """
        if not isinstance(key, str):
            logger.error("Cache key must be a string", op="SET", key_type=type(key).__name__)
            return None
        if value is None:
            logger.warning("Refusing to cache None; delete the key explicitly instead", key=key)
            return None
        try:
            payload = dumps(value)
        except (TypeError, ValueError) as e:
            logger.error("Value is not JSON serializable", key=key, error=str(e))
            return None

        async def _run(r: Redis) -> bool:
            result = await r.set(key, payload, ex=ex, nx=nx)
            logger.debug("Cached value", key=key)
            return bool(result)

        return await self.guard("SET", _run, key=key)

    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded value, the raw string when it is not JSON, or None."""
        if not isinstance(key, str):
            logger.error("Cache key must be a string", op="GET", key_type=type(key).__name__)
            return None

        async def _run(r: Redis) -> Optional[Any]:
            raw = await r.get(key)
            if raw is None:
                logger.debug("Cache key not found", key=key)
                return None
            return loads_or_raw(raw)

        return await self.guard("GET", _run, key=key)

    async def delete(self, keys: Union[str, Sequence[str]]) -> Optional[int]:
        """Delete one or more keys; returns how many existed."""
        key_list = [keys] if isinstance(keys, str) else list(keys)
        if not all(isinstance(k, str) for k in key_list):
            logger.error("Cache keys must be strings", op="DEL")
            return None
        if not key_list:
            return 0

        async def _run(r: Redis) -> int:
            removed = await r.delete(*key_list)
            logger.debug("Deleted cache keys", keys=key_list, removed=removed)
            return int(removed)

        return await self.guard("DEL", _run, keys=key_list)

    async def exists(self, key: str) -> Optional[bool]:
        async def _run(r: Redis) -> bool:
            return await r.exists(key) > 0

        return await self.guard("EXISTS", _run, key=key)

    async def ping(self) -> bool:
        async def _run(r: Redis) -> bool:
            return bool(await r.ping())

        return await self.guard("PING", _run, default=False)
