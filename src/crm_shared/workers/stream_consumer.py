import asyncio
import signal
from typing import Awaitable, Callable, Optional

from crm_shared.constants import MESSAGES_GROUP_NAME, MessageStreams
from crm_shared.infrastructure.messaging.redis_streams import RedisStreams, StreamMessage
from crm_shared.infrastructure.observability.logger import bound_context, get_logger

logger = get_logger(__name__)

MessageHandler = Callable[[StreamMessage], Awaitable[None]]


class StreamConsumerWorker:
    """
    Competing consumer over one stream/group.

    On start it first drains its own pending list (messages a crashed instance
    with the same consumer name left unacknowledged), then reads new work.
    A message is acked only after the handler returned; handler failures leave
    it pending for the next recovery pass.
    """

    def __init__(
        self,
        streams: RedisStreams,
        *,
        consumer_name: str,
        handler: MessageHandler,
        stream_key: str = MessageStreams.INCOMING.value,
        group_name: str = MESSAGES_GROUP_NAME,
        block_ms: Optional[int] = None,
        count: Optional[int] = None,
        retry_interval: float = 1.0,
    ):
        self.streams = streams
        self.stream_key = stream_key
        self.group_name = group_name
        self.consumer_name = consumer_name
        self.handler = handler
        self.block_ms = block_ms
        self.count = count
        self.retry_interval = retry_interval
        self.is_running = False
        self.shutdown_event = asyncio.Event()

    @property
    def worker_name(self) -> str:
        return f"{self.stream_key}/{self.group_name}/{self.consumer_name}"

    async def shutdown(self):
        """Graceful shutdown; the current read returns within block_ms."""
        self.is_running = False
        self.shutdown_event.set()
        logger.info("Worker shutting down", worker=self.worker_name)

    def setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda: asyncio.create_task(self.shutdown()))

    def remove_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)

    async def _sleep_or_shutdown(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self.shutdown_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _ensure_group(self) -> bool:
        while not self.shutdown_event.is_set():
            if await self.streams.ensure_group(self.stream_key, self.group_name):
                return True
            logger.warning("Consumer group not ready; retrying", worker=self.worker_name)
            await self._sleep_or_shutdown(self.retry_interval)
        return False

    @property
    def blocking_reads(self) -> bool:
        block = self.streams.default_block_ms if self.block_ms is None else self.block_ms
        return block > 0

    async def _process(self, messages: list[StreamMessage]) -> int:
        done: list[str] = []
        for message in messages:
            if message.payload is None:
                # Entry body trimmed from the stream; nothing left to process
                logger.warning("Skipping pending message without payload", message_id=message.id)
                done.append(message.id)
                continue
            with bound_context(worker=self.worker_name, message_id=message.id):
                try:
                    await self.handler(message)
                except Exception as e:
                    logger.error(
                        "Message handler failed; message stays pending",
                        error=str(e),
                        exc_info=True,
                    )
                    continue
            done.append(message.id)

        if not done:
            return 0
        acked = await self.streams.ack(self.stream_key, self.group_name, done)
        return acked or 0

    async def recover_pending(self) -> int:
        """
        Reprocess this consumer's unacknowledged messages; returns how many were acked.

        One pass walks the whole pending list in id order. Messages whose
        handler fails again are stepped over and stay pending.
        """
        total = 0
        skipped = 0
        after_id: Optional[str] = None
        while not self.shutdown_event.is_set():
            messages = await self.streams.read_group(
                self.stream_key,
                self.group_name,
                self.consumer_name,
                block_ms=self.block_ms,
                count=self.count,
                read_pending=True,
                after_id=after_id,
            )
            if not messages:
                break
            acked = await self._process(messages)
            total += acked
            skipped += len(messages) - acked
            after_id = messages[-1].id
        if skipped:
            logger.warning(
                "Pending messages could not be processed; leaving them pending",
                worker=self.worker_name,
                count=skipped,
            )
        if total:
            logger.info("Recovered pending messages", worker=self.worker_name, acked=total)
        return total

    async def poll_once(self) -> Optional[int]:
        """
        Read one batch of new messages and process it.

        Returns:
            Number of messages acked, or None when the read failed
        """
        messages = await self.streams.read_group(
            self.stream_key,
            self.group_name,
            self.consumer_name,
            block_ms=self.block_ms,
            count=self.count,
            read_pending=False,
        )
        if messages is None:
            return None
        if not messages:
            return 0
        return await self._process(messages)

    async def run(self, *, handle_signals: bool = False):
        """Main worker loop."""
        self.is_running = True
        if handle_signals:
            self.setup_signal_handlers()
        logger.info("Worker started", worker=self.worker_name)

        try:
            if await self._ensure_group():
                await self.recover_pending()

            while self.is_running and not self.shutdown_event.is_set():
                try:
                    result = await self.poll_once()
                except asyncio.CancelledError:
                    logger.info("Worker cancelled", worker=self.worker_name)
                    break
                if result is None:
                    # Store unavailable; back off before the next read
                    await self._sleep_or_shutdown(self.retry_interval)
                elif result == 0 and not self.blocking_reads:
                    # Non-blocking reads return at once on an idle stream
                    await self._sleep_or_shutdown(self.retry_interval)
        finally:
            if handle_signals:
                self.remove_signal_handlers()
            self.is_running = False
            logger.info("Worker stopped", worker=self.worker_name)
