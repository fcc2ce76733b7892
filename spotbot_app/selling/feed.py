"""
Push-feed driver for venues that stream order updates.

Feeds the same :class:`SellEngine` handlers as polling, so both delivery
mechanisms end in identical state-machine transitions. An abnormal closure,
connection reset or timeout surfaces from the stream as a
``TransientNetworkError``; the driver then waits a fixed delay and
reconnects. Between updates, an idle timeout runs the maintenance pass.
"""

import asyncio
from typing import AsyncIterator, Awaitable, Callable, Optional

from ..config.defaults import FeedParams
from ..errors import TransientNetworkError
from ..logging.config import get_engine_logger
from .engine import LOOP_ERRORS, CycleReport, OrderUpdate, SellEngine

logger = get_engine_logger(__name__)

StreamFactory = Callable[[], AsyncIterator[list[OrderUpdate]]]


class PushFeed:
    """Drives a sell engine from a reconnecting order-update stream."""

    def __init__(
        self,
        engine: SellEngine,
        stream_factory: StreamFactory,
        params: Optional[FeedParams] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.engine = engine
        self.stream_factory = stream_factory
        self.params = params or FeedParams()
        self.sleep = sleep
        self.connections = 0

    async def _apply(self, updates: list[OrderUpdate]) -> None:
        for update in updates:
            await asyncio.to_thread(self.engine.apply_update, update)

    async def _maintain(self) -> CycleReport:
        try:
            return await asyncio.to_thread(self.engine.maintain_now)
        except LOOP_ERRORS as e:
            logger.error("Maintenance failed", error=str(e))
            self.engine.notifier.error(e)
            return CycleReport()

    async def consume(self) -> None:
        """Read one connection until the stream ends or fails."""
        self.connections += 1
        stream = self.stream_factory()
        pending: Optional[asyncio.Future] = None
        try:
            while True:
                if pending is None:
                    pending = asyncio.ensure_future(stream.__anext__())
                done, _ = await asyncio.wait(
                    {pending},
                    timeout=self.params.maintenance_interval_seconds,
                )
                if not done:
                    await self._maintain()
                    continue
                task, pending = pending, None
                try:
                    updates = task.result()
                except StopAsyncIteration:
                    return
                await self._apply(updates)
        finally:
            if pending is not None:
                pending.cancel()
                try:
                    await pending
                except (asyncio.CancelledError, StopAsyncIteration, TransientNetworkError):
                    pass
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    async def run(self, max_connections: Optional[int] = None) -> None:
        """
        Start the engine and consume the feed, reconnecting forever (or
        until ``max_connections`` connections have been used up).
        """
        await asyncio.to_thread(self.engine.start)
        while max_connections is None or self.connections < max_connections:
            try:
                await self.consume()
                logger.info("Feed closed normally, reconnecting")
            except TransientNetworkError as e:
                logger.warning(
                    "Feed connection lost, reconnecting",
                    error=str(e),
                    delay_seconds=self.params.reconnect_delay_seconds,
                )
                await self.sleep(self.params.reconnect_delay_seconds)
