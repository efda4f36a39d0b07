"""Fan-out of broadcast messages to subscribers.

Every subscriber owns a bounded queue drained by its own task, so a slow
or stuck subscriber only ever delays itself.  :meth:`Broadcaster.publish`
never awaits and is safe to call from state-mutating code paths.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum

from tanklink.exceptions import TankLinkConfigError
from tanklink.models.snapshot import BroadcastMessage

_logger = logging.getLogger(__name__)

Sink = Callable[[BroadcastMessage], Awaitable[None]]


class OverflowPolicy(StrEnum):
    DROP_OLDEST = "drop_oldest"
    DISCONNECT = "disconnect"


class Subscription:
    """Handle returned by :meth:`Broadcaster.subscribe`."""

    def __init__(self, subscription_id: int, sink: Sink, queue_size: int) -> None:
        self.id = subscription_id
        self.sink = sink
        self.queue: asyncio.Queue[BroadcastMessage] = asyncio.Queue(maxsize=queue_size)
        self.dropped = 0
        self.delivered = 0
        self.task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return self.task is not None and not self.task.done()

    def __repr__(self) -> str:
        return f"Subscription(id={self.id}, queued={self.queue.qsize()}, dropped={self.dropped})"


class Broadcaster:
    """Deliver messages to every registered sink."""

    def __init__(
        self,
        *,
        queue_size: int = 32,
        overflow_policy: OverflowPolicy | str = OverflowPolicy.DROP_OLDEST,
    ) -> None:
        if queue_size <= 0:
            raise TankLinkConfigError("subscriber queue size must be positive")
        self._queue_size = queue_size
        self._overflow_policy = OverflowPolicy(overflow_policy)
        self._subscriptions: dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._published = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @property
    def published(self) -> int:
        """Messages handed to subscriber queues (one per subscriber)."""
        return self._published

    def subscribe(self, sink: Sink, *, initial: BroadcastMessage | None = None) -> Subscription:
        """Register *sink*; must be called with a running event loop.

        *initial* is queued ahead of any later publish, so a new viewer
        sees its snapshot first and misses nothing published after it.
        """
        subscription = Subscription(next(self._ids), sink, self._queue_size)
        if initial is not None:
            subscription.queue.put_nowait(initial)
        self._subscriptions[subscription.id] = subscription
        subscription.task = asyncio.get_running_loop().create_task(
            self._drain(subscription), name=f"tanklink-subscriber-{subscription.id}"
        )
        _logger.debug("Subscriber %d registered (total=%d)", subscription.id, len(self._subscriptions))
        return subscription

    def unsubscribe(self, handle: Subscription) -> None:
        # Deregister before cancelling so no later publish sees the handle.
        removed = self._subscriptions.pop(handle.id, None)
        task = handle.task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        if removed is not None:
            _logger.debug("Subscriber %d removed (total=%d)", handle.id, len(self._subscriptions))

    def publish(self, message: BroadcastMessage) -> None:
        for subscription in list(self._subscriptions.values()):
            try:
                subscription.queue.put_nowait(message)
            except asyncio.QueueFull:
                if self._overflow_policy == OverflowPolicy.DISCONNECT:
                    _logger.warning("Subscriber %d too slow; disconnecting", subscription.id)
                    self.unsubscribe(subscription)
                    continue
                with contextlib.suppress(asyncio.QueueEmpty):
                    subscription.queue.get_nowait()
                subscription.dropped += 1
                subscription.queue.put_nowait(message)
            self._published += 1

    async def close(self) -> None:
        """Unsubscribe everyone and wait for the drain tasks to finish."""
        subscriptions = list(self._subscriptions.values())
        tasks = [s.task for s in subscriptions if s.task is not None]
        for subscription in subscriptions:
            self.unsubscribe(subscription)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _drain(self, subscription: Subscription) -> None:
        while True:
            message = await subscription.queue.get()
            try:
                await subscription.sink(message)
            except asyncio.CancelledError:
                raise
            except Exception:
                _logger.debug("Subscriber %d sink failed; unsubscribing", subscription.id, exc_info=True)
                self.unsubscribe(subscription)
                return
            subscription.delivered += 1
