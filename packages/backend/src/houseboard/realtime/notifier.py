"""In-process fan-out — one bounded queue per connected subscriber.

Learn: Broadcasting is fire-and-forget. If no one is listening, the
message is lost. That's fine for live UI updates — a client can always
query the leaderboard to catch up. There is no replay: a subscriber only
sees messages broadcast after it subscribed.

Two rules keep one slow or broken client from hurting anyone else:
1. broadcast() iterates over a snapshot of the registry, so subscribe /
   unsubscribe during a broadcast never corrupts iteration.
2. Delivery is put_nowait into a bounded queue. A full queue drops the
   message for that subscriber only; the publisher never waits.
"""

import asyncio
import itertools
import threading
from typing import Any, Optional

import structlog

from houseboard.errors import SubscriberDeliveryError

logger = structlog.get_logger()

_ids = itertools.count(1)


class Subscription:
    """A single subscriber channel."""

    def __init__(self, maxsize: int = 100, label: str = ""):
        self.id = next(_ids)
        self.label = label
        self.dropped = 0
        self.closed = False
        self._queue: asyncio.Queue[Optional[dict[str, Any]]] = asyncio.Queue(maxsize=maxsize)

    def deliver(self, message: dict[str, Any]) -> bool:
        """Enqueue without blocking. Returns False if the message was dropped."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True

    async def get(self) -> Optional[dict[str, Any]]:
        """Next message, or None once the subscription is closed."""
        if self.closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self) -> None:
        """Mark closed and wake any reader blocked in get()."""
        if self.closed:
            return
        self.closed = True
        while True:
            try:
                self._queue.put_nowait(None)
                return
            except asyncio.QueueFull:
                # Make room for the sentinel; pending messages are discarded.
                self._queue.get_nowait()

    def __aiter__(self):
        return self

    async def __anext__(self) -> dict[str, Any]:
        message = await self.get()
        if message is None:
            raise StopAsyncIteration
        return message


class Notifier:
    """Registry of subscriptions plus non-blocking broadcast."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._lock = threading.Lock()
        self._subscribers: dict[int, Subscription] = {}

    def subscribe(self, label: str = "") -> Subscription:
        sub = Subscription(maxsize=self.queue_size, label=label)
        with self._lock:
            self._subscribers[sub.id] = sub
        logger.info("notifier.subscribed", subscriber=sub.id, label=label,
                    subscribers=self.subscriber_count)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            removed = self._subscribers.pop(sub.id, None)
        sub.close()
        if removed is not None:
            logger.info("notifier.unsubscribed", subscriber=sub.id,
                        dropped=sub.dropped, subscribers=self.subscriber_count)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def snapshot(self) -> tuple[Subscription, ...]:
        with self._lock:
            return tuple(self._subscribers.values())

    def broadcast(self, message: dict[str, Any]) -> int:
        """Deliver `message` to every current subscriber. Never raises.

        Returns the number of subscribers that accepted the message.
        """
        delivered = 0
        for sub in self.snapshot():
            try:
                if sub.deliver(message):
                    delivered += 1
                elif sub.closed:
                    # Unsubscribed after the snapshot was taken; nothing was dropped.
                    continue
                else:
                    logger.warning("notifier.message_dropped", subscriber=sub.id,
                                   dropped=sub.dropped)
            except Exception as e:
                err = SubscriberDeliveryError(f"subscriber {sub.id}: {e}")
                logger.warning("notifier.delivery_failed", subscriber=sub.id,
                               error=str(err))
        return delivered

    def close(self) -> None:
        """Detach every subscriber and wake their readers."""
        with self._lock:
            subs = list(self._subscribers.values())
            self._subscribers.clear()
        for sub in subs:
            sub.close()
        logger.info("notifier.closed", subscribers=len(subs))
