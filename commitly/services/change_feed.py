"""In-process change feed: push-based fan-out of store mutation events."""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

PROFILES_CHANNEL = "collections.profiles.documents"

ChangeCallback = Callable[[dict], Any]


class _Subscription:
    __slots__ = ("id", "channel", "callback", "queue", "task")

    def __init__(self, sub_id: int, channel: str, callback: ChangeCallback):
        self.id = sub_id
        self.channel = channel
        self.callback = callback
        self.queue: asyncio.Queue[dict] = asyncio.Queue()
        self.task: asyncio.Task | None = None


class ChangeFeed:
    """Delivers ``{"channels", "events", "payload"}`` messages to subscribers.

    Each subscription owns a queue drained by its own task, so a slow
    subscriber never blocks the publisher. Delivery order per subscription
    follows publish order.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[int, _Subscription] = {}
        self._ids = itertools.count(1)

    def subscribe(self, channel: str, callback: ChangeCallback) -> Callable[[], None]:
        """Subscribe to a channel. Returns an idempotent unsubscribe function.

        Must be called from within a running event loop.
        """
        sub = _Subscription(next(self._ids), channel, callback)
        sub.task = asyncio.get_running_loop().create_task(self._pump(sub))
        self._subscriptions[sub.id] = sub
        logger.debug("Subscribed #%d to %s", sub.id, channel)

        def unsubscribe() -> None:
            removed = self._subscriptions.pop(sub.id, None)
            if removed is None:
                return
            if removed.task is not None:
                removed.task.cancel()
            logger.debug("Unsubscribed #%d from %s", sub.id, channel)

        return unsubscribe

    def publish(self, channel: str, events: list[str], payload: dict) -> int:
        """Queue a message for every subscriber of the channel. Returns subscriber count."""
        message = {"channels": [channel], "events": list(events), "payload": dict(payload)}
        delivered = 0
        for sub in list(self._subscriptions.values()):
            if sub.channel == channel:
                sub.queue.put_nowait(message)
                delivered += 1
        return delivered

    async def drain(self) -> None:
        """Wait until every queued message has been handed to its subscriber."""
        await asyncio.gather(*(s.queue.join() for s in list(self._subscriptions.values())))

    def close(self) -> None:
        for sub in list(self._subscriptions.values()):
            if sub.task is not None:
                sub.task.cancel()
        self._subscriptions.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def _pump(self, sub: _Subscription) -> None:
        while True:
            message = await sub.queue.get()
            try:
                result = sub.callback(message)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Change feed subscriber #%d failed on %s", sub.id, message["events"])
            finally:
                sub.queue.task_done()
