"""Real-time profile change listener on top of the store's change feed."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

from commitly.models.profile import ProfileChange
from commitly.services.change_feed import PROFILES_CHANNEL, ChangeFeed

logger = logging.getLogger(__name__)


def subscribe_to_profile_updates(
    feed: ChangeFeed, user_id: str, on_change: Callable[[ProfileChange], Any]
) -> Callable[[], None]:
    """Invoke ``on_change`` whenever ``user_id``'s profile document changes.

    Each delivered ProfileChange is the latest known state, not a delta.
    Events for other users are discarded. Returns the unsubscribe function;
    call it once on teardown.
    """

    async def handle(message: dict) -> None:
        payload = message.get("payload") or {}
        if payload.get("userId") != user_id:
            return
        change = ProfileChange.from_payload(payload)
        logger.debug("Profile change for %s: %s", user_id, message.get("events"))
        result = on_change(change)
        if inspect.isawaitable(result):
            await result

    return feed.subscribe(PROFILES_CHANNEL, handle)
