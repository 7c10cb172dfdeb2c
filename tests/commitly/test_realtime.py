"""Tests for the change feed and the real-time profile listener."""

from __future__ import annotations

import pytest

from commitly.services.change_feed import PROFILES_CHANNEL
from commitly.services.realtime import subscribe_to_profile_updates

from tests.conftest import USER_ID


def _publish(feed, payload: dict) -> None:
    feed.publish(PROFILES_CHANNEL, [f"{PROFILES_CHANNEL}.doc.update"], payload)


class TestSubscribeToProfileUpdates:
    @pytest.mark.asyncio
    async def test_other_user_discarded(self, feed):
        received = []
        unsubscribe = subscribe_to_profile_updates(feed, "U1", received.append)

        _publish(feed, {"userId": "U2", "points": 99})
        await feed.drain()
        unsubscribe()

        assert received == []

    @pytest.mark.asyncio
    async def test_matching_user_delivered(self, feed):
        received = []
        unsubscribe = subscribe_to_profile_updates(feed, "U1", received.append)

        _publish(feed, {"userId": "U2", "points": 99})
        _publish(feed, {"userId": "U1", "points": 42})
        await feed.drain()
        unsubscribe()

        assert len(received) == 1
        assert received[0].points == 42
        assert received[0].user_id == "U1"

    @pytest.mark.asyncio
    async def test_partial_payload_leaves_fields_unset(self, feed):
        received = []
        unsubscribe = subscribe_to_profile_updates(feed, "U1", received.append)

        _publish(feed, {"userId": "U1", "dailyGoal": 8})
        await feed.drain()
        unsubscribe()

        assert received[0].daily_goal == 8
        assert received[0].points is None

    @pytest.mark.asyncio
    async def test_async_callback(self, feed):
        received = []

        async def on_change(change):
            received.append(change.points)

        unsubscribe = subscribe_to_profile_updates(feed, "U1", on_change)
        _publish(feed, {"userId": "U1", "points": 1})
        _publish(feed, {"userId": "U1", "points": 2})
        await feed.drain()
        unsubscribe()

        assert received == [1, 2]

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_delivery(self, feed):
        received = []
        unsubscribe = subscribe_to_profile_updates(feed, "U1", received.append)
        unsubscribe()
        unsubscribe()  # idempotent

        assert feed.publish(PROFILES_CHANNEL, ["x"], {"userId": "U1", "points": 1}) == 0
        assert feed.subscriber_count == 0
        assert received == []

    @pytest.mark.asyncio
    async def test_store_writes_reach_listener(self, feed, profiles):
        received = []
        unsubscribe = subscribe_to_profile_updates(feed, USER_ID, received.append)

        await profiles.get_or_create_profile(USER_ID)
        await profiles.add_points(USER_ID, 25)
        await profiles.update_daily_goal(USER_ID, 7)
        await feed.drain()
        unsubscribe()

        assert [c.points for c in received] == [0, 25, 25]
        assert received[-1].daily_goal == 7


class TestChangeFeed:
    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_block_others(self, feed):
        received = []

        def broken(message):
            raise RuntimeError("boom")

        stop_broken = feed.subscribe(PROFILES_CHANNEL, broken)
        stop_ok = feed.subscribe(PROFILES_CHANNEL, received.append)

        assert feed.publish(PROFILES_CHANNEL, ["e1"], {"userId": "U1"}) == 2
        feed.publish(PROFILES_CHANNEL, ["e2"], {"userId": "U1"})
        await feed.drain()
        stop_broken()
        stop_ok()

        assert [m["events"] for m in received] == [["e1"], ["e2"]]

    @pytest.mark.asyncio
    async def test_channels_are_isolated(self, feed):
        received = []
        unsubscribe = feed.subscribe("other.channel", received.append)

        assert feed.publish(PROFILES_CHANNEL, ["e"], {"userId": "U1"}) == 0
        await feed.drain()
        unsubscribe()

        assert received == []


class TestBackgroundDispatcher:
    @pytest.mark.asyncio
    async def test_failures_logged_not_raised(self, background):
        async def ok():
            return 1

        async def fails():
            raise RuntimeError("side effect failed")

        background.dispatch(ok(), name="ok")
        background.dispatch(fails(), name="fails")
        await background.drain()

        assert background.pending == 0
        assert background.failures == 1
