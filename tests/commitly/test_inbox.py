"""Tests for the in-app notification inbox (stores, service, routes)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from commitly.services.errors import StoreError
from commitly.services.inbox_service import InboxService
from commitly.services.inbox_store import InboxStore
from commitly.services.profile_store import owner_permissions

from tests.conftest import OTHER_USER_ID, USER_ID


@pytest.fixture(params=["memory", "sqlite"])
def any_inbox_store(request, inbox_store, sqlite_inbox_store):
    return inbox_store if request.param == "memory" else sqlite_inbox_store


def _entry(user_id: str = USER_ID, title: str = "Hello", **extra) -> dict:
    return {"userId": user_id, "title": title, "message": "msg", "type": "info", "read": False, "data": {}, **extra}


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

class TestInboxStoreContract:
    @pytest.mark.asyncio
    async def test_implements_protocol(self, any_inbox_store):
        assert isinstance(any_inbox_store, InboxStore)

    @pytest.mark.asyncio
    async def test_create_round_trip(self, any_inbox_store):
        doc = await any_inbox_store.create(
            _entry(type="success", data={"points": 25}), owner_permissions(USER_ID)
        )
        assert doc["id"]
        assert doc["createdAt"]
        assert doc["read"] is False
        assert doc["data"] == {"points": 25}
        assert doc["permissions"] == owner_permissions(USER_ID)

    @pytest.mark.asyncio
    async def test_list_newest_first_and_limited(self, any_inbox_store):
        for title in ("first", "second", "third"):
            await any_inbox_store.create(_entry(title=title), [])
        await any_inbox_store.create(_entry(OTHER_USER_ID, "not mine"), [])

        docs = await any_inbox_store.list_for_user(USER_ID, 2)

        assert [d["title"] for d in docs] == ["third", "second"]

    @pytest.mark.asyncio
    async def test_mark_read_and_count(self, any_inbox_store):
        a = await any_inbox_store.create(_entry(), [])
        await any_inbox_store.create(_entry(), [])
        await any_inbox_store.create(_entry(OTHER_USER_ID), [])

        await any_inbox_store.mark_read(a["id"])

        assert await any_inbox_store.count_unread(USER_ID) == 1
        assert await any_inbox_store.mark_all_read(USER_ID) == 1
        assert await any_inbox_store.count_unread(USER_ID) == 0
        assert await any_inbox_store.count_unread(OTHER_USER_ID) == 1

    @pytest.mark.asyncio
    async def test_mark_read_missing(self, any_inbox_store):
        with pytest.raises(StoreError):
            await any_inbox_store.mark_read("missing")


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class TestInboxService:
    @pytest.mark.asyncio
    async def test_create_and_list(self, inbox):
        created = await inbox.create_notification(USER_ID, "Goal reached", "5 commits today", "success", {"commits": 5})

        assert created.user_id == USER_ID
        assert created.type == "success"
        assert created.read is False
        [listed] = await inbox.get_user_notifications(USER_ID)
        assert listed.id == created.id
        assert listed.data == {"commits": 5}

    @pytest.mark.asyncio
    async def test_defaults_to_info(self, inbox):
        created = await inbox.create_notification(USER_ID, "t", "m")
        assert created.type == "info"
        assert created.data == {}

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self, inbox, inbox_store):
        with pytest.raises(ValueError):
            await inbox.create_notification(USER_ID, "t", "m", "urgent")
        assert await inbox_store.count_unread(USER_ID) == 0

    @pytest.mark.asyncio
    async def test_mark_read_flow(self, inbox):
        first = await inbox.create_notification(USER_ID, "a", "m")
        await inbox.create_notification(USER_ID, "b", "m")
        assert await inbox.get_unread_notification_count(USER_ID) == 2

        assert await inbox.mark_notification_as_read(first.id) is True
        assert await inbox.get_unread_notification_count(USER_ID) == 1

        assert await inbox.mark_all_notifications_as_read(USER_ID) is True
        assert await inbox.get_unread_notification_count(USER_ID) == 0

    @pytest.mark.asyncio
    async def test_mark_missing_returns_false(self, inbox):
        assert await inbox.mark_notification_as_read("missing") is False

    @pytest.mark.asyncio
    async def test_store_failures_absorbed(self):
        store = AsyncMock()
        store.list_for_user.side_effect = StoreError("down")
        store.create.side_effect = StoreError("down")
        store.mark_all_read.side_effect = StoreError("down")
        store.count_unread.side_effect = StoreError("down")
        service = InboxService(store)

        assert await service.get_user_notifications(USER_ID) == []
        assert await service.create_notification(USER_ID, "t", "m") is None
        assert await service.mark_all_notifications_as_read(USER_ID) is False
        assert await service.get_unread_notification_count(USER_ID) == 0


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_inbox_routes(client):
    resp = await client.post(
        f"/api/v1/notifications/{USER_ID}",
        json={"title": "Welcome", "message": "Glad you're here", "type": "success"},
    )
    assert resp.status_code == 200
    notification = resp.json()["notification"]
    assert notification["userId"] == USER_ID
    assert notification["read"] is False

    resp = await client.get(f"/api/v1/notifications/{USER_ID}/unread-count")
    assert resp.json() == {"count": 1}

    resp = await client.get(f"/api/v1/notifications/{USER_ID}")
    data = resp.json()
    assert data["total"] == 1
    assert data["items"][0]["id"] == notification["id"]

    resp = await client.post(f"/api/v1/notifications/by-id/{notification['id']}/read")
    assert resp.json() == {"ok": True}
    resp = await client.get(f"/api/v1/notifications/{USER_ID}/unread-count")
    assert resp.json() == {"count": 0}


@pytest.mark.asyncio
async def test_inbox_read_all(client):
    for title in ("a", "b"):
        await client.post(f"/api/v1/notifications/{USER_ID}", json={"title": title, "message": "m"})

    resp = await client.post(f"/api/v1/notifications/{USER_ID}/read-all")

    assert resp.json() == {"ok": True}
    assert (await client.get(f"/api/v1/notifications/{USER_ID}/unread-count")).json() == {"count": 0}


@pytest.mark.asyncio
async def test_mark_unknown_notification(client):
    resp = await client.post("/api/v1/notifications/by-id/missing/read")
    assert resp.json() == {"ok": False}


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"title": "t", "message": "m", "type": "urgent"},
    {"title": "", "message": "m"},
    {"title": "t", "message": "m", "data": [1]},
])
async def test_create_validation(client, body):
    resp = await client.post(f"/api/v1/notifications/{USER_ID}", json=body)
    assert resp.status_code == 400
    assert resp.json()["detail"]["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_list_limit_bounds(client):
    resp = await client.get(f"/api/v1/notifications/{USER_ID}", params={"limit": 0})
    assert resp.status_code == 400
