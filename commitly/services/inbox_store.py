"""In-app notification inbox store — in-memory (tests, single process) or SQLite."""

from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

import aiosqlite

from commitly.config import settings
from commitly.db.queries import notifications as notification_queries
from commitly.models.profile import utc_now
from commitly.services.errors import StoreError


@runtime_checkable
class InboxStore(Protocol):
    """Interface for inbox document persistence."""

    async def list_for_user(self, user_id: str, limit: int) -> list[dict]: ...

    async def create(self, data: dict, permissions: list[str]) -> dict: ...

    async def mark_read(self, notification_id: str) -> None: ...

    async def mark_all_read(self, user_id: str) -> int: ...

    async def count_unread(self, user_id: str) -> int: ...


class MemoryInboxStore:
    """In-memory inbox; insertion order doubles as creation order."""

    def __init__(self) -> None:
        self._docs: dict[str, dict] = {}

    async def list_for_user(self, user_id: str, limit: int) -> list[dict]:
        mine = [dict(d) for d in reversed(list(self._docs.values())) if d["userId"] == user_id]
        return mine[:limit]

    async def create(self, data: dict, permissions: list[str]) -> dict:
        doc = {"createdAt": utc_now(), **data}
        doc["id"] = uuid.uuid4().hex
        doc["permissions"] = list(permissions)
        self._docs[doc["id"]] = doc
        return dict(doc)

    async def mark_read(self, notification_id: str) -> None:
        doc = self._docs.get(notification_id)
        if doc is None:
            raise StoreError(f"Notification {notification_id} not found")
        doc["read"] = True

    async def mark_all_read(self, user_id: str) -> int:
        changed = 0
        for doc in self._docs.values():
            if doc["userId"] == user_id and not doc.get("read"):
                doc["read"] = True
                changed += 1
        return changed

    async def count_unread(self, user_id: str) -> int:
        return sum(1 for d in self._docs.values() if d["userId"] == user_id and not d.get("read"))


class SQLiteInboxStore:
    """Container deployment — aiosqlite, indexed by (user_id, created_at)."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def list_for_user(self, user_id: str, limit: int) -> list[dict]:
        try:
            return await notification_queries.list_for_user(self._db, user_id, limit)
        except aiosqlite.Error as e:
            raise StoreError(f"Notification query failed: {e}") from e

    async def create(self, data: dict, permissions: list[str]) -> dict:
        notification_id = uuid.uuid4().hex
        try:
            await notification_queries.insert_notification(
                self._db, notification_id, {"createdAt": utc_now(), **data}, permissions
            )
            doc = await notification_queries.get_notification(self._db, notification_id)
        except aiosqlite.Error as e:
            raise StoreError(f"Notification create failed: {e}") from e
        if doc is None:
            raise StoreError(f"Notification {notification_id} vanished after create")
        return doc

    async def mark_read(self, notification_id: str) -> None:
        try:
            changed = await notification_queries.mark_read(self._db, notification_id)
        except aiosqlite.Error as e:
            raise StoreError(f"Notification update failed: {e}") from e
        if not changed:
            raise StoreError(f"Notification {notification_id} not found")

    async def mark_all_read(self, user_id: str) -> int:
        try:
            return await notification_queries.mark_all_read(self._db, user_id)
        except aiosqlite.Error as e:
            raise StoreError(f"Notification update failed: {e}") from e

    async def count_unread(self, user_id: str) -> int:
        try:
            return await notification_queries.count_unread(self._db, user_id)
        except aiosqlite.Error as e:
            raise StoreError(f"Notification count failed: {e}") from e


def get_inbox_store(db: aiosqlite.Connection | None = None) -> InboxStore:
    """Factory: same backend selection as the profile store."""
    if settings.profile_store_backend == "sqlite":
        if db is None:
            raise RuntimeError("SQLite inbox store requires an initialized database")
        return SQLiteInboxStore(db)
    return MemoryInboxStore()
