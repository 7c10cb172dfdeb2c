"""Profile document store — in-memory (tests, single process) or SQLite."""

from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

import aiosqlite

from commitly.config import settings
from commitly.db.queries import profiles as profile_queries
from commitly.models.profile import utc_now
from commitly.services.change_feed import PROFILES_CHANNEL, ChangeFeed
from commitly.services.errors import DuplicateProfileError, StoreError


def owner_permissions(user_id: str) -> list[str]:
    """Read/update/delete scoped to the owning user."""
    role = f'user("{user_id}")'
    return [f"read({role})", f"update({role})", f"delete({role})"]


@runtime_checkable
class ProfileStore(Protocol):
    """Interface for profile document persistence."""

    feed: ChangeFeed

    async def find_by_user_id(self, user_id: str) -> dict | None: ...

    async def create(self, data: dict, permissions: list[str]) -> dict: ...

    async def update(self, doc_id: str, fields: dict) -> dict: ...

    async def increment_points(
        self, doc_id: str, delta: int, last_commit_at: str | None = None
    ) -> dict: ...


def _publish(feed: ChangeFeed, doc: dict, action: str) -> None:
    payload = {k: v for k, v in doc.items() if k != "permissions"}
    feed.publish(
        PROFILES_CHANNEL,
        [f"{PROFILES_CHANNEL}.{doc['id']}.{action}", f"{PROFILES_CHANNEL}.*.{action}"],
        payload,
    )


class MemoryProfileStore:
    """In-memory dict store (single-process safe).

    No await separates a read from its write, so each call is atomic on the
    event loop.
    """

    def __init__(self, feed: ChangeFeed | None = None) -> None:
        self.feed = feed or ChangeFeed()
        self._docs: dict[str, dict] = {}
        self._by_user: dict[str, str] = {}
        self.writes = 0

    async def find_by_user_id(self, user_id: str) -> dict | None:
        doc_id = self._by_user.get(user_id)
        return dict(self._docs[doc_id]) if doc_id else None

    async def create(self, data: dict, permissions: list[str]) -> dict:
        user_id = data["userId"]
        if user_id in self._by_user:
            raise DuplicateProfileError(user_id)
        now = utc_now()
        doc = {"createdAt": now, "updatedAt": now, **data}
        doc["id"] = uuid.uuid4().hex
        doc["permissions"] = list(permissions)
        self._docs[doc["id"]] = doc
        self._by_user[user_id] = doc["id"]
        self.writes += 1
        _publish(self.feed, doc, "create")
        return dict(doc)

    async def update(self, doc_id: str, fields: dict) -> dict:
        doc = self._docs.get(doc_id)
        if doc is None:
            raise StoreError(f"Document {doc_id} not found")
        doc.update({k: v for k, v in fields.items() if k not in ("id", "userId")})
        doc["updatedAt"] = utc_now()
        self.writes += 1
        _publish(self.feed, doc, "update")
        return dict(doc)

    async def increment_points(
        self, doc_id: str, delta: int, last_commit_at: str | None = None
    ) -> dict:
        doc = self._docs.get(doc_id)
        if doc is None:
            raise StoreError(f"Document {doc_id} not found")
        fields: dict = {"points": max(0, (doc.get("points") or 0) + delta)}
        if last_commit_at:
            fields["lastCommitAt"] = last_commit_at
        return await self.update(doc_id, fields)


class SQLiteProfileStore:
    """Container deployment — aiosqlite with a unique index on user_id."""

    def __init__(self, db: aiosqlite.Connection, feed: ChangeFeed | None = None) -> None:
        self._db = db
        self.feed = feed or ChangeFeed()

    async def find_by_user_id(self, user_id: str) -> dict | None:
        try:
            return await profile_queries.get_profile_by_user_id(self._db, user_id)
        except aiosqlite.Error as e:
            raise StoreError(f"Profile query failed: {e}") from e

    async def create(self, data: dict, permissions: list[str]) -> dict:
        doc_id = uuid.uuid4().hex
        now = utc_now()
        try:
            await profile_queries.insert_profile(
                self._db, doc_id, {"createdAt": now, "updatedAt": now, **data}, permissions
            )
        except aiosqlite.IntegrityError as e:
            if "user_id" in str(e):
                raise DuplicateProfileError(data["userId"]) from e
            raise StoreError(f"Profile create rejected: {e}") from e
        except (aiosqlite.Error, OverflowError) as e:
            raise StoreError(f"Profile create failed: {e}") from e
        return await self._reload(doc_id, "create")

    async def update(self, doc_id: str, fields: dict) -> dict:
        try:
            changed = await profile_queries.update_profile(
                self._db, doc_id, {**fields, "updatedAt": utc_now()}
            )
        except (aiosqlite.Error, OverflowError) as e:
            raise StoreError(f"Profile update failed: {e}") from e
        if not changed:
            raise StoreError(f"Document {doc_id} not found")
        return await self._reload(doc_id, "update")

    async def increment_points(
        self, doc_id: str, delta: int, last_commit_at: str | None = None
    ) -> dict:
        try:
            changed = await profile_queries.increment_points(
                self._db, doc_id, delta, utc_now(), last_commit_at
            )
        except (aiosqlite.Error, OverflowError) as e:
            raise StoreError(f"Points increment failed: {e}") from e
        if not changed:
            raise StoreError(f"Document {doc_id} not found")
        return await self._reload(doc_id, "update")

    async def _reload(self, doc_id: str, action: str) -> dict:
        try:
            doc = await profile_queries.get_profile(self._db, doc_id)
        except aiosqlite.Error as e:
            raise StoreError(f"Profile read-back failed: {e}") from e
        if doc is None:
            raise StoreError(f"Document {doc_id} vanished after {action}")
        _publish(self.feed, doc, action)
        return doc


def get_profile_store(
    feed: ChangeFeed, db: aiosqlite.Connection | None = None
) -> ProfileStore:
    """Factory: returns the ProfileStore for the configured backend."""
    if settings.profile_store_backend == "sqlite":
        if db is None:
            raise RuntimeError("SQLite profile store requires an initialized database")
        return SQLiteProfileStore(db, feed)
    return MemoryProfileStore(feed)
