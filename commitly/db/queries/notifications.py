from __future__ import annotations

import json

import aiosqlite


def row_to_document(row: aiosqlite.Row) -> dict:
    data = dict(row)
    return {
        "id": data["id"],
        "userId": data["user_id"],
        "title": data["title"],
        "message": data["message"],
        "type": data["type"],
        "read": bool(data["read"]),
        "data": json.loads(data.get("data") or "{}"),
        "permissions": json.loads(data.get("permissions") or "[]"),
        "createdAt": data["created_at"],
    }


async def get_notification(db: aiosqlite.Connection, notification_id: str) -> dict | None:
    async with db.execute("SELECT * FROM notifications WHERE id = ?", (notification_id,)) as cursor:
        row = await cursor.fetchone()
        return row_to_document(row) if row else None


async def list_for_user(db: aiosqlite.Connection, user_id: str, limit: int) -> list[dict]:
    """Newest first. rowid breaks ties between rows created in the same instant."""
    async with db.execute(
        """SELECT * FROM notifications WHERE user_id = ?
           ORDER BY created_at DESC, rowid DESC LIMIT ?""",
        (user_id, limit),
    ) as cursor:
        return [row_to_document(r) for r in await cursor.fetchall()]


async def insert_notification(
    db: aiosqlite.Connection, notification_id: str, data: dict, permissions: list[str]
) -> None:
    await db.execute(
        """INSERT INTO notifications (id, user_id, title, message, type, read, data, permissions, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            notification_id,
            data["userId"],
            data["title"],
            data["message"],
            data["type"],
            int(bool(data.get("read"))),
            json.dumps(data.get("data") or {}),
            json.dumps(permissions),
            data["createdAt"],
        ),
    )
    await db.commit()


async def mark_read(db: aiosqlite.Connection, notification_id: str) -> int:
    cursor = await db.execute("UPDATE notifications SET read = 1 WHERE id = ?", (notification_id,))
    await db.commit()
    return cursor.rowcount


async def mark_all_read(db: aiosqlite.Connection, user_id: str) -> int:
    cursor = await db.execute(
        "UPDATE notifications SET read = 1 WHERE user_id = ? AND read = 0", (user_id,)
    )
    await db.commit()
    return cursor.rowcount


async def count_unread(db: aiosqlite.Connection, user_id: str) -> int:
    async with db.execute(
        "SELECT COUNT(*) FROM notifications WHERE user_id = ? AND read = 0", (user_id,)
    ) as cursor:
        row = await cursor.fetchone()
        return row[0] if row else 0
