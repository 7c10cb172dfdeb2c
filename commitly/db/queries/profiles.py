from __future__ import annotations

import json

import aiosqlite

# Document field -> column. Only these fields are writable through update_profile.
COLUMNS = {
    "userId": "user_id",
    "username": "username",
    "name": "name",
    "avatarUrl": "avatar_url",
    "points": "points",
    "todaysCommits": "todays_commits",
    "todaysCommitsDate": "todays_commits_date",
    "dailyGoal": "daily_goal",
    "pushToken": "push_token",
    "welcomeSent": "welcome_sent",
    "lastCommitAt": "last_commit_at",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def row_to_document(row: aiosqlite.Row) -> dict:
    data = dict(row)
    doc = {"id": data["id"], "permissions": json.loads(data.get("permissions") or "[]")}
    for field, column in COLUMNS.items():
        doc[field] = data.get(column)
    doc["welcomeSent"] = bool(doc["welcomeSent"])
    return doc


async def get_profile(db: aiosqlite.Connection, doc_id: str) -> dict | None:
    async with db.execute("SELECT * FROM profiles WHERE id = ?", (doc_id,)) as cursor:
        row = await cursor.fetchone()
        return row_to_document(row) if row else None


async def get_profile_by_user_id(db: aiosqlite.Connection, user_id: str) -> dict | None:
    async with db.execute(
        "SELECT * FROM profiles WHERE user_id = ? LIMIT 1", (user_id,)
    ) as cursor:
        row = await cursor.fetchone()
        return row_to_document(row) if row else None


async def insert_profile(
    db: aiosqlite.Connection, doc_id: str, data: dict, permissions: list[str]
) -> None:
    """Insert a profile document. Raises aiosqlite.IntegrityError on a duplicate user_id."""
    fields = {COLUMNS[k]: v for k, v in data.items() if k in COLUMNS}
    fields["id"] = doc_id
    fields["permissions"] = json.dumps(permissions)
    columns = ", ".join(fields)
    placeholders = ", ".join("?" for _ in fields)
    await db.execute(
        f"INSERT INTO profiles ({columns}) VALUES ({placeholders})",
        tuple(fields.values()),
    )
    await db.commit()


async def update_profile(db: aiosqlite.Connection, doc_id: str, fields: dict) -> int:
    """Partial update by document id. Returns rows changed."""
    updates = {COLUMNS[k]: v for k, v in fields.items() if k in COLUMNS and k != "userId"}
    if not updates:
        return 0
    assignments = ", ".join(f"{column} = ?" for column in updates)
    cursor = await db.execute(
        f"UPDATE profiles SET {assignments} WHERE id = ?",
        (*updates.values(), doc_id),
    )
    await db.commit()
    return cursor.rowcount


async def increment_points(
    db: aiosqlite.Connection,
    doc_id: str,
    delta: int,
    updated_at: str,
    last_commit_at: str | None = None,
) -> int:
    """Atomically apply a signed points delta, floored at zero. Returns rows changed."""
    cursor = await db.execute(
        """UPDATE profiles
           SET points = MAX(0, points + ?),
               last_commit_at = COALESCE(?, last_commit_at),
               updated_at = ?
           WHERE id = ?""",
        (delta, last_commit_at, updated_at, doc_id),
    )
    await db.commit()
    return cursor.rowcount
