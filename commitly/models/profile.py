from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

DEFAULT_DAILY_GOAL = 5
MIN_DAILY_GOAL = 1
MAX_DAILY_GOAL = 50


def utc_today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _int_or(value, default: int) -> int:
    # bool is an int subclass; a stored True is not a count
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return default


class Profile(BaseModel):
    """Per-user gamification document (points, daily counter, goal, push token)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    user_id: str
    username: str | None = None
    name: str | None = None
    avatar_url: str | None = None
    points: int = 0
    todays_commits: int = 0
    todays_commits_date: str | None = None
    daily_goal: int = DEFAULT_DAILY_GOAL
    push_token: str | None = None
    welcome_sent: bool = False
    last_commit_at: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_document(cls, doc: dict, today: str | None = None) -> Profile:
        """Normalize a raw store document.

        Missing numeric fields fall back to their defaults. A daily counter
        recorded on an earlier UTC date reads as 0.
        """
        today = today or utc_today()
        todays_commits = max(0, _int_or(doc.get("todaysCommits"), 0))
        counter_date = doc.get("todaysCommitsDate")
        if counter_date and counter_date != today:
            todays_commits = 0
        return cls(
            id=doc["id"],
            user_id=doc["userId"],
            username=doc.get("username"),
            name=doc.get("name"),
            avatar_url=doc.get("avatarUrl"),
            points=max(0, _int_or(doc.get("points"), 0)),
            todays_commits=todays_commits,
            todays_commits_date=counter_date,
            daily_goal=_int_or(doc.get("dailyGoal"), DEFAULT_DAILY_GOAL),
            push_token=doc.get("pushToken"),
            welcome_sent=bool(doc.get("welcomeSent", False)),
            last_commit_at=doc.get("lastCommitAt"),
            created_at=doc.get("createdAt"),
            updated_at=doc.get("updatedAt"),
        )

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class ProfileChange(BaseModel):
    """Fields delivered to a real-time subscriber for one change event."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str | None = None
    user_id: str
    username: str | None = None
    name: str | None = None
    avatar_url: str | None = None
    points: int | None = None
    todays_commits: int | None = None
    daily_goal: int | None = None
    last_commit_at: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> ProfileChange:
        # Payloads may be partial; absent fields stay None
        fields = {k: payload[k] for k in _CHANGE_FIELDS if k in payload}
        return cls.model_validate(fields)


_CHANGE_FIELDS = (
    "id",
    "userId",
    "username",
    "name",
    "avatarUrl",
    "points",
    "todaysCommits",
    "dailyGoal",
    "lastCommitAt",
)


class CommitInfo(BaseModel):
    sha: str
    author: str
    message: str
    date: str | None = None
    url: str | None = None
