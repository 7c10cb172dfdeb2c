from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

INBOX_TYPES = ("info", "success", "warning", "error")

InboxType = Literal["info", "success", "warning", "error"]


class InboxNotification(BaseModel):
    """One entry in a user's in-app notification inbox."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    user_id: str
    title: str
    message: str
    type: InboxType = "info"
    read: bool = False
    data: dict = Field(default_factory=dict)
    created_at: str | None = None

    @classmethod
    def from_document(cls, doc: dict) -> InboxNotification:
        return cls(
            id=doc["id"],
            user_id=doc["userId"],
            title=doc["title"],
            message=doc["message"],
            type=doc.get("type") or "info",
            read=bool(doc.get("read", False)),
            data=doc.get("data") or {},
            created_at=doc.get("createdAt"),
        )

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)
