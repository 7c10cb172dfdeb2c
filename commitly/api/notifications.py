"""In-app notification inbox routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from commitly.api.profiles import _json_body, _str_field, _validation_error
from commitly.models.inbox import INBOX_TYPES
from commitly.services.inbox_service import DEFAULT_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])

MAX_LIMIT = 100


@router.get("/{user_id}")
async def list_notifications(user_id: str, request: Request, limit: int = DEFAULT_LIMIT):
    if not 1 <= limit <= MAX_LIMIT:
        raise _validation_error(f"limit must be between 1 and {MAX_LIMIT}")
    items = await request.app.state.core.inbox.get_user_notifications(user_id, limit=limit)
    return {"items": [n.to_document() for n in items], "total": len(items)}


@router.get("/{user_id}/unread-count")
async def unread_count(user_id: str, request: Request):
    return {"count": await request.app.state.core.inbox.get_unread_notification_count(user_id)}


@router.post("/{user_id}")
async def create_notification(user_id: str, request: Request):
    body = await _json_body(request)
    kind = body.get("type", "info")
    if kind not in INBOX_TYPES:
        raise _validation_error(f"type must be one of {', '.join(INBOX_TYPES)}")
    data = body.get("data")
    if data is not None and not isinstance(data, dict):
        raise _validation_error("data must be an object")
    created = await request.app.state.core.inbox.create_notification(
        user_id, _str_field(body, "title"), _str_field(body, "message"), kind, data
    )
    return {"notification": created.to_document() if created else None}


@router.post("/{user_id}/read-all")
async def mark_all_read(user_id: str, request: Request):
    return {"ok": await request.app.state.core.inbox.mark_all_notifications_as_read(user_id)}


@router.post("/by-id/{notification_id}/read")
async def mark_read(notification_id: str, request: Request):
    return {"ok": await request.app.state.core.inbox.mark_notification_as_read(notification_id)}
