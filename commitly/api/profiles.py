"""Profile API routes — points, goal, username, push token, commit reconciliation."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from commitly.core import CommitlyCore
from commitly.services.errors import GoalOutOfRangeError, ProfileNotFoundError
from commitly.services.realtime import subscribe_to_profile_updates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/profiles", tags=["profiles"])

# Bodies are JSON numbers; keep them well inside SQLite's 64-bit INTEGER
MAX_INT_FIELD = 2**31 - 1


def _core(request: Request) -> CommitlyCore:
    return request.app.state.core


def _validation_error(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail={"error": {"code": "VALIDATION_ERROR", "message": message}})


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        raise _validation_error("Request body must be JSON")
    if not isinstance(body, dict):
        raise _validation_error("Request body must be a JSON object")
    return body


def _int_field(body: dict, name: str) -> int:
    value = body.get(name)
    if not isinstance(value, int) or isinstance(value, bool):
        raise _validation_error(f"{name} must be an integer")
    if abs(value) > MAX_INT_FIELD:
        raise _validation_error(f"{name} must be between -{MAX_INT_FIELD} and {MAX_INT_FIELD}")
    return value


def _timestamp_field(body: dict, name: str) -> str | None:
    """Optional ISO-8601 timestamp; a trailing Z is accepted for UTC."""
    value = body.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise _validation_error(f"{name} must be an ISO-8601 timestamp")
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise _validation_error(f"{name} must be an ISO-8601 timestamp")
    return value


def _str_field(body: dict, name: str) -> str:
    value = body.get(name)
    if not isinstance(value, str) or not value:
        raise _validation_error(f"{name} is required")
    return value


def _profile_response(profile) -> dict:
    return {"profile": profile.to_document() if profile else None}


@router.get("/{user_id}")
async def get_profile(user_id: str, request: Request):
    """Get-or-create the user's profile. Query params seed a newly created profile."""
    seed = {
        k: v for k, v in (
            ("username", request.query_params.get("username")),
            ("name", request.query_params.get("name")),
            ("avatarUrl", request.query_params.get("avatar_url")),
        ) if v
    }
    profile = await _core(request).profiles.get_or_create_profile(user_id, seed or None)
    return _profile_response(profile)


@router.get("/{user_id}/points")
async def get_points(user_id: str, request: Request):
    return {"points": await _core(request).profiles.get_points(user_id)}


@router.post("/{user_id}/points")
async def add_points(user_id: str, request: Request):
    body = await _json_body(request)
    delta = _int_field(body, "delta")
    profile = await _core(request).profiles.add_points(
        user_id, delta, last_commit_at=_timestamp_field(body, "last_commit_at")
    )
    return _profile_response(profile)


@router.put("/{user_id}/goal")
async def update_goal(user_id: str, request: Request):
    body = await _json_body(request)
    goal = _int_field(body, "daily_goal")
    try:
        profile = await _core(request).profiles.update_daily_goal(user_id, goal)
    except GoalOutOfRangeError as e:
        raise HTTPException(status_code=422, detail={"error": {"code": "GOAL_OUT_OF_RANGE", "message": str(e)}})
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail={"error": {"code": "PROFILE_NOT_FOUND", "message": str(e)}})
    return _profile_response(profile)


@router.put("/{user_id}/username")
async def link_username(user_id: str, request: Request):
    body = await _json_body(request)
    profile = await _core(request).profiles.update_profile_with_github_username(
        user_id, _str_field(body, "username")
    )
    return _profile_response(profile)


@router.put("/{user_id}/push-token")
async def update_push_token(user_id: str, request: Request):
    body = await _json_body(request)
    profile = await _core(request).profiles.update_push_token(user_id, _str_field(body, "push_token"))
    return _profile_response(profile)


@router.put("/{user_id}/todays-commits")
async def record_todays_commits(user_id: str, request: Request):
    body = await _json_body(request)
    count = _int_field(body, "count")
    if count < 0:
        raise _validation_error("count must be non-negative")
    profile = await _core(request).profiles.record_todays_commits(user_id, count)
    return _profile_response(profile)


@router.post("/{user_id}/commits/check")
async def check_commits(user_id: str, request: Request):
    body = await _json_body(request)
    commits = await _core(request).commits.check_and_award_commits(
        user_id, _str_field(body, "github_login"), body.get("last_known_commit_id")
    )
    return {"items": [c.model_dump() for c in commits], "total": len(commits)}


@router.post("/{user_id}/contributions")
async def contribution_increase(user_id: str, request: Request):
    body = await _json_body(request)
    awarded = await _core(request).commits.award_points_for_contribution_increase(
        user_id, _int_field(body, "previous_total"), _int_field(body, "current_total")
    )
    return {"ok": awarded}


@router.get("/{user_id}/events")
async def profile_events(user_id: str, request: Request):
    """Server-sent events stream of this user's profile changes."""
    core = _core(request)
    queue: asyncio.Queue[str] = asyncio.Queue()

    def on_change(change) -> None:
        queue.put_nowait(json.dumps(change.model_dump(by_alias=True, exclude_none=True)))

    unsubscribe = subscribe_to_profile_updates(core.feed, user_id, on_change)

    async def stream():
        try:
            while True:
                data = await queue.get()
                yield f"event: profile\ndata: {data}\n\n"
        finally:
            unsubscribe()
            logger.debug("Profile event stream closed for %s", user_id)

    return StreamingResponse(stream(), media_type="text/event-stream")
