"""GitHub data routes — repos with languages, contribution calendar, streak stats."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, HTTPException, Request

from commitly.services.errors import GitHubDataError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/github", tags=["github"])


def _upstream_error(e: GitHubDataError) -> HTTPException:
    return HTTPException(status_code=502, detail={"error": {"code": "GITHUB_ERROR", "message": str(e)}})


@router.get("/users/by-id/{provider_uid}")
async def resolve_login(provider_uid: str, request: Request):
    login = request.app.state.core.github.get_login_for_provider_id(provider_uid)
    if not login:
        raise HTTPException(status_code=404, detail={"error": {"code": "GITHUB_USER_NOT_FOUND", "message": "Cannot resolve GitHub username"}})
    return {"login": login}


@router.get("/users/{login}/repos")
async def list_repos(login: str, request: Request, limit: int = 20):
    try:
        repos = request.app.state.core.github.list_repos_with_languages(login, limit=limit)
    except GitHubDataError as e:
        logger.warning("Repo listing failed: %s", e)
        return {"items": [], "total": 0}
    return {"items": repos, "total": len(repos)}


@router.get("/users/{login}/contributions")
async def contributions(login: str, request: Request, days: int = 365):
    to_date = datetime.now(timezone.utc)
    from_date = to_date - timedelta(days=days)
    try:
        calendar = await request.app.state.core.github.get_contribution_calendar(login, from_date, to_date)
    except GitHubDataError as e:
        raise _upstream_error(e)
    return calendar


@router.get("/users/{login}/streak")
async def streak(login: str, request: Request):
    try:
        return await request.app.state.core.github.get_streak(login)
    except GitHubDataError as e:
        raise _upstream_error(e)
