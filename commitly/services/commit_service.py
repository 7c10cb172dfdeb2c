"""Commit-to-points reconciliation: turns newly observed GitHub commits into point awards."""

from __future__ import annotations

import logging

from commitly.config import settings
from commitly.models.profile import CommitInfo
from commitly.services.errors import GitHubDataError
from commitly.services.github_service import GitHubService
from commitly.services.profile_service import ProfileService

logger = logging.getLogger(__name__)


class CommitService:
    def __init__(self, profiles: ProfileService, github: GitHubService, commit_points: int | None = None):
        self._profiles = profiles
        self._github = github
        self.commit_points = commit_points if commit_points is not None else settings.commit_points

    async def check_and_award_commits(
        self, user_id: str, github_login: str, last_known_commit_id: str | None = None
    ) -> list[CommitInfo]:
        """Award points for commits in the user's recent push events.

        Events are walked newest first. Meeting ``last_known_commit_id`` stops
        only the current event's commit loop; later events in the feed are
        still scanned. Returns the commits that were awarded, or ``[]`` when the
        feed cannot be fetched.
        """
        try:
            push_events = self._github.get_push_events(github_login)
        except GitHubDataError as e:
            logger.warning("Failed to fetch GitHub events for %s: %s", github_login, e)
            return []

        awarded: list[CommitInfo] = []
        for event in push_events:
            payload = event.get("payload") or {}
            for commit in payload.get("commits") or []:
                sha = commit.get("sha")
                if last_known_commit_id and sha == last_known_commit_id:
                    break

                info = CommitInfo(
                    sha=sha or "",
                    author=(commit.get("author") or {}).get("name") or github_login,
                    message=commit.get("message") or "",
                    date=event.get("created_at"),
                    url=commit.get("url"),
                )
                profile = await self._profiles.add_points(
                    user_id, self.commit_points, last_commit_at=event.get("created_at")
                )
                if profile is not None:
                    awarded.append(info)
                    logger.info(
                        "Awarded %d points for commit %s: %s",
                        self.commit_points, info.sha[:7], info.message[:50],
                    )

        return awarded

    async def award_points_for_contribution_increase(
        self, user_id: str, previous_total: int, current_total: int
    ) -> bool:
        """Award one flat bundle when the contribution total grew.

        The bundle is ``commit_points`` regardless of how many contributions
        were added.
        """
        new_contributions = current_total - previous_total
        if new_contributions <= 0:
            return False

        profile = await self._profiles.add_points(user_id, self.commit_points)
        if profile is None:
            logger.error("Failed to award points for contributions to %s", user_id)
            return False
        logger.info(
            "Awarded points for %d new contributions (scaled figure %d)",
            new_contributions, new_contributions * self.commit_points,
        )
        return True
