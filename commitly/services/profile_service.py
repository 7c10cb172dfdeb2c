"""Profile synchronization: get-or-create, points awards, goal/username/push-token updates.

Store write failures are caught at each operation boundary, logged and
surfaced as ``None``. Only validation errors propagate to the caller.
"""

from __future__ import annotations

import logging

from commitly.models.profile import (
    DEFAULT_DAILY_GOAL,
    MAX_DAILY_GOAL,
    MIN_DAILY_GOAL,
    Profile,
    utc_today,
)
from commitly.services.background import BackgroundDispatcher
from commitly.services.errors import (
    DuplicateProfileError,
    GoalOutOfRangeError,
    ProfileNotFoundError,
    StoreError,
)
from commitly.services.notification_service import NotificationService
from commitly.services.profile_store import ProfileStore, owner_permissions
from commitly.services.welcome_service import WelcomeNotifier

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(
        self,
        store: ProfileStore,
        welcome: WelcomeNotifier,
        background: BackgroundDispatcher,
        notifications: NotificationService | None = None,
    ):
        self.store = store
        self._welcome = welcome
        self._background = background
        self._notifications = notifications

    async def _find(self, user_id: str) -> dict | None:
        """Lookup by userId; a failed read means the profile does not exist yet."""
        try:
            return await self.store.find_by_user_id(user_id)
        except StoreError as e:
            logger.warning("Profile lookup failed for %s, treating as absent: %s", user_id, e)
            return None

    async def _create(self, user_id: str, seed: dict | None) -> dict:
        payload = {
            "points": 0,
            "todaysCommits": 0,
            "dailyGoal": DEFAULT_DAILY_GOAL,
            "lastCommitAt": None,
            **(seed or {}),
            "userId": user_id,
            "welcomeSent": True,
        }
        doc = await self.store.create(payload, owner_permissions(user_id))
        logger.info("Created profile %s for user %s", doc["id"], user_id)
        self._dispatch_welcome(user_id, doc.get("username") or doc.get("name"), doc.get("pushToken"))
        return doc

    def _dispatch_welcome(self, user_id: str, username: str | None, push_token: str | None) -> None:
        self._background.dispatch(
            self._welcome.send_welcome(user_id, username, push_token),
            name=f"welcome:{user_id}",
        )

    async def get_or_create_profile(self, user_id: str, seed: dict | None = None) -> Profile | None:
        existing = await self._find(user_id)
        if existing:
            return Profile.from_document(existing)

        try:
            doc = await self._create(user_id, seed)
        except DuplicateProfileError:
            # Lost a concurrent first-access race; the winner's document is canonical
            doc = await self._find(user_id)
            if doc is None:
                logger.error("Profile for %s reported duplicate but cannot be read", user_id)
                return None
        except StoreError as e:
            logger.error("Failed to create profile for %s: %s", user_id, e)
            return None
        return Profile.from_document(doc)

    async def add_points(
        self, user_id: str, delta: int, last_commit_at: str | None = None
    ) -> Profile | None:
        """Apply a signed points delta, floored at zero.

        An absent profile is created with ``max(0, delta)`` points; that path
        does not record ``last_commit_at``. A ``last_commit_at`` that is not a
        string is rejected without a write.
        """
        if last_commit_at is not None and not isinstance(last_commit_at, str):
            logger.error("Rejected non-string last_commit_at for %s: %r", user_id, last_commit_at)
            return None
        existing = await self._find(user_id)
        try:
            if existing is None:
                try:
                    doc = await self._create(user_id, {"points": max(0, delta)})
                    return Profile.from_document(doc)
                except DuplicateProfileError:
                    existing = await self._find(user_id)
                    if existing is None:
                        raise StoreError(f"Profile for {user_id} unreadable after duplicate create")
            doc = await self.store.increment_points(existing["id"], delta, last_commit_at)
        except StoreError as e:
            logger.error("Failed to add %d points for %s: %s", delta, user_id, e)
            return None
        return Profile.from_document(doc)

    async def get_points(self, user_id: str) -> int:
        existing = await self._find(user_id)
        if existing is None:
            return 0
        return Profile.from_document(existing).points

    async def update_daily_goal(self, user_id: str, new_goal: int) -> Profile | None:
        """Set the daily goal.

        Raises:
            GoalOutOfRangeError: If the goal is outside [1, 50]; nothing is written.
            ProfileNotFoundError: If the user has no profile.
        """
        if not MIN_DAILY_GOAL <= new_goal <= MAX_DAILY_GOAL:
            raise GoalOutOfRangeError(new_goal, MIN_DAILY_GOAL, MAX_DAILY_GOAL)

        existing = await self._find(user_id)
        if existing is None:
            raise ProfileNotFoundError(user_id)
        return await self._update(existing, {"dailyGoal": new_goal}, "daily goal")

    async def update_profile_with_github_username(self, user_id: str, login: str) -> Profile | None:
        existing = await self._find(user_id)
        if existing is None:
            logger.warning("No profile for %s; skipping username link", user_id)
            return None
        return await self._update(existing, {"username": login}, "username")

    async def update_display_metadata(
        self, user_id: str, name: str | None = None, avatar_url: str | None = None
    ) -> Profile | None:
        fields = {}
        if name is not None:
            fields["name"] = name
        if avatar_url is not None:
            fields["avatarUrl"] = avatar_url
        existing = await self._find(user_id)
        if existing is None:
            return None
        if not fields:
            return Profile.from_document(existing)
        return await self._update(existing, fields, "display metadata")

    async def update_push_token(self, user_id: str, token: str) -> Profile | None:
        """Store the device push token.

        The first token registration sends the welcome notification, unless
        one was already sent when the profile was created.
        """
        existing = await self._find(user_id)
        if existing is None:
            logger.warning("No profile for %s; skipping push token update", user_id)
            return None

        fields: dict = {"pushToken": token}
        first_token = not existing.get("pushToken") and not existing.get("welcomeSent")
        if first_token:
            fields["welcomeSent"] = True
        updated = await self._update(existing, fields, "push token")
        # Welcome only after welcomeSent is stored
        if updated is not None and first_token:
            display_name = existing.get("username") or existing.get("name") or "there"
            self._dispatch_welcome(user_id, display_name, token)
        return updated

    async def record_todays_commits(self, user_id: str, count: int) -> Profile | None:
        """Write today's commit counter (UTC day).

        A counter stored for an earlier day reads as 0, so the first write of
        a new day replaces it. Crossing the daily goal fires a celebration.
        """
        if count < 0:
            raise ValueError(f"Commit count must be non-negative, got {count}")
        existing = await self._find(user_id)
        if existing is None:
            return None

        before = Profile.from_document(existing)
        updated = await self._update(
            existing, {"todaysCommits": count, "todaysCommitsDate": utc_today()}, "today's commits"
        )
        if (
            updated is not None
            and self._notifications is not None
            and before.todays_commits < updated.daily_goal <= count
        ):
            self._background.dispatch(
                self._notifications.goal_achieved(count), name=f"goal-reached:{user_id}"
            )
        return updated

    async def _update(self, existing: dict, fields: dict, what: str) -> Profile | None:
        try:
            doc = await self.store.update(existing["id"], fields)
        except StoreError as e:
            logger.error("Failed to update %s for %s: %s", what, existing.get("userId"), e)
            return None
        return Profile.from_document(doc)
