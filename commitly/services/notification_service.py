"""Notification dispatch: push registration, local scheduling and achievement templates."""

from __future__ import annotations

import enum
import logging
from typing import Callable

import httpx
from jinja2.sandbox import SandboxedEnvironment

from commitly.models.notification import (
    DailyTrigger,
    NotificationChannel,
    NotificationContent,
    NotificationResponse,
    NotificationTrigger,
    ReceivedNotification,
)
from commitly.services.errors import NotificationError
from commitly.services.push_transport import GRANTED, NotificationTransport

logger = logging.getLogger(__name__)

_jinja_env = SandboxedEnvironment(autoescape=False)

CHANNELS = (
    NotificationChannel(
        id="default",
        name="Commitly Notifications",
        description="Notifications for commit goals and achievements",
        importance="high",
    ),
    NotificationChannel(
        id="goals",
        name="Daily Goals",
        description="Notifications about your daily commit goals",
        importance="default",
    ),
    NotificationChannel(
        id="achievements",
        name="Achievements",
        description="Celebrations for reaching milestones",
        importance="high",
    ),
)

ACHIEVEMENT_TEMPLATES = {
    "goal-reached": (
        "🎉 Daily Goal Achieved!",
        "Amazing! You've reached your daily commit goal. Keep it up!",
    ),
    "streak-milestone": (
        "🔥 Streak Milestone!",
        "Incredible! You've maintained your commit streak for {{ days or 'multiple' }} days!",
    ),
    "points-milestone": (
        "⚡ Points Milestone!",
        "Fantastic! You've earned {{ points or 'a lot of' }} points!",
    ),
}

DAILY_REMINDER = NotificationContent(
    title="🎯 Daily Goal Check!",
    body="How are your commits looking today? Keep your streak strong!",
    data={"type": "daily-reminder"},
    channel_id="goals",
)


class RegistrationState(enum.Enum):
    UNREGISTERED = "unregistered"
    PERMISSION_REQUESTED = "permission_requested"
    GRANTED = "granted"
    DENIED = "denied"
    TOKEN_OBTAINED = "token_obtained"


class NotificationService:
    """One instance per process, held by the composition root."""

    def __init__(self, transport: NotificationTransport):
        self._transport = transport
        self._push_token: str | None = None
        self.state = RegistrationState.UNREGISTERED

    @property
    def push_token(self) -> str | None:
        return self._push_token

    async def register_for_push_notifications(self) -> str | None:
        """Check/request permission and obtain a push token.

        Returns None on a non-device, a denied permission (terminal for this
        process) or a token failure.
        """
        if not self._transport.is_device:
            logger.warning("Push notifications only work on physical devices")
            return None
        if self.state is RegistrationState.DENIED:
            return None

        status = await self._transport.get_permission_status()
        if status != GRANTED:
            self.state = RegistrationState.PERMISSION_REQUESTED
            status = await self._transport.request_permission()
        if status != GRANTED:
            self.state = RegistrationState.DENIED
            logger.warning("Push notification permissions not granted")
            return None
        self.state = RegistrationState.GRANTED

        try:
            token = await self._transport.get_push_token()
        except NotificationError as e:
            logger.error("Error getting push token: %s", e)
            return None

        self._push_token = token
        self.state = RegistrationState.TOKEN_OBTAINED
        logger.info("Push token obtained")
        await self._setup_channels()
        return token

    async def _setup_channels(self) -> None:
        for channel in CHANNELS:
            await self._transport.set_channel(channel)

    async def schedule_local_notification(
        self, content: NotificationContent, trigger: NotificationTrigger | None = None
    ) -> str | None:
        """Schedule immediately (no trigger) or at a date/daily trigger. None on failure."""
        try:
            identifier = await self._transport.schedule(content, trigger)
        except (NotificationError, httpx.HTTPError) as e:
            logger.error("Error scheduling local notification: %s", e)
            return None
        logger.info("Local notification scheduled: %s", identifier)
        return identifier

    async def schedule_daily_goal_reminder(self, hour: int = 20, minute: int = 0) -> str | None:
        return await self.schedule_local_notification(DAILY_REMINDER, DailyTrigger(hour, minute))

    async def send_achievement_notification(self, kind: str, data: dict | None = None) -> str | None:
        template = ACHIEVEMENT_TEMPLATES.get(kind)
        if template is None:
            logger.warning("Unknown achievement kind: %s", kind)
            return None
        data = data or {}
        title, body = template
        content = NotificationContent(
            title=title,
            body=_jinja_env.from_string(body).render(**data),
            data={"type": "achievement", "subtype": kind, **data},
            priority="high",
            channel_id="achievements",
        )
        return await self.schedule_local_notification(content)

    async def cancel_notification(self, identifier: str) -> None:
        await self._transport.cancel(identifier)
        logger.info("Notification cancelled: %s", identifier)

    async def cancel_all_notifications(self) -> None:
        await self._transport.cancel_all()
        logger.info("All notifications cancelled")

    def add_notification_listeners(
        self,
        on_received: Callable[[ReceivedNotification], None] | None = None,
        on_response: Callable[[NotificationResponse], None] | None = None,
    ) -> Callable[[], None]:
        """Register foreground/tap listeners. Returns one teardown removing both."""

        def received(notification: ReceivedNotification) -> None:
            logger.debug("Notification received: %s", notification.identifier)
            if on_received:
                on_received(notification)

        def responded(response: NotificationResponse) -> None:
            logger.debug("Notification response: %s", response.identifier)
            if on_response:
                on_response(response)

        remove_received = self._transport.add_received_listener(received)
        remove_response = self._transport.add_response_listener(responded)

        def teardown() -> None:
            remove_received()
            remove_response()

        return teardown

    # ── Templates ──

    async def goal_achieved(self, commits: int) -> str | None:
        return await self.send_achievement_notification("goal-reached", {"commits": commits})

    async def streak_milestone(self, days: int) -> str | None:
        return await self.send_achievement_notification("streak-milestone", {"days": days})

    async def points_milestone(self, points: int) -> str | None:
        return await self.send_achievement_notification("points-milestone", {"points": points})

    async def weekly_review(self, commits: int, points: int) -> str | None:
        return await self.schedule_local_notification(
            NotificationContent(
                title="📊 Weekly Review",
                body=f"This week: {commits} commits, {points} points earned! 🎉",
                data={"type": "weekly-review", "commits": commits, "points": points},
            )
        )
