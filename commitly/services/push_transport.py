"""Notification transport — Expo push API delivery with asyncio-scheduled triggers."""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Protocol, runtime_checkable

import httpx

from commitly.config import settings
from commitly.models.notification import (
    DailyTrigger,
    DateTrigger,
    NotificationChannel,
    NotificationContent,
    NotificationResponse,
    NotificationTrigger,
    ReceivedNotification,
)
from commitly.services.errors import NotificationError

logger = logging.getLogger(__name__)

GRANTED = "granted"
DENIED = "denied"
UNDETERMINED = "undetermined"


@runtime_checkable
class NotificationTransport(Protocol):
    """Platform notification capabilities consumed by NotificationService."""

    is_device: bool

    async def get_permission_status(self) -> str: ...

    async def request_permission(self) -> str: ...

    async def get_push_token(self) -> str: ...

    async def set_channel(self, channel: NotificationChannel) -> None: ...

    async def schedule(
        self, content: NotificationContent, trigger: NotificationTrigger | None
    ) -> str: ...

    async def cancel(self, identifier: str) -> None: ...

    async def cancel_all(self) -> None: ...

    def add_received_listener(
        self, callback: Callable[[ReceivedNotification], None]
    ) -> Callable[[], None]: ...

    def add_response_listener(
        self, callback: Callable[[NotificationResponse], None]
    ) -> Callable[[], None]: ...


def next_daily_occurrence(hour: int, minute: int, now: datetime | None = None) -> datetime:
    """Next wall-clock time at hour:minute strictly after ``now``."""
    now = now or datetime.now()
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


class ExpoPushTransport:
    """Delivers notifications through the Expo push HTTP API.

    A configured push token stands in for the platform-issued device token;
    without one the transport behaves like a simulator (``is_device`` False).
    Date and daily triggers run as asyncio tasks in this process.
    """

    def __init__(
        self,
        push_token: str | None,
        access_token: str | None = None,
        push_url: str | None = None,
        http: httpx.AsyncClient | None = None,
    ):
        self._push_token = push_token
        self._access_token = access_token if access_token is not None else settings.expo_access_token
        self._push_url = push_url or settings.expo_push_url
        self._http = http or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self._permission = UNDETERMINED
        self._channels: dict[str, NotificationChannel] = {}
        self._scheduled: dict[str, asyncio.Task] = {}
        self._received: dict[int, Callable[[ReceivedNotification], None]] = {}
        self._responses: dict[int, Callable[[NotificationResponse], None]] = {}
        self._listener_ids = 0

    @property
    def is_device(self) -> bool:
        return bool(self._push_token)

    @property
    def channels(self) -> dict[str, NotificationChannel]:
        return dict(self._channels)

    async def get_permission_status(self) -> str:
        return self._permission

    async def request_permission(self) -> str:
        self._permission = GRANTED if self.is_device else DENIED
        return self._permission

    async def get_push_token(self) -> str:
        if not self._push_token:
            raise NotificationError("No push token available on this device")
        return self._push_token

    async def set_channel(self, channel: NotificationChannel) -> None:
        self._channels[channel.id] = channel

    async def schedule(
        self, content: NotificationContent, trigger: NotificationTrigger | None
    ) -> str:
        identifier = uuid.uuid4().hex
        if trigger is None:
            await self._deliver(identifier, content)
            return identifier
        if isinstance(trigger, DateTrigger):
            runner = self._run_at(identifier, content, trigger)
        elif isinstance(trigger, DailyTrigger):
            runner = self._run_daily(identifier, content, trigger)
        else:
            raise NotificationError(f"Unsupported trigger: {trigger!r}")
        task = asyncio.get_running_loop().create_task(runner, name=f"notification:{identifier}")
        self._scheduled[identifier] = task
        task.add_done_callback(lambda _t: self._scheduled.pop(identifier, None))
        return identifier

    async def cancel(self, identifier: str) -> None:
        task = self._scheduled.pop(identifier, None)
        if task is not None:
            task.cancel()

    async def cancel_all(self) -> None:
        for identifier in list(self._scheduled):
            await self.cancel(identifier)

    @property
    def scheduled_ids(self) -> list[str]:
        return list(self._scheduled)

    def add_received_listener(
        self, callback: Callable[[ReceivedNotification], None]
    ) -> Callable[[], None]:
        return self._add_listener(self._received, callback)

    def add_response_listener(
        self, callback: Callable[[NotificationResponse], None]
    ) -> Callable[[], None]:
        return self._add_listener(self._responses, callback)

    def handle_response(self, response: NotificationResponse) -> None:
        """Feed a user interaction (e.g. relayed from the device) to response listeners."""
        for callback in list(self._responses.values()):
            callback(response)

    def _add_listener(self, registry: dict, callback) -> Callable[[], None]:
        self._listener_ids += 1
        listener_id = self._listener_ids
        registry[listener_id] = callback
        return lambda: registry.pop(listener_id, None)

    async def _run_at(self, identifier: str, content: NotificationContent, trigger: DateTrigger):
        delay = (trigger.at - datetime.now(trigger.at.tzinfo)).total_seconds()
        await asyncio.sleep(max(0.0, delay))
        await self._deliver_logged(identifier, content)

    async def _run_daily(self, identifier: str, content: NotificationContent, trigger: DailyTrigger):
        while True:
            fire_at = next_daily_occurrence(trigger.hour, trigger.minute)
            await asyncio.sleep((fire_at - datetime.now()).total_seconds())
            await self._deliver_logged(identifier, content)

    async def _deliver_logged(self, identifier: str, content: NotificationContent) -> None:
        try:
            await self._deliver(identifier, content)
        except NotificationError as e:
            logger.error("Scheduled notification %s failed: %s", identifier, e)

    async def _deliver(self, identifier: str, content: NotificationContent) -> None:
        if not self._push_token:
            raise NotificationError("No push token available on this device")

        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"

        try:
            resp = await self._http.post(
                self._push_url, json=[content.to_message(self._push_token)], headers=headers
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Expo push API error: %s %s", e.response.status_code, e.response.text[:200])
            raise NotificationError(f"Expo push API error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error("Expo push request failed: %s", e)
            raise NotificationError(f"Expo push request failed: {e}") from e

        try:
            body = resp.json()
        except ValueError as e:
            logger.error("Expo push API returned non-JSON body: %s", resp.text[:200])
            raise NotificationError("Expo push API returned an unreadable response") from e
        if not isinstance(body, dict):
            raise NotificationError("Expo push API returned an unexpected response shape")
        tickets = body.get("data") or []
        if isinstance(tickets, dict):
            tickets = [tickets]
        if not isinstance(tickets, list) or not all(isinstance(t, dict) for t in tickets):
            raise NotificationError("Expo push API returned malformed tickets")
        if tickets and tickets[0].get("status") == "error":
            raise NotificationError(tickets[0].get("message") or "Expo rejected the notification")

        received = ReceivedNotification(identifier=identifier, content=content)
        for callback in list(self._received.values()):
            callback(received)

    async def close(self):
        await self.cancel_all()
        await self._http.aclose()
