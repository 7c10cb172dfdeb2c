"""Notification content and trigger types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union

PRIORITIES = ("low", "normal", "high")


@dataclass
class NotificationContent:
    title: str
    body: str
    data: dict = field(default_factory=dict)
    sound: bool = True
    priority: str = "normal"
    channel_id: str = "default"

    def to_message(self, to: str) -> dict:
        """Build an Expo push message addressed to a device token."""
        message = {
            "to": to,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "priority": "high" if self.priority == "high" else "default",
            "channelId": self.channel_id,
        }
        if self.sound:
            message["sound"] = "default"
        return message


@dataclass
class DateTrigger:
    """Fire once at a wall-clock time."""

    at: datetime


@dataclass
class DailyTrigger:
    """Fire every day at hour:minute (local wall clock)."""

    hour: int
    minute: int = 0

    def __post_init__(self):
        if not 0 <= self.hour <= 23 or not 0 <= self.minute <= 59:
            raise ValueError(f"Invalid daily trigger time {self.hour:02d}:{self.minute:02d}")


NotificationTrigger = Union[DateTrigger, DailyTrigger]


@dataclass
class NotificationChannel:
    id: str
    name: str
    description: str
    importance: str = "default"


@dataclass
class ReceivedNotification:
    identifier: str
    content: NotificationContent


@dataclass
class NotificationResponse:
    """A user interaction (tap) with a delivered notification."""

    identifier: str
    action: str = "default"
    data: dict = field(default_factory=dict)
