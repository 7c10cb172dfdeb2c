"""Per-user in-app notification inbox.

Store failures are logged and surface as empty results, ``False`` or ``None``.
"""

from __future__ import annotations

import logging

from commitly.models.inbox import INBOX_TYPES, InboxNotification
from commitly.services.errors import StoreError
from commitly.services.inbox_store import InboxStore
from commitly.services.profile_store import owner_permissions

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50


class InboxService:
    def __init__(self, store: InboxStore):
        self.store = store

    async def get_user_notifications(
        self, user_id: str, limit: int = DEFAULT_LIMIT
    ) -> list[InboxNotification]:
        """Newest first, at most ``limit`` entries."""
        try:
            docs = await self.store.list_for_user(user_id, limit)
        except StoreError as e:
            logger.error("Failed to fetch notifications for %s: %s", user_id, e)
            return []
        return [InboxNotification.from_document(d) for d in docs]

    async def mark_notification_as_read(self, notification_id: str) -> bool:
        try:
            await self.store.mark_read(notification_id)
        except StoreError as e:
            logger.error("Failed to mark notification %s as read: %s", notification_id, e)
            return False
        logger.info("Marked notification %s as read", notification_id)
        return True

    async def mark_all_notifications_as_read(self, user_id: str) -> bool:
        try:
            changed = await self.store.mark_all_read(user_id)
        except StoreError as e:
            logger.error("Failed to mark all notifications as read for %s: %s", user_id, e)
            return False
        logger.info("Marked %d notifications as read for %s", changed, user_id)
        return True

    async def create_notification(
        self,
        user_id: str,
        title: str,
        message: str,
        type: str = "info",
        data: dict | None = None,
    ) -> InboxNotification | None:
        """Add an unread entry owned by ``user_id``.

        Raises:
            ValueError: If ``type`` is not one of info, success, warning, error.
        """
        if type not in INBOX_TYPES:
            raise ValueError(f"Notification type must be one of {', '.join(INBOX_TYPES)}, got {type!r}")
        payload = {
            "userId": user_id,
            "title": title,
            "message": message,
            "type": type,
            "read": False,
            "data": data or {},
        }
        try:
            doc = await self.store.create(payload, owner_permissions(user_id))
        except StoreError as e:
            logger.error("Failed to create notification for %s: %s", user_id, e)
            return None
        logger.info("Created notification for user %s: %s", user_id, title)
        return InboxNotification.from_document(doc)

    async def get_unread_notification_count(self, user_id: str) -> int:
        try:
            return await self.store.count_unread(user_id)
        except StoreError as e:
            logger.error("Failed to count unread notifications for %s: %s", user_id, e)
            return 0
