"""Composition root: builds one instance of each service and wires them together."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import aiosqlite

from commitly.auth.account import AccountClient
from commitly.auth.secure_storage import EncryptedFileStorage
from commitly.auth.session_store import AuthSessionStore
from commitly.config import settings
from commitly.services.background import BackgroundDispatcher
from commitly.services.change_feed import ChangeFeed
from commitly.services.commit_service import CommitService
from commitly.services.github_service import GitHubService
from commitly.services.inbox_service import InboxService
from commitly.services.inbox_store import get_inbox_store
from commitly.services.notification_service import NotificationService
from commitly.services.profile_service import ProfileService
from commitly.services.profile_store import ProfileStore, get_profile_store
from commitly.services.push_transport import ExpoPushTransport
from commitly.services.welcome_service import WelcomeNotifier

logger = logging.getLogger(__name__)


@dataclass
class CommitlyCore:
    feed: ChangeFeed
    background: BackgroundDispatcher
    store: ProfileStore
    welcome: WelcomeNotifier
    transport: ExpoPushTransport
    notifications: NotificationService
    profiles: ProfileService
    github: GitHubService
    commits: CommitService
    account: AccountClient
    auth: AuthSessionStore
    inbox: InboxService

    async def close(self) -> None:
        await self.background.close()
        self.feed.close()
        await self.transport.close()
        await self.welcome.close()
        await self.github.close()
        await self.account.close()


def build_core(
    db: aiosqlite.Connection | None = None,
    device_push_token: str | None = None,
) -> CommitlyCore:
    """Construct the service graph. Must run inside the event loop that will use it."""
    feed = ChangeFeed()
    background = BackgroundDispatcher()
    store = get_profile_store(feed, db)
    welcome = WelcomeNotifier()
    transport = ExpoPushTransport(
        device_push_token if device_push_token is not None else settings.device_push_token
    )
    notifications = NotificationService(transport)
    profiles = ProfileService(store, welcome, background, notifications=notifications)
    github = GitHubService()
    account = AccountClient()
    core = CommitlyCore(
        feed=feed,
        background=background,
        store=store,
        welcome=welcome,
        transport=transport,
        notifications=notifications,
        profiles=profiles,
        github=github,
        commits=CommitService(profiles, github),
        account=account,
        auth=AuthSessionStore(EncryptedFileStorage(), account),
        inbox=InboxService(get_inbox_store(db)),
    )
    logger.info("Core built (store=%s)", settings.profile_store_backend)
    return core
