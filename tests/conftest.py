"""Shared test fixtures for Commitly."""

from __future__ import annotations

import json

import aiosqlite
import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from commitly.db.database import run_migrations
from commitly.services.background import BackgroundDispatcher
from commitly.services.change_feed import ChangeFeed
from commitly.services.inbox_service import InboxService
from commitly.services.inbox_store import MemoryInboxStore, SQLiteInboxStore
from commitly.services.profile_service import ProfileService
from commitly.services.profile_store import MemoryProfileStore, SQLiteProfileStore
from commitly.services.welcome_service import WelcomeNotifier

USER_ID = "user-test-001"
OTHER_USER_ID = "user-test-002"
WELCOME_URL = "http://functions.test/welcome"


def _recording_transport(calls: list[dict], status: int = 200):
    """httpx mock transport that records JSON request bodies."""

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append({
            "url": str(request.url),
            "headers": dict(request.headers),
            "json": json.loads(request.content or b"null"),
        })
        return httpx.Response(status, json={"ok": status < 400})

    return httpx.MockTransport(handler)


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def feed():
    f = ChangeFeed()
    yield f
    f.close()


@pytest.fixture
def store(feed):
    return MemoryProfileStore(feed)


@pytest_asyncio.fixture
async def db():
    """In-memory SQLite database with the profiles schema."""
    conn = await aiosqlite.connect(":memory:")
    conn.row_factory = aiosqlite.Row
    await run_migrations(conn)
    yield conn
    await conn.close()


@pytest.fixture
def sqlite_store(db, feed):
    return SQLiteProfileStore(db, feed)


@pytest.fixture
def inbox_store():
    return MemoryInboxStore()


@pytest.fixture
def sqlite_inbox_store(db):
    return SQLiteInboxStore(db)


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def welcome_calls() -> list[dict]:
    return []


@pytest_asyncio.fixture
async def welcome(welcome_calls):
    notifier = WelcomeNotifier(
        function_url=WELCOME_URL,
        project_id="test-project",
        http=httpx.AsyncClient(transport=_recording_transport(welcome_calls)),
    )
    yield notifier
    await notifier.close()


@pytest_asyncio.fixture
async def background():
    dispatcher = BackgroundDispatcher()
    yield dispatcher
    await dispatcher.close()


@pytest.fixture
def profiles(store, welcome, background):
    return ProfileService(store, welcome, background)


@pytest.fixture
def inbox(inbox_store):
    return InboxService(inbox_store)


# ---------------------------------------------------------------------------
# App / client fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def app(store, welcome, background, feed, inbox):
    """FastAPI app with a memory-backed core injected (lifespan not run)."""
    from unittest.mock import MagicMock

    from commitly.core import CommitlyCore
    from commitly.main import app as fastapi_app
    from commitly.services.commit_service import CommitService
    from commitly.services.notification_service import NotificationService

    profile_service = ProfileService(store, welcome, background)
    github = MagicMock()
    core = CommitlyCore(
        feed=feed,
        background=background,
        store=store,
        welcome=welcome,
        transport=MagicMock(),
        notifications=NotificationService(MagicMock()),
        profiles=profile_service,
        github=github,
        commits=CommitService(profile_service, github, commit_points=25),
        account=MagicMock(),
        auth=MagicMock(),
        inbox=inbox,
    )
    original = getattr(fastapi_app.state, "core", None)
    fastapi_app.state.core = core
    yield fastapi_app
    fastapi_app.state.core = original


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
