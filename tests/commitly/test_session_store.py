"""Tests for the auth session store and its encrypted persistence."""

from __future__ import annotations

import json
import os
from unittest.mock import AsyncMock

import httpx
import pytest

from commitly.auth.account import AccountClient
from commitly.auth.secure_storage import EncryptedFileStorage, SecureStorage
from commitly.auth.session_store import STORAGE_KEY, AuthSessionStore
from commitly.models.auth import AuthTokens, AuthUser
from commitly.utils.crypto import decrypt, encrypt

SECRET = "test-secret-key"


@pytest.fixture
def storage(tmp_path):
    return EncryptedFileStorage(tmp_path / "secure.json", secret=SECRET)


@pytest.fixture
def account():
    return AsyncMock(spec=AccountClient)


def _tokens() -> AuthTokens:
    return AuthTokens(session_id="sess-123")


def _user() -> AuthUser:
    return AuthUser(id="user-1", name="Octo Cat", email="octo@example.com")


class TestHydrate:
    @pytest.mark.asyncio
    async def test_empty_storage_signed_out(self, storage):
        auth = AuthSessionStore(storage)
        assert auth.is_loading is True

        await auth.hydrate()

        assert auth.is_loading is False
        assert auth.is_authenticated is False
        assert auth.tokens is None

    @pytest.mark.asyncio
    async def test_restores_persisted_session(self, storage):
        await storage.set_item(STORAGE_KEY, json.dumps({
            "tokens": {"sessionId": "sess-9"},
            "user": {"id": "user-9", "name": "Nine", "avatarUrl": "https://a.test/9.png"},
        }))
        auth = AuthSessionStore(storage)

        await auth.hydrate()

        assert auth.is_authenticated is True
        assert auth.tokens.session_id == "sess-9"
        assert auth.user.id == "user-9"
        assert auth.user.avatar_url == "https://a.test/9.png"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["not json", json.dumps({"user": None}), json.dumps({"tokens": {}})])
    async def test_malformed_data_signed_out(self, storage, raw):
        await storage.set_item(STORAGE_KEY, raw)
        auth = AuthSessionStore(storage)

        await auth.hydrate()

        assert auth.is_loading is False
        assert auth.is_authenticated is False

    @pytest.mark.asyncio
    async def test_wrong_key_signed_out(self, tmp_path):
        path = tmp_path / "secure.json"
        await EncryptedFileStorage(path, secret="old-key").set_item(STORAGE_KEY, "{}")
        auth = AuthSessionStore(EncryptedFileStorage(path, secret=SECRET))

        await auth.hydrate()

        assert auth.is_loading is False
        assert auth.is_authenticated is False


class TestSetAuth:
    @pytest.mark.asyncio
    async def test_persists_and_restores(self, storage):
        auth = AuthSessionStore(storage)
        await auth.set_auth(_tokens(), _user())

        assert auth.is_authenticated is True
        restored = AuthSessionStore(storage)
        await restored.hydrate()
        assert restored.snapshot() == auth.snapshot()

    @pytest.mark.asyncio
    async def test_clearing_tokens_deletes_persisted_state(self, storage):
        auth = AuthSessionStore(storage)
        await auth.set_auth(_tokens(), _user())

        await auth.set_auth(None)

        assert auth.is_authenticated is False
        assert auth.user is None
        assert await storage.get_item(STORAGE_KEY) is None

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self, storage):
        auth = AuthSessionStore(storage)
        await auth.set_auth(_tokens())
        snap = auth.snapshot()

        await auth.set_auth(None)

        assert snap.is_authenticated is True


class TestSignOut:
    @pytest.mark.asyncio
    async def test_revokes_remote_session(self, storage, account):
        auth = AuthSessionStore(storage, account)
        await auth.set_auth(_tokens(), _user())

        await auth.sign_out()

        account.delete_session.assert_awaited_once_with("sess-123")
        assert auth.is_authenticated is False
        assert auth.tokens is None
        assert await storage.get_item(STORAGE_KEY) is None

    @pytest.mark.asyncio
    async def test_revocation_failure_still_clears(self, storage, account):
        account.delete_session.side_effect = httpx.ConnectError("offline")
        auth = AuthSessionStore(storage, account)
        await auth.set_auth(_tokens(), _user())

        await auth.sign_out()

        assert auth.is_authenticated is False
        assert auth.is_loading is False
        assert await storage.get_item(STORAGE_KEY) is None

    @pytest.mark.asyncio
    async def test_signed_out_skips_revocation(self, storage, account):
        auth = AuthSessionStore(storage, account)
        await auth.hydrate()

        await auth.sign_out()

        account.delete_session.assert_not_called()


class TestAccountClient:
    @pytest.mark.asyncio
    async def test_delete_session_request(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        client = AccountClient(
            "https://cloud.test/v1/", "proj-1", http=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )
        await client.delete_session("sess-1")
        await client.close()

        [request] = seen
        assert request.method == "DELETE"
        assert str(request.url) == "https://cloud.test/v1/account/sessions/current"
        assert request.headers["x-appwrite-session"] == "sess-1"
        assert request.headers["x-appwrite-project"] == "proj-1"

    @pytest.mark.asyncio
    async def test_delete_session_error_raises(self):
        client = AccountClient(
            "https://cloud.test/v1", "proj-1",
            http=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(401))),
        )
        with pytest.raises(httpx.HTTPStatusError):
            await client.delete_session("sess-1")
        await client.close()


class TestEncryptedFileStorage:
    @pytest.mark.asyncio
    async def test_values_encrypted_on_disk(self, storage, tmp_path):
        assert isinstance(storage, SecureStorage)
        await storage.set_item("k", "plain value")

        on_disk = json.loads((tmp_path / "secure.json").read_text())
        assert on_disk["k"] != "plain value"
        assert decrypt(on_disk["k"], SECRET) == "plain value"
        assert oct(os.stat(tmp_path / "secure.json").st_mode & 0o777) == "0o600"

    @pytest.mark.asyncio
    async def test_delete_missing_key(self, storage):
        await storage.delete_item("absent")
        assert await storage.get_item("absent") is None

    def test_crypto_round_trip_with_wrong_key(self):
        token = encrypt("hello", "key-a")
        assert decrypt(token, "key-a") == "hello"
        with pytest.raises(ValueError):
            decrypt(token, "key-b")
