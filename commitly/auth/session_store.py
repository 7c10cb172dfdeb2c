"""Process-wide auth session state, coupled to secure persisted storage."""

from __future__ import annotations

import json
import logging

import httpx

from commitly.auth.account import AccountClient
from commitly.auth.secure_storage import SecureStorage
from commitly.models.auth import AuthState, AuthTokens, AuthUser

logger = logging.getLogger(__name__)

STORAGE_KEY = "auth.appwrite"


class AuthSessionStore:
    """Holds the current session token and user identity.

    All writes go through ``set_auth``/``sign_out`` so in-memory and persisted
    state stay coupled. Reads are synchronous snapshots. Nothing protected
    should run while ``is_loading`` is True.
    """

    def __init__(self, storage: SecureStorage, account: AccountClient | None = None):
        self._storage = storage
        self._account = account
        self._state = AuthState()

    def snapshot(self) -> AuthState:
        return self._state.model_copy()

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def tokens(self) -> AuthTokens | None:
        return self._state.tokens

    @property
    def user(self) -> AuthUser | None:
        return self._state.user

    async def hydrate(self) -> None:
        """Restore persisted state; absent or malformed data leaves the store signed out."""
        try:
            raw = await self._storage.get_item(STORAGE_KEY)
            if raw:
                parsed = json.loads(raw)
                tokens = AuthTokens.model_validate(parsed["tokens"])
                user = AuthUser.model_validate(parsed["user"]) if parsed.get("user") else None
                self._state = AuthState(
                    is_loading=False, is_authenticated=True, tokens=tokens, user=user
                )
                logger.info("Auth session restored for %s", user.id if user else "unknown user")
                return
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding unreadable persisted auth session: %s", e)
        self._state = self._state.model_copy(update={"is_loading": False})

    async def set_auth(self, tokens: AuthTokens | None, user: AuthUser | None = None) -> None:
        self._state = AuthState(
            is_loading=False,
            is_authenticated=tokens is not None,
            tokens=tokens,
            user=user,
        )
        if tokens is not None:
            await self._storage.set_item(
                STORAGE_KEY,
                json.dumps({
                    "tokens": tokens.model_dump(by_alias=True),
                    "user": user.model_dump(by_alias=True) if user else None,
                }),
            )
        else:
            await self._storage.delete_item(STORAGE_KEY)

    async def sign_out(self) -> None:
        """Best-effort remote revocation, then always clear local state."""
        tokens = self._state.tokens
        if self._account is not None and tokens is not None:
            try:
                await self._account.delete_session(tokens.session_id)
            except httpx.HTTPError as e:
                logger.warning("Remote session revocation failed, clearing locally: %s", e)
        await self._storage.delete_item(STORAGE_KEY)
        self._state = AuthState(is_loading=False, is_authenticated=False)
        logger.info("Signed out")
