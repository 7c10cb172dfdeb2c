"""Welcome notification side channel — server-triggered via a remote HTTP function."""

from __future__ import annotations

import logging

import httpx

from commitly.config import settings

logger = logging.getLogger(__name__)


class WelcomeNotifier:
    """POSTs ``{userId, username, pushToken}`` to the welcome function.

    Never raises: every failure is logged and reported as ``False``.
    """

    def __init__(
        self,
        function_url: str | None = None,
        project_id: str | None = None,
        http: httpx.AsyncClient | None = None,
    ):
        self._function_url = function_url if function_url is not None else settings.welcome_function_url
        self._project_id = project_id if project_id is not None else settings.appwrite_project_id
        self._http = http or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self.sent = 0

    @property
    def is_configured(self) -> bool:
        return bool(self._function_url)

    async def send_welcome(
        self, user_id: str, username: str | None, push_token: str | None
    ) -> bool:
        if not self.is_configured:
            logger.warning("Welcome function URL not configured; skipping welcome for %s", user_id)
            return False

        headers = {"Content-Type": "application/json"}
        if self._project_id:
            headers["X-Appwrite-Project"] = self._project_id
        payload = {"userId": user_id, "username": username, "pushToken": push_token}

        try:
            resp = await self._http.post(self._function_url, json=payload, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Welcome function error: %s %s", e.response.status_code, e.response.text[:200])
            return False
        except httpx.RequestError as e:
            logger.error("Welcome function request failed: %s", e)
            return False

        self.sent += 1
        logger.info("Welcome notification sent for %s", user_id)
        return True

    async def close(self):
        await self._http.aclose()
