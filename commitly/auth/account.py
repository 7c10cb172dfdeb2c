"""Remote account API client (session revocation)."""

from __future__ import annotations

import logging

import httpx

from commitly.config import settings

logger = logging.getLogger(__name__)


class AccountClient:
    """Talks to the identity backend's account endpoints with a session id."""

    def __init__(
        self,
        endpoint: str | None = None,
        project_id: str | None = None,
        http: httpx.AsyncClient | None = None,
    ):
        self._endpoint = (endpoint if endpoint is not None else settings.appwrite_endpoint).rstrip("/")
        self._project_id = project_id if project_id is not None else settings.appwrite_project_id
        self._http = http or httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    async def delete_session(self, session_id: str, target: str = "current") -> None:
        """Revoke a session. Raises httpx.HTTPError on failure."""
        if not self._endpoint:
            raise httpx.RequestError("Account endpoint not configured")
        headers = {
            "X-Appwrite-Project": self._project_id,
            "X-Appwrite-Session": session_id,
        }
        resp = await self._http.delete(f"{self._endpoint}/account/sessions/{target}", headers=headers)
        resp.raise_for_status()
        logger.info("Remote session revoked")

    async def close(self):
        await self._http.aclose()
