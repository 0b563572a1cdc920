"""Gmail REST adapter authenticated with an OAuth refresh token."""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Any

import httpx

from ..core.config import GmailSettings
from ..core.interfaces import MailboxProvider
from ..core.models import MessagePage, MessageRef

LOGGER = logging.getLogger(__name__)


class GmailError(RuntimeError):
    """Wrap Gmail API and OAuth failures with the HTTP status when known."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GmailClient(MailboxProvider):
    """Thin async client for the Gmail ``users.messages`` endpoints."""

    def __init__(
        self,
        settings: GmailSettings,
        *,
        refresh_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialise the client; no network traffic happens until first use."""
        self._settings = settings
        self._refresh_token = refresh_token or settings.refresh_token
        self._access_token: str | None = None
        self._token_lock = asyncio.Lock()
        self._client = httpx.AsyncClient(
            base_url=settings.api_base_url.rstrip("/"),
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    # Context manager helpers -------------------------------------------------
    async def __aenter__(self) -> GmailClient:
        """Enter async context manager scope."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Release the underlying HTTP connection pool."""
        await self.aclose()

    # Public API ---------------------------------------------------------------
    async def list_messages(
        self, query: str, *, page_token: str | None = None, page_size: int = 100
    ) -> MessagePage:
        """Return one page of message references matching ``query``."""
        params: dict[str, Any] = {"q": query, "maxResults": page_size}
        if page_token:
            params["pageToken"] = page_token
        data = await self._get_json(f"/users/{self._settings.user_id}/messages", params)
        refs = tuple(
            MessageRef(provider_id=item["id"], thread_id=item.get("threadId"))
            for item in data.get("messages") or ()
            if isinstance(item, dict) and item.get("id")
        )
        return MessagePage(
            messages=refs,
            next_page_token=data.get("nextPageToken") or None,
            result_size_estimate=data.get("resultSizeEstimate"),
        )

    async def get_message(self, message_id: str) -> dict[str, Any]:
        """Fetch the full MIME tree for ``message_id``."""
        return await self._get_json(
            f"/users/{self._settings.user_id}/messages/{message_id}",
            {"format": "full"},
        )

    async def get_profile(self) -> dict[str, Any]:
        """Return the mailbox profile (``emailAddress``, totals)."""
        return await self._get_json(f"/users/{self._settings.user_id}/profile", None)

    async def refresh_access_token(self) -> str:
        """Exchange the refresh token for a new access token."""
        if not self._refresh_token:
            raise GmailError("Gmail refresh token is not configured")
        if not self._settings.client_id or not self._settings.client_secret:
            raise GmailError("Google OAuth client credentials are not configured")

        LOGGER.debug("Refreshing Gmail access token")
        try:
            response = await self._client.post(
                self._settings.token_url,
                data={
                    "client_id": self._settings.client_id,
                    "client_secret": self._settings.client_secret,
                    "refresh_token": self._refresh_token,
                    "grant_type": "refresh_token",
                },
            )
        except httpx.HTTPError as exc:  # pragma: no cover - network dependent
            raise GmailError("Failed to reach the OAuth token endpoint") from exc

        if response.status_code != 200:
            LOGGER.error("Token refresh failed: %s", response.status_code)
            raise GmailError(
                f"Token refresh failed: {_describe_error(response)}",
                status_code=response.status_code,
            )
        token = response.json().get("access_token")
        if not isinstance(token, str) or not token:
            raise GmailError("Token response missing 'access_token'")
        self._access_token = token
        return token

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    # Internal helpers ---------------------------------------------------------
    async def _ensure_access_token(self, stale: str | None = None) -> str:
        async with self._token_lock:
            if self._access_token is not None and self._access_token != stale:
                return self._access_token
            return await self.refresh_access_token()

    async def _get_json(
        self, path: str, params: dict[str, Any] | None
    ) -> dict[str, Any]:
        token = await self._ensure_access_token()
        response = await self._send(path, params, token)
        if response.status_code == 401:
            LOGGER.warning("Gmail rejected access token, refreshing once")
            token = await self._ensure_access_token(stale=token)
            response = await self._send(path, params, token)

        if response.is_error:
            raise GmailError(
                _describe_error(response), status_code=response.status_code
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise GmailError("Gmail returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise GmailError("Gmail returned an unexpected payload")
        return data

    async def _send(
        self, path: str, params: dict[str, Any] | None, token: str
    ) -> httpx.Response:
        try:
            return await self._client.get(
                path,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise GmailError(f"Gmail request to {path} failed: {exc}") from exc


def _describe_error(response: httpx.Response) -> str:
    """Extract the most useful message from a Google API error response."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return f"HTTP {response.status_code}: {error['message']}"
    if isinstance(error, str):
        description = body.get("error_description")
        return f"HTTP {response.status_code}: {description or error}"
    return f"HTTP {response.status_code}"


__all__ = ["GmailClient", "GmailError"]
