"""Tests for the Gmail REST client using a mocked HTTP transport."""

from __future__ import annotations

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from newsletter_ingest.core.config import GmailSettings
from newsletter_ingest.transport.gmail_client import GmailClient, GmailError

SETTINGS = GmailSettings(client_id="client-id", client_secret="client-secret")
TOKEN_URL = "https://oauth2.googleapis.com/token"


class GmailStub:
    """Scripted Gmail/OAuth server recording every request."""

    def __init__(self, *, reject_first: bool = False, list_status: int = 200) -> None:
        self.requests: list[httpx.Request] = []
        self.tokens_issued = 0
        self._reject_first = reject_first
        self._list_status = list_status

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if str(request.url) == TOKEN_URL:
            form = parse_qs(request.content.decode())
            assert form["grant_type"] == ["refresh_token"]
            assert form["refresh_token"] == ["refresh-123"]
            self.tokens_issued += 1
            return httpx.Response(200, json={"access_token": f"token-{self.tokens_issued}"})

        if self._reject_first and request.headers["Authorization"] == "Bearer token-1":
            return httpx.Response(401, json={"error": {"message": "Invalid Credentials"}})

        path = request.url.path
        if path.endswith("/users/me/profile"):
            return httpx.Response(200, json={"emailAddress": "me@example.com"})
        if path.endswith("/users/me/messages"):
            if self._list_status != 200:
                return httpx.Response(
                    self._list_status, json={"error": {"message": "Insufficient Permission"}}
                )
            if request.url.params.get("pageToken") == "next":
                return httpx.Response(200, json={"resultSizeEstimate": 1})
            return httpx.Response(
                200,
                json={
                    "messages": [{"id": "a", "threadId": "t"}, {"id": "b"}],
                    "nextPageToken": "next",
                    "resultSizeEstimate": 3,
                },
            )
        if path.endswith("/users/me/messages/a"):
            return httpx.Response(200, json={"id": "a", "payload": {"mimeType": "text/html"}})
        return httpx.Response(404, json={"error": {"message": "Not Found"}})


def _client(stub: GmailStub, *, refresh_token: str | None = "refresh-123") -> GmailClient:
    return GmailClient(
        SETTINGS, refresh_token=refresh_token, transport=httpx.MockTransport(stub)
    )


def test_list_messages_sends_query_and_parses_page() -> None:
    stub = GmailStub()

    async def run():
        async with _client(stub) as client:
            first = await client.list_messages("from:substack.com", page_size=100)
            second = await client.list_messages("from:substack.com", page_token="next")
            return first, second

    first, second = asyncio.run(run())

    assert [ref.provider_id for ref in first.messages] == ["a", "b"]
    assert first.messages[0].thread_id == "t"
    assert first.next_page_token == "next"
    assert first.result_size_estimate == 3
    assert second.messages == ()
    assert second.next_page_token is None

    listing = [r for r in stub.requests if r.url.path.endswith("/messages")]
    assert listing[0].url.params["q"] == "from:substack.com"
    assert listing[0].url.params["maxResults"] == "100"
    assert "pageToken" not in listing[0].url.params
    assert listing[1].url.params["pageToken"] == "next"
    assert listing[0].headers["Authorization"] == "Bearer token-1"
    assert stub.tokens_issued == 1


def test_get_message_requests_full_format() -> None:
    stub = GmailStub()

    async def run():
        async with _client(stub) as client:
            return await client.get_message("a")

    payload = asyncio.run(run())

    assert payload["id"] == "a"
    request = stub.requests[-1]
    assert request.url.path == "/gmail/v1/users/me/messages/a"
    assert request.url.params["format"] == "full"


def test_unauthorized_response_triggers_single_refresh_and_retry() -> None:
    stub = GmailStub(reject_first=True)

    async def run():
        async with _client(stub) as client:
            return await client.get_profile()

    profile = asyncio.run(run())

    assert profile["emailAddress"] == "me@example.com"
    assert stub.tokens_issued == 2
    assert stub.requests[-1].headers["Authorization"] == "Bearer token-2"


def test_error_status_raises_gmail_error_with_status_code() -> None:
    stub = GmailStub(list_status=403)

    async def run():
        async with _client(stub) as client:
            await client.list_messages("q")

    with pytest.raises(GmailError) as excinfo:
        asyncio.run(run())

    assert excinfo.value.status_code == 403
    assert "Insufficient Permission" in str(excinfo.value)


def test_missing_refresh_token_fails_without_network() -> None:
    stub = GmailStub()

    async def run():
        async with _client(stub, refresh_token=None) as client:
            await client.get_profile()

    with pytest.raises(GmailError, match="refresh token"):
        asyncio.run(run())
    assert stub.requests == []


def test_concurrent_calls_share_one_token_refresh() -> None:
    stub = GmailStub()

    async def run():
        async with _client(stub) as client:
            await asyncio.gather(*(client.get_profile() for _ in range(5)))

    asyncio.run(run())
    assert stub.tokens_issued == 1
