"""Async Gmail REST API client."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

import httpx

DEFAULT_GMAIL_BASE_URL = "https://gmail.googleapis.com/gmail/v1/users/me"
DEFAULT_METADATA_HEADERS = ("From", "To", "Subject", "Date")
MAX_CONCURRENT_FETCHES = 10

logger = logging.getLogger(__name__)


class GmailAPIError(RuntimeError):
    """Non-success response from the Gmail API."""

    def __init__(self, status_code: int | None, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


_STATUS_MESSAGES = {
    401: "Authentication expired. Please run: gmail-skill auth",
    403: "Permission denied. Check that the required Gmail scopes are authorized.",
    404: "Message not found. It may have been deleted.",
    429: "Rate limit exceeded. Please wait a moment and try again.",
}


def describe_api_error(error: BaseException | None) -> str:
    """Map an API failure to the message shown to the user."""
    if error is None:
        return "An unknown error occurred"
    status = getattr(error, "status_code", None)
    if status in _STATUS_MESSAGES:
        return _STATUS_MESSAGES[status]
    return getattr(error, "message", None) or str(error) or "An unknown error occurred"


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text}"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error
    return f"HTTP {response.status_code}"


class GmailClient:
    """Bearer-authenticated handle over the Gmail API.

    Use as ``async with GmailClient(token) as gmail: ...``.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_GMAIL_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "GmailClient":
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=30.0,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self._access_token}",
                "User-Agent": "gmail-skill (python)",
            },
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        if self._client is None:
            raise RuntimeError("GmailClient must be used inside 'async with'")
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise GmailAPIError(None, f"Request to Gmail failed: {exc}") from exc
        logger.debug("%s %s -> %s", method, path, response.status_code)
        if response.status_code >= 400:
            raise GmailAPIError(response.status_code, _error_message(response))
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise GmailAPIError(response.status_code, f"Gmail returned a non-JSON response: {exc}") from exc

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_profile(self) -> dict[str, Any]:
        return await self._request("GET", "/profile")

    async def list_messages(
        self,
        query: str | None = None,
        max_results: int = 10,
        page_token: str | None = None,
        label_ids: Iterable[str] | None = None,
    ) -> dict[str, Any]:
        params: list[tuple[str, Any]] = [("maxResults", max_results)]
        if query:
            params.append(("q", query))
        if page_token:
            params.append(("pageToken", page_token))
        for label_id in label_ids or ():
            params.append(("labelIds", label_id))
        return await self._request("GET", "/messages", params=params)

    async def get_message(
        self,
        message_id: str,
        format: str = "full",  # noqa: A002
        metadata_headers: Iterable[str] | None = None,
    ) -> dict[str, Any]:
        params: list[tuple[str, Any]] = [("format", format)]
        if format == "metadata":
            for header in metadata_headers or DEFAULT_METADATA_HEADERS:
                params.append(("metadataHeaders", header))
        return await self._request("GET", f"/messages/{message_id}", params=params)

    async def get_messages(
        self,
        message_ids: Iterable[str],
        format: str = "metadata",  # noqa: A002
        metadata_headers: Iterable[str] | None = None,
        concurrency: int = MAX_CONCURRENT_FETCHES,
    ) -> list[dict[str, Any]]:
        """Fetch several messages concurrently, returned in the order requested."""
        headers = tuple(metadata_headers) if metadata_headers else None
        semaphore = asyncio.Semaphore(max(concurrency, 1))

        async def _fetch(message_id: str) -> dict[str, Any]:
            async with semaphore:
                return await self.get_message(message_id, format=format, metadata_headers=headers)

        return list(await asyncio.gather(*(_fetch(mid) for mid in message_ids)))

    async def get_thread(self, thread_id: str, format: str = "full") -> dict[str, Any]:  # noqa: A002
        return await self._request("GET", f"/threads/{thread_id}", params={"format": format})

    async def list_labels(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/labels")
        return data.get("labels") or []

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def send_message(self, raw: str, thread_id: str | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"raw": raw}
        if thread_id:
            body["threadId"] = thread_id
        return await self._request("POST", "/messages/send", json=body)

    async def create_draft(self, raw: str, thread_id: str | None = None) -> dict[str, Any]:
        message: dict[str, Any] = {"raw": raw}
        if thread_id:
            message["threadId"] = thread_id
        return await self._request("POST", "/drafts", json={"message": message})

    async def modify_message(
        self,
        message_id: str,
        add_label_ids: Iterable[str] = (),
        remove_label_ids: Iterable[str] = (),
    ) -> dict[str, Any]:
        body = {
            "addLabelIds": list(add_label_ids),
            "removeLabelIds": list(remove_label_ids),
        }
        return await self._request("POST", f"/messages/{message_id}/modify", json=body)

    async def trash_message(self, message_id: str) -> dict[str, Any]:
        return await self._request("POST", f"/messages/{message_id}/trash")

    async def untrash_message(self, message_id: str) -> dict[str, Any]:
        return await self._request("POST", f"/messages/{message_id}/untrash")
