"""Status store collaborator: the contract the viewer depends on and its HTTP client."""
from __future__ import annotations

import logging
from typing import Any, Protocol
from uuid import UUID

import httpx
from pydantic import ValidationError

from ..config import get_settings
from ..constants import COMMENT_PAGE_SIZE, FEED_DEFAULT_LIMIT
from ..schemas import CommentPage, ReactionEmoji, StatusComment, StatusCounts, StatusItem

logger = logging.getLogger(__name__)

_NETWORK_ERROR = "Network error: Unable to connect to server. Please check your connection."


class StatusStoreError(RuntimeError):
    """Raised when the status store cannot complete a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StatusStore(Protocol):
    """Remote operations the playback controller relies on.

    Mutations may return :class:`StatusCounts` when the store reports the
    authoritative counters; ``None`` leaves the local estimate in place.
    """

    async def list_timeline_items(self, author_id: UUID) -> list[StatusItem]: ...

    async def list_feed(self, *, limit: int = FEED_DEFAULT_LIMIT) -> list[StatusItem]: ...

    async def create_comment(self, item_id: UUID, text: str) -> tuple[StatusComment, StatusCounts | None]: ...

    async def list_comments(self, item_id: UUID, *, limit: int = COMMENT_PAGE_SIZE, offset: int = 0) -> CommentPage: ...

    async def set_reaction(self, item_id: UUID, emoji: ReactionEmoji) -> StatusCounts | None: ...

    async def clear_reaction(self, item_id: UUID) -> StatusCounts | None: ...

    async def record_view(self, item_id: UUID) -> StatusCounts | None: ...


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return f"HTTP {response.status_code}"


class HttpStatusStore:
    """:class:`StatusStore` backed by the ``/v1/statuses`` REST API.

    A shared ``httpx.AsyncClient`` may be injected (tests pass one bound to an
    ASGI transport); otherwise a short-lived client is opened per request.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.status_store_base_url).rstrip("/")
        self._token = token if token is not None else settings.status_store_token
        self._timeout = float(timeout or settings.status_store_timeout or 10.0)
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}/v1/statuses{path}"
        try:
            if self._client is not None:
                response = await self._client.request(method, url, json=json, params=params, headers=self._headers())
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(method, url, json=json, params=params, headers=self._headers())
        except httpx.ConnectError as exc:
            logger.warning("Status store unreachable (%s %s)", method, path)
            raise StatusStoreError(_NETWORK_ERROR) from exc
        except httpx.HTTPError as exc:
            logger.exception("Status store request failed (%s %s)", method, path)
            raise StatusStoreError("Request failed") from exc

        if response.is_error:
            message = _error_message(response)
            logger.warning("Status store rejected %s %s: %s", method, path, message)
            raise StatusStoreError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise StatusStoreError("Invalid response from status store", status_code=response.status_code) from exc
        if not isinstance(data, dict):
            raise StatusStoreError("Invalid response from status store", status_code=response.status_code)
        return data

    @staticmethod
    def _parse_counts(data: dict[str, Any]) -> StatusCounts | None:
        raw = data.get("counts")
        if raw is None:
            return None
        try:
            return StatusCounts.model_validate(raw)
        except ValidationError as exc:
            raise StatusStoreError("Invalid counts in status store response") from exc

    @staticmethod
    def _parse_statuses(data: dict[str, Any]) -> list[StatusItem]:
        try:
            return [StatusItem.model_validate(entry) for entry in data.get("statuses") or []]
        except ValidationError as exc:
            logger.warning("Discarding malformed status list: %s", exc)
            raise StatusStoreError("Invalid statuses in status store response") from exc

    async def list_timeline_items(self, author_id: UUID) -> list[StatusItem]:
        data = await self._request("GET", f"/user/{author_id}")
        return self._parse_statuses(data)

    async def list_feed(self, *, limit: int = FEED_DEFAULT_LIMIT) -> list[StatusItem]:
        data = await self._request("GET", "/feed", params={"limit": limit})
        return self._parse_statuses(data)

    async def create_comment(self, item_id: UUID, text: str) -> tuple[StatusComment, StatusCounts | None]:
        data = await self._request("POST", f"/{item_id}/comments", json={"content": text})
        try:
            comment = StatusComment.model_validate(data.get("comment"))
        except ValidationError as exc:
            raise StatusStoreError("Invalid comment in status store response") from exc
        return comment, self._parse_counts(data)

    async def list_comments(self, item_id: UUID, *, limit: int = COMMENT_PAGE_SIZE, offset: int = 0) -> CommentPage:
        data = await self._request("GET", f"/{item_id}/comments", params={"limit": limit, "offset": offset})
        try:
            comments = [StatusComment.model_validate(entry) for entry in data.get("comments") or []]
        except ValidationError as exc:
            raise StatusStoreError("Invalid comments in status store response") from exc
        return CommentPage(
            comments=comments,
            total=int(data.get("total") or len(comments)),
            has_more=bool(data.get("has_more")),
        )

    async def set_reaction(self, item_id: UUID, emoji: ReactionEmoji) -> StatusCounts | None:
        data = await self._request("POST", f"/{item_id}/react", json={"emoji": ReactionEmoji(emoji).value})
        return self._parse_counts(data)

    async def clear_reaction(self, item_id: UUID) -> StatusCounts | None:
        data = await self._request("DELETE", f"/{item_id}/react")
        return self._parse_counts(data)

    async def record_view(self, item_id: UUID) -> StatusCounts | None:
        data = await self._request("POST", f"/{item_id}/view")
        return self._parse_counts(data)


__all__ = ["HttpStatusStore", "StatusStore", "StatusStoreError"]
