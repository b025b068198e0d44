"""Shared fixtures: a controllable status store, a manual frame clock and item builders."""
from __future__ import annotations

import asyncio
import os
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Callable
from uuid import UUID, uuid4

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_status_store.db")
os.environ.setdefault("JWT_SECRET_KEY", "status-store-test-signing-key")
os.environ.setdefault("DISABLE_CLEANUP", "true")

from status_viewer.clients.status_store import StatusStoreError  # noqa: E402
from status_viewer.schemas import (  # noqa: E402
    CommentPage,
    ReactionEmoji,
    StatusAuthor,
    StatusComment,
    StatusCounts,
    StatusItem,
    StatusKind,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
VIEWER_ID = UUID("00000000-0000-0000-0000-0000000000aa")
AUTHOR_ID = UUID("00000000-0000-0000-0000-0000000000bb")

# 5000 ms divides evenly into 100 ms frames.
FRAME_MS = 100.0


class FakeClock:
    """Wall clock used for expiry checks; tests move it explicitly."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class ManualHandle:
    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualFrameScheduler:
    """Frame source advanced by the test; each ``tick`` moves time by one frame."""

    def __init__(self, frame_ms: float = FRAME_MS) -> None:
        self.time_ms = 0.0
        self.frame_ms = frame_ms
        self._pending: list[ManualHandle] = []

    def now(self) -> float:
        return self.time_ms

    def request_frame(self, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(callback)
        self._pending.append(handle)
        return handle

    @property
    def armed(self) -> list[ManualHandle]:
        return [handle for handle in self._pending if not handle.cancelled]

    def tick(self) -> None:
        self.time_ms += self.frame_ms
        due, self._pending = self._pending, []
        for handle in due:
            if not handle.cancelled:
                handle.callback()

    def advance(self, ms: float) -> None:
        for _ in range(int(round(ms / self.frame_ms))):
            self.tick()

    def pass_time(self, ms: float) -> None:
        """Move the clock without delivering any frame."""

        self.time_ms += ms


class FakeStore:
    """In-memory :class:`StatusStore` with per-method failure injection and gates."""

    def __init__(self) -> None:
        self.timelines: dict[UUID, list[StatusItem]] = {}
        self.comments: dict[UUID, list[StatusComment]] = {}
        self.counts: dict[UUID, StatusCounts] = {}
        self.calls: list[tuple] = []
        self._failures: dict[str, list[BaseException]] = defaultdict(list)
        self._gates: dict[str, asyncio.Event] = {}

    def fail(self, method: str, error: BaseException | None = None) -> None:
        self._failures[method].append(error or StatusStoreError("Request failed", status_code=500))

    def hold(self, method: str) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[method] = gate
        return gate

    def calls_to(self, method: str) -> list[tuple]:
        return [call[1:] for call in self.calls if call[0] == method]

    async def _enter(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        gate = self._gates.get(method)
        if gate is not None:
            await gate.wait()
        if self._failures[method]:
            raise self._failures[method].pop(0)

    async def list_timeline_items(self, author_id: UUID) -> list[StatusItem]:
        await self._enter("list_timeline_items", author_id)
        return [item.model_copy(deep=True) for item in self.timelines.get(author_id, [])]

    async def list_feed(self, *, limit: int = 100) -> list[StatusItem]:
        await self._enter("list_feed", limit)
        return [item.model_copy(deep=True) for items in self.timelines.values() for item in items][:limit]

    async def create_comment(self, item_id: UUID, text: str) -> tuple[StatusComment, StatusCounts | None]:
        await self._enter("create_comment", item_id, text)
        comment = StatusComment(id=uuid4(), status_id=item_id, user_id=VIEWER_ID, content=text, created_at=NOW)
        self.comments.setdefault(item_id, []).insert(0, comment)
        return comment, self.counts.get(item_id)

    async def list_comments(self, item_id: UUID, *, limit: int = 50, offset: int = 0) -> CommentPage:
        await self._enter("list_comments", item_id, limit, offset)
        stored = self.comments.get(item_id, [])
        page = stored[offset : offset + limit]
        return CommentPage(comments=page, total=len(stored), has_more=offset + len(page) < len(stored))

    async def set_reaction(self, item_id: UUID, emoji: ReactionEmoji) -> StatusCounts | None:
        await self._enter("set_reaction", item_id, emoji)
        return self.counts.get(item_id)

    async def clear_reaction(self, item_id: UUID) -> StatusCounts | None:
        await self._enter("clear_reaction", item_id)
        return self.counts.get(item_id)

    async def record_view(self, item_id: UUID) -> StatusCounts | None:
        await self._enter("record_view", item_id)
        return self.counts.get(item_id)


def make_item(
    *,
    author_id: UUID = AUTHOR_ID,
    age: timedelta = timedelta(hours=1),
    expires_in: timedelta | None = None,
    viewed: bool = False,
    reactions: int = 0,
    comments: int = 0,
    views: int = 0,
    reaction: ReactionEmoji | None = None,
    content: str = "hello",
) -> StatusItem:
    created_at = NOW - age
    expires_at = NOW + expires_in if expires_in is not None else created_at + timedelta(hours=24)
    return StatusItem(
        id=uuid4(),
        user_id=author_id,
        status_type=StatusKind.TEXT,
        content=content,
        views_count=views,
        reactions_count=reactions,
        comments_count=comments,
        created_at=created_at,
        expires_at=expires_at,
        author=StatusAuthor(id=author_id, username=f"user-{str(author_id)[-2:]}"),
        is_viewed=viewed,
        user_reaction=reaction,
    )


def make_comment(item_id: UUID, content: str = "nice", *, age: timedelta = timedelta(minutes=5)) -> StatusComment:
    return StatusComment(id=uuid4(), status_id=item_id, user_id=AUTHOR_ID, content=content, created_at=NOW - age)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def scheduler() -> ManualFrameScheduler:
    return ManualFrameScheduler()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
