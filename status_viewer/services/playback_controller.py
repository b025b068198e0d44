"""Status playback: the auto-advancing timeline and its optimistic engagement sync.

The controller owns every piece of playback state (current index, elapsed-time
accumulator, active pause reasons, the armed frame handle) and is driven from a
single asyncio loop by frame callbacks and presentation-layer calls. Remote
calls never block playback; their completions are discarded once the session
that issued them has been closed or replaced.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Sequence
from uuid import UUID, uuid4

from ..clients.status_store import StatusStore, StatusStoreError
from ..constants import COMMENT_MAX_LENGTH, COMMENT_PAGE_SIZE, DRAG_THRESHOLD_PX, ITEM_DURATION_MS
from ..schemas import ReactionEmoji, StatusComment, StatusCounts, StatusItem, StatusTimeline
from .frame_scheduler import AsyncioFrameScheduler, FrameHandle, FrameScheduler
from .pending_mutations import (
    CommentMutation,
    MutationKind,
    MutationLedger,
    PendingMutation,
    ReactionMutation,
    ViewMutation,
    apply_mutation,
    confirm_comment,
    reconcile_counts,
    revert_mutation,
)
from .playback_errors import InvalidInput, LoadFailure, MutationFailure, StaleTick, StatusViewerError
from .timeline_service import filter_active

logger = logging.getLogger(__name__)


class PlaybackState(str, Enum):
    PLAYING = "playing"
    PAUSED = "paused"
    CLOSED = "closed"


class PauseReason(str, Enum):
    COMMENTS = "comments"
    REACTIONS = "reactions"
    HOLD = "hold"
    INPUT = "input"


@dataclass(frozen=True, slots=True)
class PlaybackSnapshot:
    state: PlaybackState
    current_index: int
    item_count: int
    progress: float
    is_paused: bool
    pause_reasons: frozenset[str]
    current_item: StatusItem | None
    load_error: LoadFailure | None = None
    last_error: StatusViewerError | None = None


SnapshotListener = Callable[[PlaybackSnapshot], None]
ErrorListener = Callable[[StatusViewerError], None]
TimelineHook = Callable[[], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _reason_key(reason: PauseReason | str) -> str:
    return reason.value if isinstance(reason, PauseReason) else str(reason)


@dataclass(slots=True)
class _CommentCursor:
    offset: int = 0
    has_more: bool = False
    loaded: bool = False


class StatusPlaybackController:
    """Plays one author's statuses in order, a fixed duration each."""

    def __init__(
        self,
        store: StatusStore,
        *,
        scheduler: FrameScheduler | None = None,
        viewer_id: UUID | None = None,
        on_next_timeline: TimelineHook | None = None,
        on_previous_timeline: TimelineHook | None = None,
        duration_ms: float = ITEM_DURATION_MS,
        drag_threshold: float = DRAG_THRESHOLD_PX,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if duration_ms <= 0:
            raise ValueError("duration_ms must be positive")
        self._store = store
        self._scheduler: FrameScheduler = scheduler or AsyncioFrameScheduler()
        self._viewer_id = viewer_id
        self._on_next_timeline = on_next_timeline
        self._on_previous_timeline = on_previous_timeline
        self._duration_ms = float(duration_ms)
        self._drag_threshold = abs(float(drag_threshold))
        self._clock = clock

        self._state = PlaybackState.CLOSED
        self._items: list[StatusItem] = []
        self._index = 0
        self._pause_reasons: set[str] = set()
        self._accumulated_ms = 0.0
        self._started_at: float | None = None
        self._frame: FrameHandle | None = None
        self._frame_token = 0
        self._progress = 0.0
        # Set while the last item is held waiting on ``on_next_timeline``.
        self._held_at_end = False

        # Bumped on every open/close; completions from older sessions are ignored.
        self._session = 0
        self._ledger = MutationLedger()
        self._viewed_ids: set[UUID] = set()
        self._comments: dict[UUID, list[StatusComment]] = {}
        self._comment_cursors: dict[UUID, _CommentCursor] = {}

        self._load_token = 0
        self._pending_load: tuple[UUID, int] | None = None
        self._load_error: LoadFailure | None = None
        self._last_error: StatusViewerError | None = None

        self._listeners: list[SnapshotListener] = []
        self._error_listeners: list[ErrorListener] = []

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------
    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_item(self) -> StatusItem | None:
        if self._state is PlaybackState.CLOSED or not self._items:
            return None
        return self._items[self._index]

    @property
    def items(self) -> list[StatusItem]:
        return list(self._items)

    @property
    def is_paused(self) -> bool:
        return self._state is PlaybackState.PAUSED

    @property
    def pause_reasons(self) -> frozenset[str]:
        return frozenset(self._pause_reasons)

    @property
    def progress(self) -> float:
        """Fraction of the current item shown so far, 0..1."""

        if self._state is PlaybackState.CLOSED:
            return self._progress
        return min(1.0, max(0.0, self._elapsed_ms() / self._duration_ms))

    @property
    def load_error(self) -> LoadFailure | None:
        return self._load_error

    def snapshot(self) -> PlaybackSnapshot:
        return PlaybackSnapshot(
            state=self._state,
            current_index=self._index,
            item_count=len(self._items),
            progress=self.progress,
            is_paused=self.is_paused,
            pause_reasons=self.pause_reasons,
            current_item=self.current_item,
            load_error=self._load_error,
            last_error=self._last_error,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def on_error(self, listener: ErrorListener) -> Callable[[], None]:
        self._error_listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._error_listeners:
                self._error_listeners.remove(listener)

        return _unsubscribe

    def comments_for(self, item_id: UUID) -> list[StatusComment]:
        return list(self._comments.get(item_id, ()))

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Playback listener failed")

    def _surface(self, error: StatusViewerError) -> None:
        self._last_error = error
        for listener in list(self._error_listeners):
            try:
                listener(error)
            except Exception:
                logger.exception("Playback error listener failed")
        self._publish()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def open(self, timeline: StatusTimeline | Sequence[StatusItem], start_index: int = 0) -> None:
        """Start playing ``timeline`` from ``start_index``.

        The items are copied, so optimistic changes never reach the caller's
        objects and are discarded with the session. Expired items are dropped
        before playback. An empty (or fully expired) timeline leaves the
        controller closed.
        """

        items = timeline.items if isinstance(timeline, StatusTimeline) else timeline
        source = [item.model_copy(deep=True) for item in items]
        self._reset_session()
        self._load_error = None

        now = self._clock()
        start_index = min(max(start_index, 0), max(len(source) - 1, 0))
        active = filter_active(source, now)
        if not active:
            logger.info("Nothing to play: timeline empty or expired")
            self._publish()
            return

        self._items = active
        start_item = next((item for item in source[start_index:] if not item.is_expired(now)), active[-1])
        self._index = next(index for index, item in enumerate(active) if item is start_item)
        self._state = PlaybackState.PLAYING
        logger.debug("Opened timeline with %d statuses at index %d", len(active), self._index)
        self._enter_current()

    async def open_author(self, author_id: UUID, start_index: int = 0) -> bool:
        """Fetch an author's statuses and open them; on failure record a retryable LoadFailure."""

        self._load_token += 1
        token = self._load_token
        self._pending_load = (author_id, start_index)
        try:
            items = await self._store.list_timeline_items(author_id)
        except Exception as exc:
            if token != self._load_token:
                return False
            if not isinstance(exc, StatusStoreError):
                logger.exception("Unexpected error loading statuses for %s", author_id)
            else:
                logger.warning("Loading statuses for %s failed: %s", author_id, exc)
            failure = LoadFailure("Could not load statuses", author_id=author_id)
            failure.__cause__ = exc
            self._load_error = failure
            self._surface(failure)
            return False

        if token != self._load_token:
            logger.debug("Discarding superseded timeline load for %s", author_id)
            return False
        self._load_error = None
        self._pending_load = None
        self.open(items, start_index)
        return True

    async def retry_load(self) -> bool:
        if self._pending_load is None:
            return False
        author_id, start_index = self._pending_load
        return await self.open_author(author_id, start_index)

    def close(self) -> None:
        if self._state is PlaybackState.CLOSED:
            return
        self._progress = self.progress
        self._reset_session()
        logger.debug("Playback closed")
        self._publish()

    def _reset_session(self) -> None:
        self._cancel_frame()
        self._ledger.abandon()
        self._ledger = MutationLedger()
        self._session += 1
        self._state = PlaybackState.CLOSED
        self._items = []
        self._index = 0
        self._pause_reasons.clear()
        self._accumulated_ms = 0.0
        self._started_at = None
        self._held_at_end = False
        self._viewed_ids.clear()
        self._comments.clear()
        self._comment_cursors.clear()
        self._last_error = None

    async def wait_idle(self) -> None:
        """Wait until every in-flight mutation of the current session has settled."""

        await self._ledger.wait_idle()

    # ------------------------------------------------------------------
    # Pause / resume
    # ------------------------------------------------------------------
    def pause(self, reason: PauseReason | str = PauseReason.HOLD) -> None:
        if self._state is PlaybackState.CLOSED:
            return
        self._pause_reasons.add(_reason_key(reason))
        if self._state is PlaybackState.PLAYING:
            self._accumulated_ms = self._elapsed_ms()
            self._started_at = None
            self._cancel_frame()
            self._state = PlaybackState.PAUSED
        self._publish()

    def resume(self, reason: PauseReason | str = PauseReason.HOLD) -> None:
        if self._state is PlaybackState.CLOSED:
            return
        self._pause_reasons.discard(_reason_key(reason))
        if self._state is PlaybackState.PAUSED and not self._pause_reasons:
            self._state = PlaybackState.PLAYING
            if not self._held_at_end:
                self._started_at = self._scheduler.now()
                self._arm_frame()
        self._publish()

    def set_overlay(self, reason: PauseReason | str, visible: bool) -> None:
        if visible:
            self.pause(reason)
        else:
            self.resume(reason)

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------
    def _elapsed_ms(self) -> float:
        if self._started_at is None:
            return self._accumulated_ms
        return self._accumulated_ms + (self._scheduler.now() - self._started_at)

    def _arm_frame(self) -> None:
        self._cancel_frame()
        token = self._frame_token
        session = self._session
        index = self._index
        self._frame = self._scheduler.request_frame(lambda: self._on_frame(token, session, index))

    def _cancel_frame(self) -> None:
        self._frame_token += 1
        if self._frame is not None:
            self._frame.cancel()
            self._frame = None

    def _check_tick(self, token: int, session: int, index: int) -> None:
        if token != self._frame_token or session != self._session:
            raise StaleTick("Frame belongs to a cancelled timer")
        if self._state is not PlaybackState.PLAYING:
            raise StaleTick(f"Frame fired while {self._state.value}")
        if index != self._index:
            raise StaleTick(f"Frame armed for index {index}, now at {self._index}")

    def _on_frame(self, token: int, session: int, index: int) -> None:
        try:
            self._check_tick(token, session, index)
        except StaleTick as exc:
            logger.debug("Discarding stale frame: %s", exc)
            return
        self._frame = None

        item = self._items[self._index]
        if item.is_expired(self._clock()):
            logger.debug("Status %s expired during playback; skipping", item.id)
            self._step(1, manual=False)
            return

        progress = self._elapsed_ms() / self._duration_ms
        if progress >= 1.0:
            self._progress = 1.0
            self._step(1, manual=False)
            return

        self._progress = max(0.0, progress)
        self._publish()
        self._arm_frame()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------
    def next(self) -> None:
        self._step(1, manual=True)

    def previous(self) -> None:
        self._step(-1, manual=True)

    def on_drag_end(self, displacement: float) -> None:
        """Map a horizontal drag to navigation: right goes back, left goes forward."""

        if displacement > self._drag_threshold:
            self.previous()
        elif displacement < -self._drag_threshold:
            self.next()

    def _step(self, direction: int, *, manual: bool) -> None:
        if self._state is PlaybackState.CLOSED:
            return

        now = self._clock()
        target = self._index + direction
        while 0 <= target < len(self._items) and self._items[target].is_expired(now):
            logger.debug("Skipping expired status %s", self._items[target].id)
            target += direction

        if target >= len(self._items):
            self._cancel_frame()
            if self._on_next_timeline is not None:
                # Hold at the end of the last item until the hook opens or closes;
                # no frame is armed again, so an idle hook is not re-entered.
                self._held_at_end = True
                self._accumulated_ms = self._duration_ms
                self._started_at = None
                self._publish()
                self._on_next_timeline()
            else:
                self.close()
            return

        if target < 0:
            if self._on_previous_timeline is not None:
                self._on_previous_timeline()
            return

        self._cancel_frame()
        if manual:
            self._pause_reasons.clear()
        self._index = target
        self._enter_current()

    def _enter_current(self) -> None:
        self._held_at_end = False
        self._accumulated_ms = 0.0
        self._progress = 0.0
        if self._pause_reasons:
            self._state = PlaybackState.PAUSED
            self._started_at = None
        else:
            self._state = PlaybackState.PLAYING
            self._started_at = self._scheduler.now()
            self._arm_frame()
        self._record_view(self._items[self._index])
        self._publish()

    # ------------------------------------------------------------------
    # Optimistic mutations
    # ------------------------------------------------------------------
    def _require_current(self) -> StatusItem:
        item = self.current_item
        if item is None:
            raise InvalidInput("No status is open")
        return item

    def react(self, emoji: ReactionEmoji | str) -> asyncio.Task[None]:
        """Toggle ``emoji`` on the current status: same emoji clears, another replaces."""

        item = self._require_current()
        try:
            chosen = ReactionEmoji(emoji)
        except ValueError as exc:
            raise InvalidInput(f"Unsupported reaction: {emoji}", item_id=item.id) from exc
        session = self._session

        def begin():
            if session != self._session:
                return None
            mutation = ReactionMutation.toggle(item, chosen)
            apply_mutation(item, mutation)
            self._publish()
            return self._push_reaction(session, item, mutation)

        return self._ledger.submit(item.id, MutationKind.REACTION, begin)

    async def _push_reaction(self, session: int, item: StatusItem, mutation: ReactionMutation) -> None:
        try:
            if mutation.removes:
                counts = await self._store.clear_reaction(item.id)
            else:
                counts = await self._store.set_reaction(item.id, mutation.next_reaction)
        except Exception as exc:
            self._mutation_failed(session, item, mutation, exc, "Failed to react")
            return
        if session != self._session:
            return
        if counts is not None:
            self._reconcile(item, counts, MutationKind.REACTION)
        self._publish()

    def submit_comment(self, text: str) -> asyncio.Task[None]:
        """Validate, optimistically prepend and send a comment on the current status."""

        item = self._require_current()
        cleaned = (text or "").strip()
        if not cleaned:
            raise InvalidInput("Comment cannot be empty", item_id=item.id)
        if len(cleaned) > COMMENT_MAX_LENGTH:
            raise InvalidInput(f"Comment must be {COMMENT_MAX_LENGTH} characters or less", item_id=item.id)
        session = self._session

        def begin():
            if session != self._session:
                return None
            optimistic = StatusComment(
                id=uuid4(),
                status_id=item.id,
                user_id=self._viewer_id,
                content=cleaned,
                created_at=self._clock(),
                pending=True,
            )
            mutation = CommentMutation(item_id=item.id, comment=optimistic, previous_count=item.comments_count)
            apply_mutation(item, mutation, self._comments.setdefault(item.id, []))
            self._publish()
            return self._push_comment(session, item, mutation, cleaned)

        return self._ledger.submit(item.id, MutationKind.COMMENT, begin)

    async def _push_comment(self, session: int, item: StatusItem, mutation: CommentMutation, text: str) -> None:
        try:
            created, counts = await self._store.create_comment(item.id, text)
        except Exception as exc:
            self._mutation_failed(session, item, mutation, exc, "Failed to add comment")
            return
        if session != self._session:
            return
        confirm_comment(self._comments.setdefault(item.id, []), mutation.comment, created)
        cursor = self._comment_cursors.get(item.id)
        if cursor is not None:
            cursor.offset += 1
        if counts is not None:
            self._reconcile(item, counts, MutationKind.COMMENT)
        self._publish()

    def _record_view(self, item: StatusItem) -> asyncio.Task[None] | None:
        if item.is_viewed or item.id in self._viewed_ids:
            return None
        self._viewed_ids.add(item.id)
        session = self._session
        own = self._viewer_id is not None and item.user_id == self._viewer_id

        def begin():
            if session != self._session:
                return None
            mutation = ViewMutation(
                item_id=item.id,
                previous_viewed=item.is_viewed,
                previous_count=item.views_count,
                count_delta=0 if own else 1,
            )
            apply_mutation(item, mutation)
            return self._push_view(session, item, mutation)

        return self._ledger.submit(item.id, MutationKind.VIEW, begin)

    async def _push_view(self, session: int, item: StatusItem, mutation: ViewMutation) -> None:
        try:
            counts = await self._store.record_view(item.id)
        except Exception as exc:
            self._mutation_failed(session, item, mutation, exc, "Failed to record view")
            return
        if session != self._session:
            return
        if counts is not None:
            self._reconcile(item, counts, MutationKind.VIEW)
            self._publish()

    def _reconcile(self, item: StatusItem, counts: StatusCounts, settled: MutationKind) -> None:
        """Adopt the store's counters, except those of other kinds still in flight for ``item``."""

        in_flight = {
            kind for kind in MutationKind if kind is not settled and self._ledger.is_busy(item.id, kind)
        }
        reconcile_counts(item, counts, keep=in_flight)

    def _mutation_failed(
        self,
        session: int,
        item: StatusItem,
        mutation: PendingMutation,
        exc: Exception,
        message: str,
    ) -> None:
        if session != self._session:
            logger.debug("Ignoring %s failure for closed session (status %s)", mutation.kind.value, item.id)
            return
        if isinstance(exc, StatusStoreError):
            logger.warning("%s on status %s: %s", message, item.id, exc)
        else:
            logger.exception("%s on status %s", message, item.id)
        revert_mutation(item, mutation, self._comments.get(item.id))
        failure = MutationFailure(message, kind=mutation.kind.value, item_id=item.id)
        failure.__cause__ = exc
        self._surface(failure)

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------
    async def load_comments(self) -> list[StatusComment]:
        """Fetch the first page of comments for the current status."""

        item = self._require_current()
        return await self._load_comment_page(item, offset=0)

    async def load_more_comments(self) -> list[StatusComment]:
        item = self._require_current()
        cursor = self._comment_cursors.get(item.id)
        if cursor is None or not cursor.loaded:
            return await self._load_comment_page(item, offset=0)
        if not cursor.has_more:
            return self.comments_for(item.id)
        return await self._load_comment_page(item, offset=cursor.offset)

    async def _load_comment_page(self, item: StatusItem, *, offset: int) -> list[StatusComment]:
        session = self._session
        try:
            page = await self._store.list_comments(item.id, limit=COMMENT_PAGE_SIZE, offset=offset)
        except Exception as exc:
            if session == self._session:
                logger.warning("Loading comments for %s failed: %s", item.id, exc)
                failure = LoadFailure("Failed to load comments", item_id=item.id)
                failure.__cause__ = exc
                self._surface(failure)
            return self.comments_for(item.id)

        if session != self._session:
            return []

        existing = self._comments.setdefault(item.id, [])
        cursor = self._comment_cursors.setdefault(item.id, _CommentCursor())
        if offset == 0:
            pending = [entry for entry in existing if entry.pending]
            known = {entry.id for entry in pending}
            existing[:] = pending + [entry for entry in page.comments if entry.id not in known]
            cursor.offset = len(page.comments)
        else:
            known = {entry.id for entry in existing}
            existing.extend(entry for entry in page.comments if entry.id not in known)
            cursor.offset += len(page.comments)
        cursor.has_more = page.has_more and bool(page.comments)
        cursor.loaded = True
        self._publish()
        return list(existing)

    def has_more_comments(self, item_id: UUID) -> bool:
        cursor = self._comment_cursors.get(item_id)
        return cursor is not None and cursor.has_more


__all__ = [
    "PlaybackSnapshot",
    "PlaybackState",
    "PauseReason",
    "StatusPlaybackController",
]
