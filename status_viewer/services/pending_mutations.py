"""Optimistic mutations: pre-images for rollback and per-item serialization.

Every optimistic change the viewer makes is recorded as a ``PendingMutation``
holding the values it replaced. ``apply_mutation`` and ``revert_mutation`` are
the only places that touch the item for reactions, comments and views.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, ClassVar, Collection, Union
from uuid import UUID

from ..schemas import ReactionEmoji, StatusComment, StatusCounts, StatusItem

logger = logging.getLogger(__name__)


class MutationKind(str, Enum):
    REACTION = "reaction"
    COMMENT = "comment"
    VIEW = "view"


@dataclass(slots=True)
class ReactionMutation:
    item_id: UUID
    previous_reaction: ReactionEmoji | None
    previous_count: int
    next_reaction: ReactionEmoji | None
    next_count: int

    kind: ClassVar[MutationKind] = MutationKind.REACTION

    @classmethod
    def toggle(cls, item: StatusItem, emoji: ReactionEmoji) -> "ReactionMutation":
        """Same emoji removes the reaction, a different one replaces it."""

        current = item.user_reaction
        count = item.reactions_count
        if current == emoji:
            next_reaction, next_count = None, max(0, count - 1)
        elif current is None:
            next_reaction, next_count = emoji, count + 1
        else:
            next_reaction, next_count = emoji, count
        return cls(
            item_id=item.id,
            previous_reaction=current,
            previous_count=count,
            next_reaction=next_reaction,
            next_count=next_count,
        )

    @property
    def removes(self) -> bool:
        return self.next_reaction is None


@dataclass(slots=True)
class CommentMutation:
    item_id: UUID
    comment: StatusComment
    previous_count: int

    kind: ClassVar[MutationKind] = MutationKind.COMMENT


@dataclass(slots=True)
class ViewMutation:
    item_id: UUID
    previous_viewed: bool
    previous_count: int
    count_delta: int = 1

    kind: ClassVar[MutationKind] = MutationKind.VIEW


PendingMutation = Union[ReactionMutation, CommentMutation, ViewMutation]


def apply_mutation(item: StatusItem, mutation: PendingMutation, comments: list[StatusComment] | None = None) -> None:
    if isinstance(mutation, ReactionMutation):
        item.user_reaction = mutation.next_reaction
        item.reactions_count = mutation.next_count
    elif isinstance(mutation, CommentMutation):
        if comments is not None:
            comments.insert(0, mutation.comment)
        item.comments_count = mutation.previous_count + 1
    elif isinstance(mutation, ViewMutation):
        item.is_viewed = True
        item.views_count = mutation.previous_count + mutation.count_delta
    else:  # pragma: no cover - exhaustive over PendingMutation
        raise TypeError(f"Unknown mutation {mutation!r}")


def revert_mutation(item: StatusItem, mutation: PendingMutation, comments: list[StatusComment] | None = None) -> None:
    if isinstance(mutation, ReactionMutation):
        item.user_reaction = mutation.previous_reaction
        item.reactions_count = mutation.previous_count
    elif isinstance(mutation, CommentMutation):
        if comments is not None:
            comments[:] = [entry for entry in comments if entry is not mutation.comment]
        item.comments_count = mutation.previous_count
    elif isinstance(mutation, ViewMutation):
        item.is_viewed = mutation.previous_viewed
        item.views_count = mutation.previous_count
    else:  # pragma: no cover - exhaustive over PendingMutation
        raise TypeError(f"Unknown mutation {mutation!r}")


def confirm_comment(comments: list[StatusComment], optimistic: StatusComment, confirmed: StatusComment) -> None:
    """Swap the optimistic comment for the store's copy, keeping its position."""

    for index, entry in enumerate(comments):
        if entry is optimistic:
            comments[index] = confirmed
            return
    if all(entry.id != confirmed.id for entry in comments):
        comments.insert(0, confirmed)


_COUNTER_FIELDS = {
    MutationKind.REACTION: "reactions_count",
    MutationKind.COMMENT: "comments_count",
    MutationKind.VIEW: "views_count",
}


def reconcile_counts(item: StatusItem, counts: StatusCounts, *, keep: Collection[MutationKind] = ()) -> None:
    """Copy the store's counters onto ``item``.

    Counters of the kinds in ``keep`` still carry an optimistic change whose
    round trip has not settled; they are left as they are and get reconciled
    when that mutation completes.
    """

    for kind, field in _COUNTER_FIELDS.items():
        if kind not in keep:
            setattr(item, field, getattr(counts, field))


MutationStep = Callable[[], Union[Awaitable[None], None]]


class MutationLedger:
    """Serializes mutations per (item, kind); different keys run independently.

    ``submit`` takes a ``begin`` callable that applies the optimistic change and
    returns the awaitable remote round trip. When nothing is in flight for the
    key, ``begin`` runs before ``submit`` returns; otherwise it runs once the
    previous mutation for the key has settled.
    """

    def __init__(self) -> None:
        self._tails: dict[tuple[UUID, MutationKind], asyncio.Task[None]] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._abandoned = False

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    def is_busy(self, item_id: UUID, kind: MutationKind) -> bool:
        tail = self._tails.get((item_id, kind))
        return tail is not None and not tail.done()

    def submit(self, item_id: UUID, kind: MutationKind, begin: MutationStep) -> asyncio.Task[None]:
        if self._abandoned:
            raise RuntimeError("Mutation ledger has been abandoned")

        key = (item_id, kind)
        previous = self._tails.get(key)
        if previous is None or previous.done():
            task = asyncio.ensure_future(self._run(begin()))
        else:
            logger.debug("Queueing %s mutation for %s behind in-flight one", kind.value, item_id)
            task = asyncio.ensure_future(self._chain(previous, begin))

        self._tails[key] = task
        self._tasks.add(task)
        task.add_done_callback(lambda done: self._settled(key, done))
        return task

    async def _run(self, remote: Awaitable[None] | None) -> None:
        if remote is not None:
            await remote

    async def _chain(self, previous: asyncio.Task[None], begin: MutationStep) -> None:
        await asyncio.wait({previous})
        if self._abandoned:
            return
        await self._run(begin())

    def _settled(self, key: tuple[UUID, MutationKind], task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if self._tails.get(key) is task:
            del self._tails[key]
        if not task.cancelled() and task.exception() is not None:
            logger.error("Mutation task for %s failed", key[0], exc_info=task.exception())

    def abandon(self) -> None:
        """Stop starting queued mutations; in-flight remote calls finish in the background."""

        self._abandoned = True
        self._tails.clear()

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


__all__ = [
    "MutationKind",
    "ReactionMutation",
    "CommentMutation",
    "ViewMutation",
    "PendingMutation",
    "apply_mutation",
    "revert_mutation",
    "confirm_comment",
    "reconcile_counts",
    "MutationLedger",
]
