"""Grouping and ordering of status feeds into per-author timelines."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable
from uuid import UUID

from ..schemas import StatusAuthor, StatusItem, StatusTimeline


def _now() -> datetime:
    return datetime.now(timezone.utc)


def filter_active(items: Iterable[StatusItem], now: datetime | None = None) -> list[StatusItem]:
    """Drop statuses that have already expired."""

    reference = now or _now()
    return [item for item in items if not item.is_expired(reference)]


def sort_newest_first(items: Iterable[StatusItem]) -> list[StatusItem]:
    return sorted(items, key=lambda item: item.created_at, reverse=True)


def build_timeline(
    author_id: UUID,
    items: Iterable[StatusItem],
    *,
    author: StatusAuthor | None = None,
    viewer_id: UUID | None = None,
) -> StatusTimeline:
    ordered = sort_newest_first(items)
    if author is None:
        author = next((item.author for item in ordered if item.author is not None), None)
    return StatusTimeline(
        author_id=author_id,
        author=author,
        items=ordered,
        is_own=viewer_id is not None and author_id == viewer_id,
    )


def _timeline_rank(timeline: StatusTimeline) -> tuple[int, int, float]:
    newest = timeline.newest_created_at
    newest_ts = newest.timestamp() if newest is not None else float("-inf")
    return (0 if timeline.is_own else 1, 0 if timeline.has_unviewed else 1, -newest_ts)


def group_feed(
    items: Iterable[StatusItem],
    *,
    viewer_id: UUID | None = None,
    own_items: Iterable[StatusItem] | None = None,
    now: datetime | None = None,
) -> list[StatusTimeline]:
    """Group a flat feed into timelines: own first, then unviewed, then most recent.

    ``own_items`` lets callers pass the viewer's own statuses fetched separately;
    they replace whatever own statuses the feed contained.
    """

    reference = now or _now()
    buckets: dict[UUID, list[StatusItem]] = {}
    authors: dict[UUID, StatusAuthor | None] = {}

    if own_items is not None and viewer_id is not None:
        own = filter_active(own_items, reference)
        if own:
            buckets[viewer_id] = own

    for item in filter_active(items, reference):
        if own_items is not None and item.user_id == viewer_id:
            continue
        buckets.setdefault(item.user_id, []).append(item)
        if item.author is not None:
            authors.setdefault(item.user_id, item.author)

    timelines = [
        build_timeline(author_id, bucket, author=authors.get(author_id), viewer_id=viewer_id)
        for author_id, bucket in buckets.items()
    ]
    timelines.sort(key=_timeline_rank)
    return timelines


__all__ = ["filter_active", "sort_newest_first", "build_timeline", "group_feed"]
