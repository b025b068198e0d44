"""Pruning of statuses whose 24-hour window has closed."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Status, StatusComment, StatusReaction, StatusView

logger = logging.getLogger(__name__)

# Engagement tables keyed by ``status_id``, emptied before their parents.
_CHILD_TABLES = (
    ("views", StatusView),
    ("reactions", StatusReaction),
    ("comments", StatusComment),
)


class CleanupError(RuntimeError):
    """Raised when expired statuses could not be pruned."""


@dataclass(frozen=True, slots=True)
class CleanupSummary:
    statuses: int
    views: int = 0
    reactions: int = 0
    comments: int = 0

    @property
    def total(self) -> int:
        return self.statuses + self.views + self.reactions + self.comments


def _count_deleted(session: Session, model, *criteria) -> int:
    statement = delete(model).where(*criteria).returning(model.id)
    return len(session.execute(statement).scalars().all())


def perform_cleanup(
    session: Session,
    *,
    now: datetime | None = None,
    grace: timedelta = timedelta(0),
) -> CleanupSummary:
    """Delete statuses that expired at least ``grace`` ago, with their views, reactions and comments.

    Child rows are removed explicitly, so SQLite databases without foreign key
    enforcement are pruned the same way as Postgres.

    Raises
    ------
    ValueError
        If ``grace`` is negative.
    CleanupError
        If the database rejects a delete; nothing is committed in that case.
    """

    if grace < timedelta(0):
        raise ValueError("grace must not be negative")

    cutoff = (now or datetime.now(timezone.utc)) - grace
    expired_ids = select(Status.id).where(Status.expires_at < cutoff)

    try:
        removed = {
            label: _count_deleted(session, model, model.status_id.in_(expired_ids))
            for label, model in _CHILD_TABLES
        }
        removed["statuses"] = _count_deleted(session, Status, Status.expires_at < cutoff)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Expired status cleanup failed; rolled back")
        raise CleanupError("status cleanup failed") from exc

    summary = CleanupSummary(**removed)
    if summary.total:
        logger.info(
            "Pruned %d expired statuses (views=%d, reactions=%d, comments=%d)",
            summary.statuses,
            summary.views,
            summary.reactions,
            summary.comments,
        )
    else:
        logger.debug("No expired statuses to prune")
    return summary


def run_cleanup(
    session_factory: Callable[[], Session],
    *,
    now: datetime | None = None,
    grace: timedelta = timedelta(0),
) -> CleanupSummary:
    """Open a session from ``session_factory`` for one cleanup pass and close it afterwards."""

    with session_factory() as session:
        return perform_cleanup(session, now=now, grace=grace)


__all__ = [
    "CleanupError",
    "CleanupSummary",
    "perform_cleanup",
    "run_cleanup",
]
