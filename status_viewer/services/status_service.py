"""Business logic for 24-hour statuses, their views, reactions and comments."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import DEFAULT_BACKGROUND_COLOR, STATUS_LIFETIME
from ..models import Status, StatusComment, StatusReaction, StatusView, User
from ..schemas import ReactionEmoji, StatusCreate

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _commit(db: Session, failure_detail: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("%s", failure_detail)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=failure_detail) from exc


def _decrement(column):
    return case((column > 0, column - 1), else_=0)


def _serialize_author(user: User | None) -> dict[str, Any] | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "display_name": user.display_name,
        "avatar_url": user.avatar_url,
    }


def status_counts(record: Status) -> dict[str, int]:
    return {
        "views_count": int(record.views_count or 0),
        "reactions_count": int(record.reactions_count or 0),
        "comments_count": int(record.comments_count or 0),
    }


def _serialize_status(record: Status, *, viewed: bool, reaction: str | None) -> dict[str, Any]:
    return {
        "id": record.id,
        "user_id": record.user_id,
        "status_type": record.status_type,
        "content": record.content,
        "media_url": record.media_url,
        "media_type": record.media_type,
        "background_color": record.background_color or DEFAULT_BACKGROUND_COLOR,
        **status_counts(record),
        "created_at": _as_utc(record.created_at),
        "expires_at": _as_utc(record.expires_at),
        "updated_at": _as_utc(record.updated_at),
        "author": _serialize_author(record.author),
        "is_viewed": viewed,
        "user_reaction": reaction,
    }


def _serialize_many(db: Session, records: Iterable[Status], viewer_id: UUID | None) -> list[dict[str, Any]]:
    records = list(records)
    viewed: set[UUID] = set()
    reactions: dict[UUID, str] = {}
    if viewer_id is not None and records:
        ids = [record.id for record in records]
        viewed = set(
            db.scalars(select(StatusView.status_id).where(StatusView.status_id.in_(ids), StatusView.user_id == viewer_id))
        )
        for status_id, emoji in db.execute(
            select(StatusReaction.status_id, StatusReaction.emoji).where(
                StatusReaction.status_id.in_(ids), StatusReaction.user_id == viewer_id
            )
        ):
            reactions[status_id] = emoji
    return [
        _serialize_status(
            record,
            # Authors have always seen their own statuses.
            viewed=record.id in viewed or record.user_id == viewer_id,
            reaction=reactions.get(record.id),
        )
        for record in records
    ]


def _get_status_or_404(db: Session, status_id: UUID) -> Status:
    record = db.get(Status, status_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Status not found")
    return record


def _get_active_status(db: Session, status_id: UUID) -> Status:
    record = _get_status_or_404(db, status_id)
    if not record.is_active(reference=_now()):
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="Status has expired")
    return record


def create_status(db: Session, *, user_id: UUID, payload: StatusCreate) -> dict[str, Any]:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    now = _now()
    record = Status(
        user_id=user_id,
        status_type=payload.status_type.value,
        content=(payload.content or "").strip() or None,
        media_url=(payload.media_url or "").strip() or None,
        media_type=(payload.media_type or "").strip() or None,
        background_color=payload.background_color or DEFAULT_BACKGROUND_COLOR,
        created_at=now,
        updated_at=now,
        expires_at=now + STATUS_LIFETIME,
    )
    db.add(record)
    _commit(db, "Failed to create status")
    db.refresh(record)
    logger.info("User %s created %s status %s", user_id, record.status_type, record.id)
    return _serialize_status(record, viewed=True, reaction=None)


def list_user_statuses(db: Session, *, author_id: UUID, viewer_id: UUID | None, limit: int) -> list[dict[str, Any]]:
    statement = (
        select(Status)
        .where(Status.user_id == author_id, Status.expires_at >= _now())
        .order_by(Status.created_at.desc())
        .limit(limit)
    )
    return _serialize_many(db, db.scalars(statement).all(), viewer_id)


def list_feed_statuses(db: Session, *, viewer_id: UUID | None, limit: int) -> list[dict[str, Any]]:
    statement = (
        select(Status)
        .join(User, Status.user_id == User.id)
        .where(Status.expires_at >= _now())
        .order_by(Status.created_at.desc())
        .limit(limit)
    )
    return _serialize_many(db, db.scalars(statement).all(), viewer_id)


def get_status(db: Session, *, status_id: UUID, viewer_id: UUID | None) -> dict[str, Any]:
    record = _get_active_status(db, status_id)
    return _serialize_many(db, [record], viewer_id)[0]


def delete_status(db: Session, *, status_id: UUID, user_id: UUID) -> None:
    record = _get_status_or_404(db, status_id)
    if record.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to access this status")
    db.delete(record)
    _commit(db, "Failed to delete status")


def record_view(db: Session, *, status_id: UUID, viewer_id: UUID) -> Status:
    """Record a view once per viewer; repeated calls and the author's own views are no-ops."""

    record = _get_active_status(db, status_id)
    if record.user_id == viewer_id:
        return record

    existing = db.scalar(select(StatusView.id).where(StatusView.status_id == status_id, StatusView.user_id == viewer_id))
    if existing is not None:
        return record

    db.add(StatusView(status_id=status_id, user_id=viewer_id, viewed_at=_now()))
    record.views_count = Status.views_count + 1
    _commit(db, "Failed to record view")
    db.refresh(record)
    return record


def set_reaction(db: Session, *, status_id: UUID, user_id: UUID, emoji: ReactionEmoji) -> Status:
    """Set the viewer's single reaction; replacing one keeps the count unchanged."""

    record = _get_active_status(db, status_id)
    existing = db.scalar(
        select(StatusReaction).where(StatusReaction.status_id == status_id, StatusReaction.user_id == user_id)
    )
    if existing is None:
        db.add(StatusReaction(status_id=status_id, user_id=user_id, emoji=emoji.value, created_at=_now()))
        record.reactions_count = Status.reactions_count + 1
    else:
        existing.emoji = emoji.value
    _commit(db, "Failed to update reaction")
    db.refresh(record)
    return record


def clear_reaction(db: Session, *, status_id: UUID, user_id: UUID) -> Status:
    record = _get_status_or_404(db, status_id)
    existing = db.scalar(
        select(StatusReaction).where(StatusReaction.status_id == status_id, StatusReaction.user_id == user_id)
    )
    if existing is None:
        return record
    db.delete(existing)
    record.reactions_count = _decrement(Status.reactions_count)
    _commit(db, "Failed to remove reaction")
    db.refresh(record)
    return record


def list_reactions(db: Session, *, status_id: UUID, limit: int) -> list[dict[str, Any]]:
    _get_status_or_404(db, status_id)
    statement = (
        select(StatusReaction, User)
        .join(User, StatusReaction.user_id == User.id)
        .where(StatusReaction.status_id == status_id)
        .order_by(StatusReaction.created_at.desc())
        .limit(limit)
    )
    return [
        {
            "id": reaction.id,
            "status_id": reaction.status_id,
            "user_id": reaction.user_id,
            "emoji": reaction.emoji,
            "created_at": _as_utc(reaction.created_at),
            "user": _serialize_author(user),
        }
        for reaction, user in db.execute(statement).all()
    ]


def _serialize_comment(comment: StatusComment, author: User | None) -> dict[str, Any]:
    return {
        "id": comment.id,
        "status_id": comment.status_id,
        "user_id": comment.user_id,
        "content": comment.content,
        "created_at": _as_utc(comment.created_at),
        "author": _serialize_author(author),
    }


def create_comment(db: Session, *, status_id: UUID, user_id: UUID, content: str) -> tuple[dict[str, Any], Status]:
    record = _get_active_status(db, status_id)
    now = _now()
    comment = StatusComment(status_id=status_id, user_id=user_id, content=content, created_at=now, updated_at=now)
    db.add(comment)
    record.comments_count = Status.comments_count + 1
    _commit(db, "Failed to add comment")
    db.refresh(record)
    return _serialize_comment(comment, db.get(User, user_id)), record


def list_comments(db: Session, *, status_id: UUID, limit: int, offset: int) -> tuple[list[dict[str, Any]], int]:
    """Return one page of visible comments, newest first, and the total count."""

    _get_status_or_404(db, status_id)
    visible = (StatusComment.status_id == status_id, StatusComment.deleted_at.is_(None))
    total = db.scalar(select(func.count(StatusComment.id)).where(*visible)) or 0
    statement = (
        select(StatusComment, User)
        .outerjoin(User, StatusComment.user_id == User.id)
        .where(*visible)
        .order_by(StatusComment.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    comments = [_serialize_comment(comment, author) for comment, author in db.execute(statement).all()]
    return comments, int(total)


def delete_comment(db: Session, *, comment_id: UUID, user_id: UUID) -> Status:
    comment = db.get(StatusComment, comment_id)
    if comment is None or comment.deleted_at is not None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    if comment.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to delete this comment")

    record = _get_status_or_404(db, comment.status_id)
    comment.deleted_at = _now()
    record.comments_count = _decrement(Status.comments_count)
    _commit(db, "Failed to delete comment")
    db.refresh(record)
    return record


__all__ = [
    "clear_reaction",
    "create_comment",
    "create_status",
    "delete_comment",
    "delete_status",
    "get_status",
    "list_comments",
    "list_feed_statuses",
    "list_reactions",
    "list_user_statuses",
    "record_view",
    "set_reaction",
    "status_counts",
]
