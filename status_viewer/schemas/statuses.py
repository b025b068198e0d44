"""Pydantic schemas for 24-hour statuses, their reactions and comments."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..constants import (
    BACKGROUND_COLOR_PATTERN,
    COMMENT_MAX_LENGTH,
    DEFAULT_BACKGROUND_COLOR,
    STATUS_CONTENT_MAX_LENGTH,
)


class StatusKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


class ReactionEmoji(str, Enum):
    LIKE = "👍"
    FULLY = "💯"
    APPRECIATE = "❤️"
    SUPPORT = "🤝"
    INSIGHTFUL = "💡"


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class StatusAuthor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None


class StatusItem(BaseModel):
    """A single status as seen by one viewer.

    Counters and the viewer-scoped fields (``is_viewed``, ``user_reaction``) are
    the only attributes that change after creation; the playback controller
    mutates them optimistically and reconciles them with the store.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    status_type: StatusKind
    content: str | None = None
    media_url: str | None = None
    media_type: str | None = None
    background_color: str = DEFAULT_BACKGROUND_COLOR
    views_count: int = Field(default=0, ge=0)
    reactions_count: int = Field(default=0, ge=0)
    comments_count: int = Field(default=0, ge=0)
    created_at: datetime
    expires_at: datetime
    updated_at: datetime | None = None
    author: StatusAuthor | None = None
    is_viewed: bool = False
    user_reaction: ReactionEmoji | None = None

    @field_validator("created_at", "expires_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        return _utc(value) if value is not None else None

    @model_validator(mode="after")
    def _check_payload(self) -> "StatusItem":
        if self.status_type is StatusKind.TEXT:
            if not (self.content or "").strip():
                raise ValueError("Text statuses require content")
        elif not (self.media_url or "").strip():
            raise ValueError(f"{self.status_type.value.capitalize()} statuses require a media URL")
        return self

    def is_expired(self, now: datetime | None = None) -> bool:
        reference = now or datetime.now(timezone.utc)
        return reference > self.expires_at

    def remaining(self, now: datetime | None = None) -> timedelta:
        reference = now or datetime.now(timezone.utc)
        return max(timedelta(0), self.expires_at - reference)


class StatusComment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status_id: UUID
    user_id: UUID | None = None
    content: str
    created_at: datetime
    author: StatusAuthor | None = None
    # Set on comments created locally that the store has not confirmed yet.
    pending: bool = False

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return _utc(value)


class CommentPage(BaseModel):
    comments: list[StatusComment]
    total: int = 0
    has_more: bool = False


class StatusCounts(BaseModel):
    """Authoritative engagement counters returned after a mutation."""

    model_config = ConfigDict(from_attributes=True)

    views_count: int = Field(ge=0)
    reactions_count: int = Field(ge=0)
    comments_count: int = Field(ge=0)


class StatusTimeline(BaseModel):
    author_id: UUID
    author: StatusAuthor | None = None
    items: list[StatusItem]
    is_own: bool = False

    @property
    def has_unviewed(self) -> bool:
        if self.is_own:
            return False
        return any(not item.is_viewed for item in self.items)

    @property
    def newest_created_at(self) -> datetime | None:
        if not self.items:
            return None
        return max(item.created_at for item in self.items)


class StatusCreate(BaseModel):
    status_type: StatusKind
    content: str | None = Field(default=None, max_length=STATUS_CONTENT_MAX_LENGTH)
    media_url: str | None = Field(default=None, max_length=2048)
    media_type: str | None = Field(default=None, max_length=100)
    background_color: str | None = Field(default=None, pattern=BACKGROUND_COLOR_PATTERN)

    @model_validator(mode="after")
    def _check_kind_payload(self) -> "StatusCreate":
        if self.status_type is StatusKind.TEXT:
            if not (self.content or "").strip():
                raise ValueError("Content is required for text statuses")
        else:
            if not (self.media_url or "").strip():
                raise ValueError("Media URL is required for image/video statuses")
            if not (self.media_type or "").strip():
                raise ValueError("Media type is required for image/video statuses")
        return self


class ReactionRequest(BaseModel):
    emoji: ReactionEmoji


class StatusCommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=COMMENT_MAX_LENGTH)

    @field_validator("content")
    @classmethod
    def _strip(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Comment cannot be blank")
        return cleaned


class StatusResponse(BaseModel):
    success: bool = True
    status: StatusItem
    message: str | None = None


class StatusListResponse(BaseModel):
    success: bool = True
    statuses: list[StatusItem]
    total: int
    has_more: bool = False


class StatusCommentResponse(BaseModel):
    success: bool = True
    comment: StatusComment
    counts: StatusCounts | None = None
    message: str | None = None


class StatusCommentListResponse(BaseModel):
    success: bool = True
    comments: list[StatusComment]
    total: int
    has_more: bool = False


class StatusReactionItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status_id: UUID
    user_id: UUID
    emoji: ReactionEmoji
    created_at: datetime
    user: StatusAuthor | None = None


class StatusReactionListResponse(BaseModel):
    success: bool = True
    reactions: list[StatusReactionItem]


class MutationResponse(BaseModel):
    success: bool = True
    message: str | None = None
    counts: StatusCounts | None = None


__all__ = [
    "StatusKind",
    "ReactionEmoji",
    "StatusAuthor",
    "StatusItem",
    "StatusComment",
    "CommentPage",
    "StatusCounts",
    "StatusTimeline",
    "StatusCreate",
    "ReactionRequest",
    "StatusCommentCreate",
    "StatusResponse",
    "StatusListResponse",
    "StatusCommentResponse",
    "StatusCommentListResponse",
    "StatusReactionItem",
    "StatusReactionListResponse",
    "MutationResponse",
]
