"""SQLAlchemy ORM models for 24-hour statuses and their engagement."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from status_viewer.constants import DEFAULT_BACKGROUND_COLOR
from status_viewer.database import Base


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back without tzinfo.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class Status(Base):
    __tablename__ = "statuses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status_type = Column(String(20), nullable=False)
    content = Column(Text, nullable=True)
    media_url = Column(Text, nullable=True)
    media_type = Column(String(100), nullable=True)
    background_color = Column(String(7), nullable=False, default=DEFAULT_BACKGROUND_COLOR, server_default=DEFAULT_BACKGROUND_COLOR)
    views_count = Column(Integer, nullable=False, default=0, server_default="0")
    reactions_count = Column(Integer, nullable=False, default=0, server_default="0")
    comments_count = Column(Integer, nullable=False, default=0, server_default="0")
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    author = relationship("User", back_populates="statuses")
    views = relationship("StatusView", back_populates="status", cascade="all, delete-orphan")
    reactions = relationship("StatusReaction", back_populates="status", cascade="all, delete-orphan")
    comments = relationship("StatusComment", back_populates="status", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("status_type IN ('text', 'image', 'video')", name="ck_statuses_status_type"),
        CheckConstraint("views_count >= 0 AND reactions_count >= 0 AND comments_count >= 0", name="ck_statuses_counts"),
    )

    def is_active(self, *, reference: datetime | None = None) -> bool:
        reference = reference or datetime.now(timezone.utc)
        return reference <= _as_utc(self.expires_at)


class StatusView(Base):
    __tablename__ = "status_views"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    status_id = Column(UUID(as_uuid=True), ForeignKey("statuses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    viewed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    status = relationship("Status", back_populates="views")

    __table_args__ = (UniqueConstraint("status_id", "user_id", name="uq_status_views_status_user"),)


class StatusReaction(Base):
    __tablename__ = "status_reactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    status_id = Column(UUID(as_uuid=True), ForeignKey("statuses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    emoji = Column(String(10), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    status = relationship("Status", back_populates="reactions")
    user = relationship("User")

    __table_args__ = (UniqueConstraint("status_id", "user_id", name="uq_status_reactions_status_user"),)


class StatusComment(Base):
    __tablename__ = "status_comments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    status_id = Column(UUID(as_uuid=True), ForeignKey("statuses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    status = relationship("Status", back_populates="comments")
    user = relationship("User")


__all__ = ["Status", "StatusView", "StatusReaction", "StatusComment"]
