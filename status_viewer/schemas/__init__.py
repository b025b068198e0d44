"""Convenience exports for schema layer."""
from .statuses import (
    CommentPage,
    MutationResponse,
    ReactionEmoji,
    ReactionRequest,
    StatusAuthor,
    StatusComment,
    StatusCommentCreate,
    StatusCommentListResponse,
    StatusCommentResponse,
    StatusCounts,
    StatusCreate,
    StatusItem,
    StatusKind,
    StatusListResponse,
    StatusReactionItem,
    StatusReactionListResponse,
    StatusResponse,
    StatusTimeline,
)

__all__ = [
    "CommentPage",
    "MutationResponse",
    "ReactionEmoji",
    "ReactionRequest",
    "StatusAuthor",
    "StatusComment",
    "StatusCommentCreate",
    "StatusCommentListResponse",
    "StatusCommentResponse",
    "StatusCounts",
    "StatusCreate",
    "StatusItem",
    "StatusKind",
    "StatusListResponse",
    "StatusReactionItem",
    "StatusReactionListResponse",
    "StatusResponse",
    "StatusTimeline",
]
