"""API routes for 24-hour statuses and their engagement."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..constants import COMMENT_PAGE_SIZE, FEED_DEFAULT_LIMIT, USER_STATUSES_DEFAULT_LIMIT
from ..database import get_session
from ..models import User
from ..schemas import (
    MutationResponse,
    ReactionRequest,
    StatusCommentCreate,
    StatusCommentListResponse,
    StatusCommentResponse,
    StatusCounts,
    StatusCreate,
    StatusItem,
    StatusListResponse,
    StatusReactionItem,
    StatusReactionListResponse,
    StatusResponse,
)
from ..services import (
    clear_reaction,
    create_comment,
    create_status,
    delete_comment,
    delete_status,
    get_current_user,
    get_optional_user,
    get_status,
    list_comments,
    list_feed_statuses,
    list_reactions,
    list_user_statuses,
    record_view,
    set_reaction,
    status_counts,
)

router = APIRouter(prefix="/v1/statuses", tags=["statuses"])


def _viewer_id(viewer: User | None) -> UUID | None:
    return viewer.id if viewer is not None else None


def _counts(record) -> StatusCounts:
    return StatusCounts(**status_counts(record))


def _status_list(entries: list[dict], limit: int) -> StatusListResponse:
    return StatusListResponse(
        statuses=[StatusItem(**entry) for entry in entries],
        total=len(entries),
        has_more=len(entries) >= limit,
    )


@router.post("/", response_model=StatusResponse, status_code=status.HTTP_201_CREATED)
async def create_status_endpoint(
    payload: StatusCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> StatusResponse:
    entry = create_status(db, user_id=current_user.id, payload=payload)
    return StatusResponse(status=StatusItem(**entry), message="Status created successfully")


@router.get("/feed", response_model=StatusListResponse)
async def list_feed_endpoint(
    limit: int = Query(FEED_DEFAULT_LIMIT, ge=1, le=FEED_DEFAULT_LIMIT),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> StatusListResponse:
    return _status_list(list_feed_statuses(db, viewer_id=_viewer_id(viewer), limit=limit), limit)


@router.get("/user/{user_id}", response_model=StatusListResponse)
async def list_user_statuses_endpoint(
    user_id: UUID,
    limit: int = Query(USER_STATUSES_DEFAULT_LIMIT, ge=1, le=FEED_DEFAULT_LIMIT),
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> StatusListResponse:
    entries = list_user_statuses(db, author_id=user_id, viewer_id=_viewer_id(viewer), limit=limit)
    return _status_list(entries, limit)


@router.delete("/comments/{comment_id}", response_model=MutationResponse)
async def delete_comment_endpoint(
    comment_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> MutationResponse:
    record = delete_comment(db, comment_id=comment_id, user_id=current_user.id)
    return MutationResponse(message="Comment deleted", counts=_counts(record))


@router.get("/{status_id}", response_model=StatusResponse)
async def get_status_endpoint(
    status_id: UUID,
    db: Session = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> StatusResponse:
    return StatusResponse(status=StatusItem(**get_status(db, status_id=status_id, viewer_id=_viewer_id(viewer))))


@router.delete("/{status_id}", response_model=MutationResponse)
async def delete_status_endpoint(
    status_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> MutationResponse:
    delete_status(db, status_id=status_id, user_id=current_user.id)
    return MutationResponse(message="Status deleted successfully")


@router.post("/{status_id}/view", response_model=MutationResponse)
async def record_view_endpoint(
    status_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> MutationResponse:
    record = record_view(db, status_id=status_id, viewer_id=current_user.id)
    return MutationResponse(message="View recorded", counts=_counts(record))


@router.post("/{status_id}/react", response_model=MutationResponse)
async def react_endpoint(
    status_id: UUID,
    payload: ReactionRequest,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> MutationResponse:
    record = set_reaction(db, status_id=status_id, user_id=current_user.id, emoji=payload.emoji)
    return MutationResponse(message="Reaction added", counts=_counts(record))


@router.delete("/{status_id}/react", response_model=MutationResponse)
async def remove_reaction_endpoint(
    status_id: UUID,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> MutationResponse:
    record = clear_reaction(db, status_id=status_id, user_id=current_user.id)
    return MutationResponse(message="Reaction removed", counts=_counts(record))


@router.get("/{status_id}/reactions", response_model=StatusReactionListResponse)
async def list_reactions_endpoint(
    status_id: UUID,
    limit: int = Query(FEED_DEFAULT_LIMIT, ge=1, le=FEED_DEFAULT_LIMIT),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> StatusReactionListResponse:
    entries = list_reactions(db, status_id=status_id, limit=limit)
    return StatusReactionListResponse(reactions=[StatusReactionItem(**entry) for entry in entries])


@router.post("/{status_id}/comments", response_model=StatusCommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment_endpoint(
    status_id: UUID,
    payload: StatusCommentCreate,
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> StatusCommentResponse:
    comment, record = create_comment(db, status_id=status_id, user_id=current_user.id, content=payload.content)
    return StatusCommentResponse(comment=comment, counts=_counts(record), message="Comment added")


@router.get("/{status_id}/comments", response_model=StatusCommentListResponse)
async def list_comments_endpoint(
    status_id: UUID,
    limit: int = Query(COMMENT_PAGE_SIZE, ge=1, le=FEED_DEFAULT_LIMIT),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> StatusCommentListResponse:
    comments, total = list_comments(db, status_id=status_id, limit=limit, offset=offset)
    return StatusCommentListResponse(comments=comments, total=total, has_more=offset + len(comments) < total)


__all__ = ["router"]
