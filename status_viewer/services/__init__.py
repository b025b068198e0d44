"""Convenience exports for service layer."""
from .auth_service import create_access_token, decode_access_token, get_current_user, get_optional_user
from .cleanup_service import CleanupError, CleanupSummary, perform_cleanup, run_cleanup
from .status_service import (
    clear_reaction,
    create_comment,
    create_status,
    delete_comment,
    delete_status,
    get_status,
    list_comments,
    list_feed_statuses,
    list_reactions,
    list_user_statuses,
    record_view,
    set_reaction,
    status_counts,
)

__all__ = [
    "CleanupError",
    "CleanupSummary",
    "clear_reaction",
    "create_access_token",
    "create_comment",
    "create_status",
    "decode_access_token",
    "delete_comment",
    "delete_status",
    "get_current_user",
    "get_optional_user",
    "get_status",
    "list_comments",
    "list_feed_statuses",
    "list_reactions",
    "list_user_statuses",
    "perform_cleanup",
    "record_view",
    "run_cleanup",
    "set_reaction",
    "status_counts",
]
