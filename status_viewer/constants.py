"""Project-wide constant values."""
from __future__ import annotations

from datetime import timedelta

ITEM_DURATION_MS = 5000  # every status plays for the same fixed time
DRAG_THRESHOLD_PX = 100

COMMENT_MAX_LENGTH = 500
COMMENT_PAGE_SIZE = 50
STATUS_CONTENT_MAX_LENGTH = 500

STATUS_LIFETIME = timedelta(hours=24)
DEFAULT_BACKGROUND_COLOR = "#1a1f3a"
BACKGROUND_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"

FEED_DEFAULT_LIMIT = 100
USER_STATUSES_DEFAULT_LIMIT = 50

__all__ = [
    "ITEM_DURATION_MS",
    "DRAG_THRESHOLD_PX",
    "COMMENT_MAX_LENGTH",
    "COMMENT_PAGE_SIZE",
    "STATUS_CONTENT_MAX_LENGTH",
    "STATUS_LIFETIME",
    "DEFAULT_BACKGROUND_COLOR",
    "BACKGROUND_COLOR_PATTERN",
    "FEED_DEFAULT_LIMIT",
    "USER_STATUSES_DEFAULT_LIMIT",
]
