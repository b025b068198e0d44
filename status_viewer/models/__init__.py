"""Convenience exports for ORM models."""
from .status import Status, StatusComment, StatusReaction, StatusView
from .user import User

__all__ = [
    "Status",
    "StatusComment",
    "StatusReaction",
    "StatusView",
    "User",
]
