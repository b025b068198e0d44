"""Aggregate router exports."""
from .statuses import router as statuses_router

__all__ = ["statuses_router"]
