"""Clients for remote collaborators."""
from .status_store import HttpStatusStore, StatusStore, StatusStoreError

__all__ = ["HttpStatusStore", "StatusStore", "StatusStoreError"]
