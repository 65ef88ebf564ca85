"""
errors.py - Synchronization error hierarchy

Only NoCachedCopyError ever reaches callers of ListSynchronizer.sync_list();
fetch and processing failures are handled inside the per-list procedure by
falling back to the persisted copy.
"""
from __future__ import annotations


class SyncError(Exception):
    """Base exception for list synchronization errors."""

    pass


class FetchError(SyncError):
    """Raised when a remote list could not be fetched or decoded."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ProcessingError(SyncError):
    """Raised when a fetched payload cannot be normalized."""

    pass


class NoCachedCopyError(SyncError):
    """Raised when a list failed to update and no cached copy exists."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No cached copy of list '{name}' after failed update")
        self.name = name
