"""Exception types shared by the sync layer."""
from __future__ import annotations

from typing import Optional


class SyncError(Exception):
    """Base class for offline sync failures."""


class OfflineError(SyncError):
    """A sync was requested while the device is offline."""

    def __init__(self, message: str = "Cannot sync while offline") -> None:
        super().__init__(message)


class RemoteOperationError(SyncError):
    """The remote store rejected or failed to complete a mutation."""

    def __init__(self, message: str, *, status: Optional[int] = None, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.detail = detail


class StorageError(SyncError):
    """The local store could not read or persist data."""


__all__ = ["SyncError", "OfflineError", "RemoteOperationError", "StorageError"]
