from typing import Optional

from .schemas import RemoteSnapshot


class SyncError(Exception):
    """Base class for everything the remote store can go wrong with."""


class TransportError(SyncError):
    """Network failure, timeout, non-2xx answer or an unreadable body."""


class SessionNotFoundError(SyncError):
    """The store no longer knows the session."""


class VersionConflictError(SyncError):
    """Raised when an update keeps losing against newer versions until retries run out."""

    def __init__(self, message: str, current: Optional[RemoteSnapshot] = None):
        super().__init__(message)
        self.current = current
