"""
Synchronization client keeping two clients' copies of a Splendor Duel table
consistent through a versioned blob store polled over HTTP.
"""

from .config import SyncSettings
from .errors import SessionNotFoundError, SyncError, TransportError, VersionConflictError
from .ids import add_session_prefix, strip_session_prefix
from .poller import Poller
from .retry import Conflict, Exhausted, Ok, TransportFailure, attempt
from .store import StoreClient
from .sync_session import SyncEvent, SyncSession, SyncStatus

__all__ = [
    "SyncSettings",
    "SyncError",
    "TransportError",
    "SessionNotFoundError",
    "VersionConflictError",
    "add_session_prefix",
    "strip_session_prefix",
    "Poller",
    "Ok",
    "Conflict",
    "Exhausted",
    "TransportFailure",
    "attempt",
    "StoreClient",
    "SyncSession",
    "SyncStatus",
    "SyncEvent",
]
