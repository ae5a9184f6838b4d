"""
Bounded retry for optimistic-concurrency writes.

A single write attempt answers `Ok` or `Conflict`; `attempt` keeps retrying
conflicts against the store's newer version and reports `Exhausted` once the
retry budget is spent, or `TransportFailure` as soon as the network fails.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from .errors import TransportError
from .schemas import RemoteSnapshot

logger = logging.getLogger(__name__)


@dataclass
class Ok:
    version: int
    session_id: Optional[str] = None
    conflicts: int = 0


@dataclass
class Conflict:
    current: RemoteSnapshot


@dataclass
class Exhausted:
    current: RemoteSnapshot
    attempts: int


@dataclass
class TransportFailure:
    error: TransportError


WriteResult = Union[Ok, Conflict]
AttemptResult = Union[Ok, Exhausted, TransportFailure]


def attempt(op: Callable[[int], WriteResult], version: int, max_retries: int) -> AttemptResult:
    """
    Run `op(version)`. On a conflict retry with the version the store reported,
    up to `max_retries` times after the first try.
    """
    conflicts = 0
    while True:
        try:
            result = op(version)
        except TransportError as exc:
            return TransportFailure(exc)
        if isinstance(result, Ok):
            result.conflicts = conflicts
            return result
        conflicts += 1
        if conflicts > max_retries:
            logger.warning("Giving up after %d version conflicts (remote is at %d).", conflicts, result.current.version)
            return Exhausted(current=result.current, attempts=conflicts)
        logger.info("Version %d is stale, retrying against %d.", version, result.current.version)
        version = result.current.version
