"""
Keeps one local GameSession in step with the shared copy in the blob store.

Local actions and remote state replacement both go through `lock`, so a
remote update can never land in the middle of a rules-engine step; a poll
that finds the lock busy simply waits for the next tick. Pushes run on a
single background worker and are best effort: a failed push degrades the
session but never blocks local play.
"""
import logging
import threading
import uuid
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from duel_core import GameSession, TurnEnded, ViewAssignment, summarize_turn
from duel_core.codec import BlobDecodeError, apply_snapshot, decode_session, encode_session
from duel_core.constants import PLAYER_IDS

from .config import SyncSettings
from .errors import SessionNotFoundError, TransportError, VersionConflictError
from .ids import add_session_prefix, strip_session_prefix
from .poller import Poller
from .retry import AttemptResult, Exhausted, Ok, TransportFailure, attempt
from .schemas import RemoteSnapshot
from .store import StoreClient

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    OFFLINE = "offline"
    CONNECTED = "connected"
    DEGRADED = "degraded"


@dataclass
class SyncEvent:
    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)


SyncSubscriber = Callable[[SyncEvent], None]


class SyncSession:
    def __init__(
        self,
        game: GameSession,
        store: StoreClient,
        settings: SyncSettings,
        client_id: Optional[str] = None,
        executor: Optional[Executor] = None,
    ):
        self.game = game
        self.store = store
        self.settings = settings
        self.client_id = client_id or uuid.uuid4().hex[:8]
        self.session_id: Optional[str] = None
        self.version = 0
        self.status = SyncStatus.OFFLINE
        self.failures = 0
        self.last_seen_turn_id = 0
        self.lock = threading.RLock()
        self._poller: Optional[Poller] = None
        self._subscribers: List[SyncSubscriber] = []
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="duel-sync-push")
        self._last_push: Optional[Future] = None
        game.add_turn_end_listener(self._on_turn_end)

    # --- subscriptions ---------------------------------------------------

    def subscribe(self, subscriber: SyncSubscriber):
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: SyncSubscriber):
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def _emit(self, kind: str, **payload):
        event = SyncEvent(kind=kind, payload=payload)
        for subscriber in list(self._subscribers):
            subscriber(event)

    def _set_status(self, status: SyncStatus):
        if self.status == status:
            return
        self.status = status
        logger.info("Sync session %s is now %s.", self.session_id, status.value)
        self._emit("status_changed", status=status.value)

    # --- identity --------------------------------------------------------

    @property
    def local_player(self) -> int:
        return self.game.view.local_player

    @property
    def share_code(self) -> Optional[str]:
        if not self.session_id:
            return None
        return strip_session_prefix(self.session_id, self.settings.game_type)

    @property
    def polling(self) -> bool:
        return self._poller is not None and self._poller.running

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "share_code": self.share_code,
            "version": self.version,
            "status": self.status.value,
            "failures": self.failures,
            "client_id": self.client_id,
            "local_player": self.local_player,
            "polling": self.polling,
        }

    # --- session lifecycle -----------------------------------------------

    def host(self, meta: Optional[Dict[str, Any]] = None) -> str:
        """Publish the local game as a new remote session and start polling. Returns the share code."""
        with self.lock:
            self.game.claim_seat(self.local_player, self.client_id)
            blob = encode_session(self.game)
        created = self.store.create(blob, meta or {"host": self.client_id})
        with self.lock:
            self.session_id = created.session_id
            self.version = created.version
            self.last_seen_turn_id = self.game.history.latest_turn_id()
        self._set_status(SyncStatus.CONNECTED)
        self.start_polling()
        return self.share_code

    def join(self, code: str):
        """Adopt a remote session and take the free seat."""
        session_id = add_session_prefix(code, self.settings.game_type)
        loaded = self.store.load(session_id)
        snapshot = decode_session(loaded.state_blob, verbose=self.game.state.verbose)
        owners = snapshot.state.seat_owners
        seat = next((pid for pid in PLAYER_IDS if owners.get(pid) == self.client_id), None)
        if seat is None:
            seat = next((pid for pid in PLAYER_IDS if not owners.get(pid)), PLAYER_IDS[-1])
        with self.lock:
            apply_snapshot(self.game, snapshot, keep_view=False)
            self.game.view = ViewAssignment(local_player=seat)
            self.game.claim_seat(seat, self.client_id)
            self.session_id = loaded.session_id
            self.version = loaded.version
            self.last_seen_turn_id = 0
            blob = encode_session(self.game)
        self._set_status(SyncStatus.CONNECTED)
        self._schedule_push(blob)
        self._check_catch_up()
        self.start_polling()

    def start_polling(self):
        if self._poller is None:
            self._poller = Poller(self.poll_once, self.settings.poll_interval)
        self._poller.start()

    def stop_polling(self):
        if self._poller is not None:
            self._poller.stop(timeout=self.settings.request_timeout)

    def close(self):
        self.stop_polling()
        self.game.remove_turn_end_listener(self._on_turn_end)
        self._executor.shutdown(wait=True)

    # --- local actions ---------------------------------------------------

    def perform(self, player_id: int, action: str, payload: Optional[Dict[str, Any]] = None) -> bool:
        """Run a local action under the session lock; a finished turn is pushed in the background."""
        with self.lock:
            return self.game.player_action(player_id, action, payload)

    def _on_turn_end(self, event: TurnEnded):
        if not self.session_id:
            return
        # Snapshot now, while still under the action's lock.
        self._schedule_push(encode_session(self.game))

    def _schedule_push(self, blob: Dict[str, Any]):
        self._last_push = self._executor.submit(self.push, blob)

    def flush(self, timeout: Optional[float] = None):
        """Wait for the most recent background push to finish."""
        if self._last_push is not None:
            self._last_push.result(timeout=timeout)

    def push(self, blob: Optional[Dict[str, Any]] = None) -> Optional[AttemptResult]:
        if not self.session_id:
            return None
        with self.lock:
            if blob is None:
                blob = encode_session(self.game)
            version = self.version
            session_id = self.session_id

        result = attempt(
            lambda v: self.store.update_once(session_id, blob, v),
            version,
            self.settings.max_conflict_retries,
        )
        if isinstance(result, Ok):
            with self.lock:
                self.version = max(self.version, result.version)
            self.failures = 0
            self._set_status(SyncStatus.CONNECTED)
            self._emit("pushed", version=result.version, conflicts=result.conflicts)
        elif isinstance(result, Exhausted):
            logger.warning("Push lost to version %d; adopting the remote state.", result.current.version)
            self._adopt(result.current)
            error = VersionConflictError(
                f"Gave up after {result.attempts} version conflicts.", current=result.current
            )
            self._emit("conflict_resolved", version=result.current.version, attempts=result.attempts, error=error)
        elif isinstance(result, TransportFailure):
            logger.warning("Push failed: %s", result.error)
            self._set_status(SyncStatus.DEGRADED)
        return result

    def sync_now(self) -> AttemptResult:
        """
        Push the current state right away. Unlike background pushes, running
        out of conflict retries is reported to the caller, after the remote
        state has been adopted.
        """
        result = self.push()
        if isinstance(result, Exhausted):
            raise VersionConflictError("Remote session moved on; local changes were replaced.", current=result.current)
        return result

    def _adopt(self, current: RemoteSnapshot):
        try:
            snapshot = decode_session(current.state_blob, verbose=self.game.state.verbose)
        except BlobDecodeError as exc:
            logger.error("Remote state at version %d is unreadable: %s", current.version, exc)
            self._set_status(SyncStatus.DEGRADED)
            return
        with self.lock:
            apply_snapshot(self.game, snapshot, keep_view=True)
            self.version = current.version
        self._emit("state_applied", version=current.version)
        self._check_catch_up()

    # --- polling ---------------------------------------------------------

    def poll_once(self) -> bool:
        """One poll of the store. Returns True when a newer remote state was applied."""
        session_id = self.session_id
        if not session_id:
            return False
        try:
            loaded = self.store.load(session_id)
        except SessionNotFoundError as exc:
            logger.error("%s Falling back to offline play.", exc)
            self.session_id = None
            self.stop_polling()
            self._set_status(SyncStatus.OFFLINE)
            self._emit("session_lost", session_id=session_id)
            return False
        except TransportError as exc:
            self._record_failure(exc)
            return False

        self.failures = 0
        self._set_status(SyncStatus.CONNECTED)
        if loaded.version <= self.version:
            return False
        if not self.lock.acquire(blocking=False):
            logger.debug("Local action in progress; deferring version %d to the next poll.", loaded.version)
            return False
        try:
            if loaded.version <= self.version:
                return False
            try:
                snapshot = decode_session(loaded.state_blob, verbose=self.game.state.verbose)
            except BlobDecodeError as exc:
                self._record_failure(exc)
                return False
            apply_snapshot(self.game, snapshot, keep_view=True)
            self.version = loaded.version
        finally:
            self.lock.release()
        self._emit("state_applied", version=loaded.version)
        self._check_catch_up()
        return True

    def _record_failure(self, exc: Exception):
        self.failures += 1
        logger.warning("Poll failed (%d in a row): %s", self.failures, exc)
        if self.failures >= self.settings.degraded_after_failures:
            self._set_status(SyncStatus.DEGRADED)

    # --- turn catch-up ---------------------------------------------------

    def _check_catch_up(self):
        """When the turn has come back to us, report every opponent turn we have not acknowledged yet."""
        with self.lock:
            if self.game.state.current_player != self.local_player:
                return
            turns = self.game.history.opponent_turns_since(self.last_seen_turn_id, self.local_player)
            self.last_seen_turn_id = max(self.last_seen_turn_id, self.game.history.latest_turn_id())
        if not turns:
            return
        summary: List[str] = []
        for turn in turns:
            summary.extend(summarize_turn(turn))
        self._emit("catch_up", turns=[t.to_dict() for t in turns], summary=summary)
