"""
State blob codec.

The blob is the JSON document the sync layer stores remotely: the whole game
state plus the side state a client needs to resume (view assignment, crown
marks, turn flags and the turn history). Decoding builds fresh objects and
never touches a live session, so a bad blob cannot half-apply.
"""
from dataclasses import dataclass, field
from typing import Any, Dict

from .constants import PLAYER_IDS
from .history import TurnHistory
from .lifecycle import TurnContext
from .models import GameState
from .session import GameSession, ViewAssignment

BLOB_FORMAT = 1


class BlobDecodeError(ValueError):
    """Raised when a state blob cannot be turned back into a game."""


@dataclass
class SessionSnapshot:
    state: GameState
    view: ViewAssignment = field(default_factory=ViewAssignment)
    crown_marks: Dict[int, int] = field(default_factory=lambda: {pid: 0 for pid in PLAYER_IDS})
    turn: TurnContext = field(default_factory=TurnContext)
    history: TurnHistory = field(default_factory=TurnHistory)


def encode_session(session: GameSession) -> Dict[str, Any]:
    return {
        "format": BLOB_FORMAT,
        "game_state": session.state.to_dict(),
        "view": session.view.to_dict(),
        "crown_marks": {str(pid): mark for pid, mark in session.crown_marks.items()},
        "turn": session.turn.to_dict(),
        "turn_history": session.history.to_dict(),
    }


def decode_session(blob: Dict[str, Any], verbose: bool = True) -> SessionSnapshot:
    if not isinstance(blob, dict) or "game_state" not in blob:
        raise BlobDecodeError("State blob has no game state.")
    try:
        marks = {pid: 0 for pid in PLAYER_IDS}
        marks.update({int(pid): int(mark) for pid, mark in (blob.get("crown_marks") or {}).items()})
        return SessionSnapshot(
            state=GameState.from_dict(blob["game_state"], verbose=verbose),
            view=ViewAssignment.from_dict(blob.get("view")),
            crown_marks=marks,
            turn=TurnContext.from_dict(blob.get("turn")),
            # Older blobs carry no history.
            history=TurnHistory.from_dict(blob.get("turn_history")),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise BlobDecodeError(f"Malformed state blob: {exc}") from exc


def session_from_blob(blob: Dict[str, Any], seed=None, verbose: bool = True) -> GameSession:
    snapshot = decode_session(blob, verbose=verbose)
    session = GameSession(snapshot.state.game_id, seed=seed, verbose=verbose)
    apply_snapshot(session, snapshot, keep_view=False)
    return session


def apply_snapshot(session: GameSession, snapshot: SessionSnapshot, keep_view: bool = True):
    """Swap a decoded snapshot into a session; with keep_view the local seat stays pinned."""
    session.restore(snapshot.state, snapshot.turn, snapshot.history, snapshot.crown_marks)
    if not keep_view:
        session.view = snapshot.view
