"""
Append-only turn history.

One pending record collects the events of the player currently acting. When
the turn ends it is moved to `turns` if anything happened, or dropped if it
stayed empty. The history travels inside the sync blob so a client that
missed several opponent turns between polls can still show what happened.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

STATUS_PENDING = "pending"
STATUS_COMPLETE = "complete"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class TurnEvent:
    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)
    at: str = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "payload": dict(self.payload), "at": self.at}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "TurnEvent":
        return cls(kind=raw["kind"], payload=dict(raw.get("payload") or {}), at=raw.get("at") or _now())


@dataclass
class TurnRecord:
    id: int
    player_id: int
    events: List[TurnEvent] = field(default_factory=list)
    status: str = STATUS_PENDING
    started_at: str = field(default_factory=_now)
    ended_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "player_id": self.player_id,
            "events": [e.to_dict() for e in self.events],
            "status": self.status,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "TurnRecord":
        return cls(
            id=int(raw["id"]),
            player_id=int(raw["player_id"]),
            events=[TurnEvent.from_dict(e) for e in raw.get("events", [])],
            status=raw.get("status", STATUS_PENDING),
            started_at=raw.get("started_at") or _now(),
            ended_at=raw.get("ended_at"),
        )


class TurnHistory:
    def __init__(self, turns: Optional[List[TurnRecord]] = None, pending: Optional[TurnRecord] = None, next_id: int = 1):
        self.turns: List[TurnRecord] = turns or []
        self.pending: Optional[TurnRecord] = pending
        self.next_id = next_id

    def __eq__(self, other) -> bool:
        return isinstance(other, TurnHistory) and self.to_dict() == other.to_dict()

    def record(self, player_id: int, kind: str, payload: Optional[Dict[str, Any]] = None) -> TurnEvent:
        if self.pending and self.pending.player_id != player_id:
            self.finalize()
        if not self.pending:
            self.pending = TurnRecord(id=self.next_id, player_id=player_id)
            self.next_id += 1
        event = TurnEvent(kind=kind, payload=payload or {})
        self.pending.events.append(event)
        return event

    def finalize(self) -> Optional[TurnRecord]:
        """Close the pending turn. Empty turns are dropped and their id is reused."""
        turn = self.pending
        self.pending = None
        if not turn:
            return None
        if not turn.events:
            self.next_id = turn.id
            return None
        turn.status = STATUS_COMPLETE
        turn.ended_at = _now()
        self.turns.append(turn)
        return turn

    def latest_turn_id(self) -> int:
        return self.turns[-1].id if self.turns else 0

    def opponent_turns_since(self, last_seen_id: int, viewer_id: int) -> List[TurnRecord]:
        return [t for t in self.turns if t.id > last_seen_id and t.player_id != viewer_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "turns": [t.to_dict() for t in self.turns],
            "pending": self.pending.to_dict() if self.pending else None,
            "next_id": self.next_id,
        }

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "TurnHistory":
        if not raw:
            return cls()
        pending = raw.get("pending")
        turns = [TurnRecord.from_dict(t) for t in raw.get("turns", [])]
        next_id = raw.get("next_id")
        if next_id is None:
            next_id = (turns[-1].id + 1) if turns else 1
        return cls(
            turns=turns,
            pending=TurnRecord.from_dict(pending) if pending else None,
            next_id=int(next_id),
        )


def _tokens_label(tokens: Dict[str, int]) -> str:
    parts = [f"{amount} {kind}" for kind, amount in tokens.items() if amount]
    return ", ".join(parts) if parts else "nothing"


def summarize_event(event: TurnEvent) -> str:
    p = event.payload
    if event.kind == "tokens_taken":
        return f"took {_tokens_label(p.get('tokens', {}))}"
    if event.kind == "card_purchased":
        return f"bought a level {p.get('level')} {p.get('color')} card ({p.get('points', 0)} points)"
    if event.kind == "card_reserved":
        return f"reserved a level {p.get('level')} card"
    if event.kind == "wild_placed":
        return f"placed a wild card on the {p.get('color')} stack"
    if event.kind == "bonus_token":
        return f"took a bonus {p.get('color')} token"
    if event.kind == "token_stolen":
        return f"stole a {p.get('kind')} token"
    if event.kind == "scroll_used":
        return f"spent a scroll for a {p.get('kind')} token"
    if event.kind == "board_refilled":
        return f"refilled the board with {p.get('count', 0)} tokens"
    if event.kind == "tokens_discarded":
        return f"discarded {_tokens_label(p.get('tokens', {}))}"
    if event.kind == "royal_taken":
        return f"claimed a royal card ({p.get('points', 0)} points)"
    if event.kind == "scroll_awarded":
        return f"gave player {p.get('recipient')} a scroll"
    return event.kind.replace("_", " ")


def summarize_turn(turn: TurnRecord) -> List[str]:
    return [f"Player {turn.player_id} {summarize_event(e)}" for e in turn.events]
