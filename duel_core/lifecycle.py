from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .constants import (
    CROWN_THRESHOLDS,
    MAX_TOKENS_PER_PLAYER,
    VICTORY_COLOR_POINTS,
    VICTORY_CROWNS,
    VICTORY_POINTS,
)
from .interactions import Idle, Interaction, interaction_from_dict
from .models import GameState, PlayerBoard


@dataclass
class TurnContext:
    """Per-turn flags of the acting player. Reset whenever control changes hands."""
    interaction: Interaction = field(default_factory=Idle)
    main_action_done: bool = False
    repeat_pending: bool = False
    board_was_refilled: bool = False

    @property
    def is_idle(self) -> bool:
        return isinstance(self.interaction, Idle)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interaction": self.interaction.to_dict(),
            "main_action_done": self.main_action_done,
            "repeat_pending": self.repeat_pending,
            "board_was_refilled": self.board_was_refilled,
        }

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "TurnContext":
        raw = raw or {}
        return cls(
            interaction=interaction_from_dict(raw.get("interaction")),
            main_action_done=bool(raw.get("main_action_done", False)),
            repeat_pending=bool(raw.get("repeat_pending", False)),
            board_was_refilled=bool(raw.get("board_was_refilled", False)),
        )


def token_excess(player: PlayerBoard) -> int:
    return max(0, player.total_tokens() - MAX_TOKENS_PER_PLAYER)


def crossed_thresholds(before: int, after: int) -> List[int]:
    """Crown thresholds passed when going from `before` to `after` crowns."""
    return [t for t in CROWN_THRESHOLDS if before < t <= after]


def victory_status(state: GameState) -> Optional[Dict[str, Any]]:
    """First player, in seat order, meeting a victory condition; None while nobody has won."""
    for pid in sorted(state.players):
        player = state.player(pid)
        if player.points >= VICTORY_POINTS:
            return {"player_id": pid, "reason": "points", "value": player.points}
        if player.crowns >= VICTORY_CROWNS:
            return {"player_id": pid, "reason": "crowns", "value": player.crowns}
        for color, points in player.points_by_color().items():
            if points >= VICTORY_COLOR_POINTS:
                return {"player_id": pid, "reason": f"{color.value}_points", "value": points}
    return None
