"""
Rules engine for the two-player Splendor Duel table.

This package is intentionally decoupled from HTTP/sync concerns so it can be
imported by any host (server, CLI, tests). Hosts manage transport and
synchronization and call into this package for game logic.
"""

from .board import SPIRAL_ORDER, TokenBoard, spiral_order
from .codec import BlobDecodeError, SessionSnapshot, apply_snapshot, decode_session, encode_session, session_from_blob
from .constants import Ability, CardColor, TokenKind
from .errors import InvalidActionError, InvariantViolation
from .history import TurnHistory, TurnRecord, summarize_turn
from .interactions import (
    AwaitingBonusToken,
    AwaitingDiscard,
    AwaitingRoyalChoice,
    AwaitingScrollToken,
    AwaitingSteal,
    AwaitingWildPlacement,
    Idle,
    Interaction,
)
from .lifecycle import TurnContext, victory_status
from .models import Card, GameState, PlayerBoard, RoyalCard
from .purchase import PaymentPlan, default_plan, explicit_plan, is_affordable
from .selection import ValidationResult, validate_selection
from .session import GameSession, TurnEnded, ViewAssignment

__all__ = [
    "Ability",
    "CardColor",
    "TokenKind",
    "Card",
    "RoyalCard",
    "PlayerBoard",
    "GameState",
    "TokenBoard",
    "SPIRAL_ORDER",
    "spiral_order",
    "PaymentPlan",
    "default_plan",
    "explicit_plan",
    "is_affordable",
    "ValidationResult",
    "validate_selection",
    "Interaction",
    "Idle",
    "AwaitingBonusToken",
    "AwaitingSteal",
    "AwaitingScrollToken",
    "AwaitingDiscard",
    "AwaitingWildPlacement",
    "AwaitingRoyalChoice",
    "TurnContext",
    "victory_status",
    "TurnHistory",
    "TurnRecord",
    "summarize_turn",
    "GameSession",
    "TurnEnded",
    "ViewAssignment",
    "InvalidActionError",
    "InvariantViolation",
    "BlobDecodeError",
    "SessionSnapshot",
    "encode_session",
    "decode_session",
    "apply_snapshot",
    "session_from_blob",
]
