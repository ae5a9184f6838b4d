"""
What the acting player owes the game before the turn can move on.

Exactly one interaction is pending at a time. The session and the
token-selection validator dispatch on `kind` instead of juggling mode flags.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .constants import TokenKind
from .models import Card
from .purchase import CardSource, PaymentPlan


class Interaction:
    kind = "idle"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind}

    def __eq__(self, other) -> bool:
        return isinstance(other, Interaction) and self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_dict()!r})"


class Idle(Interaction):
    kind = "idle"


@dataclass(eq=False)
class AwaitingBonusToken(Interaction):
    color: TokenKind
    kind = "bonus_token"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "color": self.color.value}


class AwaitingSteal(Interaction):
    kind = "steal"


class AwaitingScrollToken(Interaction):
    kind = "scroll_token"


@dataclass(eq=False)
class AwaitingDiscard(Interaction):
    count: int
    kind = "discard"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "count": self.count}


@dataclass(eq=False)
class AwaitingWildPlacement(Interaction):
    card: Card
    plan: PaymentPlan
    source: CardSource
    kind = "wild_placement"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "card": self.card.to_dict(),
            "plan": self.plan.to_dict(),
            "source": self.source.to_dict(),
        }


@dataclass(eq=False)
class AwaitingRoyalChoice(Interaction):
    count: int
    kind = "royal_choice"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "count": self.count}


def interaction_from_dict(raw: Optional[Dict[str, Any]]) -> Interaction:
    kind = (raw or {}).get("kind", "idle")
    if kind == "idle":
        return Idle()
    if kind == "bonus_token":
        return AwaitingBonusToken(TokenKind(raw["color"]))
    if kind == "steal":
        return AwaitingSteal()
    if kind == "scroll_token":
        return AwaitingScrollToken()
    if kind == "discard":
        return AwaitingDiscard(int(raw["count"]))
    if kind == "wild_placement":
        return AwaitingWildPlacement(
            card=Card.from_dict(raw["card"]),
            plan=PaymentPlan.from_dict(raw["plan"]),
            source=CardSource.from_payload(raw["source"]),
        )
    if kind == "royal_choice":
        return AwaitingRoyalChoice(int(raw["count"]))
    raise ValueError(f"Unknown interaction: {kind}")
