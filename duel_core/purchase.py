"""
Purchase engine: discounts, payment planning and committing a purchase.

A plan is computed without touching the player; `commit_plan` is the only
function here that moves tokens. Gold may stand in for any gem color or
pearl, never for gold itself.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .constants import (
    COST_KINDS,
    GEM_COLORS,
    MAX_RESERVED_CARDS,
    MAX_TOKENS_PER_PLAYER,
    PYRAMID_SIZES,
    STEALABLE_KINDS,
    Ability,
    TokenKind,
    parse_token_kind,
)
from .models import Card, GameState, PlayerBoard

NOT_COVERED = "Selection does not fully cover the cost"
NOT_AFFORDABLE = "Not enough tokens to cover the cost."


@dataclass
class PaymentPlan:
    valid: bool
    reason: Optional[str] = None
    spend: Dict[TokenKind, int] = field(default_factory=dict)
    gold_assignment: Dict[TokenKind, int] = field(default_factory=dict)
    needs: Dict[TokenKind, int] = field(default_factory=dict)
    deficits: Dict[TokenKind, int] = field(default_factory=dict)

    @property
    def gold_spent(self) -> int:
        return self.spend.get(TokenKind.GOLD, 0)

    def total_spent(self) -> int:
        return sum(self.spend.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "reason": self.reason,
            "spend": {k.value: v for k, v in self.spend.items()},
            "gold_assignment": {k.value: v for k, v in self.gold_assignment.items()},
            "needs": {k.value: v for k, v in self.needs.items()},
            "deficits": {k.value: v for k, v in self.deficits.items()},
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PaymentPlan":
        def kinds(key: str) -> Dict[TokenKind, int]:
            return {TokenKind(k): int(v) for k, v in (raw.get(key) or {}).items()}

        return cls(
            valid=bool(raw.get("valid")),
            reason=raw.get("reason"),
            spend=kinds("spend"),
            gold_assignment=kinds("gold_assignment"),
            needs=kinds("needs"),
            deficits=kinds("deficits"),
        )


@dataclass
class CardSource:
    """Where a card is bought or reserved from: a pyramid slot, a reserve slot or a deck top."""
    kind: str
    index: int = 0
    level: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "CardSource":
        kind = str(payload.get("source") or "pyramid").lower()
        if kind not in {"pyramid", "reserve", "deck"}:
            raise ValueError(f"Unknown card source: {kind}")
        level = payload.get("level")
        return cls(
            kind=kind,
            index=int(payload.get("index") or 0),
            level=int(level) if level is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.kind, "index": self.index, "level": self.level}


def compute_needs(player: PlayerBoard, card: Card) -> Dict[TokenKind, int]:
    """Cost left after card discounts. Pearl is never discounted."""
    units = player.discount_units()
    needs: Dict[TokenKind, int] = {}
    for kind in GEM_COLORS:
        needs[kind] = max(0, card.cost_of(kind) - units.get(kind, 0))
    needs[TokenKind.PEARL] = card.cost_of(TokenKind.PEARL)
    return needs


def uncovered_need(player: PlayerBoard, card: Card) -> int:
    needs = compute_needs(player, card)
    return sum(max(0, need - player.tokens.get(kind, 0)) for kind, need in needs.items())


def is_affordable(player: PlayerBoard, card: Card) -> bool:
    return uncovered_need(player, card) <= player.tokens.get(TokenKind.GOLD, 0)


def default_plan(player: PlayerBoard, card: Card) -> PaymentPlan:
    """Same-kind tokens first, then gold for whatever is left, up to the gold owned."""
    needs = compute_needs(player, card)
    gold_left = player.tokens.get(TokenKind.GOLD, 0)
    spend: Dict[TokenKind, int] = {}
    gold_assignment: Dict[TokenKind, int] = {}
    deficits: Dict[TokenKind, int] = {}
    for kind in COST_KINDS:
        need = needs.get(kind, 0)
        if not need:
            continue
        from_tokens = min(player.tokens.get(kind, 0), need)
        if from_tokens:
            spend[kind] = from_tokens
        short = need - from_tokens
        from_gold = min(short, gold_left)
        if from_gold:
            gold_assignment[kind] = from_gold
            gold_left -= from_gold
        if short - from_gold > 0:
            deficits[kind] = short - from_gold
    gold_used = sum(gold_assignment.values())
    if gold_used:
        spend[TokenKind.GOLD] = gold_used
    return PaymentPlan(
        valid=not deficits,
        reason=NOT_AFFORDABLE if deficits else None,
        spend=spend,
        gold_assignment=gold_assignment,
        needs=needs,
        deficits=deficits,
    )


def explicit_plan(player: PlayerBoard, card: Card, gold_choices: List[Optional[Any]]) -> PaymentPlan:
    """
    Plan with the player's own gold assignment: one entry per owned gold token,
    naming the cost kind it pays for or None to keep it. Gold may be assigned
    to a kind whose cost is already covered; the remaining need is paid with
    same-kind tokens.
    """
    needs = compute_needs(player, card)
    owned_gold = player.tokens.get(TokenKind.GOLD, 0)
    choices = list(gold_choices or [])
    if len(choices) > owned_gold:
        return PaymentPlan(valid=False, reason=f"Only {owned_gold} gold available.", needs=needs)

    gold_assignment: Dict[TokenKind, int] = {}
    for raw in choices:
        if raw is None:
            continue
        try:
            kind = parse_token_kind(raw)
        except ValueError as exc:
            return PaymentPlan(valid=False, reason=str(exc), needs=needs)
        if kind not in COST_KINDS:
            return PaymentPlan(valid=False, reason="Gold cannot stand in for gold.", needs=needs)
        gold_assignment[kind] = gold_assignment.get(kind, 0) + 1

    spend: Dict[TokenKind, int] = {}
    deficits: Dict[TokenKind, int] = {}
    for kind in COST_KINDS:
        remaining = max(0, needs.get(kind, 0) - gold_assignment.get(kind, 0))
        from_tokens = min(player.tokens.get(kind, 0), remaining)
        if from_tokens:
            spend[kind] = from_tokens
        if remaining - from_tokens > 0:
            deficits[kind] = remaining - from_tokens
    gold_used = sum(gold_assignment.values())
    if gold_used:
        spend[TokenKind.GOLD] = gold_used
    return PaymentPlan(
        valid=not deficits,
        reason=NOT_COVERED if deficits else None,
        spend=spend,
        gold_assignment=gold_assignment,
        needs=needs,
        deficits=deficits,
    )


def plan_purchase(player: PlayerBoard, card: Card, gold_choices: Optional[List[Optional[Any]]] = None) -> PaymentPlan:
    if gold_choices is None:
        return default_plan(player, card)
    return explicit_plan(player, card, gold_choices)


def purchase_warnings(
    player: PlayerBoard,
    card: Card,
    plan: Optional[PaymentPlan] = None,
    opponent: Optional[PlayerBoard] = None,
) -> List[str]:
    """
    Informational only; never blocks the purchase. The token count is taken
    after paying with `plan` (the default plan when none is given). A steal
    is only counted when `opponent` holds something to take.
    """
    warnings: List[str] = []
    if card.ability not in (Ability.STEAL, Ability.TOKEN):
        return warnings
    if card.ability == Ability.STEAL and opponent is not None:
        if not any(opponent.tokens.get(kind, 0) > 0 for kind in STEALABLE_KINDS):
            return warnings
    if plan is None:
        plan = default_plan(player, card)
    if player.total_tokens() - plan.total_spent() + 1 > MAX_TOKENS_PER_PLAYER:
        warnings.append(
            f"Gaining a token from this card will put you over {MAX_TOKENS_PER_PLAYER} tokens; "
            "you will have to discard."
        )
    return warnings


def has_wild_target(player: PlayerBoard) -> bool:
    return any(can_place_wild(player, color) for color in GEM_COLORS)


def can_place_wild(player: PlayerBoard, color: TokenKind) -> bool:
    top = player.top_of_stack(color)
    return top is not None and not top.is_wild


def peek_card(state: GameState, player: PlayerBoard, source: CardSource) -> Optional[Card]:
    if source.kind == "reserve":
        if 0 <= source.index < len(player.reserves):
            return player.reserves[source.index]
        return None
    if source.level not in PYRAMID_SIZES:
        return None
    if source.kind == "deck":
        deck = state.decks.get(source.level) or []
        return deck[0] if deck else None
    row = state.pyramids.get(source.level) or []
    if 0 <= source.index < len(row):
        return row[source.index]
    return None


def take_card(state: GameState, player: PlayerBoard, source: CardSource) -> Card:
    """Remove a card from its source; pyramid slots are refilled from their level deck."""
    if source.kind == "reserve":
        return player.reserves.pop(source.index)
    deck = state.decks[source.level]
    if source.kind == "deck":
        return deck.pop(0)
    row = state.pyramids[source.level]
    card = row[source.index]
    row[source.index] = deck.pop(0) if deck else None
    return card


def commit_plan(state: GameState, player: PlayerBoard, plan: PaymentPlan):
    """Spent tokens leave the player's hand and go into the bag."""
    player.remove_tokens(plan.spend)
    state.return_to_bag(plan.spend)


def can_reserve(player: PlayerBoard) -> bool:
    return len(player.reserves) < MAX_RESERVED_CARDS
