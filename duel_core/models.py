import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .board import TokenBoard
from .constants import (
    ALL_KINDS,
    COST_KINDS,
    GEM_COLORS,
    PLAYER_IDS,
    SCROLL_POOL_SIZE,
    Ability,
    CardColor,
    TokenKind,
    opponent_of,
)

logger = logging.getLogger(__name__)

LOG_LIMIT = 50


def empty_tokens() -> Dict[TokenKind, int]:
    return {k: 0 for k in ALL_KINDS}


def tokens_from_wire(raw: Optional[Dict[str, int]]) -> Dict[TokenKind, int]:
    tokens = empty_tokens()
    for key, amount in (raw or {}).items():
        tokens[TokenKind(key)] = int(amount or 0)
    return tokens


def tokens_to_wire(tokens: Dict[TokenKind, int]) -> Dict[str, int]:
    return {k.value: int(tokens.get(k, 0)) for k in ALL_KINDS}


def _int_field(raw: Any) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


@dataclass
class Card:
    id: str
    level: int
    color: CardColor
    points: int = 0
    crowns: int = 0
    ability: Ability = Ability.NONE
    is_double: bool = False
    costs: Dict[TokenKind, int] = field(default_factory=dict)
    wild_color_stack: Optional[TokenKind] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any], card_id: Optional[str] = None) -> "Card":
        """
        Build a card from one row of the external card data.

        Blank numeric columns count as zero and the double flag is the literal
        string "yes".
        """
        ability = (record.get("ability") or "").strip().lower() or Ability.NONE.value
        return cls(
            id=str(card_id or record.get("id") or ""),
            level=_int_field(record.get("level")),
            color=CardColor((record.get("color") or "none").strip().lower()),
            points=_int_field(record.get("points")),
            crowns=_int_field(record.get("crowns")),
            ability=Ability(ability),
            is_double=str(record.get("is_double") or "").strip().lower() == "yes",
            costs={
                TokenKind.WHITE: _int_field(record.get("cost_w")),
                TokenKind.BLUE: _int_field(record.get("cost_bl")),
                TokenKind.GREEN: _int_field(record.get("cost_g")),
                TokenKind.RED: _int_field(record.get("cost_r")),
                TokenKind.BLACK: _int_field(record.get("cost_bk")),
                TokenKind.PEARL: _int_field(record.get("cost_p")),
            },
        )

    @property
    def is_wild(self) -> bool:
        return self.color == CardColor.WILD or self.ability == Ability.WILD

    @property
    def effective_color(self) -> Optional[TokenKind]:
        """The gem color this card counts toward, or None for colorless/unplaced cards."""
        if self.is_wild:
            return self.wild_color_stack
        if self.color in (CardColor.NONE, CardColor.WILD):
            return None
        return TokenKind(self.color.value)

    @property
    def units(self) -> int:
        return 2 if self.is_double else 1

    def cost_of(self, kind: TokenKind) -> int:
        return int(self.costs.get(kind, 0) or 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "level": self.level,
            "color": self.color.value,
            "points": self.points,
            "crowns": self.crowns,
            "ability": self.ability.value,
            "is_double": self.is_double,
            "costs": {k.value: self.cost_of(k) for k in COST_KINDS},
            "wild_color_stack": self.wild_color_stack.value if self.wild_color_stack else None,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Card":
        stack = raw.get("wild_color_stack")
        return cls(
            id=str(raw["id"]),
            level=int(raw["level"]),
            color=CardColor(raw["color"]),
            points=int(raw.get("points", 0)),
            crowns=int(raw.get("crowns", 0)),
            ability=Ability(raw.get("ability") or Ability.NONE.value),
            is_double=bool(raw.get("is_double", False)),
            costs={TokenKind(k): int(v) for k, v in (raw.get("costs") or {}).items()},
            wild_color_stack=TokenKind(stack) if stack else None,
        )


@dataclass
class RoyalCard:
    id: str
    points: int
    ability: Ability = Ability.NONE
    taken: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "points": self.points, "ability": self.ability.value, "taken": self.taken}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "RoyalCard":
        return cls(
            id=str(raw["id"]),
            points=int(raw.get("points", 0)),
            ability=Ability(raw.get("ability") or Ability.NONE.value),
            taken=bool(raw.get("taken", False)),
        )


def default_royals() -> List[RoyalCard]:
    return [
        RoyalCard(id="royal-1", points=3),
        RoyalCard(id="royal-2", points=2, ability=Ability.STEAL),
        RoyalCard(id="royal-3", points=2, ability=Ability.SCROLL),
        RoyalCard(id="royal-4", points=2, ability=Ability.AGAIN),
    ]


@dataclass
class PlayerBoard:
    player_id: int
    tokens: Dict[TokenKind, int] = field(default_factory=empty_tokens)
    cards: List[Card] = field(default_factory=list)
    reserves: List[Card] = field(default_factory=list)
    privileges: int = 0
    royals: List[RoyalCard] = field(default_factory=list)

    def total_tokens(self) -> int:
        return sum(self.tokens.values())

    def add_tokens(self, additions: Dict[TokenKind, int]):
        for kind, amount in additions.items():
            self.tokens[kind] = self.tokens.get(kind, 0) + amount

    def remove_tokens(self, removals: Dict[TokenKind, int]):
        for kind, amount in removals.items():
            current = self.tokens.get(kind, 0)
            if amount > current:
                raise ValueError(f"Player {self.player_id} holds only {current} {kind.value}.")
            self.tokens[kind] = current - amount

    def discount_units(self) -> Dict[TokenKind, int]:
        """Discount per gem color: one unit per owned card, two for double cards."""
        units = {c: 0 for c in GEM_COLORS}
        for card in self.cards:
            color = card.effective_color
            if color in units:
                units[color] += card.units
        return units

    def stack(self, color: TokenKind) -> List[Card]:
        return [c for c in self.cards if c.effective_color == color]

    def top_of_stack(self, color: TokenKind) -> Optional[Card]:
        stack = self.stack(color)
        return stack[-1] if stack else None

    @property
    def crowns(self) -> int:
        return sum(c.crowns for c in self.cards)

    @property
    def points(self) -> int:
        return sum(c.points for c in self.cards) + sum(r.points for r in self.royals)

    def points_by_color(self) -> Dict[TokenKind, int]:
        totals = {c: 0 for c in GEM_COLORS}
        for card in self.cards:
            color = card.effective_color
            if color in totals:
                totals[color] += card.points
        return totals

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "tokens": tokens_to_wire(self.tokens),
            "cards": [c.to_dict() for c in self.cards],
            "reserves": [c.to_dict() for c in self.reserves],
            "privileges": self.privileges,
            "royals": [r.to_dict() for r in self.royals],
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PlayerBoard":
        return cls(
            player_id=int(raw["player_id"]),
            tokens=tokens_from_wire(raw.get("tokens")),
            cards=[Card.from_dict(c) for c in raw.get("cards", [])],
            reserves=[Card.from_dict(c) for c in raw.get("reserves", [])],
            privileges=int(raw.get("privileges", 0)),
            royals=[RoyalCard.from_dict(r) for r in raw.get("royals", [])],
        )

    def to_public_dict(self, reveal_reserves: bool = True) -> Dict[str, Any]:
        data = self.to_dict()
        data.update(
            {
                "points": self.points,
                "crowns": self.crowns,
                "discounts": {k.value: v for k, v in self.discount_units().items()},
                "token_total": self.total_tokens(),
            }
        )
        if not reveal_reserves:
            data["reserves"] = [{"level": c.level} for c in self.reserves]
        return data


@dataclass
class GameState:
    game_id: str
    verbose: bool = True
    decks: Dict[int, List[Card]] = field(default_factory=lambda: {1: [], 2: [], 3: []})
    pyramids: Dict[int, List[Optional[Card]]] = field(default_factory=lambda: {1: [], 2: [], 3: []})
    board: TokenBoard = field(default_factory=TokenBoard)
    bag: Dict[TokenKind, int] = field(default_factory=empty_tokens)
    royals: List[RoyalCard] = field(default_factory=default_royals)
    scroll_pool: int = SCROLL_POOL_SIZE
    players: Dict[int, PlayerBoard] = field(default_factory=lambda: {pid: PlayerBoard(pid) for pid in PLAYER_IDS})
    current_player: int = 1
    seat_owners: Dict[int, Optional[str]] = field(default_factory=lambda: {pid: None for pid in PLAYER_IDS})
    log: List[str] = field(default_factory=list)

    def add_log(self, message: str):
        if not self.verbose:
            return
        self.log.append(message)
        del self.log[:-LOG_LIMIT]
        logger.info("[%s] %s", self.game_id, message)

    def player(self, player_id: int) -> PlayerBoard:
        return self.players[player_id]

    def opponent(self, player_id: int) -> PlayerBoard:
        return self.players[opponent_of(player_id)]

    def return_to_bag(self, tokens: Dict[TokenKind, int]):
        for kind, amount in tokens.items():
            if amount:
                self.bag[kind] = self.bag.get(kind, 0) + amount

    def bag_total(self) -> int:
        return sum(self.bag.values())

    def untaken_royals(self) -> List[RoyalCard]:
        return [r for r in self.royals if not r.taken]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "game_id": self.game_id,
            "decks": {str(lvl): [c.to_dict() for c in deck] for lvl, deck in self.decks.items()},
            "pyramids": {
                str(lvl): [c.to_dict() if c else None for c in row] for lvl, row in self.pyramids.items()
            },
            "board": self.board.to_wire(),
            "bag": tokens_to_wire(self.bag),
            "royals": [r.to_dict() for r in self.royals],
            "scroll_pool": self.scroll_pool,
            "players": {str(pid): p.to_dict() for pid, p in self.players.items()},
            "current_player": self.current_player,
            "seat_owners": {str(pid): owner for pid, owner in self.seat_owners.items()},
            "log": list(self.log[-LOG_LIMIT:]),
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], verbose: bool = True) -> "GameState":
        seat_owners: Dict[int, Optional[str]] = {pid: None for pid in PLAYER_IDS}
        seat_owners.update({int(pid): owner for pid, owner in (raw.get("seat_owners") or {}).items()})
        return cls(
            game_id=str(raw["game_id"]),
            verbose=verbose,
            decks={int(lvl): [Card.from_dict(c) for c in deck] for lvl, deck in raw["decks"].items()},
            pyramids={
                int(lvl): [Card.from_dict(c) if c else None for c in row] for lvl, row in raw["pyramids"].items()
            },
            board=TokenBoard.from_wire(raw["board"]),
            bag=tokens_from_wire(raw.get("bag")),
            royals=[RoyalCard.from_dict(r) for r in raw.get("royals", [])],
            scroll_pool=int(raw.get("scroll_pool", SCROLL_POOL_SIZE)),
            players={int(pid): PlayerBoard.from_dict(p) for pid, p in raw["players"].items()},
            current_player=int(raw.get("current_player", 1)),
            seat_owners=seat_owners,
            log=list(raw.get("log") or [])[-LOG_LIMIT:],
        )

    def get_public_state(self, viewer_id: Optional[int] = None) -> Dict[str, Any]:
        """Public view of the state; the opponent's reserves stay face down."""
        return {
            "game_id": self.game_id,
            "current_player": self.current_player,
            "players": {
                str(pid): p.to_public_dict(reveal_reserves=viewer_id is None or viewer_id == pid)
                for pid, p in self.players.items()
            },
            "pyramids": {
                str(lvl): [c.to_dict() if c else None for c in row] for lvl, row in self.pyramids.items()
            },
            "deck_counts": {str(lvl): len(deck) for lvl, deck in self.decks.items()},
            "board": self.board.to_wire(),
            "bag": tokens_to_wire(self.bag),
            "royals": [r.to_dict() for r in self.royals],
            "scroll_pool": self.scroll_pool,
            "seat_owners": {str(pid): owner for pid, owner in self.seat_owners.items()},
            "log": self.log[-LOG_LIMIT:],
            "viewer": viewer_id,
        }
