from enum import Enum
from typing import Dict, List, Tuple


class TokenKind(str, Enum):
    BLUE = "blue"
    WHITE = "white"
    GREEN = "green"
    BLACK = "black"
    RED = "red"
    PEARL = "pearl"
    GOLD = "gold"


class CardColor(str, Enum):
    BLUE = "blue"
    WHITE = "white"
    GREEN = "green"
    BLACK = "black"
    RED = "red"
    NONE = "none"
    WILD = "wild"


class Ability(str, Enum):
    NONE = "none"
    AGAIN = "again"
    TOKEN = "token"
    STEAL = "steal"
    SCROLL = "scroll"
    WILD = "wild"


# The five gem colors that cards can discount.
GEM_COLORS: List[TokenKind] = [
    TokenKind.BLUE,
    TokenKind.WHITE,
    TokenKind.GREEN,
    TokenKind.BLACK,
    TokenKind.RED,
]
# Everything a card can cost.
COST_KINDS: List[TokenKind] = GEM_COLORS + [TokenKind.PEARL]
# Everything a player can hold or steal (gold excluded from stealing).
STEALABLE_KINDS: List[TokenKind] = COST_KINDS
ALL_KINDS: List[TokenKind] = COST_KINDS + [TokenKind.GOLD]

BOARD_SIZE = 5
INITIAL_TOKENS: Dict[TokenKind, int] = {
    TokenKind.BLUE: 4,
    TokenKind.WHITE: 4,
    TokenKind.GREEN: 4,
    TokenKind.BLACK: 4,
    TokenKind.RED: 4,
    TokenKind.PEARL: 2,
    TokenKind.GOLD: 3,
}

PYRAMID_SIZES: Dict[int, int] = {1: 5, 2: 4, 3: 3}
CARD_LEVELS: Tuple[int, int, int] = (1, 2, 3)

MAX_TOKENS_PER_PLAYER = 10
MAX_RESERVED_CARDS = 3
SCROLL_POOL_SIZE = 3
CROWN_THRESHOLDS: Tuple[int, int] = (3, 6)

VICTORY_POINTS = 20
VICTORY_CROWNS = 10
VICTORY_COLOR_POINTS = 10

PLAYER_IDS: Tuple[int, int] = (1, 2)


def opponent_of(player_id: int) -> int:
    return 2 if player_id == 1 else 1


def parse_token_kind(raw, error_cls=ValueError) -> TokenKind:
    if isinstance(raw, TokenKind):
        return raw
    try:
        return TokenKind(str(raw or "").lower())
    except ValueError:
        raise error_cls(f"Unknown token kind: {raw}")
