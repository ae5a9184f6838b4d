import random
from typing import Dict, Iterable, List, Optional, Tuple

from .constants import BOARD_SIZE, INITIAL_TOKENS, TokenKind

Position = Tuple[int, int]

# right, down, left, up
_SPIRAL_DIRECTIONS: List[Position] = [(0, 1), (1, 0), (0, -1), (-1, 0)]


def spiral_order(size: int = BOARD_SIZE) -> List[Position]:
    """
    Cells of a size x size grid, starting at the center and winding clockwise
    outward. The step length grows by one every two direction changes; cells
    that fall outside the grid on the last lap are skipped.
    """
    center = size // 2
    row, col = center, center
    order: List[Position] = [(row, col)]
    total = size * size
    step = 1
    direction = 0
    while len(order) < total:
        for _ in range(2):
            d_row, d_col = _SPIRAL_DIRECTIONS[direction % 4]
            for _ in range(step):
                row += d_row
                col += d_col
                if 0 <= row < size and 0 <= col < size:
                    order.append((row, col))
            direction += 1
        step += 1
    return order[:total]


SPIRAL_ORDER: List[Position] = spiral_order()


def in_bounds(pos: Position) -> bool:
    return 0 <= pos[0] < BOARD_SIZE and 0 <= pos[1] < BOARD_SIZE


def expand_tokens(counts: Dict[TokenKind, int]) -> List[TokenKind]:
    """Turn kind counts into a flat list of token instances."""
    tokens: List[TokenKind] = []
    for kind, amount in counts.items():
        tokens.extend([kind] * max(0, int(amount or 0)))
    return tokens


class TokenBoard:
    def __init__(self, cells: Optional[List[List[Optional[TokenKind]]]] = None):
        self.cells: List[List[Optional[TokenKind]]] = cells or [
            [None for _ in range(BOARD_SIZE)] for _ in range(BOARD_SIZE)
        ]

    def __eq__(self, other) -> bool:
        return isinstance(other, TokenBoard) and self.cells == other.cells

    def __repr__(self) -> str:
        return f"TokenBoard({self.to_wire()!r})"

    def get(self, pos: Position) -> Optional[TokenKind]:
        if not in_bounds(pos):
            return None
        return self.cells[pos[0]][pos[1]]

    def set(self, pos: Position, kind: Optional[TokenKind]):
        self.cells[pos[0]][pos[1]] = kind

    def take(self, pos: Position) -> TokenKind:
        kind = self.get(pos)
        if kind is None:
            raise ValueError(f"Cell {pos} is empty.")
        self.set(pos, None)
        return kind

    def empty_cells(self) -> List[Position]:
        return [pos for pos in SPIRAL_ORDER if self.get(pos) is None]

    def positions_of(self, kind: TokenKind) -> List[Position]:
        return [pos for pos in SPIRAL_ORDER if self.get(pos) == kind]

    def has(self, kind: TokenKind) -> bool:
        return bool(self.positions_of(kind))

    def counts(self) -> Dict[TokenKind, int]:
        totals: Dict[TokenKind, int] = {}
        for row in self.cells:
            for kind in row:
                if kind is not None:
                    totals[kind] = totals.get(kind, 0) + 1
        return totals

    def place_in_spiral(self, tokens: Iterable[TokenKind]) -> List[Position]:
        """Drop tokens into empty cells following the spiral; returns the cells filled."""
        placed: List[Position] = []
        free = self.empty_cells()
        for pos, kind in zip(free, tokens):
            self.set(pos, kind)
            placed.append(pos)
        return placed

    def fill_initial(self, rng: random.Random) -> List[Position]:
        tokens = expand_tokens(INITIAL_TOKENS)
        rng.shuffle(tokens)
        return self.place_in_spiral(tokens)

    def refill_from_bag(self, bag: Dict[TokenKind, int], rng: random.Random) -> List[Position]:
        """
        Pour the bag back onto the board. Only the tokens that found a free cell
        leave the bag.
        """
        tokens = expand_tokens(bag)
        rng.shuffle(tokens)
        placed = self.place_in_spiral(tokens)
        for pos in placed:
            kind = self.get(pos)
            bag[kind] -= 1
        return placed

    def to_wire(self) -> List[List[Optional[str]]]:
        return [[kind.value if kind else None for kind in row] for row in self.cells]

    @classmethod
    def from_wire(cls, raw: List[List[Optional[str]]]) -> "TokenBoard":
        return cls([[TokenKind(v) if v else None for v in row] for row in raw])
