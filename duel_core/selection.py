"""
Token-selection validator for the take-tokens action and the bonus-token
ability.
"""
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .board import Position, TokenBoard, in_bounds
from .constants import TokenKind
from .interactions import AwaitingBonusToken, Interaction

LINE_STEPS = {(0, 1), (1, 0), (1, 1), (1, -1)}


@dataclass
class ValidationResult:
    valid: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


def ok() -> ValidationResult:
    return ValidationResult(True)


def invalid(reason: str) -> ValidationResult:
    return ValidationResult(False, reason)


def parse_positions(raw: Iterable[Any]) -> List[Position]:
    positions: List[Position] = []
    for entry in raw or []:
        if isinstance(entry, dict):
            positions.append((int(entry["row"]), int(entry["col"])))
        else:
            row, col = entry
            positions.append((int(row), int(col)))
    return positions


def is_selectable(board: TokenBoard, pos: Position) -> bool:
    kind = board.get(pos)
    return kind is not None and kind != TokenKind.GOLD


def _line_is_clear(board: TokenBoard, positions: Sequence[Position]) -> bool:
    return all(is_selectable(board, pos) for pos in positions)


def _step(a: Position, b: Position) -> Tuple[int, int]:
    return (b[0] - a[0], b[1] - a[1])


def validate_bonus(board: TokenBoard, positions: Sequence[Position], color: TokenKind) -> ValidationResult:
    if len(positions) != 1:
        return invalid(f"Select exactly one {color.value} token.")
    pos = positions[0]
    if not in_bounds(pos):
        return invalid("Position is off the board.")
    if board.get(pos) != color:
        return invalid(f"Select exactly one {color.value} token.")
    return ok()


def validate_selection(
    board: TokenBoard,
    positions: Sequence[Position],
    interaction: Optional[Interaction] = None,
) -> ValidationResult:
    if isinstance(interaction, AwaitingBonusToken):
        return validate_bonus(board, positions, interaction.color)

    if not 1 <= len(positions) <= 3:
        return invalid("Select between one and three tokens.")
    if len(set(positions)) != len(positions):
        return invalid("The same token was selected twice.")
    for pos in positions:
        if not in_bounds(pos):
            return invalid("Position is off the board.")
        if board.get(pos) is None:
            return invalid("That space is empty.")
        if board.get(pos) == TokenKind.GOLD:
            return invalid("Gold tokens cannot be taken this way.")

    ordered = sorted(positions)
    if len(ordered) == 1:
        return ok()
    if len(ordered) == 2:
        d_row, d_col = _step(ordered[0], ordered[1])
        if max(abs(d_row), abs(d_col)) != 1:
            return invalid("Two tokens must be next to each other.")
        if not _line_is_clear(board, ordered):
            return invalid("The line contains a gold or empty space.")
        return ok()

    first_step = _step(ordered[0], ordered[1])
    second_step = _step(ordered[1], ordered[2])
    if first_step != second_step or first_step not in LINE_STEPS:
        return invalid("Three tokens must form a straight, unbroken line.")
    if not _line_is_clear(board, ordered):
        return invalid("The line contains a gold or empty space.")
    return ok()
