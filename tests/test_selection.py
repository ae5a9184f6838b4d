from duel_core.constants import TokenKind
from duel_core.interactions import AwaitingBonusToken
from duel_core.selection import parse_positions, validate_selection
from tests.conftest import place


def test_horizontal_line_of_three_is_valid(session):
    place(session, {(2, 2): "blue", (2, 3): "red", (2, 4): "green"})
    assert validate_selection(session.state.board, [(2, 2), (2, 3), (2, 4)])


def test_order_of_selection_does_not_matter(session):
    place(session, {(2, 2): "blue", (2, 3): "red", (2, 4): "green"})
    assert validate_selection(session.state.board, [(2, 4), (2, 2), (2, 3)])


def test_both_diagonals_are_lines(session):
    place(session, {(0, 0): "blue", (1, 1): "red", (2, 2): "green", (0, 2): "white", (2, 0): "black"})
    board = session.state.board
    assert validate_selection(board, [(0, 0), (1, 1), (2, 2)])
    assert validate_selection(board, [(0, 2), (1, 1), (2, 0)])


def test_gold_in_selection_is_rejected(session):
    place(session, {(2, 2): "blue", (2, 3): "gold", (2, 4): "green"})
    result = validate_selection(session.state.board, [(2, 2), (2, 3), (2, 4)])
    assert not result
    assert "Gold" in result.reason


def test_empty_space_is_rejected(session):
    place(session, {(2, 2): "blue", (2, 4): "green"})
    assert not validate_selection(session.state.board, [(2, 2), (2, 3), (2, 4)])


def test_gapped_line_is_rejected(session):
    place(session, {(2, 0): "blue", (2, 2): "red", (2, 4): "green"})
    assert not validate_selection(session.state.board, [(2, 0), (2, 2), (2, 4)])


def test_two_tokens_must_touch(session):
    place(session, {(0, 0): "blue", (0, 2): "red", (1, 1): "green"})
    board = session.state.board
    assert not validate_selection(board, [(0, 0), (0, 2)])
    assert validate_selection(board, [(0, 0), (1, 1)])


def test_count_and_duplicates(session):
    place(session, {(0, c): "blue" for c in range(5)})
    board = session.state.board
    assert not validate_selection(board, [])
    assert not validate_selection(board, [(0, 0), (0, 1), (0, 2), (0, 3)])
    assert not validate_selection(board, [(0, 0), (0, 0)])


def test_bonus_mode_takes_one_token_of_the_color(session):
    place(session, {(1, 1): "red", (1, 2): "blue"})
    pending = AwaitingBonusToken(TokenKind.RED)
    board = session.state.board
    assert validate_selection(board, [(1, 1)], pending)
    assert not validate_selection(board, [(1, 2)], pending)
    assert not validate_selection(board, [(1, 1), (1, 2)], pending)


def test_parse_positions_accepts_pairs_and_dicts():
    assert parse_positions([[1, 2], {"row": 3, "col": 4}]) == [(1, 2), (3, 4)]
