import pytest

from duel_core import InvalidActionError, victory_status
from duel_core.constants import TokenKind
from duel_core.interactions import AwaitingDiscard, AwaitingRoyalChoice, Idle
from duel_core.lifecycle import TurnContext, crossed_thresholds
from tests.conftest import give, make_card, place, put_in_pyramid


def buy_first(session, player_id=1):
    session.player_action(player_id, "buy_card", {"source": "pyramid", "level": 1, "index": 0})


def hand_turn_back(session, player_id=1):
    session.state.current_player = player_id
    session.turn = TurnContext()


def test_not_your_turn(session):
    with pytest.raises(InvalidActionError):
        session.player_action(2, "take_tokens", {"positions": [[0, 0]]})


def test_unknown_action(session):
    with pytest.raises(InvalidActionError):
        session.player_action(1, "flip_table", {})


def test_discard_gate_holds_the_turn(session, p1):
    give(p1, blue=9)
    place(session, {(2, 2): "red", (2, 3): "green", (2, 4): "white"})

    session.player_action(1, "take_tokens", {"positions": [[2, 2], [2, 3], [2, 4]]})
    assert session.turn.interaction == AwaitingDiscard(2)
    assert session.state.current_player == 1

    with pytest.raises(InvalidActionError):
        session.player_action(1, "discard_tokens", {"tokens": {"blue": 1}})
    with pytest.raises(InvalidActionError):
        session.player_action(1, "discard_tokens", {"tokens": {"pearl": 2}})

    session.player_action(1, "discard_tokens", {"tokens": {"blue": 2}})
    assert p1.total_tokens() == 10
    assert session.state.bag[TokenKind.BLUE] == 2
    assert session.state.current_player == 2


def test_discard_amounts_must_be_numbers(session, p1):
    give(p1, blue=9)
    place(session, {(2, 2): "red", (2, 3): "green", (2, 4): "white"})
    session.player_action(1, "take_tokens", {"positions": [[2, 2], [2, 3], [2, 4]]})

    with pytest.raises(InvalidActionError):
        session.player_action(1, "discard_tokens", {"tokens": {"blue": "lots"}})
    with pytest.raises(InvalidActionError):
        session.player_action(1, "discard_tokens", {"tokens": {"blue": [2]}})

    assert session.turn.interaction == AwaitingDiscard(2)
    assert p1.total_tokens() == 12


def test_crossed_thresholds():
    assert crossed_thresholds(0, 2) == []
    assert crossed_thresholds(2, 3) == [3]
    assert crossed_thresholds(2, 7) == [3, 6]
    assert crossed_thresholds(3, 5) == []


def test_royal_awarded_once_per_band(session, p1):
    p1.cards.append(make_card("crowned", crowns=2))
    put_in_pyramid(session, make_card("one-crown", crowns=1))

    buy_first(session)
    assert session.turn.interaction == AwaitingRoyalChoice(1)
    session.player_action(1, "choose_royal", {"royal_id": "royal-1"})
    assert [r.id for r in p1.royals] == ["royal-1"]
    assert session.crown_marks[1] == 3
    assert session.state.current_player == 2

    hand_turn_back(session)
    put_in_pyramid(session, make_card("no-crown"))
    buy_first(session)
    assert session.turn.interaction == Idle()
    assert len(p1.royals) == 1

    hand_turn_back(session)
    put_in_pyramid(session, make_card("three-crowns", crowns=3))
    buy_first(session)
    assert session.turn.interaction == AwaitingRoyalChoice(1)


def test_taken_royal_cannot_be_chosen_again(session, p1):
    session.state.royals[0].taken = True
    put_in_pyramid(session, make_card("crowns", crowns=3))
    buy_first(session)

    with pytest.raises(InvalidActionError):
        session.player_action(1, "choose_royal", {"royal_id": "royal-1"})


def test_royal_with_again_gives_another_action(session, p1):
    put_in_pyramid(session, make_card("crowns", crowns=3))
    buy_first(session)
    session.player_action(1, "choose_royal", {"royal_id": "royal-4"})

    assert session.state.current_player == 1
    assert not session.turn.main_action_done


def test_again_card_repeats_in_the_same_turn_record(session, p1):
    place(session, {(0, 0): "red"})
    put_in_pyramid(session, make_card("again", ability="again"))

    buy_first(session)
    assert session.state.current_player == 1
    assert not session.turn.main_action_done
    pending_id = session.history.pending.id

    session.player_action(1, "take_tokens", {"positions": [[0, 0]]})
    assert session.state.current_player == 2
    last = session.history.turns[-1]
    assert last.id == pending_id
    assert [e.kind for e in last.events] == ["card_purchased", "tokens_taken"]


def test_reserve_takes_gold_and_caps_at_three(session, p1):
    place(session, {(0, 0): "gold", (0, 1): "gold"})
    put_in_pyramid(session, make_card("r1"))
    session.state.decks[1] = [make_card("r2")]

    session.player_action(1, "reserve_card", {"source": "pyramid", "level": 1, "index": 0, "position": [0, 1]})
    assert [c.id for c in p1.reserves] == ["r1"]
    assert p1.tokens[TokenKind.GOLD] == 1
    assert session.state.board.get((0, 1)) is None
    assert session.state.pyramids[1][0].id == "r2"

    hand_turn_back(session)
    p1.reserves.extend([make_card("x"), make_card("y")])
    with pytest.raises(InvalidActionError):
        session.player_action(1, "reserve_card", {"source": "pyramid", "level": 1, "index": 0})


def test_reserve_needs_gold_on_board(session):
    put_in_pyramid(session, make_card("r1"))
    with pytest.raises(InvalidActionError):
        session.player_action(1, "reserve_card", {"source": "pyramid", "level": 1, "index": 0})


def test_blind_reserve_from_deck(session, p1):
    place(session, {(2, 2): "gold"})
    session.state.decks[2] = [make_card("hidden", level=2)]
    session.player_action(1, "reserve_card", {"source": "deck", "level": 2})
    assert [c.id for c in p1.reserves] == ["hidden"]
    assert session.state.decks[2] == []


def test_victory_by_color_points(session, p2):
    assert victory_status(session.state) is None
    p2.cards.append(make_card("big", color="red", points=10))
    assert victory_status(session.state) == {"player_id": 2, "reason": "red_points", "value": 10}
    assert session.winner["player_id"] == 2


def test_opponent_reserves_hidden_in_public_state(session, p2):
    p2.reserves.append(make_card("secret", level=3))
    public = session.public_state(viewer_id=1)
    assert public["players"]["2"]["reserves"] == [{"level": 3}]
