import pytest

from duel_core import InvalidActionError
from duel_core.abilities import OUTCOME_BONUS_TOKEN, OUTCOME_SKIPPED, resolve_ability
from duel_core.constants import Ability, TokenKind
from duel_core.interactions import AwaitingBonusToken, AwaitingSteal, Idle
from duel_core.lifecycle import TurnContext
from tests.conftest import give, make_card, place, put_in_pyramid


def test_token_ability_waits_for_a_matching_token(session):
    place(session, {(1, 1): "red"})
    turn = TurnContext()

    outcome = resolve_ability(session.state, turn, 1, Ability.TOKEN, TokenKind.RED)

    assert outcome == OUTCOME_BONUS_TOKEN
    assert turn.interaction == AwaitingBonusToken(TokenKind.RED)


def test_token_ability_skipped_without_matching_token(session):
    place(session, {(1, 1): "blue"})
    turn = TurnContext()
    assert resolve_ability(session.state, turn, 1, Ability.TOKEN, TokenKind.RED) == OUTCOME_SKIPPED
    assert turn.interaction == Idle()


def test_steal_skipped_when_opponent_only_has_gold(session, p2):
    give(p2, gold=2)
    turn = TurnContext()
    assert resolve_ability(session.state, turn, 1, Ability.STEAL) == OUTCOME_SKIPPED
    assert turn.is_idle


def test_scroll_and_again(session, p1):
    turn = TurnContext()
    resolve_ability(session.state, turn, 1, Ability.SCROLL)
    resolve_ability(session.state, turn, 1, Ability.AGAIN)
    assert p1.privileges == 1
    assert turn.repeat_pending


def test_buying_a_steal_card_then_stealing(session, p1, p2):
    give(p2, red=1, gold=1)
    put_in_pyramid(session, make_card("thief", ability="steal"))

    session.player_action(1, "buy_card", {"source": "pyramid", "level": 1, "index": 0})
    assert session.turn.interaction == AwaitingSteal()
    assert session.state.current_player == 1

    with pytest.raises(InvalidActionError):
        session.player_action(1, "steal_token", {"kind": "gold"})

    session.player_action(1, "steal_token", {"kind": "red"})
    assert p1.tokens[TokenKind.RED] == 1
    assert p2.tokens[TokenKind.RED] == 0
    assert session.state.current_player == 2


def test_bonus_token_from_card_color(session, p1):
    place(session, {(3, 3): "green", (0, 0): "blue"})
    put_in_pyramid(session, make_card("bonus", color="green", ability="token"))

    session.player_action(1, "buy_card", {"source": "pyramid", "level": 1, "index": 0})
    with pytest.raises(InvalidActionError):
        session.player_action(1, "take_bonus_token", {"position": [0, 0]})

    session.player_action(1, "take_bonus_token", {"position": [3, 3]})
    assert p1.tokens[TokenKind.GREEN] == 1
    assert session.state.current_player == 2


def test_main_action_blocked_while_interaction_pending(session, p2):
    give(p2, blue=1)
    place(session, {(0, 0): "red"})
    put_in_pyramid(session, make_card("thief", ability="steal"))
    session.player_action(1, "buy_card", {"source": "pyramid", "level": 1, "index": 0})

    with pytest.raises(InvalidActionError):
        session.player_action(1, "take_tokens", {"positions": [[0, 0]]})
