"""
Ability resolver, run once for every card acquisition and royal award.

Abilities are checked in a fixed priority; ones that cannot apply are
skipped silently and the turn proceeds to its completion checks.
"""
from typing import Optional

from .constants import STEALABLE_KINDS, Ability, TokenKind, opponent_of
from .interactions import AwaitingBonusToken, AwaitingSteal
from .lifecycle import TurnContext
from .models import GameState
from .scrolls import award_scroll

OUTCOME_NONE = "none"
OUTCOME_REPEAT = "repeat"
OUTCOME_BONUS_TOKEN = "bonus_token"
OUTCOME_STEAL = "steal"
OUTCOME_SCROLL = "scroll"
OUTCOME_SKIPPED = "skipped"


def opponent_can_be_robbed(state: GameState, player_id: int) -> bool:
    opponent = state.player(opponent_of(player_id))
    return any(opponent.tokens.get(kind, 0) > 0 for kind in STEALABLE_KINDS)


def resolve_ability(
    state: GameState,
    turn: TurnContext,
    player_id: int,
    ability: Ability,
    color: Optional[TokenKind] = None,
) -> str:
    if ability == Ability.AGAIN:
        turn.repeat_pending = True
        return OUTCOME_REPEAT
    if ability == Ability.TOKEN:
        if color is None or not state.board.has(color):
            return OUTCOME_SKIPPED
        turn.interaction = AwaitingBonusToken(color)
        return OUTCOME_BONUS_TOKEN
    if ability == Ability.STEAL:
        if not opponent_can_be_robbed(state, player_id):
            return OUTCOME_SKIPPED
        turn.interaction = AwaitingSteal()
        return OUTCOME_STEAL
    if ability == Ability.SCROLL:
        award_scroll(state, player_id)
        return OUTCOME_SCROLL
    return OUTCOME_NONE
