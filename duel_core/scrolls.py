import logging
from typing import List

from .constants import SCROLL_POOL_SIZE, TokenKind, opponent_of
from .models import GameState

logger = logging.getLogger(__name__)


def award_scroll(state: GameState, recipient_id: int) -> str:
    """
    Give one scroll to `recipient_id`.

    Taken from the pool first, otherwise from the other player. When neither
    has one the scroll is granted anyway. Returns where it came from: "pool",
    "opponent" or "none".
    """
    recipient = state.player(recipient_id)
    other = state.player(opponent_of(recipient_id))
    if state.scroll_pool > 0:
        state.scroll_pool -= 1
        origin = "pool"
    elif other.privileges > 0:
        other.privileges -= 1
        origin = "opponent"
    else:
        # TODO: confirm with the rules owner whether this grant should be dropped instead.
        logger.warning("Scroll pool and player %s are both empty; granting a scroll anyway.", other.player_id)
        origin = "none"
    recipient.privileges += 1
    return origin


def return_scroll(state: GameState, player_id: int):
    """A spent scroll goes back to the pool."""
    player = state.player(player_id)
    player.privileges -= 1
    state.scroll_pool = min(SCROLL_POOL_SIZE, state.scroll_pool + 1)


def scrolls_for_take(taken: List[TokenKind]) -> int:
    """
    Scrolls the opponent earns from a token take. Three of the same color and
    exactly two pearls are checked independently.
    """
    awards = 0
    if len(taken) == 3 and len(set(taken)) == 1 and taken[0] != TokenKind.GOLD:
        awards += 1
    if taken.count(TokenKind.PEARL) == 2:
        awards += 1
    return awards
