import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .abilities import OUTCOME_SKIPPED, resolve_ability
from .board import Position
from .constants import (
    CARD_LEVELS,
    PLAYER_IDS,
    PYRAMID_SIZES,
    STEALABLE_KINDS,
    Ability,
    TokenKind,
    opponent_of,
    parse_token_kind,
)
from .errors import InvalidActionError, InvariantViolation
from .history import TurnHistory, TurnRecord
from .interactions import (
    AwaitingBonusToken,
    AwaitingDiscard,
    AwaitingRoyalChoice,
    AwaitingScrollToken,
    AwaitingSteal,
    AwaitingWildPlacement,
    Idle,
)
from .lifecycle import TurnContext, crossed_thresholds, token_excess, victory_status
from .models import Card, GameState, PlayerBoard, RoyalCard
from .purchase import (
    CardSource,
    PaymentPlan,
    can_place_wild,
    can_reserve,
    commit_plan,
    has_wild_target,
    is_affordable,
    peek_card,
    plan_purchase,
    purchase_warnings,
    take_card,
)
from .scrolls import award_scroll, return_scroll, scrolls_for_take
from .selection import is_selectable, parse_positions, validate_selection

logger = logging.getLogger(__name__)


@dataclass
class ViewAssignment:
    """Which seat this client renders at the bottom as "yours"."""
    local_player: int = 1

    @property
    def opponent_player(self) -> int:
        return opponent_of(self.local_player)

    def to_dict(self) -> Dict[str, int]:
        return {"active": self.local_player, "opponent": self.opponent_player}

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "ViewAssignment":
        return cls(local_player=int((raw or {}).get("active", 1)))


@dataclass
class TurnEnded:
    player_id: int
    next_player: int
    record: Optional[TurnRecord]
    winner: Optional[Dict[str, Any]] = None


TurnEndListener = Callable[[TurnEnded], None]


class GameSession:
    """
    Domain-level game session independent from any transport layer.

    All rule mutations go through `player_action`; the sync layer only ever
    swaps the whole state through `restore`.
    """

    def __init__(
        self,
        game_id: str,
        cards: Optional[List[Card]] = None,
        seed: Optional[int] = None,
        verbose: bool = True,
        royals: Optional[List[RoyalCard]] = None,
    ):
        self.rng = random.Random(seed)
        self.state = GameState(game_id=game_id, verbose=verbose)
        if royals is not None:
            self.state.royals = royals
        self.turn = TurnContext()
        self.history = TurnHistory()
        self.crown_marks: Dict[int, int] = {pid: 0 for pid in PLAYER_IDS}
        self.view = ViewAssignment()
        self._turn_end_listeners: List[TurnEndListener] = []
        if cards is not None:
            self.setup(cards)

    def setup(self, cards: List[Card]):
        """Shuffle the level decks, deal the pyramids and fill the token board."""
        for level in CARD_LEVELS:
            deck = [c for c in cards if c.level == level]
            self.rng.shuffle(deck)
            size = PYRAMID_SIZES[level]
            row: List[Optional[Card]] = deck[:size]
            row.extend([None] * (size - len(row)))
            self.state.pyramids[level] = row
            self.state.decks[level] = deck[size:]
        self.state.board.fill_initial(self.rng)
        self.state.current_player = 1
        self.state.add_log("Game initialized.")

    # --- listeners -------------------------------------------------------

    def add_turn_end_listener(self, listener: TurnEndListener):
        self._turn_end_listeners.append(listener)

    def remove_turn_end_listener(self, listener: TurnEndListener):
        if listener in self._turn_end_listeners:
            self._turn_end_listeners.remove(listener)

    # --- state replacement -----------------------------------------------

    def restore(self, state: GameState, turn: TurnContext, history: TurnHistory, crown_marks: Dict[int, int]):
        """Replace the whole game wholesale. The view assignment is left alone."""
        state.verbose = self.state.verbose
        self.state = state
        self.turn = turn
        self.history = history
        marks = {pid: 0 for pid in PLAYER_IDS}
        marks.update(crown_marks or {})
        self.crown_marks = marks

    def claim_seat(self, player_id: int, client_id: str):
        self.state.seat_owners[player_id] = client_id

    # --- queries ---------------------------------------------------------

    @property
    def winner(self) -> Optional[Dict[str, Any]]:
        return victory_status(self.state)

    def public_state(self, viewer_id: Optional[int] = None) -> Dict[str, Any]:
        data = self.state.get_public_state(viewer_id)
        data.update(
            {
                "turn": self.turn.to_dict(),
                "view": self.view.to_dict(),
                "crown_marks": {str(pid): mark for pid, mark in self.crown_marks.items()},
                "recent_turns": [t.to_dict() for t in self.history.turns[-10:]],
                "winner": self.winner,
            }
        )
        return data

    def preview_purchase(self, player_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Plan, affordability and warnings for a card, without touching the game."""
        player = self._get_player(player_id)
        source = self._parse_source(payload)
        card = peek_card(self.state, player, source)
        if card is None:
            raise InvalidActionError("Card not found.")
        plan = plan_purchase(player, card, payload.get("gold_choices"))
        return {
            "card": card.to_dict(),
            "affordable": is_affordable(player, card),
            "plan": plan.to_dict(),
            "warnings": purchase_warnings(player, card, plan, self.state.opponent(player_id)),
            "needs_wild_placement": card.is_wild,
        }

    # --- entry point -----------------------------------------------------

    def player_action(self, player_id: int, action: str, payload: Optional[Dict[str, Any]] = None) -> bool:
        """
        Main entry point used by hosts. Returns True when the state mutated.
        Raises InvalidActionError, leaving the state untouched, when refused.
        """
        player = self._get_player(player_id)
        if player.player_id != self.state.current_player:
            raise InvalidActionError("It is not your turn.")

        handlers = {
            "take_tokens": self._handle_take_tokens,
            "buy_card": self._handle_buy_card,
            "place_wild_card": self._handle_place_wild_card,
            "reserve_card": self._handle_reserve_card,
            "use_scroll": self._handle_use_scroll,
            "take_scroll_token": self._handle_take_scroll_token,
            "refill_board": self._handle_refill_board,
            "take_bonus_token": self._handle_take_bonus_token,
            "steal_token": self._handle_steal_token,
            "discard_tokens": self._handle_discard_tokens,
            "choose_royal": self._handle_choose_royal,
            "cancel": self._handle_cancel,
        }

        if action not in handlers:
            raise InvalidActionError(f"Unknown action: {action}")

        handlers[action](player, payload or {})
        return True

    # --- helpers ---------------------------------------------------------

    def _get_player(self, player_id: Any) -> PlayerBoard:
        try:
            return self.state.player(int(player_id))
        except (KeyError, TypeError, ValueError):
            raise InvalidActionError("Player not found.")

    def _parse_source(self, payload: Dict[str, Any]) -> CardSource:
        try:
            return CardSource.from_payload(payload)
        except (TypeError, ValueError) as exc:
            raise InvalidActionError(str(exc))

    def _parse_positions(self, raw: Any) -> List[Position]:
        try:
            return parse_positions(raw)
        except (KeyError, TypeError, ValueError):
            raise InvalidActionError("Positions must be (row, col) pairs.")

    def _parse_kind(self, raw: Any) -> TokenKind:
        return parse_token_kind(raw, InvalidActionError)

    def _assert_idle(self):
        if not self.turn.is_idle:
            raise InvalidActionError(f"Finish the pending step first ({self.turn.interaction.kind}).")

    def _assert_main_action_available(self):
        self._assert_idle()
        if self.turn.main_action_done:
            raise InvalidActionError("Main action already used this turn.")

    def _record(self, player: PlayerBoard, kind: str, payload: Optional[Dict[str, Any]] = None):
        self.history.record(player.player_id, kind, payload)

    def _award_scroll(self, recipient_id: int, acting: PlayerBoard, reason: str):
        origin = award_scroll(self.state, recipient_id)
        self._record(acting, "scroll_awarded", {"recipient": recipient_id, "origin": origin, "reason": reason})
        self.state.add_log(f"Player {recipient_id} gains a scroll ({reason}).")

    # --- main actions ----------------------------------------------------

    def _handle_take_tokens(self, player: PlayerBoard, payload: Dict[str, Any]):
        self._assert_main_action_available()
        positions = self._parse_positions(payload.get("positions"))
        result = validate_selection(self.state.board, positions, self.turn.interaction)
        if not result:
            raise InvalidActionError(result.reason)

        taken = [self.state.board.take(pos) for pos in positions]
        gained: Dict[TokenKind, int] = {}
        for kind in taken:
            gained[kind] = gained.get(kind, 0) + 1
        player.add_tokens(gained)
        self.turn.main_action_done = True
        self._record(player, "tokens_taken", {"tokens": {k.value: v for k, v in gained.items()}})
        self.state.add_log(f"Player {player.player_id} takes {len(taken)} token(s).")

        for _ in range(scrolls_for_take(taken)):
            self._award_scroll(opponent_of(player.player_id), player, "token take")
        self._advance(player)

    def _handle_buy_card(self, player: PlayerBoard, payload: Dict[str, Any]):
        self._assert_main_action_available()
        source = self._parse_source(payload)
        if source.kind == "deck":
            raise InvalidActionError("Cards cannot be bought blind from a deck.")
        card = peek_card(self.state, player, source)
        if card is None:
            raise InvalidActionError("Card not found.")
        plan = plan_purchase(player, card, payload.get("gold_choices"))
        if not plan.valid:
            raise InvalidActionError(plan.reason)

        if card.is_wild:
            if not has_wild_target(player):
                raise InvariantViolation("A wild card needs a color stack to join, and you have none.")
            # Nothing is paid until the card has a stack.
            self.turn.interaction = AwaitingWildPlacement(card=card, plan=plan, source=source)
            return

        self._acquire(player, card, plan, source)

    def _acquire(self, player: PlayerBoard, card: Card, plan: PaymentPlan, source: CardSource):
        commit_plan(self.state, player, plan)
        taken = take_card(self.state, player, source)
        player.cards.append(taken)
        self.turn.main_action_done = True
        self._record(
            player,
            "card_purchased",
            {
                "card_id": taken.id,
                "level": taken.level,
                "color": (taken.effective_color.value if taken.effective_color else taken.color.value),
                "points": taken.points,
                "spend": {k.value: v for k, v in plan.spend.items()},
                "source": source.kind,
            },
        )
        self.state.add_log(f"Player {player.player_id} buys card {taken.id}.")
        self._resolve(player, taken.ability, taken.effective_color)
        self._advance(player)

    def _handle_place_wild_card(self, player: PlayerBoard, payload: Dict[str, Any]):
        pending = self.turn.interaction
        if not isinstance(pending, AwaitingWildPlacement):
            raise InvalidActionError("There is no wild card waiting to be placed.")
        color = self._parse_kind(payload.get("color"))
        if not can_place_wild(player, color):
            raise InvalidActionError(f"A wild card cannot join the {color.value} stack.")
        current = peek_card(self.state, player, pending.source)
        if current is None or current.id != pending.card.id:
            raise InvariantViolation("The card moved before it could be placed.")

        self.turn.interaction = Idle()
        commit_plan(self.state, player, pending.plan)
        card = take_card(self.state, player, pending.source)
        card.wild_color_stack = color
        player.cards.append(card)
        self.turn.main_action_done = True
        self._record(
            player,
            "card_purchased",
            {
                "card_id": card.id,
                "level": card.level,
                "color": color.value,
                "points": card.points,
                "spend": {k.value: v for k, v in pending.plan.spend.items()},
                "source": pending.source.kind,
            },
        )
        self._record(player, "wild_placed", {"card_id": card.id, "color": color.value})
        self.state.add_log(f"Player {player.player_id} places wild card {card.id} on {color.value}.")
        self._resolve(player, card.ability, color)
        self._advance(player)

    def _handle_reserve_card(self, player: PlayerBoard, payload: Dict[str, Any]):
        self._assert_main_action_available()
        if not can_reserve(player):
            raise InvalidActionError("You already hold the maximum of reserved cards.")
        source = self._parse_source(payload)
        if source.kind == "reserve":
            raise InvalidActionError("That card is already reserved.")
        card = peek_card(self.state, player, source)
        if card is None:
            raise InvalidActionError("Card not found.")

        gold_positions = self.state.board.positions_of(TokenKind.GOLD)
        if not gold_positions:
            raise InvalidActionError("There is no gold token left on the board.")
        if payload.get("position") is not None:
            gold_pos = self._parse_positions([payload["position"]])[0]
            if gold_pos not in gold_positions:
                raise InvalidActionError("Reserving takes a gold token; that space has none.")
        else:
            gold_pos = gold_positions[0]

        self.state.board.take(gold_pos)
        player.add_tokens({TokenKind.GOLD: 1})
        player.reserves.append(take_card(self.state, player, source))
        self.turn.main_action_done = True
        self._record(player, "card_reserved", {"card_id": card.id, "level": card.level, "source": source.kind})
        self.state.add_log(f"Player {player.player_id} reserves a level {card.level} card.")
        self._advance(player)

    # --- optional actions ------------------------------------------------

    def _handle_use_scroll(self, player: PlayerBoard, payload: Dict[str, Any]):
        self._assert_main_action_available()
        if player.privileges < 1:
            raise InvalidActionError("You have no scroll to spend.")
        if self.turn.board_was_refilled:
            raise InvalidActionError("Scrolls cannot be used after refilling the board this turn.")
        if not any(self.state.board.has(kind) for kind in STEALABLE_KINDS):
            raise InvalidActionError("There is no token on the board to take.")
        if payload.get("position") is None:
            self.turn.interaction = AwaitingScrollToken()
            return
        self._take_scroll_token(player, self._scroll_position(payload))

    def _handle_take_scroll_token(self, player: PlayerBoard, payload: Dict[str, Any]):
        if not isinstance(self.turn.interaction, AwaitingScrollToken):
            raise InvalidActionError("Spend a scroll first.")
        self._take_scroll_token(player, self._scroll_position(payload))

    def _scroll_position(self, payload: Dict[str, Any]) -> Position:
        if payload.get("position") is None:
            raise InvalidActionError("Select one non-gold token.")
        pos = self._parse_positions([payload["position"]])[0]
        if not is_selectable(self.state.board, pos):
            raise InvalidActionError("Select one non-gold token.")
        return pos

    def _take_scroll_token(self, player: PlayerBoard, pos: Position):
        kind = self.state.board.take(pos)
        player.add_tokens({kind: 1})
        return_scroll(self.state, player.player_id)
        self.turn.interaction = Idle()
        self._record(player, "scroll_used", {"kind": kind.value})
        self.state.add_log(f"Player {player.player_id} spends a scroll for a {kind.value} token.")
        self._advance(player)

    def _handle_refill_board(self, player: PlayerBoard, payload: Dict[str, Any]):
        self._assert_main_action_available()
        if self.state.bag_total() == 0:
            raise InvalidActionError("The bag is empty.")
        placed = self.state.board.refill_from_bag(self.state.bag, self.rng)
        self.turn.board_was_refilled = True
        self._record(player, "board_refilled", {"count": len(placed)})
        self.state.add_log(f"Player {player.player_id} refills the board with {len(placed)} token(s).")
        self._award_scroll(opponent_of(player.player_id), player, "board refill")
        self._advance(player)

    # --- pending interactions --------------------------------------------

    def _handle_take_bonus_token(self, player: PlayerBoard, payload: Dict[str, Any]):
        pending = self.turn.interaction
        if not isinstance(pending, AwaitingBonusToken):
            raise InvalidActionError("No bonus token is owed.")
        raw = payload.get("positions")
        if raw is None and payload.get("position") is not None:
            raw = [payload["position"]]
        positions = self._parse_positions(raw)
        result = validate_selection(self.state.board, positions, pending)
        if not result:
            raise InvalidActionError(result.reason)

        kind = self.state.board.take(positions[0])
        player.add_tokens({kind: 1})
        self.turn.interaction = Idle()
        self._record(player, "bonus_token", {"color": kind.value})
        self._advance(player)

    def _handle_steal_token(self, player: PlayerBoard, payload: Dict[str, Any]):
        if not isinstance(self.turn.interaction, AwaitingSteal):
            raise InvalidActionError("There is nothing to steal right now.")
        kind = self._parse_kind(payload.get("kind"))
        if kind not in STEALABLE_KINDS:
            raise InvalidActionError("Gold cannot be stolen.")
        opponent = self.state.opponent(player.player_id)
        if opponent.tokens.get(kind, 0) < 1:
            raise InvalidActionError(f"Your opponent has no {kind.value} token.")

        opponent.remove_tokens({kind: 1})
        player.add_tokens({kind: 1})
        self.turn.interaction = Idle()
        self._record(player, "token_stolen", {"kind": kind.value})
        self.state.add_log(f"Player {player.player_id} steals a {kind.value} token.")
        self._advance(player)

    def _handle_discard_tokens(self, player: PlayerBoard, payload: Dict[str, Any]):
        pending = self.turn.interaction
        if not isinstance(pending, AwaitingDiscard):
            raise InvalidActionError("You do not need to discard.")
        discard: Dict[TokenKind, int] = {}
        for raw_kind, raw_amount in (payload.get("tokens") or {}).items():
            kind = self._parse_kind(raw_kind)
            try:
                amount = int(raw_amount or 0)
            except (TypeError, ValueError) as exc:
                raise InvalidActionError(f"Discard amount for {kind.value} must be a whole number.") from exc
            if amount < 0:
                raise InvalidActionError("Discard amounts cannot be negative.")
            if amount:
                discard[kind] = discard.get(kind, 0) + amount
        if sum(discard.values()) != pending.count:
            raise InvalidActionError(f"Discard exactly {pending.count} token(s).")
        for kind, amount in discard.items():
            if player.tokens.get(kind, 0) < amount:
                raise InvalidActionError(f"You hold only {player.tokens.get(kind, 0)} {kind.value}.")

        player.remove_tokens(discard)
        self.state.return_to_bag(discard)
        self.turn.interaction = Idle()
        self._record(player, "tokens_discarded", {"tokens": {k.value: v for k, v in discard.items()}})
        self._advance(player)

    def _handle_choose_royal(self, player: PlayerBoard, payload: Dict[str, Any]):
        if not isinstance(self.turn.interaction, AwaitingRoyalChoice):
            raise InvalidActionError("No royal card is owed.")
        royal_id = str(payload.get("royal_id") or "")
        royal = next((r for r in self.state.untaken_royals() if r.id == royal_id), None)
        if royal is None:
            raise InvalidActionError("That royal card is not available.")

        royal.taken = True
        player.royals.append(royal)
        crossed = crossed_thresholds(self.crown_marks[player.player_id], player.crowns)
        if crossed:
            self.crown_marks[player.player_id] = crossed[0]
        self.turn.interaction = Idle()
        self._record(player, "royal_taken", {"royal_id": royal.id, "points": royal.points, "ability": royal.ability.value})
        self.state.add_log(f"Player {player.player_id} claims royal card {royal.id}.")
        self._resolve(player, royal.ability, None)
        self._advance(player)

    def _handle_cancel(self, player: PlayerBoard, payload: Dict[str, Any]):
        if isinstance(self.turn.interaction, (AwaitingWildPlacement, AwaitingScrollToken)):
            self.turn.interaction = Idle()
            return
        raise InvalidActionError("Nothing to cancel.")

    # --- turn lifecycle --------------------------------------------------

    def _resolve(self, player: PlayerBoard, ability: Ability, color: Optional[TokenKind]):
        outcome = resolve_ability(self.state, self.turn, player.player_id, ability, color)
        if outcome == OUTCOME_SKIPPED:
            logger.debug("Ability %s of player %s has no effect.", ability.value, player.player_id)
        elif ability == Ability.SCROLL:
            self._record(player, "scroll_awarded", {"recipient": player.player_id, "reason": "ability"})

    def _advance(self, player: PlayerBoard):
        """
        Run the end-of-step checks in order: pending interaction, token limit,
        crown thresholds, then completion.
        """
        if not self.turn.is_idle:
            return
        excess = token_excess(player)
        if excess:
            self.turn.interaction = AwaitingDiscard(excess)
            return
        if not self.turn.main_action_done:
            return

        pid = player.player_id
        crossed = crossed_thresholds(self.crown_marks[pid], player.crowns)
        if crossed and self.state.untaken_royals():
            self.turn.interaction = AwaitingRoyalChoice(len(crossed))
            return
        self.crown_marks[pid] = max(self.crown_marks[pid], player.crowns)

        if self.turn.repeat_pending:
            self.turn.repeat_pending = False
            self.turn.main_action_done = False
            self.state.add_log(f"Player {pid} plays again.")
            return
        self._end_turn(player)

    def _end_turn(self, player: PlayerBoard):
        record = self.history.finalize()
        next_player = opponent_of(player.player_id)
        self.state.current_player = next_player
        self.turn = TurnContext()
        event = TurnEnded(player_id=player.player_id, next_player=next_player, record=record, winner=self.winner)
        self.state.add_log(f"Turn passes to player {next_player}.")
        for listener in list(self._turn_end_listeners):
            listener(event)
