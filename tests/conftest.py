import copy
from concurrent.futures import Executor, Future

import pytest

from duel_core import Card, GameSession
from duel_core.constants import Ability, CardColor, TokenKind
from duel_sync import SyncSettings
from duel_sync.errors import SessionNotFoundError, TransportError
from duel_sync.retry import Conflict, Ok
from duel_sync.schemas import CreateResponse, LoadResponse, RemoteSnapshot


def make_card(card_id="c1", level=1, color="blue", points=0, crowns=0, ability="none", is_double=False, **costs):
    """Build a card; costs are given by token name, e.g. make_card(blue=3, pearl=1)."""
    return Card(
        id=card_id,
        level=level,
        color=CardColor(color),
        points=points,
        crowns=crowns,
        ability=Ability(ability),
        is_double=is_double,
        costs={TokenKind(k): v for k, v in costs.items()},
    )


def card_records(per_level=8):
    records = []
    for level in (1, 2, 3):
        for idx in range(per_level):
            records.append({"id": f"L{level}-{idx}", "level": level, "color": "blue", "points": level})
    return records


def place(session, tokens):
    """Put tokens on the board: {(row, col): "blue", ...}."""
    for pos, kind in tokens.items():
        session.state.board.set(pos, TokenKind(kind))


def put_in_pyramid(session, card, index=0):
    row = session.state.pyramids[card.level]
    while len(row) <= index:
        row.append(None)
    row[index] = card


def give(player, **tokens):
    player.add_tokens({TokenKind(k): v for k, v in tokens.items()})


@pytest.fixture
def session():
    """A session with an empty board, empty pyramids and player 1 to act."""
    return GameSession("test", verbose=False)


@pytest.fixture
def p1(session):
    return session.state.player(1)


@pytest.fixture
def p2(session):
    return session.state.player(2)


@pytest.fixture
def dealt_session():
    cards = [Card.from_record(r) for r in card_records()]
    return GameSession("dealt", cards, seed=7, verbose=False)


class ImmediateExecutor(Executor):
    """Runs submitted work on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


class FakeStore:
    """In-memory stand-in for StoreClient with the same optimistic version check."""

    def __init__(self, game_type="splendor-duel"):
        self.game_type = game_type
        self.sessions = {}
        self.created = 0
        self.failing_loads = 0
        self.failing_updates = False
        self.forced_conflicts = 0

    def create(self, state_blob, meta=None):
        self.created += 1
        session_id = f"{self.game_type}_{self.created:04d}"
        self.sessions[session_id] = {"version": 1, "blob": copy.deepcopy(state_blob)}
        return CreateResponse(session_id=session_id, version=1, meta=meta or {})

    def load(self, session_id):
        if self.failing_loads:
            self.failing_loads -= 1
            raise TransportError("store unreachable")
        if session_id not in self.sessions:
            raise SessionNotFoundError(f"Session {session_id} not found.")
        entry = self.sessions[session_id]
        return LoadResponse(session_id=session_id, version=entry["version"], state_blob=copy.deepcopy(entry["blob"]))

    def update_once(self, session_id, state_blob, version):
        if self.failing_updates:
            raise TransportError("store unreachable")
        entry = self.sessions[session_id]
        if self.forced_conflicts:
            self.forced_conflicts -= 1
            entry["version"] += 1
        if version != entry["version"]:
            return Conflict(current=RemoteSnapshot(version=entry["version"], state_blob=copy.deepcopy(entry["blob"])))
        entry["version"] += 1
        entry["blob"] = copy.deepcopy(state_blob)
        return Ok(version=entry["version"], session_id=session_id)


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


class FakeHttp:
    """Records requests and answers them from a queue of FakeResponse / exceptions."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, params=None, json=None, timeout=None):
        self.calls.append({"method": method, "url": url, "params": params, "json": json, "timeout": timeout})
        answer = self.responses.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def sync_settings():
    return SyncSettings(enabled=True, poll_interval=60.0, request_timeout=1.0, max_conflict_retries=3, degraded_after_failures=3)
