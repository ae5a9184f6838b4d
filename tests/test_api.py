import pytest
from fastapi.testclient import TestClient

from backend.app.main import app
from backend.app.routers import get_table_manager
from backend.app.table_manager import TableManager
from duel_sync import TransportError
from tests.conftest import FakeStore, card_records, make_card


@pytest.fixture
def manager(store, sync_settings):
    manager = TableManager(sync_settings, store_factory=lambda _settings: store)
    yield manager
    manager.close_all()


@pytest.fixture
def client(manager):
    app.dependency_overrides[get_table_manager] = lambda: manager
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def create_table(client, **extra):
    response = client.post("/api/tables", json={"cards": card_records(), "seed": 11, **extra})
    assert response.status_code == 200
    return response.json()


def first_takeable(board):
    for row, cells in enumerate(board):
        for col, kind in enumerate(cells):
            if kind not in (None, "gold"):
                return [row, col]
    raise AssertionError("no token on the board")


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_create_table_deals_pyramids(client):
    table = create_table(client)
    state = table["state"]
    assert len(state["pyramids"]["1"]) == 5
    assert state["deck_counts"] == {"1": 3, "2": 4, "3": 5}
    assert state["current_player"] == 1
    assert table["sync"] is None


def test_bad_card_data_is_rejected(client):
    response = client.post("/api/tables", json={"cards": [{"level": 1, "color": "purple"}]})
    assert response.status_code == 400


def test_unknown_table(client):
    assert client.get("/api/tables/missing").status_code == 404
    response = client.post("/api/tables/missing/actions", json={"player_id": 1, "action": "cancel"})
    assert response.status_code == 404


def test_take_tokens_passes_the_turn(client):
    table = create_table(client)
    position = first_takeable(table["state"]["board"])

    response = client.post(
        f"/api/tables/{table['table_id']}/actions",
        json={"player_id": 1, "action": "take_tokens", "payload": {"positions": [position]}},
    )

    assert response.status_code == 200
    state = response.json()["state"]
    assert state["current_player"] == 2
    assert state["players"]["1"]["token_total"] == 1


def test_refused_action_is_a_bad_request(client):
    table = create_table(client)
    response = client.post(
        f"/api/tables/{table['table_id']}/actions",
        json={"player_id": 2, "action": "take_tokens", "payload": {"positions": [[2, 2]]}},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "It is not your turn."


def test_purchase_preview(client):
    table = create_table(client)
    response = client.post(
        f"/api/tables/{table['table_id']}/purchase-preview",
        json={"player_id": 1, "level": 1, "index": 0},
    )
    assert response.status_code == 200
    assert response.json()["affordable"] is True


def test_catch_up_is_empty_for_local_tables(client):
    table = create_table(client)
    assert client.get(f"/api/tables/{table['table_id']}/catch-up").json() == {"summary": []}


def test_host_and_join_a_remote_table(client, manager):
    hosted = create_table(client, host_remote=True)
    code = hosted["sync"]["share_code"]
    assert code

    joined = client.post("/api/tables/join", json={"code": code})
    assert joined.status_code == 200
    body = joined.json()
    assert body["sync"]["local_player"] == 2
    manager.get(body["table_id"]).sync.flush(timeout=5)

    response = client.post(
        f"/api/tables/{body['table_id']}/actions",
        json={"player_id": 1, "action": "take_tokens", "payload": {"positions": [[2, 2]]}},
    )
    assert response.status_code == 400


def test_join_unknown_code(client):
    assert client.post("/api/tables/join", json={"code": "nope"}).status_code == 404


def test_remote_play_disabled_by_default(client, manager):
    manager.sync_settings = manager.sync_settings.model_copy(update={"enabled": False})
    response = client.post("/api/tables", json={"cards": card_records(), "host_remote": True})
    assert response.status_code == 400
    assert client.post("/api/tables/join", json={"code": "abc"}).status_code == 400


def test_hot_seat_table_shows_both_reserves(client, manager):
    table = create_table(client)
    game = manager.get(table["table_id"]).game
    game.state.player(2).reserves.append(make_card("kept", level=2))

    players = client.get(f"/api/tables/{table['table_id']}").json()["state"]["players"]

    assert players["2"]["reserves"][0]["id"] == "kept"


def test_remote_table_hides_the_other_clients_reserves(client, manager):
    table = create_table(client, host_remote=True)
    game = manager.get(table["table_id"]).game
    game.state.player(2).reserves.append(make_card("kept", level=2))

    players = client.get(f"/api/tables/{table['table_id']}").json()["state"]["players"]

    assert "id" not in players["2"]["reserves"][0]


class UnreachableStore(FakeStore):
    def create(self, state_blob, meta=None):
        raise TransportError("store unreachable")


def test_failed_host_releases_its_sync_session(sync_settings, monkeypatch):
    manager = TableManager(sync_settings, store_factory=lambda _settings: UnreachableStore())
    opened = []
    new_sync = manager._new_sync

    def recording_new_sync(game, table):
        sync = new_sync(game, table)
        opened.append(sync)
        return sync

    monkeypatch.setattr(manager, "_new_sync", recording_new_sync)

    with pytest.raises(TransportError):
        manager.create_table(card_records(), seed=3, host_remote=True)

    assert manager.tables == {}
    assert len(opened) == 1
    assert opened[0].game._turn_end_listeners == []
    assert not opened[0].polling


def test_failed_host_is_a_bad_gateway(client, manager, monkeypatch):
    monkeypatch.setattr(manager, "store_factory", lambda _settings: UnreachableStore())
    response = client.post("/api/tables", json={"cards": card_records(), "host_remote": True})
    assert response.status_code == 502
    assert manager.tables == {}
