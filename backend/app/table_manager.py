"""
The TableManager singleton.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from duel_core import Card, GameSession, InvalidActionError
from duel_sync import StoreClient, SyncEvent, SyncSession, SyncSettings

logger = logging.getLogger(__name__)

StoreFactory = Callable[[SyncSettings], StoreClient]


def default_store_factory(sync_settings: SyncSettings) -> StoreClient:
    return StoreClient(sync_settings.store_url, sync_settings.game_type, timeout=sync_settings.request_timeout)


class TableNotFoundError(KeyError):
    """Raised when a table id is unknown to this host."""


@dataclass
class Table:
    table_id: str
    game: GameSession
    sync: Optional[SyncSession] = None
    catch_up: List[str] = field(default_factory=list)

    def on_sync_event(self, event: SyncEvent):
        if event.kind == "catch_up":
            self.catch_up.extend(event.payload.get("summary", []))

    def to_public_dict(self) -> Dict[str, Any]:
        # Hot-seat tables show both hands; networked tables hide the other client's reserves.
        viewer = self.game.view.local_player if self.sync else None
        return {
            "table_id": self.table_id,
            "state": self.game.public_state(viewer),
            "sync": self.sync.to_public_dict() if self.sync else None,
        }


def cards_from_records(records: List[Dict[str, Any]]) -> List[Card]:
    cards: List[Card] = []
    for idx, record in enumerate(records):
        card_id = record.get("id") or f"L{record.get('level')}-{idx}"
        cards.append(Card.from_record(record, card_id=card_id))
    return cards


class TableManager:
    """Manages the lifecycle of all tables hosted by this process."""

    def __init__(self, sync_settings: SyncSettings, store_factory: Optional[StoreFactory] = None):
        self.tables: Dict[str, Table] = {}
        self.sync_settings = sync_settings
        self.store_factory = store_factory or default_store_factory
        logger.info("TableManager initialized.")

    def _require_remote_play(self):
        if not self.sync_settings.enabled:
            raise InvalidActionError("Remote play is disabled; set DUEL_SYNC_ENABLED to turn it on.")

    def _new_sync(self, game: GameSession, table: Table) -> SyncSession:
        sync = SyncSession(game, self.store_factory(self.sync_settings), self.sync_settings)
        sync.subscribe(table.on_sync_event)
        return sync

    def _connect(self, table: Table, connect: Callable[[SyncSession], Any]):
        """Attach a sync session to the table once `connect` succeeds; a failed attempt is closed."""
        sync = self._new_sync(table.game, table)
        try:
            connect(sync)
        except Exception:
            sync.close()
            raise
        table.sync = sync

    def create_table(self, records: List[Dict[str, Any]], seed: Optional[int] = None, host_remote: bool = False) -> Table:
        if host_remote:
            self._require_remote_play()
        table_id = uuid.uuid4().hex[:8]
        game = GameSession(table_id, cards_from_records(records), seed=seed)
        table = Table(table_id=table_id, game=game)
        if host_remote:
            self._connect(table, lambda sync: sync.host())
        self.tables[table_id] = table
        logger.info("Table %s created with %d cards.", table_id, len(records))
        return table

    def join_table(self, code: str) -> Table:
        self._require_remote_play()
        table_id = uuid.uuid4().hex[:8]
        game = GameSession(table_id)
        table = Table(table_id=table_id, game=game)
        self._connect(table, lambda sync: sync.join(code))
        self.tables[table_id] = table
        logger.info("Table %s joined remote session %s.", table_id, table.sync.session_id)
        return table

    def get(self, table_id: str) -> Table:
        table = self.tables.get(table_id)
        if not table:
            raise TableNotFoundError(table_id)
        return table

    def player_action(self, table_id: str, player_id: int, action: str, payload: Dict[str, Any]) -> Table:
        """
        Routes a player's action to the correct table.
        Networked tables run it under the sync lock.
        """
        table = self.get(table_id)
        if table.sync:
            if player_id != table.sync.local_player:
                raise InvalidActionError("That seat is played from the other client.")
            table.sync.perform(player_id, action, payload)
        else:
            table.game.player_action(player_id, action, payload)
        return table

    def preview_purchase(self, table_id: str, player_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        table = self.get(table_id)
        return table.game.preview_purchase(player_id, payload)

    def take_catch_up(self, table_id: str) -> List[str]:
        table = self.get(table_id)
        summary, table.catch_up = table.catch_up, []
        return summary

    def remove_table(self, table_id: str):
        table = self.tables.pop(table_id, None)
        if table and table.sync:
            table.sync.close()
        if table:
            logger.info("Table %s removed.", table_id)

    def close_all(self):
        for table_id in list(self.tables):
            self.remove_table(table_id)
