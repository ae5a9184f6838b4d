from fastapi import APIRouter, Depends, HTTPException, status
from typing import Any, Dict, List

from duel_core import BlobDecodeError, InvalidActionError
from duel_sync import SessionNotFoundError, SyncError, SyncSettings

from . import schemas
from .config import settings
from .table_manager import Table, TableManager, TableNotFoundError

router = APIRouter()

# --- SINGLETON INSTANCE ---
table_manager = TableManager(SyncSettings())


def get_table_manager() -> TableManager:
    return table_manager


def _lookup(manager: TableManager, table_id: str) -> Table:
    try:
        return manager.get(table_id)
    except TableNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Table {table_id} not found")


def _sync_failed(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.post("/tables", response_model=schemas.TableSummary)
def create_table(request: schemas.TableCreate, manager: TableManager = Depends(get_table_manager)):
    """
    Deal a new table from the supplied card data.
    With `host_remote` the table is also published to the blob store.
    """
    seed = request.seed if request.seed is not None else settings.DEFAULT_SEED
    try:
        table = manager.create_table(
            [card.model_dump() for card in request.cards],
            seed=seed,
            host_remote=request.host_remote,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except SyncError as exc:
        raise _sync_failed(exc)
    return table.to_public_dict()


@router.post("/tables/join", response_model=schemas.TableSummary)
def join_table(request: schemas.JoinRequest, manager: TableManager = Depends(get_table_manager)):
    try:
        table = manager.join_table(request.code)
    except InvalidActionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except (SyncError, BlobDecodeError) as exc:
        raise _sync_failed(exc)
    return table.to_public_dict()


@router.get("/tables/{table_id}", response_model=schemas.TableSummary)
def get_table(table_id: str, manager: TableManager = Depends(get_table_manager)):
    return _lookup(manager, table_id).to_public_dict()


@router.post("/tables/{table_id}/actions", response_model=schemas.TableSummary)
def table_action(table_id: str, request: schemas.ActionRequest, manager: TableManager = Depends(get_table_manager)):
    _lookup(manager, table_id)
    try:
        table = manager.player_action(table_id, request.player_id, request.action, request.payload)
    except InvalidActionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return table.to_public_dict()


@router.post("/tables/{table_id}/purchase-preview")
def purchase_preview(
    table_id: str,
    request: schemas.PurchasePreviewRequest,
    manager: TableManager = Depends(get_table_manager),
) -> Dict[str, Any]:
    _lookup(manager, table_id)
    payload = request.model_dump(exclude={"player_id"}, exclude_none=True)
    try:
        return manager.preview_purchase(table_id, request.player_id, payload)
    except InvalidActionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/tables/{table_id}/catch-up")
def catch_up(table_id: str, manager: TableManager = Depends(get_table_manager)) -> Dict[str, List[str]]:
    """Opponent turns summarized since the last call; empty once read."""
    _lookup(manager, table_id)
    return {"summary": manager.take_catch_up(table_id)}
