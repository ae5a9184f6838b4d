from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Union


class CardRecord(BaseModel):
    """One row of the external card data, column names as the data files use them."""
    id: Optional[str] = None
    level: Union[int, str]
    color: str = "none"
    points: Union[int, str, None] = 0
    crowns: Union[int, str, None] = 0
    ability: Optional[str] = ""
    is_double: Optional[str] = "no"
    cost_w: Union[int, str, None] = 0
    cost_bl: Union[int, str, None] = 0
    cost_g: Union[int, str, None] = 0
    cost_r: Union[int, str, None] = 0
    cost_bk: Union[int, str, None] = 0
    cost_p: Union[int, str, None] = 0


class TableCreate(BaseModel):
    cards: List[CardRecord]
    seed: Optional[int] = None
    host_remote: bool = False


class JoinRequest(BaseModel):
    code: str


class ActionRequest(BaseModel):
    player_id: int
    action: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class PurchasePreviewRequest(BaseModel):
    player_id: int
    source: str = "pyramid"
    level: Optional[int] = None
    index: int = 0
    gold_choices: Optional[List[Optional[str]]] = None


class TableSummary(BaseModel):
    table_id: str
    state: Dict[str, Any]
    sync: Optional[Dict[str, Any]] = None
