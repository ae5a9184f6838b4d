"""Wire shapes of the versioned blob store."""
import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


def _parse_blob(value: Any) -> Any:
    # Some store deployments hand the blob back as a JSON string.
    if isinstance(value, str):
        return json.loads(value)
    return value


class StatusResponse(BaseModel):
    status: str

    @property
    def operational(self) -> bool:
        return self.status == "operational"


class CreateRequest(BaseModel):
    game_type: str
    state_blob: Dict[str, Any]
    meta: Dict[str, Any] = Field(default_factory=dict)


class CreateResponse(BaseModel):
    session_id: str
    version: int
    meta: Dict[str, Any] = Field(default_factory=dict)


class LoadResponse(BaseModel):
    session_id: str
    version: int
    state_blob: Dict[str, Any]
    meta: Optional[Dict[str, Any]] = None

    @field_validator("state_blob", mode="before")
    @classmethod
    def decode_blob(cls, value: Any) -> Any:
        return _parse_blob(value)


class UpdateRequest(BaseModel):
    session_id: str
    game_type: str
    state_blob: Dict[str, Any]
    version: int


class UpdateResponse(BaseModel):
    session_id: str
    version: int


class RemoteSnapshot(BaseModel):
    """The store's authoritative copy, as returned alongside a 409."""
    version: int
    state_blob: Dict[str, Any]

    @field_validator("state_blob", mode="before")
    @classmethod
    def decode_blob(cls, value: Any) -> Any:
        return _parse_blob(value)


class ConflictResponse(BaseModel):
    current: RemoteSnapshot
