import logging
from typing import Any, Dict, Optional

import requests
from pydantic import BaseModel, ValidationError

from .errors import SessionNotFoundError, TransportError
from .retry import Conflict, Ok, WriteResult
from .schemas import (
    ConflictResponse,
    CreateRequest,
    CreateResponse,
    LoadResponse,
    StatusResponse,
    UpdateRequest,
    UpdateResponse,
)

logger = logging.getLogger(__name__)


class StoreClient:
    """
    Client for the generic versioned blob store.

    Every call is a single HTTP request addressed by `?action=`; retries and
    conflict handling live with the caller.
    """

    def __init__(self, base_url: str, game_type: str, timeout: float = 10.0, http: Optional[requests.Session] = None):
        self.base_url = base_url
        self.game_type = game_type
        self.timeout = timeout
        self.http = http or requests.Session()

    def _request(
        self,
        method: str,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[BaseModel] = None,
    ) -> requests.Response:
        query = {"action": action}
        query.update(params or {})
        try:
            return self.http.request(
                method,
                self.base_url,
                params=query,
                json=body.model_dump() if body is not None else None,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"{action} request failed: {exc}") from exc

    def _parse(self, response: requests.Response, model, action: str):
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TransportError(f"{action} returned an unreadable body: {exc}") from exc

    def _check(self, response: requests.Response, action: str):
        if not 200 <= response.status_code < 300:
            raise TransportError(f"{action} failed with HTTP {response.status_code}")

    def status(self) -> StatusResponse:
        response = self._request("GET", "status")
        self._check(response, "status")
        return self._parse(response, StatusResponse, "status")

    def create(self, state_blob: Dict[str, Any], meta: Optional[Dict[str, Any]] = None) -> CreateResponse:
        body = CreateRequest(game_type=self.game_type, state_blob=state_blob, meta=meta or {})
        response = self._request("POST", "create", body=body)
        self._check(response, "create")
        created = self._parse(response, CreateResponse, "create")
        logger.info("Created session %s at version %d.", created.session_id, created.version)
        return created

    def load(self, session_id: str) -> LoadResponse:
        response = self._request("GET", "load", params={"session_id": session_id, "game_type": self.game_type})
        if response.status_code == 404:
            raise SessionNotFoundError(f"Session {session_id} not found.")
        self._check(response, "load")
        return self._parse(response, LoadResponse, "load")

    def update_once(self, session_id: str, state_blob: Dict[str, Any], version: int) -> WriteResult:
        """One optimistic write. A 409 comes back as `Conflict` carrying the store's copy."""
        body = UpdateRequest(session_id=session_id, game_type=self.game_type, state_blob=state_blob, version=version)
        response = self._request("POST", "update", body=body)
        if response.status_code == 409:
            conflict = self._parse(response, ConflictResponse, "update")
            return Conflict(current=conflict.current)
        self._check(response, "update")
        updated = self._parse(response, UpdateResponse, "update")
        return Ok(version=updated.version, session_id=updated.session_id)
