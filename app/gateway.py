"""Read/write access to the authoritative application state.

Both gateways speak the same contract: ``load()`` returns an ``AppState`` and
``save(state)`` returns the state as persisted. Any failure surfaces as
``GatewayError`` so callers can decide how to degrade.
"""

from __future__ import annotations

from typing import Callable, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError

from database import SessionLocal, init_database, load_state_payload, save_state_payload
from models import AppState
from settings import get_settings

STATE_PATH = "/api/state"
DEFAULT_TIMEOUT = 10.0


class GatewayError(RuntimeError):
    """Raised when the state store cannot be read or written."""


class DatabaseStateGateway:
    def __init__(self, session_factory: Callable = SessionLocal, *, create_tables: bool = True) -> None:
        self.session_factory = session_factory
        if create_tables:
            bind = getattr(session_factory, "kw", {}).get("bind")
            init_database(bind)

    def load(self) -> AppState:
        try:
            with self.session_factory() as session:
                return AppState.from_payload(load_state_payload(session))
        except (SQLAlchemyError, KeyError, TypeError, ValueError) as exc:
            raise GatewayError(f"Failed to fetch state: {exc}") from exc

    def save(self, state: AppState) -> AppState:
        try:
            with self.session_factory() as session:
                return AppState.from_payload(save_state_payload(session, state.to_payload()))
        except (SQLAlchemyError, KeyError, TypeError, ValueError) as exc:
            raise GatewayError(f"Failed to save state: {exc}") from exc


class HttpStateGateway:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if base_url is None:
            base_url = get_settings().roster_api_base
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout)

    def _url(self) -> str:
        return f"{self.base_url}{STATE_PATH}"

    def load(self) -> AppState:
        try:
            response = self.client.get(self._url())
            response.raise_for_status()
            return AppState.from_payload(response.json())
        except httpx.HTTPStatusError as exc:
            raise GatewayError(f"Failed to fetch state: {exc.response.status_code}") from exc
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
            raise GatewayError(f"Failed to fetch state: {exc}") from exc

    def save(self, state: AppState) -> AppState:
        try:
            response = self.client.post(self._url(), json=state.to_payload())
            response.raise_for_status()
            return AppState.from_payload(response.json())
        except httpx.HTTPStatusError as exc:
            raise GatewayError(f"Failed to save state: {exc.response.status_code}") from exc
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
            raise GatewayError(f"Failed to save state: {exc}") from exc

    def close(self) -> None:
        self.client.close()
