from __future__ import annotations

import datetime
import json
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from models import AppState, default_state
from settings import DATA_DIR, get_settings


DATA_DIR.mkdir(parents=True, exist_ok=True)
STATE_DATABASE_URL = get_settings().roster_database_url
STATE_KEYS = ("employees", "rosters", "timeLogs")


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Base(DeclarativeBase):
    """Metadata for the state store and audit tables."""

    pass


class StateEntry(Base):
    __tablename__ = "state_entries"

    key: Mapped[str] = mapped_column(String(32), primary_key=True)
    payloadJSON: Mapped[str] = mapped_column(Text, nullable=False, default="null")
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def payload(self) -> Any:
        try:
            return json.loads(self.payloadJSON or "null")
        except json.JSONDecodeError:
            return None


class AuditLog(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(60), nullable=False)
    action: Mapped[str] = mapped_column(String(60), nullable=False)
    target_type: Mapped[str] = mapped_column(String(32), nullable=False, default="State")
    target_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    payloadJSON: Mapped[str] = mapped_column(String(2000), nullable=False, default="{}")
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


state_engine = create_engine(
    STATE_DATABASE_URL,
    echo=False,
    future=True,
)
SessionLocal = sessionmaker(bind=state_engine, expire_on_commit=False, future=True)


def init_database(engine=None) -> None:
    Base.metadata.create_all(engine or state_engine)


def _write_entries(session, payload: Dict[str, Any]) -> None:
    for key in STATE_KEYS:
        entry = session.get(StateEntry, key)
        if entry is None:
            entry = StateEntry(key=key)
            session.add(entry)
        entry.payloadJSON = json.dumps(payload.get(key))


def seed_state(session) -> bool:
    """Store the default directory and empty rosters on first use."""
    if session.get(StateEntry, "employees") is not None:
        return False
    _write_entries(session, default_state().to_payload())
    session.commit()
    return True


def load_state_payload(session) -> Dict[str, Any]:
    """Return the persisted ``{employees, rosters, timeLogs}`` blob, seeding on first use."""
    seed_state(session)
    entries = {entry.key: entry.payload() for entry in session.scalars(select(StateEntry))}
    state = AppState.from_payload(entries)
    return state.to_payload()


def save_state_payload(session, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Overwrite all three blobs (last write wins) and echo the stored state."""
    state = AppState.from_payload(payload)
    _write_entries(session, state.to_payload())
    session.commit()
    entries = {entry.key: entry.payload() for entry in session.scalars(select(StateEntry))}
    return AppState.from_payload(entries).to_payload()


def record_audit_log(
    session,
    user_id: str,
    action: str,
    target_type: str = "State",
    target_id: Optional[int] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    log = AuditLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        payloadJSON=json.dumps(payload or {}),
    )
    session.add(log)
    session.commit()
    return log
