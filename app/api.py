"""FastAPI backend holding the authoritative roster state.

The store is last-write-wins: ``POST /api/state`` overwrites employees,
rosters and time logs together and echoes what was persisted.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from fastapi import Depends, FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

# Ensure absolute imports (e.g., "import database") still resolve.
APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import database  # noqa: E402
from briefing import generate_daily_briefing  # noqa: E402
from models import DAYS, WEEKS, AppState  # noqa: E402
from settings import get_settings  # noqa: E402

logger = logging.getLogger(__name__)

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:3001",
]


def allowed_origins() -> list[str]:
    extra = get_settings().extra_origins()
    return DEFAULT_ORIGINS + [origin for origin in extra if origin not in DEFAULT_ORIGINS]


@asynccontextmanager
async def lifespan(_: FastAPI):
    database.init_database()
    yield


app = FastAPI(title="Staff Roster API", version="0.1", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_origin_regex=r"^http://192\.168\.\d+\.\d+:\d+$",
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


def get_db():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _audit(db: Session, actor: str, action: str, payload: Dict[str, Any] | None = None) -> None:
    database.record_audit_log(db, user_id=actor, action=action, target_type="State", payload=payload)


@app.get("/")
def root() -> Dict[str, str]:
    return {"status": "ok", "message": "Staff roster backend"}


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/state")
def get_state(db=Depends(get_db)) -> JSONResponse:
    try:
        payload = database.load_state_payload(db)
    except SQLAlchemyError as exc:
        logger.error("Failed to read state: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to read state")
    return JSONResponse(content=jsonable_encoder(payload))


@app.post("/api/state")
def save_state(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    try:
        AppState.from_payload(payload)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid state payload: {exc}")
    try:
        stored = database.save_state_payload(db, payload)
    except SQLAlchemyError as exc:
        logger.error("Failed to write state: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to write state")
    _audit(
        db,
        actor=str(payload.get("actor") or "api"),
        action="STATE_SAVE",
        payload={
            "employees": len(stored["employees"]),
            "timeLogs": len(stored["timeLogs"]),
        },
    )
    return JSONResponse(content=jsonable_encoder(stored))


@app.post("/api/briefing")
def briefing(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    day = payload.get("day")
    week = payload.get("week") or "current_week"
    if day not in DAYS:
        raise HTTPException(status_code=400, detail="day must be a weekday name such as 'Monday'")
    if week not in WEEKS:
        raise HTTPException(status_code=400, detail="week must be 'current_week' or 'next_week'")
    state = AppState.from_payload(database.load_state_payload(db))
    text = generate_daily_briefing(state.rosters.week(week)[day], state.employees)
    return JSONResponse(content={"day": day, "week": week, "briefing": text})
