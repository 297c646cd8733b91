"""Whole-state JSON backups and time-log merging between devices."""

from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from exporter import DATA_DIR as EXPORT_DIR
from models import AppState, TimeLog, to_iso, utc_now

BACKUP_SECTIONS = ("employees", "rosters", "timeLogs")
MISSING_SECTIONS_MESSAGE = "Invalid data file. Missing required sections (employees, rosters, timeLogs)."
MISSING_LOGS_MESSAGE = 'Invalid data file. Missing or invalid "timeLogs" array.'


class DataExchangeError(ValueError):
    """Raised when a backup file cannot be read or applied."""


def backup_payload(state: AppState, *, exported_at: Optional[datetime.datetime] = None) -> Dict[str, Any]:
    payload = state.to_payload()
    payload["exportDate"] = to_iso(exported_at or utc_now())
    return payload


def export_backup(
    state: AppState,
    *,
    exported_at: Optional[datetime.datetime] = None,
    target_dir: Optional[Path] = None,
) -> Path:
    exported_at = exported_at or utc_now()
    target_dir = target_dir or EXPORT_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    filename = target_dir / f"staff_roster_data_{exported_at.date().isoformat()}.json"
    filename.write_text(json.dumps(backup_payload(state, exported_at=exported_at), indent=2), encoding="utf-8")
    return filename


def _read_json(file_path: Path) -> Any:
    try:
        return json.loads(Path(file_path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DataExchangeError(f"Could not read {file_path}: {exc}") from exc


def parse_backup(data: Any) -> AppState:
    """Validate a backup blob and return the state it describes.

    Every section must be present; importing replaces the whole state.
    """
    if not isinstance(data, dict) or any(data.get(key) is None for key in BACKUP_SECTIONS):
        raise DataExchangeError(MISSING_SECTIONS_MESSAGE)
    try:
        return AppState.from_payload({key: data[key] for key in BACKUP_SECTIONS})
    except (KeyError, TypeError, ValueError) as exc:
        raise DataExchangeError(f"Invalid data file. {exc}") from exc


def import_backup(file_path: Path) -> AppState:
    return parse_backup(_read_json(file_path))


def parse_time_logs(data: Any) -> List[TimeLog]:
    logs = data.get("timeLogs") if isinstance(data, dict) else None
    if not isinstance(logs, list):
        raise DataExchangeError(MISSING_LOGS_MESSAGE)
    try:
        return AppState.from_payload({"timeLogs": logs}).time_logs
    except (KeyError, TypeError, ValueError) as exc:
        raise DataExchangeError(f"Invalid time log entry. {exc}") from exc


def read_time_logs(file_path: Path) -> List[TimeLog]:
    return parse_time_logs(_read_json(file_path))


def merge_time_logs(time_logs: List[TimeLog], incoming: Iterable[TimeLog]) -> Tuple[List[TimeLog], int]:
    """Append incoming entries whose id is not already known; return the merged list and the added count."""
    known = {log.id for log in time_logs}
    merged = list(time_logs)
    added = 0
    for log in incoming:
        if log.id in known:
            continue
        known.add(log.id)
        merged.append(log)
        added += 1
    return merged, added
