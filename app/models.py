"""Shared data contracts for employees, rosters and time logs.

Engines receive these values and return new ones; the wire helpers translate
them to and from the camelCase JSON blobs kept by the persistence backend.
"""

from __future__ import annotations

import copy
import datetime
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from roles import canonical_role, normalize_department

UTC = datetime.timezone.utc

DAYS: List[str] = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
WEEKS: List[str] = ["current_week", "next_week"]
WEEK_WIRE_KEYS: Dict[str, str] = {"current_week": "currentWeek", "next_week": "nextWeek"}
LOG_STATUSES = {"pending", "approved", "rejected"}
TIME_LABEL = re.compile(r"^(\d{1,2}):(\d{2})$")

Roster = Dict[str, List["Shift"]]


@dataclass
class Employee:
    id: int
    name: str
    role: str
    department: str
    pin: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "department": self.department,
            "pin": self.pin,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Employee":
        raw_department = str(payload.get("department") or "")
        department = normalize_department(raw_department)
        if not department:
            raise ValueError(f"Unknown department '{raw_department}' for employee {payload.get('id')}.")
        role = canonical_role(department, str(payload.get("role") or ""))
        return cls(
            id=int(payload["id"]),
            name=str(payload.get("name") or ""),
            role=role,
            department=department,
            pin=str(payload.get("pin") or ""),
        )


@dataclass
class Shift:
    employee_ids: List[int] = field(default_factory=list)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    break_start_time: Optional[str] = None
    break_end_time: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        # employee_ids behaves as an ordered set
        seen: List[int] = []
        for value in self.employee_ids:
            value = int(value)
            if value not in seen:
                seen.append(value)
        self.employee_ids = seen
        self.start_time = _time_label(self.start_time)
        self.end_time = _time_label(self.end_time)
        self.break_start_time = _time_label(self.break_start_time)
        self.break_end_time = _time_label(self.break_end_time)
        self.notes = _clean(self.notes)

    @property
    def is_timed(self) -> bool:
        return bool(self.start_time and self.end_time)

    def label(self) -> str:
        time = f"{self.start_time} - {self.end_time}" if self.is_timed else ""
        notes = f"({self.notes})" if self.notes else ""
        return " ".join(part for part in (time, notes) if part).strip()

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"employeeIds": list(self.employee_ids)}
        for key, value in (
            ("startTime", self.start_time),
            ("endTime", self.end_time),
            ("breakStartTime", self.break_start_time),
            ("breakEndTime", self.break_end_time),
            ("notes", self.notes),
        ):
            if value:
                payload[key] = value
        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Shift":
        return cls(
            employee_ids=list(payload.get("employeeIds") or []),
            start_time=payload.get("startTime"),
            end_time=payload.get("endTime"),
            break_start_time=payload.get("breakStartTime"),
            break_end_time=payload.get("breakEndTime"),
            notes=payload.get("notes"),
        )


@dataclass
class Rosters:
    current_week: Roster = field(default_factory=lambda: empty_roster())
    next_week: Roster = field(default_factory=lambda: empty_roster())

    def week(self, week: str) -> Roster:
        if week not in WEEKS:
            raise LookupError(f"Unknown roster week '{week}'.")
        return getattr(self, week)

    def to_payload(self) -> Dict[str, Any]:
        return {
            WEEK_WIRE_KEYS[week]: {
                day: [shift.to_payload() for shift in self.week(week)[day]] for day in DAYS
            }
            for week in WEEKS
        }

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "Rosters":
        payload = payload or {}
        if not isinstance(payload, dict):
            raise ValueError("'rosters' must be an object.")
        weeks: Dict[str, Roster] = {}
        for week, wire_key in WEEK_WIRE_KEYS.items():
            raw_week = payload.get(wire_key) or {}
            if not isinstance(raw_week, dict):
                raise ValueError(f"'{wire_key}' must map day names to shift lists.")
            roster = empty_roster()
            for day in DAYS:
                for item in _records(raw_week, day):
                    roster[day].append(Shift.from_payload(item))
            weeks[week] = roster
        return cls(**weeks)


@dataclass
class TimeLog:
    id: int
    employee_id: int
    clock_in_time: datetime.datetime
    clock_out_time: Optional[datetime.datetime] = None
    status: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.clock_out_time is None

    def duration_ms(self) -> int:
        if self.clock_out_time is None:
            return 0
        return (self.clock_out_time - self.clock_in_time) // datetime.timedelta(milliseconds=1)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "employeeId": self.employee_id,
            "clockInTime": to_iso(self.clock_in_time),
            "clockOutTime": to_iso(self.clock_out_time) if self.clock_out_time else None,
        }
        if self.status:
            payload["status"] = self.status
        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TimeLog":
        clock_out = payload.get("clockOutTime")
        status = payload.get("status")
        return cls(
            id=int(payload["id"]),
            employee_id=int(payload["employeeId"]),
            clock_in_time=parse_iso(payload["clockInTime"]),
            clock_out_time=parse_iso(clock_out) if clock_out else None,
            status=status if status in LOG_STATUSES else None,
        )


@dataclass
class ClockStatus:
    status: str
    time: Optional[datetime.datetime]


@dataclass
class AppState:
    employees: List[Employee] = field(default_factory=list)
    rosters: Rosters = field(default_factory=Rosters)
    time_logs: List[TimeLog] = field(default_factory=list)

    def employee(self, employee_id: int) -> Optional[Employee]:
        for employee in self.employees:
            if employee.id == employee_id:
                return employee
        return None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "employees": [employee.to_payload() for employee in self.employees],
            "rosters": self.rosters.to_payload(),
            "timeLogs": [log.to_payload() for log in self.time_logs],
        }

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "AppState":
        payload = payload or {}
        if not isinstance(payload, dict):
            raise ValueError("State must be an object with employees, rosters and timeLogs.")
        return cls(
            employees=[Employee.from_payload(item) for item in _records(payload, "employees")],
            rosters=Rosters.from_payload(payload.get("rosters")),
            time_logs=[TimeLog.from_payload(item) for item in _records(payload, "timeLogs")],
        )


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _time_label(value: Optional[str]) -> Optional[str]:
    """Zero-pad ``H:MM`` labels; anything else is left for validation to reject."""
    value = _clean(value)
    if value is None:
        return None
    match = TIME_LABEL.match(value)
    if not match:
        return value
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def _records(payload: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    items = payload.get(key) or []
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise ValueError(f"'{key}' must be a list of objects.")
    return items


def empty_roster() -> Roster:
    return {day: [] for day in DAYS}


def clone(value):
    return copy.deepcopy(value)


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(UTC)


def ensure_aware(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_iso(value: datetime.datetime) -> str:
    return ensure_aware(value).isoformat().replace("+00:00", "Z")


def parse_iso(value: str | datetime.datetime) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return ensure_aware(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_aware(datetime.datetime.fromisoformat(text))


def next_id(ids: Iterable[int]) -> int:
    return max(ids, default=0) + 1


DEFAULT_EMPLOYEES: List[Dict[str, Any]] = [
    {"id": 1, "name": "Huda", "role": "Manager", "department": "Kitchen", "pin": "1234"},
    {"id": 2, "name": "Suman", "role": "Manager", "department": "FOH", "pin": "1234"},
    {"id": 3, "name": "Luca", "role": "Chef", "department": "Kitchen", "pin": "1234"},
    {"id": 4, "name": "Dennis", "role": "Chef", "department": "Kitchen", "pin": "1234"},
    {"id": 5, "name": "Enrico", "role": "Waiter", "department": "FOH", "pin": "1234"},
    {"id": 6, "name": "Sundesh", "role": "Waiter", "department": "FOH", "pin": "1234"},
    {"id": 7, "name": "Siyam", "role": "Host", "department": "FOH", "pin": "1234"},
    {"id": 8, "name": "Taki", "role": "Kitchen Hand", "department": "Stewarding", "pin": "1234"},
    {"id": 9, "name": "Tanbir", "role": "Supervisor", "department": "Stewarding", "pin": "1234"},
    {"id": 10, "name": "Progganur", "role": "Manager", "department": "Stewarding", "pin": "1234"},
]


def default_state() -> AppState:
    return AppState(
        employees=[Employee.from_payload(item) for item in DEFAULT_EMPLOYEES],
        rosters=Rosters(),
        time_logs=[],
    )
