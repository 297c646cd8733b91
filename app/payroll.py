from __future__ import annotations

import datetime
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

from models import Employee, LOG_STATUSES, TimeLog, next_id, parse_iso
from roles import normalize_department

MS_PER_HOUR = 3_600_000
MS_PER_MINUTE = 60_000
REVIEW_STATUSES = {"approved", "rejected"}


class TimeLogError(ValueError):
    """Raised when a time entry cannot be saved or reviewed."""


@dataclass
class EmployeeHours:
    employee: Employee
    logs: List[TimeLog] = field(default_factory=list)
    approved_ms: int = 0
    pending_ms: int = 0
    rejected_ms: int = 0

    @property
    def total_ms(self) -> int:
        return self.approved_ms + self.pending_ms + self.rejected_ms


def summarize_hours(
    employees: Iterable[Employee],
    time_logs: Iterable[TimeLog],
    department: str,
) -> List[EmployeeHours]:
    """Per-employee approved, pending and rejected totals for one department.

    Open logs contribute nothing; totals are recomputed on every call.
    """
    department = normalize_department(department)
    logs = list(time_logs)
    summary: List[EmployeeHours] = []
    for employee in employees:
        if employee.department != department:
            continue
        entry = EmployeeHours(employee=employee)
        for log in logs:
            if log.employee_id != employee.id:
                continue
            entry.logs.append(log)
            if log.clock_out_time is None:
                continue
            if log.status == "approved":
                entry.approved_ms += log.duration_ms()
            elif log.status == "pending":
                entry.pending_ms += log.duration_ms()
            elif log.status == "rejected":
                entry.rejected_ms += log.duration_ms()
        summary.append(entry)
    return summary


def _find(time_logs: List[TimeLog], log_id: int) -> int:
    for index, log in enumerate(time_logs):
        if log.id == log_id:
            return index
    raise TimeLogError(f"Time entry {log_id} was not found.")


def set_log_status(time_logs: List[TimeLog], log_id: int, status: str) -> List[TimeLog]:
    status = (status or "").strip().lower()
    if status not in REVIEW_STATUSES:
        raise TimeLogError(f"Unsupported review status '{status}'.")
    index = _find(time_logs, log_id)
    log = time_logs[index]
    if log.clock_out_time is None:
        raise TimeLogError("An open time entry cannot be reviewed until the employee clocks out.")
    # Re-applying the current status is an overwrite; any other move must start from pending.
    if log.status != status and log.status != "pending":
        raise TimeLogError(f"Time entry {log_id} is already {log.status}.")
    updated = list(time_logs)
    updated[index] = replace(log, status=status)
    return updated


def _coerce_time(value: Any, label: str) -> Optional[datetime.datetime]:
    if value in (None, ""):
        return None
    try:
        return parse_iso(value)
    except (TypeError, ValueError) as exc:
        raise TimeLogError(f"{label} is not a valid timestamp.") from exc


def upsert_manual_log(time_logs: List[TimeLog], data: Dict[str, Any]) -> Tuple[List[TimeLog], TimeLog]:
    """Create (falsy ``id``) or overwrite a time entry from the correction form.

    Manual entries are not subject to the one-open-entry rule of the clock.
    """
    clock_in = _coerce_time(data.get("clock_in_time"), "Clock-in time")
    if clock_in is None:
        raise TimeLogError("Clock-in date and time are required.")
    clock_out = _coerce_time(data.get("clock_out_time"), "Clock-out time")
    if clock_out is not None and clock_in >= clock_out:
        raise TimeLogError("Clock-out time must be after clock-in time.")
    try:
        employee_id = int(data["employee_id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise TimeLogError("A time entry must belong to an employee.") from exc

    status = data.get("status")
    if clock_out is None:
        status = None
    elif status not in LOG_STATUSES:
        status = "pending"

    log_id = data.get("id")
    if not log_id:
        entry = TimeLog(
            id=next_id(log.id for log in time_logs),
            employee_id=employee_id,
            clock_in_time=clock_in,
            clock_out_time=clock_out,
            status=status,
        )
        return [*time_logs, entry], entry

    index = _find(time_logs, int(log_id))
    entry = TimeLog(
        id=int(log_id),
        employee_id=employee_id,
        clock_in_time=clock_in,
        clock_out_time=clock_out,
        status=status,
    )
    updated = list(time_logs)
    updated[index] = entry
    return updated, entry


def delete_log(time_logs: List[TimeLog], log_id: int) -> List[TimeLog]:
    return [log for log in time_logs if log.id != log_id]


def format_duration(milliseconds: int) -> str:
    if milliseconds < 0:
        milliseconds = 0
    total_minutes = milliseconds // MS_PER_MINUTE
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes}m"


def format_hours_decimal(milliseconds: int) -> str:
    return f"{max(0, milliseconds) / MS_PER_HOUR:.2f}"
