from __future__ import annotations

import datetime
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from models import ClockStatus, Employee, TimeLog, ensure_aware, next_id, utc_now


class ClockError(ValueError):
    """Raised when a clock-in or clock-out request conflicts with the log history."""


def clock_status(time_logs: Iterable[TimeLog], employee_id: int) -> ClockStatus:
    """Derive the current clock state from the employee's most recent clock-in."""
    logs = [log for log in time_logs if log.employee_id == employee_id]
    if not logs:
        return ClockStatus(status="out", time=None)
    latest = max(logs, key=lambda log: log.clock_in_time)
    if latest.clock_out_time is None:
        return ClockStatus(status="in", time=latest.clock_in_time)
    return ClockStatus(status="out", time=latest.clock_out_time)


def clock_statuses(employees: Iterable[Employee], time_logs: Iterable[TimeLog]) -> Dict[int, ClockStatus]:
    logs = list(time_logs)
    return {employee.id: clock_status(logs, employee.id) for employee in employees}


def clock_in(
    time_logs: List[TimeLog],
    employee_id: int,
    now: Optional[datetime.datetime] = None,
) -> Tuple[List[TimeLog], TimeLog]:
    if clock_status(time_logs, employee_id).status == "in":
        raise ClockError("This employee is already clocked in.")
    entry = TimeLog(
        id=next_id(log.id for log in time_logs),
        employee_id=employee_id,
        clock_in_time=ensure_aware(now or utc_now()),
        clock_out_time=None,
    )
    return [*time_logs, entry], entry


def clock_out(
    time_logs: List[TimeLog],
    employee_id: int,
    now: Optional[datetime.datetime] = None,
) -> Tuple[List[TimeLog], TimeLog]:
    # The open entry is found by insertion order, newest first.
    for index in range(len(time_logs) - 1, -1, -1):
        log = time_logs[index]
        if log.employee_id == employee_id and log.clock_out_time is None:
            break
    else:
        raise ClockError("Cannot find an active shift to clock out from.")
    closed = replace(log, clock_out_time=ensure_aware(now or utc_now()), status="pending")
    updated = list(time_logs)
    updated[index] = closed
    return updated, closed
