from __future__ import annotations

import csv
import datetime
import io
from pathlib import Path
from typing import Iterable, List, Optional

from models import DAYS, Employee, Roster
from payroll import EmployeeHours, format_hours_decimal
from roster import shifts_for_employee


DATA_DIR = Path(__file__).resolve().parent / "data" / "exports"
DATA_DIR.mkdir(parents=True, exist_ok=True)
PAYROLL_HEADER = ["Employee Name", "Role", "Approved Hours", "Pending Hours", "Rejected Hours"]
WEEK_FILE_LABELS = {"current_week": "ThisWeek", "next_week": "NextWeek"}


def payroll_rows(summary: Iterable[EmployeeHours]) -> List[List[str]]:
    return [
        [
            entry.employee.name,
            entry.employee.role,
            format_hours_decimal(entry.approved_ms),
            format_hours_decimal(entry.pending_ms),
            format_hours_decimal(entry.rejected_ms),
        ]
        for entry in summary
    ]


def roster_grid(roster: Roster, employees: Iterable[Employee]) -> List[List[str]]:
    """Return one row per employee: name, role, then a cell for each day.

    A cell lists that day's shifts as ``HH:MM - HH:MM (notes)``, one per line.
    """
    rows: List[List[str]] = []
    for employee in employees:
        row = [employee.name, employee.role]
        for day in DAYS:
            row.append("\n".join(shift.label() for shift in shifts_for_employee(roster, day, employee.id)))
        rows.append(row)
    return rows


def _render_csv(header: List[str], rows: List[List[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def payroll_summary_csv(summary: Iterable[EmployeeHours]) -> str:
    return _render_csv(PAYROLL_HEADER, payroll_rows(summary))


def roster_csv(roster: Roster, employees: Iterable[Employee]) -> str:
    return _render_csv(["Employee", "Role", *DAYS], roster_grid(roster, employees))


def export_payroll_summary(
    summary: Iterable[EmployeeHours],
    *,
    export_date: Optional[datetime.date] = None,
    target_dir: Optional[Path] = None,
) -> Path:
    export_date = export_date or datetime.date.today()
    target_dir = target_dir or DATA_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    filename = target_dir / f"Weekly_Summary_{export_date.isoformat()}.csv"
    filename.write_text(payroll_summary_csv(summary), encoding="utf-8")
    return filename


def export_roster(
    roster: Roster,
    employees: Iterable[Employee],
    week: str,
    *,
    week_start: Optional[datetime.date] = None,
    target_dir: Optional[Path] = None,
) -> Path:
    if week not in WEEK_FILE_LABELS:
        raise ValueError("week must be 'current_week' or 'next_week'")
    week_start = week_start or week_start_for(week)
    target_dir = target_dir or DATA_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    filename = target_dir / f"Roster_{WEEK_FILE_LABELS[week]}_{week_start.isoformat()}.csv"
    filename.write_text(roster_csv(roster, employees), encoding="utf-8")
    return filename


def week_start_for(week: str, today: Optional[datetime.date] = None) -> datetime.date:
    """Return the Monday that starts the current or next roster week."""
    today = today or datetime.date.today()
    monday = today - datetime.timedelta(days=today.weekday())
    if week == "next_week":
        monday += datetime.timedelta(days=7)
    return monday
