"""Application controller: the single owner of the in-memory state.

Every mutating call follows the same path: access check, engine call on the
current state, commit of the returned value, then a full-state write through
the persistence gateway. A failed write is logged and the in-memory state
remains the source of truth until a later write succeeds.
"""

from __future__ import annotations

import datetime
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import access
import data_exchange
import payroll
import roster
import staff
import timeclock
from briefing import generate_daily_briefing
from exporter import export_payroll_summary, export_roster
from gateway import GatewayError
from models import (
    DAYS,
    AppState,
    ClockStatus,
    Employee,
    Roster,
    Shift,
    TimeLog,
    clone,
    default_state,
    utc_now,
)
from roles import is_manager_role

logger = logging.getLogger(__name__)


class LoginError(ValueError):
    """Raised when an employee cannot be signed in."""


class ScheduleController:
    def __init__(
        self,
        gateway,
        *,
        debounce_seconds: float = 0.0,
        now: Callable[[], datetime.datetime] = utc_now,
        briefing_model: Optional[Any] = None,
        export_dir: Optional[Path] = None,
    ) -> None:
        self.gateway = gateway
        self.debounce_seconds = max(0.0, float(debounce_seconds or 0.0))
        self.now = now
        self.briefing_model = briefing_model
        self.export_dir = export_dir
        self.state: AppState = default_state()
        self.current_user: Optional[Employee] = None
        self.hydrated = False
        self.synced = True
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Persistence

    def hydrate(self) -> AppState:
        try:
            remote = self.gateway.load()
        except GatewayError as exc:
            logger.warning("Could not load remote state; continuing with local defaults. %s", exc)
        else:
            defaults = default_state()
            self.state = AppState(
                employees=remote.employees or defaults.employees,
                rosters=remote.rosters,
                time_logs=remote.time_logs,
            )
        self.hydrated = True
        self._refresh_user()
        return self.state

    def _commit(self, state: AppState) -> AppState:
        with self._lock:
            self.state = state
            self.synced = False
        self._refresh_user()
        if not self.hydrated:
            return state
        if self.debounce_seconds:
            self._schedule_flush()
        else:
            self.flush()
        return state

    def _schedule_flush(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_seconds, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> bool:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            snapshot = clone(self.state)
        try:
            self.gateway.save(snapshot)
        except GatewayError as exc:
            logger.error("Failed to save state to backend: %s", exc)
            return False
        with self._lock:
            if self._timer is None:
                self.synced = True
        return True

    # ------------------------------------------------------------------
    # Session

    def login(self, employee_id: int, pin: str) -> Employee:
        employee = self.state.employee(employee_id)
        if employee is None:
            raise LoginError("Unknown employee.")
        if not staff.verify_pin(employee, pin):
            logger.info("Rejected PIN for employee %s", employee_id)
            raise LoginError("Incorrect PIN. Please try again.")
        self.current_user = employee
        logger.info("Employee %s signed in", employee_id)
        return employee

    def logout(self) -> None:
        self.current_user = None

    def _refresh_user(self) -> None:
        if self.current_user is None:
            return
        # A deleted employee is signed out.
        self.current_user = self.state.employee(self.current_user.id)

    def _require(self, operation: str, target_department: Optional[str] = None) -> Employee:
        access.require(self.current_user, operation, target_department)
        return self.current_user

    def _employee_or_deny(self, employee_id: int) -> Employee:
        employee = self.state.employee(employee_id)
        if employee is None:
            raise access.AccessDenied()
        return employee

    # ------------------------------------------------------------------
    # Employees

    def visible_employees(self) -> List[Employee]:
        user = self.current_user
        if user is None:
            return []
        if is_manager_role(user.role):
            return [employee for employee in self.state.employees if employee.department == user.department]
        return [employee for employee in self.state.employees if employee.id == user.id]

    def save_employee(self, data: Dict[str, Any]) -> Employee:
        self._require(access.EMPLOYEES_MANAGE, data.get("department") or None)
        if data.get("id"):
            existing = self._employee_or_deny(int(data["id"]))
            self._require(access.EMPLOYEES_MANAGE, existing.department)
        employees, employee = staff.save_employee(self.state.employees, data)
        self._commit(AppState(employees=employees, rosters=self.state.rosters, time_logs=self.state.time_logs))
        logger.info("Saved employee %s", employee.id)
        return employee

    def delete_employee(self, employee_id: int) -> AppState:
        target = self._employee_or_deny(employee_id)
        user = self._require(access.EMPLOYEES_MANAGE, target.department)
        state = self._commit(staff.delete_employee(self.state, employee_id, user.id))
        logger.info("Deleted employee %s and their roster assignments", employee_id)
        return state

    # ------------------------------------------------------------------
    # Roster

    def view_roster(self, week: str = "current_week") -> Roster:
        self._require(access.ROSTER_VIEW)
        return clone(self.state.rosters.week(week))

    def _commit_rosters(self, rosters) -> AppState:
        return self._commit(AppState(employees=self.state.employees, rosters=rosters, time_logs=self.state.time_logs))

    def add_shift(self, week: str, day: str, shift: Shift) -> AppState:
        self._require(access.ROSTER_EDIT)
        return self._commit_rosters(roster.add_shift(self.state.rosters, week, day, shift))

    def add_recurring_shift(self, week: str, shift: Shift, days: Iterable[str]) -> AppState:
        self._require(access.ROSTER_EDIT)
        return self._commit_rosters(roster.add_recurring_shift(self.state.rosters, week, shift, days))

    def edit_shift(self, week: str, day: str, index: int, shift: Shift) -> AppState:
        self._require(access.ROSTER_EDIT)
        return self._commit_rosters(roster.edit_shift(self.state.rosters, week, day, index, shift))

    def delete_shift(self, week: str, day: str, index: int) -> AppState:
        self._require(access.ROSTER_EDIT)
        return self._commit_rosters(roster.delete_shift(self.state.rosters, week, day, index))

    def bulk_edit_shifts(
        self,
        week: str,
        selections: Sequence[Tuple[str, int]],
        *,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> AppState:
        self._require(access.ROSTER_EDIT)
        rosters = roster.bulk_edit_shifts(
            self.state.rosters, week, selections, start_time=start_time, end_time=end_time
        )
        return self._commit_rosters(rosters)

    def copy_week(self) -> AppState:
        self._require(access.ROSTER_EDIT)
        return self._commit_rosters(roster.copy_week(self.state.rosters))

    # ------------------------------------------------------------------
    # Time clock

    def _require_clock(self, employee_id: int) -> Employee:
        target = self._employee_or_deny(employee_id)
        if self.current_user is not None and target.id == self.current_user.id:
            self._require(access.CLOCK_SELF)
        else:
            self._require(access.CLOCK_OTHERS, target.department)
        return target

    def clock_board(self) -> Dict[int, ClockStatus]:
        return timeclock.clock_statuses(self.visible_employees(), self.state.time_logs)

    def clock_in(self, employee_id: int) -> TimeLog:
        self._require_clock(employee_id)
        logs, entry = timeclock.clock_in(self.state.time_logs, employee_id, self.now())
        self._commit(AppState(employees=self.state.employees, rosters=self.state.rosters, time_logs=logs))
        return entry

    def clock_out(self, employee_id: int) -> TimeLog:
        self._require_clock(employee_id)
        logs, entry = timeclock.clock_out(self.state.time_logs, employee_id, self.now())
        self._commit(AppState(employees=self.state.employees, rosters=self.state.rosters, time_logs=logs))
        return entry

    # ------------------------------------------------------------------
    # Payroll

    def payroll_summary(self) -> List[payroll.EmployeeHours]:
        user = self._require(access.PAYROLL_VIEW)
        return payroll.summarize_hours(self.state.employees, self.state.time_logs, user.department)

    def _require_log(self, log_id: int) -> TimeLog:
        for log in self.state.time_logs:
            if log.id == log_id:
                target = self._employee_or_deny(log.employee_id)
                self._require(access.PAYROLL_MANAGE, target.department)
                return log
        self._require(access.PAYROLL_MANAGE)
        raise payroll.TimeLogError(f"Time entry {log_id} was not found.")

    def _commit_logs(self, logs: List[TimeLog]) -> AppState:
        return self._commit(AppState(employees=self.state.employees, rosters=self.state.rosters, time_logs=logs))

    def set_log_status(self, log_id: int, status: str) -> AppState:
        self._require_log(log_id)
        return self._commit_logs(payroll.set_log_status(self.state.time_logs, log_id, status))

    def save_time_log(self, data: Dict[str, Any]) -> TimeLog:
        if data.get("id"):
            self._require_log(int(data["id"]))
        try:
            employee_id = int(data.get("employee_id"))
        except (TypeError, ValueError) as exc:
            raise payroll.TimeLogError("A time entry must belong to an employee.") from exc
        target = self._employee_or_deny(employee_id)
        self._require(access.PAYROLL_MANAGE, target.department)
        logs, entry = payroll.upsert_manual_log(self.state.time_logs, data)
        self._commit_logs(logs)
        return entry

    def delete_time_log(self, log_id: int) -> AppState:
        self._require_log(log_id)
        return self._commit_logs(payroll.delete_log(self.state.time_logs, log_id))

    # ------------------------------------------------------------------
    # Exports and briefing

    def export_payroll_csv(self, export_date: Optional[datetime.date] = None) -> Path:
        return export_payroll_summary(self.payroll_summary(), export_date=export_date, target_dir=self.export_dir)

    def export_roster_csv(self, week: str = "current_week", week_start: Optional[datetime.date] = None) -> Path:
        user = self._require(access.ROSTER_EDIT)
        employees = [employee for employee in self.state.employees if employee.department == user.department]
        return export_roster(
            self.state.rosters.week(week),
            employees,
            week,
            week_start=week_start,
            target_dir=self.export_dir,
        )

    def daily_briefing(self, day: Optional[str] = None) -> str:
        if self.current_user is None:
            raise access.AccessDenied()
        day = day or DAYS[self.now().weekday()]
        shifts = self.state.rosters.current_week.get(day, [])
        return generate_daily_briefing(shifts, self.state.employees, model=self.briefing_model)

    # ------------------------------------------------------------------
    # Backups

    def export_backup(self) -> Path:
        self._require(access.DATA_MANAGE)
        return data_exchange.export_backup(self.state, exported_at=self.now(), target_dir=self.export_dir)

    def import_backup(self, file_path: Path) -> AppState:
        """Replace employees, rosters and time logs with the contents of a backup file."""
        user = self._require(access.DATA_MANAGE)
        state = self._commit(data_exchange.import_backup(file_path))
        logger.info("Employee %s imported a backup from %s", user.id, file_path)
        return state

    def merge_time_logs(self, file_path: Path) -> int:
        self._require(access.DATA_MANAGE)
        logs, added = data_exchange.merge_time_logs(self.state.time_logs, data_exchange.read_time_logs(file_path))
        if added:
            self._commit_logs(logs)
        logger.info("Merged %s new time log entries from %s", added, file_path)
        return added
