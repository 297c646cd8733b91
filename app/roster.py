from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Optional, Sequence, Tuple

from models import DAYS, TIME_LABEL, Roster, Rosters, Shift, clone

END_OF_DAY = 0


class ShiftValidationError(ValueError):
    """Raised when a shift fails the roster validation rules."""


class RosterError(LookupError):
    """Raised when a week, day or shift position does not exist."""


def parse_time_label(value: Optional[str]) -> Optional[int]:
    """Return minutes after midnight for an ``HH:MM`` label, ``None`` when blank."""
    if value is None:
        return None
    label = value.strip()
    if not label:
        return None
    match = TIME_LABEL.match(label)
    if not match:
        raise ShiftValidationError(f"'{label}' is not a valid HH:MM time.")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ShiftValidationError(f"'{label}' is not a valid HH:MM time.")
    return hours * 60 + minutes


def validate_shift(shift: Shift) -> Shift:
    if not shift.employee_ids:
        raise ShiftValidationError("Please select at least one employee.")
    if not shift.start_time and not shift.end_time and not shift.notes:
        raise ShiftValidationError('A shift must have either times or a status/note (e.g., "RDO").')
    if bool(shift.start_time) != bool(shift.end_time):
        raise ShiftValidationError("Please provide both a start and end time for a timed shift.")
    if shift.start_time and shift.end_time:
        start = parse_time_label(shift.start_time)
        end = parse_time_label(shift.end_time)
        # 00:00 marks the end of the day.
        if end != END_OF_DAY and end <= start:
            raise ShiftValidationError("End time must be after start time, even for overnight shifts.")
    if bool(shift.break_start_time) != bool(shift.break_end_time):
        raise ShiftValidationError("Please provide both a start and end time for the break.")
    if shift.break_start_time and shift.break_end_time:
        if parse_time_label(shift.break_end_time) <= parse_time_label(shift.break_start_time):
            raise ShiftValidationError("Break end time must be after break start time.")
    return shift


def _check_day(day: str) -> str:
    if day not in DAYS:
        raise RosterError(f"Unknown day '{day}'.")
    return day


def _check_index(roster: Roster, day: str, index: int) -> int:
    shifts = roster[_check_day(day)]
    if not 0 <= index < len(shifts):
        raise RosterError(f"No shift at position {index} on {day}.")
    return index


def _week(rosters: Rosters, week: str) -> Roster:
    try:
        return clone(rosters.week(week))
    except LookupError as exc:
        raise RosterError(str(exc)) from exc


def _with_week(rosters: Rosters, week: str, roster: Roster) -> Rosters:
    updated = clone(rosters)
    setattr(updated, week, roster)
    return updated


def add_shift(rosters: Rosters, week: str, day: str, shift: Shift) -> Rosters:
    validate_shift(shift)
    roster = _week(rosters, week)
    roster[_check_day(day)].append(clone(shift))
    return _with_week(rosters, week, roster)


def add_recurring_shift(rosters: Rosters, week: str, shift: Shift, days: Iterable[str]) -> Rosters:
    """Append an independent copy of ``shift`` to each listed day.

    Validation runs once up front, so either every day receives the shift or
    none does.
    """
    validate_shift(shift)
    requested = set(days)
    unknown = requested - set(DAYS)
    if unknown:
        raise RosterError(f"Unknown day '{sorted(unknown)[0]}'.")
    targets = [day for day in DAYS if day in requested]
    if not targets:
        raise ShiftValidationError("Please select at least one day for a recurring shift.")
    roster = _week(rosters, week)
    for day in targets:
        roster[day].append(clone(shift))
    return _with_week(rosters, week, roster)


def edit_shift(rosters: Rosters, week: str, day: str, index: int, shift: Shift) -> Rosters:
    validate_shift(shift)
    roster = _week(rosters, week)
    index = _check_index(roster, day, index)
    roster[day][index] = clone(shift)
    return _with_week(rosters, week, roster)


def delete_shift(rosters: Rosters, week: str, day: str, index: int) -> Rosters:
    roster = _week(rosters, week)
    index = _check_index(roster, day, index)
    del roster[day][index]
    return _with_week(rosters, week, roster)


def bulk_edit_shifts(
    rosters: Rosters,
    week: str,
    selections: Sequence[Tuple[str, int]],
    *,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
) -> Rosters:
    """Apply a new start and/or end time to every selected ``(day, index)``."""
    start_time = (start_time or "").strip() or None
    end_time = (end_time or "").strip() or None
    if not start_time and not end_time:
        raise ShiftValidationError("Please fill in at least one time field to apply a change.")
    if not selections:
        raise ShiftValidationError("Select at least one shift to edit.")
    roster = _week(rosters, week)
    updates: List[Tuple[str, int, Shift]] = []
    for day, index in selections:
        current = roster[_check_day(day)][_check_index(roster, day, index)]
        updated = replace(
            current,
            start_time=start_time or current.start_time,
            end_time=end_time or current.end_time,
        )
        updates.append((day, index, validate_shift(updated)))
    for day, index, updated in updates:
        roster[day][index] = updated
    return _with_week(rosters, week, roster)


def copy_week(rosters: Rosters, source: str = "current_week", target: str = "next_week") -> Rosters:
    _week(rosters, target)
    return _with_week(rosters, target, _week(rosters, source))


def remove_employee_everywhere(rosters: Rosters, employee_id: int) -> Rosters:
    updated = clone(rosters)
    for week in ("current_week", "next_week"):
        roster = updated.week(week)
        for day in DAYS:
            kept: List[Shift] = []
            for shift in roster[day]:
                remaining = [value for value in shift.employee_ids if value != employee_id]
                if remaining:
                    kept.append(replace(shift, employee_ids=remaining))
            roster[day] = kept
    return updated


def shifts_for_employee(roster: Roster, day: str, employee_id: int) -> List[Shift]:
    return [shift for shift in roster.get(day, []) if employee_id in shift.employee_ids]
