from __future__ import annotations

import datetime
import random
import sys
import unittest
from pathlib import Path

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from models import TimeLog, default_state  # noqa: E402
from payroll import (  # noqa: E402
    MS_PER_HOUR,
    TimeLogError,
    delete_log,
    format_duration,
    format_hours_decimal,
    set_log_status,
    summarize_hours,
    upsert_manual_log,
)

UTC = datetime.timezone.utc


def at(day: int, hour: int, minute: int = 0) -> datetime.datetime:
    return datetime.datetime(2024, 6, day, hour, minute, tzinfo=UTC)


class SummaryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.employees = default_state().employees
        self.logs = [
            TimeLog(id=1, employee_id=3, clock_in_time=at(3, 9), clock_out_time=at(3, 17), status="approved"),
            TimeLog(id=2, employee_id=3, clock_in_time=at(4, 9), clock_out_time=at(4, 13), status="pending"),
            TimeLog(id=3, employee_id=3, clock_in_time=at(5, 9), clock_out_time=at(5, 10, 30), status="rejected"),
            TimeLog(id=4, employee_id=3, clock_in_time=at(6, 9)),
            TimeLog(id=5, employee_id=4, clock_in_time=at(3, 12), clock_out_time=at(3, 20), status="pending"),
            TimeLog(id=6, employee_id=5, clock_in_time=at(3, 17), clock_out_time=at(3, 23), status="approved"),
        ]

    def test_totals_split_by_status(self) -> None:
        summary = {entry.employee.id: entry for entry in summarize_hours(self.employees, self.logs, "Kitchen")}
        luca = summary[3]
        self.assertEqual(luca.approved_ms, 8 * MS_PER_HOUR)
        self.assertEqual(luca.pending_ms, 4 * MS_PER_HOUR)
        self.assertEqual(luca.rejected_ms, int(1.5 * MS_PER_HOUR))
        self.assertEqual(len(luca.logs), 4)
        self.assertEqual(summary[4].pending_ms, 8 * MS_PER_HOUR)

    def test_summary_is_limited_to_one_department(self) -> None:
        ids = {entry.employee.id for entry in summarize_hours(self.employees, self.logs, "Kitchen")}
        self.assertEqual(ids, {1, 3, 4})
        foh = summarize_hours(self.employees, self.logs, "foh")
        self.assertIn(5, {entry.employee.id for entry in foh})

    def test_totals_ignore_log_order(self) -> None:
        baseline = summarize_hours(self.employees, self.logs, "Kitchen")
        shuffled = list(self.logs)
        random.Random(7).shuffle(shuffled)
        again = summarize_hours(self.employees, shuffled, "Kitchen")
        self.assertEqual(
            [(e.employee.id, e.approved_ms, e.pending_ms, e.rejected_ms) for e in baseline],
            [(e.employee.id, e.approved_ms, e.pending_ms, e.rejected_ms) for e in again],
        )

    def test_totals_are_additive(self) -> None:
        extra = TimeLog(id=7, employee_id=3, clock_in_time=at(7, 9), clock_out_time=at(7, 11), status="approved")
        before = summarize_hours(self.employees, self.logs, "Kitchen")
        after = summarize_hours(self.employees, [*self.logs, extra], "Kitchen")
        luca_before = next(e for e in before if e.employee.id == 3)
        luca_after = next(e for e in after if e.employee.id == 3)
        self.assertEqual(luca_after.approved_ms - luca_before.approved_ms, 2 * MS_PER_HOUR)
        self.assertEqual(luca_after.pending_ms, luca_before.pending_ms)

    def test_logs_of_removed_employees_are_not_summarised(self) -> None:
        employees = [employee for employee in self.employees if employee.id != 4]
        ids = {entry.employee.id for entry in summarize_hours(employees, self.logs, "Kitchen")}
        self.assertNotIn(4, ids)


class ReviewTests(unittest.TestCase):
    def setUp(self) -> None:
        self.logs = [
            TimeLog(id=1, employee_id=3, clock_in_time=at(3, 9), clock_out_time=at(3, 17), status="pending"),
            TimeLog(id=2, employee_id=3, clock_in_time=at(4, 9)),
        ]

    def test_pending_entry_can_be_approved_or_rejected(self) -> None:
        approved = set_log_status(self.logs, 1, "approved")
        self.assertEqual(approved[0].status, "approved")
        self.assertEqual(self.logs[0].status, "pending")
        self.assertEqual(set_log_status(self.logs, 1, "Rejected")[0].status, "rejected")

    def test_reviewed_entry_cannot_flip(self) -> None:
        approved = set_log_status(self.logs, 1, "approved")
        self.assertEqual(set_log_status(approved, 1, "approved")[0].status, "approved")
        with self.assertRaises(TimeLogError):
            set_log_status(approved, 1, "rejected")

    def test_review_order_does_not_change_totals(self) -> None:
        employees = default_state().employees
        logs = [
            *self.logs,
            TimeLog(id=3, employee_id=3, clock_in_time=at(5, 9), clock_out_time=at(5, 12), status="pending"),
        ]
        approve_first = set_log_status(set_log_status(logs, 1, "approved"), 3, "rejected")
        reject_first = set_log_status(set_log_status(logs, 3, "rejected"), 1, "approved")

        def totals(reviewed):
            luca = next(e for e in summarize_hours(employees, reviewed, "Kitchen") if e.employee.id == 3)
            return luca.approved_ms, luca.pending_ms, luca.rejected_ms

        self.assertEqual(totals(approve_first), totals(reject_first))
        self.assertEqual(totals(approve_first), (8 * MS_PER_HOUR, 0, 3 * MS_PER_HOUR))

    def test_open_entry_and_unknown_status(self) -> None:
        with self.assertRaises(TimeLogError):
            set_log_status(self.logs, 2, "approved")
        with self.assertRaises(TimeLogError):
            set_log_status(self.logs, 1, "pending")
        with self.assertRaises(TimeLogError):
            set_log_status(self.logs, 99, "approved")


class ManualEntryTests(unittest.TestCase):
    def test_new_closed_entry_defaults_to_pending(self) -> None:
        logs, entry = upsert_manual_log(
            [],
            {"employee_id": 3, "clock_in_time": "2024-06-03T09:00:00Z", "clock_out_time": "2024-06-03T17:00:00Z"},
        )
        self.assertEqual(entry.id, 1)
        self.assertEqual(entry.status, "pending")
        self.assertEqual(format_duration(entry.duration_ms()), "8h 0m")
        self.assertEqual(logs, [entry])

    def test_existing_entry_is_overwritten_in_place(self) -> None:
        logs, entry = upsert_manual_log([], {"employee_id": 3, "clock_in_time": at(3, 9)})
        self.assertIsNone(entry.status)
        logs, updated = upsert_manual_log(
            logs,
            {"id": entry.id, "employee_id": 3, "clock_in_time": at(3, 9), "clock_out_time": at(3, 12), "status": "approved"},
        )
        self.assertEqual(len(logs), 1)
        self.assertEqual(updated.status, "approved")
        self.assertEqual(format_hours_decimal(updated.duration_ms()), "3.00")

    def test_manual_entry_validation(self) -> None:
        with self.assertRaisesRegex(TimeLogError, "Clock-in date and time are required"):
            upsert_manual_log([], {"employee_id": 3, "clock_in_time": ""})
        with self.assertRaisesRegex(TimeLogError, "must be after clock-in"):
            upsert_manual_log([], {"employee_id": 3, "clock_in_time": at(3, 9), "clock_out_time": at(3, 9)})
        with self.assertRaises(TimeLogError):
            upsert_manual_log([], {"employee_id": 3, "clock_in_time": "yesterday"})
        with self.assertRaises(TimeLogError):
            upsert_manual_log([], {"id": 12, "employee_id": 3, "clock_in_time": at(3, 9)})

    def test_delete_log(self) -> None:
        logs, entry = upsert_manual_log([], {"employee_id": 3, "clock_in_time": at(3, 9)})
        self.assertEqual(delete_log(logs, entry.id), [])
        self.assertEqual(delete_log(logs, 42), logs)


class FormattingTests(unittest.TestCase):
    def test_formats(self) -> None:
        self.assertEqual(format_duration(0), "0h 0m")
        self.assertEqual(format_duration(int(7.75 * MS_PER_HOUR)), "7h 45m")
        self.assertEqual(format_hours_decimal(int(7.75 * MS_PER_HOUR)), "7.75")
        self.assertEqual(format_hours_decimal(-5), "0.00")


if __name__ == "__main__":
    unittest.main()
