from __future__ import annotations

import datetime
import sys
import unittest
from pathlib import Path

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import access  # noqa: E402
from models import AppState, Employee, Shift, TimeLog, default_state  # noqa: E402
from roles import canonical_role, department_roles, has_roster, is_manager_role  # noqa: E402
from roster import add_shift  # noqa: E402
from staff import EmployeeError, delete_employee, orphaned_logs, save_employee, verify_pin  # noqa: E402

UTC = datetime.timezone.utc


class AccessRuleTests(unittest.TestCase):
    def setUp(self) -> None:
        state = default_state()
        self.kitchen_manager = state.employee(1)
        self.foh_manager = state.employee(2)
        self.chef = state.employee(3)
        self.waiter = state.employee(5)

    def test_signed_out_user_is_denied_everything(self) -> None:
        for operation in access.OPERATIONS:
            self.assertFalse(access.is_allowed(None, operation))

    def test_staff_may_only_clock_themselves(self) -> None:
        self.assertTrue(access.is_allowed(self.chef, access.CLOCK_SELF))
        self.assertFalse(access.is_allowed(self.chef, access.CLOCK_OTHERS, "Kitchen"))
        self.assertFalse(access.is_allowed(self.chef, access.PAYROLL_VIEW))
        self.assertFalse(access.is_allowed(self.chef, access.EMPLOYEES_MANAGE, "Kitchen"))

    def test_roster_is_kitchen_only(self) -> None:
        self.assertTrue(access.is_allowed(self.chef, access.ROSTER_VIEW))
        self.assertFalse(access.is_allowed(self.chef, access.ROSTER_EDIT))
        self.assertTrue(access.is_allowed(self.kitchen_manager, access.ROSTER_EDIT))
        self.assertFalse(access.is_allowed(self.waiter, access.ROSTER_VIEW))
        self.assertFalse(access.is_allowed(self.foh_manager, access.ROSTER_EDIT))

    def test_managers_are_scoped_to_their_department(self) -> None:
        self.assertTrue(access.is_allowed(self.foh_manager, access.PAYROLL_MANAGE, "FOH"))
        self.assertFalse(access.is_allowed(self.foh_manager, access.PAYROLL_MANAGE, "Kitchen"))
        self.assertTrue(access.is_allowed(self.kitchen_manager, access.CLOCK_OTHERS, "kitchen"))

    def test_require_raises_access_denied(self) -> None:
        with self.assertRaises(access.AccessDenied) as ctx:
            access.require(self.waiter, access.PAYROLL_VIEW)
        self.assertEqual(str(ctx.exception), "Access denied. Please contact a manager.")
        self.assertIsInstance(ctx.exception, PermissionError)

    def test_unknown_operation_is_denied(self) -> None:
        self.assertFalse(access.is_allowed(self.kitchen_manager, "reports.delete"))

    def test_stored_employee_outside_the_catalog_is_rejected(self) -> None:
        base = {"id": 11, "name": "Rico", "role": "Manager", "pin": "1234"}
        for department in ("Bar", "", None):
            with self.subTest(department=department):
                with self.assertRaises(ValueError):
                    Employee.from_payload({**base, "department": department})
        with self.assertRaises(ValueError):
            AppState.from_payload({"employees": [{**base, "role": "Chef", "department": "FOH"}]})
        manager = Employee.from_payload({**base, "role": "manager", "department": "kitchen"})
        self.assertEqual((manager.role, manager.department), ("Manager", "Kitchen"))


class RoleCatalogTests(unittest.TestCase):
    def test_role_catalog(self) -> None:
        self.assertTrue(is_manager_role(" manager "))
        self.assertEqual(canonical_role("FOH", "bar tender"), "Bar Tender")
        self.assertIn("Kitchen Hand", department_roles("Stewarding"))
        self.assertTrue(has_roster("Kitchen"))
        self.assertFalse(has_roster("FOH"))
        with self.assertRaises(ValueError):
            canonical_role("Kitchen", "Waiter")


class StaffDirectoryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.state = default_state()

    def test_create_employee_assigns_next_id(self) -> None:
        employees, employee = save_employee(
            self.state.employees,
            {"name": "Marta", "role": "cook", "department": "kitchen", "pin": "4321"},
        )
        self.assertEqual(employee.id, 11)
        self.assertEqual((employee.role, employee.department), ("Cook", "Kitchen"))
        self.assertEqual(len(employees), len(self.state.employees) + 1)

    def test_update_employee_keeps_position(self) -> None:
        employees, employee = save_employee(
            self.state.employees,
            {"id": 4, "name": "Dennis R", "role": "Cook", "department": "Kitchen", "pin": "9999"},
        )
        self.assertEqual(employees[3], employee)
        self.assertEqual(employee.pin, "9999")
        self.assertEqual(self.state.employee(4).name, "Dennis")

    def test_employee_validation(self) -> None:
        base = {"name": "Marta", "role": "Cook", "department": "Kitchen", "pin": "4321"}
        for override, message in (
            ({"name": " "}, "name is required"),
            ({"department": "Garden"}, "department"),
            ({"role": "Waiter"}, "not available"),
            ({"pin": "12a4"}, "exactly 4 digits"),
            ({"pin": "12345"}, "exactly 4 digits"),
            ({"id": 99}, "not found"),
        ):
            with self.subTest(override=override):
                with self.assertRaisesRegex(EmployeeError, message):
                    save_employee(self.state.employees, {**base, **override})

    def test_delete_cascades_roster_and_keeps_logs(self) -> None:
        rosters = add_shift(self.state.rosters, "current_week", "Monday", Shift(employee_ids=[5], notes="RDO"))
        rosters = add_shift(rosters, "current_week", "Tuesday", Shift(employee_ids=[5, 6], start_time="17:00", end_time="23:00"))
        log = TimeLog(
            id=1,
            employee_id=5,
            clock_in_time=datetime.datetime(2024, 6, 3, 17, tzinfo=UTC),
            clock_out_time=datetime.datetime(2024, 6, 3, 23, tzinfo=UTC),
            status="approved",
        )
        state = AppState(employees=self.state.employees, rosters=rosters, time_logs=[log])

        updated = delete_employee(state, 5, acting_user_id=2)

        self.assertIsNone(updated.employee(5))
        self.assertEqual(updated.rosters.current_week["Monday"], [])
        self.assertEqual(updated.rosters.current_week["Tuesday"][0].employee_ids, [6])
        self.assertEqual(updated.time_logs, [log])
        self.assertEqual(orphaned_logs(updated), [log])
        self.assertEqual(orphaned_logs(state), [])

    def test_cannot_delete_self_or_unknown(self) -> None:
        with self.assertRaisesRegex(EmployeeError, "currently active user"):
            delete_employee(self.state, 1, acting_user_id=1)
        with self.assertRaises(EmployeeError):
            delete_employee(self.state, 404, acting_user_id=1)

    def test_verify_pin(self) -> None:
        employee = self.state.employee(3)
        self.assertTrue(verify_pin(employee, "1234"))
        self.assertFalse(verify_pin(employee, "4321"))
        self.assertFalse(verify_pin(employee, ""))


if __name__ == "__main__":
    unittest.main()
