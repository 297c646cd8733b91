from __future__ import annotations

import hmac
import re
from dataclasses import replace
from typing import Any, Dict, List, Tuple

from models import AppState, Employee, TimeLog, next_id
from roles import canonical_role, normalize_department
from roster import remove_employee_everywhere

PIN_PATTERN = re.compile(r"^\d{4}$")


class EmployeeError(ValueError):
    """Raised when an employee record cannot be saved or removed."""


def save_employee(employees: List[Employee], data: Dict[str, Any]) -> Tuple[List[Employee], Employee]:
    name = str(data.get("name") or "").strip()
    pin = str(data.get("pin") or "").strip()
    department = normalize_department(str(data.get("department") or ""))
    if not name:
        raise EmployeeError("Employee name is required.")
    if not department:
        raise EmployeeError("Please choose a department (Kitchen, FOH or Stewarding).")
    try:
        role = canonical_role(department, str(data.get("role") or ""))
    except ValueError as exc:
        raise EmployeeError(str(exc)) from exc
    if not PIN_PATTERN.match(pin):
        raise EmployeeError("PIN must be exactly 4 digits.")

    employee_id = data.get("id")
    if not employee_id:
        employee = Employee(
            id=next_id(item.id for item in employees),
            name=name,
            role=role,
            department=department,
            pin=pin,
        )
        return [*employees, employee], employee

    for index, existing in enumerate(employees):
        if existing.id == int(employee_id):
            employee = replace(existing, name=name, role=role, department=department, pin=pin)
            updated = list(employees)
            updated[index] = employee
            return updated, employee
    raise EmployeeError(f"Employee {employee_id} was not found.")


def delete_employee(state: AppState, employee_id: int, acting_user_id: int) -> AppState:
    """Remove an employee and every shift assignment they hold.

    Their time logs are kept so approved hours stay auditable.
    """
    if employee_id == acting_user_id:
        raise EmployeeError("You cannot delete the currently active user.")
    if state.employee(employee_id) is None:
        raise EmployeeError(f"Employee {employee_id} was not found.")
    return AppState(
        employees=[employee for employee in state.employees if employee.id != employee_id],
        rosters=remove_employee_everywhere(state.rosters, employee_id),
        time_logs=list(state.time_logs),
    )


def verify_pin(employee: Employee, pin: str) -> bool:
    return hmac.compare_digest(str(pin or "").encode("utf-8"), employee.pin.encode("utf-8"))


def orphaned_logs(state: AppState) -> List[TimeLog]:
    known = {employee.id for employee in state.employees}
    return [log for log in state.time_logs if log.employee_id not in known]
