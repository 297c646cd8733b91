"""Role and department gating applied in front of every engine operation."""

from __future__ import annotations

from typing import Optional

from models import Employee
from roles import has_roster, is_manager_role, normalize_department

ROSTER_VIEW = "roster.view"
ROSTER_EDIT = "roster.edit"
CLOCK_SELF = "clock.self"
CLOCK_OTHERS = "clock.others"
EMPLOYEES_MANAGE = "employees.manage"
PAYROLL_VIEW = "payroll.view"
PAYROLL_MANAGE = "payroll.manage"
DATA_MANAGE = "data.manage"

OPERATIONS = {
    ROSTER_VIEW,
    ROSTER_EDIT,
    CLOCK_SELF,
    CLOCK_OTHERS,
    EMPLOYEES_MANAGE,
    PAYROLL_VIEW,
    PAYROLL_MANAGE,
    DATA_MANAGE,
}
MANAGER_OPERATIONS = {ROSTER_EDIT, CLOCK_OTHERS, EMPLOYEES_MANAGE, PAYROLL_VIEW, PAYROLL_MANAGE, DATA_MANAGE}
ROSTER_OPERATIONS = {ROSTER_VIEW, ROSTER_EDIT}


class AccessDenied(PermissionError):
    """Raised when the signed-in user may not perform an operation."""

    def __init__(self) -> None:
        super().__init__("Access denied. Please contact a manager.")


def is_allowed(user: Optional[Employee], operation: str, target_department: Optional[str] = None) -> bool:
    if user is None or operation not in OPERATIONS:
        return False
    if operation in MANAGER_OPERATIONS and not is_manager_role(user.role):
        return False
    if operation in ROSTER_OPERATIONS and not has_roster(user.department):
        return False
    if target_department is not None:
        if normalize_department(target_department) != normalize_department(user.department):
            return False
    return True


def require(user: Optional[Employee], operation: str, target_department: Optional[str] = None) -> None:
    if not is_allowed(user, operation, target_department):
        raise AccessDenied()
