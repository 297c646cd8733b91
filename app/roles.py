from __future__ import annotations

from typing import Dict, List


MANAGER_ROLE = "Manager"

DEPARTMENTS: List[str] = ["Kitchen", "FOH", "Stewarding"]

ROLE_GROUPS: Dict[str, List[str]] = {
    "Kitchen": [
        "Manager",
        "Chef",
        "Cook",
        "Kitchen Hand",
    ],
    "FOH": [
        "Manager",
        "Supervisor",
        "Waiter",
        "Host",
        "Bar Tender",
        "Food Runner",
    ],
    "Stewarding": [
        "Manager",
        "Supervisor",
        "Kitchen Hand",
    ],
}

# Only the kitchen plans rosters; the other departments clock in and review payroll.
ROSTER_DEPARTMENTS = {"Kitchen"}


def normalize_role(role: str) -> str:
    return (role or "").strip().lower()


def normalize_department(department: str) -> str:
    """Return the canonical department label, or an empty string if unknown."""
    label = (department or "").strip().lower()
    for name in DEPARTMENTS:
        if name.lower() == label:
            return name
    return ""


def is_manager_role(role: str) -> bool:
    return normalize_role(role) == normalize_role(MANAGER_ROLE)


def department_roles(department: str) -> List[str]:
    return list(ROLE_GROUPS.get(normalize_department(department), []))


def role_allowed(department: str, role: str) -> bool:
    label = normalize_role(role)
    if not label:
        return False
    return any(label == normalize_role(name) for name in department_roles(department))


def canonical_role(department: str, role: str) -> str:
    """Return the catalog spelling of ``role`` within ``department``."""
    label = normalize_role(role)
    for name in department_roles(department):
        if normalize_role(name) == label:
            return name
    raise ValueError(f"Role '{role}' is not available in the {department or 'unknown'} department.")


def has_roster(department: str) -> bool:
    return normalize_department(department) in ROSTER_DEPARTMENTS


def defined_roles() -> List[str]:
    """Return a sorted list of roles explicitly supported by the app."""
    roles: List[str] = []
    for names in ROLE_GROUPS.values():
        roles.extend(names)
    return sorted(set(roles))
