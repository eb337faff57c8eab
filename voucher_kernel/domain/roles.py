"""
Role and office directory (``voucher_kernel.domain.roles``).

Responsibility
--------------
Closed set of organizational roles plus the static, bidirectional mapping
between a role and the office name shown to users.  Used to label offices
in selection lists and to resolve a selected office back to a role when
targeting notifications.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Unknown roles and unknown office names pass through unchanged, so a
  role added to the user table before this map is updated still renders
  and routes.
* The office map is a bijection; ``ROLE_BY_OFFICE`` is derived from
  ``OFFICE_BY_ROLE``, never maintained by hand.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from types import MappingProxyType


class UserRole(str, Enum):
    """Organizational roles a user account can hold."""

    REQUESTER = "REQUESTER"
    ACCOUNTING = "ACCOUNTING"
    BUDGET = "BUDGET"
    TREASURY = "TREASURY"
    MAYOR = "MAYOR"
    ADMIN = "ADMIN"
    DEPARTMENT_HEAD = "DEPARTMENT_HEAD"
    FINANCE_HEAD = "FINANCE_HEAD"
    GSO = "GSO"
    HR = "HR"
    BAC = "BAC"
    SECRETARY = "SECRETARY"


OFFICE_BY_ROLE: MappingProxyType[UserRole, str] = MappingProxyType({
    UserRole.GSO: "General Services Office",
    UserRole.BAC: "Bids and Awards Committee",
    UserRole.MAYOR: "Mayor's Office",
    UserRole.SECRETARY: "Secretary's Office",
    UserRole.TREASURY: "Treasury Office",
    UserRole.BUDGET: "Budget Office",
    UserRole.ACCOUNTING: "Accounting Office",
    UserRole.HR: "Human Resources Office",
    UserRole.FINANCE_HEAD: "Finance Office",
    UserRole.DEPARTMENT_HEAD: "Department Head Office",
    UserRole.ADMIN: "Administrative Office",
    UserRole.REQUESTER: "Requesting Office",
})

ROLE_BY_OFFICE: MappingProxyType[str, UserRole] = MappingProxyType(
    {office: role for role, office in OFFICE_BY_ROLE.items()}
)

# Short labels used in notification messages and reviewer badges
_DISPLAY_NAMES: MappingProxyType[UserRole, str] = MappingProxyType({
    UserRole.REQUESTER: "Requester",
    UserRole.ACCOUNTING: "Accounting",
    UserRole.BUDGET: "Budget Officer",
    UserRole.TREASURY: "Treasury",
    UserRole.MAYOR: "Mayor",
    UserRole.ADMIN: "Administrator",
    UserRole.DEPARTMENT_HEAD: "Department Head",
    UserRole.FINANCE_HEAD: "Finance Head",
    UserRole.GSO: "General Services Office",
    UserRole.HR: "Human Resources",
    UserRole.BAC: "Bids and Awards Committee",
    UserRole.SECRETARY: "Secretary",
})


def parse_role(value: UserRole | str) -> UserRole | None:
    """Return the UserRole for ``value``, or None if it names no known role."""
    if isinstance(value, UserRole):
        return value
    try:
        return UserRole(value)
    except ValueError:
        return None


def role_to_office(role: UserRole | str) -> str:
    """Office display name for a role; unknown roles are returned as-is."""
    known = parse_role(role)
    if known is None:
        return str(role)
    return OFFICE_BY_ROLE.get(known, known.value)


def office_to_role(office: str) -> UserRole | str:
    """Role for an office display name; unknown names are returned as-is."""
    return ROLE_BY_OFFICE.get(office, office)


def role_display_name(role: UserRole | str) -> str:
    """Human label for a role (e.g. BUDGET -> "Budget Officer")."""
    known = parse_role(role)
    if known is None:
        return str(role)
    return _DISPLAY_NAMES.get(known, known.value)


def office_options(roles: Iterable[UserRole | str] | None = None) -> list[str]:
    """Sorted, de-duplicated office names for UI selection lists.

    With no argument, lists every known office.
    """
    source = OFFICE_BY_ROLE.keys() if roles is None else roles
    return sorted({role_to_office(r) for r in source})


def roles_for_offices(offices: Iterable[str]) -> list[UserRole]:
    """Resolve selected office names to known roles, preserving order.

    Names that map to no known role are dropped here because only real
    roles can be matched against user accounts.
    """
    resolved: list[UserRole] = []
    for office in offices:
        role = parse_role(office_to_role(office))
        if role is not None and role not in resolved:
            resolved.append(role)
    return resolved


# =========================================================================
# Role sets used by access predicates
# =========================================================================

# Offices that may view any voucher
VIEW_ROLES: frozenset[UserRole] = frozenset({
    UserRole.ADMIN,
    UserRole.ACCOUNTING,
    UserRole.BUDGET,
    UserRole.TREASURY,
    UserRole.MAYOR,
    UserRole.DEPARTMENT_HEAD,
    UserRole.FINANCE_HEAD,
    UserRole.BAC,
})

# Offices that may edit any voucher (BAC reviews but never edits)
EDIT_ROLES: frozenset[UserRole] = VIEW_ROLES - {UserRole.BAC}

# Offices that may submit a draft on the creator's behalf
SUBMIT_ROLES: frozenset[UserRole] = frozenset({
    UserRole.ADMIN,
    UserRole.GSO,
    UserRole.HR,
})

REMARKS_ROLES: frozenset[UserRole] = VIEW_ROLES

# Creators who only ever see their own vouchers in listings
SELF_SERVICE_ROLES: frozenset[UserRole] = frozenset({
    UserRole.REQUESTER,
    UserRole.GSO,
    UserRole.HR,
})
