"""
Voucher domain types (``voucher_kernel.domain.voucher``).

Responsibility
--------------
Pure value objects for the voucher state model: lifecycle statuses and
their transition table, approval and BAC review records, audit records,
the audit action vocabulary, and the ``VoucherSnapshot`` the workflow
engine reads.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/`` or outer layers.

Invariants enforced
-------------------
* ``VOUCHER_TRANSITIONS`` defines the only valid stored-status changes.
  Terminal statuses have no outgoing edges.
* ``VoucherItem.total_price == round(quantity * unit_price)``; quantity is
  positive and unit price non-negative.  Checked at construction.
* Money is ``Decimal``.  Floats are rejected.
* Snapshots are deeply immutable (tuples of frozen records).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

from voucher_kernel.domain.money import round_money
from voucher_kernel.domain.roles import UserRole


# =========================================================================
# Voucher Status Lifecycle
# =========================================================================


class VoucherStatus(str, Enum):
    """Coarse lifecycle status stored on the voucher."""

    DRAFT = "DRAFT"
    PENDING = "PENDING"
    VALIDATED = "VALIDATED"
    APPROVED = "APPROVED"
    RELEASED = "RELEASED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES: frozenset[VoucherStatus] = frozenset({
    VoucherStatus.REJECTED,
    VoucherStatus.RELEASED,
    VoucherStatus.CANCELLED,
})

# Statuses during which the current reviewer is derived from records
IN_REVIEW_STATUSES: frozenset[VoucherStatus] = frozenset({
    VoucherStatus.PENDING,
    VoucherStatus.VALIDATED,
    VoucherStatus.APPROVED,
})

# Statuses in which the voucher's fields and items may still be edited
EDITABLE_STATUSES: frozenset[VoucherStatus] = frozenset({
    VoucherStatus.DRAFT,
    VoucherStatus.PENDING,
})

VOUCHER_TRANSITIONS: dict[VoucherStatus, frozenset[VoucherStatus]] = {
    VoucherStatus.DRAFT: frozenset({
        VoucherStatus.PENDING,
    }),
    VoucherStatus.PENDING: frozenset({
        VoucherStatus.VALIDATED,
        VoucherStatus.APPROVED,
        VoucherStatus.REJECTED,
        VoucherStatus.CANCELLED,
    }),
    VoucherStatus.VALIDATED: frozenset({
        VoucherStatus.APPROVED,
        VoucherStatus.RELEASED,
        VoucherStatus.REJECTED,
        VoucherStatus.CANCELLED,
    }),
    # APPROVED -> APPROVED: check issuance re-stamps an already approved voucher
    VoucherStatus.APPROVED: frozenset({
        VoucherStatus.APPROVED,
        VoucherStatus.RELEASED,
        VoucherStatus.REJECTED,
        VoucherStatus.CANCELLED,
    }),
    VoucherStatus.RELEASED: frozenset(),
    VoucherStatus.REJECTED: frozenset(),
    VoucherStatus.CANCELLED: frozenset(),
}


def can_transition(current: VoucherStatus, target: VoucherStatus) -> bool:
    """True iff the stored status may move from ``current`` to ``target``."""
    return target in VOUCHER_TRANSITIONS.get(current, frozenset())


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CHECK = "CHECK"
    E_TRANSFER = "E_TRANSFER"


class ApprovalStatus(str, Enum):
    """Status of a single level's approval record."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class BacReviewStatus(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AuditAction(str, Enum):
    """Closed vocabulary of audit trail actions.

    Contract: every state-affecting operation appends exactly one entry
    carrying one of these actions.
    """

    CREATE = "CREATE"
    SUBMIT = "SUBMIT"
    SUBMIT_REMARKS = "SUBMIT_REMARKS"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    REVIEW = "REVIEW"
    SECRETARY_REVIEW = "SECRETARY_REVIEW"
    BAC_REVIEW = "BAC_REVIEW"
    BUDGET_REVIEW = "BUDGET_REVIEW"
    ACCOUNTING_REVIEW = "ACCOUNTING_REVIEW"
    CHECK_ISSUANCE = "CHECK_ISSUANCE"
    MARK_RELEASED = "MARK_RELEASED"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"


# =========================================================================
# Line items
# =========================================================================


@dataclass(frozen=True)
class VoucherItem:
    """A single line item.  ``total_price`` must equal quantity x unit price."""

    description: str
    quantity: Decimal
    unit: str
    unit_price: Decimal
    total_price: Decimal

    def __post_init__(self) -> None:
        for name in ("quantity", "unit_price", "total_price"):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                raise TypeError(f"{name} must be Decimal, not {type(value).__name__}")
        if self.quantity <= 0:
            raise ValueError("quantity must be positive")
        if self.unit_price < 0:
            raise ValueError("unit_price must not be negative")
        expected = round_money(self.quantity * self.unit_price)
        if round_money(self.total_price) != expected:
            raise ValueError(
                f"total_price {self.total_price} != quantity x unit_price ({expected})"
            )

    @classmethod
    def priced(
        cls,
        description: str,
        quantity: Decimal,
        unit: str,
        unit_price: Decimal,
    ) -> VoucherItem:
        """Build an item with its total computed from quantity and unit price."""
        return cls(
            description=description,
            quantity=quantity,
            unit=unit,
            unit_price=unit_price,
            total_price=round_money(quantity * unit_price),
        )


def items_total(items: tuple[VoucherItem, ...] | list[VoucherItem]) -> Decimal:
    """Sum of item totals, rounded to currency precision."""
    return round_money(sum((i.total_price for i in items), Decimal("0")))


# =========================================================================
# Workflow records
# =========================================================================


@dataclass(frozen=True)
class ApprovalRecord:
    """Decision recorded at one workflow level.  Immutable snapshot."""

    level: int
    status: ApprovalStatus
    approver_id: UUID
    approver_name: str = ""
    approved_at: datetime | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class BacReviewRecord:
    """One BAC member's independent review."""

    reviewer_id: UUID
    status: BacReviewStatus
    reviewer_name: str = ""
    comments: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class AuditRecord:
    """One audit trail entry as seen by the engine.

    ``actor_role`` is the role the acting user held when the entry was
    written; sequencing checks match on it.
    """

    action: AuditAction
    user_id: UUID
    actor_role: UserRole | str | None = None
    user_name: str = ""
    created_at: datetime | None = None
    old_values: Mapping[str, Any] | None = None
    new_values: Mapping[str, Any] | None = None


# =========================================================================
# Engine input
# =========================================================================


@dataclass(frozen=True)
class VoucherSnapshot:
    """Everything the workflow engine needs to know about one voucher.

    ``audit_trail`` is None when history was not loaded; the engine then
    refuses to assume Treasury has already acted.
    """

    voucher_id: UUID
    status: VoucherStatus
    creator_id: UUID
    creator_role: UserRole | str
    payee: str = ""
    amount: Decimal = Decimal("0")
    creator_name: str = ""
    assigned_to_id: UUID | None = None
    check_number: str | None = None
    approvals: tuple[ApprovalRecord, ...] = ()
    bac_reviews: tuple[BacReviewRecord, ...] = ()
    audit_trail: tuple[AuditRecord, ...] | None = field(default=())
    created_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_in_review(self) -> bool:
        return self.status in IN_REVIEW_STATUSES

    def approval_at(self, level: int) -> ApprovalRecord | None:
        """The authoritative record for ``level``.

        An APPROVED record wins over any other record at the same level.
        """
        found: ApprovalRecord | None = None
        for record in self.approvals:
            if record.level != level:
                continue
            if record.status == ApprovalStatus.APPROVED:
                return record
            found = found or record
        return found

    def is_level_approved(self, level: int) -> bool:
        record = self.approval_at(level)
        return record is not None and record.status == ApprovalStatus.APPROVED

    @property
    def approved_bac_count(self) -> int:
        return sum(1 for r in self.bac_reviews if r.status == BacReviewStatus.APPROVED)

    def has_bac_review_by(self, reviewer_id: UUID) -> bool:
        return any(r.reviewer_id == reviewer_id for r in self.bac_reviews)

    def has_audit(self, action: AuditAction, actor_role: UserRole | None = None) -> bool:
        """True iff the loaded trail holds ``action`` (by ``actor_role`` if given)."""
        if self.audit_trail is None:
            return False
        for entry in self.audit_trail:
            if entry.action != action:
                continue
            if actor_role is None or _same_role(entry.actor_role, actor_role):
                return True
        return False

    def audit_entries(self, action: AuditAction) -> tuple[AuditRecord, ...]:
        if self.audit_trail is None:
            return ()
        return tuple(e for e in self.audit_trail if e.action == action)


def _same_role(recorded: UserRole | str | None, expected: UserRole) -> bool:
    if recorded is None:
        return False
    value = recorded.value if isinstance(recorded, UserRole) else str(recorded)
    return value == expected.value


# =========================================================================
# Read-side view
# =========================================================================


@dataclass(frozen=True)
class VoucherRecord:
    """A voucher with its items and workflow records, as returned to callers."""

    voucher_id: UUID
    payee: str
    address: str
    amount: Decimal
    particulars: str
    status: VoucherStatus
    created_by_id: UUID
    creator_role: UserRole | str
    tags: frozenset[str] = frozenset()
    source_offices: frozenset[str] = frozenset()
    items: tuple[VoucherItem, ...] = ()
    approvals: tuple[ApprovalRecord, ...] = ()
    bac_reviews: tuple[BacReviewRecord, ...] = ()
    creator_name: str = ""
    assigned_to_id: UUID | None = None
    payment_method: PaymentMethod | None = None
    remarks: str | None = None
    check_number: str | None = None
    release_date: datetime | None = None
    release_recipient: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def items_total(self) -> Decimal:
        return items_total(self.items)
