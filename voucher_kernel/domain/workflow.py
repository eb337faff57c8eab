"""
Workflow chain declarations (``voucher_kernel.domain.workflow``).

Responsibility
--------------
Declares, as data, the ordered approval gates a voucher passes through and
the contract of each office review action.  The engine in
``voucher_engines`` walks these tables; it contains no per-office branches.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Approval levels are chain-relative: level 4 is Budget in the GSO chain
  and Accounting in the standard chain.  Levels are only ever looked up
  through ``chain_for(creator_role)``.
* Each chain lists its gates in evaluation order; the first unmet gate
  names the current reviewer.
* Within a chain, an office owns at most one approval level.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from voucher_kernel.domain.roles import UserRole, parse_role
from voucher_kernel.domain.voucher import AuditAction, VoucherStatus
from voucher_kernel.logging_config import get_logger

logger = get_logger("domain.workflow")


class WorkflowAction(str, Enum):
    """Actions that drive a voucher through its lifecycle.

    Superset of the audit vocabulary: APPROVE / REJECT / VALIDATE / CANCEL
    name the user's intent and are used for notification wording and
    priority; the audit trail records the office-specific action.
    """

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    SUBMIT = "SUBMIT"
    VALIDATE = "VALIDATE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"
    SUBMIT_REMARKS = "SUBMIT_REMARKS"
    SECRETARY_REVIEW = "SECRETARY_REVIEW"
    REVIEW = "REVIEW"
    BAC_REVIEW = "BAC_REVIEW"
    BUDGET_REVIEW = "BUDGET_REVIEW"
    ACCOUNTING_REVIEW = "ACCOUNTING_REVIEW"
    CHECK_ISSUANCE = "CHECK_ISSUANCE"
    MARK_RELEASED = "MARK_RELEASED"


class GateKind(str, Enum):
    APPROVAL = "approval"
    BAC_QUORUM = "bac_quorum"
    TREASURY = "treasury"


@dataclass(frozen=True)
class Gate:
    """One step of a chain.

    Contract:
        APPROVAL gates are met by an APPROVED record at ``level``.
        BAC_QUORUM gates are met when approved BAC reviews reach the quorum.
        TREASURY gates are met by a ``completion_action`` audit entry
        written by a TREASURY actor.
    """

    name: str
    kind: GateKind
    role: UserRole
    label: str
    level: int | None = None
    review_action: AuditAction | None = None
    completion_action: AuditAction | None = None


@dataclass(frozen=True)
class WorkflowChain:
    """An ordered gate list for one family of creator roles."""

    name: str
    gates: tuple[Gate, ...]

    def approval_gate_for(self, role: UserRole) -> Gate | None:
        for gate in self.gates:
            if gate.kind == GateKind.APPROVAL and gate.role == role:
                return gate
        return None

    def level_for(self, role: UserRole) -> int | None:
        gate = self.approval_gate_for(role)
        return gate.level if gate is not None else None

    def gates_before(self, gate: Gate) -> tuple[Gate, ...]:
        return self.gates[: self.gates.index(gate)]

    def gate_named(self, name: str) -> Gate:
        for gate in self.gates:
            if gate.name == name:
                return gate
        raise KeyError(name)

    @property
    def roles(self) -> tuple[UserRole, ...]:
        seen: list[UserRole] = []
        for gate in self.gates:
            if gate.role not in seen:
                seen.append(gate.role)
        return tuple(seen)


_SECRETARY = Gate(
    "secretary", GateKind.APPROVAL, UserRole.SECRETARY,
    "Awaiting Secretary Review", level=1,
    review_action=AuditAction.SECRETARY_REVIEW,
)
_MAYOR = Gate(
    "mayor", GateKind.APPROVAL, UserRole.MAYOR,
    "Awaiting Mayor Review", level=2,
    review_action=AuditAction.REVIEW,
)
_CHECK_ISSUANCE = Gate(
    "check_issuance", GateKind.TREASURY, UserRole.TREASURY,
    "Awaiting Check Issuance",
    completion_action=AuditAction.CHECK_ISSUANCE,
)
_RELEASE = Gate(
    "release", GateKind.TREASURY, UserRole.TREASURY,
    "Awaiting Release",
    completion_action=AuditAction.MARK_RELEASED,
)

GSO_CHAIN = WorkflowChain(
    name="gso",
    gates=(
        _SECRETARY,
        _MAYOR,
        Gate(
            "bac", GateKind.BAC_QUORUM, UserRole.BAC,
            "Awaiting BAC Review",
            review_action=AuditAction.BAC_REVIEW,
        ),
        Gate(
            "budget", GateKind.APPROVAL, UserRole.BUDGET,
            "Awaiting Budget Review", level=4,
            review_action=AuditAction.BUDGET_REVIEW,
        ),
        Gate(
            "accounting", GateKind.APPROVAL, UserRole.ACCOUNTING,
            "Awaiting Accounting Review", level=5,
            review_action=AuditAction.ACCOUNTING_REVIEW,
        ),
        _CHECK_ISSUANCE,
        _RELEASE,
    ),
)

STANDARD_CHAIN = WorkflowChain(
    name="standard",
    gates=(
        _SECRETARY,
        _MAYOR,
        Gate(
            "budget", GateKind.APPROVAL, UserRole.BUDGET,
            "Awaiting Budget Review", level=3,
            review_action=AuditAction.BUDGET_REVIEW,
        ),
        Gate(
            "accounting", GateKind.APPROVAL, UserRole.ACCOUNTING,
            "Awaiting Accounting Review", level=4,
            review_action=AuditAction.ACCOUNTING_REVIEW,
        ),
        _CHECK_ISSUANCE,
        _RELEASE,
    ),
)

# BAC approvals required before a GSO voucher moves on to Budget
DEFAULT_BAC_QUORUM = 3

# Label used when audit history is unavailable and treasury progress is unknown
TREASURY_UNKNOWN_LABEL = "Awaiting Treasury Action"
DRAFT_LABEL = "Draft"


def chain_for(creator_role: UserRole | str) -> WorkflowChain:
    """The gate chain a voucher follows, keyed by its creator's role."""
    if parse_role(creator_role) == UserRole.GSO:
        return GSO_CHAIN
    return STANDARD_CHAIN


# Stored status written when an approval level is granted.  Other levels
# leave the status alone.
STATUS_ON_APPROVAL: MappingProxyType[UserRole, VoucherStatus] = MappingProxyType({
    UserRole.SECRETARY: VoucherStatus.VALIDATED,
    UserRole.MAYOR: VoucherStatus.APPROVED,
})


# =========================================================================
# Office review action contracts
# =========================================================================


@dataclass(frozen=True)
class Prerequisite:
    """Evidence that the prior stage happened.

    Satisfied when ANY configured condition holds: an audit entry of
    ``audit_action`` written by ``audit_role``, an APPROVED record at
    ``approved_level``, or (``bac_quorum``) enough approved BAC reviews.
    """

    description: str
    audit_action: AuditAction | None = None
    audit_role: UserRole | None = None
    approved_level: int | None = None
    bac_quorum: bool = False


@dataclass(frozen=True)
class ReviewActionSpec:
    """Contract of one office review endpoint.

    ``creator_roles`` of None means the action applies to every creator.
    """

    action: WorkflowAction
    audit_action: AuditAction
    role: UserRole
    gate_name: str
    creator_roles: frozenset[UserRole] | None = None
    gso_prerequisite: Prerequisite | None = None
    standard_prerequisite: Prerequisite | None = None

    def prerequisite_for(self, chain: WorkflowChain) -> Prerequisite | None:
        if chain.name == GSO_CHAIN.name:
            return self.gso_prerequisite
        return self.standard_prerequisite


_AFTER_SECRETARY = Prerequisite(
    description="Secretary review",
    audit_action=AuditAction.SECRETARY_REVIEW,
    audit_role=UserRole.SECRETARY,
    approved_level=1,
)
_AFTER_MAYOR = Prerequisite(
    description="Mayor review",
    audit_action=AuditAction.REVIEW,
    audit_role=UserRole.MAYOR,
    approved_level=2,
)

REVIEW_ACTIONS: MappingProxyType[WorkflowAction, ReviewActionSpec] = MappingProxyType({
    WorkflowAction.SECRETARY_REVIEW: ReviewActionSpec(
        action=WorkflowAction.SECRETARY_REVIEW,
        audit_action=AuditAction.SECRETARY_REVIEW,
        role=UserRole.SECRETARY,
        gate_name="secretary",
    ),
    WorkflowAction.REVIEW: ReviewActionSpec(
        action=WorkflowAction.REVIEW,
        audit_action=AuditAction.REVIEW,
        role=UserRole.MAYOR,
        gate_name="mayor",
        creator_roles=frozenset({UserRole.GSO, UserRole.HR, UserRole.REQUESTER}),
        gso_prerequisite=_AFTER_SECRETARY,
        standard_prerequisite=_AFTER_SECRETARY,
    ),
    WorkflowAction.BAC_REVIEW: ReviewActionSpec(
        action=WorkflowAction.BAC_REVIEW,
        audit_action=AuditAction.BAC_REVIEW,
        role=UserRole.BAC,
        gate_name="bac",
        creator_roles=frozenset({UserRole.GSO}),
        gso_prerequisite=_AFTER_MAYOR,
    ),
    WorkflowAction.BUDGET_REVIEW: ReviewActionSpec(
        action=WorkflowAction.BUDGET_REVIEW,
        audit_action=AuditAction.BUDGET_REVIEW,
        role=UserRole.BUDGET,
        gate_name="budget",
        gso_prerequisite=Prerequisite(
            description="BAC committee quorum",
            bac_quorum=True,
        ),
        standard_prerequisite=_AFTER_MAYOR,
    ),
    WorkflowAction.ACCOUNTING_REVIEW: ReviewActionSpec(
        action=WorkflowAction.ACCOUNTING_REVIEW,
        audit_action=AuditAction.ACCOUNTING_REVIEW,
        role=UserRole.ACCOUNTING,
        gate_name="accounting",
        creator_roles=frozenset({UserRole.GSO}),
        gso_prerequisite=Prerequisite(
            description="Budget Office review",
            audit_action=AuditAction.BUDGET_REVIEW,
            audit_role=UserRole.BUDGET,
        ),
    ),
})


logger.debug(
    "workflow_chains_loaded",
    extra={
        "chains": [GSO_CHAIN.name, STANDARD_CHAIN.name],
        "review_actions": [a.value for a in REVIEW_ACTIONS],
    },
)
