"""
Module: voucher_engines.reviewer
Responsibility:
    Derive the office whose action is next required on a voucher from its
    stored approvals, BAC reviews and audit trail.  Nothing about the
    current stage is stored; it is recomputed on every call.

Architecture position:
    Engines -- pure workflow layer, zero I/O.
    May only import voucher_kernel/domain and sibling engine modules.

Invariants enforced:
    - Terminal vouchers have no reviewer.
    - DRAFT vouchers are "reviewed" by their creator, labelled "Draft".
    - Gates are evaluated strictly in chain order; the first unmet gate is
      authoritative whatever later gates' records show.
    - The BAC quorum is an explicit argument, never read from storage.
    - Without loaded audit history the treasury gates collapse to a single
      TREASURY "Awaiting Treasury Action"; Treasury is never skipped.

Failure modes:
    - ValueError when bac_quorum < 1.

Usage:
    from voucher_engines.reviewer import resolve_current_reviewer

    assignment = resolve_current_reviewer(snapshot, bac_quorum=3)
    if assignment is not None:
        print(assignment.role, assignment.status_label)
"""

from __future__ import annotations

from dataclasses import dataclass

from voucher_kernel.domain.roles import UserRole, parse_role, role_display_name
from voucher_kernel.domain.voucher import VoucherSnapshot, VoucherStatus
from voucher_kernel.domain.workflow import (
    DEFAULT_BAC_QUORUM,
    DRAFT_LABEL,
    TREASURY_UNKNOWN_LABEL,
    Gate,
    GateKind,
    WorkflowChain,
    chain_for,
)
from voucher_engines.tracer import traced_engine


@dataclass(frozen=True)
class ReviewerAssignment:
    """The office currently expected to act.

    ``gate`` is None for drafts and when treasury progress is unknown.
    """

    role: UserRole | str
    display_name: str
    status_label: str
    gate: Gate | None = None

    @property
    def gate_name(self) -> str | None:
        return self.gate.name if self.gate is not None else None


def _check_quorum(bac_quorum: int) -> None:
    if bac_quorum < 1:
        raise ValueError(f"bac_quorum must be at least 1, got {bac_quorum}")


def gate_met(gate: Gate, snapshot: VoucherSnapshot, bac_quorum: int) -> bool:
    """True iff the records on ``snapshot`` satisfy ``gate``."""
    if gate.kind == GateKind.APPROVAL:
        return snapshot.is_level_approved(gate.level)
    if gate.kind == GateKind.BAC_QUORUM:
        return snapshot.approved_bac_count >= bac_quorum
    return snapshot.has_audit(gate.completion_action, UserRole.TREASURY)


def first_unmet_gate(
    snapshot: VoucherSnapshot,
    bac_quorum: int = DEFAULT_BAC_QUORUM,
    chain: WorkflowChain | None = None,
) -> Gate | None:
    """The first gate in the creator's chain that is not yet met, or None."""
    chain = chain or chain_for(snapshot.creator_role)
    for gate in chain.gates:
        if not gate_met(gate, snapshot, bac_quorum):
            return gate
    return None


def _assignment_for(gate: Gate, snapshot: VoucherSnapshot, bac_quorum: int) -> ReviewerAssignment:
    label = gate.label
    if gate.kind == GateKind.BAC_QUORUM:
        label = f"{gate.label} ({snapshot.approved_bac_count}/{bac_quorum})"
    return ReviewerAssignment(
        role=gate.role,
        display_name=role_display_name(gate.role),
        status_label=label,
        gate=gate,
    )


def _assignment_label(assignment: ReviewerAssignment | None) -> str | None:
    return assignment.status_label if assignment is not None else None


@traced_engine(
    "reviewer", "1.0",
    fingerprint_fields=("snapshot", "bac_quorum"),
    summarize=_assignment_label,
)
def resolve_current_reviewer(
    snapshot: VoucherSnapshot,
    bac_quorum: int = DEFAULT_BAC_QUORUM,
) -> ReviewerAssignment | None:
    """Resolve who must act next on ``snapshot``.

    Returns:
        The assignment, or None when the voucher is terminal or every gate
        of its chain is met.
    """
    _check_quorum(bac_quorum)

    if snapshot.is_terminal:
        return None

    if snapshot.status == VoucherStatus.DRAFT:
        role = parse_role(snapshot.creator_role) or snapshot.creator_role
        return ReviewerAssignment(
            role=role,
            display_name=role_display_name(role),
            status_label=DRAFT_LABEL,
        )

    chain = chain_for(snapshot.creator_role)
    for gate in chain.gates:
        if gate.kind == GateKind.TREASURY and snapshot.audit_trail is None:
            return ReviewerAssignment(
                role=UserRole.TREASURY,
                display_name=role_display_name(UserRole.TREASURY),
                status_label=TREASURY_UNKNOWN_LABEL,
            )
        if not gate_met(gate, snapshot, bac_quorum):
            return _assignment_for(gate, snapshot, bac_quorum)
    return None


def approval_level_for(
    creator_role: UserRole | str,
    actor_role: UserRole | str,
) -> int | None:
    """The approval level ``actor_role`` writes on vouchers by ``creator_role``.

    Levels are chain-relative: Budget is level 4 on GSO vouchers and
    level 3 everywhere else.
    """
    role = parse_role(actor_role)
    if role is None:
        return None
    return chain_for(creator_role).level_for(role)
