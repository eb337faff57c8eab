"""
Module: voucher_engines.sequencing
Responsibility:
    Decide whether an actor may perform a workflow action on a voucher
    right now.  Every check is a pure function of a VoucherSnapshot and an
    ActorContext; on refusal it raises the typed error the caller reports.

Architecture position:
    Engines -- pure workflow layer, zero I/O.
    May only import voucher_kernel/domain, voucher_kernel.exceptions and
    sibling engine modules.

Invariants enforced:
    - Office reviews are checked in a fixed order: role, creator
      applicability, reviewable status, prior-stage evidence, current
      reviewer, duplicate BAC review.  The first failing check decides
      the error.
    - Prior-stage evidence is checked independently of the derived
      reviewer; both must pass.
    - An action is never legal for the wrong role, whatever the records say.

Failure modes:
    - AuthorizationError: wrong role, or the action does not apply to
      vouchers from this creator's office.
    - NotReviewableError: status outside PENDING / VALIDATED / APPROVED.
    - MissingPrerequisiteError: the prior stage is not recorded.
    - SequencingError: another office is the current reviewer.
    - DuplicateReviewError: a BAC member or approver acting twice.
"""

from __future__ import annotations

from voucher_kernel.domain.actor import ActorContext
from voucher_kernel.domain.roles import (
    SUBMIT_ROLES,
    UserRole,
    parse_role,
    role_display_name,
)
from voucher_kernel.domain.voucher import ApprovalStatus, VoucherSnapshot, VoucherStatus
from voucher_kernel.domain.workflow import (
    DEFAULT_BAC_QUORUM,
    REVIEW_ACTIONS,
    Gate,
    GateKind,
    Prerequisite,
    ReviewActionSpec,
    WorkflowAction,
    chain_for,
)
from voucher_kernel.exceptions import (
    AuthorizationError,
    DuplicateReviewError,
    MissingPrerequisiteError,
    NotReviewableError,
    SequencingError,
    VoucherKernelError,
)
from voucher_engines.reviewer import (
    ReviewerAssignment,
    gate_met,
    resolve_current_reviewer,
)
from voucher_engines.tracer import traced_engine


def _role_value(role: UserRole | str) -> str:
    return role.value if isinstance(role, UserRole) else str(role)


def prerequisite_met(
    prerequisite: Prerequisite,
    snapshot: VoucherSnapshot,
    bac_quorum: int = DEFAULT_BAC_QUORUM,
) -> bool:
    """True iff ANY condition configured on ``prerequisite`` holds."""
    if prerequisite.audit_action is not None and snapshot.has_audit(
        prerequisite.audit_action, prerequisite.audit_role,
    ):
        return True
    if prerequisite.approved_level is not None and snapshot.is_level_approved(
        prerequisite.approved_level,
    ):
        return True
    if prerequisite.bac_quorum and snapshot.approved_bac_count >= bac_quorum:
        return True
    return False


def _require_in_review(snapshot: VoucherSnapshot, action: WorkflowAction) -> None:
    if not snapshot.is_in_review:
        raise NotReviewableError(action.value, snapshot.status.value)


def _require_current_reviewer(
    snapshot: VoucherSnapshot,
    actor: ActorContext,
    action: WorkflowAction,
    bac_quorum: int,
) -> ReviewerAssignment:
    assignment = resolve_current_reviewer(snapshot, bac_quorum)
    if assignment is None:
        raise SequencingError(
            action.value, "Voucher has no pending reviewer; every stage is complete",
        )
    if _role_value(assignment.role) != actor.role.value:
        raise SequencingError(
            action.value,
            f"It is not {role_display_name(actor.role)}'s turn: "
            f"voucher is {assignment.status_label.lower()}",
        )
    return assignment


# =========================================================================
# Office review actions
# =========================================================================


def check_review(
    snapshot: VoucherSnapshot,
    actor: ActorContext,
    action: WorkflowAction,
    bac_quorum: int = DEFAULT_BAC_QUORUM,
) -> Gate:
    """Check an office review action and return the gate it acts on.

    Raises:
        ValueError: If ``action`` is not an office review action.
        AuthorizationError, NotReviewableError, MissingPrerequisiteError,
        SequencingError, DuplicateReviewError: See module docstring.
    """
    spec: ReviewActionSpec | None = REVIEW_ACTIONS.get(action)
    if spec is None:
        raise ValueError(f"{action} is not an office review action")

    if actor.role != spec.role:
        raise AuthorizationError(
            action.value,
            actor.role.value,
            f"only {role_display_name(spec.role)} may perform {action.value}",
        )

    creator = parse_role(snapshot.creator_role)
    if spec.creator_roles is not None and creator not in spec.creator_roles:
        raise AuthorizationError(
            action.value,
            actor.role.value,
            f"{action.value} does not apply to vouchers created by "
            f"{role_display_name(snapshot.creator_role)}",
        )

    _require_in_review(snapshot, action)

    chain = chain_for(snapshot.creator_role)
    prerequisite = spec.prerequisite_for(chain)
    if prerequisite is not None and not prerequisite_met(prerequisite, snapshot, bac_quorum):
        raise MissingPrerequisiteError(
            action.value,
            prerequisite.description,
            f"{prerequisite.description} must be completed before {action.value}",
        )

    _require_current_reviewer(snapshot, actor, action, bac_quorum)

    if action == WorkflowAction.BAC_REVIEW and snapshot.has_bac_review_by(actor.user_id):
        raise DuplicateReviewError(
            action.value, str(snapshot.voucher_id), str(actor.user_id),
        )

    return chain.gate_named(spec.gate_name)


# =========================================================================
# Level-based decisions
# =========================================================================


def check_level_decision(
    snapshot: VoucherSnapshot,
    actor: ActorContext,
    bac_quorum: int = DEFAULT_BAC_QUORUM,
) -> Gate:
    """Check an approve decision at the actor's level; return the level's gate."""
    action = WorkflowAction.APPROVE
    chain = chain_for(snapshot.creator_role)
    gate = chain.approval_gate_for(actor.role)
    if gate is None:
        raise AuthorizationError(
            action.value,
            actor.role.value,
            f"{role_display_name(actor.role)} holds no approval level on "
            f"vouchers created by {role_display_name(snapshot.creator_role)}",
        )

    _require_in_review(snapshot, action)
    _require_current_reviewer(snapshot, actor, action, bac_quorum)

    for earlier in chain.gates_before(gate):
        if not gate_met(earlier, snapshot, bac_quorum):
            raise MissingPrerequisiteError(
                action.value,
                earlier.label,
                f"{earlier.label.replace('Awaiting ', '')} must be completed "
                f"before level {gate.level} can be decided",
            )

    existing = snapshot.approval_at(gate.level)
    if (
        existing is not None
        and existing.approver_id == actor.user_id
        and existing.status != ApprovalStatus.PENDING
    ):
        raise DuplicateReviewError(
            action.value, str(snapshot.voucher_id), str(actor.user_id),
        )
    return gate


def check_reject(
    snapshot: VoucherSnapshot,
    actor: ActorContext,
    bac_quorum: int = DEFAULT_BAC_QUORUM,
) -> ReviewerAssignment:
    """Check that ``actor`` may reject now: in review and at their turn."""
    action = WorkflowAction.REJECT
    chain = chain_for(snapshot.creator_role)
    if actor.role not in chain.roles:
        raise AuthorizationError(
            action.value,
            actor.role.value,
            f"{role_display_name(actor.role)} takes no part in this voucher's review chain",
        )
    _require_in_review(snapshot, action)
    assignment = _require_current_reviewer(snapshot, actor, action, bac_quorum)
    # A BAC member's one review is either an approval or a rejection
    if (
        assignment.gate is not None
        and assignment.gate.kind == GateKind.BAC_QUORUM
        and snapshot.has_bac_review_by(actor.user_id)
    ):
        raise DuplicateReviewError(
            action.value, str(snapshot.voucher_id), str(actor.user_id),
        )
    return assignment


# =========================================================================
# Treasury actions
# =========================================================================

_TREASURY_GATES = {
    WorkflowAction.CHECK_ISSUANCE: "check_issuance",
    WorkflowAction.MARK_RELEASED: "release",
}


def check_treasury(
    snapshot: VoucherSnapshot,
    actor: ActorContext,
    action: WorkflowAction,
    bac_quorum: int = DEFAULT_BAC_QUORUM,
) -> Gate:
    """Check CHECK_ISSUANCE or MARK_RELEASED and return its gate."""
    gate_name = _TREASURY_GATES.get(action)
    if gate_name is None:
        raise ValueError(f"{action} is not a treasury action")

    if actor.role != UserRole.TREASURY:
        raise AuthorizationError(
            action.value, actor.role.value, "only Treasury may perform this action",
        )
    _require_in_review(snapshot, action)
    if snapshot.audit_trail is None:
        raise SequencingError(
            action.value, "Audit history must be loaded to sequence treasury actions",
        )

    chain = chain_for(snapshot.creator_role)
    gate = chain.gate_named(gate_name)
    for earlier in chain.gates_before(gate):
        if not gate_met(earlier, snapshot, bac_quorum):
            if earlier.kind == GateKind.TREASURY:
                raise MissingPrerequisiteError(
                    action.value,
                    "Check issuance",
                    "A check must be issued before the voucher is released",
                )
            break

    assignment = _require_current_reviewer(snapshot, actor, action, bac_quorum)
    if assignment.gate != gate:
        raise SequencingError(
            action.value, f"Voucher is {assignment.status_label.lower()}",
        )
    return gate


# =========================================================================
# Available actions
# =========================================================================


def _passes(check, *args) -> bool:
    try:
        check(*args)
    except VoucherKernelError:
        return False
    return True


def _action_names(actions: frozenset[WorkflowAction]) -> list[str]:
    return sorted(a.value for a in actions)


@traced_engine(
    "legal_actions", "1.0",
    fingerprint_fields=("snapshot", "actor", "bac_quorum"),
    summarize=_action_names,
)
def legal_actions(
    snapshot: VoucherSnapshot,
    actor: ActorContext,
    bac_quorum: int = DEFAULT_BAC_QUORUM,
) -> frozenset[WorkflowAction]:
    """Workflow actions ``actor`` may attempt on ``snapshot`` right now."""
    actions: set[WorkflowAction] = set()

    if snapshot.status == VoucherStatus.DRAFT:
        if actor.user_id == snapshot.creator_id or actor.role in SUBMIT_ROLES:
            actions.add(WorkflowAction.SUBMIT)

    if snapshot.is_in_review and actor.role == UserRole.ADMIN:
        actions.add(WorkflowAction.CANCEL)

    if not snapshot.is_in_review:
        return frozenset(actions)

    for action in REVIEW_ACTIONS:
        if _passes(check_review, snapshot, actor, action, bac_quorum):
            actions.add(action)
    if _passes(check_level_decision, snapshot, actor, bac_quorum):
        actions.add(WorkflowAction.APPROVE)
    if _passes(check_reject, snapshot, actor, bac_quorum):
        actions.add(WorkflowAction.REJECT)
    for action in _TREASURY_GATES:
        if _passes(check_treasury, snapshot, actor, action, bac_quorum):
            actions.add(action)
    return frozenset(actions)
