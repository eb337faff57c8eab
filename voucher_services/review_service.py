"""
ReviewService - Office reviews, level decisions and treasury actions.

Responsibility:
    Apply the actions that move an in-review voucher along its approval
    chain.  The workflow engine decides whether an action is legal; this
    service loads the snapshot, asks the engine, writes the resulting
    approval or BAC review row, adjusts the stored status, records the
    audit entry and publishes the event.

Architecture position:
    Services layer.  Imports voucher_engines (reviewer, sequencing,
    progress) and voucher_kernel (models, services, selectors).

Invariants enforced:
    - The current reviewer is recomputed from stored records on every
      call; it is never cached.
    - One approval row per (voucher, level).  A later decision at a level
      updates the row in place; an APPROVED level is final.
    - One BAC review per (reviewer, voucher).
    - Only Secretary and Mayor approvals change the stored status
      (VALIDATED and APPROVED).  BAC, Budget and Accounting reviews leave
      it unchanged.
    - Exactly one audit entry per accepted action.

Failure modes:
    - AuthorizationError / SequencingError subclasses from
      ``voucher_engines.sequencing``; nothing is written when they fire.
    - VoucherValidationError: blank check number, recipient or rejection
      reason.
    - IntegrityError from the unique constraints when two callers race on
      the same level; the caller's unit of work is rolled back.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any
from uuid import UUID

from voucher_engines.progress import ProgressStep, compute_progress
from voucher_engines.reviewer import ReviewerAssignment, resolve_current_reviewer
from voucher_engines.sequencing import (
    check_level_decision,
    check_reject,
    check_review,
    check_treasury,
    legal_actions,
)
from voucher_kernel.domain.actor import ActorContext, require_actor
from voucher_kernel.domain.validation import MAX_REASON_LENGTH, require_text
from voucher_kernel.domain.voucher import (
    ApprovalStatus,
    AuditAction,
    BacReviewStatus,
    VoucherRecord,
    VoucherStatus,
)
from voucher_kernel.domain.workflow import (
    REVIEW_ACTIONS,
    STATUS_ON_APPROVAL,
    Gate,
    GateKind,
    WorkflowAction,
)
from voucher_kernel.exceptions import DuplicateReviewError
from voucher_kernel.logging_config import get_logger
from voucher_kernel.models.approval import Approval, BacReview
from voucher_kernel.models.voucher import Voucher
from voucher_services.base import WorkflowServiceBase

logger = get_logger("services.review")


class ReviewService(WorkflowServiceBase):
    """
    Workflow actions performed by the reviewing offices.

    Usage:
        with session_scope() as session:
            reviews = ReviewService(session, publisher=dispatcher)
            reviews.secretary_review(voucher_id, secretary, "Documents complete")
            reviews.mayor_review(voucher_id, mayor)
    """

    # =====================================================================
    # Office reviews
    # =====================================================================

    def secretary_review(
        self, voucher_id: UUID, actor: ActorContext | None, comments: str | None = None,
    ) -> VoucherRecord:
        return self._office_review(voucher_id, actor, WorkflowAction.SECRETARY_REVIEW, comments)

    def mayor_review(
        self, voucher_id: UUID, actor: ActorContext | None, comments: str | None = None,
    ) -> VoucherRecord:
        return self._office_review(voucher_id, actor, WorkflowAction.REVIEW, comments)

    def bac_review(
        self, voucher_id: UUID, actor: ActorContext | None, comments: str | None = None,
    ) -> VoucherRecord:
        """Record one BAC member's approval; the quorum decides when Budget is next."""
        return self._office_review(voucher_id, actor, WorkflowAction.BAC_REVIEW, comments)

    def budget_review(
        self, voucher_id: UUID, actor: ActorContext | None, comments: str | None = None,
    ) -> VoucherRecord:
        return self._office_review(voucher_id, actor, WorkflowAction.BUDGET_REVIEW, comments)

    def accounting_review(
        self, voucher_id: UUID, actor: ActorContext | None, comments: str | None = None,
    ) -> VoucherRecord:
        return self._office_review(voucher_id, actor, WorkflowAction.ACCOUNTING_REVIEW, comments)

    def _office_review(
        self,
        voucher_id: UUID,
        actor: ActorContext | None,
        action: WorkflowAction,
        comments: str | None,
    ) -> VoucherRecord:
        actor = require_actor(actor)
        started = time.monotonic()
        voucher, snapshot = self._load_with_history(voucher_id)
        gate = check_review(snapshot, actor, action, self._quorum())

        comments = _optional_text(comments)
        from_status = voucher.status
        if gate.kind == GateKind.BAC_QUORUM:
            self._add_bac_review(voucher, actor, BacReviewStatus.APPROVED, comments)
        else:
            self._upsert_approval(voucher, gate, actor, ApprovalStatus.APPROVED, comments)
            self._apply_approval_status(voucher, actor)
        self._touch(voucher)
        self.session.flush()

        self._audit.record(
            REVIEW_ACTIONS[action].audit_action, actor, voucher.id,
            old_values={"status": from_status},
            new_values={
                "status": voucher.status,
                "reviewer": actor.display,
                "comments": comments,
                "level": gate.level,
            },
        )
        logger.info(
            "office_review_recorded",
            extra={
                "voucher_id": str(voucher.id),
                "review_action": action.value,
                "gate": gate.name,
                "level": gate.level,
            },
        )
        self._trace(action, voucher.id, actor, from_status, voucher.status, started)
        self._publish(self._event(voucher, actor, action))
        return voucher.to_dto()

    # =====================================================================
    # Level-based decisions
    # =====================================================================

    def decide(
        self,
        voucher_id: UUID,
        actor: ActorContext | None,
        approve: bool,
        remarks: str | None = None,
    ) -> VoucherRecord:
        """
        Approve or reject at the actor's approval level.

        Approval requires every earlier gate of the chain to be met and
        writes the level's APPROVED record.  Rejection delegates to
        ``reject``.
        """
        if not approve:
            return self.reject(voucher_id, actor, remarks)

        actor = require_actor(actor)
        started = time.monotonic()
        voucher, snapshot = self._load_with_history(voucher_id)
        gate = check_level_decision(snapshot, actor, self._quorum())

        remarks = _optional_text(remarks, "remarks", MAX_REASON_LENGTH)
        from_status = voucher.status
        self._upsert_approval(voucher, gate, actor, ApprovalStatus.APPROVED, remarks)
        self._apply_approval_status(voucher, actor)
        self._touch(voucher)
        self.session.flush()

        self._audit.record(
            gate.review_action, actor, voucher.id,
            old_values={"status": from_status},
            new_values={
                "status": voucher.status,
                "decision": ApprovalStatus.APPROVED.value,
                "reviewer": actor.display,
                "remarks": remarks,
                "level": gate.level,
            },
        )
        logger.info(
            "approval_level_decided",
            extra={
                "voucher_id": str(voucher.id),
                "level": gate.level,
                "decision": ApprovalStatus.APPROVED.value,
            },
        )
        event_action = (
            WorkflowAction.VALIDATE
            if voucher.status == VoucherStatus.VALIDATED.value and from_status != voucher.status
            else WorkflowAction.APPROVE
        )
        self._trace(event_action, voucher.id, actor, from_status, voucher.status, started)
        self._publish(self._event(voucher, actor, event_action))
        return voucher.to_dto()

    def reject(
        self, voucher_id: UUID, actor: ActorContext | None, remarks: str | None,
    ) -> VoucherRecord:
        """
        Reject the voucher at the actor's turn.  Terminal.

        Raises:
            VoucherValidationError: If ``remarks`` is blank or too long.
        """
        actor = require_actor(actor)
        started = time.monotonic()
        voucher, snapshot = self._load_with_history(voucher_id)
        assignment = check_reject(snapshot, actor, self._quorum())
        remarks = require_text(remarks, "remarks", MAX_REASON_LENGTH)

        gate = assignment.gate
        from_status = voucher.status
        if gate is not None and gate.kind == GateKind.APPROVAL:
            self._upsert_approval(voucher, gate, actor, ApprovalStatus.REJECTED, remarks)
        elif gate is not None and gate.kind == GateKind.BAC_QUORUM:
            self._add_bac_review(voucher, actor, BacReviewStatus.REJECTED, remarks)
        self._set_status(voucher, VoucherStatus.REJECTED)
        voucher.remarks = remarks
        self._touch(voucher)
        self.session.flush()

        self._audit.record(
            AuditAction.REVIEW, actor, voucher.id,
            old_values={"status": from_status},
            new_values={
                "status": voucher.status,
                "decision": ApprovalStatus.REJECTED.value,
                "reviewer": actor.display,
                "remarks": remarks,
                "level": gate.level if gate is not None else None,
            },
        )
        logger.info(
            "voucher_rejected",
            extra={
                "voucher_id": str(voucher.id),
                "from_status": from_status,
                "gate": assignment.gate_name,
            },
        )
        self._trace(
            WorkflowAction.REJECT, voucher.id, actor, from_status, voucher.status, started,
        )
        self._publish(self._event(voucher, actor, WorkflowAction.REJECT))
        return voucher.to_dto()

    # =====================================================================
    # Treasury
    # =====================================================================

    def issue_check(
        self, voucher_id: UUID, actor: ActorContext | None, check_number: str,
    ) -> VoucherRecord:
        """Record the check issued for an approved voucher."""
        actor = require_actor(actor)
        started = time.monotonic()
        voucher, snapshot = self._load_with_history(voucher_id)
        check_treasury(snapshot, actor, WorkflowAction.CHECK_ISSUANCE, self._quorum())
        number = require_text(check_number, "check_number", 100)

        from_status = voucher.status
        voucher.check_number = number
        self._set_status(voucher, VoucherStatus.APPROVED)
        self._touch(voucher)
        self.session.flush()

        self._audit.record(
            AuditAction.CHECK_ISSUANCE, actor, voucher.id,
            old_values={"status": from_status},
            new_values={"status": voucher.status, "check_number": number},
        )
        logger.info(
            "check_issued",
            extra={"voucher_id": str(voucher.id), "check_number": number},
        )
        self._trace(
            WorkflowAction.CHECK_ISSUANCE, voucher.id, actor,
            from_status, voucher.status, started,
        )
        self._publish(self._event(voucher, actor, WorkflowAction.CHECK_ISSUANCE))
        return voucher.to_dto()

    def mark_released(
        self,
        voucher_id: UUID,
        actor: ActorContext | None,
        recipient: str,
        release_date: datetime | None = None,
    ) -> VoucherRecord:
        """Record that the check was handed to ``recipient``.  Terminal."""
        actor = require_actor(actor)
        started = time.monotonic()
        voucher, snapshot = self._load_with_history(voucher_id)
        check_treasury(snapshot, actor, WorkflowAction.MARK_RELEASED, self._quorum())
        recipient = require_text(recipient, "release_recipient", 255)

        from_status = voucher.status
        voucher.release_recipient = recipient
        voucher.release_date = release_date or self._clock.now()
        self._set_status(voucher, VoucherStatus.RELEASED)
        self._touch(voucher)
        self.session.flush()

        self._audit.record(
            AuditAction.MARK_RELEASED, actor, voucher.id,
            old_values={"status": from_status},
            new_values={
                "status": voucher.status,
                "release_recipient": recipient,
                "release_date": voucher.release_date,
            },
        )
        logger.info("voucher_released", extra={"voucher_id": str(voucher.id)})
        self._trace(
            WorkflowAction.MARK_RELEASED, voucher.id, actor,
            from_status, voucher.status, started,
        )
        self._publish(self._event(voucher, actor, WorkflowAction.MARK_RELEASED))
        return voucher.to_dto()

    # =====================================================================
    # Derived views
    # =====================================================================

    def current_reviewer(self, voucher_id: UUID) -> ReviewerAssignment | None:
        snapshot = self._selector.load_snapshot(voucher_id)
        return resolve_current_reviewer(snapshot, self._quorum())

    def available_actions(
        self, voucher_id: UUID, actor: ActorContext | None,
    ) -> frozenset[WorkflowAction]:
        actor = require_actor(actor)
        snapshot = self._selector.load_snapshot(voucher_id)
        return legal_actions(snapshot, actor, self._quorum())

    def progress(self, voucher_id: UUID) -> tuple[ProgressStep, ...]:
        snapshot = self._selector.load_snapshot(voucher_id)
        return compute_progress(snapshot, self._quorum())

    # =====================================================================
    # Record writes
    # =====================================================================

    def _load_with_history(self, voucher_id: UUID):
        voucher = self._load(voucher_id)
        return voucher, voucher.to_snapshot(self._selector.audit_trail(voucher_id))

    def _upsert_approval(
        self,
        voucher: Voucher,
        gate: Gate,
        actor: ActorContext,
        status: ApprovalStatus,
        remarks: str | None,
    ) -> Approval:
        approver = self._actor_user(actor)
        approval = next((a for a in voucher.approvals if a.level == gate.level), None)
        if approval is None:
            approval = Approval(level=gate.level)
            voucher.approvals.append(approval)
        elif approval.status == ApprovalStatus.APPROVED.value:
            raise DuplicateReviewError(
                gate.name.upper(), str(voucher.id), str(approval.approver_id),
            )
        approval.status = status.value
        approval.approver_id = approver.id
        approval.approver = approver
        approval.approved_at = self._clock.now()
        approval.remarks = remarks
        return approval

    def _add_bac_review(
        self,
        voucher: Voucher,
        actor: ActorContext,
        status: BacReviewStatus,
        comments: str | None,
    ) -> BacReview:
        reviewer = self._actor_user(actor)
        if any(r.reviewer_id == reviewer.id for r in voucher.bac_reviews):
            raise DuplicateReviewError(
                WorkflowAction.BAC_REVIEW.value, str(voucher.id), str(reviewer.id),
            )
        review = BacReview(
            reviewer_id=reviewer.id,
            reviewer=reviewer,
            status=status.value,
            comments=comments,
            created_at=self._clock.now(),
        )
        voucher.bac_reviews.append(review)
        return review

    def _apply_approval_status(self, voucher: Voucher, actor: ActorContext) -> None:
        target = STATUS_ON_APPROVAL.get(actor.role)
        if target is not None and voucher.status != target.value:
            self._set_status(voucher, target)


def _optional_text(
    value: Any, field_name: str = "comments", max_length: int | None = None,
) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return require_text(value, field_name, max_length)
