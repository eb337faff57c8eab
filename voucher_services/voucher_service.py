"""
VoucherService - Lifecycle operations on disbursement vouchers.

Responsibility:
    Create, update, submit, delete and cancel vouchers, and carry remarks
    to chosen offices.  Each operation is one unit of work on the caller's
    session: access check, validation, state change, exactly one audit
    entry, then a best-effort notification event.

Architecture position:
    Services layer.  Uses voucher_kernel domain validation, models and the
    AuditService; sequencing of office reviews lives in ReviewService.

Invariants enforced:
    - created_by is set once at creation and never changes.
    - A voucher may only be submitted (or created PENDING) with at least
      one line item.
    - Fields and items are editable only while DRAFT or PENDING.
    - The DELETE audit entry is written before the row is removed and
      outlives it.

Failure modes:
    - AuthenticationError: No actor supplied.
    - AuthorizationError: The access gate refuses the actor.
    - VoucherValidationError: Field-level input problems.
    - NotReviewableError: Update outside DRAFT / PENDING.
    - InvalidStatusTransitionError: Submit or cancel from a status that
      cannot move there.
    - VoucherNotFoundError / UserNotFoundError.

Audit relevance:
    CREATE (or SUBMIT when created PENDING), UPDATE, SUBMIT, DELETE,
    SUBMIT_REMARKS.  Cancellation is recorded as UPDATE with the reason.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select

from voucher_kernel.domain.actor import ActorContext, require_actor
from voucher_kernel.domain.validation import (
    MAX_REASON_LENGTH,
    ValidatedVoucher,
    VoucherInput,
    require_text,
    validate_voucher_input,
)
from voucher_kernel.domain.voucher import (
    EDITABLE_STATUSES,
    AuditAction,
    VoucherRecord,
    VoucherStatus,
)
from voucher_kernel.domain.workflow import WorkflowAction
from voucher_kernel.exceptions import NotReviewableError, VoucherValidationError
from voucher_kernel.logging_config import get_logger
from voucher_kernel.models.reference import Payee, Tag
from voucher_kernel.models.voucher import Voucher
from voucher_services.access_gate import AccessAction
from voucher_services.base import WorkflowServiceBase, voucher_values

logger = get_logger("services.voucher")

_ITEMS_REQUIRED = {"field": "items", "message": "At least one item is required to submit"}


class VoucherService(WorkflowServiceBase):
    """
    Voucher lifecycle: everything that is not an office review.

    Usage:
        with session_scope() as session:
            service = VoucherService(session, publisher=dispatcher)
            record = service.create(VoucherInput(...), actor)
            service.submit(record.voucher_id, actor)
    """

    # =====================================================================
    # Create / update
    # =====================================================================

    def create(self, data: VoucherInput, actor: ActorContext | None) -> VoucherRecord:
        """
        Create a voucher in DRAFT, or directly in PENDING.

        Returns:
            The stored voucher.
        """
        actor = require_actor(actor)
        started = time.monotonic()
        validated = validate_voucher_input(data)
        if validated.status == VoucherStatus.PENDING and not validated.items:
            raise VoucherValidationError([_ITEMS_REQUIRED])

        creator = self._actor_user(actor)
        now = self._clock.now()
        voucher = Voucher(
            created_by_id=creator.id,
            creator=creator,
            status=validated.status.value,
            created_at=now,
            updated_at=now,
        )
        self._apply(voucher, validated)
        self.session.add(voucher)
        self.session.flush()
        self._register_references(validated)

        submitted = validated.status == VoucherStatus.PENDING
        audit_action = AuditAction.SUBMIT if submitted else AuditAction.CREATE
        workflow_action = WorkflowAction.SUBMIT if submitted else WorkflowAction.CREATE
        self._audit.record(
            audit_action, actor, voucher.id, new_values=voucher_values(voucher),
        )
        logger.info(
            "voucher_created",
            extra={
                "voucher_id": str(voucher.id),
                "status": voucher.status,
                "amount": str(voucher.amount),
                "item_count": len(voucher.items),
            },
        )
        self._trace(
            workflow_action, voucher.id, actor, None, voucher.status, started,
        )

        self._publish(self._event(
            voucher, actor, workflow_action,
            source_offices=tuple(voucher.source_offices),
        ))
        return voucher.to_dto()

    def update(
        self, voucher_id: UUID, data: VoucherInput, actor: ActorContext | None,
    ) -> VoucherRecord:
        """
        Replace a voucher's fields and items.

        The stored status is not changed by an update; ``data.status`` is
        ignored.
        """
        actor = require_actor(actor)
        started = time.monotonic()
        voucher = self._load(voucher_id)
        self._gate.require(AccessAction.EDIT, actor, voucher.to_snapshot())

        status = VoucherStatus(voucher.status)
        if status not in EDITABLE_STATUSES:
            raise NotReviewableError(WorkflowAction.UPDATE.value, status.value)

        validated = validate_voucher_input(data)
        if status == VoucherStatus.PENDING and not validated.items:
            raise VoucherValidationError([_ITEMS_REQUIRED])

        old_values = voucher_values(voucher)
        self._apply(voucher, validated)
        self._touch(voucher)
        self.session.flush()
        self._register_references(validated)

        self._audit.record(
            AuditAction.UPDATE, actor, voucher.id,
            old_values=old_values, new_values=voucher_values(voucher),
        )
        logger.info("voucher_updated", extra={"voucher_id": str(voucher.id)})
        self._trace(
            WorkflowAction.UPDATE, voucher.id, actor, status.value, voucher.status, started,
        )
        self._publish(self._event(voucher, actor, WorkflowAction.UPDATE))
        return voucher.to_dto()

    def _apply(self, voucher: Voucher, validated: ValidatedVoucher) -> None:
        voucher.payee = validated.payee
        voucher.address = validated.address
        voucher.amount = validated.amount
        voucher.particulars = validated.particulars
        voucher.tags = sorted(validated.tags)
        voucher.source_offices = sorted(validated.source_offices)
        voucher.payment_method = (
            validated.payment_method.value if validated.payment_method else None
        )
        voucher.assigned_to_id = validated.assigned_to_id
        voucher.remarks = validated.remarks
        voucher.replace_items(validated.items)

    def _register_references(self, validated: ValidatedVoucher) -> None:
        """Remember new payees and tags for later selection lists."""
        payee = self.session.execute(
            select(Payee).where(Payee.name == validated.payee)
        ).scalar_one_or_none()
        if payee is None:
            self.session.add(Payee(name=validated.payee, address=validated.address))

        if validated.tags:
            known = set(self.session.execute(
                select(Tag.name).where(Tag.name.in_(sorted(validated.tags)))
            ).scalars())
            for name in sorted(validated.tags - known):
                self.session.add(Tag(name=name))
        self.session.flush()

    # =====================================================================
    # Lifecycle transitions
    # =====================================================================

    def submit(self, voucher_id: UUID, actor: ActorContext | None) -> VoucherRecord:
        """Move a DRAFT voucher into review (PENDING)."""
        actor = require_actor(actor)
        started = time.monotonic()
        voucher = self._load(voucher_id)
        self._gate.require(AccessAction.SUBMIT, actor, voucher.to_snapshot())

        if not voucher.items:
            raise VoucherValidationError([_ITEMS_REQUIRED])
        from_status = voucher.status
        self._set_status(voucher, VoucherStatus.PENDING)
        self._touch(voucher)
        self.session.flush()

        self._audit.record(
            AuditAction.SUBMIT, actor, voucher.id,
            old_values={"status": from_status},
            new_values={"status": voucher.status},
        )
        logger.info("voucher_submitted", extra={"voucher_id": str(voucher.id)})
        self._trace(
            WorkflowAction.SUBMIT, voucher.id, actor, from_status, voucher.status, started,
        )
        self._publish(self._event(voucher, actor, WorkflowAction.SUBMIT))
        return voucher.to_dto()

    def delete(self, voucher_id: UUID, actor: ActorContext | None) -> None:
        """Remove a voucher with its items, approvals and BAC reviews."""
        actor = require_actor(actor)
        voucher = self._load(voucher_id)
        self._gate.require(AccessAction.DELETE, actor, voucher.to_snapshot())

        self._audit.record(
            AuditAction.DELETE, actor, voucher.id, old_values=voucher_values(voucher),
        )
        self.session.delete(voucher)
        self.session.flush()

        logger.info("voucher_deleted", extra={"voucher_id": str(voucher_id)})

    def cancel(
        self,
        voucher_id: UUID,
        actor: ActorContext | None,
        reason: str | None = None,
    ) -> VoucherRecord:
        """
        Cancel an in-review voucher.  Administrators only.

        Raises:
            VoucherValidationError: If ``reason`` is longer than 500 characters.
            InvalidStatusTransitionError: From DRAFT or a terminal status.
        """
        actor = require_actor(actor)
        started = time.monotonic()
        voucher = self._load(voucher_id)
        self._gate.require(AccessAction.CANCEL, actor, voucher.to_snapshot())

        if reason is not None and reason.strip():
            reason = require_text(reason, "reason", MAX_REASON_LENGTH)
        else:
            reason = None

        from_status = voucher.status
        self._set_status(voucher, VoucherStatus.CANCELLED)
        self._touch(voucher)
        self.session.flush()

        self._audit.record(
            AuditAction.UPDATE, actor, voucher.id,
            old_values={"status": from_status},
            new_values={"status": voucher.status, "reason": reason},
        )
        logger.info(
            "voucher_cancelled",
            extra={"voucher_id": str(voucher.id), "from_status": from_status},
        )
        self._trace(
            WorkflowAction.CANCEL, voucher.id, actor, from_status, voucher.status, started,
        )
        self._publish(self._event(voucher, actor, WorkflowAction.CANCEL))
        return voucher.to_dto()

    def submit_remarks(
        self,
        voucher_id: UUID,
        actor: ActorContext | None,
        remarks: str,
        target_offices: Iterable[str],
    ) -> VoucherRecord:
        """
        Send remarks on a voucher to one or more offices.

        The voucher's own ``remarks`` field is left untouched; the remarks
        live in the audit trail and the notifications.
        """
        actor = require_actor(actor)
        started = time.monotonic()
        voucher = self._load(voucher_id)
        self._gate.require(AccessAction.SUBMIT_REMARKS, actor, voucher.to_snapshot())

        text = require_text(remarks, "remarks")
        offices: list[str] = []
        for office in target_offices:
            if isinstance(office, str) and office.strip() and office.strip() not in offices:
                offices.append(office.strip())
        if not offices:
            raise VoucherValidationError(
                [{"field": "target_offices", "message": "Select at least one office"}]
            )

        self._audit.record(
            AuditAction.SUBMIT_REMARKS, actor, voucher.id,
            new_values={"remarks": text, "target_offices": offices},
        )
        logger.info(
            "voucher_remarks_submitted",
            extra={"voucher_id": str(voucher.id), "target_offices": offices},
        )
        self._trace(
            WorkflowAction.SUBMIT_REMARKS, voucher.id, actor,
            voucher.status, voucher.status, started,
        )
        self._publish(self._event(
            voucher, actor, WorkflowAction.SUBMIT_REMARKS,
            target_offices=tuple(offices), remarks=text,
        ))
        return voucher.to_dto()

    # =====================================================================
    # Reads
    # =====================================================================

    def get(self, voucher_id: UUID, actor: ActorContext | None) -> VoucherRecord:
        actor = require_actor(actor)
        voucher = self._load(voucher_id)
        self._gate.require(AccessAction.VIEW, actor, voucher.to_snapshot())
        return voucher.to_dto()

    def list_for(
        self,
        actor: ActorContext | None,
        status: VoucherStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[VoucherRecord]:
        actor = require_actor(actor)
        return self._selector.list_for_actor(actor, status=status, limit=limit, offset=offset)
