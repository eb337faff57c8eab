"""
voucher_services.base -- Shared plumbing for the workflow services.

Responsibility:
    Loading vouchers, stored-status changes, audit recording, best-effort
    event publication and the ``workflow_transition`` trace line shared
    by VoucherService and ReviewService.

Architecture position:
    Services layer.  May import from voucher_engines/ (pure engines) and
    voucher_kernel/ (domain, models, services, selectors).

Invariants enforced:
    - Stored status only changes along VOUCHER_TRANSITIONS.
    - Events are published only after the audit entry is flushed, and a
      publisher failure is logged and swallowed; it never fails the
      transition.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from voucher_kernel.domain.actor import ActorContext
from voucher_kernel.domain.clock import Clock, SystemClock
from voucher_kernel.domain.notification import WorkflowEvent
from voucher_kernel.domain.roles import parse_role
from voucher_kernel.domain.voucher import VoucherStatus, can_transition
from voucher_kernel.domain.workflow import WorkflowAction
from voucher_kernel.exceptions import (
    InvalidStatusTransitionError,
    UserNotFoundError,
    VoucherNotFoundError,
)
from voucher_kernel.logging_config import LogContext, get_logger
from voucher_kernel.models.user import User
from voucher_kernel.models.voucher import Voucher
from voucher_kernel.selectors.voucher_selector import VoucherSelector
from voucher_kernel.services.audit_service import AuditService
from voucher_kernel.services.settings_service import SettingsService
from voucher_services.access_gate import AccessGate

logger = get_logger("services.workflow")

Publisher = Callable[[WorkflowEvent], Any]

TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"


def voucher_values(voucher: Voucher) -> dict[str, Any]:
    """Field snapshot recorded as old/new values in the audit trail."""
    return {
        "payee": voucher.payee,
        "address": voucher.address,
        "amount": voucher.amount,
        "particulars": voucher.particulars,
        "status": voucher.status,
        "tags": list(voucher.tags or []),
        "source_offices": list(voucher.source_offices or []),
        "payment_method": voucher.payment_method,
        "assigned_to_id": voucher.assigned_to_id,
        "remarks": voucher.remarks,
        "items": [
            {
                "description": item.description,
                "quantity": item.quantity,
                "unit": item.unit,
                "unit_price": item.unit_price,
                "total_price": item.total_price,
            }
            for item in voucher.items
        ],
    }


class WorkflowServiceBase:
    """Common constructor and helpers for the voucher workflow services."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        publisher: Publisher | None = None,
        access_gate: AccessGate | None = None,
        bac_quorum: int | None = None,
    ):
        self.session = session
        self._clock = clock or SystemClock()
        self._publisher = publisher
        self._gate = access_gate or AccessGate()
        self._audit = AuditService(session, self._clock)
        self._selector = VoucherSelector(session)
        self._settings = SettingsService(session)
        self._bac_quorum = bac_quorum

    def _load(self, voucher_id: UUID) -> Voucher:
        voucher = self.session.get(Voucher, voucher_id)
        if voucher is None:
            raise VoucherNotFoundError(str(voucher_id))
        return voucher

    def _touch(self, voucher: Voucher) -> None:
        voucher.updated_at = self._clock.now()

    def _set_status(self, voucher: Voucher, target: VoucherStatus) -> None:
        current = VoucherStatus(voucher.status)
        if not can_transition(current, target):
            raise InvalidStatusTransitionError(current.value, target.value)
        voucher.status = target.value

    def _event(
        self,
        voucher: Voucher,
        actor: ActorContext,
        action: WorkflowAction,
        **extra: Any,
    ) -> WorkflowEvent:
        return WorkflowEvent(
            voucher_id=voucher.id,
            action=action,
            actor_id=actor.user_id,
            actor_name=actor.display,
            actor_role=actor.role,
            creator_role=parse_role(voucher.creator_role) or voucher.creator_role,
            payee=voucher.payee,
            amount=voucher.amount,
            check_number=voucher.check_number,
            **extra,
        )

    def _publish(self, event: WorkflowEvent) -> None:
        if self._publisher is None:
            return
        try:
            self._publisher(event)
        except Exception:
            # Notifications are a side channel; the transition already stands
            logger.warning(
                "notification_publish_failed",
                extra={"voucher_id": str(event.voucher_id), "event_action": event.action.value},
                exc_info=True,
            )

    def _trace(
        self,
        action: WorkflowAction,
        voucher_id: UUID,
        actor: ActorContext,
        from_status: str | None,
        to_status: str | None,
        started: float,
    ) -> None:
        with LogContext.bind_actor(actor, voucher_id=voucher_id, action=action):
            logger.info(
                "workflow_transition",
                extra={
                    "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
                    "workflow_action": action.value,
                    "from_status": from_status,
                    "to_status": to_status,
                    "duration_ms": round((time.monotonic() - started) * 1000, 3),
                },
            )

    def _actor_user(self, actor: ActorContext) -> User:
        user = self.session.get(User, actor.user_id)
        if user is None:
            raise UserNotFoundError(str(actor.user_id))
        return user

    def _quorum(self) -> int:
        if self._bac_quorum is not None:
            return self._bac_quorum
        return self._settings.get_bac_required_approvals()
