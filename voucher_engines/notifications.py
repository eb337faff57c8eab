"""
Module: voucher_engines.notifications
Responsibility:
    Compute who hears about a workflow event and what they are told:
    recipient roles per creator office, priority per action, and the
    message text.  Produces NotificationDraft rows; writing them is the
    notification store's job.

Architecture position:
    Engines -- pure workflow layer, zero I/O.

Invariants enforced:
    - Every workflow event reaches ADMIN and the creator's own office.
      GSO vouchers also reach BAC; no other creator's vouchers do.
    - Recipient roles are de-duplicated, first occurrence wins.
    - Amounts are rendered in pesos with two decimals ("₱10,000.00").
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal
from uuid import UUID

from voucher_kernel.domain.money import round_money
from voucher_kernel.domain.notification import (
    NotificationDraft,
    NotificationPriority,
    NotificationType,
    WorkflowEvent,
)
from voucher_kernel.domain.roles import UserRole, parse_role
from voucher_kernel.domain.workflow import WorkflowAction

WORKFLOW_TITLE = "Disbursement Status Update"
CREATED_TITLE = "New Disbursement Voucher Created"
REMARKS_TITLE = "New Remarks Submitted"

_GSO_RECIPIENTS = (
    UserRole.SECRETARY,
    UserRole.MAYOR,
    UserRole.BAC,
    UserRole.BUDGET,
    UserRole.ACCOUNTING,
    UserRole.TREASURY,
)

_STANDARD_RECIPIENTS = (
    UserRole.SECRETARY,
    UserRole.MAYOR,
    UserRole.BUDGET,
    UserRole.ACCOUNTING,
    UserRole.TREASURY,
)

_HIGH = frozenset({
    WorkflowAction.REJECT,
    WorkflowAction.CHECK_ISSUANCE,
    WorkflowAction.MARK_RELEASED,
})

_MEDIUM = frozenset({
    WorkflowAction.APPROVE,
    WorkflowAction.SECRETARY_REVIEW,
    WorkflowAction.REVIEW,
    WorkflowAction.BAC_REVIEW,
    WorkflowAction.BUDGET_REVIEW,
    WorkflowAction.ACCOUNTING_REVIEW,
})


def recipient_roles(creator_role: UserRole | str) -> tuple[UserRole | str, ...]:
    """Roles notified of workflow events on vouchers by ``creator_role``."""
    creator = parse_role(creator_role) or creator_role
    extension = _GSO_RECIPIENTS if creator == UserRole.GSO else _STANDARD_RECIPIENTS
    roles: list[UserRole | str] = []
    for role in (UserRole.ADMIN, creator, *extension):
        if role not in roles:
            roles.append(role)
    return tuple(roles)


def priority_for(action: WorkflowAction | str) -> NotificationPriority:
    try:
        action = WorkflowAction(action)
    except ValueError:
        return NotificationPriority.LOW
    if action in _HIGH:
        return NotificationPriority.HIGH
    if action in _MEDIUM:
        return NotificationPriority.MEDIUM
    return NotificationPriority.LOW


def format_peso(amount: Decimal) -> str:
    """Format ``amount`` as Philippine pesos, e.g. ``₱10,000.00``."""
    value = round_money(Decimal(amount))
    sign = "-" if value < 0 else ""
    return f"{sign}₱{abs(value):,.2f}"


def _role_label(role: UserRole | str) -> str:
    value = role.value if isinstance(role, UserRole) else str(role)
    return value.replace("_", " ", 1)


def compose_message(event: WorkflowEvent) -> str:
    """Notification text for a workflow event."""
    subject = f'Disbursement voucher "{event.payee}" ({format_peso(event.amount)})'
    by = event.actor_name
    role = _role_label(event.actor_role)
    action = event.action

    if action == WorkflowAction.CREATE:
        return (
            f'New disbursement voucher "{event.payee}" ({format_peso(event.amount)}) '
            f"has been created by {by}"
        )
    if action == WorkflowAction.SUBMIT:
        return f"{subject} has been submitted for review by {by}"
    if action == WorkflowAction.APPROVE:
        return f"{subject} has been approved by {by} ({role})"
    if action == WorkflowAction.REJECT:
        return f"{subject} has been rejected by {by} ({role})"
    if action == WorkflowAction.VALIDATE:
        return f"{subject} has been validated by {by} ({role})"
    if action == WorkflowAction.SECRETARY_REVIEW:
        return f"{subject} has been reviewed by Secretary ({by})"
    if action == WorkflowAction.REVIEW:
        return f"{subject} has been reviewed by {by} (Mayor)"
    if action == WorkflowAction.BAC_REVIEW:
        return f"{subject} has been reviewed by BAC Committee ({by})"
    if action == WorkflowAction.BUDGET_REVIEW:
        return f"{subject} has been reviewed by Budget Office ({by})"
    if action == WorkflowAction.ACCOUNTING_REVIEW:
        return f"{subject} has been reviewed by Accounting Office ({by})"
    if action == WorkflowAction.CHECK_ISSUANCE:
        return (
            f'Check #{event.check_number} has been issued for disbursement '
            f'"{event.payee}" ({format_peso(event.amount)}) by Treasury Office ({by})'
        )
    if action == WorkflowAction.MARK_RELEASED:
        return f"{subject} has been released by Treasury Office ({by})"
    return f"{subject} status updated by {by} ({role})"


def build_workflow_drafts(
    event: WorkflowEvent,
    recipient_ids: Iterable[UUID],
) -> list[NotificationDraft]:
    """One "workflow_update" draft per distinct recipient."""
    message = compose_message(event)
    priority = priority_for(event.action)
    drafts: list[NotificationDraft] = []
    seen: set[UUID] = set()
    for user_id in recipient_ids:
        if user_id in seen:
            continue
        seen.add(user_id)
        drafts.append(NotificationDraft(
            recipient_id=user_id,
            voucher_id=event.voucher_id,
            type=NotificationType.WORKFLOW_UPDATE,
            title=WORKFLOW_TITLE,
            message=message,
            priority=priority,
        ))
    return drafts


def build_source_office_drafts(
    event: WorkflowEvent,
    recipients_by_office: Mapping[str, Iterable[UUID]],
) -> list[NotificationDraft]:
    """Drafts telling each listed source office that a voucher names them."""
    drafts: list[NotificationDraft] = []
    for office, user_ids in recipients_by_office.items():
        message = (
            f"A new disbursement voucher for {event.payee} "
            f"({format_peso(event.amount)}) has been created by {event.actor_name} "
            f"and your office ({office}) has been listed as a source office."
        )
        for user_id in user_ids:
            drafts.append(NotificationDraft(
                recipient_id=user_id,
                voucher_id=event.voucher_id,
                type=NotificationType.VOUCHER_CREATED,
                title=CREATED_TITLE,
                message=message,
                priority=NotificationPriority.MEDIUM,
            ))
    return drafts


def build_remarks_drafts(
    event: WorkflowEvent,
    recipient_ids: Iterable[UUID],
) -> list[NotificationDraft]:
    """High-priority drafts carrying submitted remarks to the target offices."""
    message = (
        f"{event.actor_name} ({_role_label(event.actor_role)}) has submitted remarks "
        f'for disbursement voucher "{event.payee}" ({format_peso(event.amount)}). '
        f'Remarks: "{event.remarks}"'
    )
    seen: set[UUID] = set()
    drafts: list[NotificationDraft] = []
    for user_id in recipient_ids:
        if user_id in seen:
            continue
        seen.add(user_id)
        drafts.append(NotificationDraft(
            recipient_id=user_id,
            voucher_id=event.voucher_id,
            type=NotificationType.REMARKS_SUBMITTED,
            title=REMARKS_TITLE,
            message=message,
            priority=NotificationPriority.HIGH,
        ))
    return drafts
