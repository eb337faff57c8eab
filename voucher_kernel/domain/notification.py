"""
Notification domain types (``voucher_kernel.domain.notification``).

Responsibility
--------------
Value objects that flow from the transactional core to the best-effort
notification side channel: the ``WorkflowEvent`` published after an
accepted transition, the ``NotificationDraft`` rows computed from it, and
the ``NotificationSink`` protocol the store implements.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Protocol, Sequence
from uuid import UUID

from voucher_kernel.domain.roles import UserRole
from voucher_kernel.domain.workflow import WorkflowAction


class NotificationPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class NotificationType(str, Enum):
    WORKFLOW_UPDATE = "workflow_update"
    VOUCHER_CREATED = "voucher_created"
    REMARKS_SUBMITTED = "remarks_submitted"


@dataclass(frozen=True)
class WorkflowEvent:
    """An accepted transition, as seen by the notification side channel.

    ``target_offices`` and ``remarks`` are only set for SUBMIT_REMARKS;
    ``source_offices`` only for CREATE.
    """

    voucher_id: UUID
    action: WorkflowAction
    actor_id: UUID
    actor_name: str
    actor_role: UserRole
    creator_role: UserRole | str
    payee: str
    amount: Decimal
    check_number: str | None = None
    source_offices: tuple[str, ...] = ()
    target_offices: tuple[str, ...] = ()
    remarks: str | None = None


@dataclass(frozen=True)
class NotificationDraft:
    """One notification row to be written for one recipient."""

    recipient_id: UUID
    voucher_id: UUID
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority


class NotificationSink(Protocol):
    """Where computed notifications go.

    ``replace_for_voucher`` removes every existing notification for the
    voucher addressed to the drafts' recipients, then inserts the drafts.
    ``add`` inserts without superseding anything.
    """

    def replace_for_voucher(
        self, voucher_id: UUID, drafts: Sequence[NotificationDraft],
    ) -> int:
        ...

    def add(self, drafts: Sequence[NotificationDraft]) -> int:
        ...


@dataclass(frozen=True)
class NotificationRecord:
    """A stored notification, as listed to its owner."""

    notification_id: UUID
    user_id: UUID
    voucher_id: UUID | None
    type: str
    title: str
    message: str
    priority: NotificationPriority
    is_read: bool
    created_at: datetime | None = None
