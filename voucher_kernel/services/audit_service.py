"""
AuditService -- append-only audit trail for voucher state changes.

Responsibility:
    Appends exactly one audit entry per call: the action, the acting user
    and the role they held, and before/after values.  Callers invoke it
    once per state-affecting operation, in the same unit of work as the
    change it describes.

Architecture position:
    Kernel > Services -- imperative shell, called by the workflow services
    in ``voucher_services``.

Invariants enforced:
    - One call, one row.  Entries are never batched or merged.
    - seq comes from the locked ``audit_trail`` counter (SequenceService),
      so it is unique and increases with every committed entry; readers
      order by (created_at, seq).
    - Append-only: rows are never modified or deleted (ORM listeners in
      ``voucher_kernel.db.immutability``).
    - Values are stored JSON-safe: Decimal and UUID as strings, datetimes
      as ISO 8601, enums as their value.

Failure modes:
    - SQLAlchemyError from flush; the caller's scope rolls the whole unit
      of work back.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from voucher_kernel.domain.actor import ActorContext
from voucher_kernel.domain.clock import Clock, SystemClock
from voucher_kernel.domain.voucher import AuditAction, AuditRecord
from voucher_kernel.logging_config import get_logger
from voucher_kernel.models.audit_trail import AuditTrailEntry
from voucher_kernel.services.base import BaseService
from voucher_kernel.services.sequence_service import AUDIT_TRAIL_SEQUENCE, SequenceService

logger = get_logger("services.audit")


def to_jsonable(value: Any) -> Any:
    """Convert ``value`` into plain JSON types, recursively."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted(to_jsonable(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return str(value)


class AuditService(BaseService[AuditTrailEntry]):
    """
    Writes audit trail entries.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT read the trail; ``VoucherSelector`` does.
    """

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._sequences = SequenceService(session)

    def record(
        self,
        action: AuditAction,
        actor: ActorContext,
        entity_id: UUID,
        *,
        voucher_id: UUID | None = None,
        entity_type: str = "DisbursementVoucher",
        old_values: Mapping[str, Any] | None = None,
        new_values: Mapping[str, Any] | None = None,
    ) -> AuditRecord:
        """
        Append one audit entry and flush it.

        ``voucher_id`` defaults to ``entity_id`` for voucher entities.

        Returns:
            The entry as a frozen AuditRecord.
        """
        if voucher_id is None and entity_type == "DisbursementVoucher":
            voucher_id = entity_id

        entry = AuditTrailEntry(
            seq=self._sequences.next_value(AUDIT_TRAIL_SEQUENCE),
            action=AuditAction(action).value,
            entity_type=entity_type,
            entity_id=entity_id,
            voucher_id=voucher_id,
            user_id=actor.user_id,
            user_name=actor.name,
            actor_role=actor.role.value,
            old_values=to_jsonable(old_values) if old_values is not None else None,
            new_values=to_jsonable(new_values) if new_values is not None else None,
            created_at=self._clock.now(),
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "audit_entry_recorded",
            extra={
                "audit_action": entry.action,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "user_id": str(actor.user_id),
                "actor_role": entry.actor_role,
            },
        )
        return entry.to_dto()
