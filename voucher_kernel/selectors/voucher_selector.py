"""
Module: voucher_kernel.selectors.voucher_selector
Responsibility: Read access to vouchers: the full record, the engine
    snapshot (records plus audit history), the audit trail, and the
    role-scoped listing each office sees.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - Snapshots are always rebuilt from stored records; nothing about the
      current reviewer is cached.
    - Audit entries are returned oldest first.
    - Listing scope:
        ADMIN sees every voucher.
        REQUESTER, GSO and HR see only vouchers they created.
        BAC sees GSO-created vouchers plus their own.
        Every other office sees in-review vouchers plus their own.

Failure modes:
    - VoucherNotFoundError when the id does not exist.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import or_, select

from voucher_kernel.domain.actor import ActorContext
from voucher_kernel.domain.roles import SELF_SERVICE_ROLES, UserRole
from voucher_kernel.domain.voucher import (
    IN_REVIEW_STATUSES,
    AuditRecord,
    VoucherRecord,
    VoucherSnapshot,
    VoucherStatus,
)
from voucher_kernel.exceptions import VoucherNotFoundError
from voucher_kernel.models.audit_trail import AuditTrailEntry
from voucher_kernel.models.user import User
from voucher_kernel.models.voucher import Voucher
from voucher_kernel.selectors.base import BaseSelector


class VoucherSelector(BaseSelector[Voucher]):
    """Read-side queries over vouchers."""

    def _get(self, voucher_id: UUID) -> Voucher:
        voucher = self.session.get(Voucher, voucher_id)
        if voucher is None:
            raise VoucherNotFoundError(str(voucher_id))
        return voucher

    def exists(self, voucher_id: UUID) -> bool:
        return self.session.get(Voucher, voucher_id) is not None

    def get(self, voucher_id: UUID) -> VoucherRecord:
        return self._get(voucher_id).to_dto()

    def audit_trail(self, voucher_id: UUID) -> tuple[AuditRecord, ...]:
        """Every audit entry for the voucher, oldest first.  Survives deletion."""
        rows = self.session.execute(
            select(AuditTrailEntry)
            .where(AuditTrailEntry.voucher_id == voucher_id)
            .order_by(AuditTrailEntry.created_at, AuditTrailEntry.seq)
        ).scalars()
        return tuple(row.to_dto() for row in rows)

    def load_snapshot(self, voucher_id: UUID, with_audit: bool = True) -> VoucherSnapshot:
        """
        Engine snapshot of one voucher.

        Args:
            with_audit: When False the snapshot's audit_trail is None and
                the engine treats Treasury progress as unknown.

        Raises:
            VoucherNotFoundError: If the voucher doesn't exist.
        """
        voucher = self._get(voucher_id)
        trail = self.audit_trail(voucher_id) if with_audit else None
        return voucher.to_snapshot(trail)

    def list_for_actor(
        self,
        actor: ActorContext,
        status: VoucherStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[VoucherRecord]:
        """Vouchers ``actor`` may see, newest first."""
        stmt = select(Voucher).join(User, Voucher.created_by_id == User.id)

        own = Voucher.created_by_id == actor.user_id
        if actor.role == UserRole.ADMIN:
            pass
        elif actor.role in SELF_SERVICE_ROLES:
            stmt = stmt.where(own)
        elif actor.role == UserRole.BAC:
            stmt = stmt.where(or_(own, User.role == UserRole.GSO.value))
        else:
            in_review = [s.value for s in IN_REVIEW_STATUSES]
            stmt = stmt.where(or_(own, Voucher.status.in_(in_review)))

        if status is not None:
            stmt = stmt.where(Voucher.status == VoucherStatus(status).value)

        stmt = stmt.order_by(Voucher.created_at.desc()).limit(limit).offset(offset)
        return [v.to_dto() for v in self.session.execute(stmt).unique().scalars()]
