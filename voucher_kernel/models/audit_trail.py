"""
Module: voucher_kernel.models.audit_trail
Responsibility: ORM persistence for the append-only audit trail.  One row
    per state-affecting operation, holding the actor, the role they held at
    the time, and before/after field values.
Architecture position: Kernel > Models.  May import from db/ and domain/
    value objects only.

Invariants enforced:
    - Append-only: UPDATE and DELETE are blocked by ORM listeners in
      db/immutability.py.
    - voucher_id is a plain indexed column, not a foreign key, so entries
      outlive the voucher they describe (the DELETE entry included).
    - actor_role is captured at write time; a later role change on the
      user account does not rewrite history.

Failure modes:
    - ImmutabilityViolationError on any UPDATE or DELETE through the ORM.

Audit relevance:
    This table IS the audit trail.  Sequencing checks read it to decide
    whether a prior stage happened.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, BigInteger, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from voucher_kernel.db.base import Base, UUIDString
from voucher_kernel.domain.roles import parse_role
from voucher_kernel.domain.voucher import AuditAction, AuditRecord


class AuditTrailEntry(Base):
    """One immutable audit record."""

    __tablename__ = "audit_trail"

    __table_args__ = (
        Index("ix_audit_trail_voucher_created", "voucher_id", "created_at"),
        Index("ix_audit_trail_action", "action"),
        Index("ix_audit_trail_user", "user_id"),
        Index("ix_audit_trail_seq", "seq", unique=True),
    )

    # From the audit_trail sequence; breaks created_at ties
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)

    action: Mapped[str] = mapped_column(String(30), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    voucher_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    user_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    actor_role: Mapped[str | None] = mapped_column(String(30), nullable=True)
    old_values: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    new_values: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuditTrailEntry {self.action} voucher={self.voucher_id} by={self.user_id}>"

    def to_dto(self) -> AuditRecord:
        """Convert ORM model to frozen domain DTO."""
        role = parse_role(self.actor_role) if self.actor_role else None
        return AuditRecord(
            action=AuditAction(self.action),
            user_id=self.user_id,
            actor_role=role if role is not None else self.actor_role,
            user_name=self.user_name,
            created_at=self.created_at,
            old_values=self.old_values,
            new_values=self.new_values,
        )
