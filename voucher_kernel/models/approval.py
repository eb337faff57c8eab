"""
Module: voucher_kernel.models.approval
Responsibility: ORM persistence for per-level approval decisions and for
    BAC committee member reviews.
Architecture position: Kernel > Models.  May import from db/ and domain/
    value objects only.

Invariants enforced:
    - One approval record per (voucher, level): UNIQUE(voucher_id, level).
      A repeated decision at a level updates that record in place.
    - One BAC review per (reviewer, voucher): UNIQUE(reviewer_id, voucher_id).
    - status values are restricted by CHECK constraints.

Failure modes:
    - IntegrityError on a duplicate (voucher, level) or (reviewer, voucher).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from voucher_kernel.db.base import Base, UUIDString
from voucher_kernel.domain.voucher import (
    ApprovalRecord,
    ApprovalStatus,
    BacReviewRecord,
    BacReviewStatus,
)

if TYPE_CHECKING:
    from voucher_kernel.models.user import User
    from voucher_kernel.models.voucher import Voucher


class Approval(Base):
    """Decision recorded for one approval level of one voucher."""

    __tablename__ = "approvals"

    __table_args__ = (
        UniqueConstraint("voucher_id", "level", name="uq_approvals_voucher_level"),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_approvals_valid_status",
        ),
        CheckConstraint("level >= 1", name="ck_approvals_level_positive"),
    )

    voucher_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vouchers.id", ondelete="CASCADE"),
        nullable=False,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ApprovalStatus.PENDING.value, nullable=False,
    )
    approver_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )

    voucher: Mapped["Voucher"] = relationship("Voucher", back_populates="approvals")
    approver: Mapped["User"] = relationship("User", lazy="joined")

    def __repr__(self) -> str:
        return f"<Approval voucher={self.voucher_id} level={self.level} status={self.status}>"

    def to_dto(self) -> ApprovalRecord:
        """Convert ORM model to frozen domain DTO."""
        return ApprovalRecord(
            level=self.level,
            status=ApprovalStatus(self.status),
            approver_id=self.approver_id,
            approver_name=self.approver.name if self.approver is not None else "",
            approved_at=self.approved_at,
            remarks=self.remarks,
        )


class BacReview(Base):
    """One BAC committee member's review of a GSO voucher."""

    __tablename__ = "bac_reviews"

    __table_args__ = (
        UniqueConstraint("reviewer_id", "voucher_id", name="uq_bac_reviews_reviewer_voucher"),
        CheckConstraint(
            "status IN ('APPROVED', 'REJECTED')",
            name="ck_bac_reviews_valid_status",
        ),
        Index("ix_bac_reviews_voucher", "voucher_id"),
    )

    voucher_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vouchers.id", ondelete="CASCADE"),
        nullable=False,
    )
    reviewer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    voucher: Mapped["Voucher"] = relationship("Voucher", back_populates="bac_reviews")
    reviewer: Mapped["User"] = relationship("User", lazy="joined")

    def __repr__(self) -> str:
        return f"<BacReview voucher={self.voucher_id} reviewer={self.reviewer_id} status={self.status}>"

    def to_dto(self) -> BacReviewRecord:
        """Convert ORM model to frozen domain DTO."""
        return BacReviewRecord(
            reviewer_id=self.reviewer_id,
            status=BacReviewStatus(self.status),
            reviewer_name=self.reviewer.name if self.reviewer is not None else "",
            comments=self.comments,
            created_at=self.created_at,
        )
