"""
Module: voucher_kernel.models.voucher
Responsibility: ORM persistence for disbursement vouchers and their line
    items.
Architecture position: Kernel > Models.  May import from db/ and domain/
    value objects only.

Invariants enforced:
    - status is one of the VoucherStatus values (ck_vouchers_valid_status).
    - amount is positive (ck_vouchers_positive_amount).
    - Line items: quantity > 0, unit_price >= 0.  total_price is always
      written as round(quantity * unit_price) by the service layer.
    - Items, approvals and BAC reviews belong to exactly one voucher and
      are removed with it.  Audit entries are NOT related here and
      survive deletion.

Failure modes:
    - IntegrityError on a CHECK constraint violation.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from voucher_kernel.db.base import Base, TrackedBase, UUIDString
from voucher_kernel.db.types import MONEY_COLUMN, QUANTITY_COLUMN
from voucher_kernel.domain.roles import parse_role
from voucher_kernel.domain.voucher import (
    AuditRecord,
    PaymentMethod,
    VoucherItem,
    VoucherRecord,
    VoucherSnapshot,
    VoucherStatus,
)

if TYPE_CHECKING:
    from voucher_kernel.models.approval import Approval, BacReview
    from voucher_kernel.models.user import User


_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in VoucherStatus)


class Voucher(TrackedBase):
    """A request for payment routed through the approval chain."""

    __tablename__ = "vouchers"

    __table_args__ = (
        CheckConstraint(
            f"status IN ({_STATUS_VALUES})",
            name="ck_vouchers_valid_status",
        ),
        CheckConstraint("amount > 0", name="ck_vouchers_positive_amount"),
        Index("ix_vouchers_status", "status"),
        Index("ix_vouchers_created_by", "created_by_id"),
    )

    payee: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY_COLUMN, nullable=False)
    particulars: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    source_offices: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=VoucherStatus.DRAFT.value, nullable=False,
    )
    payment_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    check_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    release_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    release_recipient: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_by_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=False,
    )
    assigned_to_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("users.id"), nullable=True,
    )

    creator: Mapped["User"] = relationship(
        "User", foreign_keys=[created_by_id], lazy="joined",
    )
    items: Mapped[list["VoucherLineItem"]] = relationship(
        "VoucherLineItem",
        back_populates="voucher",
        cascade="all, delete-orphan",
        order_by="VoucherLineItem.position",
        lazy="selectin",
    )
    approvals: Mapped[list["Approval"]] = relationship(
        "Approval",
        back_populates="voucher",
        cascade="all, delete-orphan",
        order_by="Approval.level",
        lazy="selectin",
    )
    bac_reviews: Mapped[list["BacReview"]] = relationship(
        "BacReview",
        back_populates="voucher",
        cascade="all, delete-orphan",
        order_by="BacReview.created_at",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Voucher {self.id} payee={self.payee!r} status={self.status}>"

    @property
    def voucher_status(self) -> VoucherStatus:
        return VoucherStatus(self.status)

    @property
    def creator_role(self) -> str:
        return self.creator.role

    def replace_items(self, items: tuple[VoucherItem, ...] | list[VoucherItem]) -> None:
        """Swap the line items for ``items``, keeping their order."""
        self.items = [
            VoucherLineItem.from_dto(item, position=index)
            for index, item in enumerate(items)
        ]

    def to_snapshot(
        self, audit_trail: tuple[AuditRecord, ...] | None = None,
    ) -> VoucherSnapshot:
        """Engine view of this voucher.  Pass None when history was not loaded."""
        return VoucherSnapshot(
            voucher_id=self.id,
            status=VoucherStatus(self.status),
            creator_id=self.created_by_id,
            creator_role=parse_role(self.creator.role) or self.creator.role,
            payee=self.payee,
            amount=self.amount,
            creator_name=self.creator.name,
            assigned_to_id=self.assigned_to_id,
            check_number=self.check_number,
            approvals=tuple(a.to_dto() for a in self.approvals),
            bac_reviews=tuple(r.to_dto() for r in self.bac_reviews),
            audit_trail=audit_trail,
            created_at=self.created_at,
        )

    def to_dto(self) -> VoucherRecord:
        """Convert ORM model to frozen domain DTO."""
        return VoucherRecord(
            voucher_id=self.id,
            payee=self.payee,
            address=self.address,
            amount=self.amount,
            particulars=self.particulars,
            status=VoucherStatus(self.status),
            created_by_id=self.created_by_id,
            creator_role=parse_role(self.creator.role) or self.creator.role,
            creator_name=self.creator.name,
            tags=frozenset(self.tags or ()),
            source_offices=frozenset(self.source_offices or ()),
            items=tuple(i.to_dto() for i in self.items),
            approvals=tuple(a.to_dto() for a in self.approvals),
            bac_reviews=tuple(r.to_dto() for r in self.bac_reviews),
            assigned_to_id=self.assigned_to_id,
            payment_method=(
                PaymentMethod(self.payment_method) if self.payment_method else None
            ),
            remarks=self.remarks,
            check_number=self.check_number,
            release_date=self.release_date,
            release_recipient=self.release_recipient,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class VoucherLineItem(Base):
    """One priced line of a voucher."""

    __tablename__ = "voucher_items"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_voucher_items_positive_quantity"),
        CheckConstraint("unit_price >= 0", name="ck_voucher_items_unit_price"),
        Index("ix_voucher_items_voucher", "voucher_id", "position"),
    )

    voucher_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vouchers.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(QUANTITY_COLUMN, nullable=False)
    unit: Mapped[str] = mapped_column(String(50), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(MONEY_COLUMN, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(MONEY_COLUMN, nullable=False)

    voucher: Mapped["Voucher"] = relationship("Voucher", back_populates="items")

    def __repr__(self) -> str:
        return f"<VoucherLineItem {self.description!r} x{self.quantity}>"

    def to_dto(self) -> VoucherItem:
        """Convert ORM model to frozen domain DTO."""
        return VoucherItem(
            description=self.description,
            quantity=Decimal(self.quantity),
            unit=self.unit,
            unit_price=Decimal(self.unit_price),
            total_price=Decimal(self.total_price),
        )

    @classmethod
    def from_dto(cls, dto: VoucherItem, position: int = 0) -> VoucherLineItem:
        """Create ORM model from domain DTO."""
        return cls(
            position=position,
            description=dto.description,
            quantity=dto.quantity,
            unit=dto.unit,
            unit_price=dto.unit_price,
            total_price=dto.total_price,
        )
