"""
Module: voucher_kernel.models.notification
Responsibility: ORM persistence for per-user notifications.
Architecture position: Kernel > Models.  May import from db/ and domain/
    value objects only.

Invariants enforced:
    - A notification belongs to exactly one user and is removed with them.
    - voucher_id is not a foreign key; notifications about a deleted
      voucher remain readable.
    - Only the owner flips is_read (enforced in NotificationService).
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from voucher_kernel.db.base import Base, UUIDString
from voucher_kernel.domain.notification import NotificationPriority, NotificationRecord


class Notification(Base):
    """A message shown to one user about one voucher."""

    __tablename__ = "notifications"

    __table_args__ = (
        CheckConstraint(
            "priority IN ('high', 'medium', 'low')",
            name="ck_notifications_valid_priority",
        ),
        Index("ix_notifications_voucher_user", "voucher_id", "user_id"),
        Index("ix_notifications_user_unread", "user_id", "is_read"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    voucher_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(
        String(10), default=NotificationPriority.MEDIUM.value, nullable=False,
    )
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Notification {self.title!r} user={self.user_id} read={self.is_read}>"

    def to_dto(self) -> NotificationRecord:
        """Convert ORM model to frozen domain DTO."""
        return NotificationRecord(
            notification_id=self.id,
            user_id=self.user_id,
            voucher_id=self.voucher_id,
            type=self.type,
            title=self.title,
            message=self.message,
            priority=NotificationPriority(self.priority),
            is_read=self.is_read,
            created_at=self.created_at,
        )
