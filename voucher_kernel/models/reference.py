"""
Module: voucher_kernel.models.reference
Responsibility: Small reference directories that support voucher entry:
    known payees, free-form tags, and key/value system settings.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Payee names, tag names and setting keys are unique.
"""

from sqlalchemy import Boolean, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from voucher_kernel.db.base import Base, TrackedBase


class Payee(TrackedBase):
    """A payee previously entered on a voucher."""

    __tablename__ = "payees"

    __table_args__ = (
        UniqueConstraint("name", name="uq_payees_name"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Payee {self.name!r}>"


class Tag(Base):
    """A label that can be attached to vouchers."""

    __tablename__ = "tags"

    __table_args__ = (
        UniqueConstraint("name", name="uq_tags_name"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<Tag {self.name!r}>"


class SystemSetting(TrackedBase):
    """A runtime-adjustable setting stored as text."""

    __tablename__ = "system_settings"

    __table_args__ = (
        UniqueConstraint("key", name="uq_system_settings_key"),
    )

    key: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<SystemSetting {self.key}={self.value!r}>"
