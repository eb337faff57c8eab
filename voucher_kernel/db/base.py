"""
Declarative base for the voucher tables.

Every table gets a uuid4 primary key stored as 36-character text, so the
same schema runs on PostgreSQL and on the in-memory SQLite used by the
tests.  ``Decimal`` annotations map to peso precision and ``datetime``
annotations to timezone-aware columns.  Tables whose rows are edited in
place (vouchers, users, reference data) extend ``TrackedBase`` to get
``created_at`` / ``updated_at``; append-only tables stamp their own time
from the injected clock.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from voucher_kernel.domain.money import MONEY_DECIMAL_PLACES


class UUIDString(TypeDecorator):
    """``uuid.UUID`` in Python, ``VARCHAR(36)`` in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(15, MONEY_DECIMAL_PLACES),
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Rows edited in place; the database keeps both timestamps."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    # Services also stamp this from their clock on every change
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(),
    )
