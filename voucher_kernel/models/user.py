"""
Module: voucher_kernel.models.user
Responsibility: ORM persistence for user accounts.  A user holds exactly
    one organizational role; the role decides which workflow gates the
    user may act on and which notifications the user receives.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ value objects only.

Invariants enforced:
    - email is unique across accounts (uq_users_email).
    - role is stored as its enum value.  Values outside UserRole are
      tolerated on read so an unmapped role still renders.

Failure modes:
    - IntegrityError on duplicate email.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from voucher_kernel.db.base import TrackedBase
from voucher_kernel.domain.actor import ActorContext
from voucher_kernel.domain.roles import UserRole, parse_role


class User(TrackedBase):
    """A person who creates or reviews vouchers."""

    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("ix_users_role_active", "role", "is_active"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(30), nullable=False)
    department: Mapped[str | None] = mapped_column(String(200), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role}>"

    @property
    def user_role(self) -> UserRole | None:
        return parse_role(self.role)

    def to_actor(self) -> ActorContext:
        """Actor context for this account.

        Raises:
            ValueError: If the stored role is not a known UserRole.
        """
        role = self.user_role
        if role is None:
            raise ValueError(f"User {self.id} has unknown role {self.role!r}")
        return ActorContext(
            user_id=self.id,
            role=role,
            name=self.name,
            department=self.department,
        )
