"""
Module: voucher_kernel.selectors.user_selector
Responsibility: Read access to user accounts: lookups by id and the
    active accounts holding a set of roles (notification targeting).
Architecture position: Kernel > Selectors.  Read-only.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select

from voucher_kernel.domain.actor import ActorContext
from voucher_kernel.domain.roles import UserRole
from voucher_kernel.exceptions import UserNotFoundError
from voucher_kernel.models.user import User
from voucher_kernel.selectors.base import BaseSelector


class UserSelector(BaseSelector[User]):
    """Read-side queries over user accounts."""

    def get_actor(self, user_id: UUID) -> ActorContext:
        """
        Actor context for an account.

        Raises:
            UserNotFoundError: If the account doesn't exist.
        """
        user = self.session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user.to_actor()

    def active_user_ids(self, roles: Iterable[UserRole | str]) -> list[UUID]:
        """Ids of active users holding any of ``roles``, in a stable order."""
        values = sorted({r.value if isinstance(r, UserRole) else str(r) for r in roles})
        if not values:
            return []
        return list(self.session.execute(
            select(User.id)
            .where(User.role.in_(values))
            .where(User.is_active.is_(True))
            .order_by(User.email)
        ).scalars())
