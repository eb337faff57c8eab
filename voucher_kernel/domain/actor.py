"""
Actor context (``voucher_kernel.domain.actor``).

The authenticated identity supplied by the outer auth layer.  The kernel
trusts it as already verified; it only refuses to run without one.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from voucher_kernel.domain.roles import UserRole, parse_role
from voucher_kernel.exceptions import AuthenticationError


@dataclass(frozen=True)
class ActorContext:
    """Who is acting, in which role."""

    user_id: UUID
    role: UserRole
    name: str = ""
    department: str | None = None

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in roles

    @property
    def display(self) -> str:
        return self.name or str(self.user_id)


def require_actor(actor: ActorContext | None) -> ActorContext:
    """Return ``actor`` or raise AuthenticationError when it is missing."""
    if actor is None or actor.user_id is None:
        raise AuthenticationError()
    if parse_role(actor.role) is None:
        raise AuthenticationError(f"Unknown role on actor context: {actor.role}")
    return actor
