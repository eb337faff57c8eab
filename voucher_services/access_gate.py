"""
voucher_services.access_gate -- Per-action access predicates.

Responsibility:
    Decide whether an actor may view, edit, delete, submit, cancel or add
    remarks to a voucher, and whether their role matches an office action.
    Evaluated before any state mutation.

Architecture position:
    Services layer.  Pure predicates over ActorContext and VoucherSnapshot;
    role sets come from ``voucher_kernel.domain.roles``.

Invariants:
    - A denial is an authorization failure (AuthorizationError), never a
      validation failure, and is raised before anything is written.
    - Workflow order is NOT checked here; ``voucher_engines.sequencing``
      does that separately.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from voucher_kernel.domain.actor import ActorContext
from voucher_kernel.domain.roles import (
    EDIT_ROLES,
    REMARKS_ROLES,
    SUBMIT_ROLES,
    VIEW_ROLES,
    UserRole,
    role_display_name,
)
from voucher_kernel.domain.voucher import VoucherSnapshot, VoucherStatus
from voucher_kernel.domain.workflow import REVIEW_ACTIONS, WorkflowAction
from voucher_kernel.exceptions import AuthorizationError


class AccessAction(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    SUBMIT = "submit"
    CANCEL = "cancel"
    SUBMIT_REMARKS = "submit_remarks"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


_ALLOW = AccessDecision(True)

_TREASURY_ACTIONS = frozenset({
    WorkflowAction.CHECK_ISSUANCE,
    WorkflowAction.MARK_RELEASED,
})


def _is_creator(actor: ActorContext, snapshot: VoucherSnapshot) -> bool:
    return actor.user_id == snapshot.creator_id


class AccessGate:
    """Access predicates, each returning an AccessDecision."""

    def can_view(self, actor: ActorContext, snapshot: VoucherSnapshot) -> AccessDecision:
        if _is_creator(actor, snapshot) or actor.user_id == snapshot.assigned_to_id:
            return _ALLOW
        if actor.role in VIEW_ROLES:
            return _ALLOW
        return AccessDecision(False, "only the creator, the assignee or a reviewing office may view")

    def can_edit(self, actor: ActorContext, snapshot: VoucherSnapshot) -> AccessDecision:
        if _is_creator(actor, snapshot) or actor.role in EDIT_ROLES:
            return _ALLOW
        return AccessDecision(False, "only the creator or a managing office may edit")

    def can_delete(self, actor: ActorContext, snapshot: VoucherSnapshot) -> AccessDecision:
        if actor.role == UserRole.ADMIN:
            return _ALLOW
        if _is_creator(actor, snapshot) and snapshot.status == VoucherStatus.DRAFT:
            return _ALLOW
        return AccessDecision(False, "only the creator of a draft or an administrator may delete")

    def can_submit(self, actor: ActorContext, snapshot: VoucherSnapshot) -> AccessDecision:
        if _is_creator(actor, snapshot) or actor.role in SUBMIT_ROLES:
            return _ALLOW
        return AccessDecision(False, "only the creator, ADMIN, GSO or HR may submit")

    def can_cancel(self, actor: ActorContext, snapshot: VoucherSnapshot) -> AccessDecision:
        if actor.role == UserRole.ADMIN:
            return _ALLOW
        return AccessDecision(False, "only an administrator may cancel")

    def can_submit_remarks(self, actor: ActorContext, snapshot: VoucherSnapshot) -> AccessDecision:
        if _is_creator(actor, snapshot) or actor.role in REMARKS_ROLES:
            return _ALLOW
        return AccessDecision(False, "only the creator or a reviewing office may submit remarks")

    def can_perform(self, actor: ActorContext, action: WorkflowAction) -> AccessDecision:
        """Exact role match for office actions."""
        if action in _TREASURY_ACTIONS:
            required = UserRole.TREASURY
        else:
            spec = REVIEW_ACTIONS.get(action)
            if spec is None:
                return AccessDecision(False, f"{action.value} is not an office action")
            required = spec.role
        if actor.role == required:
            return _ALLOW
        return AccessDecision(False, f"only {role_display_name(required)} may perform {action.value}")

    def check(
        self, action: AccessAction, actor: ActorContext, snapshot: VoucherSnapshot,
    ) -> AccessDecision:
        predicate = {
            AccessAction.VIEW: self.can_view,
            AccessAction.EDIT: self.can_edit,
            AccessAction.DELETE: self.can_delete,
            AccessAction.SUBMIT: self.can_submit,
            AccessAction.CANCEL: self.can_cancel,
            AccessAction.SUBMIT_REMARKS: self.can_submit_remarks,
        }[AccessAction(action)]
        return predicate(actor, snapshot)

    def require(
        self, action: AccessAction, actor: ActorContext, snapshot: VoucherSnapshot,
    ) -> None:
        """
        Raise unless ``actor`` may perform ``action`` on ``snapshot``.

        Raises:
            AuthorizationError: With the denial reason.
        """
        decision = self.check(action, actor, snapshot)
        if not decision.allowed:
            raise AuthorizationError(AccessAction(action).value, actor.role.value, decision.reason)
