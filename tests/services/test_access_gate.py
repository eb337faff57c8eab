"""
Tests for per-action access predicates.
"""

from uuid import uuid4

import pytest

from voucher_kernel.domain.actor import ActorContext
from voucher_kernel.domain.roles import UserRole
from voucher_kernel.domain.voucher import VoucherSnapshot, VoucherStatus
from voucher_kernel.domain.workflow import WorkflowAction
from voucher_kernel.exceptions import AuthorizationError
from voucher_services.access_gate import AccessAction, AccessGate


# =============================================================================
# Factory helpers
# =============================================================================


def _actor(role: UserRole, user_id=None) -> ActorContext:
    return ActorContext(user_id=user_id or uuid4(), role=role)


def _snapshot(creator: ActorContext, status=VoucherStatus.DRAFT, assigned_to_id=None):
    return VoucherSnapshot(
        voucher_id=uuid4(),
        status=status,
        creator_id=creator.user_id,
        creator_role=creator.role,
        assigned_to_id=assigned_to_id,
    )


@pytest.fixture
def gate() -> AccessGate:
    return AccessGate()


@pytest.fixture
def creator() -> ActorContext:
    return _actor(UserRole.REQUESTER)


class TestView:

    def test_creator(self, gate, creator):
        assert gate.can_view(creator, _snapshot(creator))

    def test_assignee(self, gate, creator):
        assignee = _actor(UserRole.HR)
        assert gate.can_view(assignee, _snapshot(creator, assigned_to_id=assignee.user_id))

    @pytest.mark.parametrize("role", [UserRole.ADMIN, UserRole.BAC, UserRole.TREASURY])
    def test_elevated_roles(self, gate, creator, role):
        assert gate.can_view(_actor(role), _snapshot(creator))

    def test_other_requester(self, gate, creator):
        decision = gate.can_view(_actor(UserRole.REQUESTER), _snapshot(creator))
        assert not decision
        assert decision.reason


class TestEdit:

    def test_bac_may_not_edit(self, gate, creator):
        assert not gate.can_edit(_actor(UserRole.BAC), _snapshot(creator))

    def test_budget_may_edit(self, gate, creator):
        assert gate.can_edit(_actor(UserRole.BUDGET), _snapshot(creator))


class TestDelete:

    def test_creator_while_draft(self, gate, creator):
        assert gate.can_delete(creator, _snapshot(creator))
        assert not gate.can_delete(creator, _snapshot(creator, VoucherStatus.PENDING))

    def test_admin_any_status(self, gate, creator):
        assert gate.can_delete(_actor(UserRole.ADMIN), _snapshot(creator, VoucherStatus.RELEASED))

    def test_elevated_office_cannot_delete(self, gate, creator):
        assert not gate.can_delete(_actor(UserRole.MAYOR), _snapshot(creator))


class TestSubmitCancelRemarks:

    @pytest.mark.parametrize("role", [UserRole.ADMIN, UserRole.GSO, UserRole.HR])
    def test_submit_on_behalf(self, gate, creator, role):
        assert gate.can_submit(_actor(role), _snapshot(creator))

    def test_submit_by_other_office(self, gate, creator):
        assert not gate.can_submit(_actor(UserRole.MAYOR), _snapshot(creator))

    def test_cancel_admin_only(self, gate, creator):
        snapshot = _snapshot(creator, VoucherStatus.PENDING)
        assert gate.can_cancel(_actor(UserRole.ADMIN), snapshot)
        assert not gate.can_cancel(creator, snapshot)

    def test_remarks(self, gate, creator):
        snapshot = _snapshot(creator, VoucherStatus.PENDING)
        assert gate.can_submit_remarks(creator, snapshot)
        assert gate.can_submit_remarks(_actor(UserRole.ACCOUNTING), snapshot)
        assert not gate.can_submit_remarks(_actor(UserRole.GSO), snapshot)


class TestOfficeActions:

    @pytest.mark.parametrize(
        "action, role",
        [
            (WorkflowAction.SECRETARY_REVIEW, UserRole.SECRETARY),
            (WorkflowAction.REVIEW, UserRole.MAYOR),
            (WorkflowAction.BAC_REVIEW, UserRole.BAC),
            (WorkflowAction.BUDGET_REVIEW, UserRole.BUDGET),
            (WorkflowAction.ACCOUNTING_REVIEW, UserRole.ACCOUNTING),
            (WorkflowAction.CHECK_ISSUANCE, UserRole.TREASURY),
            (WorkflowAction.MARK_RELEASED, UserRole.TREASURY),
        ],
    )
    def test_exact_role_match(self, gate, action, role):
        assert gate.can_perform(_actor(role), action)
        assert not gate.can_perform(_actor(UserRole.ADMIN), action)

    def test_non_office_action(self, gate):
        assert not gate.can_perform(_actor(UserRole.ADMIN), WorkflowAction.SUBMIT)


class TestRequire:

    def test_denial_raises_authorization_error(self, gate, creator):
        with pytest.raises(AuthorizationError) as exc_info:
            gate.require(AccessAction.CANCEL, creator, _snapshot(creator, VoucherStatus.PENDING))
        assert exc_info.value.action == "cancel"
        assert exc_info.value.actor_role == "REQUESTER"

    def test_allowed_returns_none(self, gate, creator):
        assert gate.require(AccessAction.VIEW, creator, _snapshot(creator)) is None

    def test_check_dispatches_by_action(self, gate, creator):
        assert gate.check("edit", creator, _snapshot(creator))
