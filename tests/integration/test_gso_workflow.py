"""
End-to-end GSO voucher: draft to released, through every office and the
BAC committee, checking the derived reviewer, stored status, audit trail
and notifications along the way.
"""

from decimal import Decimal

import pytest

from voucher_engines.progress import StepState, progress_percentage
from voucher_kernel.domain.roles import UserRole
from voucher_kernel.domain.validation import ItemInput
from voucher_kernel.domain.voucher import AuditAction, VoucherStatus
from voucher_kernel.domain.workflow import WorkflowAction
from voucher_kernel.selectors.voucher_selector import VoucherSelector
from voucher_kernel.services.notification_service import NotificationService


@pytest.fixture
def gso_officer(make_user):
    return make_user(UserRole.GSO, name="Gloria Santos")


class TestGsoLifecycle:

    def test_draft_to_release(
        self,
        session,
        vouchers,
        reviews,
        offices,
        bac_members,
        gso_officer,
        make_voucher_input,
        deterministic_clock,
    ):
        items = (
            ItemInput("Bond paper", Decimal("20"), "ream", Decimal("250")),
            ItemInput("Toner", Decimal("2"), "pc", Decimal("2500")),
        )
        draft = vouchers.create(
            make_voucher_input(payee="Acme Supplies", amount="10000", items=items),
            gso_officer,
        )
        voucher_id = draft.voucher_id
        assert draft.items_total == Decimal("10000.00")
        assert reviews.current_reviewer(voucher_id).status_label == "Draft"

        steps = [
            (lambda: vouchers.submit(voucher_id, gso_officer),
             VoucherStatus.PENDING, "Awaiting Secretary Review"),
            (lambda: reviews.secretary_review(voucher_id, offices[UserRole.SECRETARY]),
             VoucherStatus.VALIDATED, "Awaiting Mayor Review"),
            (lambda: reviews.mayor_review(voucher_id, offices[UserRole.MAYOR]),
             VoucherStatus.APPROVED, "Awaiting BAC Review (0/3)"),
            (lambda: reviews.bac_review(voucher_id, bac_members[0]),
             VoucherStatus.APPROVED, "Awaiting BAC Review (1/3)"),
            (lambda: reviews.bac_review(voucher_id, bac_members[1]),
             VoucherStatus.APPROVED, "Awaiting BAC Review (2/3)"),
            (lambda: reviews.bac_review(voucher_id, bac_members[2]),
             VoucherStatus.APPROVED, "Awaiting Budget Review"),
            (lambda: reviews.budget_review(voucher_id, offices[UserRole.BUDGET]),
             VoucherStatus.APPROVED, "Awaiting Accounting Review"),
            (lambda: reviews.accounting_review(voucher_id, offices[UserRole.ACCOUNTING]),
             VoucherStatus.APPROVED, "Awaiting Check Issuance"),
            (lambda: reviews.issue_check(voucher_id, offices[UserRole.TREASURY], "CHK-2024-001"),
             VoucherStatus.APPROVED, "Awaiting Release"),
        ]
        for action, status, label in steps:
            deterministic_clock.tick()
            record = action()
            assert record.status == status
            assert reviews.current_reviewer(voucher_id).status_label == label

        deterministic_clock.tick()
        released = reviews.mark_released(voucher_id, offices[UserRole.TREASURY], "Acme Supplies Rep")
        assert released.status == VoucherStatus.RELEASED
        assert reviews.current_reviewer(voucher_id) is None

        trail = [e.action for e in VoucherSelector(session).audit_trail(voucher_id)]
        assert trail == [
            AuditAction.CREATE,
            AuditAction.SUBMIT,
            AuditAction.SECRETARY_REVIEW,
            AuditAction.REVIEW,
            AuditAction.BAC_REVIEW,
            AuditAction.BAC_REVIEW,
            AuditAction.BAC_REVIEW,
            AuditAction.BUDGET_REVIEW,
            AuditAction.ACCOUNTING_REVIEW,
            AuditAction.CHECK_ISSUANCE,
            AuditAction.MARK_RELEASED,
        ]

        steps = reviews.progress(voucher_id)
        assert all(s.state == StepState.COMPLETED for s in steps)
        assert progress_percentage(steps) == 100

        creator_inbox = NotificationService(session).list_for(gso_officer.user_id)
        assert len(creator_inbox) == 1
        assert "released" in creator_inbox[0].message

    def test_bac_rejection_stops_the_voucher(
        self, session, vouchers, reviews, offices, bac_members, gso_officer, make_voucher_input,
    ):
        record = vouchers.create(make_voucher_input(), gso_officer)
        vouchers.submit(record.voucher_id, gso_officer)
        reviews.secretary_review(record.voucher_id, offices[UserRole.SECRETARY])
        reviews.mayor_review(record.voucher_id, offices[UserRole.MAYOR])
        reviews.bac_review(record.voucher_id, bac_members[0])

        rejected = reviews.reject(record.voucher_id, bac_members[1], "Supplier not accredited")

        assert rejected.status == VoucherStatus.REJECTED
        steps = {s.key: s for s in reviews.progress(record.voucher_id)}
        assert steps["mayor"].state == StepState.COMPLETED
        assert steps["bac"].state == StepState.REJECTED
        for actor in [*offices.values(), *bac_members, gso_officer]:
            assert reviews.available_actions(record.voucher_id, actor) == set()

    def test_admin_cancel_mid_review(
        self, vouchers, reviews, offices, gso_officer, make_voucher_input,
    ):
        record = vouchers.create(make_voucher_input(), gso_officer)
        vouchers.submit(record.voucher_id, gso_officer)
        reviews.secretary_review(record.voucher_id, offices[UserRole.SECRETARY])

        admin = offices[UserRole.ADMIN]
        assert WorkflowAction.CANCEL in reviews.available_actions(record.voucher_id, admin)
        cancelled = vouchers.cancel(record.voucher_id, admin, "Procurement withdrawn")

        assert cancelled.status == VoucherStatus.CANCELLED
        assert reviews.current_reviewer(record.voucher_id) is None
