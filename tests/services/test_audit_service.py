"""
Tests for the append-only audit trail.

Covers:
- One call writes exactly one entry with the actor's role
- Values are stored JSON-safe
- Entries cannot be updated or deleted through the ORM
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from voucher_kernel.domain.roles import UserRole
from voucher_kernel.domain.voucher import AuditAction, VoucherStatus
from voucher_kernel.exceptions import ImmutabilityViolationError
from voucher_kernel.models.audit_trail import AuditTrailEntry
from voucher_kernel.services.audit_service import AuditService, to_jsonable


class TestToJsonable:

    def test_nested_values(self):
        voucher_id = uuid4()
        value = to_jsonable({
            "amount": Decimal("10.50"),
            "voucher_id": voucher_id,
            "status": VoucherStatus.PENDING,
            "when": datetime(2024, 1, 1, tzinfo=timezone.utc),
            "tags": frozenset({"b", "a"}),
            "items": ({"qty": Decimal("2")},),
            "note": None,
        })
        assert value == {
            "amount": "10.50",
            "voucher_id": str(voucher_id),
            "status": "PENDING",
            "when": "2024-01-01T00:00:00+00:00",
            "tags": ["a", "b"],
            "items": [{"qty": "2"}],
            "note": None,
        }

    def test_scalars_unchanged(self):
        assert to_jsonable(3) == 3
        assert to_jsonable(True) is True
        assert to_jsonable("x") == "x"


class TestRecord:

    def test_one_entry_per_call(self, session, make_user, deterministic_clock):
        actor = make_user(UserRole.SECRETARY, name="Sofia")
        service = AuditService(session, deterministic_clock)
        voucher_id = uuid4()

        record = service.record(
            AuditAction.SECRETARY_REVIEW,
            actor,
            voucher_id,
            old_values={"status": "PENDING"},
            new_values={"status": "VALIDATED", "amount": Decimal("10000.00")},
        )

        count = session.execute(
            select(func.count()).select_from(AuditTrailEntry)
            .where(AuditTrailEntry.voucher_id == voucher_id)
        ).scalar_one()
        assert count == 1
        assert record.action == AuditAction.SECRETARY_REVIEW
        assert record.user_id == actor.user_id
        assert record.user_name == "Sofia"
        assert record.actor_role == UserRole.SECRETARY
        assert record.new_values == {"status": "VALIDATED", "amount": "10000.00"}

    def test_voucher_id_defaults_to_entity(self, session, make_user):
        actor = make_user(UserRole.ADMIN)
        entity_id = uuid4()
        AuditService(session).record(AuditAction.DELETE, actor, entity_id)

        entry = session.execute(
            select(AuditTrailEntry).where(AuditTrailEntry.entity_id == entity_id)
        ).scalar_one()
        assert entry.voucher_id == entity_id
        assert entry.entity_type == "DisbursementVoucher"

    def test_other_entity_types_need_explicit_voucher(self, session, make_user):
        actor = make_user(UserRole.REQUESTER)
        entity_id = uuid4()
        AuditService(session).record(
            AuditAction.PASSWORD_CHANGE, actor, entity_id, entity_type="User",
        )

        entry = session.execute(
            select(AuditTrailEntry).where(AuditTrailEntry.entity_id == entity_id)
        ).scalar_one()
        assert entry.voucher_id is None

    def test_logs_entry(self, session, make_user, captured_logs):
        actor = make_user(UserRole.BUDGET)
        AuditService(session).record(AuditAction.BUDGET_REVIEW, actor, uuid4())

        logs = [r for r in captured_logs() if r["message"] == "audit_entry_recorded"]
        assert logs
        assert logs[-1]["audit_action"] == "BUDGET_REVIEW"
        assert logs[-1]["actor_role"] == "BUDGET"


class TestImmutability:

    def test_update_blocked(self, session, make_user):
        actor = make_user(UserRole.MAYOR)
        AuditService(session).record(AuditAction.REVIEW, actor, uuid4())
        entry = session.execute(
            select(AuditTrailEntry).where(AuditTrailEntry.user_id == actor.user_id)
        ).scalar_one()

        entry.user_name = "someone else"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_delete_blocked(self, session, make_user):
        actor = make_user(UserRole.MAYOR)
        AuditService(session).record(AuditAction.REVIEW, actor, uuid4())
        entry = session.execute(
            select(AuditTrailEntry).where(AuditTrailEntry.user_id == actor.user_id)
        ).scalar_one()

        session.delete(entry)
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "AuditTrailEntry"
        session.rollback()
