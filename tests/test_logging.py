"""Tests for voucher_kernel.logging_config: JSON line shape and workflow context."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from voucher_kernel.domain.actor import ActorContext
from voucher_kernel.domain.roles import UserRole
from voucher_kernel.domain.voucher import VoucherStatus
from voucher_kernel.domain.workflow import WorkflowAction
from voucher_kernel.exceptions import InvalidStatusTransitionError, VoucherNotFoundError
from voucher_kernel.logging_config import (
    LogContext,
    configure_logging,
    get_logger,
    installed_handlers,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def log_lines():
    """Install the JSON handler on a buffer; return a reader of parsed lines."""
    stream = StringIO()
    configure_logging(stream=stream)

    def _read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    return _read


# =============================================================================
# Line shape
# =============================================================================


class TestLineShape:

    def test_fixed_keys(self, log_lines):
        get_logger("services.review").info("voucher_validated")

        (line,) = log_lines()
        assert line["level"] == "INFO"
        assert line["logger"] == "voucher_kernel.services.review"
        assert line["message"] == "voucher_validated"
        assert line["ts"].endswith("+00:00")

    def test_extra_fields_and_value_types(self, log_lines):
        voucher_id = uuid4()
        get_logger("test").info(
            "voucher_amount_changed",
            extra={
                "voucher_ref": voucher_id,
                "amount": Decimal("1250.50"),
                "status": VoucherStatus.PENDING,
                "offices": frozenset({"GSO", "HR"}),
                "item_count": 3,
            },
        )

        (line,) = log_lines()
        assert line["voucher_ref"] == str(voucher_id)
        assert line["amount"] == "1250.50"
        assert line["status"] == "PENDING"
        assert line["offices"] == ["GSO", "HR"]
        assert line["item_count"] == 3

    def test_debug_dropped_at_default_level(self, log_lines):
        logger = get_logger("test")
        logger.debug("noise")
        logger.warning("kept")
        assert [line["message"] for line in log_lines()] == ["kept"]


class TestExceptions:

    def test_plain_exception(self, log_lines):
        try:
            raise RuntimeError("pool exhausted")
        except RuntimeError:
            get_logger("test").error("dispatch_failed", exc_info=True)

        (line,) = log_lines()
        assert line["exc_type"] == "RuntimeError"
        assert line["exc_message"] == "pool exhausted"
        assert "exc_code" not in line
        assert "Traceback" in line["traceback"]

    def test_kernel_error_fields(self, log_lines):
        try:
            raise InvalidStatusTransitionError("RELEASED", "PENDING")
        except InvalidStatusTransitionError:
            get_logger("test").error("transition_refused", exc_info=True)

        (line,) = log_lines()
        assert line["exc_code"] == "INVALID_STATUS_TRANSITION"
        assert line["exc_from_status"] == "RELEASED"
        assert line["exc_to_status"] == "PENDING"

    def test_not_found_carries_code(self, log_lines):
        try:
            raise VoucherNotFoundError("missing-id")
        except VoucherNotFoundError:
            get_logger("test").warning("lookup_failed", exc_info=True)

        (line,) = log_lines()
        assert line["exc_type"] == "VoucherNotFoundError"
        assert line["exc_code"] == VoucherNotFoundError.code


# =============================================================================
# Workflow context
# =============================================================================


class TestLogContext:

    def test_set_skips_none(self):
        LogContext.set(correlation_id="req-1", voucher_id=None)
        assert LogContext.get_all() == {"correlation_id": "req-1"}

    def test_set_refuses_unknown_field(self):
        with pytest.raises(TypeError, match="payee"):
            LogContext.set(payee="Acme")

    def test_bind_restores_previous_values(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner", voucher_id="v-1"):
            assert LogContext.get_all() == {"correlation_id": "inner", "voucher_id": "v-1"}
        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_bind_skips_unknown_and_none(self):
        with LogContext.bind(voucher_id=None, payee="Acme", action="SUBMIT"):
            assert LogContext.get_all() == {"action": "SUBMIT"}

    def test_bind_actor(self):
        actor = ActorContext(user_id=uuid4(), role=UserRole.BUDGET, name="Berna")
        voucher_id = uuid4()
        with LogContext.bind_actor(actor, voucher_id=voucher_id, action=WorkflowAction.BUDGET_REVIEW):
            assert LogContext.get_all() == {
                "actor_id": str(actor.user_id),
                "actor_role": "BUDGET",
                "voucher_id": str(voucher_id),
                "action": "BUDGET_REVIEW",
            }
        assert LogContext.get_all() == {}

    def test_context_reaches_the_line(self, log_lines):
        with LogContext.bind(correlation_id="req-7", voucher_id="v-9"):
            get_logger("test").info("inside")
        get_logger("test").info("outside")

        inside, outside = log_lines()
        assert inside["correlation_id"] == "req-7"
        assert inside["voucher_id"] == "v-9"
        assert "correlation_id" not in outside

    def test_context_wins_over_extra(self, log_lines):
        with LogContext.bind(voucher_id="from-context"):
            get_logger("test").info("clash", extra={"voucher_id": "from-extra"})
        (line,) = log_lines()
        assert line["voucher_id"] == "from-context"


# =============================================================================
# Installation
# =============================================================================


class TestConfigureLogging:

    def test_second_call_is_a_no_op(self):
        root = logging.getLogger("voucher_kernel")
        before = list(root.handlers)

        configure_logging(stream=StringIO())
        configure_logging(stream=StringIO(), level=logging.DEBUG)

        added = [h for h in root.handlers if h not in before]
        assert len(added) == 1
        assert installed_handlers() == added
        assert root.level == logging.INFO

    def test_level_name_accepted(self):
        configure_logging(stream=StringIO(), level="debug")
        assert logging.getLogger("voucher_kernel").level == logging.DEBUG

    def test_does_not_propagate(self):
        configure_logging(stream=StringIO())
        assert logging.getLogger("voucher_kernel").propagate is False

    def test_reset_removes_only_the_installed_handler(self):
        root = logging.getLogger("voucher_kernel")
        bystander = logging.NullHandler()
        root.addHandler(bystander)
        try:
            configure_logging(stream=StringIO())
            reset_logging()

            assert installed_handlers() == []
            assert bystander in root.handlers
        finally:
            root.removeHandler(bystander)
