"""
Tests for voucher input validation.

Every failing field is reported in one VoucherValidationError; valid
input comes back typed and normalized.
"""

from decimal import Decimal

import pytest

from voucher_kernel.domain.validation import (
    ItemInput,
    VoucherInput,
    collect_voucher_errors,
    require_text,
    validate_voucher_input,
)
from voucher_kernel.domain.voucher import PaymentMethod, VoucherStatus
from voucher_kernel.exceptions import VoucherValidationError


# =============================================================================
# Factory helpers
# =============================================================================


def _item(**overrides) -> ItemInput:
    fields = dict(
        description="Paper",
        quantity="10",
        unit="ream",
        unit_price="100",
        total_price="1000",
    )
    fields.update(overrides)
    return ItemInput(**fields)


def _input(**overrides) -> VoucherInput:
    fields = dict(
        payee="Office Depot",
        address="123 Rizal Avenue",
        amount="10000",
        particulars="Office supplies",
        items=(_item(),),
    )
    fields.update(overrides)
    return VoucherInput(**fields)


def _fields(exc_info) -> list[str]:
    return [e["field"] for e in exc_info.value.field_errors]


class TestValidInput:

    def test_normalizes_values(self):
        validated = validate_voucher_input(_input(
            payee="  Office Depot ",
            tags=("supplies", " q1 ", ""),
            source_offices=("General Services Office",),
            payment_method="CHECK",
        ))

        assert validated.payee == "Office Depot"
        assert validated.amount == Decimal("10000.00")
        assert validated.tags == frozenset({"supplies", "q1"})
        assert validated.source_offices == frozenset({"General Services Office"})
        assert validated.payment_method is PaymentMethod.CHECK
        assert validated.status is VoucherStatus.DRAFT

    def test_item_total_defaults_to_computed(self):
        validated = validate_voucher_input(_input(items=(_item(total_price=None),)))
        assert validated.items[0].total_price == Decimal("1000.00")

    def test_decimal_and_int_amounts_accepted(self):
        assert validate_voucher_input(_input(amount=Decimal("1.5"))).amount == Decimal("1.50")
        assert validate_voucher_input(_input(amount=250)).amount == Decimal("250.00")

    def test_items_optional_for_draft(self):
        validated = validate_voucher_input(_input(items=()))
        assert validated.items == ()

    def test_pending_creation_allowed(self):
        validated = validate_voucher_input(_input(status="PENDING"))
        assert validated.status is VoucherStatus.PENDING


class TestFieldErrors:

    def test_all_missing_fields_reported_together(self):
        with pytest.raises(VoucherValidationError) as exc_info:
            validate_voucher_input(_input(payee="", address=" ", particulars=""))
        assert _fields(exc_info) == ["payee", "address", "particulars"]

    @pytest.mark.parametrize("amount", ["0", "-5", "abc", None, 10.5, True, "NaN"])
    def test_bad_amounts(self, amount):
        with pytest.raises(VoucherValidationError) as exc_info:
            validate_voucher_input(_input(amount=amount))
        assert _fields(exc_info) == ["amount"]

    @pytest.mark.parametrize("status", ["APPROVED", "RELEASED", "bogus"])
    def test_creatable_statuses_only(self, status):
        with pytest.raises(VoucherValidationError) as exc_info:
            validate_voucher_input(_input(status=status))
        assert _fields(exc_info) == ["status"]

    def test_unknown_payment_method(self):
        with pytest.raises(VoucherValidationError) as exc_info:
            validate_voucher_input(_input(payment_method="GCASH"))
        assert _fields(exc_info) == ["payment_method"]

    def test_item_total_mismatch(self):
        with pytest.raises(VoucherValidationError) as exc_info:
            validate_voucher_input(_input(items=(_item(total_price="999"),)))
        assert _fields(exc_info) == ["items[0].total_price"]

    def test_item_fields_indexed(self):
        items = (_item(), _item(description="", quantity="0", unit=""))
        with pytest.raises(VoucherValidationError) as exc_info:
            validate_voucher_input(_input(items=items))
        assert _fields(exc_info) == [
            "items[1].description",
            "items[1].quantity",
            "items[1].unit",
        ]

    def test_negative_unit_price(self):
        with pytest.raises(VoucherValidationError) as exc_info:
            validate_voucher_input(_input(items=(_item(unit_price="-1", total_price=None),)))
        assert _fields(exc_info) == ["items[0].unit_price"]

    def test_non_string_tags(self):
        with pytest.raises(VoucherValidationError) as exc_info:
            validate_voucher_input(_input(tags=("ok", 5)))
        assert _fields(exc_info) == ["tags"]

    def test_collect_returns_none_on_errors(self):
        validated, errors = collect_voucher_errors(_input(payee=""))
        assert validated is None
        assert errors == [{"field": "payee", "message": "Payee is required"}]

    def test_error_payload(self):
        with pytest.raises(VoucherValidationError) as exc_info:
            validate_voucher_input(_input(amount="0"))
        payload = exc_info.value.to_dict()
        assert payload["kind"] == "validation"
        assert payload["code"] == "VALIDATION_FAILED"
        assert payload["field_errors"][0]["field"] == "amount"


class TestRequireText:

    def test_strips(self):
        assert require_text("  ok  ", "remarks") == "ok"

    @pytest.mark.parametrize("value", ["", "   ", None, 42])
    def test_blank_rejected(self, value):
        with pytest.raises(VoucherValidationError):
            require_text(value, "remarks")

    def test_max_length(self):
        assert require_text("x" * 500, "reason", 500) == "x" * 500
        with pytest.raises(VoucherValidationError) as exc_info:
            require_text("x" * 501, "reason", 500)
        assert _fields(exc_info) == ["reason"]
