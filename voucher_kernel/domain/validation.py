"""
Voucher input validation (``voucher_kernel.domain.validation``).

Pure checks with no I/O.  Every failing field is collected (not just the
first) so callers can report field-level detail in one round trip.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from voucher_kernel.domain.money import round_money
from voucher_kernel.domain.voucher import PaymentMethod, VoucherItem, VoucherStatus
from voucher_kernel.exceptions import VoucherValidationError

# Statuses a voucher may be created in
CREATABLE_STATUSES = frozenset({VoucherStatus.DRAFT, VoucherStatus.PENDING})

MAX_REASON_LENGTH = 500


@dataclass(frozen=True)
class ItemInput:
    """Unvalidated line item.  ``total_price`` defaults to quantity x unit price."""

    description: str
    quantity: Any
    unit: str
    unit_price: Any
    total_price: Any = None


@dataclass(frozen=True)
class VoucherInput:
    """Unvalidated voucher fields as received from the outer layer."""

    payee: str
    address: str
    amount: Any
    particulars: str
    items: tuple[ItemInput, ...] = ()
    tags: tuple[str, ...] = ()
    source_offices: tuple[str, ...] = ()
    status: VoucherStatus | str = VoucherStatus.DRAFT
    payment_method: PaymentMethod | str | None = None
    assigned_to_id: UUID | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class ValidatedVoucher:
    """Output of ``validate_voucher_input``: typed and normalized."""

    payee: str
    address: str
    amount: Decimal
    particulars: str
    items: tuple[VoucherItem, ...]
    tags: frozenset[str]
    source_offices: frozenset[str]
    status: VoucherStatus
    payment_method: PaymentMethod | None = None
    assigned_to_id: UUID | None = None
    remarks: str | None = None


def _to_decimal(value: Any) -> Decimal | None:
    # Floats carry binary rounding error; amounts must arrive as Decimal, int or str
    if isinstance(value, bool) or isinstance(value, float) or value is None:
        return None
    try:
        result = Decimal(str(value)) if not isinstance(value, Decimal) else value
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _validate_item(
    index: int, item: ItemInput, errors: list[dict[str, str]],
) -> VoucherItem | None:
    prefix = f"items[{index}]"
    start = len(errors)

    if _blank(item.description):
        errors.append({"field": f"{prefix}.description", "message": "Description is required"})
    quantity = _to_decimal(item.quantity)
    if quantity is None or quantity <= 0:
        errors.append({"field": f"{prefix}.quantity", "message": "Quantity must be positive"})
    if _blank(item.unit):
        errors.append({"field": f"{prefix}.unit", "message": "Unit is required"})
    unit_price = _to_decimal(item.unit_price)
    if unit_price is None or unit_price < 0:
        errors.append({"field": f"{prefix}.unit_price", "message": "Unit price must not be negative"})

    total_price = None
    if item.total_price is not None:
        total_price = _to_decimal(item.total_price)
        if total_price is None:
            errors.append({"field": f"{prefix}.total_price", "message": "Total price must be a number"})

    if len(errors) > start:
        return None

    expected = round_money(quantity * unit_price)
    if total_price is not None and round_money(total_price) != expected:
        errors.append({
            "field": f"{prefix}.total_price",
            "message": f"Total price must equal quantity x unit price ({expected})",
        })
        return None

    return VoucherItem(
        description=item.description.strip(),
        quantity=quantity,
        unit=item.unit.strip(),
        unit_price=unit_price,
        total_price=expected,
    )


def collect_voucher_errors(data: VoucherInput) -> tuple[ValidatedVoucher | None, list[dict[str, str]]]:
    """Validate every field; return the typed voucher (or None) and the errors."""
    errors: list[dict[str, str]] = []

    for name in ("payee", "address", "particulars"):
        if _blank(getattr(data, name)):
            errors.append({"field": name, "message": f"{name.capitalize()} is required"})

    amount = _to_decimal(data.amount)
    if amount is None or amount <= 0:
        errors.append({"field": "amount", "message": "Amount must be a positive number"})

    try:
        status = VoucherStatus(data.status)
    except ValueError:
        status = None
    if status not in CREATABLE_STATUSES:
        errors.append({"field": "status", "message": "Status must be DRAFT or PENDING"})

    payment_method = None
    if data.payment_method is not None:
        try:
            payment_method = PaymentMethod(data.payment_method)
        except ValueError:
            errors.append({"field": "payment_method", "message": "Unknown payment method"})

    for name in ("tags", "source_offices"):
        values = getattr(data, name)
        if any(not isinstance(v, str) for v in values):
            errors.append({"field": name, "message": "Entries must be strings"})

    items: list[VoucherItem] = []
    for index, item in enumerate(data.items):
        built = _validate_item(index, item, errors)
        if built is not None:
            items.append(built)

    if errors:
        return None, errors

    return ValidatedVoucher(
        payee=data.payee.strip(),
        address=data.address.strip(),
        amount=round_money(amount),
        particulars=data.particulars.strip(),
        items=tuple(items),
        tags=frozenset(t.strip() for t in data.tags if t.strip()),
        source_offices=frozenset(o.strip() for o in data.source_offices if o.strip()),
        status=status,
        payment_method=payment_method,
        assigned_to_id=data.assigned_to_id,
        remarks=data.remarks,
    ), errors


def validate_voucher_input(data: VoucherInput) -> ValidatedVoucher:
    """Validate and normalize a voucher.

    Raises:
        VoucherValidationError: With one entry per failing field.
    """
    validated, errors = collect_voucher_errors(data)
    if validated is None:
        raise VoucherValidationError(errors)
    return validated


def require_text(value: Any, field_name: str, max_length: int | None = None) -> str:
    """Return ``value`` stripped, or raise VoucherValidationError."""
    if _blank(value):
        raise VoucherValidationError(
            [{"field": field_name, "message": f"{field_name} is required"}]
        )
    text = value.strip()
    if max_length is not None and len(text) > max_length:
        raise VoucherValidationError(
            [{"field": field_name, "message": f"{field_name} must be at most {max_length} characters"}]
        )
    return text
