"""
Money helpers (``voucher_kernel.domain.money``).

Responsibility
--------------
The one place precision and rounding for peso amounts are decided.
Item totals, voucher amounts and formatted notification amounts all go
through ``round_money``.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.

Invariants enforced
-------------------
* No floats for money.  Amounts are Decimal, quantized to
  MONEY_DECIMAL_PLACES with ROUND_HALF_UP.
"""

from decimal import ROUND_HALF_UP, Decimal

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a monetary value to the given decimal places."""
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)
