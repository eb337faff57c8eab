"""
Module: voucher_kernel.db.types
Responsibility: Numeric column types shared by every model, so stored
    precision matches the rounding in ``voucher_kernel.domain.money``.
Architecture position: Kernel > DB.  May be imported by models/.
    MUST NOT import from models/, services/ or selectors/.

Invariants enforced:
    - Money columns carry exactly MONEY_DECIMAL_PLACES decimals and are
      read back as Decimal.
"""

from sqlalchemy import Numeric

from voucher_kernel.domain.money import MONEY_DECIMAL_PLACES

# Peso amount: 15 digits, 2 decimal places
MONEY_COLUMN = Numeric(15, MONEY_DECIMAL_PLACES, asdecimal=True)

# Item quantities may be fractional (e.g. 2.5 kg)
QUANTITY_COLUMN = Numeric(15, 4, asdecimal=True)
