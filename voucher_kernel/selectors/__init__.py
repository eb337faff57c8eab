"""Read-only selectors over kernel models."""

from voucher_kernel.selectors.user_selector import UserSelector
from voucher_kernel.selectors.voucher_selector import VoucherSelector

__all__ = ["UserSelector", "VoucherSelector"]
