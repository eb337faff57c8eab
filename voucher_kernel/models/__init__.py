"""
ORM models for the voucher kernel.

Importing this package registers every table on ``Base.metadata``.
"""

from voucher_kernel.models.approval import Approval, BacReview
from voucher_kernel.models.audit_trail import AuditTrailEntry
from voucher_kernel.models.notification import Notification
from voucher_kernel.models.reference import Payee, SystemSetting, Tag
from voucher_kernel.models.sequence import SequenceCounter
from voucher_kernel.models.user import User
from voucher_kernel.models.voucher import Voucher, VoucherLineItem

__all__ = [
    "Approval",
    "AuditTrailEntry",
    "BacReview",
    "Notification",
    "Payee",
    "SequenceCounter",
    "SystemSetting",
    "Tag",
    "User",
    "Voucher",
    "VoucherLineItem",
]
