"""
voucher_services -- Package init and public API.

Responsibility:
    Stateful workflow services that compose the pure engines
    (voucher_engines/) with database sessions, the audit trail and the
    notification side channel.  This is the only layer that sequences
    writes across several kernel services.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction:
        voucher_services/ -> voucher_engines/  (allowed)
        voucher_services/ -> voucher_kernel/   (allowed)
        voucher_services/ -> voucher_config/   (allowed, bootstrap only)
        voucher_engines/  -> voucher_services/ (FORBIDDEN)
        voucher_kernel/   -> voucher_services/ (FORBIDDEN)

Invariants enforced:
    - Services flush; callers commit through ``session_scope()``.
    - Notification delivery never fails a workflow transition.
"""

from voucher_kernel.logging_config import get_logger

logger = get_logger("services")

from voucher_services.access_gate import AccessAction, AccessDecision, AccessGate
from voucher_services.notification_dispatcher import (
    DispatchDeadlineExceeded,
    NotificationDispatcher,
)
from voucher_services.review_service import ReviewService
from voucher_services.voucher_service import VoucherService

__all__ = [
    "AccessAction",
    "AccessDecision",
    "AccessGate",
    "DispatchDeadlineExceeded",
    "NotificationDispatcher",
    "ReviewService",
    "VoucherService",
]
