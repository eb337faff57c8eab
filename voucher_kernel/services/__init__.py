"""Kernel services: audit trail, sequences, notification store, system settings."""

from voucher_kernel.services.audit_service import AuditService
from voucher_kernel.services.notification_service import NotificationService
from voucher_kernel.services.sequence_service import SequenceService
from voucher_kernel.services.settings_service import SettingsService

__all__ = [
    "AuditService",
    "NotificationService",
    "SequenceService",
    "SettingsService",
]
