"""
ORM-Level Immutability Enforcement for the audit trail.

===============================================================================
WHY THIS EXISTS
===============================================================================

The audit trail is the system of record for "what happened and when".
Entries are appended by AuditService and must never be edited or removed,
not even when the voucher they describe is deleted.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  The listeners registered here intercept those events for
AuditTrailEntry and raise ImmutabilityViolationError, aborting the flush:

    session.flush()
         |
         v
    [before_update] --> _check_audit_entry_update() --> ImmutabilityViolationError
    [before_delete] --> _check_audit_entry_delete() --> ImmutabilityViolationError

===============================================================================
USAGE
===============================================================================

Registered by create_tables() and at application startup:

    from voucher_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

Tests that must violate the rule on purpose can unregister and re-register.
"""

from sqlalchemy import event

from voucher_kernel.exceptions import ImmutabilityViolationError
from voucher_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "AuditTrailEntry",
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type="AuditTrailEntry",
        entity_id=str(target.id),
        reason=reason,
    )


def _check_audit_entry_update(mapper, connection, target):
    """Prevent any UPDATE of an audit trail entry."""
    _blocked(target, "UPDATE", "Audit trail entries are immutable and cannot be modified")


def _check_audit_entry_delete(mapper, connection, target):
    """Prevent DELETE of an audit trail entry."""
    _blocked(target, "DELETE", "Audit trail entries cannot be deleted")


def register_immutability_listeners() -> None:
    """Register the audit trail listeners (idempotent)."""
    from voucher_kernel.models.audit_trail import AuditTrailEntry

    if not event.contains(AuditTrailEntry, "before_update", _check_audit_entry_update):
        event.listen(AuditTrailEntry, "before_update", _check_audit_entry_update)
    if not event.contains(AuditTrailEntry, "before_delete", _check_audit_entry_delete):
        event.listen(AuditTrailEntry, "before_delete", _check_audit_entry_delete)


def unregister_immutability_listeners() -> None:
    """
    Remove the audit trail listeners.

    WARNING: Only use this in tests that must bypass the rule on purpose.
    """
    from voucher_kernel.models.audit_trail import AuditTrailEntry

    for name, fn in (
        ("before_update", _check_audit_entry_update),
        ("before_delete", _check_audit_entry_delete),
    ):
        if event.contains(AuditTrailEntry, name, fn):
            event.remove(AuditTrailEntry, name, fn)
