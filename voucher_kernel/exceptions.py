"""
Typed Exception Hierarchy for the Voucher Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (HTTP handlers, CLI tools, tests) must tell an authorization
failure apart from an out-of-sequence review without parsing messages.
Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)
  4. A KIND naming its category in the failure taxonomy

Example:
    try:
        reviews.accounting_review(voucher_id, actor, comments)
    except MissingPrerequisiteError as e:
        respond(409, e.to_dict())      # names the missing stage
    except AuthorizationError as e:
        respond(403, e.to_dict())
    except VoucherNotFoundError as e:
        respond(404, e.to_dict())

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    VoucherKernelError (base)
    |
    +-- AuthenticationError
    +-- AuthorizationError
    +-- VoucherValidationError
    +-- SequencingError
    |   +-- NotReviewableError
    |   +-- MissingPrerequisiteError
    |   +-- DuplicateReviewError
    |   +-- InvalidStatusTransitionError
    +-- NotFoundError
    |   +-- VoucherNotFoundError
    |   +-- NotificationNotFoundError
    |   +-- UserNotFoundError
    +-- ImmutabilityViolationError
    +-- DependencyError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Kind            | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
authentication  | AUTHENTICATION_REQUIRED     | No actor context supplied
authorization   | FORBIDDEN                   | Actor lacks role/relationship
validation      | VALIDATION_FAILED           | Malformed or out-of-range input
sequencing      | OUT_OF_SEQUENCE             | Action attempted out of turn
                | VOUCHER_NOT_REVIEWABLE      | Status outside the in-review set
                | MISSING_PREREQUISITE        | Prior stage not yet recorded
                | DUPLICATE_REVIEW            | Same reviewer/level acted already
                | INVALID_STATUS_TRANSITION   | Stored status cannot move there
not_found       | VOUCHER_NOT_FOUND           | Voucher id doesn't exist
                | NOTIFICATION_NOT_FOUND      | Notification id doesn't exist
                | USER_NOT_FOUND              | User id doesn't exist
immutability    | IMMUTABILITY_VIOLATION      | UPDATE/DELETE of an audit entry
dependency      | DEPENDENCY_FAILURE          | Record store unavailable

===============================================================================
"""

from __future__ import annotations

from typing import Any


class VoucherKernelError(Exception):
    """
    Base exception for all voucher kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification and a ``kind`` naming their taxonomy category.
    """

    code: str = "VOUCHER_KERNEL_ERROR"
    kind: str = "internal"

    def details(self) -> dict[str, Any]:
        """Structured fields set by the subclass constructor."""
        return {
            k: v for k, v in vars(self).items()
            if not k.startswith("_")
        }

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "kind": self.kind,
            "code": self.code,
            "message": str(self),
        }
        payload.update(self.details())
        return payload


class AuthenticationError(VoucherKernelError):
    """No valid actor context was supplied."""

    code: str = "AUTHENTICATION_REQUIRED"
    kind: str = "authentication"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AuthorizationError(VoucherKernelError):
    """Actor lacks the role or relationship required for the action."""

    code: str = "FORBIDDEN"
    kind: str = "authorization"

    def __init__(self, action: str, actor_role: str, reason: str):
        self.action = action
        self.actor_role = actor_role
        self.reason = reason
        super().__init__(f"{actor_role} may not {action}: {reason}")


class VoucherValidationError(VoucherKernelError):
    """
    Input failed validation.

    ``field_errors`` is a list of ``{"field": ..., "message": ...}`` dicts,
    one per offending field, in the order they were detected.
    """

    code: str = "VALIDATION_FAILED"
    kind: str = "validation"

    def __init__(self, field_errors: list[dict[str, str]]):
        self.field_errors = field_errors
        fields = ", ".join(e["field"] for e in field_errors)
        super().__init__(f"Validation failed for: {fields}")


# Sequencing exceptions


class SequencingError(VoucherKernelError):
    """An action was attempted out of workflow order."""

    code: str = "OUT_OF_SEQUENCE"
    kind: str = "sequencing"

    def __init__(self, action: str, reason: str):
        self.action = action
        self.reason = reason
        super().__init__(reason)


class NotReviewableError(SequencingError):
    """Voucher status is outside the set the action accepts."""

    code: str = "VOUCHER_NOT_REVIEWABLE"

    def __init__(self, action: str, status: str):
        self.status = status
        super().__init__(
            action, f"Voucher with status {status} cannot be processed by {action}",
        )


class MissingPrerequisiteError(SequencingError):
    """The prior workflow stage has not been recorded yet."""

    code: str = "MISSING_PREREQUISITE"

    def __init__(self, action: str, prerequisite: str, reason: str):
        self.prerequisite = prerequisite
        super().__init__(action, reason)


class DuplicateReviewError(SequencingError):
    """The same reviewer (or level) has already acted on this voucher."""

    code: str = "DUPLICATE_REVIEW"

    def __init__(self, action: str, voucher_id: str, reviewer_id: str):
        self.voucher_id = voucher_id
        self.reviewer_id = reviewer_id
        super().__init__(
            action, f"Reviewer {reviewer_id} has already acted on voucher {voucher_id}",
        )


class InvalidStatusTransitionError(SequencingError):
    """The stored status cannot move to the requested status."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            "status_change",
            f"Invalid status transition: {from_status} -> {to_status}",
        )


# Not-found exceptions


class NotFoundError(VoucherKernelError):
    """Base for missing referenced entities."""

    code: str = "NOT_FOUND"
    kind: str = "not_found"


class VoucherNotFoundError(NotFoundError):
    """Voucher with given ID was not found."""

    code: str = "VOUCHER_NOT_FOUND"

    def __init__(self, voucher_id: str):
        self.voucher_id = voucher_id
        super().__init__(f"Voucher not found: {voucher_id}")


class NotificationNotFoundError(NotFoundError):
    """Notification with given ID was not found."""

    code: str = "NOTIFICATION_NOT_FOUND"

    def __init__(self, notification_id: str):
        self.notification_id = notification_id
        super().__init__(f"Notification not found: {notification_id}")


class UserNotFoundError(NotFoundError):
    """User with given ID was not found."""

    code: str = "USER_NOT_FOUND"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class ImmutabilityViolationError(VoucherKernelError):
    """Attempted to modify or delete an append-only audit record."""

    code: str = "IMMUTABILITY_VIOLATION"
    kind: str = "immutability"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


class DependencyError(VoucherKernelError):
    """
    A collaborator (record store) failed.

    The original exception is kept on ``__cause__`` for server-side logs;
    ``to_dict()`` exposes only a generic message.
    """

    code: str = "DEPENDENCY_FAILURE"
    kind: str = "dependency"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Internal error during {operation}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "code": self.code,
            "message": "An internal error occurred. Please try again later.",
        }
