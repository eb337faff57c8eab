"""
Module: voucher_engines
Responsibility:
    Pure workflow engines over ``VoucherSnapshot`` values: current-reviewer
    resolution, action sequencing, progress steps and notification
    composition.

Architecture position:
    Engines -- pure layer, zero I/O.
    May only import voucher_kernel/domain, voucher_kernel.exceptions and
    voucher_kernel.logging_config.  MUST NOT import voucher_services or
    any kernel service, model or selector.

Invariants enforced:
    - Purity: engines never read the clock, the database or settings.
      The BAC quorum and every record they need arrive as arguments.
    - Determinism: identical snapshots always produce identical results.

Usage:
    from voucher_engines import resolve_current_reviewer, check_review
"""

from voucher_kernel.logging_config import get_logger

logger = get_logger("engines")

from voucher_engines.notifications import (
    build_remarks_drafts,
    build_source_office_drafts,
    build_workflow_drafts,
    compose_message,
    format_peso,
    priority_for,
    recipient_roles,
)
from voucher_engines.progress import (
    ProgressStep,
    StepState,
    compute_progress,
    progress_percentage,
)
from voucher_engines.reviewer import (
    ReviewerAssignment,
    approval_level_for,
    first_unmet_gate,
    gate_met,
    resolve_current_reviewer,
)
from voucher_engines.sequencing import (
    check_level_decision,
    check_reject,
    check_review,
    check_treasury,
    legal_actions,
    prerequisite_met,
)

__all__ = [
    "ProgressStep",
    "ReviewerAssignment",
    "StepState",
    "approval_level_for",
    "build_remarks_drafts",
    "build_source_office_drafts",
    "build_workflow_drafts",
    "check_level_decision",
    "check_reject",
    "check_review",
    "check_treasury",
    "compose_message",
    "compute_progress",
    "first_unmet_gate",
    "format_peso",
    "gate_met",
    "legal_actions",
    "prerequisite_met",
    "priority_for",
    "progress_percentage",
    "recipient_roles",
    "resolve_current_reviewer",
]
