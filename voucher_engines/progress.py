"""
Module: voucher_engines.progress
Responsibility:
    Compute the step-by-step progress view of a voucher for display: one
    step per stage of its chain, each completed, current, pending or
    rejected, with the percentage reached once that step completes.

Architecture position:
    Engines -- pure workflow layer, zero I/O.

Invariants enforced:
    - Steps complete strictly in order, mirroring reviewer resolution: a
      stage whose records exist out of order is not shown as completed
      while an earlier stage is open.
    - At most one step is "current".  REJECTED and CANCELLED vouchers have
      no current step; every open step is "rejected".
    - RELEASED vouchers have every step completed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from voucher_kernel.domain.voucher import (
    ApprovalStatus,
    AuditAction,
    BacReviewStatus,
    VoucherSnapshot,
    VoucherStatus,
)
from voucher_kernel.domain.workflow import (
    DEFAULT_BAC_QUORUM,
    GSO_CHAIN,
    Gate,
    GateKind,
    chain_for,
)
from voucher_engines.reviewer import gate_met


class StepState(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    PENDING = "pending"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ProgressStep:
    key: str
    label: str
    percentage: int
    state: StepState
    completed_by: str | None = None


# Percentage reached when each step completes, per chain
_PERCENTAGES: dict[str, dict[str, int]] = {
    "gso": {
        "draft": 6, "submitted": 12, "secretary": 20, "mayor": 33, "bac": 50,
        "budget": 66, "accounting": 83, "check_issuance": 90,
        "available_release": 95, "released": 100,
    },
    "standard": {
        "draft": 8, "submitted": 16, "secretary": 25, "mayor": 40,
        "budget": 60, "accounting": 80, "check_issuance": 90,
        "available_release": 95, "released": 100,
    },
}

_LABELS = {
    "submitted": "Submitted for Review",
    "secretary": "Secretary Review",
    "mayor": "Mayor Review",
    "bac": "BAC Review",
    "budget": "Budget Office Review",
    "accounting": "Accounting Review",
    "check_issuance": "Check Number Issuance",
    "available_release": "Available for Release",
    "released": "Released",
}


def _join(names) -> str | None:
    unique: list[str] = []
    for name in names:
        if name and name not in unique:
            unique.append(name)
    return ", ".join(unique) or None


def _completed_by(gate: Gate, snapshot: VoucherSnapshot) -> str | None:
    if gate.kind == GateKind.APPROVAL:
        record = snapshot.approval_at(gate.level)
        if record is not None and record.status == ApprovalStatus.APPROVED:
            return record.approver_name or None
        return None
    if gate.kind == GateKind.BAC_QUORUM:
        return _join(
            r.reviewer_name for r in snapshot.bac_reviews
            if r.status == BacReviewStatus.APPROVED
        )
    return _join(e.user_name for e in snapshot.audit_entries(gate.completion_action))


def compute_progress(
    snapshot: VoucherSnapshot,
    bac_quorum: int = DEFAULT_BAC_QUORUM,
) -> tuple[ProgressStep, ...]:
    """Progress steps for ``snapshot``, in display order."""
    chain = chain_for(snapshot.creator_role)
    percentages = _PERCENTAGES[chain.name]
    released = snapshot.status == VoucherStatus.RELEASED

    draft_label = "GSO Draft Created" if chain is GSO_CHAIN else "Draft Created"

    # (key, completed, completed_by) in order
    raw: list[tuple[str, bool, str | None]] = [
        ("draft", True, snapshot.creator_name or None),
        (
            "submitted",
            snapshot.status != VoucherStatus.DRAFT,
            _join(e.user_name for e in snapshot.audit_entries(AuditAction.SUBMIT)),
        ),
    ]

    open_seen = snapshot.status == VoucherStatus.DRAFT
    for gate in chain.gates:
        if gate.name == "release":
            continue
        done = released or (not open_seen and gate_met(gate, snapshot, bac_quorum))
        open_seen = open_seen or not done
        raw.append((gate.name, done, _completed_by(gate, snapshot) if done else None))

    check_issued = raw[-1][1]
    raw.append((
        "available_release",
        check_issued,
        _join(e.user_name for e in snapshot.audit_entries(AuditAction.CHECK_ISSUANCE))
        if check_issued else None,
    ))
    raw.append((
        "released",
        released,
        _join(e.user_name for e in snapshot.audit_entries(AuditAction.MARK_RELEASED))
        if released else None,
    ))

    stopped = snapshot.status in (VoucherStatus.REJECTED, VoucherStatus.CANCELLED)
    steps: list[ProgressStep] = []
    current_assigned = False
    for key, done, by in raw:
        if done:
            state = StepState.COMPLETED
        elif stopped:
            state = StepState.REJECTED
        elif not current_assigned:
            state = StepState.CURRENT
            current_assigned = True
        else:
            state = StepState.PENDING
        steps.append(ProgressStep(
            key=key,
            label=draft_label if key == "draft" else _LABELS[key],
            percentage=percentages[key],
            state=state,
            completed_by=by,
        ))
    return tuple(steps)


def progress_percentage(steps: tuple[ProgressStep, ...]) -> int:
    """Highest percentage among completed steps (0 when none)."""
    return max(
        (s.percentage for s in steps if s.state == StepState.COMPLETED),
        default=0,
    )
