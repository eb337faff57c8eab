"""
Tests for the engine tracer: fingerprints and the VOUCHER_ENGINE_TRACE line.
"""

from uuid import uuid4

from voucher_engines.reviewer import resolve_current_reviewer
from voucher_engines.sequencing import legal_actions
from voucher_engines.tracer import canonical_form, input_fingerprint, traced_engine
from voucher_kernel.domain.actor import ActorContext
from voucher_kernel.domain.roles import UserRole
from voucher_kernel.domain.voucher import VoucherSnapshot, VoucherStatus


# =============================================================================
# Factory helpers
# =============================================================================


def _snapshot(status=VoucherStatus.PENDING, voucher_id=None) -> VoucherSnapshot:
    return VoucherSnapshot(
        voucher_id=voucher_id or uuid4(),
        status=status,
        creator_id=uuid4(),
        creator_role=UserRole.GSO,
    )


def _traces(captured_logs) -> list[dict]:
    return [r for r in captured_logs() if r["message"] == "VOUCHER_ENGINE_TRACE"]


class TestFingerprint:

    def test_set_and_mapping_order_ignored(self):
        assert canonical_form({"b": 1, "a": 2}) == canonical_form({"a": 2, "b": 1})
        assert canonical_form(frozenset({"GSO", "HR"})) == canonical_form(frozenset({"HR", "GSO"}))

    def test_equal_snapshots_hash_alike(self):
        voucher_id = uuid4()
        creator_id = uuid4()
        first = VoucherSnapshot(voucher_id, VoucherStatus.PENDING, creator_id, UserRole.GSO)
        second = VoucherSnapshot(voucher_id, VoucherStatus.PENDING, creator_id, UserRole.GSO)
        assert input_fingerprint({"snapshot": first}, ("snapshot",)) == input_fingerprint(
            {"snapshot": second}, ("snapshot",),
        )

    def test_status_changes_the_hash(self):
        voucher_id = uuid4()
        pending = _snapshot(VoucherStatus.PENDING, voucher_id)
        validated = _snapshot(VoucherStatus.VALIDATED, voucher_id)
        assert input_fingerprint({"s": pending}, ("s",)) != input_fingerprint({"s": validated}, ("s",))

    def test_length(self):
        assert len(input_fingerprint({}, ("missing",))) == 16


class TestTracedEngine:

    def test_positional_and_keyword_calls_match(self, captured_logs):
        snapshot = _snapshot()
        resolve_current_reviewer(snapshot, 3)
        resolve_current_reviewer(snapshot=snapshot, bac_quorum=3)

        first, second = _traces(captured_logs)
        assert first["input_fingerprint"] == second["input_fingerprint"]

    def test_reviewer_trace_fields(self, captured_logs):
        snapshot = _snapshot()
        resolve_current_reviewer(snapshot)

        (trace,) = _traces(captured_logs)
        assert trace["engine_name"] == "reviewer"
        assert trace["engine_version"] == "1.0"
        assert trace["snapshot_voucher_id"] == str(snapshot.voucher_id)
        assert trace["snapshot_status"] == "PENDING"
        assert trace["decision"] == "Awaiting Secretary Review"

    def test_legal_actions_decision_lists_actions(self, captured_logs):
        secretary = ActorContext(user_id=uuid4(), role=UserRole.SECRETARY)
        actions = legal_actions(_snapshot(), secretary)

        trace = [t for t in _traces(captured_logs) if t["engine_name"] == "legal_actions"][-1]
        assert trace["decision"] == sorted(a.value for a in actions)

    def test_result_passes_through(self):
        @traced_engine("double", "0.1", fingerprint_fields=("value",))
        def double(value: int) -> int:
            return value * 2

        assert double(21) == 42
        assert double.__name__ == "double"
