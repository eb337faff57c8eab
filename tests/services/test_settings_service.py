"""
Tests for system settings and the BAC quorum fallback.
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from voucher_kernel.exceptions import VoucherValidationError
from voucher_kernel.services.settings_service import (
    BAC_REQUIRED_APPROVALS_KEY,
    SettingsService,
)


class TestSettings:

    def test_missing_value(self, session):
        assert SettingsService(session).get_value("no_such_key") is None

    def test_set_then_overwrite(self, session):
        service = SettingsService(session)
        service.set_value("office_hours", "8-5", description="Front desk hours")
        service.set_value("office_hours", "7-4")
        assert service.get_value("office_hours") == "7-4"


class TestBacQuorum:

    def test_default_when_missing(self, session):
        assert SettingsService(session).get_bac_required_approvals() == 3

    def test_stored_value(self, session):
        service = SettingsService(session)
        service.set_bac_required_approvals(5)
        assert service.get_bac_required_approvals() == 5

    @pytest.mark.parametrize("raw", ["abc", "2.5", "0", "-1", ""])
    def test_bad_values_fall_back(self, session, captured_logs, raw):
        service = SettingsService(session)
        service.set_value(BAC_REQUIRED_APPROVALS_KEY, raw)

        assert service.get_bac_required_approvals() == 3
        warnings = [r for r in captured_logs() if r["level"] == "WARNING"]
        assert warnings
        assert warnings[-1]["raw_value"] == raw

    def test_whitespace_tolerated(self, session):
        service = SettingsService(session)
        service.set_value(BAC_REQUIRED_APPROVALS_KEY, " 4 ")
        assert service.get_bac_required_approvals() == 4

    def test_read_failure_falls_back(self, session, monkeypatch, captured_logs):
        service = SettingsService(session)

        def _broken(key):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        monkeypatch.setattr(service, "get_value", _broken)
        assert service.get_bac_required_approvals(default=3) == 3
        assert any(r["message"] == "bac_quorum_read_failed" for r in captured_logs())

    def test_failed_read_rolls_back_only_its_savepoint(self, session, monkeypatch):
        service = SettingsService(session)
        service.set_value("office_hours", "8-5")
        in_savepoint = []

        def _missing_table(key):
            in_savepoint.append(session.in_nested_transaction())
            return session.execute(text("SELECT value FROM missing_settings_table")).scalar()

        monkeypatch.setattr(service, "get_value", _missing_table)

        assert service.get_bac_required_approvals() == 3
        assert in_savepoint == [True]
        assert not session.in_nested_transaction()
        assert SettingsService(session).get_value("office_hours") == "8-5"

    @pytest.mark.parametrize("value", [0, -2, True, "3", 2.0])
    def test_invalid_quorum_refused(self, session, value):
        with pytest.raises(VoucherValidationError):
            SettingsService(session).set_bac_required_approvals(value)
