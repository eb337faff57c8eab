"""
Tests for process bootstrap and office seeding.
"""

from sqlalchemy import select

from voucher_config import KernelSettings
from voucher_kernel.domain.roles import UserRole
from voucher_kernel.models.user import User
from voucher_kernel.selectors.user_selector import UserSelector
from voucher_kernel.services.settings_service import SettingsService
from voucher_services import bootstrap
from voucher_services.bootstrap import SEEDED_OFFICES, seed_offices


def _settings(**overrides) -> KernelSettings:
    fields = dict(database_url="sqlite://", bac_required_approvals=2)
    fields.update(overrides)
    return KernelSettings(**fields)


class TestSeedOffices:

    def test_fresh_database(self, session):
        result = seed_offices(session, _settings())

        assert result.created_users == len(SEEDED_OFFICES) + 2
        assert result.quorum_set is True
        assert SettingsService(session).get_bac_required_approvals() == 2
        assert len(UserSelector(session).active_user_ids([UserRole.BAC])) == 2

    def test_accounts_carry_their_office(self, session):
        seed_offices(session, _settings())
        treasurer = session.execute(
            select(User).where(User.email == "treasury@lgu.example")
        ).scalar_one()
        assert treasurer.role == "TREASURY"
        assert treasurer.department == "Treasury Office"

    def test_idempotent(self, session):
        seed_offices(session, _settings())
        again = seed_offices(session, _settings())
        assert again.created_users == 0
        assert again.quorum_set is False

    def test_existing_quorum_kept(self, session):
        SettingsService(session).set_bac_required_approvals(4)
        result = seed_offices(session, _settings(bac_required_approvals=2))
        assert result.quorum_set is False
        assert SettingsService(session).get_bac_required_approvals() == 4


class TestStart:

    def test_wires_engine_and_dispatcher(self, monkeypatch):
        calls = []
        monkeypatch.setattr(bootstrap, "init_engine_from_url", lambda url: calls.append(url))
        monkeypatch.setattr(bootstrap, "create_tables", lambda: calls.append("create_tables"))

        dispatcher = bootstrap.start(
            _settings(notification_timeout_seconds=2.5), create_schema=True,
        )
        try:
            assert calls == ["sqlite://", "create_tables"]
            assert dispatcher._timeout == 2.5
        finally:
            dispatcher.shutdown()
