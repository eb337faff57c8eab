"""
Bootstrap - Wire a process from KernelSettings and seed office accounts.

Responsibility:
    Turn loaded settings into a running configuration (logging, engine,
    notification dispatcher) and seed a fresh database with one account
    per reviewing office, the BAC committee members, and the BAC quorum
    system setting.

Architecture position:
    Services layer.  The only module that reads ``voucher_config``
    settings; everything below receives plain values.

Invariants enforced:
    - Seeding is idempotent: accounts are matched by email, and an
      existing quorum setting is never overwritten.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from voucher_config import KernelSettings
from voucher_kernel.db.engine import create_tables, init_engine_from_url
from voucher_kernel.domain.roles import UserRole, role_display_name, role_to_office
from voucher_kernel.logging_config import configure_logging, get_logger
from voucher_kernel.models.user import User
from voucher_kernel.services.settings_service import (
    BAC_REQUIRED_APPROVALS_KEY,
    SettingsService,
)
from voucher_services.notification_dispatcher import NotificationDispatcher

logger = get_logger("services.bootstrap")

EMAIL_DOMAIN = "lgu.example"

# Offices seeded with a single account, in review-chain order
SEEDED_OFFICES: tuple[UserRole, ...] = (
    UserRole.ADMIN,
    UserRole.GSO,
    UserRole.HR,
    UserRole.SECRETARY,
    UserRole.MAYOR,
    UserRole.BUDGET,
    UserRole.ACCOUNTING,
    UserRole.TREASURY,
)


@dataclass(frozen=True)
class SeedResult:
    created_users: int
    quorum_set: bool


def start(settings: KernelSettings, create_schema: bool = False) -> NotificationDispatcher:
    """
    Configure logging and the database engine; return the dispatcher.

    The caller owns the dispatcher and must ``shutdown()`` it on exit.
    """
    configure_logging(level=settings.log_level)
    init_engine_from_url(settings.database_url)
    if create_schema:
        create_tables()
    logger.info(
        "voucher_runtime_started",
        extra={
            "notification_timeout_seconds": settings.notification_timeout_seconds,
            "create_schema": create_schema,
        },
    )
    return NotificationDispatcher(timeout_seconds=settings.notification_timeout_seconds)


def _seed_accounts(settings: KernelSettings) -> list[tuple[UserRole, str, str]]:
    accounts = [
        (role, role_display_name(role), f"{role.value.lower()}@{EMAIL_DOMAIN}")
        for role in SEEDED_OFFICES
    ]
    for n in range(1, settings.bac_required_approvals + 1):
        accounts.append(
            (UserRole.BAC, f"BAC Member {n}", f"bac{n}@{EMAIL_DOMAIN}")
        )
    return accounts


def seed_offices(session: Session, settings: KernelSettings) -> SeedResult:
    """Create missing office accounts and the quorum setting."""
    existing = set(session.execute(select(User.email)).scalars())
    created = 0
    for role, name, email in _seed_accounts(settings):
        if email in existing:
            continue
        session.add(User(
            name=name,
            email=email,
            role=role.value,
            department=role_to_office(role),
            is_active=True,
        ))
        created += 1
    session.flush()

    settings_service = SettingsService(session)
    quorum_set = settings_service.get_value(BAC_REQUIRED_APPROVALS_KEY) is None
    if quorum_set:
        settings_service.set_bac_required_approvals(settings.bac_required_approvals)

    logger.info(
        "offices_seeded",
        extra={"created_count": created, "quorum_set": quorum_set},
    )
    return SeedResult(created_users=created, quorum_set=quorum_set)
