"""
SettingsService -- runtime system settings stored in ``system_settings``.

Responsibility:
    Read and write key/value settings, and read the BAC quorum with a
    graceful fallback so a bad or missing value never blocks a review.

Architecture position:
    Kernel > Services.  The quorum it returns is passed explicitly into
    the pure engines; engines never read settings themselves.

Invariants enforced:
    - ``get_bac_required_approvals()`` always returns an int >= 1.  A
      missing row, a non-integer value, a value below 1, or a failed read
      all yield the default (3), and every fallback except "missing" is
      logged as a warning.
    - The quorum read runs in a SAVEPOINT, so a failed read (for example a
      missing table on PostgreSQL) rolls back only itself and the
      calling review can still flush and commit.
    - ``set_bac_required_approvals()`` refuses values below 1.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from voucher_kernel.domain.workflow import DEFAULT_BAC_QUORUM
from voucher_kernel.exceptions import VoucherValidationError
from voucher_kernel.logging_config import get_logger
from voucher_kernel.models.reference import SystemSetting
from voucher_kernel.services.base import BaseService

logger = get_logger("services.settings")

BAC_REQUIRED_APPROVALS_KEY = "bac_required_approvals"


class SettingsService(BaseService[SystemSetting]):
    """Read/write access to system settings."""

    def _get_row(self, key: str) -> SystemSetting | None:
        return self.session.execute(
            select(SystemSetting).where(SystemSetting.key == key)
        ).scalar_one_or_none()

    def get_value(self, key: str) -> str | None:
        row = self._get_row(key)
        return row.value if row is not None else None

    def set_value(self, key: str, value: str, description: str | None = None) -> None:
        """Create or overwrite a setting."""
        row = self._get_row(key)
        if row is None:
            row = SystemSetting(key=key, value=value, description=description)
            self.session.add(row)
        else:
            row.value = value
            if description is not None:
                row.description = description
        self.session.flush()
        logger.info("system_setting_updated", extra={"key": key, "value": value})

    def get_bac_required_approvals(self, default: int = DEFAULT_BAC_QUORUM) -> int:
        """The BAC quorum, falling back to ``default`` on any bad value or read failure."""
        try:
            # Savepoint: a failed read must not abort the caller's transaction
            with self.session.begin_nested():
                raw = self.get_value(BAC_REQUIRED_APPROVALS_KEY)
        except SQLAlchemyError:
            logger.warning(
                "bac_quorum_read_failed",
                extra={"fallback": default},
                exc_info=True,
            )
            return default

        if raw is None:
            return default
        try:
            value = int(raw.strip())
        except ValueError:
            logger.warning(
                "bac_quorum_not_integer",
                extra={"raw_value": raw, "fallback": default},
            )
            return default
        if value < 1:
            logger.warning(
                "bac_quorum_below_minimum",
                extra={"raw_value": raw, "fallback": default},
            )
            return default
        return value

    def set_bac_required_approvals(self, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise VoucherValidationError([{
                "field": BAC_REQUIRED_APPROVALS_KEY,
                "message": "Required BAC approvals must be a whole number of at least 1",
            }])
        self.set_value(
            BAC_REQUIRED_APPROVALS_KEY,
            str(value),
            description="Approved BAC reviews required before Budget review",
        )
