"""
NotificationService -- the notification store.

Responsibility:
    Persists notification drafts, supersedes older notifications for the
    same voucher and recipient, and lets a user read and acknowledge
    their own notifications.  Implements the ``NotificationSink`` protocol.

Architecture position:
    Kernel > Services.  Called from the notification dispatcher's
    background jobs, each on its own session.

Invariants enforced:
    - After ``replace_for_voucher`` each recipient holds at most one
      notification for that voucher from the replaced batch, so an inbox
      shows only the latest status per voucher.
    - Only the owning user may mark a notification read.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import delete, select, update

from voucher_kernel.domain.actor import ActorContext
from voucher_kernel.domain.clock import Clock, SystemClock
from voucher_kernel.domain.notification import NotificationDraft, NotificationRecord
from voucher_kernel.exceptions import AuthorizationError, NotificationNotFoundError
from voucher_kernel.logging_config import get_logger
from voucher_kernel.models.notification import Notification
from voucher_kernel.services.base import BaseService

logger = get_logger("services.notification")


class NotificationService(BaseService[Notification]):
    """Stores and serves per-user notifications."""

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def _insert(self, drafts: Sequence[NotificationDraft]) -> int:
        now = self._clock.now()
        for draft in drafts:
            self.session.add(Notification(
                user_id=draft.recipient_id,
                voucher_id=draft.voucher_id,
                type=draft.type.value,
                title=draft.title,
                message=draft.message,
                priority=draft.priority.value,
                is_read=False,
                created_at=now,
            ))
        self.session.flush()
        return len(drafts)

    def replace_for_voucher(
        self, voucher_id: UUID, drafts: Sequence[NotificationDraft],
    ) -> int:
        """Delete the recipients' notifications for the voucher, then insert ``drafts``."""
        recipients = {d.recipient_id for d in drafts}
        removed = 0
        if recipients:
            result = self.session.execute(
                delete(Notification)
                .where(Notification.voucher_id == voucher_id)
                .where(Notification.user_id.in_(recipients))
                .execution_options(synchronize_session=False)
            )
            removed = result.rowcount or 0
        created = self._insert(drafts)
        logger.info(
            "notifications_replaced",
            extra={
                "voucher_id": str(voucher_id),
                "removed": removed,
                "created_count": created,
            },
        )
        return created

    def add(self, drafts: Sequence[NotificationDraft]) -> int:
        created = self._insert(drafts)
        logger.info("notifications_added", extra={"created_count": created})
        return created

    def _get(self, notification_id: UUID) -> Notification:
        notification = self.session.get(Notification, notification_id)
        if notification is None:
            raise NotificationNotFoundError(str(notification_id))
        return notification

    def mark_read(self, notification_id: UUID, actor: ActorContext) -> NotificationRecord:
        """
        Mark one notification read.

        Raises:
            NotificationNotFoundError: If it doesn't exist.
            AuthorizationError: If ``actor`` does not own it.
        """
        notification = self._get(notification_id)
        if notification.user_id != actor.user_id:
            raise AuthorizationError(
                "mark_read", actor.role.value, "notification belongs to another user",
            )
        if not notification.is_read:
            notification.is_read = True
            self.session.flush()
        return notification.to_dto()

    def mark_all_read(self, actor: ActorContext) -> int:
        result = self.session.execute(
            update(Notification)
            .where(Notification.user_id == actor.user_id)
            .where(Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    def list_for(
        self, user_id: UUID, *, unread_only: bool = False, limit: int = 50,
    ) -> list[NotificationRecord]:
        """Newest first."""
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc()).limit(limit)
        return [n.to_dto() for n in self.session.execute(stmt).scalars()]

    def unread_for(self, user_id: UUID) -> list[NotificationRecord]:
        return self.list_for(user_id, unread_only=True)
