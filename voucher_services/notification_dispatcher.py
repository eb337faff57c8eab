"""
NotificationDispatcher - Background delivery of workflow notifications.

Responsibility:
    Turn each published WorkflowEvent into stored notifications for the
    offices that follow the voucher.  Runs on a worker thread with its own
    session so a slow or failing delivery never blocks or fails the
    transition that produced the event.

Architecture position:
    Services layer.  Callable as a ``publisher`` for the workflow
    services.  Uses voucher_engines.notifications for recipients and text,
    UserSelector for targeting and NotificationService as the sink.

Invariants enforced:
    - Workflow updates supersede: a recipient keeps at most one workflow
      notification per voucher (``replace_for_voucher``).
    - Source-office and remarks notifications are added, never replaced.
    - A job whose deadline passed before it writes is abandoned.
    - Every job error is logged and swallowed.

Usage:
    dispatcher = NotificationDispatcher(timeout_seconds=10.0)
    reviews = ReviewService(session, publisher=dispatcher)
    ...
    dispatcher.shutdown()
"""

from __future__ import annotations

import time
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from contextlib import AbstractContextManager
from typing import Any

from sqlalchemy.orm import Session

from voucher_engines.notifications import (
    build_remarks_drafts,
    build_source_office_drafts,
    build_workflow_drafts,
    recipient_roles,
)
from voucher_kernel.db.engine import session_scope
from voucher_kernel.domain.clock import Clock
from voucher_kernel.domain.notification import WorkflowEvent
from voucher_kernel.domain.roles import office_to_role, parse_role, roles_for_offices
from voucher_kernel.domain.workflow import WorkflowAction
from voucher_kernel.logging_config import LogContext, get_logger
from voucher_kernel.selectors.user_selector import UserSelector
from voucher_kernel.services.notification_service import NotificationService

logger = get_logger("services.notifications")

ScopeFactory = Callable[[], AbstractContextManager[Session]]

DEFAULT_TIMEOUT_SECONDS = 10.0


class DispatchDeadlineExceeded(Exception):
    """A delivery job reached its write step after its deadline."""


class NotificationDispatcher:
    """Delivers notifications for workflow events on a thread pool."""

    def __init__(
        self,
        scope_factory: ScopeFactory = session_scope,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        executor: Executor | None = None,
        clock: Clock | None = None,
    ):
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")
        self._scope_factory = scope_factory
        self._timeout = timeout_seconds
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="voucher-notify",
        )
        self._clock = clock

    def __call__(self, event: WorkflowEvent) -> Future:
        return self.publish(event)

    def publish(self, event: WorkflowEvent) -> Future:
        """Queue delivery of ``event``; returns the job's future."""
        deadline = time.monotonic() + self._timeout
        context = LogContext.get_all()
        logger.debug(
            "notification_dispatch_queued",
            extra={"voucher_id": str(event.voucher_id), "event_action": event.action.value},
        )
        return self._executor.submit(self._run, event, deadline, context)

    def _run(self, event: WorkflowEvent, deadline: float, context: dict[str, str]) -> int:
        bound = {**context, "voucher_id": event.voucher_id, "action": event.action}
        with LogContext.bind(**bound):
            try:
                created = self.deliver(event, deadline)
            except DispatchDeadlineExceeded:
                logger.warning(
                    "notification_dispatch_abandoned",
                    extra={"timeout_seconds": self._timeout},
                )
                return 0
            except Exception:
                logger.error("notification_dispatch_failed", exc_info=True)
                return 0
            logger.info("notifications_dispatched", extra={"created_count": created})
            return created

    def deliver(self, event: WorkflowEvent, deadline: float | None = None) -> int:
        """
        Compute and store the notifications for ``event`` synchronously.

        Returns:
            Number of notifications written.

        Raises:
            DispatchDeadlineExceeded: If ``deadline`` (a ``time.monotonic``
                value) passed before anything was written.
        """
        with self._scope_factory() as session:
            users = UserSelector(session)
            sink = NotificationService(session, self._clock)

            if event.action == WorkflowAction.SUBMIT_REMARKS:
                recipients = users.active_user_ids(roles_for_offices(event.target_offices))
                drafts = build_remarks_drafts(event, recipients)
                self._check_deadline(deadline)
                return sink.add(drafts)

            recipients = users.active_user_ids(recipient_roles(event.creator_role))
            drafts = build_workflow_drafts(event, recipients)

            office_drafts = []
            # A voucher created directly in PENDING publishes SUBMIT
            if event.source_offices and event.action in (
                WorkflowAction.CREATE, WorkflowAction.SUBMIT,
            ):
                by_office: dict[str, Any] = {}
                for office in event.source_offices:
                    role = parse_role(office_to_role(office))
                    if role is not None:
                        by_office[office] = users.active_user_ids([role])
                office_drafts = build_source_office_drafts(event, by_office)

            self._check_deadline(deadline)
            created = sink.replace_for_voucher(event.voucher_id, drafts)
            if office_drafts:
                created += sink.add(office_drafts)
            return created

    def _check_deadline(self, deadline: float | None) -> None:
        if deadline is not None and time.monotonic() > deadline:
            raise DispatchDeadlineExceeded()

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker pool if this dispatcher created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
