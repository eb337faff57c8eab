"""
SequenceService -- gap-free write order from locked counter rows.

Responsibility:
    Hands out the next value of a named sequence.  The audit trail uses
    the ``audit_trail`` sequence to order entries that share a timestamp.

Architecture position:
    Kernel > Services.  Called by AuditService inside the caller's unit
    of work.

Invariants enforced:
    - Values come from the counter row read with ``SELECT ... FOR UPDATE``;
      a concurrent transaction waits for the lock, so no two committed
      entries share a value.  Never MAX(...) + 1 over the target table.
    - The increment commits or rolls back with the caller's transaction.

Failure modes:
    - IntegrityError when two transactions create the same counter at
      once; the loser rolls back its savepoint and locks the winner's row.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from voucher_kernel.logging_config import get_logger
from voucher_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")

AUDIT_TRAIL_SEQUENCE = "audit_trail"


class SequenceService:
    """Named, transactional, strictly increasing counters."""

    def __init__(self, session: Session):
        self._session = session

    def _locked(self, name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, name: str) -> int:
        counter = self._locked(name)
        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=name, current_value=0)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
            except IntegrityError:
                savepoint.rollback()
                logger.debug("sequence_counter_race_retry", extra={"sequence_name": name})
                counter = self._locked(name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, name: str) -> int | None:
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == name)
        ).scalar_one_or_none()
        return counter.current_value if counter is not None else None
