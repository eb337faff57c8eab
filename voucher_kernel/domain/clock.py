"""
Injectable time source.

Approval dates, audit timestamps, release dates and notification times
all come from a ``Clock`` handed to the service, never from
``datetime.now()`` directly.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta

EPOCH_FOR_TESTS = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class Clock(ABC):

    @abstractmethod
    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """Frozen clock for tests.

    Time stands still until ``tick()`` moves it forward, so every write in
    one step shares a timestamp and steps are ordered by their ticks.
    """

    def __init__(self, start: datetime = EPOCH_FOR_TESTS, step: timedelta = timedelta(seconds=1)):
        self._current = start
        self._step = step

    def now(self) -> datetime:
        return self._current

    def tick(self, steps: int = 1) -> datetime:
        self._current += self._step * steps
        return self._current
