"""Clock abstraction so renewal timing can be driven deterministically."""

from __future__ import annotations

import threading
import time
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Supplies the current time and a blocking sleep."""

    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""

    def sleep(self, seconds: float) -> None:
        """Block the calling thread for ``seconds``."""


class RealClock:
    """Wall clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


class FakeClock:
    """Manually driven clock for tests.

    ``sleep`` returns immediately, advances the clock by the requested
    duration and records it in ``sleeps``.
    """

    def __init__(self, start: datetime | None = None):
        self._now = start or datetime(2024, 1, 1, tzinfo=UTC)
        self._lock = threading.Lock()
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def sleep(self, seconds: float) -> None:
        with self._lock:
            self.sleeps.append(seconds)
            self._now += timedelta(seconds=seconds)

    def step(self, seconds: float) -> None:
        """Advance the clock without recording a sleep."""
        with self._lock:
            self._now += timedelta(seconds=seconds)

    def set_time(self, value: datetime) -> None:
        with self._lock:
            self._now = value
