"""
Injectable time source.

Repositories stamp ``created_at`` / ``updated_at`` from the Clock they are
given; nothing in the pipeline reads the wall clock directly.
"""

import threading
from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class Clock(ABC):
    """Source of timezone-aware UTC timestamps."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Clock frozen at a fixed instant until moved with ``advance()``.

    Shared by worker threads in tests, so moves are serialized.
    """

    def __init__(self, start: datetime = DEFAULT_TEST_TIME):
        self._lock = threading.Lock()
        self._current = start

    def now(self) -> datetime:
        with self._lock:
            return self._current

    def advance(self, seconds: float = 1) -> datetime:
        with self._lock:
            self._current += timedelta(seconds=seconds)
            return self._current
