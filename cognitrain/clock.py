from __future__ import annotations

import time
from datetime import date
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Timers and phase engines depend on this interface rather than calling real
    time directly, so tests can drive them with a fake clock.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


def local_today() -> date:
    """Calendar date used for streak bookkeeping."""

    return date.today()
