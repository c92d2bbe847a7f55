from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StatsSnapshot:
    games_played: int = 0
    current_streak: int = 0
    last_played: date | None = None


def update_stats(snapshot: StatsSnapshot, today: date) -> StatsSnapshot:
    """Count one completed game played on ``today``.

    Same day keeps the streak, the next calendar day extends it, anything else
    (a gap, or a date before the last one) restarts it at 1.
    """

    last = snapshot.last_played
    if last is None:
        streak = 1
    elif last == today:
        streak = max(1, snapshot.current_streak)
    elif (today - last).days == 1:
        streak = snapshot.current_streak + 1
    else:
        streak = 1
    return StatsSnapshot(
        games_played=max(0, snapshot.games_played) + 1,
        current_streak=streak,
        last_played=today,
    )


class StatsStore(Protocol):
    def load_stats(self) -> StatsSnapshot: ...
    def save_stats(self, snapshot: StatsSnapshot) -> None: ...


class StatsTracker:
    """Read-modify-write of the persisted counters, one game at a time."""

    def __init__(self, store: StatsStore) -> None:
        self._store = store
        self._lock = threading.Lock()

    def current(self) -> StatsSnapshot:
        return self._store.load_stats()

    def record_game(self, today: date) -> StatsSnapshot:
        with self._lock:
            before = self._store.load_stats()
            after = update_stats(before, today)
            self._store.save_stats(after)
        logger.debug("Stats updated: %s -> %s", before, after)
        return after
