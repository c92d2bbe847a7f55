from __future__ import annotations

from datetime import date, timedelta
import threading

from cognitrain.persistence import MemoryStore, ProgressRepository
from cognitrain.stats import StatsSnapshot, StatsTracker, update_stats


def test_consecutive_days_grow_streak() -> None:
    day = date(2024, 3, 1)
    snap = StatsSnapshot()
    streaks = []
    for i in range(4):
        snap = update_stats(snap, day + timedelta(days=i))
        streaks.append(snap.current_streak)
    assert streaks == [1, 2, 3, 4]
    assert snap.games_played == 4
    assert snap.last_played == date(2024, 3, 4)


def test_gap_resets_streak() -> None:
    snap = StatsSnapshot(games_played=9, current_streak=5, last_played=date(2024, 3, 1))
    after = update_stats(snap, date(2024, 3, 3))
    assert after.current_streak == 1
    assert after.games_played == 10
    assert after.last_played == date(2024, 3, 3)


def test_same_day_keeps_streak() -> None:
    day = date(2024, 3, 1)
    snap = StatsSnapshot(games_played=2, current_streak=3, last_played=day)
    snap = update_stats(snap, day)
    snap = update_stats(snap, day)
    assert snap.current_streak == 3
    assert snap.games_played == 4


def test_month_boundary_and_backwards_clock() -> None:
    snap = StatsSnapshot(games_played=1, current_streak=2, last_played=date(2024, 2, 29))
    assert update_stats(snap, date(2024, 3, 1)).current_streak == 3
    assert update_stats(snap, date(2024, 2, 28)).current_streak == 1


def test_tracker_persists_through_repository() -> None:
    repo = ProgressRepository(MemoryStore())
    tracker = StatsTracker(repo)
    tracker.record_game(date(2024, 5, 1))
    tracker.record_game(date(2024, 5, 2))

    again = StatsTracker(ProgressRepository(repo.store))
    assert again.current() == StatsSnapshot(games_played=2, current_streak=2, last_played=date(2024, 5, 2))


def test_tracker_updates_are_serialized() -> None:
    repo = ProgressRepository(MemoryStore())
    tracker = StatsTracker(repo)
    day = date(2024, 5, 1)

    workers = [threading.Thread(target=tracker.record_game, args=(day,)) for _ in range(8)]
    for w in workers:
        w.start()
    for w in workers:
        w.join()

    assert tracker.current().games_played == 8
    assert tracker.current().current_streak == 1
