from __future__ import annotations

from dataclasses import dataclass

from cognitrain.timers import TimerQueue


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def test_timers_fire_in_due_order_only_when_pumped() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    fired: list[str] = []

    timers.call_later(2.0, lambda: fired.append("late"))
    timers.call_later(1.0, lambda: fired.append("early"))
    assert timers.pending_count() == 2

    clock.advance(5.0)
    assert fired == []

    assert timers.pump() == 2
    assert fired == ["early", "late"]
    assert timers.pending_count() == 0


def test_timer_is_not_fired_before_due() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    fired: list[int] = []

    timers.call_later(1.0, lambda: fired.append(1))
    clock.advance(0.999)
    assert timers.pump() == 0
    clock.advance(0.001)
    assert timers.pump() == 1
    assert fired == [1]


def test_cancelled_timer_never_fires() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    fired: list[int] = []

    tid = timers.call_later(1.0, lambda: fired.append(1))
    assert timers.cancel(tid) is True
    assert timers.cancel(tid) is False
    assert timers.cancel(None) is False

    clock.advance(2.0)
    assert timers.pump() == 0
    assert fired == []
    assert timers.pending_count() == 0


def test_threadsafe_handoff_runs_on_next_pump() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    seen: list[str] = []

    timers.call_soon_threadsafe(lambda: seen.append("handoff"))
    assert seen == []
    timers.pump()
    assert seen == ["handoff"]


def test_same_due_timers_keep_arming_order_and_chain_in_one_pump() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    fired: list[str] = []

    def third() -> None:
        fired.append("c")
        timers.call_later(0.0, lambda: fired.append("chained"))

    timers.call_later(1.0, lambda: fired.append("a"))
    timers.call_later(1.0, lambda: fired.append("b"))
    timers.call_later(1.0, third)

    clock.advance(1.0)
    assert timers.pump() == 4
    assert fired == ["a", "b", "c", "chained"]
    assert timers.pending_count() == 0
