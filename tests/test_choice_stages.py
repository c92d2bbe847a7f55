from __future__ import annotations

from dataclasses import dataclass

import pytest

from cognitrain.choice_stages import (
    FEEDBACK_S,
    LOGIC_PATTERNS,
    WORKING_MEMORY_MATH,
    ChoicePayload,
    build_pattern_logic_stage,
    build_working_memory_math_stage,
)
from cognitrain.cognitive_core import SeededRng
from cognitrain.results import StageKey
from cognitrain.timers import TimerQueue


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def test_item_order_follows_seed() -> None:
    timers = TimerQueue(FakeClock())
    stage = build_pattern_logic_stage(timers=timers, seed=9)
    assert stage.items == tuple(SeededRng(9).shuffled(LOGIC_PATTERNS))
    assert sorted(i.prompt for i in stage.items) == sorted(i.prompt for i in LOGIC_PATTERNS)


def test_pattern_logic_all_correct_with_feedback_pause() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    stage = build_pattern_logic_stage(timers=timers, seed=9)
    assert stage.key is StageKey.LOGIC
    scores: list[float] = []
    stage.start(scores.append)

    for i, item in enumerate(stage.items):
        snap = stage.snapshot()
        assert isinstance(snap.payload, ChoicePayload)
        assert snap.payload.index == i
        assert snap.payload.accepting_input is True

        assert stage.choose("not-a-choice") is False
        assert stage.choose(item.answer) is True
        assert stage.snapshot().feedback == "Correct!"
        # Locked during feedback.
        assert stage.choose(item.answer) is False

        clock.advance(FEEDBACK_S)
        timers.pump()

    assert scores == [100.0]
    assert stage.correct == len(LOGIC_PATTERNS)
    assert timers.pending_count() == 0


def test_working_memory_math_true_false() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    stage = build_working_memory_math_stage(timers=timers, seed=4)
    assert stage.key is StageKey.WORKING_MEMORY
    assert sorted(i.prompt for i in stage.items) == sorted(i.prompt for i in WORKING_MEMORY_MATH)
    scores: list[float] = []
    stage.start(scores.append)

    for i, item in enumerate(stage.items):
        value = bool(item.answer)
        if i < 2:
            value = not value
        assert stage.answer(value) is True
        if i < 2:
            assert stage.snapshot().feedback == "Incorrect."
        clock.advance(FEEDBACK_S)
        timers.pump()

    assert scores == [pytest.approx(60.0)]


def test_cancel_mid_stage_reports_nothing() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    stage = build_working_memory_math_stage(timers=timers, seed=4)
    scores: list[float] = []
    stage.start(scores.append)
    stage.answer(True)
    stage.cancel()

    clock.advance(FEEDBACK_S * 10)
    timers.pump()
    assert scores == []
    assert timers.pending_count() == 0
    assert stage.answer(True) is False
