from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

import pytest

from cognitrain.assessment import AssessmentOrchestrator, AssessmentState
from cognitrain.choice_stages import FEEDBACK_S
from cognitrain.recall_stages import NUMBER_DISPLAY_S, WORD_DISPLAY_S
from cognitrain.results import STAGE_ORDER, AssessmentScoreSet, StageKey
from cognitrain.timers import TimerQueue


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


@dataclass
class FakeNarration:
    requests: list[tuple[dict[str, float], Callable[[str | None], None]]] = field(default_factory=list)

    def request(self, scores: Mapping[str, float], on_done: Callable[[str | None], None]) -> None:
        self.requests.append((dict(scores), on_done))


def _play_through(clock: FakeClock, timers: TimerQueue, orch: AssessmentOrchestrator) -> None:
    # Number recall: perfect.
    stage = orch.stage
    clock.advance(NUMBER_DISPLAY_S)
    timers.pump()
    assert orch.submit_recall("".join(stage.items)) is True

    # Word recall: half the words.
    stage = orch.stage
    assert orch.stage_index == 1
    assert orch.submit_recall("nope") is False
    clock.advance(WORD_DISPLAY_S)
    timers.pump()
    assert orch.submit_recall(" ".join(stage.items[:5])) is True

    # Reaction time: 100 ms each.
    stage = orch.stage
    assert orch.stage_index == 2
    assert orch.click() is True
    for delay in stage.delays_s:
        clock.advance(delay)
        timers.pump()
        clock.advance(0.1)
        assert orch.click() is True

    # Pattern logic: all correct.
    stage = orch.stage
    assert orch.stage_index == 3
    assert orch.answer(True) is False
    for item in stage.items:
        assert orch.choose(item.answer) is True
        clock.advance(FEEDBACK_S)
        timers.pump()

    # Working memory: one wrong.
    stage = orch.stage
    assert orch.stage_index == 4
    for i, item in enumerate(stage.items):
        value = bool(item.answer) if i > 0 else not bool(item.answer)
        assert orch.answer(value) is True
        clock.advance(FEEDBACK_S)
        timers.pump()


def test_headless_sim_five_stages_in_order_then_narrative() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    narration = FakeNarration()
    stage_scores: list[tuple[StageKey, float]] = []
    completed: list[AssessmentScoreSet] = []
    narrated: list[AssessmentScoreSet] = []

    orch = AssessmentOrchestrator(
        timers=timers,
        seed=2024,
        narration=narration,
        on_stage_complete=lambda key, score: stage_scores.append((key, score)),
        on_complete=completed.append,
        on_narrative=narrated.append,
    )
    assert orch.state is AssessmentState.IDLE
    orch.start()
    assert orch.state is AssessmentState.STAGE
    assert orch.snapshot().stage_title == "Memory Test: Number Recall"

    _play_through(clock, timers, orch)

    assert [key for key, _ in stage_scores] == list(STAGE_ORDER)
    assert len(completed) == 1
    scores = completed[0]
    assert scores.complete is True
    assert scores.memory_numbers == 100.0
    assert scores.memory_words == pytest.approx(50.0)
    assert scores.speed == pytest.approx(80.0)
    assert scores.logic == 100.0
    assert scores.working_memory == pytest.approx(80.0)
    assert scores.narrative is None

    assert orch.state is AssessmentState.DONE
    assert orch.narrative_pending is True
    assert orch.click() is False
    assert timers.pending_count() == 0

    (requested, on_done) = narration.requests[0]
    assert len(narration.requests) == 1
    assert requested == scores.as_mapping()

    on_done("  You have a sharp memory.  ")
    assert orch.narrative_pending is False
    assert narrated == [scores]
    assert narrated[0] is scores
    assert scores.narrative == "You have a sharp memory."
    assert scores.to_dict()["profileMessage"] == "You have a sharp memory."


def test_failed_narrative_keeps_scores_without_message() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    narration = FakeNarration()
    narrated: list[AssessmentScoreSet] = []
    orch = AssessmentOrchestrator(timers=timers, seed=7, narration=narration, on_narrative=narrated.append)
    orch.start()
    _play_through(clock, timers, orch)

    narration.requests[0][1](None)
    assert narrated == [orch.scores]
    assert orch.scores.narrative is None
    assert "profileMessage" not in orch.scores.to_dict()


def test_no_narrator_finishes_without_pending_request() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    completed: list[AssessmentScoreSet] = []
    orch = AssessmentOrchestrator(timers=timers, seed=7, on_complete=completed.append)
    orch.start()
    _play_through(clock, timers, orch)

    assert len(completed) == 1
    assert orch.state is AssessmentState.DONE
    assert orch.narrative_pending is False


def test_cancel_mid_assessment_stops_everything() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    completed: list[AssessmentScoreSet] = []
    stage_scores: list[tuple[StageKey, float]] = []
    orch = AssessmentOrchestrator(
        timers=timers,
        seed=1,
        on_stage_complete=lambda key, score: stage_scores.append((key, score)),
        on_complete=completed.append,
    )
    orch.start()
    clock.advance(NUMBER_DISPLAY_S)
    timers.pump()
    orch.submit_recall("1")

    orch.cancel()
    assert orch.state is AssessmentState.CANCELLED
    assert timers.pending_count() == 0
    clock.advance(60.0)
    timers.pump()

    assert [key for key, _ in stage_scores] == [StageKey.MEMORY_NUMBERS]
    assert completed == []
    assert orch.submit_recall("apple") is False


def test_score_set_rejects_out_of_order_and_late_writes() -> None:
    scores = AssessmentScoreSet()
    with pytest.raises(ValueError):
        scores.record(StageKey.SPEED, 50.0)
    with pytest.raises(ValueError):
        scores.attach_narrative("too soon")

    scores.record(StageKey.MEMORY_NUMBERS, 140.0)
    assert scores.memory_numbers == 100.0
    scores.finalize()
    assert scores.next_key() is None
    with pytest.raises(ValueError):
        scores.record(StageKey.MEMORY_WORDS, 10.0)

    assert scores.attach_narrative("") is False
    assert scores.attach_narrative("first") is True
    assert scores.attach_narrative("second") is False
    assert scores.narrative == "first"

    restored = AssessmentScoreSet.from_dict(scores.to_dict())
    assert restored is not None
    assert restored.as_mapping() == scores.as_mapping()
    assert restored.narrative == "first"
