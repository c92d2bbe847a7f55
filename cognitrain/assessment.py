"""Five-stage assessment sequencer.

Stages run strictly in order: Number Recall, Word Recall, Reaction Time,
Pattern Logic, Working Memory Math. Each stage owns one TimedPhaseEngine run
at a time and reports exactly one score. The orchestrator writes the score
into the in-progress :class:`AssessmentScoreSet`, then either starts the next
stage or finishes: the completed set is handed to ``on_complete``
synchronously and the narrative is requested afterwards, to be merged into
that same set object whenever it arrives.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from .choice_stages import build_pattern_logic_stage, build_working_memory_math_stage
from .cognitive_core import SeededRng, StageSnapshot
from .reaction_time import build_reaction_time_stage
from .recall_stages import build_number_recall_stage, build_word_recall_stage
from .results import STAGE_ORDER, AssessmentScoreSet, StageKey
from .timers import TimerQueue

logger = logging.getLogger(__name__)


class AssessmentStage(Protocol):
    key: StageKey
    title: str

    def start(self, on_score: Callable[[float], None]) -> None: ...
    def cancel(self) -> None: ...
    def snapshot(self) -> StageSnapshot: ...


class NarrationRequester(Protocol):
    def request(self, scores: Mapping[str, float], on_done: Callable[[str | None], None]) -> object: ...


StageFactory = Callable[[TimerQueue, int], AssessmentStage]

DEFAULT_STAGE_FACTORIES: tuple[StageFactory, ...] = (
    lambda timers, seed: build_number_recall_stage(timers=timers, seed=seed),
    lambda timers, seed: build_word_recall_stage(timers=timers, seed=seed),
    lambda timers, seed: build_reaction_time_stage(timers=timers, seed=seed),
    lambda timers, seed: build_pattern_logic_stage(timers=timers, seed=seed),
    lambda timers, seed: build_working_memory_math_stage(timers=timers, seed=seed),
)


class AssessmentState(str, Enum):
    IDLE = "idle"
    STAGE = "stage"
    FINISHING = "finishing"
    DONE = "done"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class AssessmentSnapshot:
    state: AssessmentState
    stage_index: int
    stage_count: int
    stage_title: str
    stage: StageSnapshot | None


class AssessmentOrchestrator:
    def __init__(
        self,
        *,
        timers: TimerQueue,
        seed: int,
        narration: NarrationRequester | None = None,
        on_stage_complete: Callable[[StageKey, float], None] | None = None,
        on_complete: Callable[[AssessmentScoreSet], None] | None = None,
        on_narrative: Callable[[AssessmentScoreSet], None] | None = None,
        stage_factories: Sequence[StageFactory] = DEFAULT_STAGE_FACTORIES,
    ) -> None:
        if len(stage_factories) != len(STAGE_ORDER):
            raise ValueError(f"expected {len(STAGE_ORDER)} stage factories")

        self._timers = timers
        self._factories = tuple(stage_factories)
        rng = SeededRng(int(seed))
        self._stage_seeds = tuple(rng.randint(1, 2**31 - 1) for _ in self._factories)
        self._narration = narration
        self._on_stage_complete = on_stage_complete
        self._on_complete = on_complete
        self._on_narrative = on_narrative

        self._state = AssessmentState.IDLE
        self._index = 0
        self._stage: AssessmentStage | None = None
        self._scores = AssessmentScoreSet()
        self._narrative_pending = False

    @property
    def state(self) -> AssessmentState:
        return self._state

    @property
    def stage_index(self) -> int:
        return self._index

    @property
    def stage(self) -> AssessmentStage | None:
        return self._stage

    @property
    def scores(self) -> AssessmentScoreSet:
        return self._scores

    @property
    def narrative_pending(self) -> bool:
        return self._narrative_pending

    def start(self) -> None:
        if self._state is not AssessmentState.IDLE:
            return
        self._begin_stage(0)

    def cancel(self) -> None:
        if self._state not in (AssessmentState.IDLE, AssessmentState.STAGE):
            return
        if self._stage is not None:
            self._stage.cancel()
        self._stage = None
        self._state = AssessmentState.CANCELLED
        logger.debug("Assessment cancelled at stage %d", self._index)

    def submit_recall(self, text: str) -> bool:
        return self._forward("submit_recall", text)

    def click(self) -> bool:
        return self._forward("click")

    def choose(self, choice: object) -> bool:
        return self._forward("choose", choice)

    def answer(self, value: bool) -> bool:
        return self._forward("answer", bool(value))

    def snapshot(self) -> AssessmentSnapshot:
        stage = self._stage
        if stage is not None:
            title = stage.title
        elif self._state in (AssessmentState.FINISHING, AssessmentState.DONE):
            title = "Analyzing your results..."
        else:
            title = ""
        return AssessmentSnapshot(
            state=self._state,
            stage_index=self._index,
            stage_count=len(self._factories),
            stage_title=title,
            stage=None if stage is None else stage.snapshot(),
        )

    def _forward(self, action: str, *args: object) -> bool:
        if self._state is not AssessmentState.STAGE or self._stage is None:
            return False
        handler = getattr(self._stage, action, None)
        if handler is None:
            return False
        return bool(handler(*args))

    def _begin_stage(self, index: int) -> None:
        self._state = AssessmentState.STAGE
        self._index = index
        stage = self._factories[index](self._timers, self._stage_seeds[index])
        if stage.key is not STAGE_ORDER[index]:
            raise ValueError(f"stage {index} must score {STAGE_ORDER[index]}, not {stage.key}")
        self._stage = stage
        logger.debug("Assessment stage %d started: %s", index, stage.title)
        stage.start(lambda score, i=index: self._stage_scored(i, score))

    def _stage_scored(self, index: int, score: float) -> None:
        if self._state is not AssessmentState.STAGE or index != self._index:
            return
        key = STAGE_ORDER[index]
        if key in self._scores.recorded():
            return
        self._scores.record(key, score)
        if self._on_stage_complete is not None:
            self._on_stage_complete(key, self._scores.score(key) or 0.0)
        if self._state is not AssessmentState.STAGE:
            return
        if index + 1 < len(self._factories):
            self._begin_stage(index + 1)
        else:
            self._finish()

    def _finish(self) -> None:
        self._state = AssessmentState.FINISHING
        self._stage = None
        scores = self._scores.finalize()
        logger.info("Assessment complete: %s", scores.as_mapping())
        if self._on_complete is not None:
            self._on_complete(scores)

        if self._narration is not None:
            self._narrative_pending = True
            self._narration.request(scores.as_mapping(), self._narrative_arrived)
        self._state = AssessmentState.DONE

    def _narrative_arrived(self, text: str | None) -> None:
        self._narrative_pending = False
        self._scores.attach_narrative(text)
        if self._on_narrative is not None:
            self._on_narrative(self._scores)
