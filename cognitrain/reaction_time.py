from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .cognitive_core import Phase, SeededRng, StageSnapshot, TimedPhaseEngine, TrialRecord
from .results import StageKey
from .scoring import EARLY_CLICK_PENALTY_MS, reaction_time_score
from .timers import TimerQueue

TRIALS = 3
MIN_DELAY_S = 1.0
MAX_DELAY_S = 3.0


@dataclass(frozen=True, slots=True)
class ReactionPayload:
    stimulus_visible: bool
    trial: int
    trials: int
    last_sample_ms: float | None
    last_was_early: bool


class ReactionTimeStage:
    """intro (click to start), then per trial: waiting (random delay) -> ready.

    A click while waiting is an early click: the trial ends with a fixed
    penalty sample and the next trial begins.
    """

    def __init__(
        self,
        *,
        timers: TimerQueue,
        seed: int,
        trials: int = TRIALS,
        min_delay_s: float = MIN_DELAY_S,
        max_delay_s: float = MAX_DELAY_S,
        with_intro: bool = True,
    ) -> None:
        if trials <= 0:
            raise ValueError("trials must be > 0")
        if min_delay_s < 0.0 or max_delay_s < min_delay_s:
            raise ValueError("delay bounds must satisfy 0 <= min <= max")

        self.key = StageKey.SPEED
        self.title = "Speed Test: Reaction Time"
        self._trials = int(trials)
        rng = SeededRng(int(seed))
        self._delays = tuple(rng.uniform(min_delay_s, max_delay_s) for _ in range(self._trials))
        self._with_intro = bool(with_intro)

        self._engine = TimedPhaseEngine(timers=timers)
        self._samples_ms: list[float] = []
        self._early: list[bool] = []
        self._on_score: Callable[[float], None] | None = None
        self._score: float | None = None

    @property
    def delays_s(self) -> tuple[float, ...]:
        return self._delays

    @property
    def samples_ms(self) -> tuple[float, ...]:
        return tuple(self._samples_ms)

    @property
    def score(self) -> float | None:
        return self._score

    @property
    def phase_name(self) -> str | None:
        phase = self._engine.phase
        return None if phase is None else phase.name

    def start(self, on_score: Callable[[float], None]) -> None:
        self._on_score = on_score
        self._samples_ms = []
        self._early = []
        if self._with_intro:
            self._engine.start([Phase("intro", None)], on_complete=lambda _trials: self._begin_trial())
        else:
            self._begin_trial()

    def click(self) -> bool:
        phase = self.phase_name
        if phase in ("intro", "ready"):
            return self._engine.advance()
        if phase == "waiting":
            self._engine.cancel()
            self._record(EARLY_CLICK_PENALTY_MS, early=True)
            return True
        return False

    def cancel(self) -> None:
        self._engine.cancel()
        self._on_score = None

    def snapshot(self) -> StageSnapshot:
        phase = self.phase_name
        trial_no = min(len(self._samples_ms) + 1, self._trials)
        last = self._samples_ms[-1] if self._samples_ms else None
        last_early = bool(self._early and self._early[-1])
        if phase == "intro":
            prompt = f"Click as fast as you can when the square turns red. There will be {self._trials} trials."
        elif phase == "waiting":
            prompt = f"Wait for red... Trial {trial_no} of {self._trials}"
        elif phase == "ready":
            prompt = "CLICK!"
        else:
            prompt = "Done!"
        feedback = None
        if last_early and phase == "waiting":
            feedback = "Too early!"
        elif last is not None and phase == "waiting":
            feedback = f"{last:.0f} ms"
        return StageSnapshot(
            title=self.title,
            phase=phase,
            prompt=prompt,
            input_hint="Space or click",
            time_remaining_s=None,
            payload=ReactionPayload(
                stimulus_visible=phase == "ready",
                trial=trial_no,
                trials=self._trials,
                last_sample_ms=last,
                last_was_early=last_early,
            ),
            feedback=feedback,
        )

    def _begin_trial(self) -> None:
        delay = self._delays[len(self._samples_ms)]
        self._engine.start(
            [Phase("waiting", delay, next="ready"), Phase("ready", None)],
            on_complete=self._trial_done,
        )

    def _trial_done(self, trials: tuple[TrialRecord, ...]) -> None:
        ready = [t for t in trials if t.phase == "ready" and not t.timed_out]
        reaction_ms = ready[-1].elapsed_s * 1000.0 if ready else EARLY_CLICK_PENALTY_MS
        self._record(reaction_ms, early=False)

    def _record(self, sample_ms: float, *, early: bool) -> None:
        self._samples_ms.append(float(sample_ms))
        self._early.append(early)
        if len(self._samples_ms) < self._trials:
            self._begin_trial()
            return
        self._score = reaction_time_score(self._samples_ms)
        callback = self._on_score
        self._on_score = None
        if callback is not None:
            callback(self._score)


def build_reaction_time_stage(*, timers: TimerQueue, seed: int, trials: int = TRIALS) -> ReactionTimeStage:
    return ReactionTimeStage(timers=timers, seed=seed, trials=trials)
