from __future__ import annotations

import math
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from .timers import TimerQueue

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Phase:
    """One named sub-state of a timed run.

    ``duration_s`` of ``None`` waits for a manual :meth:`TimedPhaseEngine.advance`.
    ``next`` names the successor phase; ``None`` completes the run.
    """

    name: str
    duration_s: float | None = None
    next: str | None = None


@dataclass(frozen=True, slots=True)
class TrialRecord:
    phase: str
    payload: object | None
    elapsed_s: float
    timed_out: bool = False


class EngineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class StageSnapshot:
    """View model for the UI (pure data)."""

    title: str
    phase: str | None
    prompt: str
    input_hint: str
    time_remaining_s: float | None
    payload: object | None = None
    feedback: str | None = None


PhaseCallback = Callable[[Phase], None]
CompleteCallback = Callable[[tuple[TrialRecord, ...]], None]


class TimedPhaseEngine:
    """Reusable phase runner: display -> recall, waiting -> ready, problem -> next.

    - Time is entirely via the injected TimerQueue (and its clock).
    - At most one timer is pending per run. Every armed timer remembers the
      generation that armed it; a fire with a stale generation is ignored, so
      a timer that races a cancel or a manual advance is a no-op.
    """

    def __init__(self, *, timers: TimerQueue) -> None:
        self._timers = timers
        self._state = EngineState.IDLE
        self._phases: dict[str, Phase] = {}
        self._current: Phase | None = None
        self._trials: list[TrialRecord] = []
        self._generation = 0
        self._timer_id: int | None = None
        self._run_started_at_s: float | None = None
        self._phase_started_at_s: float | None = None
        self._on_phase_change: PhaseCallback | None = None
        self._on_complete: CompleteCallback | None = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def phase(self) -> Phase | None:
        return self._current

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def trials(self) -> tuple[TrialRecord, ...]:
        return tuple(self._trials)

    def is_running(self) -> bool:
        return self._state is EngineState.RUNNING

    def start(
        self,
        phases: Sequence[Phase],
        *,
        on_phase_change: PhaseCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> None:
        if not phases:
            raise ValueError("phases must not be empty")
        by_name: dict[str, Phase] = {}
        for p in phases:
            if p.name in by_name:
                raise ValueError(f"duplicate phase name: {p.name!r}")
            by_name[p.name] = p
        for p in phases:
            if p.next is not None and p.next not in by_name:
                raise ValueError(f"unknown successor phase: {p.next!r}")

        # Starting over an active run replaces it.
        self.cancel()

        self._phases = by_name
        self._trials = []
        self._on_phase_change = on_phase_change
        self._on_complete = on_complete
        self._state = EngineState.RUNNING
        self._run_started_at_s = self._timers.now()
        self._enter(phases[0].name)

    def advance(self, payload: object | None = None) -> bool:
        """Leave the current phase early, recording ``payload``. Returns True if accepted."""

        if self._state is not EngineState.RUNNING or self._current is None:
            return False
        current = self._current
        self._disarm()
        self._trials.append(
            TrialRecord(phase=current.name, payload=payload, elapsed_s=self.phase_elapsed_s())
        )
        self._transition(current.next)
        return True

    def cancel(self) -> None:
        if self._state is not EngineState.RUNNING:
            return
        self._disarm()
        self._generation += 1
        self._state = EngineState.CANCELLED
        self._current = None

    def time_remaining_s(self) -> float | None:
        if self._state is not EngineState.RUNNING or self._current is None:
            return None
        if self._current.duration_s is None:
            return None
        return max(0.0, self._current.duration_s - self.phase_elapsed_s())

    def phase_elapsed_s(self) -> float:
        if self._phase_started_at_s is None:
            return 0.0
        return max(0.0, self._timers.now() - self._phase_started_at_s)

    def run_elapsed_s(self) -> float:
        if self._run_started_at_s is None:
            return 0.0
        return max(0.0, self._timers.now() - self._run_started_at_s)

    def _enter(self, name: str) -> None:
        while True:
            phase = self._phases[name]
            self._current = phase
            self._generation += 1
            gen = self._generation
            self._phase_started_at_s = self._timers.now()

            if self._on_phase_change is not None:
                self._on_phase_change(phase)
            if self._state is not EngineState.RUNNING or self._generation != gen:
                # The callback cancelled or advanced the run.
                return

            if phase.duration_s is None:
                return
            if phase.duration_s > 0.0:
                self._timer_id = self._timers.call_later(phase.duration_s, lambda: self._expire(gen))
                return

            # Zero or negative duration: already expired, no timer.
            self._trials.append(TrialRecord(phase=phase.name, payload=None, elapsed_s=0.0, timed_out=True))
            if phase.next is None:
                self._complete()
                return
            name = phase.next

    def _expire(self, gen: int) -> None:
        if self._state is not EngineState.RUNNING or gen != self._generation:
            return
        assert self._current is not None
        self._timer_id = None
        current = self._current
        self._trials.append(
            TrialRecord(
                phase=current.name,
                payload=None,
                elapsed_s=self.phase_elapsed_s(),
                timed_out=True,
            )
        )
        self._transition(current.next)

    def _transition(self, next_name: str | None) -> None:
        if next_name is None:
            self._complete()
        else:
            self._enter(next_name)

    def _complete(self) -> None:
        self._disarm()
        self._state = EngineState.COMPLETED
        self._current = None
        if self._on_complete is not None:
            self._on_complete(tuple(self._trials))

    def _disarm(self) -> None:
        self._timers.cancel(self._timer_id)
        self._timer_id = None


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def choice(self, seq: Sequence[T]) -> T:
        return self._rng.choice(seq)

    def uniform(self, a: float, b: float) -> float:
        return self._rng.uniform(a, b)

    def random(self) -> float:
        return self._rng.random()

    def shuffled(self, seq: Sequence[T]) -> list[T]:
        out = list(seq)
        self._rng.shuffle(out)
        return out


def clamp_score(x: float) -> float:
    """Clamp to the 0-100 score range."""

    return 0.0 if x <= 0.0 else 100.0 if x >= 100.0 else float(x)


def round_half_up(x: float) -> int:
    # Scores are shown as whole percentages.
    return int(math.floor(x + 0.5))
