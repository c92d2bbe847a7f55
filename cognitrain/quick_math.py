from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .cognitive_core import Phase, SeededRng, TimedPhaseEngine, TrialRecord
from .game_session import GameSessionRunner, GameSnapshot, GameState
from .results import GameResult, GameType
from .scoring import quick_math_accuracy, quick_math_delta
from .timers import TimerQueue

PROBLEM_COUNT = 10
TIME_PER_PROBLEM_S = 10.0
TRUE_PROBABILITY = 0.7


@dataclass(frozen=True, slots=True)
class MathStatement:
    left: int
    op: str
    right: int
    actual: int
    shown: int

    @property
    def prompt(self) -> str:
        return f"{self.left} {self.op} {self.right} = {self.shown}"

    @property
    def is_true(self) -> bool:
        return self.actual == self.shown


@dataclass(frozen=True, slots=True)
class QuickMathPayload:
    statement: MathStatement
    index: int
    total: int
    correct: int
    last_correct: bool | None


class QuickMathGenerator:
    """``a op b = shown`` with a, b in [1, 20]; about 30% are falsified by +-[1, 5]."""

    def __init__(self, rng: SeededRng) -> None:
        self._rng = rng

    def next_statement(self) -> MathStatement:
        left = self._rng.randint(1, 20)
        right = self._rng.randint(1, 20)
        op = "+" if self._rng.random() < 0.5 else "-"
        actual = left + right if op == "+" else left - right
        if self._rng.random() < TRUE_PROBABILITY:
            shown = actual
        else:
            sign = 1 if self._rng.random() < 0.5 else -1
            shown = actual + sign * self._rng.randint(1, 5)
        return MathStatement(left=left, op=op, right=right, actual=actual, shown=shown)


class QuickMathSession(GameSessionRunner):
    game_type = GameType.QUICK_MATH

    def __init__(
        self,
        *,
        timers: TimerQueue,
        seed: int,
        on_end: Callable[[GameResult], None] | None = None,
        problem_count: int = PROBLEM_COUNT,
        time_per_problem_s: float = TIME_PER_PROBLEM_S,
    ) -> None:
        super().__init__(timers=timers, seed=seed, on_end=on_end)
        if problem_count <= 0:
            raise ValueError("problem_count must be > 0")
        if time_per_problem_s <= 0.0:
            raise ValueError("time_per_problem_s must be > 0")

        gen = QuickMathGenerator(self._rng)
        self._statements = tuple(gen.next_statement() for _ in range(int(problem_count)))
        self._time_per_problem_s = float(time_per_problem_s)
        self._index = 0
        self._correct = 0
        self._last_correct: bool | None = None

        # Unbounded overall clock: only measures elapsed time.
        self._overall = TimedPhaseEngine(timers=timers)
        self._problem_clock = TimedPhaseEngine(timers=timers)

    @property
    def statements(self) -> tuple[MathStatement, ...]:
        return self._statements

    @property
    def index(self) -> int:
        return self._index

    @property
    def correct(self) -> int:
        return self._correct

    def answer(self, value: bool) -> bool:
        """Judge the current statement true or false."""

        if self._state is not GameState.RUNNING:
            return False
        return self._problem_clock.advance(bool(value))

    def snapshot(self) -> GameSnapshot:
        statement = self._statements[min(self._index, len(self._statements) - 1)]
        return GameSnapshot(
            game_type=self.game_type,
            title=self.title,
            state=self._state,
            score=self._score,
            time_remaining_s=self._problem_clock.time_remaining_s(),
            progress=(self._index / len(self._statements)) * 100.0,
            payload=QuickMathPayload(
                statement=statement,
                index=self._index,
                total=len(self._statements),
                correct=self._correct,
                last_correct=self._last_correct,
            ),
            result=self._result,
        )

    def _present(self) -> None:
        self._problem_clock.start(
            [Phase("problem", self._time_per_problem_s)],
            on_complete=self._judged,
        )

    def _judged(self, trials: tuple[TrialRecord, ...]) -> None:
        last = trials[-1]
        statement = self._statements[self._index]
        is_correct = (not last.timed_out) and bool(last.payload) == statement.is_true
        self._last_correct = is_correct
        self._score += quick_math_delta(is_correct)
        if is_correct:
            self._correct += 1

        if self._index < len(self._statements) - 1:
            self._index += 1
            self._present()
            return
        self._end(
            accuracy=quick_math_accuracy(self._correct, len(self._statements)),
            elapsed_s=self._overall.run_elapsed_s(),
        )

    def _arm(self) -> None:
        self._overall.start([Phase("play", None)])
        self._present()

    def _teardown(self) -> None:
        self._problem_clock.cancel()
        self._overall.cancel()
