from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .cognitive_core import Phase, SeededRng, StageSnapshot, TimedPhaseEngine, TrialRecord
from .results import StageKey
from .scoring import number_recall_score, word_recall_score
from .timers import TimerQueue

DIGIT_COUNT = 5
NUMBER_DISPLAY_S = 3.0

WORD_POOL: tuple[str, ...] = (
    "apple",
    "house",
    "river",
    "cloud",
    "chair",
    "music",
    "dream",
    "light",
    "ocean",
    "happy",
)
WORD_COUNT = 10
WORD_DISPLAY_S = 5.0


@dataclass(frozen=True, slots=True)
class RecallPayload:
    items: tuple[str, ...] | None
    accepting_input: bool


class NumberRecallGenerator:
    def __init__(self, rng: SeededRng) -> None:
        self._rng = rng

    def next_digits(self, count: int = DIGIT_COUNT) -> tuple[str, ...]:
        # Single digits 0-8.
        return tuple(str(self._rng.randint(0, 8)) for _ in range(count))


class WordRecallGenerator:
    def __init__(self, rng: SeededRng, pool: Sequence[str] = WORD_POOL) -> None:
        self._rng = rng
        self._pool = tuple(pool)

    def next_words(self, count: int = WORD_COUNT) -> tuple[str, ...]:
        return tuple(self._rng.shuffled(self._pool)[:count])


class RecallStage:
    """display (fixed duration) -> recall (waits for one submission)."""

    def __init__(
        self,
        *,
        key: StageKey,
        title: str,
        timers: TimerQueue,
        items: Sequence[str],
        display_s: float,
        scorer: Callable[[Sequence[str], str], float],
        display_prompt: str,
        recall_prompt: str,
        input_hint: str,
    ) -> None:
        if not items:
            raise ValueError("items must not be empty")
        if display_s < 0.0:
            raise ValueError("display_s must be >= 0")

        self.key = key
        self.title = title
        self._items = tuple(items)
        self._display_s = float(display_s)
        self._scorer = scorer
        self._display_prompt = display_prompt
        self._recall_prompt = recall_prompt
        self._input_hint = input_hint

        self._engine = TimedPhaseEngine(timers=timers)
        self._on_score: Callable[[float], None] | None = None
        self._raw: str | None = None
        self._score: float | None = None

    @property
    def items(self) -> tuple[str, ...]:
        return self._items

    @property
    def score(self) -> float | None:
        return self._score

    @property
    def phase_name(self) -> str | None:
        phase = self._engine.phase
        return None if phase is None else phase.name

    def start(self, on_score: Callable[[float], None]) -> None:
        self._on_score = on_score
        self._engine.start(
            [
                Phase("display", self._display_s, next="recall"),
                Phase("recall", None),
            ],
            on_complete=self._finish,
        )

    def submit_recall(self, raw: str) -> bool:
        if self.phase_name != "recall":
            return False
        return self._engine.advance(str(raw))

    def cancel(self) -> None:
        self._engine.cancel()
        self._on_score = None

    def snapshot(self) -> StageSnapshot:
        phase = self.phase_name
        if phase == "display":
            prompt = self._display_prompt
            payload = RecallPayload(items=self._items, accepting_input=False)
        elif phase == "recall":
            prompt = self._recall_prompt
            payload = RecallPayload(items=None, accepting_input=True)
        else:
            prompt = "Scoring..."
            payload = None
        return StageSnapshot(
            title=self.title,
            phase=phase,
            prompt=prompt,
            input_hint=self._input_hint,
            time_remaining_s=self._engine.time_remaining_s(),
            payload=payload,
        )

    def _finish(self, trials: tuple[TrialRecord, ...]) -> None:
        submitted = [t for t in trials if t.phase == "recall" and not t.timed_out]
        self._raw = "" if not submitted else str(submitted[-1].payload or "")
        self._score = float(self._scorer(self._items, self._raw))
        callback = self._on_score
        self._on_score = None
        if callback is not None:
            callback(self._score)


def build_number_recall_stage(
    *,
    timers: TimerQueue,
    seed: int,
    digit_count: int = DIGIT_COUNT,
    display_s: float = NUMBER_DISPLAY_S,
) -> RecallStage:
    digits = NumberRecallGenerator(SeededRng(seed)).next_digits(digit_count)
    return RecallStage(
        key=StageKey.MEMORY_NUMBERS,
        title="Memory Test: Number Recall",
        timers=timers,
        items=digits,
        display_s=display_s,
        scorer=number_recall_score,
        display_prompt="Remember these numbers:",
        recall_prompt="Enter the numbers you remember:",
        input_hint="Type digits then Enter",
    )


def build_word_recall_stage(
    *,
    timers: TimerQueue,
    seed: int,
    word_count: int = WORD_COUNT,
    display_s: float = WORD_DISPLAY_S,
) -> RecallStage:
    words = WordRecallGenerator(SeededRng(seed)).next_words(word_count)
    return RecallStage(
        key=StageKey.MEMORY_WORDS,
        title="Memory Test: Word Recall",
        timers=timers,
        items=words,
        display_s=display_s,
        scorer=word_recall_score,
        display_prompt="Remember these words:",
        recall_prompt="List the words you remember, separated by commas or spaces:",
        input_hint="Type words then Enter",
    )
