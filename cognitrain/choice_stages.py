from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .cognitive_core import Phase, SeededRng, StageSnapshot, TimedPhaseEngine, TrialRecord
from .results import StageKey
from .scoring import proportion_score
from .timers import TimerQueue

FEEDBACK_S = 1.5


@dataclass(frozen=True, slots=True)
class ChoiceItem:
    prompt: str
    choices: tuple[object, ...]
    answer: object
    sequence: tuple[str, ...] = ()
    hint: str = ""


@dataclass(frozen=True, slots=True)
class ChoicePayload:
    item: ChoiceItem
    index: int
    total: int
    accepting_input: bool
    selected: object | None
    last_correct: bool | None


LOGIC_PATTERNS: tuple[ChoiceItem, ...] = (
    ChoiceItem(
        prompt="What comes next?",
        sequence=("A", "B", "C", "D"),
        answer="E",
        hint="Alphabetical sequence",
        choices=("C", "F", "E", "Z"),
    ),
    ChoiceItem(
        prompt="What comes next?",
        sequence=("2", "4", "6", "8"),
        answer="10",
        hint="Even numbers",
        choices=("9", "11", "10", "12"),
    ),
    ChoiceItem(
        prompt="What comes next?",
        sequence=("^", "v", "^", "v"),
        answer="^",
        hint="Alternating shapes",
        choices=("^", "v", "#", "o"),
    ),
    ChoiceItem(
        prompt="What comes next?",
        sequence=("1", "1", "2", "3", "5"),
        answer="8",
        hint="Fibonacci sequence",
        choices=("7", "8", "9", "13"),
    ),
    ChoiceItem(
        prompt="What comes next?",
        sequence=("Sun", "Mon", "Tue"),
        answer="Wed",
        hint="Days of the week",
        choices=("Sat", "Thur", "Wed", "Fri"),
    ),
)

WORKING_MEMORY_MATH: tuple[ChoiceItem, ...] = (
    ChoiceItem(prompt="8 + 5 - 3 = 10", answer=True, choices=(True, False)),
    ChoiceItem(prompt="12 - 4 + 7 = 15", answer=True, choices=(True, False)),
    ChoiceItem(prompt="9 + 6 - 2 = 12", answer=False, choices=(True, False)),
    ChoiceItem(prompt="7 + 3 - 5 = 5", answer=True, choices=(True, False)),
    ChoiceItem(prompt="15 - 8 + 1 = 6", answer=False, choices=(True, False)),
)


class ChoiceStage:
    """Per item: present (waits for a choice) -> feedback (fixed pause) -> next item."""

    def __init__(
        self,
        *,
        key: StageKey,
        title: str,
        timers: TimerQueue,
        items: Sequence[ChoiceItem],
        feedback_s: float = FEEDBACK_S,
        input_hint: str,
    ) -> None:
        if not items:
            raise ValueError("items must not be empty")
        if feedback_s < 0.0:
            raise ValueError("feedback_s must be >= 0")

        self.key = key
        self.title = title
        self._items = tuple(items)
        self._feedback_s = float(feedback_s)
        self._input_hint = input_hint

        self._engine = TimedPhaseEngine(timers=timers)
        self._index = 0
        self._correct = 0
        self._selected: object | None = None
        self._last_correct: bool | None = None
        self._on_score: Callable[[float], None] | None = None
        self._score: float | None = None

    @property
    def items(self) -> tuple[ChoiceItem, ...]:
        return self._items

    @property
    def correct(self) -> int:
        return self._correct

    @property
    def score(self) -> float | None:
        return self._score

    @property
    def phase_name(self) -> str | None:
        phase = self._engine.phase
        return None if phase is None else phase.name

    def start(self, on_score: Callable[[float], None]) -> None:
        self._on_score = on_score
        self._index = 0
        self._correct = 0
        self._present()

    def choose(self, choice: object) -> bool:
        if self.phase_name != "present":
            return False
        item = self._items[self._index]
        if choice not in item.choices:
            return False
        self._selected = choice
        self._last_correct = choice == item.answer
        if self._last_correct:
            self._correct += 1
        return self._engine.advance(choice)

    def cancel(self) -> None:
        self._engine.cancel()
        self._on_score = None

    def snapshot(self) -> StageSnapshot:
        phase = self.phase_name
        item = self._items[min(self._index, len(self._items) - 1)]
        feedback = None
        if phase == "feedback":
            feedback = "Correct!" if self._last_correct else "Incorrect."
        return StageSnapshot(
            title=self.title,
            phase=phase,
            prompt=item.prompt,
            input_hint=self._input_hint,
            time_remaining_s=self._engine.time_remaining_s(),
            payload=ChoicePayload(
                item=item,
                index=self._index,
                total=len(self._items),
                accepting_input=phase == "present",
                selected=self._selected,
                last_correct=self._last_correct,
            ),
            feedback=feedback,
        )

    def _present(self) -> None:
        self._selected = None
        self._last_correct = None
        self._engine.start(
            [Phase("present", None, next="feedback"), Phase("feedback", self._feedback_s)],
            on_complete=self._item_done,
        )

    def _item_done(self, _trials: tuple[TrialRecord, ...]) -> None:
        if self._index < len(self._items) - 1:
            self._index += 1
            self._present()
            return
        self._score = proportion_score(self._correct, len(self._items))
        callback = self._on_score
        self._on_score = None
        if callback is not None:
            callback(self._score)


class WorkingMemoryMathStage(ChoiceStage):
    def answer(self, value: bool) -> bool:
        return self.choose(bool(value))


def build_pattern_logic_stage(
    *,
    timers: TimerQueue,
    seed: int,
    feedback_s: float = FEEDBACK_S,
) -> ChoiceStage:
    return ChoiceStage(
        key=StageKey.LOGIC,
        title="Logic Test: Find the Pattern",
        timers=timers,
        items=SeededRng(seed).shuffled(LOGIC_PATTERNS),
        feedback_s=feedback_s,
        input_hint="Press 1-4 to choose",
    )


def build_working_memory_math_stage(
    *,
    timers: TimerQueue,
    seed: int,
    feedback_s: float = FEEDBACK_S,
) -> WorkingMemoryMathStage:
    return WorkingMemoryMathStage(
        key=StageKey.WORKING_MEMORY,
        title="Working Memory Test: Quick Math",
        timers=timers,
        items=SeededRng(seed).shuffled(WORKING_MEMORY_MATH),
        feedback_s=feedback_s,
        input_hint="T = True, F = False",
    )
