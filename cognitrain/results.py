from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .cognitive_core import clamp_score


class StageKey(str, Enum):
    MEMORY_NUMBERS = "memoryNumbers"
    MEMORY_WORDS = "memoryWords"
    SPEED = "speed"
    LOGIC = "logic"
    WORKING_MEMORY = "workingMemory"


STAGE_ORDER: tuple[StageKey, ...] = (
    StageKey.MEMORY_NUMBERS,
    StageKey.MEMORY_WORDS,
    StageKey.SPEED,
    StageKey.LOGIC,
    StageKey.WORKING_MEMORY,
)


class GameType(str, Enum):
    MEMORY_MATCH = "MEMORY_MATCH"
    QUICK_MATH = "QUICK_MATH"


@dataclass(frozen=True, slots=True)
class GameDescription:
    title: str
    description: str
    icon: str


GAME_DESCRIPTIONS: dict[GameType, GameDescription] = {
    GameType.MEMORY_MATCH: GameDescription(
        title="Memory Match",
        description="Flip cards to find matching pairs and sharpen your visual memory.",
        icon="MM",
    ),
    GameType.QUICK_MATH: GameDescription(
        title="Quick Math",
        description="Judge arithmetic statements rapidly to boost your numerical processing speed.",
        icon="QM",
    ),
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True, slots=True)
class GameResult:
    """Outcome of one completed playthrough. Score may be negative."""

    score: int
    accuracy: float | None = None
    elapsed_s: float | None = None
    completed_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"score": int(self.score), "date": self.completed_at}
        if self.accuracy is not None:
            out["accuracy"] = float(self.accuracy)
        if self.elapsed_s is not None:
            out["time"] = float(self.elapsed_s)
        return out

    @classmethod
    def from_dict(cls, data: object) -> "GameResult | None":
        if not isinstance(data, dict):
            return None
        try:
            score = int(data["score"])
        except (KeyError, TypeError, ValueError):
            return None
        accuracy = data.get("accuracy")
        elapsed = data.get("time")
        return cls(
            score=score,
            accuracy=None if accuracy is None else float(accuracy),
            elapsed_s=None if elapsed is None else float(elapsed),
            completed_at=str(data.get("date", "")),
        )


class AssessmentScoreSet:
    """Five stage scores plus an optional narrative.

    Scores are recorded once each, in stage order. After :meth:`finalize` the
    numbers are frozen and only the narrative may still arrive, once.
    """

    def __init__(self) -> None:
        self._scores: dict[StageKey, float] = {}
        self._complete = False
        self._narrative: str | None = None

    @property
    def complete(self) -> bool:
        return self._complete

    @property
    def narrative(self) -> str | None:
        return self._narrative

    def next_key(self) -> StageKey | None:
        if self._complete or len(self._scores) >= len(STAGE_ORDER):
            return None
        return STAGE_ORDER[len(self._scores)]

    def recorded(self) -> tuple[StageKey, ...]:
        return tuple(self._scores)

    def record(self, key: StageKey, score: float) -> None:
        if self._complete:
            raise ValueError("score set is already complete")
        expected = self.next_key()
        if key is not expected:
            raise ValueError(f"expected score for {expected}, got {key}")
        self._scores[key] = clamp_score(float(score))

    def finalize(self) -> "AssessmentScoreSet":
        for key in STAGE_ORDER:
            self._scores.setdefault(key, 0.0)
        self._complete = True
        return self

    def attach_narrative(self, text: str | None) -> bool:
        """Merge the narrative once the numbers are final. Empty text is dropped."""

        if not self._complete:
            raise ValueError("narrative can only follow a complete score set")
        if self._narrative is not None:
            return False
        cleaned = "" if text is None else str(text).strip()
        if cleaned == "":
            return False
        self._narrative = cleaned
        return True

    def score(self, key: StageKey) -> float | None:
        return self._scores.get(key)

    @property
    def memory_numbers(self) -> float:
        return self._scores.get(StageKey.MEMORY_NUMBERS, 0.0)

    @property
    def memory_words(self) -> float:
        return self._scores.get(StageKey.MEMORY_WORDS, 0.0)

    @property
    def speed(self) -> float:
        return self._scores.get(StageKey.SPEED, 0.0)

    @property
    def logic(self) -> float:
        return self._scores.get(StageKey.LOGIC, 0.0)

    @property
    def working_memory(self) -> float:
        return self._scores.get(StageKey.WORKING_MEMORY, 0.0)

    def as_mapping(self) -> dict[str, float]:
        return {key.value: self._scores.get(key, 0.0) for key in STAGE_ORDER}

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.as_mapping())
        if self._narrative is not None:
            out["profileMessage"] = self._narrative
        return out

    @classmethod
    def from_dict(cls, data: object) -> "AssessmentScoreSet | None":
        """Rebuild a completed set from its stored form."""

        if not isinstance(data, dict):
            return None
        out = cls()
        for key in STAGE_ORDER:
            raw = data.get(key.value, 0.0)
            try:
                value = float(raw)
            except (TypeError, ValueError):
                value = 0.0
            out._scores[key] = clamp_score(value)
        out._complete = True
        message = data.get("profileMessage")
        if isinstance(message, str) and message.strip():
            out._narrative = message.strip()
        return out
