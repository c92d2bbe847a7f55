from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .cognitive_core import SeededRng
from .results import GAME_DESCRIPTIONS, GameResult, GameType, utc_now_iso
from .timers import TimerQueue

logger = logging.getLogger(__name__)


class GameState(str, Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    ENDED = "ended"
    DISCARDED = "discarded"


@dataclass(frozen=True, slots=True)
class GameSnapshot:
    """View model for the UI (pure data)."""

    game_type: GameType
    title: str
    state: GameState
    score: int
    time_remaining_s: float | None
    progress: float
    payload: object | None = None
    result: GameResult | None = None


class GameSessionRunner:
    """One playthrough of one game: INITIALIZING -> RUNNING -> ENDED.

    Stimuli are generated at construction from the seed. ``start()`` arms the
    clocks. The run ends exactly once and emits one GameResult through
    ``on_end``; ``cancel()`` discards it without a result and cancels every
    pending timer.
    """

    game_type: GameType

    def __init__(
        self,
        *,
        timers: TimerQueue,
        seed: int,
        on_end: Callable[[GameResult], None] | None = None,
        timestamp: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._timers = timers
        self._rng = SeededRng(int(seed))
        self._on_end = on_end
        self._timestamp = timestamp
        self._state = GameState.INITIALIZING
        self._result: GameResult | None = None
        self._score = 0

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def result(self) -> GameResult | None:
        return self._result

    @property
    def score(self) -> int:
        return self._score

    @property
    def title(self) -> str:
        return GAME_DESCRIPTIONS[self.game_type].title

    def start(self) -> None:
        if self._state is not GameState.INITIALIZING:
            return
        self._state = GameState.RUNNING
        logger.debug("%s started", self.title)
        self._arm()

    def cancel(self) -> None:
        if self._state in (GameState.ENDED, GameState.DISCARDED):
            return
        self._state = GameState.DISCARDED
        self._teardown()
        logger.debug("%s cancelled", self.title)

    def snapshot(self) -> GameSnapshot:
        raise NotImplementedError

    def _end(self, *, accuracy: float | None, elapsed_s: float | None) -> None:
        if self._state is not GameState.RUNNING:
            return
        self._state = GameState.ENDED
        self._teardown()
        self._result = GameResult(
            score=int(self._score),
            accuracy=accuracy,
            elapsed_s=elapsed_s,
            completed_at=self._timestamp(),
        )
        logger.info("%s ended: %s", self.title, self._result)
        if self._on_end is not None:
            self._on_end(self._result)

    def _arm(self) -> None:
        raise NotImplementedError

    def _teardown(self) -> None:
        raise NotImplementedError


def build_game_session(
    game_type: GameType,
    *,
    timers: TimerQueue,
    seed: int,
    on_end: Callable[[GameResult], None] | None = None,
) -> GameSessionRunner:
    # Local imports: the game modules subclass GameSessionRunner.
    from .memory_match import MemoryMatchSession
    from .quick_math import QuickMathSession

    if game_type is GameType.MEMORY_MATCH:
        return MemoryMatchSession(timers=timers, seed=seed, on_end=on_end)
    if game_type is GameType.QUICK_MATH:
        return QuickMathSession(timers=timers, seed=seed, on_end=on_end)
    raise ValueError(f"unknown game type: {game_type!r}")
