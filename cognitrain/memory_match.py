from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .cognitive_core import Phase, SeededRng, TimedPhaseEngine, TrialRecord
from .game_session import GameSessionRunner, GameSnapshot, GameState
from .results import GameResult, GameType
from .scoring import memory_match_accuracy, memory_match_score
from .timers import TimerQueue

GRID_ROWS = 4
GRID_COLS = 2
ICONS: tuple[str, ...] = ("BRAIN", "IDEA", "STAR", "PUZZLE", "TIME", "SPARK", "SEARCH", "LINK")
GAME_DURATION_S = 60.0
FLIP_BACK_S = 1.0


@dataclass(frozen=True, slots=True)
class CardView:
    index: int
    icon: str
    face_up: bool
    matched: bool


@dataclass(frozen=True, slots=True)
class MemoryMatchPayload:
    cards: tuple[CardView, ...]
    rows: int
    cols: int
    matched_pairs: int
    total_pairs: int
    awaiting_flip_back: bool


def deal_cards(rng: SeededRng, *, total_cards: int = GRID_ROWS * GRID_COLS) -> tuple[str, ...]:
    if total_cards <= 0 or total_cards % 2 != 0:
        raise ValueError("total_cards must be a positive even number")
    if total_cards // 2 > len(ICONS):
        raise ValueError("not enough icons for the grid")
    icons = ICONS[: total_cards // 2]
    return tuple(rng.shuffled(icons + icons))


class MemoryMatchSession(GameSessionRunner):
    game_type = GameType.MEMORY_MATCH

    def __init__(
        self,
        *,
        timers: TimerQueue,
        seed: int,
        on_end: Callable[[GameResult], None] | None = None,
        rows: int = GRID_ROWS,
        cols: int = GRID_COLS,
        duration_s: float = GAME_DURATION_S,
        flip_back_s: float = FLIP_BACK_S,
    ) -> None:
        super().__init__(timers=timers, seed=seed, on_end=on_end)
        if duration_s <= 0.0:
            raise ValueError("duration_s must be > 0")
        if flip_back_s < 0.0:
            raise ValueError("flip_back_s must be >= 0")

        self._rows = int(rows)
        self._cols = int(cols)
        self._duration_s = float(duration_s)
        self._flip_back_s = float(flip_back_s)
        self._icons = deal_cards(self._rng, total_cards=self._rows * self._cols)
        self._face_up: list[int] = []
        self._matched: set[int] = set()
        self._matched_pairs = 0

        self._game_clock = TimedPhaseEngine(timers=timers)
        self._flip_back = TimedPhaseEngine(timers=timers)

    @property
    def icons(self) -> tuple[str, ...]:
        return self._icons

    @property
    def total_cards(self) -> int:
        return len(self._icons)

    @property
    def matched_pairs(self) -> int:
        return self._matched_pairs

    @property
    def face_up(self) -> tuple[int, ...]:
        return tuple(self._face_up)

    def flip_card(self, index: int) -> bool:
        """Turn a card face-up. Returns False (and changes nothing) if not allowed."""

        if self._state is not GameState.RUNNING:
            return False
        if not (0 <= index < len(self._icons)):
            return False
        if len(self._face_up) >= 2:
            return False
        if index in self._matched or index in self._face_up:
            return False

        self._face_up.append(index)
        if len(self._face_up) == 2:
            self._resolve_pair()
        return True

    def snapshot(self) -> GameSnapshot:
        cards = tuple(
            CardView(
                index=i,
                icon=icon,
                face_up=i in self._face_up or i in self._matched,
                matched=i in self._matched,
            )
            for i, icon in enumerate(self._icons)
        )
        return GameSnapshot(
            game_type=self.game_type,
            title=self.title,
            state=self._state,
            score=self._score,
            time_remaining_s=self._game_clock.time_remaining_s(),
            progress=memory_match_accuracy(self._matched_pairs, len(self._icons)),
            payload=MemoryMatchPayload(
                cards=cards,
                rows=self._rows,
                cols=self._cols,
                matched_pairs=self._matched_pairs,
                total_pairs=len(self._icons) // 2,
                awaiting_flip_back=self._flip_back.is_running(),
            ),
            result=self._result,
        )

    def _resolve_pair(self) -> None:
        first, second = self._face_up
        if self._icons[first] == self._icons[second]:
            self._matched.update((first, second))
            self._matched_pairs += 1
            self._score = memory_match_score(self._matched_pairs)
            self._face_up.clear()
            if self._matched_pairs * 2 == len(self._icons):
                self._finish()
            return
        # Mismatch: block further flips until both cards turn back.
        self._flip_back.start([Phase("flip_back", self._flip_back_s)], on_complete=self._flip_back_done)

    def _flip_back_done(self, _trials: tuple[TrialRecord, ...]) -> None:
        self._face_up.clear()

    def _clock_expired(self, _trials: tuple[TrialRecord, ...]) -> None:
        self._finish()

    def _finish(self) -> None:
        elapsed = min(self._duration_s, self._game_clock.run_elapsed_s())
        self._end(
            accuracy=memory_match_accuracy(self._matched_pairs, len(self._icons)),
            elapsed_s=elapsed,
        )

    def _arm(self) -> None:
        self._game_clock.start([Phase("play", self._duration_s)], on_complete=self._clock_expired)

    def _teardown(self) -> None:
        self._game_clock.cancel()
        self._flip_back.cancel()
