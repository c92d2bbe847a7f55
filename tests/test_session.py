from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date

from cognitrain.cognitive_core import StageSnapshot
from cognitrain.game_session import GameState
from cognitrain.narrator import FALLBACK_MESSAGE
from cognitrain.navigation import View
from cognitrain.persistence import MemoryStore, ProgressRepository
from cognitrain.quick_math import QuickMathSession
from cognitrain.results import STAGE_ORDER, GameType, StageKey
from cognitrain.session import CognitrainSession
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
    pending: list[Callable[[str | None], None]] = field(default_factory=list)

    def request(self, scores: Mapping[str, float], on_done: Callable[[str | None], None]) -> None:
        self.pending.append(on_done)


class _ClickStage:
    """Scores a fixed value on the first click."""

    def __init__(self, key: StageKey, score: float) -> None:
        self.key = key
        self.title = key.value
        self._score = score
        self._on_score: Callable[[float], None] | None = None

    def start(self, on_score: Callable[[float], None]) -> None:
        self._on_score = on_score

    def click(self) -> bool:
        callback, self._on_score = self._on_score, None
        if callback is None:
            return False
        callback(self._score)
        return True

    def cancel(self) -> None:
        self._on_score = None

    def snapshot(self) -> StageSnapshot:
        return StageSnapshot(title=self.title, phase=None, prompt="", input_hint="", time_remaining_s=None)


def _factories(scores: tuple[float, ...] = (80.0, 60.0, 40.0, 100.0, 20.0)):
    return tuple(
        (lambda timers, seed, k=key, s=score: _ClickStage(k, s)) for key, score in zip(STAGE_ORDER, scores)
    )


def _session(
    store: MemoryStore | None = None,
    *,
    today: date = date(2024, 7, 1),
) -> tuple[FakeClock, CognitrainSession, FakeNarration]:
    clock = FakeClock()
    narration = FakeNarration()
    session = CognitrainSession(
        repo=ProgressRepository(store if store is not None else MemoryStore()),
        timers=TimerQueue(clock),
        narration=narration,
        today=lambda: today,
        seed_source=lambda: 1234,
        stage_factories=_factories(),
    )
    return clock, session, narration


def _finish_assessment(session: CognitrainSession) -> None:
    for _ in STAGE_ORDER:
        assert session.assessment is not None
        assert session.assessment.click() is True


def test_first_run_lands_on_landing() -> None:
    _, session, _ = _session()
    assert session.view is View.LOADING
    assert session.load() is View.LANDING
    assert session.navigator.history == ()
    assert session.dashboard().user_name == "User"


def test_blank_name_is_rejected() -> None:
    _, session, _ = _session()
    session.load()
    assert session.start_assessment("   ") is False
    assert session.view is View.LANDING


def test_assessment_completion_saves_and_shows_results() -> None:
    store = MemoryStore()
    _, session, narration = _session(store)
    session.load()

    assert session.start_assessment("  Ada  ") is True
    assert session.view is View.ASSESSMENT
    _finish_assessment(session)

    assert session.view is View.RESULTS
    assert session.profile_message() == FALLBACK_MESSAGE
    assert session.narrative_pending() is True

    repo = ProgressRepository(store)
    assert repo.load_user_name() == "Ada"
    saved = repo.load_assessment()
    assert saved is not None
    assert saved.as_mapping()["logic"] == 100.0
    assert saved.narrative is None

    narration.pending[0]("Your logic is excellent.")
    assert session.profile_message() == "Your logic is excellent."
    assert repo.load_assessment().narrative == "Your logic is excellent."

    # Nothing behind RESULTS: back lands on the dashboard.
    assert session.back() is View.DASHBOARD


def test_back_during_assessment_cancels_it() -> None:
    _, session, _ = _session()
    session.load()
    session.start_assessment("Ada")
    session.assessment.click()

    assert session.back() is View.LANDING
    assert session.assessment.click() is False
    assert session.scores is None


def test_returning_user_resumes_on_dashboard() -> None:
    store = MemoryStore()
    _, first, _ = _session(store)
    first.load()
    first.start_assessment("Ada")
    _finish_assessment(first)

    _, second, _ = _session(store)
    assert second.load() is View.DASHBOARD
    summary = second.dashboard()
    assert summary.user_name == "Ada"
    # speed 40 / working memory 20 is weaker than memory 80 / 60.
    assert summary.recommended[0] is GameType.QUICK_MATH


def test_game_end_records_result_and_stats_once() -> None:
    store = MemoryStore()
    clock, session, _ = _session(store)
    session.load()
    session.start_assessment("Ada")
    _finish_assessment(session)
    session.open_game_selection()

    game = session.start_game(GameType.QUICK_MATH)
    assert isinstance(game, QuickMathSession)
    assert session.view is View.GAME
    for statement in game.statements:
        clock.advance(1.0)
        game.answer(statement.is_true)

    assert game.state is GameState.ENDED
    assert session.view is View.GAME
    repo = ProgressRepository(store)
    assert [r.score for r in repo.load_game_results(GameType.QUICK_MATH)] == [1000]
    assert session.dashboard().games_played == 1
    assert session.dashboard().current_streak == 1

    again = session.play_again()
    assert again is not None and again is not game
    assert again.state is GameState.RUNNING
    assert session.view is View.GAME

    # Leaving mid-game discards it.
    assert session.back() is View.GAME_SELECTION
    assert again.state is GameState.DISCARDED
    assert session.timers.pending_count() == 0
    assert len(repo.load_game_results(GameType.QUICK_MATH)) == 1
    assert session.dashboard().games_played == 1


def test_dark_mode_is_persisted() -> None:
    store = MemoryStore()
    _, session, _ = _session(store)
    session.load()
    assert session.dark_mode is False
    assert session.toggle_dark_mode() is True

    _, reloaded, _ = _session(store)
    reloaded.load()
    assert reloaded.dark_mode is True
