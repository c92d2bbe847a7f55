"""App-level controller: ties the core state machines to storage and navigation.

Everything here runs on the thread that pumps the TimerQueue. The UI reads
``navigator.current`` plus the active assessment/game snapshots and calls the
methods below in response to input.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date
import logging
import random

from .assessment import (
    DEFAULT_STAGE_FACTORIES,
    AssessmentOrchestrator,
    AssessmentState,
    NarrationRequester,
    StageFactory,
)
from .clock import local_today
from .dashboard import DashboardSummary, build_dashboard
from .game_session import GameSessionRunner, GameState, build_game_session
from .narrator import FALLBACK_MESSAGE
from .navigation import View, ViewNavigator
from .persistence import ProgressRepository
from .results import AssessmentScoreSet, GameResult, GameType
from .stats import StatsTracker
from .timers import TimerQueue

logger = logging.getLogger(__name__)

DARK_MODE_SETTING = "isDarkMode"


def new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


class CognitrainSession:
    def __init__(
        self,
        *,
        repo: ProgressRepository,
        timers: TimerQueue,
        narration: NarrationRequester | None = None,
        today: Callable[[], date] = local_today,
        seed_source: Callable[[], int] = new_seed,
        stage_factories: Sequence[StageFactory] = DEFAULT_STAGE_FACTORIES,
    ) -> None:
        self._repo = repo
        self._timers = timers
        self._narration = narration
        self._today = today
        self._seed_source = seed_source
        self._stage_factories = tuple(stage_factories)

        self._stats = StatsTracker(repo)
        self._navigator = ViewNavigator(can_resume=self.can_resume)
        self._user_name: str | None = None
        self._scores: AssessmentScoreSet | None = None
        self._dark_mode = False
        self._assessment: AssessmentOrchestrator | None = None
        self._game: GameSessionRunner | None = None
        self._game_type: GameType | None = None

    @property
    def navigator(self) -> ViewNavigator:
        return self._navigator

    @property
    def view(self) -> View:
        return self._navigator.current

    @property
    def timers(self) -> TimerQueue:
        return self._timers

    @property
    def repo(self) -> ProgressRepository:
        return self._repo

    @property
    def user_name(self) -> str | None:
        return self._user_name

    @property
    def scores(self) -> AssessmentScoreSet | None:
        return self._scores

    @property
    def dark_mode(self) -> bool:
        return self._dark_mode

    @property
    def assessment(self) -> AssessmentOrchestrator | None:
        return self._assessment

    @property
    def game(self) -> GameSessionRunner | None:
        return self._game

    @property
    def game_type(self) -> GameType | None:
        return self._game_type

    def can_resume(self) -> bool:
        return self._scores is not None and bool(self._user_name)

    def load(self) -> View:
        self._user_name = self._repo.load_user_name()
        self._scores = self._repo.load_assessment()
        self._dark_mode = bool(self._repo.load_setting(DARK_MODE_SETTING, False))
        view = View.DASHBOARD if self.can_resume() else View.LANDING
        self._navigator.reset(view)
        logger.info("Session loaded: user=%r, resume=%s", self._user_name, self.can_resume())
        return view

    def navigate(self, view: View) -> View:
        return self._navigator.push(view)

    # --- assessment ---

    def start_assessment(self, name: str) -> bool:
        cleaned = str(name).strip()
        if cleaned == "":
            return False
        self._user_name = cleaned
        self._repo.save_user_name(cleaned)

        if self._assessment is not None:
            self._assessment.cancel()
        self._assessment = AssessmentOrchestrator(
            timers=self._timers,
            seed=self._seed_source(),
            narration=self._narration,
            on_complete=self._assessment_complete,
            on_narrative=self._narrative_ready,
            stage_factories=self._stage_factories,
        )
        self._navigator.push(View.ASSESSMENT)
        self._assessment.start()
        return True

    def _assessment_complete(self, scores: AssessmentScoreSet) -> None:
        self._scores = scores
        self._repo.save_assessment(scores)
        # The finished assessment is not a place to go back to.
        self._navigator.reset(View.RESULTS)

    def _narrative_ready(self, scores: AssessmentScoreSet) -> None:
        if scores is not self._scores:
            logger.debug("Dropping narrative for a superseded assessment")
            return
        self._repo.save_assessment(scores)

    def profile_message(self) -> str:
        if self._scores is not None and self._scores.narrative:
            return self._scores.narrative
        return FALLBACK_MESSAGE

    def narrative_pending(self) -> bool:
        return self._assessment is not None and self._assessment.narrative_pending

    # --- navigation ---

    def back(self) -> View:
        current = self._navigator.current
        if current is View.ASSESSMENT and self._assessment is not None:
            if self._assessment.state in (AssessmentState.IDLE, AssessmentState.STAGE):
                self._assessment.cancel()
        if current is View.GAME and self._game is not None:
            self._game.cancel()
        return self._navigator.back()

    def open_results(self) -> View:
        if self._scores is None:
            return self._navigator.current
        return self._navigator.push(View.RESULTS)

    def open_game_selection(self) -> View:
        return self._navigator.push(View.GAME_SELECTION)

    def open_dashboard(self) -> View:
        return self._navigator.push(View.DASHBOARD)

    # --- games ---

    def start_game(self, game_type: GameType) -> GameSessionRunner:
        game_type = GameType(game_type)
        if self._game is not None:
            self._game.cancel()
        self._game_type = game_type
        game = build_game_session(
            game_type,
            timers=self._timers,
            seed=self._seed_source(),
            on_end=lambda result, t=game_type: self._game_ended(t, result),
        )
        self._game = game
        self._navigator.push(View.GAME)
        game.start()
        return game

    def play_again(self) -> GameSessionRunner | None:
        if self._game_type is None:
            return None
        if self._game is not None and self._game.state is GameState.RUNNING:
            return self._game
        return self.start_game(self._game_type)

    def _game_ended(self, game_type: GameType, result: GameResult) -> None:
        self._repo.append_game_result(game_type, result)
        self._stats.record_game(self._today())

    # --- misc ---

    def toggle_dark_mode(self) -> bool:
        self._dark_mode = not self._dark_mode
        self._repo.save_setting(DARK_MODE_SETTING, self._dark_mode)
        return self._dark_mode

    def dashboard(self) -> DashboardSummary:
        stats = self._stats.current()
        return build_dashboard(
            user_name=self._user_name,
            scores=self._scores,
            games_played=stats.games_played,
            current_streak=stats.current_streak,
        )

    def shutdown(self) -> None:
        if self._assessment is not None:
            self._assessment.cancel()
        if self._game is not None:
            self._game.cancel()
