from __future__ import annotations

from collections.abc import Callable
from enum import Enum


class View(str, Enum):
    LOADING = "LOADING"
    LANDING = "LANDING"
    ASSESSMENT = "ASSESSMENT"
    RESULTS = "RESULTS"
    GAME_SELECTION = "GAME_SELECTION"
    GAME = "GAME"
    DASHBOARD = "DASHBOARD"


class ViewNavigator:
    """Current view plus the history of previous views.

    History never holds the view being displayed. Going back with no history
    lands on the dashboard when the user can resume (a finished assessment and
    a name on file), else on the landing page.
    """

    def __init__(
        self,
        *,
        can_resume: Callable[[], bool] = lambda: False,
        initial: View = View.LOADING,
    ) -> None:
        self._can_resume = can_resume
        self._current = initial
        self._history: list[View] = []

    @property
    def current(self) -> View:
        return self._current

    @property
    def history(self) -> tuple[View, ...]:
        return tuple(self._history)

    def can_go_back(self) -> bool:
        return bool(self._history)

    def push(self, view: View) -> View:
        if view is self._current:
            return self._current
        self._history.append(self._current)
        self._current = view
        return self._current

    def back(self) -> View:
        if self._history:
            self._current = self._history.pop()
        else:
            self._current = self.fallback()
        return self._current

    def fallback(self) -> View:
        return View.DASHBOARD if self._can_resume() else View.LANDING

    def reset(self, view: View) -> None:
        self._current = view
        self._history.clear()
