from __future__ import annotations

from cognitrain.navigation import View, ViewNavigator


def test_push_and_back_follow_history() -> None:
    nav = ViewNavigator(initial=View.LANDING)
    nav.push(View.ASSESSMENT)
    nav.push(View.RESULTS)
    assert nav.history == (View.LANDING, View.ASSESSMENT)

    assert nav.back() is View.ASSESSMENT
    assert nav.back() is View.LANDING
    assert nav.history == ()


def test_pushing_current_view_is_a_no_op() -> None:
    nav = ViewNavigator(initial=View.GAME_SELECTION)
    nav.push(View.GAME)
    nav.push(View.GAME)
    assert nav.current is View.GAME
    assert nav.history == (View.GAME_SELECTION,)
    assert View.GAME not in nav.history


def test_back_with_empty_history_falls_back_on_profile() -> None:
    state = {"resume": False}
    nav = ViewNavigator(initial=View.RESULTS, can_resume=lambda: state["resume"])

    assert nav.back() is View.LANDING

    state["resume"] = True
    nav.reset(View.RESULTS)
    assert nav.back() is View.DASHBOARD


def test_reset_clears_history() -> None:
    nav = ViewNavigator()
    assert nav.current is View.LOADING
    nav.push(View.LANDING)
    nav.reset(View.DASHBOARD)
    assert nav.current is View.DASHBOARD
    assert nav.can_go_back() is False
