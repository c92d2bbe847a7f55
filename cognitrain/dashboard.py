from __future__ import annotations

from dataclasses import dataclass

from .results import AssessmentScoreSet, GameType


@dataclass(frozen=True, slots=True)
class DashboardSummary:
    user_name: str
    scores: AssessmentScoreSet | None
    games_played: int
    current_streak: int
    recommended: tuple[GameType, ...]


def recommended_games(scores: AssessmentScoreSet | None) -> tuple[GameType, ...]:
    """Games ordered weakest area first.

    Memory Match trains the two memory scores, Quick Math trains speed and
    working memory; each area is the plain average of its two scores.
    """

    if scores is None:
        return (GameType.MEMORY_MATCH, GameType.QUICK_MATH)
    areas = [
        (GameType.MEMORY_MATCH, (scores.memory_numbers + scores.memory_words) / 2.0),
        (GameType.QUICK_MATH, (scores.speed + scores.working_memory) / 2.0),
    ]
    areas.sort(key=lambda item: item[1])
    return tuple(game for game, _ in areas[:2])


def build_dashboard(
    *,
    user_name: str | None,
    scores: AssessmentScoreSet | None,
    games_played: int,
    current_streak: int,
) -> DashboardSummary:
    return DashboardSummary(
        user_name=user_name or "User",
        scores=scores,
        games_played=int(games_played),
        current_streak=int(current_streak),
        recommended=recommended_games(scores),
    )
