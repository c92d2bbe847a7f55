from __future__ import annotations

import os
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _headless(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    # Headless SDL for CI.
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
    db = tmp_path / "progress.sqlite3"
    monkeypatch.setenv("COGNITRAIN_DB_PATH", str(db))
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    return db


def _key(key: int, unicode: str = "") -> None:
    import pygame

    pygame.event.post(pygame.event.Event(pygame.KEYDOWN, {"key": key, "unicode": unicode, "mod": 0}))


def test_ui_smoke_enter_name_and_start_assessment(_headless: Path) -> None:
    import pygame

    from cognitrain.app import run
    from cognitrain.persistence import ProgressRepository, SqliteStore

    def inject(frame: int) -> None:
        # Landing -> type a name -> begin -> toggle theme -> leave the assessment
        if frame == 2:
            _key(pygame.K_a, "A")
        elif frame == 3:
            _key(pygame.K_d, "d")
        elif frame == 4:
            _key(pygame.K_a, "a")
        elif frame == 5:
            _key(pygame.K_RETURN)
        elif frame == 7:
            _key(pygame.K_F2)
        elif frame == 9:
            _key(pygame.K_ESCAPE)

    assert run(max_frames=14, event_injector=inject) == 0

    repo = ProgressRepository(SqliteStore(_headless))
    assert repo.load_user_name() == "Ada"
    assert repo.load_setting("isDarkMode") is True
    assert repo.load_assessment() is None


def test_ui_smoke_dashboard_to_memory_match(_headless: Path) -> None:
    import pygame

    from cognitrain.app import run
    from cognitrain.persistence import ProgressRepository, SqliteStore
    from cognitrain.results import AssessmentScoreSet, GameType

    repo = ProgressRepository(SqliteStore(_headless))
    repo.save_user_name("Ada")
    scores = AssessmentScoreSet.from_dict(
        {"memoryNumbers": 60, "memoryWords": 40, "speed": 70, "logic": 80, "workingMemory": 50}
    )
    assert scores is not None
    repo.save_assessment(scores)

    def inject(frame: int) -> None:
        # Dashboard -> Play brain games -> Memory Match -> flip a card -> quit game -> back
        if frame == 2:
            _key(pygame.K_RETURN)
        elif frame == 4:
            _key(pygame.K_RETURN)
        elif frame == 6:
            _key(pygame.K_SPACE)
        elif frame == 7:
            _key(pygame.K_DOWN)
        elif frame == 8:
            _key(pygame.K_RETURN)
        elif frame == 10:
            _key(pygame.K_ESCAPE)
        elif frame == 12:
            _key(pygame.K_ESCAPE)

    assert run(max_frames=16, event_injector=inject) == 0
    # The game was abandoned, so nothing was recorded.
    assert repo.load_game_results(GameType.MEMORY_MATCH) == []
    assert repo.load_stats().games_played == 0
