from __future__ import annotations

from pathlib import Path

import pytest

from cognitrain.narrator import DEFAULT_MODEL
from cognitrain.settings import Settings, default_db_path

_ENV = (
    "COGNITRAIN_DB_PATH",
    "GEMINI_API_KEY",
    "API_KEY",
    "COGNITRAIN_GEMINI_MODEL",
    "COGNITRAIN_NARRATOR_TIMEOUT_S",
    "COGNITRAIN_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = Settings.from_env()
    assert settings.db_path == Path.home() / ".cognitrain.sqlite3"
    assert settings.api_key is None
    assert settings.model == DEFAULT_MODEL
    assert settings.narrator_timeout_s == 20.0
    assert settings.log_level == "INFO"


def test_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("COGNITRAIN_DB_PATH", str(tmp_path / "x.sqlite3"))
    monkeypatch.setenv("API_KEY", "fallback-key")
    monkeypatch.setenv("COGNITRAIN_GEMINI_MODEL", "gemini-test")
    monkeypatch.setenv("COGNITRAIN_NARRATOR_TIMEOUT_S", "5")
    monkeypatch.setenv("COGNITRAIN_LOG_LEVEL", "debug")

    settings = Settings.from_env()
    assert settings.db_path == tmp_path / "x.sqlite3"
    assert default_db_path() == tmp_path / "x.sqlite3"
    assert settings.api_key == "fallback-key"
    assert settings.model == "gemini-test"
    assert settings.narrator_timeout_s == 5.0
    assert settings.log_level == "DEBUG"

    monkeypatch.setenv("GEMINI_API_KEY", "primary-key")
    assert Settings.from_env().api_key == "primary-key"


def test_invalid_values_fall_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COGNITRAIN_NARRATOR_TIMEOUT_S", "soon")
    monkeypatch.setenv("COGNITRAIN_LOG_LEVEL", "chatty")
    settings = Settings.from_env()
    assert settings.narrator_timeout_s == 20.0
    assert settings.log_level == "INFO"

    monkeypatch.setenv("COGNITRAIN_NARRATOR_TIMEOUT_S", "-1")
    assert Settings.from_env().narrator_timeout_s == 20.0
