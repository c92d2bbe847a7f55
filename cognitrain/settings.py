from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path

from .narrator import DEFAULT_MODEL

logger = logging.getLogger(__name__)

DB_PATH_ENV = "COGNITRAIN_DB_PATH"
API_KEY_ENV = "GEMINI_API_KEY"
API_KEY_FALLBACK_ENV = "API_KEY"
MODEL_ENV = "COGNITRAIN_GEMINI_MODEL"
NARRATOR_TIMEOUT_ENV = "COGNITRAIN_NARRATOR_TIMEOUT_S"
LOG_LEVEL_ENV = "COGNITRAIN_LOG_LEVEL"

DEFAULT_NARRATOR_TIMEOUT_S = 20.0
DEFAULT_LOG_LEVEL = "INFO"


def default_db_path() -> Path:
    explicit = os.environ.get(DB_PATH_ENV)
    if explicit:
        return Path(explicit).expanduser()
    return Path.home() / ".cognitrain.sqlite3"


@dataclass(frozen=True, slots=True)
class Settings:
    db_path: Path
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    narrator_timeout_s: float = DEFAULT_NARRATOR_TIMEOUT_S
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "Settings":
        api_key = os.environ.get(API_KEY_ENV) or os.environ.get(API_KEY_FALLBACK_ENV) or None

        raw_timeout = os.environ.get(NARRATOR_TIMEOUT_ENV, "")
        timeout_s = DEFAULT_NARRATOR_TIMEOUT_S
        if raw_timeout.strip() != "":
            try:
                timeout_s = float(raw_timeout)
            except ValueError:
                logger.warning("Ignoring invalid %s=%r", NARRATOR_TIMEOUT_ENV, raw_timeout)
            if timeout_s <= 0.0:
                timeout_s = DEFAULT_NARRATOR_TIMEOUT_S

        level = os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).strip().upper() or DEFAULT_LOG_LEVEL
        if level not in logging.getLevelNamesMapping():
            level = DEFAULT_LOG_LEVEL

        return cls(
            db_path=default_db_path(),
            api_key=api_key,
            model=os.environ.get(MODEL_ENV, "").strip() or DEFAULT_MODEL,
            narrator_timeout_s=timeout_s,
            log_level=level,
        )
