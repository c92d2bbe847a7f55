from __future__ import annotations

from datetime import date
import json
import logging
from pathlib import Path
import sqlite3
from typing import Any, Protocol

from .results import AssessmentScoreSet, GameResult, GameType
from .stats import StatsSnapshot

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
KEY_PREFIX = "cognitrain_"

USER_DATA_KEY = f"{KEY_PREFIX}user_data"
ASSESSMENT_KEY = f"{KEY_PREFIX}assessment_results"
LAST_PLAYED_KEY = f"{KEY_PREFIX}last_played_date"
GAMES_PLAYED_KEY = f"{KEY_PREFIX}games_played"
CURRENT_STREAK_KEY = f"{KEY_PREFIX}current_streak"


def game_results_key(game_type: GameType) -> str:
    return f"{KEY_PREFIX}game_results_{GameType(game_type).value}"


def setting_key(name: str) -> str:
    return f"{KEY_PREFIX}setting_{name}"


class KeyValueStore(Protocol):
    def load(self, key: str) -> str | None: ...
    def save(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...
    def keys(self) -> list[str]: ...


class MemoryStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def load(self, key: str) -> str | None:
        return self._data.get(key)

    def save(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


def open_db(path: Path) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
            """
        )
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


class SqliteStore:
    """Key-value strings in a single SQLite table.

    Each call opens its own connection. Failures are logged; reads then
    return ``None`` and writes are dropped.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self, key: str) -> str | None:
        try:
            conn = open_db(self._path)
            try:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        except (sqlite3.Error, OSError):
            logger.exception("Failed to read %r from %s", key, self._path)
            return None
        return None if row is None else str(row[0])

    def save(self, key: str, value: str) -> None:
        try:
            conn = open_db(self._path)
            try:
                with conn:
                    conn.execute(
                        "INSERT INTO kv(key, value) VALUES (?, ?) "
                        "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                        (key, str(value)),
                    )
            finally:
                conn.close()
        except (sqlite3.Error, OSError):
            logger.exception("Failed to write %r to %s", key, self._path)

    def remove(self, key: str) -> None:
        try:
            conn = open_db(self._path)
            try:
                with conn:
                    conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            finally:
                conn.close()
        except (sqlite3.Error, OSError):
            logger.exception("Failed to delete %r from %s", key, self._path)

    def keys(self) -> list[str]:
        try:
            conn = open_db(self._path)
            try:
                rows = conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
            finally:
                conn.close()
        except (sqlite3.Error, OSError):
            logger.exception("Failed to list keys in %s", self._path)
            return []
        return [str(r[0]) for r in rows]


class ProgressRepository:
    """Typed access to everything the app remembers between runs.

    Values are JSON text. Anything that fails to decode is logged and treated
    as missing.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def _load_json(self, key: str) -> Any:
        raw = self._store.load(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed value stored under %r", key)
            return None

    def _save_json(self, key: str, value: Any) -> None:
        self._store.save(key, json.dumps(value))

    # --- profile ---

    def load_user_name(self) -> str | None:
        data = self._load_json(USER_DATA_KEY)
        if not isinstance(data, dict):
            return None
        name = data.get("name")
        if not isinstance(name, str):
            return None
        return name.strip() or None

    def save_user_name(self, name: str) -> None:
        self._save_json(USER_DATA_KEY, {"name": str(name).strip()})

    # --- assessment ---

    def load_assessment(self) -> AssessmentScoreSet | None:
        return AssessmentScoreSet.from_dict(self._load_json(ASSESSMENT_KEY))

    def save_assessment(self, scores: AssessmentScoreSet) -> None:
        self._save_json(ASSESSMENT_KEY, scores.to_dict())

    # --- games ---

    def load_game_results(self, game_type: GameType) -> list[GameResult]:
        data = self._load_json(game_results_key(game_type))
        if not isinstance(data, list):
            return []
        out: list[GameResult] = []
        for item in data:
            result = GameResult.from_dict(item)
            if result is not None:
                out.append(result)
        return out

    def append_game_result(self, game_type: GameType, result: GameResult) -> None:
        results = self.load_game_results(game_type)
        results.append(result)
        self._save_json(game_results_key(game_type), [r.to_dict() for r in results])

    # --- stats ---

    def load_stats(self) -> StatsSnapshot:
        games_played = self._load_json(GAMES_PLAYED_KEY)
        streak = self._load_json(CURRENT_STREAK_KEY)
        raw_last = self._load_json(LAST_PLAYED_KEY)
        last_played: date | None = None
        if isinstance(raw_last, str):
            try:
                last_played = date.fromisoformat(raw_last)
            except ValueError:
                logger.warning("Ignoring malformed last-played date %r", raw_last)
        return StatsSnapshot(
            games_played=games_played if isinstance(games_played, int) else 0,
            current_streak=streak if isinstance(streak, int) else 0,
            last_played=last_played,
        )

    def save_stats(self, snapshot: StatsSnapshot) -> None:
        self._save_json(GAMES_PLAYED_KEY, int(snapshot.games_played))
        self._save_json(CURRENT_STREAK_KEY, int(snapshot.current_streak))
        if snapshot.last_played is None:
            self._store.remove(LAST_PLAYED_KEY)
        else:
            self._save_json(LAST_PLAYED_KEY, snapshot.last_played.isoformat())

    # --- settings ---

    def load_setting(self, name: str, default: Any = None) -> Any:
        value = self._load_json(setting_key(name))
        return default if value is None else value

    def save_setting(self, name: str, value: Any) -> None:
        self._save_json(setting_key(name), value)

    def clear_all(self) -> None:
        for key in self._store.keys():
            if key.startswith(KEY_PREFIX):
                self._store.remove(key)
        logger.info("Cleared all stored progress")
