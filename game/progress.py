"""
Equation Quest — local JSON progress store.

Keeps the player's cumulative stats and their authored levels in
``<data dir>/progress.json``:

  total_points / weekly_points   points from solved levels
  badges                         unlocked badge ids, no duplicates
  fastest_times                  ``level_<n>`` → best solve time in seconds
  levels_completed / levels_created
  custom_levels                  saved custom-level payloads, newest first

Weekly points go back to zero once a week has passed since the last reset,
or on the first visit of a Monday.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import uuid
from datetime import datetime
from typing import Callable, Optional

from game import config
from game.session import PlayerProgress
from game.templates import Level

logger = logging.getLogger(__name__)


def _default_stats(now: datetime) -> dict:
    return {
        "total_points": 0,
        "weekly_points": 0,
        "last_week_reset": now.isoformat(timespec="seconds"),
        "badges": [],
        "fastest_times": {},
        "levels_completed": 0,
        "levels_created": 0,
        "custom_levels": [],
    }


def level_key(level_index: int) -> str:
    """Fastest-time key for a 0-based campaign index (``level_1`` …)."""
    return f"level_{level_index + 1}"


class ProgressStore:
    """File-backed progress tracker.  Every change is written straight away.

    One store is shared by all request threads, so every read-modify-write
    of the in-memory stats runs under a lock.
    """

    def __init__(self, data_dir: Optional[str] = None,
                 clock: Callable[[], datetime] = datetime.now) -> None:
        self._data_dir = data_dir or config.DATA_DIR
        self._file_path = os.path.join(self._data_dir, config.DATA_FILE_NAME)
        self._clock = clock
        self._lock = threading.RLock()
        self._db = self._load()
        if self._maybe_reset_week():
            self._save()

    @property
    def file_path(self) -> str:
        return self._file_path

    # ── Tracker interface ────────────────────────────────────────────────

    def add_points(self, points: int) -> None:
        with self._lock:
            self._maybe_reset_week()
            self._db["total_points"] += points
            self._db["weekly_points"] += points
            self._save()

    def add_badge(self, badge_id: str) -> None:
        with self._lock:
            if badge_id in self._db["badges"]:
                return
            self._db["badges"].append(badge_id)
            self._save()

    def record_level_complete(self, level_index: int, solve_time: int) -> None:
        """Count the completion; keep the time only if it beats the record."""
        with self._lock:
            if solve_time > 0:
                key = level_key(level_index)
                best = self._db["fastest_times"].get(key)
                if best is None or solve_time < best:
                    self._db["fastest_times"][key] = solve_time
                    logger.info("New fastest time for %s: %ds", key, solve_time)
            self._db["levels_completed"] += 1
            self._save()

    # ── Reads ────────────────────────────────────────────────────────────

    def stats(self) -> dict:
        """Copy of the player stats, without the custom level list."""
        with self._lock:
            return {k: (v.copy() if isinstance(v, (dict, list)) else v)
                    for k, v in self._db.items() if k != "custom_levels"}

    def player_progress(self) -> PlayerProgress:
        """Snapshot for ``SessionController`` to mirror locally."""
        with self._lock:
            return PlayerProgress(total_points=self._db["total_points"],
                                  badges=list(self._db["badges"]))

    def fastest_time(self, level_index: int) -> Optional[int]:
        return self._db["fastest_times"].get(level_key(level_index))

    # ── Custom levels ────────────────────────────────────────────────────

    def save_custom_level(self, level: Level) -> dict:
        """Store *level* and return its payload with ``id`` and ``created_at``."""
        record = level.to_payload()
        record["id"] = uuid.uuid4().hex
        record["created_at"] = self._clock().isoformat(timespec="seconds")
        with self._lock:
            levels = self._db["custom_levels"]
            levels.insert(0, record)
            del levels[config.MAX_CUSTOM_LEVELS:]
            self._db["levels_created"] += 1
            self._save()
        return dict(record)

    def get_custom_levels(self) -> list[dict]:
        with self._lock:
            return [dict(r) for r in self._db["custom_levels"]]

    def get_custom_level(self, level_id: str) -> Level:
        """Rebuild a saved level.  Raises KeyError for unknown ids."""
        with self._lock:
            record = next((r for r in self._db["custom_levels"]
                           if r.get("id") == level_id), None)
        if record is None:
            raise KeyError(f"No custom level with id {level_id!r}")
        return Level.from_payload(record)

    def delete_custom_level(self, level_id: str) -> bool:
        with self._lock:
            levels = self._db["custom_levels"]
            kept = [r for r in levels if r.get("id") != level_id]
            if len(kept) == len(levels):
                return False
            self._db["custom_levels"] = kept
            self._save()
            return True

    def reset(self) -> None:
        """Wipe all progress and custom levels."""
        with self._lock:
            self._db = _default_stats(self._clock())
            self._save()

    # ── Internals ────────────────────────────────────────────────────────

    def _maybe_reset_week(self) -> bool:
        now = self._clock()
        try:
            last = datetime.fromisoformat(self._db["last_week_reset"])
        except (TypeError, ValueError):
            last = None
        if last is not None:
            days = (now - last).days
            monday = now.weekday() == 0 and last.weekday() != 0
            if days < config.WEEK_RESET_DAYS and not monday:
                return False
        logger.info("Resetting weekly points (was %d)", self._db["weekly_points"])
        self._db["weekly_points"] = 0
        self._db["last_week_reset"] = now.isoformat(timespec="seconds")
        return True

    def _load(self) -> dict:
        db = _default_stats(self._clock())
        if not os.path.exists(self._file_path):
            return db
        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                stored = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load progress from %s: %s", self._file_path, e)
            return db
        if not isinstance(stored, dict):
            logger.warning("Ignoring malformed progress file %s", self._file_path)
            return db
        # Merge with defaults so new keys are always present
        for key, default in db.items():
            value = stored.get(key, default)
            if isinstance(default, (list, dict)) and not isinstance(value, type(default)):
                value = default
            db[key] = value
        db["badges"] = list(dict.fromkeys(db["badges"]))
        return db

    def _save(self) -> None:
        """Write the stats to a temp file, then swap it in for progress.json."""
        with self._lock:
            tmp_path = None
            try:
                os.makedirs(self._data_dir, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    dir=self._data_dir, prefix=".progress-", suffix=".tmp")
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self._db, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self._file_path)
            except OSError as e:
                logger.warning("Could not save progress to %s: %s", self._file_path, e)
                if tmp_path is not None and os.path.exists(tmp_path):
                    os.remove(tmp_path)
