"""SQLite-backed progress tracking for Number Garden."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional


@dataclass
class SkillStats:
    skill_id: str
    attempts: int = 0
    correct: int = 0
    total_time: float = 0.0

    @property
    def accuracy(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.correct / self.attempts

    @property
    def avg_time(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.total_time / self.attempts


class ProgressStore:
    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or (Path.home() / ".numbergarden" / "progress.db")
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS skill_levels (
                    skill_id TEXT PRIMARY KEY,
                    level INTEGER NOT NULL DEFAULT 0,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS skill_stats (
                    skill_id TEXT PRIMARY KEY,
                    attempts INTEGER NOT NULL DEFAULT 0,
                    correct INTEGER NOT NULL DEFAULT 0,
                    total_time REAL NOT NULL DEFAULT 0
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    summary TEXT NOT NULL,
                    finished_at TEXT NOT NULL
                )
            """)

    def _conn(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    # --- Skill levels ---

    def get_levels(self) -> dict[str, int]:
        with self._conn() as conn:
            rows = conn.execute("SELECT skill_id, level FROM skill_levels").fetchall()
        return {r[0]: r[1] for r in rows}

    def save_level(self, skill_id: str, level: int) -> None:
        """Store a reached level; a lower level never overwrites a higher one."""
        now = datetime.now().isoformat()
        with self._conn() as conn:
            conn.execute(
                """INSERT INTO skill_levels (skill_id, level, updated_at)
                   VALUES (?, ?, ?)
                   ON CONFLICT(skill_id) DO UPDATE SET
                       level = MAX(level, excluded.level),
                       updated_at = excluded.updated_at""",
                (skill_id, level, now),
            )

    # --- Skill stats ---

    def get_stats(self) -> dict[str, SkillStats]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT skill_id, attempts, correct, total_time FROM skill_stats"
            ).fetchall()
        return {
            r[0]: SkillStats(skill_id=r[0], attempts=r[1], correct=r[2], total_time=r[3])
            for r in rows
        }

    def get_skill_stats(self, skill_id: str) -> SkillStats:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT attempts, correct, total_time FROM skill_stats WHERE skill_id = ?",
                (skill_id,),
            ).fetchone()
        if not row:
            return SkillStats(skill_id=skill_id)
        return SkillStats(skill_id=skill_id, attempts=row[0], correct=row[1], total_time=row[2])

    def record_attempt(self, skill_id: str, correct: bool, time_seconds: float) -> SkillStats:
        with self._conn() as conn:
            conn.execute(
                """INSERT INTO skill_stats (skill_id, attempts, correct, total_time)
                   VALUES (?, 1, ?, ?)
                   ON CONFLICT(skill_id) DO UPDATE SET
                       attempts = attempts + 1,
                       correct = correct + excluded.correct,
                       total_time = total_time + excluded.total_time""",
                (skill_id, int(correct), time_seconds),
            )
        return self.get_skill_stats(skill_id)

    # --- Sessions ---

    def save_last_session(self, summary: dict) -> None:
        now = datetime.now().isoformat()
        with self._conn() as conn:
            conn.execute(
                "INSERT INTO sessions (summary, finished_at) VALUES (?, ?)",
                (json.dumps(summary), now),
            )

    def get_last_session(self) -> Optional[dict]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT summary FROM sessions ORDER BY id DESC LIMIT 1"
            ).fetchone()
        if not row:
            return None
        return json.loads(row[0])

    # --- Resets ---

    def reset_skill(self, skill_id: str) -> None:
        with self._conn() as conn:
            conn.execute("DELETE FROM skill_levels WHERE skill_id = ?", (skill_id,))
            conn.execute("DELETE FROM skill_stats WHERE skill_id = ?", (skill_id,))

    def reset_all(self) -> None:
        with self._conn() as conn:
            conn.execute("DELETE FROM skill_levels")
            conn.execute("DELETE FROM skill_stats")
            conn.execute("DELETE FROM sessions")
