"""SQLite-backed store for the profiles of users who have logged in."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from authsession.models.user import UserProfile

_COLUMNS = (
    "subject",
    "email",
    "name",
    "nickname",
    "given_name",
    "family_name",
    "picture",
    "last_login",
)


class UserProfileStore:
    """Keep one row per subject, refreshed on every login."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    subject TEXT PRIMARY KEY,
                    email TEXT,
                    name TEXT,
                    nickname TEXT,
                    given_name TEXT,
                    family_name TEXT,
                    picture TEXT,
                    last_login TEXT NOT NULL
                )
                """
            )

    def upsert(self, profile: UserProfile) -> bool:
        """Insert or refresh a profile; returns True when the subject is new."""
        values = profile.model_dump()
        values["last_login"] = profile.last_login.isoformat()
        with self._connect() as conn:
            existed = conn.execute(
                "SELECT 1 FROM users WHERE subject = ?", (profile.subject,)
            ).fetchone()
            conn.execute(
                f"""
                INSERT INTO users ({", ".join(_COLUMNS)})
                VALUES ({", ".join("?" for _ in _COLUMNS)})
                ON CONFLICT(subject) DO UPDATE SET
                    email = excluded.email,
                    name = excluded.name,
                    nickname = excluded.nickname,
                    given_name = excluded.given_name,
                    family_name = excluded.family_name,
                    picture = excluded.picture,
                    last_login = excluded.last_login
                """,
                tuple(values[column] for column in _COLUMNS),
            )
        return existed is None

    def get(self, subject: str) -> Optional[UserProfile]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE subject = ?", (subject,)
            ).fetchone()
        if not row:
            return None
        data = dict(row)
        data["last_login"] = datetime.fromisoformat(data["last_login"])
        return UserProfile(**data)


__all__ = ["UserProfileStore"]
