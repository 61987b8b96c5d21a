"""SQLite-backed storage for per-session Spotify token records."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from app.models.oauth import TokenRecord


class TokenRecordNotFoundError(Exception):
    """Raised when updating a session that has no stored token record."""


class TokenStore:
    """One row per session id, enforced by a UNIQUE constraint."""

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
                CREATE TABLE IF NOT EXISTS user_tokens (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id TEXT NOT NULL UNIQUE,
                    access_token TEXT NOT NULL,
                    refresh_token TEXT,
                    expires_at TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    @staticmethod
    def _to_record(row: sqlite3.Row) -> TokenRecord:
        return TokenRecord(
            session_id=row["session_id"],
            access_token=row["access_token"],
            refresh_token=row["refresh_token"],
            expires_at=datetime.fromisoformat(row["expires_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def get(self, session_id: str) -> Optional[TokenRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM user_tokens WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        if not row:
            return None
        return self._to_record(row)

    def replace(self, record: TokenRecord) -> TokenRecord:
        """Delete any existing row for the session, then insert ``record``."""
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM user_tokens WHERE session_id = ?",
                (record.session_id,),
            )
            conn.execute(
                """
                INSERT INTO user_tokens (
                    session_id, access_token, refresh_token,
                    expires_at, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    record.session_id,
                    record.access_token,
                    record.refresh_token,
                    record.expires_at.isoformat(),
                    record.created_at.isoformat(),
                    record.updated_at.isoformat(),
                ),
            )
        return record

    def update(self, record: TokenRecord) -> TokenRecord:
        """Overwrite the mutable fields of an existing row in place."""
        updated = record.model_copy(update={"updated_at": datetime.now(timezone.utc)})
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE user_tokens
                SET access_token = ?, refresh_token = ?, expires_at = ?, updated_at = ?
                WHERE session_id = ?
                """,
                (
                    updated.access_token,
                    updated.refresh_token,
                    updated.expires_at.isoformat(),
                    updated.updated_at.isoformat(),
                    updated.session_id,
                ),
            )
            if cursor.rowcount == 0:
                raise TokenRecordNotFoundError(
                    f"No token record stored for session {record.session_id}."
                )
        return updated

    def delete(self, session_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM user_tokens WHERE session_id = ?",
                (session_id,),
            )
        return cursor.rowcount > 0

    def delete_all(self) -> int:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM user_tokens")
        return cursor.rowcount

    def count(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM user_tokens").fetchone()
        return int(row["total"])


__all__ = ["TokenRecordNotFoundError", "TokenStore"]
