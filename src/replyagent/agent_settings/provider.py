"""Per-user agent settings backed by SQLite.

Each user owns one row holding their settings as JSON.  Reads never fail:
a missing row, a malformed document, or an unavailable database all yield
``AgentSettings()`` hard defaults, so reply generation keeps working.
"""

from __future__ import annotations

import sqlite3
import threading
from datetime import UTC, datetime
from typing import Protocol

import structlog
from pydantic import ValidationError

from replyagent.domain.models import AgentSettings

logger = structlog.get_logger()


class SettingsProvider(Protocol):
    """Read access to agent settings consumed by the reply pipeline."""

    def get_settings(self, user_id: str) -> AgentSettings: ...


def init_settings_table(conn: sqlite3.Connection) -> None:
    """Create the agent_response_settings table if it does not already exist.

    Args:
        conn: An open sqlite3.Connection (WAL mode recommended).
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS agent_response_settings (
            user_code TEXT PRIMARY KEY,
            settings_json TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)
    conn.commit()


class SQLiteSettingsProvider:
    """Load and save ``AgentSettings`` in the ``agent_response_settings`` table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialize with an open database connection.

        Args:
            conn: An open sqlite3.Connection whose database already has the
                  ``agent_response_settings`` table (see ``init_settings_table``).
        """
        self._conn = conn
        self._lock = threading.Lock()

    def get_settings(self, user_id: str) -> AgentSettings:
        """Return the settings for *user_id*, or hard defaults.

        Args:
            user_id: The 8-character user code.

        Returns:
            The stored settings merged over defaults.  Defaults alone when
            no row exists or the store cannot be read.
        """
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT settings_json FROM agent_response_settings WHERE user_code = ?",
                    (user_id,),
                ).fetchone()
        except sqlite3.Error as exc:
            logger.warning("agent_settings_unavailable", user_id=user_id, error=str(exc))
            return AgentSettings()

        if row is None:
            logger.info("agent_settings_defaulted", user_id=user_id)
            return AgentSettings()

        try:
            return AgentSettings.model_validate_json(row[0])
        except ValidationError as exc:
            logger.warning(
                "agent_settings_invalid", user_id=user_id, errors=exc.errors(include_url=False)
            )
            return AgentSettings()

    def save_settings(self, user_id: str, settings: AgentSettings) -> str:
        """Replace the stored settings for *user_id*.

        Args:
            user_id: The 8-character user code.
            settings: The complete settings document.

        Returns:
            The ISO 8601 ``updated_at`` timestamp written.
        """
        now = datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        with self._lock:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO agent_response_settings (
                    user_code, settings_json, updated_at
                ) VALUES (?, ?, ?)
                """,
                (user_id, settings.model_dump_json(), now),
            )
            self._conn.commit()
        logger.info("agent_settings_saved", user_id=user_id)
        return now

    def clear_settings(self, user_id: str) -> bool:
        """Delete the stored settings for *user_id*.

        Returns:
            True if a row was deleted.
        """
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM agent_response_settings WHERE user_code = ?",
                (user_id,),
            )
            self._conn.commit()
        return cursor.rowcount > 0
