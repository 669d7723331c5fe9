"""Per-user agent settings storage."""

from replyagent.agent_settings.provider import (
    SettingsProvider,
    SQLiteSettingsProvider,
    init_settings_table,
)

__all__ = [
    "SQLiteSettingsProvider",
    "SettingsProvider",
    "init_settings_table",
]
