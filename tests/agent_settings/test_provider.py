"""Tests for the SQLite-backed agent settings provider."""

from __future__ import annotations

import re
import sqlite3

import pytest

from replyagent.agent_settings.provider import SQLiteSettingsProvider, init_settings_table
from replyagent.domain.models import AgentSettings
from replyagent.domain.types import MeetingPushiness


@pytest.fixture()
def conn():
    connection = sqlite3.connect(":memory:", check_same_thread=False)
    init_settings_table(connection)
    yield connection
    connection.close()


@pytest.fixture()
def provider(conn: sqlite3.Connection) -> SQLiteSettingsProvider:
    return SQLiteSettingsProvider(conn)


class TestGetSettings:
    def test_missing_row_returns_defaults(self, provider: SQLiteSettingsProvider) -> None:
        assert provider.get_settings("76e84c79") == AgentSettings()

    def test_saved_settings_round_trip(self, provider: SQLiteSettingsProvider) -> None:
        settings = AgentSettings(
            company_name="Acme",
            value_propositions=["speed"],
            meeting_pushiness=MeetingPushiness.HIGH,
        )
        provider.save_settings("76e84c79", settings)

        assert provider.get_settings("76e84c79") == settings

    def test_partial_document_fills_defaults(
        self, conn: sqlite3.Connection, provider: SQLiteSettingsProvider
    ) -> None:
        conn.execute(
            "INSERT INTO agent_response_settings VALUES (?, ?, ?)",
            ("76e84c79", '{"company_name": "Acme"}', "2026-10-16T09:00:00Z"),
        )

        settings = provider.get_settings("76e84c79")

        assert settings.company_name == "Acme"
        assert settings.product_name == "our platform"

    def test_invalid_document_returns_defaults(
        self, conn: sqlite3.Connection, provider: SQLiteSettingsProvider
    ) -> None:
        conn.execute(
            "INSERT INTO agent_response_settings VALUES (?, ?, ?)",
            ("76e84c79", '{"question_threshold": 0}', "2026-10-16T09:00:00Z"),
        )

        assert provider.get_settings("76e84c79") == AgentSettings()

    def test_malformed_json_returns_defaults(
        self, conn: sqlite3.Connection, provider: SQLiteSettingsProvider
    ) -> None:
        conn.execute(
            "INSERT INTO agent_response_settings VALUES (?, ?, ?)",
            ("76e84c79", "{not json", "2026-10-16T09:00:00Z"),
        )

        assert provider.get_settings("76e84c79") == AgentSettings()

    def test_unavailable_store_returns_defaults(self) -> None:
        connection = sqlite3.connect(":memory:", check_same_thread=False)
        provider = SQLiteSettingsProvider(connection)  # table never created

        assert provider.get_settings("76e84c79") == AgentSettings()
        connection.close()

    def test_closed_connection_returns_defaults(self, conn: sqlite3.Connection) -> None:
        provider = SQLiteSettingsProvider(conn)
        conn.close()

        assert provider.get_settings("76e84c79") == AgentSettings()


class TestSaveSettings:
    def test_returns_timestamp(self, provider: SQLiteSettingsProvider) -> None:
        updated_at = provider.save_settings("76e84c79", AgentSettings())
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", updated_at)

    def test_replaces_existing(self, provider: SQLiteSettingsProvider) -> None:
        provider.save_settings("76e84c79", AgentSettings(company_name="Old"))
        provider.save_settings("76e84c79", AgentSettings(company_name="New"))

        assert provider.get_settings("76e84c79").company_name == "New"

    def test_users_are_isolated(self, provider: SQLiteSettingsProvider) -> None:
        provider.save_settings("aaaaaaaa", AgentSettings(company_name="A"))

        assert provider.get_settings("bbbbbbbb").company_name == "Our Company"


class TestClearSettings:
    def test_deletes_row(self, provider: SQLiteSettingsProvider) -> None:
        provider.save_settings("76e84c79", AgentSettings(company_name="Acme"))

        assert provider.clear_settings("76e84c79") is True
        assert provider.get_settings("76e84c79") == AgentSettings()

    def test_missing_row(self, provider: SQLiteSettingsProvider) -> None:
        assert provider.clear_settings("76e84c79") is False
