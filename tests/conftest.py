"""Shared pytest fixtures for the reply agent test suite."""

import pytest

from replyagent.domain.models import AgentSettings, LeadInfo
from replyagent.email.models import InboundMessage
from replyagent.events.store import SQLiteEventStore, init_events_db


@pytest.fixture
def sample_settings() -> AgentSettings:
    """Representative agent settings with a Calendly booking link."""
    return AgentSettings(
        company_name="Acme Analytics",
        product_name="Acme Insights",
        value_propositions=["faster reporting", "fewer manual exports", "team dashboards"],
        calendar_link="https://calendly.com/acme/demo",
        ai_assistant_name="Riley",
    )


@pytest.fixture
def sample_lead() -> LeadInfo:
    """A representative lead."""
    return LeadInfo(email="ana@example.com", name="Ana Lopez", company="Globex")


@pytest.fixture
def sample_inbound() -> InboundMessage:
    """An inbound reply addressed to a tracking alias."""
    return InboundMessage(
        from_email="Ana Lopez <ana@example.com>",
        to="tracking-abc123@mg.example.com",
        subject="Re: Quick question",
        body_text="Yes, let's meet tomorrow at 3pm",
        message_id="CAF123@mail.example.com",
    )


@pytest.fixture
def event_store():
    """An in-memory SQLite event store."""
    conn = init_events_db(":memory:")
    yield SQLiteEventStore(conn)
    conn.close()
