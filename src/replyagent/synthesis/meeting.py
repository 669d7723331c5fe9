"""Deterministic meeting strategy and calendar follow-up text.

Decides whether a reply should propose a meeting, how urgently, and for how
long, then turns the agent's booking link into a call-to-action sentence
phrased for the scheduling platform behind it.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from enum import StrEnum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from pydantic import BaseModel, ConfigDict

from replyagent.domain.models import LeadInfo, MeetingStrategy
from replyagent.domain.types import (
    MEETING_POSITIVE_INTENTS,
    ConversationStage,
    MeetingPushiness,
    ReplyIntent,
    Urgency,
)

logger = structlog.get_logger()

_URGENCY_RANK = {Urgency.LOW: 0, Urgency.MEDIUM: 1, Urgency.HIGH: 2}

# Lowest urgency at which each pushiness level still proposes a meeting.
_PUSHINESS_THRESHOLD = {
    MeetingPushiness.LOW: Urgency.HIGH,
    MeetingPushiness.MEDIUM: Urgency.MEDIUM,
    MeetingPushiness.HIGH: Urgency.LOW,
}


def generate_meeting_strategy(
    intent: ReplyIntent,
    stage: ConversationStage,
    lead_data: LeadInfo | None = None,
) -> MeetingStrategy:
    """Derive a meeting recommendation from a fixed precedence table.

    Precedence (first match wins):

    1. Meeting-positive intents: high urgency, 30-minute demo.
    2. ``pricing_question``: medium urgency, 20-minute pricing discussion.
    3. ``technical_question``: medium urgency, 30-minute technical deep dive.
    4. ``engaged`` conversation stage: medium urgency, 20-minute consultation.
    5. Otherwise no suggestion: low urgency, 15-minute discovery call.

    Args:
        intent: The classified intent of the lead's reply.
        stage: How far the conversation has progressed.
        lead_data: What is known about the lead.  The precedence table does
            not consult it; it is logged for traceability.

    Returns:
        The meeting strategy for this reply.
    """
    if intent in MEETING_POSITIVE_INTENTS:
        strategy = MeetingStrategy(
            should_suggest_meeting=True,
            urgency=Urgency.HIGH,
            suggested_duration=30,
            meeting_type="demo",
        )
    elif intent == ReplyIntent.PRICING_QUESTION:
        strategy = MeetingStrategy(
            should_suggest_meeting=True,
            urgency=Urgency.MEDIUM,
            suggested_duration=20,
            meeting_type="pricing_discussion",
            custom_message="to provide you with accurate pricing based on your specific needs",
        )
    elif intent == ReplyIntent.TECHNICAL_QUESTION:
        strategy = MeetingStrategy(
            should_suggest_meeting=True,
            urgency=Urgency.MEDIUM,
            suggested_duration=30,
            meeting_type="technical_deep_dive",
            custom_message="for a technical deep-dive and live demonstration",
        )
    elif stage == ConversationStage.ENGAGED:
        strategy = MeetingStrategy(
            should_suggest_meeting=True,
            urgency=Urgency.MEDIUM,
            suggested_duration=20,
            meeting_type="consultation",
            custom_message="to address all your questions in detail",
        )
    else:
        strategy = MeetingStrategy()

    logger.debug(
        "meeting_strategy_generated",
        intent=intent.value,
        stage=stage.value,
        lead_email=lead_data.email if lead_data else None,
        should_suggest_meeting=strategy.should_suggest_meeting,
        urgency=strategy.urgency.value,
    )
    return strategy


def apply_pushiness(strategy: MeetingStrategy, pushiness: MeetingPushiness) -> MeetingStrategy:
    """Gate the meeting suggestion on the agent's pushiness setting.

    ``low`` only proposes meetings at high urgency, ``medium`` at medium or
    higher, and ``high`` always proposes one.  Urgency, duration and meeting
    type are left unchanged.
    """
    threshold = _PUSHINESS_THRESHOLD[pushiness]
    suggest = _URGENCY_RANK[strategy.urgency] >= _URGENCY_RANK[threshold]
    if suggest == strategy.should_suggest_meeting:
        return strategy
    return strategy.model_copy(update={"should_suggest_meeting": suggest})


# ---------------------------------------------------------------------------
# Calendar links
# ---------------------------------------------------------------------------


class CalendarPlatform(StrEnum):
    """Scheduling platforms recognized from a booking link."""

    CALENDLY = "calendly"
    ACUITY = "acuity"
    CAL_COM = "cal_com"
    GOOGLE_CALENDAR = "google_calendar"
    ZOOM = "zoom"
    GENERIC = "generic"


class CalendarLink(BaseModel):
    """A parsed booking link."""

    model_config = ConfigDict(frozen=True)

    platform: CalendarPlatform
    full_url: str
    username: str | None = None  # Calendly only
    event_type: str | None = None  # Calendly only


_CALENDLY_PATH = re.compile(r"calendly\.com/([^/]+)/([^/?]+)")


def parse_calendar_link(calendar_link: str | None) -> CalendarLink | None:
    """Identify the scheduling platform behind *calendar_link*.

    Returns ``None`` for an empty link.  Unrecognized hosts are ``generic``.
    """
    if not calendar_link or not calendar_link.strip():
        return None
    url = calendar_link.strip()

    if "calendly.com" in url:
        match = _CALENDLY_PATH.search(url)
        if match:
            return CalendarLink(
                platform=CalendarPlatform.CALENDLY,
                full_url=url,
                username=match.group(1),
                event_type=match.group(2),
            )
    if "acuityscheduling.com" in url:
        return CalendarLink(platform=CalendarPlatform.ACUITY, full_url=url)
    if "cal.com" in url:
        return CalendarLink(platform=CalendarPlatform.CAL_COM, full_url=url)
    if "calendar.google.com" in url or "meet.google.com" in url:
        return CalendarLink(platform=CalendarPlatform.GOOGLE_CALENDAR, full_url=url)
    if "zoom.us" in url:
        return CalendarLink(platform=CalendarPlatform.ZOOM, full_url=url)
    return CalendarLink(platform=CalendarPlatform.GENERIC, full_url=url)


_CALL_TO_ACTION = {
    CalendarPlatform.CALENDLY: (
        "I'd love to schedule a {duration}-minute call {purpose}. "
        "You can pick a time that works best for you here: {url}\n\n"
        "The booking is quick and easy: just select your preferred time slot and "
        "you'll receive a calendar invite with all the details."
    ),
    CalendarPlatform.ACUITY: (
        "Let's schedule a {duration}-minute call {purpose}. "
        "You can book a convenient time through my scheduling system: {url}\n\n"
        "Simply choose a time that fits your schedule and we'll get everything set up."
    ),
    CalendarPlatform.CAL_COM: (
        "I'd be happy to set up a {duration}-minute call {purpose}. "
        "You can book directly here: {url}\n\n"
        "You'll get a calendar invite once you've selected your preferred time."
    ),
    CalendarPlatform.GOOGLE_CALENDAR: (
        "Let's schedule a {duration}-minute meeting {purpose}. "
        "You can view my availability and book a time here: {url}\n\n"
        "Once you select a time, Google Calendar will send you an invite."
    ),
    CalendarPlatform.ZOOM: (
        "I'd like to schedule a {duration}-minute video call {purpose}. "
        "Here's the meeting link: {url}\n\n"
        "Please let me know what time works best for you and I'll send over a calendar invite."
    ),
    CalendarPlatform.GENERIC: (
        "I'd love to schedule a {duration}-minute call {purpose}. "
        "You can book a time that works for you here: {url}\n\n"
        "Looking forward to our conversation!"
    ),
}

_DEFAULT_PURPOSE = "to discuss this further"


def generate_calendar_text(calendar_link: str | None, strategy: MeetingStrategy) -> str:
    """Build the meeting call-to-action for *calendar_link*.

    The sentence uses the strategy's duration and, when present, its custom
    message as the meeting purpose.  Returns an empty string when there is
    no link.
    """
    parsed = parse_calendar_link(calendar_link)
    if parsed is None:
        return ""
    return _CALL_TO_ACTION[parsed.platform].format(
        duration=strategy.suggested_duration,
        purpose=strategy.custom_message or _DEFAULT_PURPOSE,
        url=parsed.full_url,
    )


# ---------------------------------------------------------------------------
# Proposed meeting times
# ---------------------------------------------------------------------------


class ProposedMeetingTime(BaseModel):
    """A meeting time proposed in free text, resolved against a reference time."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    timezone: str
    display_text: str
    needs_timezone_confirmation: bool = True


# A clock time needs either minutes or an am/pm marker so bare numbers
# ("in 2 days") are not read as hours.
_CLOCK_TIME = re.compile(
    r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm|a\.m\.|p\.m\.)|\b(\d{1,2}):(\d{2})\b",
    re.IGNORECASE,
)


def _zone(timezone: str) -> ZoneInfo:
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown_timezone", timezone=timezone)
        return ZoneInfo("UTC")


def parse_meeting_time(
    text: str,
    timezone: str = "America/Los_Angeles",
    now: datetime | None = None,
) -> ProposedMeetingTime | None:
    """Resolve a proposed meeting time such as "tomorrow at 3pm".

    Relative days understood: ``today`` (default), ``tomorrow`` and
    ``next week`` (seven days out).  The clock time is read in *timezone*.

    Args:
        text: Free text from the lead's reply.
        timezone: IANA zone the agent schedules in.
        now: Reference instant; defaults to the current time.

    Returns:
        The resolved time, or ``None`` if the text has no clock time.
    """
    match = _CLOCK_TIME.search(text)
    if match is None:
        return None

    if match.group(1) is not None:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        meridiem = match.group(3).lower().replace(".", "")
        if not 1 <= hour <= 12:
            return None
        if meridiem == "pm" and hour != 12:
            hour += 12
        elif meridiem == "am" and hour == 12:
            hour = 0
    else:
        hour = int(match.group(4))
        minute = int(match.group(5))
        if hour > 23:
            return None
    if minute > 59:
        return None

    zone = _zone(timezone)
    reference = (now or datetime.now(tz=zone)).astimezone(zone)
    lowered = text.lower()
    day = reference.date()
    if "tomorrow" in lowered:
        day += timedelta(days=1)
    elif "next week" in lowered:
        day += timedelta(days=7)

    start = datetime(day.year, day.month, day.day, hour, minute, tzinfo=zone)
    hour12 = start.hour % 12 or 12
    display = f"{start:%A, %B} {start.day}, {start.year} at {hour12}:{start:%M %p %Z}"

    return ProposedMeetingTime(start=start, timezone=zone.key, display_text=display)
