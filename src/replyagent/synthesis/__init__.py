"""Reply synthesis: meeting strategy, calendar text, and template rendering."""

from replyagent.synthesis.meeting import (
    CalendarLink,
    CalendarPlatform,
    ProposedMeetingTime,
    apply_pushiness,
    generate_calendar_text,
    generate_meeting_strategy,
    parse_calendar_link,
    parse_meeting_time,
)
from replyagent.synthesis.synthesizer import (
    FALLBACK_REPLY,
    SynthesizedReply,
    build_template_context,
    compose_skeleton,
    synthesize,
)

__all__ = [
    "FALLBACK_REPLY",
    "CalendarLink",
    "CalendarPlatform",
    "ProposedMeetingTime",
    "SynthesizedReply",
    "apply_pushiness",
    "build_template_context",
    "compose_skeleton",
    "generate_calendar_text",
    "generate_meeting_strategy",
    "parse_calendar_link",
    "parse_meeting_time",
    "synthesize",
]
