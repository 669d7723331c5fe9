"""Tests for tracking id extraction, generation, and user code recovery."""

from __future__ import annotations

import re

import pytest

from replyagent.email.models import InboundMessage
from replyagent.email.threading import tracking_message_id
from replyagent.email.tracking import (
    extract_tracking_id,
    from_body,
    from_header,
    from_recipient,
    from_subject,
    new_tracking_id,
    user_code_from_tracking_id,
)

HEX32 = "0123456789abcdef0123456789abcdef"


def _message(**fields: str | None) -> InboundMessage:
    fields.setdefault("body_text", "")
    return InboundMessage(**fields)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Individual methods
# ---------------------------------------------------------------------------


class TestFromRecipient:
    def test_plain_address(self) -> None:
        assert from_recipient("tracking-abc123@mg.example.com") == "abc123"

    def test_display_name_address(self) -> None:
        assert from_recipient("AI Assistant <tracking-abc123@mg.example.com>") == "abc123"

    def test_address_among_several(self) -> None:
        assert from_recipient("sales@example.com, tracking-xyz@mg.example.com") == "xyz"

    def test_requires_prefix_at_start_of_local_part(self) -> None:
        assert from_recipient("no-tracking-abc@mg.example.com") is None

    def test_no_match(self) -> None:
        assert from_recipient("sales@example.com") is None

    def test_none(self) -> None:
        assert from_recipient(None) is None


class TestFromSubject:
    def test_tag(self) -> None:
        assert from_subject("Re: [abc123] Quick question") == "abc123"

    def test_tag_is_trimmed(self) -> None:
        assert from_subject("Re: [ abc123 ] Quick question") == "abc123"

    def test_first_tag_wins(self) -> None:
        assert from_subject("[ab12] and [cd34]") == "ab12"

    def test_tag_without_digit_ignored(self) -> None:
        assert from_subject("Re: [EXTERNAL] Quick question") is None

    def test_gateway_tag_skipped_for_later_tag(self) -> None:
        assert from_subject("[EXTERNAL] Re: [abc123] Quick question") == "abc123"

    def test_case_sensitive(self) -> None:
        assert from_subject("Re: [AbC123]") == "AbC123"

    def test_no_tag(self) -> None:
        assert from_subject("Re: Quick question") is None


class TestFromBody:
    @pytest.mark.parametrize(
        "body",
        [
            "Thanks!\n\nTracking ID: abc123",
            "tracking_id: abc123",
            "trackingid abc123",
            "TRACKING ID abc123",
        ],
    )
    def test_declaration_forms(self, body: str) -> None:
        assert from_body(body) == "abc123"

    def test_html_fallback(self) -> None:
        html = "<p>Thanks</p><p><small>Tracking ID: <b>abc123</b></small></p>"
        assert from_body("", html) == "abc123"

    def test_plain_text_preferred_over_html(self) -> None:
        assert from_body("tracking id: plain1", "<p>tracking id: html1</p>") == "plain1"

    def test_no_declaration(self) -> None:
        assert from_body("Sounds good, talk soon") is None

    def test_filler_word_is_not_a_token(self) -> None:
        assert from_body("Your tracking id is ZX9 for reference") is None


class TestFromHeader:
    def test_hex32_id(self) -> None:
        assert from_header(f"<tracking-{HEX32}@mg.example.com>") == HEX32

    def test_generated_id(self) -> None:
        mid = "tracking-76e84c79_1760600000000_a1b2c3d4-1760600000123-deadbeef@mg.example.com"
        assert from_header(mid) == "76e84c79_1760600000000_a1b2c3d4"

    def test_embedded_in_chain(self) -> None:
        chain = f"<first@mail.example.com> <tracking-{HEX32}@mg.example.com>"
        assert from_header(chain) == HEX32

    def test_emitted_message_id_with_opaque_id(self) -> None:
        mid = tracking_message_id("abc123", "mg.example.com", 1760600000000)
        assert from_header(f"<{mid}>") == "abc123"

    def test_emitted_message_id_with_dashed_id(self) -> None:
        assert from_header("<tracking-lead-7-1760600000000-deadbeef@mg.example.com>") == "lead-7"

    def test_short_hex_does_not_match(self) -> None:
        assert from_header("<tracking-abc123@mg.example.com>") is None

    def test_none(self) -> None:
        assert from_header(None) is None


# ---------------------------------------------------------------------------
# Precedence and totality
# ---------------------------------------------------------------------------


class TestExtractTrackingId:
    def test_recipient_beats_subject(self) -> None:
        message = _message(
            to="tracking-recipient42@mg.example.com",
            subject="Re: [subject42] Quick question",
        )
        assert extract_tracking_id(message) == "recipient42"

    def test_subject_beats_body(self) -> None:
        message = _message(subject="[subject42]", body_text="tracking id: body42")
        assert extract_tracking_id(message) == "subject42"

    def test_body_beats_headers(self) -> None:
        message = _message(
            body_text="tracking id: body42",
            in_reply_to=f"tracking-{HEX32}@mg.example.com",
        )
        assert extract_tracking_id(message) == "body42"

    def test_gateway_subject_tag_falls_through_to_header(self) -> None:
        message = _message(
            subject="Re: [EXTERNAL] Quick question",
            in_reply_to=(
                "<tracking-76e84c79_1700000000000_abcd1234-1700000000001-deadbeef"
                "@mg.example.com>"
            ),
        )
        assert extract_tracking_id(message) == "76e84c79_1700000000000_abcd1234"

    def test_body_filler_falls_through_to_header(self) -> None:
        message = _message(
            body_text="Your tracking id is ZX9 for reference",
            in_reply_to=f"tracking-{HEX32}@mg.example.com",
        )
        assert extract_tracking_id(message) == HEX32

    def test_in_reply_to_beats_references(self) -> None:
        other = "fedcba9876543210fedcba9876543210"
        message = _message(
            in_reply_to=f"tracking-{HEX32}@mg.example.com",
            references=f"tracking-{other}@mg.example.com",
        )
        assert extract_tracking_id(message) == HEX32

    def test_references_used_last(self) -> None:
        message = _message(references=f"a@x tracking-{HEX32}@mg.example.com")
        assert extract_tracking_id(message) == HEX32

    def test_no_match_returns_none(self) -> None:
        message = _message(
            from_email="lead@example.com",
            to="sales@example.com",
            subject="Hello",
            body_text="Just checking in",
            in_reply_to="abc@mail.example.com",
            references="abc@mail.example.com",
        )
        assert extract_tracking_id(message) is None

    @pytest.mark.parametrize(
        "fields",
        [
            {},
            {"to": "", "subject": "", "body_text": ""},
            {"subject": "[]"},
            {"to": "tracking-@mg.example.com"},
            {"body_text": "tracking id:"},
            {"in_reply_to": "<<<>>>", "references": "tracking-"},
        ],
    )
    def test_degenerate_input_never_raises(self, fields: dict[str, str]) -> None:
        assert extract_tracking_id(_message(**fields)) is None


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class TestNewTrackingId:
    def test_format(self) -> None:
        tracking_id = new_tracking_id("76e84c79", now_ms=1760600000000)
        assert re.fullmatch(r"76e84c79_1760600000000_[0-9a-f]{8}", tracking_id)

    def test_unique(self) -> None:
        assert new_tracking_id("76e84c79", 1) != new_tracking_id("76e84c79", 1)

    def test_round_trips_through_header(self) -> None:
        tracking_id = new_tracking_id("76e84c79")
        assert from_header(f"<tracking-{tracking_id}-1-abcdef01@mg.example.com>") == tracking_id


class TestUserCodeFromTrackingId:
    def test_generated_id(self) -> None:
        assert user_code_from_tracking_id("76e84c79_1760600000000_a1b2c3d4") == "76e84c79"

    def test_opaque_token(self) -> None:
        assert user_code_from_tracking_id("abc123") is None

    def test_empty(self) -> None:
        assert user_code_from_tracking_id(None) is None
        assert user_code_from_tracking_id("") is None
