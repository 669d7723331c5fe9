"""Deterministic validation gate for enhanced replies.

Validates LLM-rewritten replies against the template skeleton they were
derived from, using regex and string matching only -- no LLM calls.  Catches
lost booking links, leftover placeholders, hallucinated commitments, invented
prices, off-brand language, and basic sanity issues.
"""

import re

from replyagent.llm.models import ValidationFailure, ValidationResult

# Regex for dollar amounts like $1,500.00, $1500, $200.50
_DOLLAR_PATTERN = re.compile(r"\$[\d,]+(?:\.\d{2})?")

# Commitments the LLM must never add on its own
_COMMITMENT_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\bguarantee[ds]?\b", re.IGNORECASE),
    re.compile(r"\bdiscount(?:s|ed)?\b", re.IGNORECASE),
    re.compile(r"\bfree\s+trial\b", re.IGNORECASE),
    re.compile(r"\brefund(?:s|able)?\b", re.IGNORECASE),
    re.compile(r"\b\d+\s*%\s*off\b", re.IGNORECASE),
]

_TEMPLATE_TAG = re.compile(r"\{\{.*?\}\}", re.DOTALL)
_BRACKET_PLACEHOLDER = re.compile(
    r"\[(?:your|lead|first|company|recipient)?\s*name\]", re.IGNORECASE
)

_MIN_EMAIL_LENGTH = 50
_MAX_LENGTH_RATIO = 3


def validate_enhanced_reply(
    email_body: str,
    skeleton: str,
    calendar_link: str = "",
    forbidden_phrases: list[str] | None = None,
) -> ValidationResult:
    """Validate an enhanced reply using deterministic checks (no LLM).

    Runs six validation checks:
    1. Calendar link -- a booking link present in the skeleton must survive
    2. Placeholders -- no ``{{...}}`` tags or ``[Name]``-style stand-ins
    3. Hallucinated commitments -- no guarantees, discounts, free trials or
       refunds unless the skeleton already mentions them
    4. Monetary values -- no dollar amounts the skeleton does not contain
    5. Off-brand language -- no forbidden phrases present
    6. Basic sanity -- at least 50 characters (error) and not wildly longer
       than the skeleton (warning)

    Args:
        email_body: The enhanced reply text to validate.
        skeleton: The rendered template the enhancement started from.
        calendar_link: The agent's booking link, if any.
        forbidden_phrases: Optional list of phrases that should not appear
            in the email. Case-insensitive matching.

    Returns:
        ValidationResult with passed=True only if no error-severity failures.
    """
    failures: list[ValidationFailure] = []

    # Check 1: Calendar link preserved
    if calendar_link and calendar_link in skeleton and calendar_link not in email_body:
        failures.append(
            ValidationFailure(
                check="calendar_link_missing",
                reason=f"Booking link {calendar_link} was dropped from the reply",
            )
        )

    # Check 2: Leftover placeholders
    placeholder = _TEMPLATE_TAG.search(email_body) or _BRACKET_PLACEHOLDER.search(email_body)
    if placeholder:
        failures.append(
            ValidationFailure(
                check="unresolved_placeholder",
                reason=f"Reply contains placeholder '{placeholder.group()}'",
            )
        )

    # Check 3: Hallucinated commitments
    for pattern in _COMMITMENT_PATTERNS:
        match = pattern.search(email_body)
        if match and not pattern.search(skeleton):
            failures.append(
                ValidationFailure(
                    check="hallucinated_commitment",
                    reason=f"Reply contains unauthorized commitment: '{match.group()}'",
                )
            )

    # Check 4: Monetary values
    allowed_amounts = set(_DOLLAR_PATTERN.findall(skeleton))
    for amount in _DOLLAR_PATTERN.findall(email_body):
        if amount not in allowed_amounts:
            failures.append(
                ValidationFailure(
                    check="monetary_value",
                    reason=f"Reply mentions {amount}, which is not in the draft",
                )
            )

    # Check 5: Off-brand language
    email_lower = email_body.lower()
    for phrase in forbidden_phrases or []:
        if phrase.lower() in email_lower:
            failures.append(
                ValidationFailure(
                    check="off_brand_language",
                    reason=f"Reply contains forbidden phrase: '{phrase}'",
                )
            )

    # Check 6: Basic sanity
    stripped_length = len(email_body.strip())
    if stripped_length < _MIN_EMAIL_LENGTH:
        failures.append(
            ValidationFailure(
                check="too_short",
                reason=(
                    f"Reply body is {stripped_length} characters, minimum is {_MIN_EMAIL_LENGTH}"
                ),
            )
        )
    skeleton_length = len(skeleton.strip())
    if skeleton_length and stripped_length > skeleton_length * _MAX_LENGTH_RATIO:
        failures.append(
            ValidationFailure(
                check="too_long",
                reason=(
                    f"Reply is {stripped_length} characters, more than "
                    f"{_MAX_LENGTH_RATIO}x the {skeleton_length}-character draft"
                ),
                severity="warning",
            )
        )

    has_errors = any(f.severity == "error" for f in failures)

    return ValidationResult(
        passed=not has_errors,
        failures=failures,
        email_body=email_body,
    )
