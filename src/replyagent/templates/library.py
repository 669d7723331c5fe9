"""Intent-keyed reply template library.

Templates are keyed by the closed ``ReplyIntent`` enumeration.  The library
always contains a ``general_positive`` template, which is the fallback arm
for intents that have no template of their own.  Operators edit the YAML
file at ``config/reply_templates.yaml``; unknown intent keys and malformed
templates are rejected when the file is loaded.
"""

from __future__ import annotations

from pathlib import Path

import structlog
import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ValidationError, field_validator, model_validator

from replyagent.domain.errors import TemplateLibraryError, TemplateRenderError
from replyagent.domain.types import ReplyIntent
from replyagent.templates.engine import validate_template

logger = structlog.get_logger()

FALLBACK_INTENT = ReplyIntent.GENERAL_POSITIVE

DEFAULT_TEMPLATES_PATH = Path(__file__).resolve().parents[3] / "config" / "reply_templates.yaml"

_BUILTIN_FALLBACK_TEMPLATE = """\
Hi{{#lead_first_name}} {{lead_first_name}}{{/lead_first_name}},

Thanks for getting back to me. I'd be happy to share more about {{product_name}}.

{{#suggest_meeting}}{{calendar_text}}{{/suggest_meeting}}

Best regards,
{{ai_assistant_name}}
{{company_name}}"""


class TemplateLibrary(BaseModel):
    """Validated mapping from intent to template text."""

    templates: dict[ReplyIntent, str]

    @field_validator("templates")
    @classmethod
    def templates_must_be_well_formed(cls, v: dict[ReplyIntent, str]) -> dict[ReplyIntent, str]:
        """Reject templates with nested, unbalanced, or unclosed sections."""
        for intent, text in v.items():
            try:
                validate_template(text)
            except TemplateRenderError as exc:
                raise ValueError(f"Template for '{intent}' is malformed: {exc}") from exc
        return v

    @model_validator(mode="after")
    def fallback_template_must_exist(self) -> TemplateLibrary:
        """Ensure the fallback arm can always be selected."""
        if FALLBACK_INTENT not in self.templates:
            raise ValueError(f"Template library must define '{FALLBACK_INTENT}'")
        return self

    def select(self, intent: ReplyIntent) -> tuple[ReplyIntent, str]:
        """Return the intent actually used and its template text.

        Falls back to ``general_positive`` when *intent* has no template.
        """
        if intent in self.templates:
            return intent, self.templates[intent]
        return FALLBACK_INTENT, self.templates[FALLBACK_INTENT]

    def missing_intents(self) -> list[ReplyIntent]:
        """Return the intents that will be served by the fallback template."""
        return [intent for intent in ReplyIntent if intent not in self.templates]


def builtin_library() -> TemplateLibrary:
    """Return a library holding only the built-in fallback template."""
    return TemplateLibrary(templates={FALLBACK_INTENT: _BUILTIN_FALLBACK_TEMPLATE})


def load_template_library(path: Path = DEFAULT_TEMPLATES_PATH) -> TemplateLibrary:
    """Load and validate the template library from a YAML file.

    The file holds a top-level ``templates`` mapping of intent names to
    template text.  File templates override the built-in fallback.

    Args:
        path: Path to the YAML file.

    Returns:
        The validated library.  Falls back to the built-in library if the
        file is missing, empty, or contains invalid YAML.

    Raises:
        TemplateLibraryError: If the file is not a mapping, names an unknown
            intent, or contains a malformed template.
    """
    if not path.exists():
        logger.warning("template_library_missing", path=str(path))
        return builtin_library()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError:
        logger.warning("template_library_invalid_yaml", path=str(path))
        return builtin_library()

    if not raw:
        return builtin_library()

    file_templates = raw.get("templates", {}) if isinstance(raw, dict) else None
    if not isinstance(file_templates, dict):
        raise TemplateLibraryError(f"{path}: expected a top-level 'templates' mapping")

    templates = {FALLBACK_INTENT.value: _BUILTIN_FALLBACK_TEMPLATE, **file_templates}
    try:
        library = TemplateLibrary.model_validate({"templates": templates})
    except ValidationError as exc:
        raise TemplateLibraryError(f"{path}: {exc}") from exc

    missing = library.missing_intents()
    if missing:
        logger.info("template_library_uses_fallback", intents=[str(i) for i in missing])
    return library
