"""Template engine and intent-keyed template library."""

from replyagent.templates.engine import (
    TemplateContext,
    TemplateValue,
    is_truthy,
    render,
    stringify,
    template_variables,
    validate_template,
)
from replyagent.templates.library import (
    DEFAULT_TEMPLATES_PATH,
    FALLBACK_INTENT,
    TemplateLibrary,
    builtin_library,
    load_template_library,
)

__all__ = [
    "DEFAULT_TEMPLATES_PATH",
    "FALLBACK_INTENT",
    "TemplateContext",
    "TemplateLibrary",
    "TemplateValue",
    "builtin_library",
    "is_truthy",
    "load_template_library",
    "render",
    "stringify",
    "template_variables",
    "validate_template",
]
