"""Logic-light templating for reply skeletons.

Supports four constructs, applied as successive passes over the text:

1. List sections ``{{#items}}- {{.}}\\n{{/items}}`` -- the body is repeated
   once per list element with ``{{.}}`` bound to the element.  Every list
   value also exposes ``<key>_summary`` (first two elements joined with
   " and ") to the later passes.
2. Truthy ``{{#key}}...{{/key}}`` and falsy ``{{^key}}...{{/key}}`` sections
   for scalar values.
3. Variable substitution ``{{key}}``.
4. Cleanup -- leftover ``{{...}}`` tags are dropped, runs of blank lines are
   collapsed to one, and the result is trimmed.

Sections cannot be nested.  ``validate_template`` rejects nested, unbalanced,
and unclosed sections before any pass runs.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from replyagent.domain.errors import NestedSectionError, TemplateRenderError, UnknownVariableError

TemplateValue = str | int | float | bool | list[str] | None
TemplateContext = Mapping[str, TemplateValue]

_SECTION_TAG = re.compile(r"\{\{\s*([#^/])\s*([\w-]+)\s*\}\}")
_POSITIVE_SECTION = re.compile(r"\{\{\s*#\s*([\w-]+)\s*\}\}(.*?)\{\{\s*/\s*\1\s*\}\}", re.DOTALL)
_INVERTED_SECTION = re.compile(r"\{\{\s*\^\s*([\w-]+)\s*\}\}(.*?)\{\{\s*/\s*\1\s*\}\}", re.DOTALL)
_ITEM = re.compile(r"\{\{\s*\.\s*\}\}")
_VARIABLE = re.compile(r"\{\{\s*([\w-]+)\s*\}\}")
_ANY_TAG = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
# A newline followed by two or more blank (whitespace-only) lines.
_BLANK_RUNS = re.compile(r"\n(?:[ \t]*\n){2,}")

SUMMARY_SUFFIX = "_summary"
_SUMMARY_JOINER = " and "


def is_truthy(value: TemplateValue) -> bool:
    """Return the section truthiness of a context value.

    Non-empty strings, ``True``, non-zero numbers, and non-empty lists are
    truthy.  Missing (``None``) values are falsy.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    return len(value) > 0


def stringify(value: TemplateValue) -> str:
    """Return the substitution text for a context value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return str(value)


def validate_template(template: str) -> None:
    """Check that every section is closed, balanced, and not nested.

    Args:
        template: The template text.

    Raises:
        NestedSectionError: If a section opens inside another section.
        TemplateRenderError: If a closing tag has no matching opener or a
            section is never closed.
    """
    open_key: str | None = None
    for match in _SECTION_TAG.finditer(template):
        sigil, key = match.group(1), match.group(2)
        if sigil in "#^":
            if open_key is not None:
                raise NestedSectionError(outer=open_key, inner=key)
            open_key = key
        elif open_key is None:
            raise TemplateRenderError(f"Closing tag '{{{{/{key}}}}}' has no opening tag", key)
        elif key != open_key:
            raise TemplateRenderError(
                f"Closing tag '{{{{/{key}}}}}' does not match open section '{open_key}'", key
            )
        else:
            open_key = None

    if open_key is not None:
        raise TemplateRenderError(f"Section '{open_key}' is never closed", open_key)


def _with_summaries(context: TemplateContext) -> dict[str, TemplateValue]:
    """Copy *context*, adding ``<key>_summary`` for every list value."""
    values: dict[str, TemplateValue] = dict(context)
    for key, value in context.items():
        summary_key = f"{key}{SUMMARY_SUFFIX}"
        if isinstance(value, list) and summary_key not in values:
            values[summary_key] = _SUMMARY_JOINER.join(str(item) for item in value[:2])
    return values


def _render_list_sections(template: str, values: Mapping[str, TemplateValue]) -> str:
    def expand(match: re.Match[str]) -> str:
        key, body = match.group(1), match.group(2)
        items = values.get(key)
        if not isinstance(items, list):
            return match.group(0)
        return "".join(_ITEM.sub(lambda _m, item=item: str(item), body) for item in items)

    return _POSITIVE_SECTION.sub(expand, template)


def _render_conditional_sections(template: str, values: Mapping[str, TemplateValue]) -> str:
    def keep_if_truthy(match: re.Match[str]) -> str:
        return match.group(2) if is_truthy(values.get(match.group(1))) else ""

    def keep_if_falsy(match: re.Match[str]) -> str:
        return "" if is_truthy(values.get(match.group(1))) else match.group(2)

    rendered = _POSITIVE_SECTION.sub(keep_if_truthy, template)
    return _INVERTED_SECTION.sub(keep_if_falsy, rendered)


def _substitute_variables(
    template: str,
    values: Mapping[str, TemplateValue],
    unresolved: list[str],
) -> str:
    def substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in values:
            unresolved.append(key)
            return ""
        return stringify(values[key])

    return _VARIABLE.sub(substitute, template)


def _cleanup(text: str, unresolved: list[str]) -> str:
    for match in _ANY_TAG.finditer(text):
        unresolved.append(match.group(1).strip())
    text = _ANY_TAG.sub("", text)
    text = _BLANK_RUNS.sub("\n\n", text)
    return text.strip()


def render(template: str, context: TemplateContext, *, strict: bool = False) -> str:
    """Render *template* against *context*.

    Unresolved placeholders are silently removed unless *strict* is set,
    in which case the render fails with the list of unresolved names.

    Args:
        template: Template text using the section and variable syntax
            described in the module docstring.
        context: Variable values.  Strings, numbers, booleans, and lists
            of strings are supported.
        strict: Raise instead of dropping unresolved placeholders.

    Returns:
        The rendered text, trimmed, with blank-line runs collapsed.

    Raises:
        TemplateRenderError: If the template's sections are malformed.
        UnknownVariableError: In strict mode, if any placeholder has no value.
    """
    validate_template(template)

    values = _with_summaries(context)
    unresolved: list[str] = []

    text = _render_list_sections(template, values)
    text = _render_conditional_sections(text, values)
    text = _substitute_variables(text, values, unresolved)
    text = _cleanup(text, unresolved)

    if strict and unresolved:
        raise UnknownVariableError(unresolved)
    return text


def template_variables(template: str) -> set[str]:
    """Return every variable and section key referenced by *template*."""
    names = {match.group(2) for match in _SECTION_TAG.finditer(template)}
    names.update(match.group(1) for match in _VARIABLE.finditer(template))
    return names
