"""
Correspondence — Template Variable Extraction & Rendering

Placeholders look like ``{{tenant_name}}``: two braces, one or more ASCII word
characters, two braces. Rendering is a single regex pass over the content, so
a substituted value is never scanned again even if it contains ``{{...}}``
itself.

Supported placeholders (closed set):
- tenant_name, property_name, rent_amount
- lease_start, lease_end           (locale date strings)
- property_address, bedrooms, bathrooms
- due_date                         (as-of date, today by default)

Anything else is left exactly as written.
"""

import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from correspondence.errors import InvalidTemplateError
from correspondence.models import CorrespondenceTemplate, RenderedCorrespondence


VARIABLE_PATTERN = re.compile(r"\{\{(\w+)\}\}", re.ASCII)


def _today() -> date:
    return date.today()


# ─────────────────────────────────────────────
# Value formatting
# ─────────────────────────────────────────────

def format_locale_date(value: date) -> str:
    """en-US short date: 2024-01-05 -> 1/5/2024."""
    return f"{value.month}/{value.day}/{value.year}"


def format_number(value: Any) -> Optional[str]:
    """
    Plain decimal string: 750 -> '750', 750.0 -> '750', 750.5 -> '750.5'.

    Never uses exponent notation. Booleans and non-finite floats are not
    numbers a letter can show, so they give None and the field's label is
    used instead.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (float, Decimal)):
        number = value if isinstance(value, Decimal) else Decimal(repr(value))
        if not number.is_finite():
            return None
        return format(number.normalize(), "f")
    return str(value)


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


def _format_date_field(value: Any) -> str:
    parsed = _parse_date(value)
    if parsed is None:
        return str(value)
    return format_locale_date(parsed)


# ─────────────────────────────────────────────
# Context lookup
# ─────────────────────────────────────────────

def _lookup(context: Any, names: Tuple[str, ...]) -> Any:
    """First non-empty value among ``names`` on a mapping or an object."""
    if context is None:
        return None
    for name in names:
        if isinstance(context, Mapping):
            value = context.get(name)
        else:
            value = getattr(context, name, None)
        if value is not None and value != "":
            return value
    return None


class _Field:
    """Resolver for one placeholder: where to look, how to format, what to say when missing."""

    def __init__(self, names: Tuple[str, ...], fallback: str, formatter: Callable[[Any], Optional[str]] = str):
        self.names = names
        self.fallback = fallback
        self.formatter = formatter

    def __call__(self, context: Any, as_of: date) -> str:
        value = _lookup(context, self.names)
        text = None if value is None else self.formatter(value)
        return self.fallback if text is None else text


def _due_date(context: Any, as_of: date) -> str:
    return format_locale_date(as_of)


TEMPLATE_VARIABLES: Dict[str, Callable[[Any, date], str]] = {
    "tenant_name": _Field(("name", "tenant_name", "tenantName"), "tenant"),
    "property_name": _Field(("property_name", "propertyName"), "your property"),
    "rent_amount": _Field(("rent", "rent_amount", "rentAmount"), "rent amount", format_number),
    "lease_start": _Field(("lease_start", "leaseStart"), "lease start date", _format_date_field),
    "lease_end": _Field(("lease_end", "leaseEnd"), "lease end date", _format_date_field),
    "property_address": _Field(("property_address", "propertyAddress", "address"), "Property address"),
    "bedrooms": _Field(("bedrooms",), "bedrooms", format_number),
    "bathrooms": _Field(("bathrooms",), "bathrooms", format_number),
    "due_date": _due_date,
}


# ─────────────────────────────────────────────
# Public operations
# ─────────────────────────────────────────────

def _require_text(content: Any) -> str:
    if not isinstance(content, str):
        raise InvalidTemplateError(content)
    return content


def extract_variables(content: str) -> List[str]:
    """Distinct placeholder names in first-occurrence order."""
    text = _require_text(content)
    return list(dict.fromkeys(match.group(1) for match in VARIABLE_PATTERN.finditer(text)))


def unsupported_variables(content: str) -> List[str]:
    """Placeholders in ``content`` that rendering will leave literal."""
    return [name for name in extract_variables(content) if name not in TEMPLATE_VARIABLES]


def render_template(content: str, context: Any = None, as_of: Optional[date] = None) -> str:
    """
    Substitute every supported placeholder in ``content``.

    ``due_date`` renders ``as_of`` (a date or datetime); without it the
    current date is used, so two renders on different days differ.
    """
    text = _require_text(content)
    if isinstance(as_of, datetime):
        as_of = as_of.date()
    render_date = as_of or _today()

    def substitute(match: "re.Match[str]") -> str:
        resolver = TEMPLATE_VARIABLES.get(match.group(1))
        if resolver is None:
            return match.group(0)
        return resolver(context, render_date)

    return VARIABLE_PATTERN.sub(substitute, text)


def render_correspondence(
    template: CorrespondenceTemplate,
    context: Any = None,
    as_of: Optional[date] = None,
) -> RenderedCorrespondence:
    """Render subject and body of a stored template for one recipient."""
    render_date = as_of or _today()
    return RenderedCorrespondence(
        template_name=template.name,
        subject=render_template(template.subject, context, render_date),
        content=render_template(template.content, context, render_date),
        unresolved_variables=unsupported_variables(template.subject + "\n" + template.content),
    )


def render_batch(
    template: CorrespondenceTemplate,
    contexts: Iterable[Any],
    as_of: Optional[date] = None,
) -> List[RenderedCorrespondence]:
    """One letter per recipient, in order, all dated the same day."""
    render_date = as_of or _today()
    return [render_correspondence(template, ctx, render_date) for ctx in contexts]
