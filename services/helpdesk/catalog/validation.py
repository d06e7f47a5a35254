"""Custom field validation against a template's live field definitions."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Sequence

from dateutil import parser as date_parser
from django.utils.dateparse import parse_date, parse_datetime

from . import store
from .models import TemplateFieldDefinition
from .store import FieldDefinition


@dataclass(frozen=True)
class FieldValue:
    field_definition_id: int
    value: str


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    reason: str = ""
    field_errors: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def accepted(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def rejected(cls, reason: str, **field_errors: str) -> "ValidationResult":
        return cls(ok=False, reason=reason, field_errors=dict(field_errors))


def _is_number(value: str) -> bool:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return not math.isnan(number)


def _is_date(value: str) -> bool:
    text = (value or "").strip()
    if not text:
        return False
    try:
        if parse_datetime(text) is not None or parse_date(text) is not None:
            return True
    except ValueError:
        # Well-formed but impossible, e.g. 2024-02-31.
        return False
    # Non-ISO forms browsers submit: 01/15/2024, January 15, 2024, 2024/01/15.
    try:
        date_parser.parse(text)
    except (ValueError, OverflowError):
        return False
    return True


def check_value(definition: FieldDefinition, value: str) -> Optional[str]:
    """Return an error message when ``value`` does not fit ``definition``."""

    kind = definition.field_type
    if kind == TemplateFieldDefinition.NUMBER and not _is_number(value):
        return f"Value for field \"{definition.label}\" must be a number. Received: '{value}'"
    if kind == TemplateFieldDefinition.DATE and not _is_date(value):
        return f"Value for field \"{definition.label}\" must be a valid date. Received: '{value}'"
    if kind in TemplateFieldDefinition.CHOICE_TYPES and value not in definition.options:
        return f"Value for field \"{definition.label}\" is not a valid option. Received: '{value}'"
    if (
        kind == TemplateFieldDefinition.CHECKBOX
        and definition.options
        and value not in definition.options
    ):
        return (
            f"Value for field \"{definition.label}\" is not a valid option for the checkbox. "
            f"Received: '{value}'"
        )
    return None


def validate_against(
    template_id: Optional[int],
    definitions: Sequence[FieldDefinition],
    submitted: Iterable[FieldValue],
) -> ValidationResult:
    """Validate ``submitted`` against an already loaded definition set."""

    submitted = list(submitted)
    if template_id is None:
        if submitted:
            return ValidationResult.rejected(
                "Cannot provide custom field values without an active template."
            )
        return ValidationResult.accepted()

    if not definitions:
        if submitted:
            return ValidationResult.rejected(
                f"Template {template_id} has no custom fields defined, but values were submitted."
            )
        return ValidationResult.accepted()

    by_id = {definition.id: definition for definition in definitions}
    seen: set = set()
    for item in submitted:
        definition = by_id.get(item.field_definition_id)
        if definition is None:
            return ValidationResult.rejected(
                f"Custom field with ID {item.field_definition_id} does not belong to "
                f"template {template_id}."
            )
        if definition.id in seen:
            return ValidationResult.rejected(
                f"Field \"{definition.label}\" was submitted more than once.",
                **{definition.name: "Duplicate value."},
            )
        seen.add(definition.id)
        error = check_value(definition, item.value)
        if error:
            return ValidationResult.rejected(error, **{definition.name: error})

    missing = [d for d in definitions if d.is_required and d.id not in seen]
    if missing:
        labels = ", ".join(d.label for d in missing)
        return ValidationResult.rejected(
            f"Missing required fields for template {template_id}: {labels}.",
            **{d.name: "This field is required." for d in missing},
        )
    return ValidationResult.accepted()


def validate(template_id: Optional[int], submitted: Iterable[FieldValue]) -> ValidationResult:
    """Validate submitted values against the template's current definitions."""

    return validate_against(template_id, store.get_definitions(template_id), submitted)
