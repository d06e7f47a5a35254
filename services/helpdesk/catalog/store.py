"""Field definition store.

Every call reads the current definitions from the database. Templates are
editable by administrators at any time and validation must follow the live
schema, so nothing here is cached.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .models import TemplateFieldDefinition, TicketTemplate


@dataclass(frozen=True)
class FieldDefinition:
    id: int
    name: str
    label: str
    field_type: str
    options: Tuple[str, ...]
    is_required: bool


def _to_definition(row: TemplateFieldDefinition) -> FieldDefinition:
    options = row.options if isinstance(row.options, list) else []
    return FieldDefinition(
        id=row.id,
        name=row.name,
        label=row.display_label,
        field_type=row.field_type,
        options=tuple(str(option) for option in options),
        is_required=row.is_required,
    )


def get_definitions(template_id: Optional[int]) -> List[FieldDefinition]:
    """Return the template's definitions ordered by ``sort_order``."""

    if template_id is None:
        return []
    rows = TemplateFieldDefinition.objects.filter(template_id=template_id).order_by(
        "sort_order", "id"
    )
    return [_to_definition(row) for row in rows]


def template_exists(template_id: int) -> bool:
    return TicketTemplate.objects.filter(id=template_id).exists()
