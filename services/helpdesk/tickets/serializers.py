"""Serializers for ticket requests and responses."""
from __future__ import annotations

import json
from typing import Any, Dict, List

from rest_framework import serializers

from approvals.serializers import BusinessApprovalSerializer
from catalog.models import ServiceItem
from catalog.validation import FieldValue

from .lifecycle import APPROVAL_ACTIONS, NewTicket, TicketChanges
from .models import ClassificationAudit, CustomFieldValue, Ticket


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class CustomFieldValuesField(serializers.Field):
    """A list of ``{field_definition_id, value}`` items.

    Multipart clients send the list as a JSON string, so both forms are
    accepted. Values are stored as text.
    """

    default_error_messages = {
        "invalid_json": "Custom field values must be valid JSON.",
        "not_a_list": "Custom field values must be a list.",
        "invalid_item": "Each custom field value needs a numeric field_definition_id.",
    }

    def to_internal_value(self, data: Any) -> List[FieldValue]:
        if isinstance(data, str):
            try:
                data = json.loads(data) if data.strip() else []
            except ValueError:
                self.fail("invalid_json")
        if not isinstance(data, list):
            self.fail("not_a_list")

        values: List[FieldValue] = []
        for item in data:
            if not isinstance(item, dict):
                self.fail("invalid_item")
            raw_id = item.get("field_definition_id", item.get("fieldDefinitionId"))
            try:
                definition_id = int(raw_id)
            except (TypeError, ValueError):
                self.fail("invalid_item")
            values.append(FieldValue(definition_id, _as_text(item.get("value"))))
        return values

    def to_representation(self, value: List[FieldValue]) -> List[Dict[str, Any]]:
        return [
            {"field_definition_id": item.field_definition_id, "value": item.value}
            for item in value
        ]


class CustomFieldValueSerializer(serializers.ModelSerializer):
    field_name = serializers.CharField(source="field_definition.name", read_only=True)
    field_label = serializers.CharField(source="field_definition.display_label", read_only=True)
    field_type = serializers.CharField(source="field_definition.field_type", read_only=True)

    class Meta:
        model = CustomFieldValue
        fields = ["field_definition", "field_name", "field_label", "field_type", "value"]
        read_only_fields = fields


class TicketSerializer(serializers.ModelSerializer):
    custom_values = CustomFieldValueSerializer(many=True, read_only=True)
    confirmed_root_cause = serializers.CharField(read_only=True)
    confirmed_issue_category = serializers.CharField(read_only=True)
    approval = serializers.SerializerMethodField()

    class Meta:
        model = Ticket
        fields = [
            "id",
            "title",
            "description",
            "status",
            "priority",
            "business_impact",
            "request_type",
            "created_by",
            "assigned_to",
            "template",
            "service_item",
            "is_kasda_ticket",
            "requires_business_approval",
            "is_classification_locked",
            "user_root_cause",
            "user_issue_category",
            "tech_root_cause",
            "tech_issue_category",
            "confirmed_root_cause",
            "confirmed_issue_category",
            "reviewer_comments",
            "sla_due_at",
            "custom_values",
            "approval",
            "created_at",
            "updated_at",
            "resolved_at",
        ]
        read_only_fields = fields

    def get_approval(self, ticket: Ticket):
        approval = getattr(ticket, "business_approval", None)
        if approval is None:
            return None
        return BusinessApprovalSerializer(approval).data


class TicketCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    priority = serializers.ChoiceField(choices=Ticket.PRIORITY_CHOICES, default=Ticket.MEDIUM)
    business_impact = serializers.ChoiceField(choices=Ticket.IMPACT_CHOICES, default=Ticket.MEDIUM)
    request_type = serializers.ChoiceField(
        choices=ServiceItem.REQUEST_TYPE_CHOICES, required=False, allow_null=True
    )
    template_id = serializers.IntegerField(required=False, allow_null=True)
    service_item_id = serializers.IntegerField(required=False, allow_null=True)
    custom_field_values = CustomFieldValuesField(required=False)
    requires_approval = serializers.BooleanField(required=False, allow_null=True, default=None)

    def to_new_ticket(self) -> NewTicket:
        data = dict(self.validated_data)
        data.setdefault("custom_field_values", [])
        return NewTicket(**data)


class TicketUpdateSerializer(serializers.Serializer):
    """Partial update; only keys present in the request become changes."""

    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    priority = serializers.ChoiceField(choices=Ticket.PRIORITY_CHOICES, required=False)
    business_impact = serializers.ChoiceField(choices=Ticket.IMPACT_CHOICES, required=False)
    request_type = serializers.ChoiceField(choices=ServiceItem.REQUEST_TYPE_CHOICES, required=False)
    template_id = serializers.IntegerField(required=False, allow_null=True)
    service_item_id = serializers.IntegerField(required=False, allow_null=True)
    assigned_to_id = serializers.IntegerField(required=False, allow_null=True)
    status = serializers.ChoiceField(choices=Ticket.STATUS_CHOICES, required=False)
    custom_field_values = CustomFieldValuesField(required=False)

    def to_changes(self) -> TicketChanges:
        data = dict(self.validated_data)
        status = data.pop("status", None)
        values = data.pop("custom_field_values", None)
        return TicketChanges(fields=data, status=status, custom_field_values=values)


class ApprovalDecisionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=sorted(APPROVAL_ACTIONS))
    comments = serializers.CharField(required=False, allow_blank=True, default="")


class CategorizeSerializer(serializers.Serializer):
    root_cause = serializers.ChoiceField(choices=Ticket.ROOT_CAUSE_CHOICES, required=False)
    issue_category = serializers.ChoiceField(choices=Ticket.ISSUE_CATEGORY_CHOICES, required=False)
    reason = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:  # type: ignore[override]
        if "root_cause" not in attrs and "issue_category" not in attrs:
            raise serializers.ValidationError(
                "At least one of root_cause or issue_category must be provided."
            )
        return attrs


class BulkCategorizeSerializer(CategorizeSerializer):
    ticket_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1), allow_empty=False, max_length=500
    )


class ClassificationLockSerializer(serializers.Serializer):
    locked = serializers.BooleanField()


class ClassificationAuditSerializer(serializers.ModelSerializer):
    class Meta:
        model = ClassificationAudit
        fields = ["id", "changed_by", "field_name", "old_value", "new_value", "reason", "created_at"]
        read_only_fields = fields
