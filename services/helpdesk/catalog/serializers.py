"""Serializers for templates and the service catalog."""
from __future__ import annotations

from rest_framework import serializers

from .models import ServiceItem, TemplateFieldDefinition, TicketTemplate


class TemplateFieldDefinitionSerializer(serializers.ModelSerializer):
    class Meta:
        model = TemplateFieldDefinition
        fields = [
            "id",
            "name",
            "label",
            "field_type",
            "options",
            "is_required",
            "sort_order",
        ]
        read_only_fields = ["sort_order"]

    def validate_options(self, value):
        if not isinstance(value, list) or not all(isinstance(option, str) for option in value):
            raise serializers.ValidationError("Options must be a list of strings.")
        return value

    def validate(self, attrs):  # type: ignore[override]
        field_type = attrs.get("field_type")
        options = attrs.get("options") or []
        if field_type in TemplateFieldDefinition.CHOICE_TYPES and not options:
            raise serializers.ValidationError(
                {"options": f"Fields of type {field_type} need at least one option."}
            )
        return attrs


class TicketTemplateSerializer(serializers.ModelSerializer):
    field_definitions = TemplateFieldDefinitionSerializer(many=True)

    class Meta:
        model = TicketTemplate
        fields = [
            "id",
            "name",
            "description",
            "requires_approval",
            "is_active",
            "created_at",
            "updated_at",
            "field_definitions",
        ]

    def validate_field_definitions(self, value):
        names = [definition["name"] for definition in value]
        if len(names) != len(set(names)):
            raise serializers.ValidationError("Field names must be unique within a template.")
        return value

    def create(self, validated_data):  # type: ignore[override]
        definitions = validated_data.pop("field_definitions", [])
        template = TicketTemplate.objects.create(**validated_data)
        for index, definition in enumerate(definitions):
            TemplateFieldDefinition.objects.create(template=template, sort_order=index, **definition)
        return template

    def update(self, instance, validated_data):  # type: ignore[override]
        definitions = validated_data.pop("field_definitions", None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()

        if definitions is not None:
            instance.field_definitions.all().delete()
            for index, definition in enumerate(definitions):
                TemplateFieldDefinition.objects.create(
                    template=instance, sort_order=index, **definition
                )
        return instance


class ServiceItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = ServiceItem
        fields = [
            "id",
            "name",
            "description",
            "request_type",
            "is_kasda_related",
            "requires_approval",
            "template",
            "is_active",
        ]
