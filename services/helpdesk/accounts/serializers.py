"""Serializers for identity records."""
from __future__ import annotations

from rest_framework import serializers

from .models import Department, Unit, User


class DepartmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Department
        fields = ["id", "name", "department_type"]


class UnitSerializer(serializers.ModelSerializer):
    class Meta:
        model = Unit
        fields = ["id", "name", "department"]


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "display_name",
            "role",
            "unit",
            "department",
            "is_business_reviewer",
            "is_available",
            "is_active",
            "created_at",
            "updated_at",
        ]
