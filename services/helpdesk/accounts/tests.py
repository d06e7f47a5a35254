"""Tests for the directory queries and gateway authentication."""
from __future__ import annotations

from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from . import directory
from .models import Department, Unit, User


class DirectoryTests(TestCase):
    def setUp(self) -> None:
        self.department = Department.objects.create(name="Operations", department_type=Department.BUSINESS)
        self.unit = Unit.objects.create(name="Branch 1", department=self.department)
        self.other_unit = Unit.objects.create(name="Branch 2", department=self.department)
        self.requester = User.objects.create(
            email="req@example.com", display_name="Req", role=User.REQUESTER, unit=self.unit
        )

    def _reviewer(self, email: str, role: str = User.MANAGER, **extra) -> User:
        defaults = {"is_business_reviewer": True, "is_available": True}
        defaults.update(extra)
        return User.objects.create(email=email, display_name=email, role=role, **defaults)

    def test_unit_scope_orders_admins_first(self) -> None:
        manager = self._reviewer("m@example.com", unit=self.unit)
        admin = self._reviewer("a@example.com", role=User.ADMIN, unit=self.unit)

        found = directory.find_reviewers(directory.UNIT, self.requester)

        self.assertEqual([user.id for user in found], [admin.id, manager.id])

    def test_unavailable_and_non_reviewers_are_skipped(self) -> None:
        self._reviewer("busy@example.com", unit=self.unit, is_available=False)
        self._reviewer("plain@example.com", unit=self.unit, is_business_reviewer=False)
        User.objects.create(
            email="tech@example.com",
            display_name="Tech",
            role=User.TECHNICIAN,
            unit=self.unit,
            is_business_reviewer=True,
        )

        self.assertEqual(directory.find_reviewers(directory.UNIT, self.requester), [])

    def test_department_scope_includes_members_of_sibling_units(self) -> None:
        sibling = self._reviewer("s@example.com", unit=self.other_unit)
        direct = self._reviewer("d@example.com", department=self.department)

        found = directory.find_reviewers(directory.DEPARTMENT, self.requester)

        self.assertEqual({user.id for user in found}, {sibling.id, direct.id})

    def test_user_never_reviews_own_ticket(self) -> None:
        manager = self._reviewer("self@example.com", unit=self.unit)

        self.assertEqual(directory.find_reviewers(directory.GLOBAL, manager), [])

    def test_missing_unit_yields_empty_unit_scope(self) -> None:
        loner = User.objects.create(email="l@example.com", display_name="L")
        self._reviewer("m@example.com", unit=self.unit)

        self.assertEqual(directory.find_reviewers(directory.UNIT, loner), [])
        self.assertEqual(directory.find_reviewers(directory.DEPARTMENT, loner), [])
        self.assertEqual(len(directory.find_reviewers(directory.GLOBAL, loner)), 1)

    def test_unknown_scope_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            directory.find_reviewers("region", self.requester)


class GatewayAuthenticationTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()
        self.admin = User.objects.create(email="admin@example.com", display_name="Admin", role=User.ADMIN)

    def test_missing_header_is_rejected(self) -> None:
        response = self.client.get(reverse("user-list"))

        self.assertIn(response.status_code, (401, 403))
        self.assertEqual(response.data["kind"], "Forbidden")

    def test_unknown_user_is_rejected(self) -> None:
        response = self.client.get(reverse("user-list"), HTTP_X_USER_ID="9999")

        self.assertIn(response.status_code, (401, 403))

    def test_admin_can_create_department(self) -> None:
        response = self.client.post(
            reverse("department-list"),
            {"name": "Finance", "department_type": "business"},
            format="json",
            HTTP_X_USER_ID=str(self.admin.id),
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(Department.objects.get(name="Finance").department_type, Department.BUSINESS)

    def test_requester_cannot_modify_directory(self) -> None:
        requester = User.objects.create(email="r@example.com", display_name="R")

        response = self.client.post(
            reverse("department-list"),
            {"name": "Finance"},
            format="json",
            HTTP_X_USER_ID=str(requester.id),
        )

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["kind"], "Forbidden")
