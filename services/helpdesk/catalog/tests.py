"""Tests for custom field validation and the template API."""
from __future__ import annotations

from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from accounts.models import User

from . import store, validation
from .models import TemplateFieldDefinition, TicketTemplate
from .store import FieldDefinition
from .validation import FieldValue


def _definition(id: int, name: str, field_type: str, options=(), is_required: bool = False):
    return FieldDefinition(
        id=id, name=name, label=name.title(), field_type=field_type, options=tuple(options), is_required=is_required
    )


COLOR = _definition(1, "color", TemplateFieldDefinition.DROPDOWN, ("red", "blue"), is_required=True)
SIZE = _definition(2, "size", TemplateFieldDefinition.NUMBER, is_required=True)
DUE = _definition(3, "due", TemplateFieldDefinition.DATE)
AGREE = _definition(4, "agree", TemplateFieldDefinition.CHECKBOX, ("yes",))
NOTES = _definition(5, "notes", TemplateFieldDefinition.TEXTAREA)
DEFINITIONS = [COLOR, SIZE, DUE, AGREE, NOTES]


class ValidateAgainstTests(SimpleTestCase):
    def _check(self, *values):
        return validation.validate_against(10, DEFINITIONS, [FieldValue(*item) for item in values])

    def test_complete_valid_submission_is_accepted(self) -> None:
        result = self._check((1, "red"), (2, "3.5"), (3, "2024-05-01"), (4, "yes"), (5, "anything"))

        self.assertTrue(result.ok)

    def test_values_without_template_are_rejected(self) -> None:
        result = validation.validate_against(None, [], [FieldValue(1, "red")])

        self.assertFalse(result.ok)
        self.assertIn("without an active template", result.reason)

    def test_no_template_and_no_values_is_accepted(self) -> None:
        self.assertTrue(validation.validate_against(None, [], []).ok)

    def test_template_without_fields_rejects_values(self) -> None:
        result = validation.validate_against(10, [], [FieldValue(1, "red")])

        self.assertFalse(result.ok)
        self.assertIn("no custom fields", result.reason)

    def test_unknown_field_id_is_named(self) -> None:
        result = self._check((99, "x"), (1, "red"), (2, "1"))

        self.assertFalse(result.ok)
        self.assertIn("99", result.reason)

    def test_dropdown_value_must_be_an_option(self) -> None:
        result = self._check((1, "green"), (2, "1"))

        self.assertFalse(result.ok)
        self.assertIn("Color", result.reason)
        self.assertIn("color", result.field_errors)

    def test_number_rejects_text_and_nan(self) -> None:
        self.assertFalse(self._check((1, "red"), (2, "many")).ok)
        self.assertFalse(self._check((1, "red"), (2, "nan")).ok)

    def test_impossible_date_is_rejected(self) -> None:
        self.assertFalse(self._check((1, "red"), (2, "1"), (3, "2024-02-31")).ok)
        self.assertFalse(self._check((1, "red"), (2, "1"), (3, "tomorrow")).ok)

    def test_common_date_formats_are_accepted(self) -> None:
        for text in ["01/15/2024", "January 15, 2024", "2024/01/15", "2024-01-15T10:00:00Z"]:
            with self.subTest(value=text):
                self.assertTrue(self._check((1, "red"), (2, "1"), (3, text)).ok)

    def test_impossible_dates_in_other_formats_are_rejected(self) -> None:
        for text in ["02/31/2024", "2024/02/31", ""]:
            with self.subTest(value=text):
                self.assertFalse(self._check((1, "red"), (2, "1"), (3, text)).ok)

    def test_checkbox_with_options_checks_membership(self) -> None:
        self.assertFalse(self._check((1, "red"), (2, "1"), (4, "no")).ok)

    def test_checkbox_without_options_accepts_anything(self) -> None:
        loose = _definition(6, "flag", TemplateFieldDefinition.CHECKBOX)

        result = validation.validate_against(10, [loose], [FieldValue(6, "whatever")])

        self.assertTrue(result.ok)

    def test_duplicate_field_is_rejected(self) -> None:
        self.assertFalse(self._check((1, "red"), (1, "blue"), (2, "1")).ok)

    def test_each_missing_required_field_is_named(self) -> None:
        for required in (COLOR, SIZE):
            with self.subTest(field=required.name):
                values = [(1, "red"), (2, "1")]
                values = [item for item in values if item[0] != required.id]

                result = self._check(*values)

                self.assertFalse(result.ok)
                self.assertIn(required.label, result.reason)
                self.assertIn(required.name, result.field_errors)

    def test_all_missing_labels_share_one_message(self) -> None:
        result = self._check()

        self.assertIn("Color, Size", result.reason)


class FieldDefinitionStoreTests(TestCase):
    def test_definitions_follow_live_schema(self) -> None:
        template = TicketTemplate.objects.create(name="Access")
        TemplateFieldDefinition.objects.create(
            template=template, name="system", field_type="text", is_required=True, sort_order=1
        )
        TemplateFieldDefinition.objects.create(
            template=template, name="reason", field_type="textarea", sort_order=0
        )

        names = [definition.name for definition in store.get_definitions(template.id)]
        self.assertEqual(names, ["reason", "system"])

        TemplateFieldDefinition.objects.filter(template=template, name="system").update(is_required=False)
        result = validation.validate(template.id, [])
        self.assertTrue(result.ok)

    def test_unknown_template_has_no_definitions(self) -> None:
        self.assertEqual(store.get_definitions(None), [])
        self.assertFalse(store.template_exists(12345))


class TemplateApiTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()
        self.admin = User.objects.create(email="admin@example.com", display_name="Admin", role=User.ADMIN)
        self.client.credentials(HTTP_X_USER_ID=str(self.admin.id))

    def test_create_template_with_fields(self) -> None:
        payload = {
            "name": "Hardware request",
            "requires_approval": True,
            "field_definitions": [
                {"name": "color", "field_type": "dropdown", "options": ["red", "blue"], "is_required": True},
                {"name": "notes", "field_type": "textarea"},
            ],
        }

        response = self.client.post(reverse("template-list"), payload, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(
            [(item["name"], item["sort_order"]) for item in response.data["field_definitions"]],
            [("color", 0), ("notes", 1)],
        )

    def test_choice_field_needs_options(self) -> None:
        payload = {
            "name": "Broken",
            "field_definitions": [{"name": "color", "field_type": "radio", "options": []}],
        }

        response = self.client.post(reverse("template-list"), payload, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["kind"], "ValidationFailed")
