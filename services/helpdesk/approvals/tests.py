"""Tests for approval routing."""
from __future__ import annotations

from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from accounts import directory
from accounts.models import Department, Unit, User
from tickets.models import Ticket

from . import routing
from .models import BusinessApproval
from .routing import ApprovalFlags


class RequiresApprovalTests(SimpleTestCase):
    def test_only_requesters_are_gated(self) -> None:
        flags = ApprovalFlags(is_kasda=True, business_impact="critical", override=True)
        for role in (User.ADMIN, User.MANAGER, User.TECHNICIAN):
            with self.subTest(role=role):
                self.assertFalse(routing.requires_approval_for(role, flags))

    def test_positive_signals_require_approval(self) -> None:
        cases = [
            ApprovalFlags(is_kasda=True, override=False),
            ApprovalFlags(business_impact="high", override=False),
            ApprovalFlags(business_impact="critical", override=False),
            ApprovalFlags(template_requires_approval=True, override=False),
            ApprovalFlags(override=True),
        ]
        for flags in cases:
            with self.subTest(flags=flags):
                self.assertTrue(routing.requires_approval_for(User.REQUESTER, flags))

    def test_explicit_opt_out_without_signals(self) -> None:
        flags = ApprovalFlags(business_impact="medium", override=False)

        self.assertFalse(routing.requires_approval_for(User.REQUESTER, flags))

    def test_requester_default_is_approval(self) -> None:
        self.assertTrue(routing.requires_approval_for(User.REQUESTER, ApprovalFlags(business_impact="low")))


class SelectReviewerTests(TestCase):
    def setUp(self) -> None:
        self.department = Department.objects.create(name="Retail")
        self.unit = Unit.objects.create(name="Branch", department=self.department)
        self.requester = User.objects.create(
            email="req@example.com", display_name="Req", unit=self.unit
        )

    def _manager(self, email: str, **extra) -> User:
        return User.objects.create(
            email=email, display_name=email, role=User.MANAGER, is_business_reviewer=True, **extra
        )

    def test_unit_reviewer_wins(self) -> None:
        unit_manager = self._manager("unit@example.com", unit=self.unit)
        self._manager("dept@example.com", department=self.department)

        self.assertEqual(routing.select_reviewer(self.requester), unit_manager)

    def test_falls_back_to_department_then_global(self) -> None:
        global_manager = self._manager("global@example.com")
        self.assertEqual(routing.select_reviewer(self.requester), global_manager)

        dept_manager = self._manager("dept@example.com", department=self.department)
        self.assertEqual(routing.select_reviewer(self.requester), dept_manager)

    def test_later_tiers_are_not_queried_once_one_matches(self) -> None:
        calls = []

        def tier(name, result):
            def lookup(user):
                calls.append(name)
                return result
            return lookup

        lookups = (
            (directory.UNIT, tier("unit", [])),
            (directory.DEPARTMENT, tier("department", [self.requester])),
            (directory.GLOBAL, tier("global", [])),
        )

        self.assertEqual(routing.select_reviewer(self.requester, lookups), self.requester)
        self.assertEqual(calls, ["unit", "department"])

    def test_no_reviewer_anywhere(self) -> None:
        with self.assertLogs("approvals.routing", level="WARNING"):
            self.assertIsNone(routing.select_reviewer(self.requester))


class EnsureApprovalTests(TestCase):
    def setUp(self) -> None:
        self.requester = User.objects.create(email="req@example.com", display_name="Req")
        self.manager = User.objects.create(
            email="boss@example.com", display_name="Boss", role=User.MANAGER, is_business_reviewer=True
        )
        self.ticket = Ticket.objects.create(
            title="Access", created_by=self.requester, status=Ticket.PENDING_APPROVAL
        )

    def test_creates_one_record_and_reopens_it_later(self) -> None:
        approval = routing.ensure_approval(self.ticket)
        self.assertEqual(approval.reviewer, self.manager)

        approval.mark_decided(BusinessApproval.REVIEW_REQUIRED, "More detail please")
        User.objects.create(
            email="admin@example.com", display_name="Admin", role=User.ADMIN, is_business_reviewer=True
        )

        reopened = routing.ensure_approval(self.ticket)

        self.assertEqual(reopened.id, approval.id)
        self.assertEqual(reopened.reviewer, self.manager)
        self.assertEqual(reopened.status, BusinessApproval.PENDING)
        self.assertIsNone(reopened.decided_at)
        self.assertEqual(BusinessApproval.objects.filter(ticket=self.ticket).count(), 1)

    def test_without_reviewer_no_record_is_created(self) -> None:
        self.manager.is_available = False
        self.manager.save()

        self.assertIsNone(routing.ensure_approval(self.ticket))
        self.assertFalse(BusinessApproval.objects.exists())


class ApprovalQueueApiTests(TestCase):
    def test_reviewers_only_see_their_own_queue(self) -> None:
        requester = User.objects.create(email="req@example.com", display_name="Req")
        mine = User.objects.create(email="a@example.com", display_name="A", role=User.MANAGER)
        other = User.objects.create(email="b@example.com", display_name="B", role=User.MANAGER)
        for reviewer in (mine, other):
            ticket = Ticket.objects.create(
                title=f"For {reviewer.display_name}",
                created_by=requester,
                status=Ticket.PENDING_APPROVAL,
            )
            BusinessApproval.objects.create(ticket=ticket, reviewer=reviewer)

        client = APIClient()
        response = client.get(reverse("approval-list"), HTTP_X_USER_ID=str(mine.id))

        self.assertEqual(response.status_code, 200)
        self.assertEqual([item["ticket_title"] for item in response.data], ["For A"])
