"""Approval routing: who must approve a ticket, and whether anyone must at all."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from accounts import directory
from accounts.models import User

from .models import BusinessApproval

logger = logging.getLogger(__name__)

HIGH_IMPACT_LEVELS = frozenset({"high", "critical"})


@dataclass(frozen=True)
class ApprovalFlags:
    """Ticket attributes that can trigger a business approval."""

    is_kasda: bool = False
    business_impact: Optional[str] = None
    template_requires_approval: bool = False
    override: Optional[bool] = None


def requires_approval_for(actor_role: str, flags: ApprovalFlags) -> bool:
    """Decide whether a ticket raised by ``actor_role`` needs business approval.

    Only requesters are gated. For them any positive signal wins; an explicit
    ``override=False`` is the only way out, and the fallback is to require
    approval.
    """

    if actor_role != User.REQUESTER:
        return False
    if flags.override:
        return True
    if flags.is_kasda:
        return True
    if flags.business_impact in HIGH_IMPACT_LEVELS:
        return True
    if flags.template_requires_approval:
        return True
    if flags.override is False:
        return False
    return True


ReviewerLookup = Callable[[User], List[User]]


def _unit_reviewers(user: User) -> List[User]:
    return directory.find_reviewers(directory.UNIT, user)


def _department_reviewers(user: User) -> List[User]:
    return directory.find_reviewers(directory.DEPARTMENT, user)


def _global_reviewers(user: User) -> List[User]:
    return directory.find_reviewers(directory.GLOBAL, user)


# Tried in order; a tier is queried only when every earlier tier came back empty.
REVIEWER_LOOKUPS: Sequence[Tuple[str, ReviewerLookup]] = (
    (directory.UNIT, _unit_reviewers),
    (directory.DEPARTMENT, _department_reviewers),
    (directory.GLOBAL, _global_reviewers),
)


def select_reviewer(
    creator: User, lookups: Sequence[Tuple[str, ReviewerLookup]] = REVIEWER_LOOKUPS
) -> Optional[User]:
    for scope, lookup in lookups:
        candidates = lookup(creator)
        if candidates:
            reviewer = candidates[0]
            logger.info(
                "Selected reviewer %s for user %s from %s scope", reviewer.id, creator.id, scope
            )
            return reviewer
    logger.warning("No business reviewer available for user %s in any scope", creator.id)
    return None


def ensure_approval(ticket) -> Optional[BusinessApproval]:
    """Make sure ``ticket`` has a pending approval record.

    An existing record is reopened for its original reviewer; otherwise a
    reviewer is routed and a single record created. Returns ``None`` when no
    reviewer exists, in which case the ticket simply stays pending.
    """

    approval = BusinessApproval.objects.filter(ticket=ticket).select_related("reviewer").first()
    if approval is not None:
        if not approval.is_pending:
            approval.reopen()
        return approval

    reviewer = select_reviewer(ticket.created_by)
    if reviewer is None:
        logger.warning("Ticket %s left pending approval without a reviewer", ticket.id)
        return None
    return BusinessApproval.objects.create(
        ticket=ticket, reviewer=reviewer, status=BusinessApproval.PENDING
    )
