"""
Content lifecycle states and the transition table.

Every status change of a ContentItem goes through ``TRANSITIONS``; routes and
services never compare or assign raw status strings on their own.
"""
from enum import Enum
from typing import Dict, Tuple

from .errors import InvalidTransition


class ContentStatus(str, Enum):
    """Lifecycle states of a content item"""
    DRAFT = "draft"
    IN_PRODUCTION = "in_production"
    PENDING_APPROVAL = "pending_approval"
    ADJUSTMENT_REQUESTED = "adjustment_requested"
    APPROVED = "approved"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    CANCELED = "canceled"


class LinkStatus(str, Enum):
    """Resolution state of an approval link"""
    PENDING = "pending"
    APPROVED = "approved"
    ADJUSTMENT_REQUESTED = "adjustment_requested"


class Trigger(str, Enum):
    """Actions that move a content item between states"""
    SUBMIT = "submit"
    SUBMIT_FOR_REVIEW = "submit_for_review"
    EXTERNAL_APPROVE = "external_approve"
    EXTERNAL_REQUEST_ADJUSTMENT = "external_request_adjustment"
    RESUBMIT = "resubmit"
    REWORK = "rework"
    WITHDRAW = "withdraw"
    SCHEDULE = "schedule"
    UNSCHEDULE = "unschedule"
    PUBLISH = "publish"
    CANCEL = "cancel"


CANCELABLE = (
    ContentStatus.DRAFT,
    ContentStatus.IN_PRODUCTION,
    ContentStatus.PENDING_APPROVAL,
    ContentStatus.ADJUSTMENT_REQUESTED,
    ContentStatus.APPROVED,
)

# (from, trigger) -> to
TRANSITIONS: Dict[Tuple[ContentStatus, Trigger], ContentStatus] = {
    (ContentStatus.DRAFT, Trigger.SUBMIT): ContentStatus.IN_PRODUCTION,
    (ContentStatus.IN_PRODUCTION, Trigger.SUBMIT_FOR_REVIEW): ContentStatus.PENDING_APPROVAL,
    (ContentStatus.PENDING_APPROVAL, Trigger.EXTERNAL_APPROVE): ContentStatus.APPROVED,
    (ContentStatus.PENDING_APPROVAL, Trigger.EXTERNAL_REQUEST_ADJUSTMENT): ContentStatus.ADJUSTMENT_REQUESTED,
    (ContentStatus.ADJUSTMENT_REQUESTED, Trigger.RESUBMIT): ContentStatus.PENDING_APPROVAL,
    (ContentStatus.ADJUSTMENT_REQUESTED, Trigger.REWORK): ContentStatus.IN_PRODUCTION,
    (ContentStatus.PENDING_APPROVAL, Trigger.WITHDRAW): ContentStatus.IN_PRODUCTION,
    (ContentStatus.APPROVED, Trigger.SCHEDULE): ContentStatus.SCHEDULED,
    (ContentStatus.SCHEDULED, Trigger.UNSCHEDULE): ContentStatus.APPROVED,
    (ContentStatus.SCHEDULED, Trigger.PUBLISH): ContentStatus.PUBLISHED,
}
TRANSITIONS.update({(state, Trigger.CANCEL): ContentStatus.CANCELED for state in CANCELABLE})

# Triggers that open a new external approval round
REVIEW_TRIGGERS = (Trigger.SUBMIT_FOR_REVIEW, Trigger.RESUBMIT)


def next_status(current, trigger) -> ContentStatus:
    """Return the target state for ``trigger`` or raise InvalidTransition."""
    current = ContentStatus(current)
    trigger = Trigger(trigger)
    target = TRANSITIONS.get((current, trigger))
    if target is None:
        raise InvalidTransition(current.value, trigger.value)
    return target


def allowed_triggers(current) -> list:
    """Triggers accepted from ``current``, for display in the dashboard."""
    current = ContentStatus(current)
    return [trigger.value for (state, trigger) in TRANSITIONS if state == current]


def review_trigger_for(current):
    """The trigger that moves ``current`` into pending_approval, if any."""
    current = ContentStatus(current)
    for trigger in REVIEW_TRIGGERS:
        if (current, trigger) in TRANSITIONS:
            return trigger
    return None
