"""
Content lifecycle state machine.

All writes to ``ContentItem.status`` and to the internal gate are conditional
UPDATEs (``WHERE status = <expected>``), so a change made by a concurrent
request shows up as a StateConflict instead of being overwritten. Public
operations commit on success and roll back on any failure, then return the
``LifecycleEvent`` the caller hands to the notifiers.
"""
from functools import wraps
from typing import Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..logging_config import approvals_logger, mask_token
from ..models.activity import ContentActivity
from ..models.approval_link import ApprovalLink
from ..models.content_item import ContentItem
from .errors import (
    ApprovalValidationError,
    InternalApprovalRequired,
    LinkIssueFailed,
    PermissionDenied,
    StateConflict,
)
from .events import LifecycleEvent
from .states import ContentStatus, LinkStatus, Trigger, next_status, review_trigger_for
from .tokens import build_approval_url, expires_in, new_token, utcnow

settings = get_settings()

TRIGGER_EVENTS = {
    Trigger.SUBMIT: "submitted",
    Trigger.SUBMIT_FOR_REVIEW: "review_requested",
    Trigger.RESUBMIT: "review_requested",
    Trigger.EXTERNAL_APPROVE: "approved",
    Trigger.EXTERNAL_REQUEST_ADJUSTMENT: "adjustment_requested",
    Trigger.REWORK: "rework",
    Trigger.WITHDRAW: "withdrawn",
    Trigger.SCHEDULE: "scheduled",
    Trigger.UNSCHEDULE: "unscheduled",
    Trigger.PUBLISH: "published",
    Trigger.CANCEL: "canceled",
}

# Sending content back to production closes the internal gate again
GATE_RESETTING = (Trigger.REWORK, Trigger.WITHDRAW)

INTERNAL_REVIEW_STATES = (ContentStatus.IN_PRODUCTION.value, ContentStatus.ADJUSTMENT_REQUESTED.value)

# What the client reviewed (or is reviewing) must stay what gets published
LOCKED_STATES = (
    ContentStatus.PENDING_APPROVAL.value,
    ContentStatus.APPROVED.value,
    ContentStatus.SCHEDULED.value,
    ContentStatus.PUBLISHED.value,
    ContentStatus.CANCELED.value,
)

EDITABLE_FIELDS = ("title", "body", "media_urls", "channels", "publish_date")


def transactional(func):
    """Commit after ``func`` succeeds, roll back if it raises."""
    @wraps(func)
    def wrapper(db: Session, *args, **kwargs):
        try:
            result = func(db, *args, **kwargs)
            db.commit()
        except Exception:
            db.rollback()
            raise
        return result
    return wrapper


# ============================================================
# INTERNALS
# ============================================================

def _event(content: ContentItem, name: str, previous: str, new: str,
           actor_name: Optional[str] = None, comment: Optional[str] = None) -> LifecycleEvent:
    return LifecycleEvent(
        event=name,
        content_id=content.id,
        org_id=content.org_id,
        client_name=content.client.name if content.client else None,
        title=content.title,
        previous_status=previous,
        new_status=new,
        comment=comment,
        actor_name=actor_name,
    )


def _record(db: Session, content: ContentItem, action: str, previous: str, new: str,
            member=None, actor_name: Optional[str] = None, comment: Optional[str] = None) -> None:
    db.add(ContentActivity(
        content_id=content.id,
        org_id=content.org_id,
        action=action,
        previous_status=previous,
        new_status=new,
        member_id=member.id if member else None,
        actor_name=actor_name or (member.display_name if member else None),
        comment=comment,
    ))


def _raise_conflict(db: Session, content: ContentItem, gated: bool = False):
    """Explain why a conditional update matched no row."""
    db.refresh(content)
    if gated and not content.internal_approved:
        raise InternalApprovalRequired(content.id)
    raise StateConflict(
        f"Content changed concurrently and is now '{content.status}'",
        content.status,
    )


def _require_comment(comment: Optional[str]) -> str:
    if comment is None or not comment.strip():
        raise ApprovalValidationError("A comment describing the requested adjustments is required", "comment")
    return comment.strip()


def _require_reviewer(member) -> None:
    if member is None or not member.can_review:
        raise PermissionDenied("Only owners and managers can review content internally")


def apply_transition(db: Session, content: ContentItem, trigger: Trigger, *, member=None,
                     actor_name: Optional[str] = None, comment: Optional[str] = None,
                     gated: bool = False, values: Optional[dict] = None) -> LifecycleEvent:
    """Move ``content`` along ``trigger`` without committing.

    ``gated`` additionally requires ``internal_approved`` in the same UPDATE.
    """
    current = ContentStatus(content.status)
    target = next_status(current, trigger)

    changes = dict(values or {})
    if trigger in GATE_RESETTING:
        changes["internal_approved"] = False

    stmt = (
        update(ContentItem)
        .where(ContentItem.id == content.id, ContentItem.status == current.value)
        .values(status=target.value, updated_at=utcnow(), **changes)
        .execution_options(synchronize_session=False)
    )
    if gated:
        stmt = stmt.where(ContentItem.internal_approved.is_(True))

    if db.execute(stmt).rowcount != 1:
        _raise_conflict(db, content, gated)

    _record(db, content, trigger.value, current.value, target.value,
            member=member, actor_name=actor_name, comment=comment)
    approvals_logger.info(
        f"Content {content.id}: {current.value} -> {target.value}",
        content_id=content.id,
        trigger=trigger.value,
    )
    return _event(content, TRIGGER_EVENTS[trigger], current.value, target.value,
                  actor_name=actor_name or (member.display_name if member else None), comment=comment)


def _insert_link(db: Session, content: ContentItem, member=None) -> ApprovalLink:
    """Insert a pending link, retrying on the rare token collision."""
    attempts = settings.approval_token_max_attempts
    for attempt in range(1, attempts + 1):
        now = utcnow()
        link = ApprovalLink(
            content_id=content.id,
            client_id=content.client_id,
            org_id=content.org_id,
            issued_by=member.id if member else None,
            token=new_token(settings.approval_token_length),
            status=LinkStatus.PENDING.value,
            created_at=now,
            expires_at=expires_in(settings.approval_link_ttl_days, now),
        )
        try:
            with db.begin_nested():
                db.add(link)
        except IntegrityError:
            approvals_logger.warning("Approval token collision, retrying", content_id=content.id, attempt=attempt)
            continue
        return link
    raise LinkIssueFailed(attempts)


def _clean_changes(changes: dict) -> dict:
    values = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
    if "title" in values:
        title = (values["title"] or "").strip()
        if not title:
            raise ApprovalValidationError("Title cannot be empty", "title")
        values["title"] = title
    for field in ("media_urls", "channels"):
        if field in values and values[field] is None:
            values[field] = []
    return values


# ============================================================
# EDITING
# ============================================================

@transactional
def edit(db: Session, content: ContentItem, member, changes: dict) -> Optional[LifecycleEvent]:
    """Apply descriptive edits to unlocked content.

    Editing content that already passed the internal gate closes the gate in
    the same UPDATE, so an approval link can only be issued for content an
    owner or manager has seen. Returns the reset event, or None when the gate
    was already closed.
    """
    values = _clean_changes(changes)
    db.refresh(content)
    current = content.status
    if current in LOCKED_STATES:
        raise StateConflict(f"Content in status '{current}' cannot be edited", current)
    if not values:
        return None

    gate_open = bool(content.internal_approved)
    result = db.execute(
        update(ContentItem)
        .where(
            ContentItem.id == content.id,
            ContentItem.status == current,
            ContentItem.internal_approved.is_(gate_open),
        )
        .values(
            updated_at=utcnow(),
            internal_approved=False,
            internal_approved_by=None,
            internal_approved_at=None,
            **values,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        _raise_conflict(db, content)

    _record(db, content, "edited", current, current, member=member, comment=", ".join(sorted(values)))
    if not gate_open:
        return None

    comment = "Edited after internal approval"
    _record(db, content, "internal_approval_reset", current, current, member=member, comment=comment)
    approvals_logger.info("Internal approval reset by edit", content_id=content.id, member_id=member.id)
    return _event(content, "internal_approval_reset", current, current,
                  actor_name=member.display_name, comment=comment)


# ============================================================
# INTERNAL ACTIONS
# ============================================================

@transactional
def submit(db: Session, content: ContentItem, member) -> LifecycleEvent:
    """Hand a draft over to production."""
    return apply_transition(db, content, Trigger.SUBMIT, member=member)


@transactional
def request_internal_review(db: Session, content: ContentItem, member) -> LifecycleEvent:
    """Ask an owner or manager to open the internal gate. Status is unchanged."""
    if content.status not in INTERNAL_REVIEW_STATES:
        raise StateConflict(f"Cannot request internal review for content in status '{content.status}'", content.status)
    _record(db, content, "internal_review_requested", content.status, content.status, member=member)
    return _event(content, "internal_review_requested", content.status, content.status,
                  actor_name=member.display_name)


@transactional
def internal_approve(db: Session, content: ContentItem, member, comment: Optional[str] = None) -> LifecycleEvent:
    """Open the internal gate so an approval link may be issued."""
    _require_reviewer(member)
    now = utcnow()
    result = db.execute(
        update(ContentItem)
        .where(ContentItem.id == content.id, ContentItem.status.in_(INTERNAL_REVIEW_STATES))
        .values(internal_approved=True, internal_approved_by=member.id, internal_approved_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        _raise_conflict(db, content)
    _record(db, content, "internal_approved", content.status, content.status, member=member, comment=comment)
    return _event(content, "internal_approved", content.status, content.status,
                  actor_name=member.display_name, comment=comment)


@transactional
def internal_reject(db: Session, content: ContentItem, member, comment: Optional[str]) -> LifecycleEvent:
    """Close the internal gate and ask production for changes."""
    comment = _require_comment(comment)
    _require_reviewer(member)
    result = db.execute(
        update(ContentItem)
        .where(ContentItem.id == content.id, ContentItem.status.in_(INTERNAL_REVIEW_STATES))
        .values(internal_approved=False, internal_approved_by=None, internal_approved_at=None, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        _raise_conflict(db, content)
    _record(db, content, "internal_adjustment_requested", content.status, content.status,
            member=member, comment=comment)
    return _event(content, "internal_adjustment_requested", content.status, content.status,
                  actor_name=member.display_name, comment=comment)


@transactional
def issue_link(db: Session, content: ContentItem, member=None,
               base_url: Optional[str] = None) -> Tuple[ApprovalLink, str, LifecycleEvent]:
    """Pass the internal gate and issue a new client approval link in one transaction.

    From in_production or adjustment_requested the content moves to
    pending_approval. From pending_approval a further link is issued (for
    example after the previous one expired) and the status is unchanged.
    """
    if not content.internal_approved:
        raise InternalApprovalRequired(content.id)

    previous = content.status
    trigger = review_trigger_for(previous)
    if trigger is not None:
        event = apply_transition(db, content, trigger, member=member, gated=True)
    elif previous == ContentStatus.PENDING_APPROVAL.value:
        result = db.execute(
            update(ContentItem)
            .where(
                ContentItem.id == content.id,
                ContentItem.status == previous,
                ContentItem.internal_approved.is_(True),
            )
            .values(updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            _raise_conflict(db, content, gated=True)
        _record(db, content, "link_reissued", previous, previous, member=member)
        event = _event(content, "review_requested", previous, previous,
                       actor_name=member.display_name if member else None)
    else:
        raise StateConflict(f"Cannot issue an approval link for content in status '{previous}'", previous)

    link = _insert_link(db, content, member)
    approvals_logger.info(
        "Approval link issued",
        content_id=content.id,
        link_id=link.id,
        token=mask_token(link.token),
    )
    return link, build_approval_url(base_url or settings.app_base_url, link.token), event


@transactional
def rework(db: Session, content: ContentItem, member, comment: Optional[str] = None) -> LifecycleEvent:
    """Send content with requested adjustments back to production."""
    return apply_transition(db, content, Trigger.REWORK, member=member, comment=comment)


@transactional
def withdraw(db: Session, content: ContentItem, member, comment: Optional[str] = None) -> LifecycleEvent:
    """Pull content out of client review. Outstanding links can no longer be resolved."""
    return apply_transition(db, content, Trigger.WITHDRAW, member=member, comment=comment)


@transactional
def schedule(db: Session, content: ContentItem, member, publish_date=None) -> LifecycleEvent:
    publish_date = publish_date or content.publish_date
    if publish_date is None:
        raise ApprovalValidationError("A publish date is required to schedule content", "publish_date")
    return apply_transition(db, content, Trigger.SCHEDULE, member=member, values={"publish_date": publish_date})


@transactional
def unschedule(db: Session, content: ContentItem, member) -> LifecycleEvent:
    return apply_transition(db, content, Trigger.UNSCHEDULE, member=member)


@transactional
def publish(db: Session, content: ContentItem, member=None, published_url: Optional[str] = None) -> LifecycleEvent:
    """Record that the publishing job delivered the content."""
    return apply_transition(
        db, content, Trigger.PUBLISH, member=member,
        values={"published_at": utcnow(), "published_url": published_url},
    )


@transactional
def cancel(db: Session, content: ContentItem, member, comment: Optional[str] = None) -> LifecycleEvent:
    return apply_transition(db, content, Trigger.CANCEL, member=member, comment=comment)
