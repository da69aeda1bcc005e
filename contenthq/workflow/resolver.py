"""
External approval resolver.

The token is the only credential. Claiming a link is a conditional UPDATE on
``status = 'pending'``; the content transition is a second conditional UPDATE
in the same transaction. Of two concurrent resolutions of one token exactly one
commits, the other sees LinkAlreadyResolved (or StateConflict).
"""
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..logging_config import approvals_logger, mask_token, timed
from ..models.approval_link import ApprovalLink
from ..models.link_view import ApprovalLinkView
from .errors import (
    ApprovalValidationError,
    LinkAlreadyResolved,
    LinkExpired,
    LinkNotFound,
    StateConflict,
)
from .events import LifecycleEvent
from .lifecycle import apply_transition
from .states import ContentStatus, LinkStatus, Trigger
from .tokens import as_utc, utcnow


def load_link(db: Session, token: str) -> ApprovalLink:
    link = None
    if token:
        link = db.query(ApprovalLink).filter(ApprovalLink.token == token).first()
    if link is None:
        approvals_logger.warning("Unknown approval token", token=mask_token(token))
        raise LinkNotFound()
    return link


def ensure_resolvable(link: ApprovalLink, now: datetime) -> None:
    """Resolved links surface their decision before expiry is considered."""
    if not link.is_pending:
        raise LinkAlreadyResolved(link.decision())
    if now > as_utc(link.expires_at):
        raise LinkExpired(link.expires_at)


def link_view(link: ApprovalLink, now: Optional[datetime] = None) -> dict:
    """What the client portal renders for a token."""
    now = now or utcnow()
    content = link.content_item
    view = {
        "status": link.status,
        "expires_at": link.expires_at.isoformat(),
        "client_name": link.client.name if link.client else None,
        "content": {
            "id": content.id,
            "title": content.title,
            "body": content.body,
            "media_urls": content.media_urls or [],
            "channels": content.channels or [],
            "publish_date": content.publish_date.isoformat() if content.publish_date else None,
        },
    }
    if link.is_pending:
        view["can_respond"] = content.status == ContentStatus.PENDING_APPROVAL.value
    else:
        view["can_respond"] = False
        view["decision"] = link.decision()
    return view


def record_view(db: Session, link: ApprovalLink, now: datetime) -> None:
    """Append a view row. The link row itself is left untouched."""
    try:
        db.add(ApprovalLinkView(link_id=link.id, content_id=link.content_id, viewed_at=now))
        db.commit()
    except Exception:
        db.rollback()
        raise


@timed(approvals_logger)
def inspect(db: Session, token: str, now: Optional[datetime] = None) -> dict:
    """Look up a link for display and count the view. A resolved link shows its decision."""
    now = now or utcnow()
    link = load_link(db, token)
    if link.is_pending and now > as_utc(link.expires_at):
        raise LinkExpired(link.expires_at)
    view = link_view(link, now)
    record_view(db, link, now)
    return view


def _resolve(db: Session, token: str, link_status: LinkStatus, trigger: Trigger,
             reviewer_name: Optional[str], comment: Optional[str],
             now: Optional[datetime]) -> Tuple[ApprovalLink, LifecycleEvent]:
    now = now or utcnow()
    link = load_link(db, token)
    ensure_resolvable(link, now)

    content = link.content_item
    if content.status != ContentStatus.PENDING_APPROVAL.value:
        raise StateConflict(
            f"Content is no longer awaiting approval (status '{content.status}')",
            content.status,
        )

    reviewer_name = (reviewer_name or "").strip() or (link.client.name if link.client else None)

    try:
        claimed = db.execute(
            update(ApprovalLink)
            .where(ApprovalLink.id == link.id, ApprovalLink.status == LinkStatus.PENDING.value)
            .values(status=link_status.value, resolved_at=now, reviewer_name=reviewer_name, comment=comment)
            .execution_options(synchronize_session=False)
        ).rowcount
        if claimed != 1:
            db.rollback()
            approvals_logger.info("Lost race resolving approval link", link_id=link.id)
            raise LinkAlreadyResolved(link.decision())

        event = apply_transition(db, content, trigger, actor_name=reviewer_name, comment=comment)
        db.commit()
    except Exception:
        db.rollback()
        raise

    approvals_logger.info(
        f"Approval link resolved: {link_status.value}",
        link_id=link.id,
        content_id=content.id,
        token=mask_token(token),
    )
    return link, event


@timed(approvals_logger)
def approve(db: Session, token: str, reviewer_name: Optional[str] = None,
            now: Optional[datetime] = None) -> Tuple[ApprovalLink, LifecycleEvent]:
    return _resolve(db, token, LinkStatus.APPROVED, Trigger.EXTERNAL_APPROVE, reviewer_name, None, now)


@timed(approvals_logger)
def request_adjustment(db: Session, token: str, comment: Optional[str], reviewer_name: Optional[str] = None,
                       now: Optional[datetime] = None) -> Tuple[ApprovalLink, LifecycleEvent]:
    if comment is None or not comment.strip():
        raise ApprovalValidationError("A comment describing the requested adjustments is required", "comment")
    return _resolve(db, token, LinkStatus.ADJUSTMENT_REQUESTED, Trigger.EXTERNAL_REQUEST_ADJUSTMENT,
                    reviewer_name, comment.strip(), now)
