"""
Webhook API Routes
==================
Manage the organization's outbound subscriptions to lifecycle events.
Delivery itself lives in workflow/events.py.
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session
from typing import List

from ..database import get_db
from ..models.webhook import Webhook
from ..models.member import Member
from ..auth import get_required_member, get_reviewer
from ..schemas.webhook import WebhookCreate, WebhookUpdate
from ..workflow.events import LifecycleEvent, WebhookNotifier

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

EVENT_DESCRIPTIONS = {
    "content.submitted": "A draft moved into production",
    "content.internal_review_requested": "Production asked for internal approval",
    "content.review_requested": "An approval link was issued to the client",
    "content.internal_approved": "An internal reviewer approved the content",
    "content.internal_adjustment_requested": "An internal reviewer asked for changes",
    "content.internal_approval_reset": "Approved content was edited and needs internal approval again",
    "content.approved": "The client approved the content",
    "content.adjustment_requested": "The client asked for adjustments",
    "content.rework": "Content with adjustments went back to production",
    "content.withdrawn": "Content was pulled out of client review",
    "content.scheduled": "Approved content was scheduled",
    "content.unscheduled": "Scheduled content was unscheduled",
    "content.published": "Content was published",
    "content.canceled": "Content was canceled",
}


def _validate_events(events: List[str]) -> None:
    invalid_events = [e for e in events if e not in Webhook.EVENTS]
    if invalid_events:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid events: {invalid_events}. Valid events: {Webhook.EVENTS}"
        )


def _get_org_webhook(db: Session, webhook_id: int, member: Member) -> Webhook:
    webhook = db.query(Webhook).filter(
        Webhook.id == webhook_id,
        Webhook.org_id == member.org_id,
    ).first()
    if not webhook:
        raise HTTPException(status_code=404, detail="Webhook not found")
    return webhook


@router.get("")
def list_webhooks(
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member)
):
    """List all webhooks of the organization"""
    webhooks = db.query(Webhook).filter(Webhook.org_id == current_member.org_id).all()
    return [w.to_dict() for w in webhooks]


@router.post("", status_code=201)
def create_webhook(
    webhook: WebhookCreate,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_reviewer)
):
    """Register a new webhook. The signing secret is only returned here."""
    _validate_events(webhook.events)

    new_webhook = Webhook(
        org_id=current_member.org_id,
        name=webhook.name,
        url=webhook.url,
        events=webhook.events,
    )
    db.add(new_webhook)
    db.commit()
    db.refresh(new_webhook)

    return {
        "status": "ok",
        "message": "Webhook created",
        "webhook": new_webhook.to_dict(include_secret=True)
    }


@router.get("/events")
def list_webhook_events():
    """List all available webhook events"""
    return {"events": Webhook.EVENTS, "descriptions": EVENT_DESCRIPTIONS}


@router.get("/{webhook_id}")
def get_webhook(
    webhook_id: int,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member)
):
    return _get_org_webhook(db, webhook_id, current_member).to_dict()


@router.patch("/{webhook_id}")
def update_webhook(
    webhook_id: int,
    update: WebhookUpdate,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_reviewer)
):
    """Update a webhook"""
    webhook = _get_org_webhook(db, webhook_id, current_member)

    if update.name is not None:
        webhook.name = update.name
    if update.url is not None:
        webhook.url = update.url
    if update.events is not None:
        _validate_events(update.events)
        webhook.events = update.events
    if update.active is not None:
        webhook.active = update.active
        if update.active:
            webhook.failure_count = 0  # Reset on re-enable

    db.commit()
    db.refresh(webhook)

    return {
        "status": "ok",
        "message": "Webhook updated",
        "webhook": webhook.to_dict()
    }


@router.delete("/{webhook_id}")
def delete_webhook(
    webhook_id: int,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_reviewer)
):
    webhook = _get_org_webhook(db, webhook_id, current_member)
    db.delete(webhook)
    db.commit()
    return {"status": "ok", "message": f"Webhook {webhook_id} deleted"}


@router.post("/{webhook_id}/test")
def test_webhook(
    webhook_id: int,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_reviewer)
):
    """Send a test event to a webhook synchronously and report the outcome"""
    webhook = _get_org_webhook(db, webhook_id, current_member)

    event = LifecycleEvent(event="test", content_id=0, org_id=current_member.org_id, title="Test delivery")
    success = WebhookNotifier(lambda: db).deliver(webhook, event)
    db.commit()

    return {
        "status": "ok" if success else "failed",
        "message": "Test webhook delivered" if success else "Webhook delivery failed",
        "last_status_code": webhook.last_status_code
    }
