"""
Content routes: dashboard CRUD plus the internal lifecycle actions.

Status never changes through PATCH; every transition goes through
``workflow.lifecycle`` and its event is handed to the notifiers after commit.
"""
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from ..database import get_db
from ..models.content_item import ContentItem
from ..models.member import Member
from ..auth import get_required_member
from ..responses import bad_request
from ..schemas.approval import IssuedLinkResponse
from ..schemas.content import (
    ContentCreate,
    ContentUpdate,
    ContentResponse,
    InternalReviewRequest,
    TransitionNote,
    ScheduleRequest,
    PublishRequest,
)
from ..workflow import history, lifecycle
from ..workflow.errors import ContentNotFound
from ..workflow.events import LifecycleEvent, Notifier, dispatch_events, get_notifiers
from ..workflow.states import ContentStatus, allowed_triggers
from .clients import get_org_client

router = APIRouter(prefix="/api/content", tags=["content"])


def content_to_dict(content: ContentItem) -> dict:
    """Convert a ContentItem model to a dictionary response."""
    return {
        "id": content.id,
        "client_id": content.client_id,
        "title": content.title,
        "body": content.body,
        "media_urls": content.media_urls or [],
        "channels": content.channels or [],
        "publish_date": content.publish_date,
        "status": content.status,
        "internal_approved": content.internal_approved,
        "internal_approved_by": content.internal_approved_by,
        "internal_approved_at": content.internal_approved_at,
        "published_at": content.published_at,
        "published_url": content.published_url,
        "allowed_actions": allowed_triggers(content.status),
        "created_at": content.created_at,
        "updated_at": content.updated_at,
    }


def get_org_content(db: Session, content_id: int, member: Member) -> ContentItem:
    """Load content owned by the member's organization or raise 404."""
    content = db.query(ContentItem).filter(
        ContentItem.id == content_id,
        ContentItem.org_id == member.org_id,
    ).first()
    if not content:
        raise ContentNotFound(content_id)
    return content


def _notify(background_tasks: BackgroundTasks, notifiers: List[Notifier], event: LifecycleEvent) -> None:
    background_tasks.add_task(dispatch_events, [event], notifiers)


# ============================================================
# CRUD
# ============================================================

@router.get("", response_model=List[ContentResponse])
def list_content(
    status: Optional[str] = None,
    client_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
):
    """List the organization's content with optional filtering."""
    query = db.query(ContentItem).filter(ContentItem.org_id == current_member.org_id)
    if status:
        query = query.filter(ContentItem.status == status)
    if client_id:
        query = query.filter(ContentItem.client_id == client_id)
    items = query.order_by(ContentItem.created_at.desc(), ContentItem.id.desc()).all()
    return [content_to_dict(c) for c in items]


@router.post("", response_model=ContentResponse, status_code=201)
def create_content(
    payload: ContentCreate,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
):
    """Create a draft for one of the organization's clients."""
    client = get_org_client(db, payload.client_id, current_member)
    content = ContentItem(
        org_id=current_member.org_id,
        client_id=client.id,
        created_by=current_member.id,
        status=ContentStatus.DRAFT.value,
        title=payload.title,
        body=payload.body,
        media_urls=payload.media_urls,
        channels=payload.channels,
        publish_date=payload.publish_date,
    )
    db.add(content)
    db.commit()
    db.refresh(content)
    return content_to_dict(content)


@router.get("/{content_id}", response_model=ContentResponse)
def get_content(
    content_id: int,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
):
    return content_to_dict(get_org_content(db, content_id, current_member))


@router.patch("/{content_id}", response_model=ContentResponse)
def update_content(
    content_id: int,
    update: ContentUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
    notifiers: List[Notifier] = Depends(get_notifiers),
):
    """Edit descriptive fields. Content under or past client review is locked."""
    content = get_org_content(db, content_id, current_member)
    event = lifecycle.edit(db, content, current_member, update.model_dump(exclude_unset=True))
    if event is not None:
        _notify(background_tasks, notifiers, event)
    return content_to_dict(content)


# ============================================================
# LIFECYCLE ACTIONS
# ============================================================

@router.post("/{content_id}/submit", response_model=ContentResponse)
def submit_content(
    content_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
    notifiers: List[Notifier] = Depends(get_notifiers),
):
    """Move a draft into production."""
    content = get_org_content(db, content_id, current_member)
    _notify(background_tasks, notifiers, lifecycle.submit(db, content, current_member))
    return content_to_dict(content)


@router.post("/{content_id}/internal-review", response_model=ContentResponse)
def internal_review(
    content_id: int,
    payload: InternalReviewRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
    notifiers: List[Notifier] = Depends(get_notifiers),
):
    """Request, grant or refuse internal approval."""
    content = get_org_content(db, content_id, current_member)
    if payload.action == "submit":
        event = lifecycle.request_internal_review(db, content, current_member)
    elif payload.action == "approve":
        event = lifecycle.internal_approve(db, content, current_member, payload.comment)
    elif payload.action == "reject":
        event = lifecycle.internal_reject(db, content, current_member, payload.comment)
    else:
        bad_request("action must be one of: submit, approve, reject", "INVALID_ACTION")
    _notify(background_tasks, notifiers, event)
    return content_to_dict(content)


@router.post("/{content_id}/approval-links", response_model=IssuedLinkResponse, status_code=201)
def issue_approval_link(
    content_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
    notifiers: List[Notifier] = Depends(get_notifiers),
):
    """Issue a client approval link. Requires internal approval."""
    content = get_org_content(db, content_id, current_member)
    link, url, event = lifecycle.issue_link(db, content, current_member)
    _notify(background_tasks, notifiers, event)
    return {
        "id": link.id,
        "token": link.token,
        "url": url,
        "status": link.status,
        "content_status": content.status,
        "expires_at": link.expires_at,
        "created_at": link.created_at,
    }


@router.post("/{content_id}/rework", response_model=ContentResponse)
def rework_content(
    content_id: int,
    background_tasks: BackgroundTasks,
    note: Optional[TransitionNote] = None,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
    notifiers: List[Notifier] = Depends(get_notifiers),
):
    """Send content with client adjustments back to production."""
    content = get_org_content(db, content_id, current_member)
    event = lifecycle.rework(db, content, current_member, note.comment if note else None)
    _notify(background_tasks, notifiers, event)
    return content_to_dict(content)


@router.post("/{content_id}/withdraw", response_model=ContentResponse)
def withdraw_content(
    content_id: int,
    background_tasks: BackgroundTasks,
    note: Optional[TransitionNote] = None,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
    notifiers: List[Notifier] = Depends(get_notifiers),
):
    """Pull content out of client review."""
    content = get_org_content(db, content_id, current_member)
    event = lifecycle.withdraw(db, content, current_member, note.comment if note else None)
    _notify(background_tasks, notifiers, event)
    return content_to_dict(content)


@router.post("/{content_id}/schedule", response_model=ContentResponse)
def schedule_content(
    content_id: int,
    background_tasks: BackgroundTasks,
    payload: Optional[ScheduleRequest] = None,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
    notifiers: List[Notifier] = Depends(get_notifiers),
):
    """Schedule approved content. A publish date must be set or supplied."""
    content = get_org_content(db, content_id, current_member)
    event = lifecycle.schedule(db, content, current_member, payload.publish_date if payload else None)
    _notify(background_tasks, notifiers, event)
    return content_to_dict(content)


@router.post("/{content_id}/unschedule", response_model=ContentResponse)
def unschedule_content(
    content_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
    notifiers: List[Notifier] = Depends(get_notifiers),
):
    content = get_org_content(db, content_id, current_member)
    _notify(background_tasks, notifiers, lifecycle.unschedule(db, content, current_member))
    return content_to_dict(content)


@router.post("/{content_id}/publish", response_model=ContentResponse)
def publish_content(
    content_id: int,
    background_tasks: BackgroundTasks,
    payload: Optional[PublishRequest] = None,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
    notifiers: List[Notifier] = Depends(get_notifiers),
):
    """Called by the publishing job once the content is live."""
    content = get_org_content(db, content_id, current_member)
    event = lifecycle.publish(db, content, current_member, payload.published_url if payload else None)
    _notify(background_tasks, notifiers, event)
    return content_to_dict(content)


@router.post("/{content_id}/cancel", response_model=ContentResponse)
def cancel_content(
    content_id: int,
    background_tasks: BackgroundTasks,
    note: Optional[TransitionNote] = None,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
    notifiers: List[Notifier] = Depends(get_notifiers),
):
    content = get_org_content(db, content_id, current_member)
    event = lifecycle.cancel(db, content, current_member, note.comment if note else None)
    _notify(background_tasks, notifiers, event)
    return content_to_dict(content)


# ============================================================
# AUDIT TRAIL
# ============================================================

@router.get("/{content_id}/approval-history", response_model=List[dict])
def get_approval_history(
    content_id: int,
    adjustments_only: bool = False,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
):
    """Every approval link issued for the content, oldest first."""
    content = get_org_content(db, content_id, current_member)
    links = history.approval_history(db, content.id, adjustments_only=adjustments_only)
    views = history.view_stats(db, content.id)
    return [history.link_to_dict(link, views.get(link.id)) for link in links]


@router.get("/{content_id}/activity", response_model=List[dict])
def get_activity(
    content_id: int,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
):
    """Lifecycle transitions and internal reviews, oldest first."""
    content = get_org_content(db, content_id, current_member)
    return [history.activity_to_dict(a) for a in history.activity_log(db, content.id)]
