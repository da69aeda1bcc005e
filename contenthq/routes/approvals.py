"""
Public approval routes reached from the link a client receives.

No organization authentication: possession of the token is the credential.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session
from typing import List, Optional

from ..config import get_settings
from ..database import get_db
from ..limiter import limiter
from ..schemas.approval import ApproveRequest, AdjustmentRequest, ResolutionResponse
from ..workflow import resolver
from ..workflow.events import Notifier, dispatch_events, get_notifiers

settings = get_settings()

router = APIRouter(prefix="/api/approvals", tags=["approvals"])


def _resolution(link, event) -> dict:
    return {
        "status": link.status,
        "content_status": event.new_status,
        "reviewer_name": link.reviewer_name,
        "comment": link.comment,
        "resolved_at": link.resolved_at,
    }


@router.get("/{token}")
@limiter.limit(settings.approval_rate_limit)
def view_approval(request: Request, token: str, db: Session = Depends(get_db)):
    """Content awaiting the client's decision, or the decision already made."""
    return resolver.inspect(db, token)


@router.post("/{token}/approve", response_model=ResolutionResponse)
@limiter.limit(settings.approval_rate_limit)
def approve(
    request: Request,
    token: str,
    background_tasks: BackgroundTasks,
    payload: Optional[ApproveRequest] = None,
    db: Session = Depends(get_db),
    notifiers: List[Notifier] = Depends(get_notifiers),
):
    """Approve the content behind the link."""
    link, event = resolver.approve(db, token, payload.reviewer_name if payload else None)
    background_tasks.add_task(dispatch_events, [event], notifiers)
    return _resolution(link, event)


@router.post("/{token}/request-adjustment", response_model=ResolutionResponse)
@limiter.limit(settings.approval_rate_limit)
def request_adjustment(
    request: Request,
    token: str,
    payload: AdjustmentRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifiers: List[Notifier] = Depends(get_notifiers),
):
    """Send the content back with a comment describing the changes wanted."""
    link, event = resolver.request_adjustment(db, token, payload.comment, payload.reviewer_name)
    background_tasks.add_task(dispatch_events, [event], notifiers)
    return _resolution(link, event)
