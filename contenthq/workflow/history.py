"""
Audit trail assembly for a content item.
"""
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..logging_config import mask_token
from ..models.activity import ContentActivity
from ..models.approval_link import ApprovalLink
from ..models.link_view import ApprovalLinkView
from .states import LinkStatus


def approval_history(db: Session, content_id: int, adjustments_only: bool = False) -> List[ApprovalLink]:
    """Every link ever issued for the content, oldest first.

    ``adjustments_only`` is a read-time projection; nothing is filtered at
    write time.
    """
    query = db.query(ApprovalLink).filter(ApprovalLink.content_id == content_id)
    if adjustments_only:
        query = query.filter(ApprovalLink.status == LinkStatus.ADJUSTMENT_REQUESTED.value)
    return query.order_by(ApprovalLink.created_at.asc(), ApprovalLink.id.asc()).all()


def view_stats(db: Session, content_id: int) -> Dict[int, Tuple[int, object]]:
    """Map link id to (view count, last viewed at) for the content's links."""
    rows = (
        db.query(ApprovalLinkView.link_id, func.count(ApprovalLinkView.id), func.max(ApprovalLinkView.viewed_at))
        .filter(ApprovalLinkView.content_id == content_id)
        .group_by(ApprovalLinkView.link_id)
        .all()
    )
    return {link_id: (count, last) for link_id, count, last in rows}


def activity_log(db: Session, content_id: int) -> List[ContentActivity]:
    return (
        db.query(ContentActivity)
        .filter(ContentActivity.content_id == content_id)
        .order_by(ContentActivity.created_at.asc(), ContentActivity.id.asc())
        .all()
    )


def link_to_dict(link: ApprovalLink, views: Optional[Tuple[int, object]] = None) -> dict:
    """Convert an ApprovalLink to a dictionary response. The token is masked."""
    view_count, last_viewed = views or (0, None)
    return {
        "id": link.id,
        "content_id": link.content_id,
        "client_id": link.client_id,
        "token_hint": mask_token(link.token),
        "status": link.status,
        "reviewer_name": link.reviewer_name,
        "comment": link.comment,
        "issued_by": link.issued_by,
        "resolved_at": link.resolved_at.isoformat() if link.resolved_at else None,
        "expires_at": link.expires_at.isoformat(),
        "created_at": link.created_at.isoformat(),
        "view_count": view_count,
        "last_viewed_at": last_viewed.isoformat() if last_viewed else None,
    }


def activity_to_dict(activity: ContentActivity) -> dict:
    """Convert a ContentActivity to a dictionary response."""
    return {
        "id": activity.id,
        "action": activity.action,
        "previous_status": activity.previous_status,
        "new_status": activity.new_status,
        "member_id": activity.member_id,
        "actor_name": activity.actor_name,
        "comment": activity.comment,
        "timestamp": activity.created_at.isoformat(),
    }
