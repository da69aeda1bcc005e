"""
ApprovalLinkView model: one row per time a client opened an approval link.

Kept apart from ``approval_links`` so viewing never writes to the decision
ledger.
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey
from datetime import datetime, timezone
from ..database import Base


class ApprovalLinkView(Base):
    __tablename__ = "approval_link_views"

    id = Column(Integer, primary_key=True, index=True)
    link_id = Column(Integer, ForeignKey("approval_links.id", ondelete="RESTRICT"), nullable=False, index=True)
    content_id = Column(Integer, ForeignKey("content_items.id", ondelete="RESTRICT"), nullable=False, index=True)
    viewed_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
