"""
ApprovalLink model: one issued approval token and its eventual decision.

Rows form an append-only ledger. Once ``status`` leaves ``pending`` the row is
never written again; a new approval round inserts a new row.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base
from ..workflow.states import LinkStatus


class ApprovalLink(Base):
    __tablename__ = "approval_links"

    id = Column(Integer, primary_key=True, index=True)
    content_id = Column(Integer, ForeignKey("content_items.id", ondelete="RESTRICT"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True)
    org_id = Column(Integer, ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False, index=True)
    issued_by = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)

    token = Column(String(64), unique=True, nullable=False, index=True)
    status = Column(String(30), default=LinkStatus.PENDING.value, nullable=False, index=True)
    reviewer_name = Column(String(200), nullable=True)
    comment = Column(Text, nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    # Relationships
    content_item = relationship("ContentItem", back_populates="approval_links")
    client = relationship("Client")

    @property
    def is_pending(self) -> bool:
        return self.status == LinkStatus.PENDING.value

    def decision(self) -> dict:
        """The recorded outcome, as shown when a resolved link is revisited."""
        return {
            "status": self.status,
            "reviewer_name": self.reviewer_name,
            "comment": self.comment,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
        }
