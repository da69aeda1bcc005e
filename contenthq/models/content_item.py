"""
ContentItem model: a piece of client content moving through production and approval.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base
from ..workflow.states import ContentStatus


class ContentItem(Base):
    __tablename__ = "content_items"

    id = Column(Integer, primary_key=True, index=True)
    org_id = Column(Integer, ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)

    # Only changed through workflow.lifecycle
    status = Column(String(30), default=ContentStatus.DRAFT.value, nullable=False, index=True)
    internal_approved = Column(Boolean, default=False, nullable=False)
    internal_approved_by = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)
    internal_approved_at = Column(DateTime(timezone=True), nullable=True)

    title = Column(String(300), nullable=False)
    body = Column(Text, nullable=True)
    media_urls = Column(JSON, default=list)
    channels = Column(JSON, default=list)  # instagram, facebook, linkedin, blog
    publish_date = Column(DateTime(timezone=True), nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    published_url = Column(String(1000), nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    client = relationship("Client", back_populates="content_items")
    approval_links = relationship(
        "ApprovalLink",
        back_populates="content_item",
        order_by="[ApprovalLink.created_at, ApprovalLink.id]",
    )
    activities = relationship(
        "ContentActivity",
        back_populates="content_item",
        order_by="[ContentActivity.created_at, ContentActivity.id]",
    )
