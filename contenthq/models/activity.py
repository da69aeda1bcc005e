"""
ContentActivity model: append-only log of lifecycle transitions and internal reviews.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base


class ContentActivity(Base):
    __tablename__ = "content_activities"

    id = Column(Integer, primary_key=True, index=True)
    content_id = Column(Integer, ForeignKey("content_items.id", ondelete="RESTRICT"), nullable=False, index=True)
    org_id = Column(Integer, ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False, index=True)
    action = Column(String(50), nullable=False, index=True)  # trigger name or internal review action
    previous_status = Column(String(30), nullable=True)
    new_status = Column(String(30), nullable=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)
    actor_name = Column(String(200), nullable=True)  # member display name or external reviewer
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)

    # Relationships
    content_item = relationship("ContentItem", back_populates="activities")
