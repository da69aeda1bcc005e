"""
Webhook model for outbound lifecycle notifications.
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base
import secrets


class Webhook(Base):
    __tablename__ = "webhooks"

    id = Column(Integer, primary_key=True, index=True)
    org_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=True)  # Friendly name
    url = Column(String(500), nullable=False)
    events = Column(JSON, nullable=False)  # ["content.approved", ...]
    secret = Column(String(64), default=lambda: secrets.token_hex(32))  # HMAC signing key
    active = Column(Boolean, default=True)
    last_triggered_at = Column(DateTime(timezone=True), nullable=True)
    last_status_code = Column(Integer, nullable=True)
    failure_count = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    organization = relationship("Organization", back_populates="webhooks")

    # Available webhook events
    EVENTS = [
        "content.submitted",
        "content.internal_review_requested",
        "content.review_requested",
        "content.internal_approved",
        "content.internal_adjustment_requested",
        "content.internal_approval_reset",
        "content.approved",
        "content.adjustment_requested",
        "content.rework",
        "content.withdrawn",
        "content.scheduled",
        "content.unscheduled",
        "content.published",
        "content.canceled",
    ]

    def subscribes_to(self, event: str) -> bool:
        return event in (self.events or [])

    def to_dict(self, include_secret=False):
        """Convert to dictionary for API responses"""
        data = {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "events": self.events,
            "active": self.active,
            "last_triggered_at": self.last_triggered_at.isoformat() if self.last_triggered_at else None,
            "last_status_code": self.last_status_code,
            "failure_count": self.failure_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_secret:
            data["secret"] = self.secret
        return data
