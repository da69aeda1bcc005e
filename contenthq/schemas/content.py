from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class ContentBase(BaseModel):
    title: str
    body: Optional[str] = None
    media_urls: List[str] = []
    channels: List[str] = []
    publish_date: Optional[datetime] = None


class ContentCreate(ContentBase):
    client_id: int


class ContentUpdate(BaseModel):
    """Descriptive fields only; status changes go through the action endpoints."""
    title: Optional[str] = None
    body: Optional[str] = None
    media_urls: Optional[List[str]] = None
    channels: Optional[List[str]] = None
    publish_date: Optional[datetime] = None


class ContentResponse(ContentBase):
    id: int
    client_id: int
    status: str
    internal_approved: bool
    internal_approved_by: Optional[int] = None
    internal_approved_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    published_url: Optional[str] = None
    allowed_actions: List[str] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InternalReviewRequest(BaseModel):
    action: str  # submit, approve, reject
    comment: Optional[str] = None


class TransitionNote(BaseModel):
    comment: Optional[str] = None


class ScheduleRequest(BaseModel):
    publish_date: Optional[datetime] = None


class PublishRequest(BaseModel):
    published_url: Optional[str] = None
