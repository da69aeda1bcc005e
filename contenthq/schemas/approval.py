from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class ApproveRequest(BaseModel):
    reviewer_name: Optional[str] = None


class AdjustmentRequest(BaseModel):
    comment: Optional[str] = None
    reviewer_name: Optional[str] = None


class ResolutionResponse(BaseModel):
    status: str
    content_status: str
    reviewer_name: Optional[str] = None
    comment: Optional[str] = None
    resolved_at: datetime


class IssuedLinkResponse(BaseModel):
    id: int
    token: str
    url: str
    status: str
    content_status: str
    expires_at: datetime
    created_at: datetime
