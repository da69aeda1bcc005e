from pydantic import BaseModel
from typing import List, Optional


class WebhookCreate(BaseModel):
    name: Optional[str] = None
    url: str
    events: List[str]


class WebhookUpdate(BaseModel):
    name: Optional[str] = None
    url: Optional[str] = None
    events: Optional[List[str]] = None
    active: Optional[bool] = None
