from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime


class ClientCreate(BaseModel):
    name: str
    slug: Optional[str] = None
    contact_email: Optional[EmailStr] = None


class ClientResponse(BaseModel):
    id: int
    name: str
    slug: str
    contact_email: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
