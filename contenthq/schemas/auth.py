from pydantic import BaseModel, EmailStr
from typing import Optional


class MemberCreate(BaseModel):
    email: EmailStr
    password: str
    display_name: Optional[str] = None
    organization_name: str


class MemberLogin(BaseModel):
    email: EmailStr
    password: str


class MemberInvite(BaseModel):
    email: EmailStr
    password: str
    display_name: Optional[str] = None
    role: str = "designer"


class MemberResponse(BaseModel):
    id: int
    org_id: int
    email: str
    display_name: Optional[str]
    role: str
    is_active: bool

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    """Response with both access and refresh tokens."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str
