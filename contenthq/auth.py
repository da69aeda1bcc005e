"""
Dashboard authentication: JWT tokens, password hashing and member dependencies.

Client reviewers never authenticate here; the approval token is their only
credential (see routes/approvals.py).
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models.member import Member
from .config import get_settings

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password for storage."""
    return pwd_context.hash(password)


def _encode(data: dict, token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({
        "exp": datetime.now(timezone.utc) + expires_delta,
        "type": token_type,
    })
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    return _encode(data, "access", expires_delta or timedelta(minutes=settings.access_token_expire_minutes))


def create_refresh_token(data: dict) -> str:
    """Create a JWT refresh token with longer expiration."""
    return _encode(data, "refresh", timedelta(days=settings.refresh_token_expire_days))


def create_tokens(member: Member) -> Tuple[str, str]:
    """Create both access and refresh tokens for a member."""
    data = {"sub": str(member.id), "org": member.org_id}  # JWT sub claim must be a string
    return create_access_token(data), create_refresh_token(data)


def verify_token(token: str, expected_type: str = "access") -> Optional[dict]:
    """Verify a JWT token and return its payload."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if payload.get("type", "access") != expected_type:
        return None
    return payload


def _member_from_payload(payload: Optional[dict], db: Session) -> Optional[Member]:
    if not payload:
        return None
    try:
        member_id = int(payload.get("sub"))
    except (ValueError, TypeError):
        return None

    member = db.query(Member).filter(Member.id == member_id).first()
    if not member or not member.is_active:
        return None
    return member


def get_current_member(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[Member]:
    """Get the current member from the JWT token (optional auth)."""
    if not token:
        return None
    return _member_from_payload(verify_token(token, "access"), db)


def get_required_member(
    current_member: Optional[Member] = Depends(get_current_member)
) -> Member:
    """Get the current member, raising 401 if not authenticated."""
    if not current_member:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current_member


def get_reviewer(current_member: Member = Depends(get_required_member)) -> Member:
    """Require an owner or manager."""
    if not current_member.can_review:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Reviewer role required")
    return current_member


def refresh_access_token(refresh_token: str, db: Session) -> Optional[Tuple[str, str]]:
    """Use a refresh token to get new access and refresh tokens."""
    member = _member_from_payload(verify_token(refresh_token, "refresh"), db)
    if not member:
        return None
    return create_tokens(member)
