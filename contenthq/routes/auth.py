"""
Authentication routes for registration, login, token refresh and team members.
"""
import secrets

from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from ..database import get_db
from ..limiter import limiter
from ..models.member import Member
from ..models.organization import Organization
from ..schemas.auth import (
    MemberCreate,
    MemberLogin,
    MemberInvite,
    MemberResponse,
    TokenResponse,
    RefreshRequest,
)
from ..auth import (
    verify_password,
    get_password_hash,
    create_tokens,
    get_required_member,
    refresh_access_token,
)
from ..config import get_settings
from .clients import slugify

settings = get_settings()

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _ensure_email_free(db: Session, email: str) -> None:
    if db.query(Member).filter(Member.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )


def _authenticate(db: Session, email: str, password: str) -> Member:
    member = db.query(Member).filter(Member.email == email).first()
    if not member or not member.is_active or not verify_password(password, member.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return member


@router.post("/register", response_model=MemberResponse)
@limiter.limit("3/minute")
def register(request: Request, payload: MemberCreate, db: Session = Depends(get_db)):
    """Register a new organization with the caller as its owner."""
    _ensure_email_free(db, payload.email)

    slug = slugify(payload.organization_name)
    if db.query(Organization).filter(Organization.slug == slug).first():
        slug = f"{slug}-{secrets.token_hex(3)}"

    organization = Organization(name=payload.organization_name, slug=slug)
    db.add(organization)
    db.flush()

    member = Member(
        org_id=organization.id,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        display_name=payload.display_name or payload.email.split("@")[0],
        role="owner",
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.login_rate_limit)
def login(request: Request, form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """Login with OAuth2 form (username/password)."""
    member = _authenticate(db, form_data.username, form_data.password)
    access_token, refresh_token = create_tokens(member)
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)


@router.post("/login/json", response_model=TokenResponse)
@limiter.limit(settings.login_rate_limit)
def login_json(request: Request, credentials: MemberLogin, db: Session = Depends(get_db)):
    """Login with JSON body (email/password)."""
    member = _authenticate(db, credentials.email, credentials.password)
    access_token, refresh_token = create_tokens(member)
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)


@router.post("/refresh", response_model=TokenResponse)
@limiter.limit("10/minute")
def refresh_tokens(request: Request, refresh_request: RefreshRequest, db: Session = Depends(get_db)):
    """Get new access and refresh tokens using a valid refresh token."""
    tokens = refresh_access_token(refresh_request.refresh_token, db)
    if not tokens:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    access_token, refresh_token = tokens
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)


@router.get("/me", response_model=MemberResponse)
def get_me(current_member: Member = Depends(get_required_member)):
    """Get current authenticated member."""
    return current_member


@router.post("/members", response_model=MemberResponse, status_code=201)
def add_member(
    payload: MemberInvite,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
):
    """Add a teammate to the caller's organization (owners only)."""
    if current_member.role != "owner":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only owners can add members")
    if payload.role not in Member.ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid role. Valid roles: {Member.ROLES}",
        )
    _ensure_email_free(db, payload.email)

    member = Member(
        org_id=current_member.org_id,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        display_name=payload.display_name or payload.email.split("@")[0],
        role=payload.role,
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    return member
