"""
Client routes: the agency customers that content is produced for.
"""
import re

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from ..database import get_db
from ..models.client import Client
from ..models.member import Member
from ..auth import get_required_member
from ..responses import conflict, not_found
from ..schemas.client import ClientCreate, ClientResponse

router = APIRouter(prefix="/api/clients", tags=["clients"])


def slugify(value: str) -> str:
    """Lowercase, hyphen-separated identifier for URLs."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "client"


def get_org_client(db: Session, client_id: int, member: Member) -> Client:
    """Load a client owned by the member's organization or raise 404."""
    client = db.query(Client).filter(
        Client.id == client_id,
        Client.org_id == member.org_id,
    ).first()
    if not client:
        not_found("Client", str(client_id))
    return client


@router.get("", response_model=List[ClientResponse])
def list_clients(
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
):
    """List the organization's clients."""
    return db.query(Client).filter(Client.org_id == current_member.org_id).order_by(Client.name).all()


@router.post("", response_model=ClientResponse, status_code=201)
def create_client(
    payload: ClientCreate,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
):
    """Create a client in the member's organization."""
    slug = slugify(payload.slug or payload.name)
    existing = db.query(Client).filter(Client.org_id == current_member.org_id, Client.slug == slug).first()
    if existing:
        conflict(f"A client with slug '{slug}' already exists")

    client = Client(
        org_id=current_member.org_id,
        name=payload.name,
        slug=slug,
        contact_email=payload.contact_email,
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


@router.get("/{client_id}", response_model=ClientResponse)
def get_client(
    client_id: int,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_required_member),
):
    return get_org_client(db, client_id, current_member)
