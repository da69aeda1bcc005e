"""
Approval link tokens.

A token is the only credential the external resolver accepts, so it is drawn
from the ``secrets`` CSPRNG. Uniqueness is enforced by the database.
"""
import secrets
import string
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

ALPHABET = string.ascii_letters + string.digits  # 62 URL-safe symbols
DEFAULT_LENGTH = 32


def new_token(length: int = DEFAULT_LENGTH) -> str:
    """Generate an unguessable alphanumeric token."""
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def build_approval_url(base_url: str, token: str) -> str:
    """Build the shareable link a client opens to review content."""
    return f"{base_url.rstrip('/')}/aprovacao?{urlencode({'token': token})}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes read back from SQLite as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def expires_in(days: int, now: datetime = None) -> datetime:
    return (now or utcnow()) + timedelta(days=days)
