from .approvals import router as approvals_router
from .auth import router as auth_router
from .clients import router as clients_router
from .content import router as content_router
from .health import router as health_router
from .webhooks import router as webhooks_router

__all__ = [
    "approvals_router",
    "auth_router",
    "clients_router",
    "content_router",
    "health_router",
    "webhooks_router",
]
