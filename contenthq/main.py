"""
ContentHQ API - FastAPI application entry point.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .database import engine, Base
from .logging_config import api_logger
from .middleware import SecurityHeadersMiddleware, RequestLoggingMiddleware
from .limiter import limiter
from .responses import api_exception_handler
from .workflow.errors import WorkflowError
from . import models  # noqa: F401  registers tables on Base.metadata
from .routes import (
    approvals_router,
    auth_router,
    clients_router,
    content_router,
    health_router,
    webhooks_router,
)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown"""
    # In production, use migrations instead
    Base.metadata.create_all(bind=engine)
    api_logger.info("ContentHQ API started", environment=settings.environment)
    yield
    api_logger.info("ContentHQ API stopped")


app = FastAPI(
    title="ContentHQ API",
    description="Content production and client approval backend",
    version="1.0.0",
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Uniform error bodies
app.add_exception_handler(WorkflowError, api_exception_handler)
app.add_exception_handler(StarletteHTTPException, api_exception_handler)
app.add_exception_handler(Exception, api_exception_handler)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    max_age=3600,  # Cache preflight requests for 1 hour
)

# Routes
app.include_router(approvals_router)
app.include_router(auth_router)
app.include_router(clients_router)
app.include_router(content_router)
app.include_router(health_router)
app.include_router(webhooks_router)


@app.get("/")
def root():
    return {
        "message": "ContentHQ API",
        "docs": "/api/docs" if settings.debug else "Disabled in production",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("contenthq.main:app", host="0.0.0.0", port=8000, log_level="info")
