"""
ContentHQ Health Check Routes
Liveness, readiness and system resource checks
"""
from fastapi import APIRouter, Depends
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from datetime import datetime, timezone
from typing import Dict, Any
import sys

import psutil

from ..config import get_settings
from ..database import get_db
from ..logging_config import db_logger
from ..models.approval_link import ApprovalLink
from ..models.content_item import ContentItem
from ..workflow.states import LinkStatus

router = APIRouter(prefix="/api/health", tags=["health"])
settings = get_settings()

START_TIME = datetime.now(timezone.utc)


def get_uptime() -> str:
    """Get uptime as human-readable string"""
    delta = datetime.now(timezone.utc) - START_TIME
    hours, remainder = divmod(delta.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if delta.days > 0:
        return f"{delta.days}d {hours}h {minutes}m"
    elif hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    else:
        return f"{minutes}m {seconds}s"


def check_database(db: Session) -> Dict[str, Any]:
    """Check database connectivity and lifecycle counts"""
    try:
        db.execute(text("SELECT 1"))
        pending_links = db.query(func.count(ApprovalLink.id)).filter(
            ApprovalLink.status == LinkStatus.PENDING.value
        ).scalar()
        content_items = db.query(func.count(ContentItem.id)).scalar()
    except SQLAlchemyError as e:
        db_logger.error("Database health check failed", error=e)
        return {"status": "unhealthy", "error": type(e).__name__}

    return {
        "status": "healthy",
        "content_items": content_items,
        "pending_approval_links": pending_links,
    }


def check_system() -> Dict[str, Any]:
    """Check system resources"""
    cpu_percent = psutil.cpu_percent(interval=0.1)
    memory = psutil.virtual_memory()

    return {
        "status": "healthy" if memory.percent < 90 else "warning",
        "cpu_percent": cpu_percent,
        "memory_percent": memory.percent,
        "memory_available_gb": round(memory.available / (1024**3), 2),
        "python_version": sys.version.split()[0],
    }


# ============================================================
# ROUTES
# ============================================================

@router.get("")
def health_check(db: Session = Depends(get_db)):
    """Health check endpoint for load balancers and monitoring."""
    database = check_database(db)

    return {
        "status": "healthy" if database["status"] == "healthy" else "degraded",
        "database": "ok" if database["status"] == "healthy" else "unavailable",
        "environment": settings.environment,
        "uptime": get_uptime(),
        "version": "1.0.0",
    }


@router.get("/live")
def health_live():
    """
    Liveness check - is the service running?
    Returns 200 if the service is alive.
    """
    return {
        "ok": True,
        "status": "alive",
        "uptime": get_uptime(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
def health_ready(db: Session = Depends(get_db)):
    """
    Readiness check - is the service ready to accept traffic?
    Checks database connectivity.
    """
    database = check_database(db)
    ready = database["status"] == "healthy"

    return {
        "ok": ready,
        "status": "ready" if ready else "not_ready",
        "checks": {"database": database},
    }


@router.get("/system")
def health_system():
    """CPU and memory usage of the host."""
    return {
        "ok": True,
        "system": check_system(),
        "uptime": get_uptime(),
    }
