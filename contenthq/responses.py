"""
ContentHQ API Response Utilities
Standardized error format and exception handling
"""
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import traceback

from .logging_config import api_logger, redact_tokens
from .workflow.errors import WorkflowError


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def error_body(message: str, error_code: str, details: Optional[Dict[str, Any]] = None) -> Dict:
    return {
        "ok": False,
        "error": message,
        "error_code": error_code,
        "details": details,
        "timestamp": _timestamp(),
    }


# ============================================================
# ERROR RESPONSES
# ============================================================

class ApiException(HTTPException):
    """Custom API exception with error codes"""

    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str = None,
        details: Dict = None,
    ):
        self.error_code = error_code or f"ERR_{status_code}"
        self.details = details
        super().__init__(status_code=status_code, detail=message)


def bad_request(message: str, code: str = "BAD_REQUEST", details: Dict = None):
    raise ApiException(400, message, code, details)

def not_found(resource: str = "Resource", id: str = None):
    message = f"{resource} not found" if not id else f"{resource} '{id}' not found"
    raise ApiException(404, message, "NOT_FOUND")

def conflict(message: str = "Resource conflict"):
    raise ApiException(409, message, "CONFLICT")


# ============================================================
# EXCEPTION HANDLER
# ============================================================

async def api_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for API errors"""
    path = redact_tokens(request.url.path)

    # Lifecycle failures: each keeps its own code so clients can tell them apart
    if isinstance(exc, WorkflowError):
        api_logger.info(
            f"Workflow error: {exc.message}",
            status_code=exc.status_code,
            error_code=exc.error_code,
            path=path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.error_code, exc.details),
        )

    if isinstance(exc, ApiException):
        api_logger.warning(
            f"API Error: {exc.detail}",
            status_code=exc.status_code,
            error_code=exc.error_code,
            path=path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.detail, exc.error_code, exc.details),
            headers=exc.headers,
        )

    if isinstance(exc, StarletteHTTPException):
        api_logger.warning(
            f"HTTP Error: {exc.detail}",
            status_code=exc.status_code,
            path=path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.detail, f"HTTP_{exc.status_code}"),
            headers=exc.headers,
        )

    api_logger.error(
        f"Unexpected error: {exc}",
        error=exc,
        path=path,
        traceback=traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content=error_body("An unexpected error occurred", "INTERNAL_ERROR"),
    )
