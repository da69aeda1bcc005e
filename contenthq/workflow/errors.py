"""
Typed failures of the content approval lifecycle.

Each error carries the HTTP status and error code it is rendered with by
``responses.api_exception_handler``.
"""
from typing import Any, Dict, Optional


class WorkflowError(Exception):
    """Base class for lifecycle failures scoped to a single request"""
    status_code = 400
    error_code = "WORKFLOW_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class LinkNotFound(WorkflowError):
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self):
        super().__init__("Approval link not found")


class LinkExpired(WorkflowError):
    status_code = 410
    error_code = "EXPIRED"

    def __init__(self, expires_at):
        super().__init__(
            "This approval link has expired",
            {"expires_at": expires_at.isoformat() if expires_at else None},
        )


class LinkAlreadyResolved(WorkflowError):
    """Raised when a link already carries a decision; the decision is surfaced."""
    status_code = 409
    error_code = "ALREADY_RESOLVED"

    def __init__(self, decision: Dict[str, Any]):
        self.decision = decision
        super().__init__("This approval link has already been used", {"decision": decision})


class StateConflict(WorkflowError):
    status_code = 409
    error_code = "STATE_CONFLICT"

    def __init__(self, message: str, current_status: Optional[str] = None):
        super().__init__(message, {"current_status": current_status})


class ApprovalValidationError(WorkflowError):
    status_code = 422
    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)


class InternalApprovalRequired(WorkflowError):
    status_code = 409
    error_code = "INTERNAL_APPROVAL_REQUIRED"

    def __init__(self, content_id: int):
        super().__init__(
            "Content must be approved internally before an approval link can be issued",
            {"content_id": content_id},
        )


class InvalidTransition(WorkflowError):
    status_code = 409
    error_code = "INVALID_TRANSITION"

    def __init__(self, current: str, trigger: str):
        super().__init__(
            f"Cannot {trigger} content in status '{current}'",
            {"current_status": current, "trigger": trigger},
        )


class ContentNotFound(WorkflowError):
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, content_id):
        super().__init__(f"Content '{content_id}' not found")


class PermissionDenied(WorkflowError):
    status_code = 403
    error_code = "FORBIDDEN"


class LinkIssueFailed(WorkflowError):
    status_code = 503
    error_code = "LINK_ISSUE_FAILED"

    def __init__(self, attempts: int):
        super().__init__(f"Could not allocate a unique approval token after {attempts} attempts")
