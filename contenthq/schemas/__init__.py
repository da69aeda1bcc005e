from .auth import MemberCreate, MemberLogin, MemberInvite, MemberResponse, TokenResponse, RefreshRequest
from .client import ClientCreate, ClientResponse
from .content import (
    ContentCreate,
    ContentUpdate,
    ContentResponse,
    InternalReviewRequest,
    TransitionNote,
    ScheduleRequest,
    PublishRequest,
)
from .approval import ApproveRequest, AdjustmentRequest, ResolutionResponse, IssuedLinkResponse
from .webhook import WebhookCreate, WebhookUpdate

__all__ = [
    "MemberCreate", "MemberLogin", "MemberInvite", "MemberResponse", "TokenResponse", "RefreshRequest",
    "ClientCreate", "ClientResponse",
    "ContentCreate", "ContentUpdate", "ContentResponse", "InternalReviewRequest",
    "TransitionNote", "ScheduleRequest", "PublishRequest",
    "ApproveRequest", "AdjustmentRequest", "ResolutionResponse", "IssuedLinkResponse",
    "WebhookCreate", "WebhookUpdate",
]
