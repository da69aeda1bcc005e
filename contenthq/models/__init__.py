from .organization import Organization
from .member import Member
from .client import Client
from .content_item import ContentItem
from .approval_link import ApprovalLink
from .link_view import ApprovalLinkView
from .activity import ContentActivity
from .webhook import Webhook

__all__ = [
    "Organization",
    "Member",
    "Client",
    "ContentItem",
    "ApprovalLink",
    "ApprovalLinkView",
    "ContentActivity",
    "Webhook",
]
