"""
Lifecycle events and the best-effort notifiers that consume them.

The state machine returns a ``LifecycleEvent`` for every committed change.
Routes hand the events to ``dispatch_events`` as a background task, so
notification delivery always runs after the transition is durable and can
never undo it.
"""
import hashlib
import hmac
import json
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

import requests
from sqlalchemy.orm import Session

from ..config import get_settings
from ..logging_config import notifier_logger

settings = get_settings()


# ============================================================
# EVENTS
# ============================================================

@dataclass
class LifecycleEvent:
    """A committed change to a content item"""
    event: str  # approved, adjustment_requested, review_requested, ...
    content_id: int
    org_id: int
    client_name: Optional[str] = None
    title: Optional[str] = None
    previous_status: Optional[str] = None
    new_status: Optional[str] = None
    comment: Optional[str] = None
    actor_name: Optional[str] = None
    occurred_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def webhook_event(self) -> str:
        return f"content.{self.event}"

    def to_dict(self) -> dict:
        return asdict(self)


# ============================================================
# NOTIFIERS
# ============================================================

class Notifier:
    """Receives lifecycle events. Implementations may raise; the dispatcher contains it."""

    name = "notifier"

    def notify(self, event: LifecycleEvent) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Writes every event to the notifier log"""

    name = "log"

    def notify(self, event: LifecycleEvent) -> None:
        notifier_logger.info(
            f"Lifecycle event {event.webhook_event}",
            content_id=event.content_id,
            org_id=event.org_id,
            previous_status=event.previous_status,
            new_status=event.new_status,
        )


def sign_payload(payload: dict, secret: str) -> str:
    """Generate HMAC-SHA256 signature for webhook payload"""
    payload_bytes = json.dumps(payload, sort_keys=True).encode('utf-8')
    signature = hmac.new(
        secret.encode('utf-8'),
        payload_bytes,
        hashlib.sha256
    ).hexdigest()
    return f"sha256={signature}"


class WebhookNotifier(Notifier):
    """Delivers events to the organization's subscribed webhooks.

    Each delivery is a single signed POST. Failures are counted on the webhook
    row and a webhook is deactivated once ``webhook_max_failures`` is reached.
    """

    name = "webhook"

    def __init__(self, session_factory: Callable[[], Session], timeout: Optional[int] = None):
        self.session_factory = session_factory
        self.timeout = timeout or settings.webhook_timeout_seconds

    def notify(self, event: LifecycleEvent) -> None:
        from ..models.webhook import Webhook

        db = self.session_factory()
        try:
            webhooks = db.query(Webhook).filter(
                Webhook.org_id == event.org_id,
                Webhook.active.is_(True),
            ).all()
            for webhook in webhooks:
                if webhook.subscribes_to(event.webhook_event):
                    self.deliver(webhook, event)
            db.commit()
        finally:
            db.close()

    def deliver(self, webhook, event: LifecycleEvent) -> bool:
        payload = {
            "event": event.webhook_event,
            "data": event.to_dict(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "webhook_id": webhook.id,
        }
        headers = {
            "Content-Type": "application/json",
            "X-ContentHQ-Signature": sign_payload(payload, webhook.secret),
            "X-ContentHQ-Event": event.webhook_event,
        }

        webhook.last_triggered_at = datetime.now(timezone.utc)
        try:
            response = requests.post(webhook.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            webhook.last_status_code = None
            self._record_failure(webhook)
            notifier_logger.warning(
                "Webhook delivery error",
                webhook_id=webhook.id,
                webhook_event=event.webhook_event,
                error_message=str(e),
            )
            return False

        webhook.last_status_code = response.status_code
        if 200 <= response.status_code < 300:
            webhook.failure_count = 0
            notifier_logger.info(f"Webhook delivered: {webhook.id} -> {event.webhook_event}")
            return True

        self._record_failure(webhook)
        notifier_logger.warning(
            "Webhook rejected delivery",
            webhook_id=webhook.id,
            status_code=response.status_code,
        )
        return False

    def _record_failure(self, webhook) -> None:
        webhook.failure_count = (webhook.failure_count or 0) + 1
        if webhook.failure_count >= settings.webhook_max_failures:
            webhook.active = False
            notifier_logger.warning(f"Webhook disabled due to failures: {webhook.id}")


# ============================================================
# DISPATCH
# ============================================================

def dispatch_events(events: Iterable[LifecycleEvent], notifiers: List[Notifier]) -> None:
    """Hand each event to every notifier; a failing notifier is logged and skipped."""
    for event in events:
        for notifier in notifiers:
            try:
                notifier.notify(event)
            except Exception as e:
                notifier_logger.error(
                    f"Notifier '{notifier.name}' failed for {event.webhook_event}",
                    error=e,
                    content_id=event.content_id,
                )


def get_notifiers() -> List[Notifier]:
    """FastAPI dependency returning the notifiers for the current request."""
    from ..database import SessionLocal

    return [LoggingNotifier(), WebhookNotifier(SessionLocal)]
