"""
Tests for webhook management and signed lifecycle event delivery.
"""
import hashlib
import hmac
import json

import pytest
import requests
from sqlalchemy.orm import sessionmaker

from contenthq.models import Webhook
from contenthq.workflow import events
from contenthq.workflow.events import LifecycleEvent, WebhookNotifier, dispatch_events, sign_payload


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


@pytest.fixture
def sent(monkeypatch):
    """Capture outgoing webhook requests; responds with ``sent.status_code``."""
    class Outbox(list):
        status_code = 200

    outbox = Outbox()

    def fake_post(url, json=None, headers=None, timeout=None):
        outbox.append({"url": url, "json": json, "headers": headers})
        return FakeResponse(outbox.status_code)

    monkeypatch.setattr(events.requests, "post", fake_post)
    return outbox


@pytest.fixture
def webhook(db, organization):
    hook = Webhook(
        org_id=organization.id,
        name="Slack bridge",
        url="https://hooks.example.com/contenthq",
        events=["content.approved", "content.adjustment_requested"],
    )
    db.add(hook)
    db.commit()
    db.refresh(hook)
    return hook


def _event(organization, name="approved"):
    return LifecycleEvent(
        event=name,
        content_id=1,
        org_id=organization.id,
        client_name="Padaria Central",
        previous_status="pending_approval",
        new_status="approved",
    )


def _notifier(db):
    return WebhookNotifier(sessionmaker(bind=db.get_bind()))


class TestWebhookNotifier:
    """Test delivery of lifecycle events."""

    def test_delivers_signed_payload(self, db, organization, webhook, sent):
        _notifier(db).notify(_event(organization))

        assert len(sent) == 1
        request = sent[0]
        assert request["url"] == webhook.url
        assert request["json"]["event"] == "content.approved"
        assert request["json"]["data"]["client_name"] == "Padaria Central"
        assert request["headers"]["X-ContentHQ-Event"] == "content.approved"

        expected = hmac.new(
            webhook.secret.encode("utf-8"),
            json.dumps(request["json"], sort_keys=True).encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        assert request["headers"]["X-ContentHQ-Signature"] == f"sha256={expected}"

    def test_skips_unsubscribed_events(self, db, organization, webhook, sent):
        _notifier(db).notify(_event(organization, "published"))
        assert sent == []

    def test_skips_other_organizations(self, db, organization, webhook, sent):
        event = _event(organization)
        event.org_id = organization.id + 1
        _notifier(db).notify(event)
        assert sent == []

    def test_records_status_code(self, db, organization, webhook, sent):
        _notifier(db).notify(_event(organization))
        db.refresh(webhook)
        assert webhook.last_status_code == 200
        assert webhook.last_triggered_at is not None
        assert webhook.failure_count == 0

    def test_disabled_after_repeated_failures(self, db, organization, webhook, sent, monkeypatch):
        monkeypatch.setattr(events.settings, "webhook_max_failures", 2)
        sent.status_code = 500
        notifier = _notifier(db)

        notifier.notify(_event(organization))
        db.refresh(webhook)
        assert webhook.failure_count == 1
        assert webhook.active is True

        notifier.notify(_event(organization))
        db.refresh(webhook)
        assert webhook.failure_count == 2
        assert webhook.active is False

        notifier.notify(_event(organization))
        assert len(sent) == 2

    def test_connection_error_is_a_failed_delivery(self, db, organization, webhook, monkeypatch):
        def refuse(*args, **kwargs):
            raise requests.ConnectionError("connection refused")

        monkeypatch.setattr(events.requests, "post", refuse)
        assert _notifier(db).deliver(webhook, _event(organization)) is False
        assert webhook.failure_count == 1
        assert webhook.last_status_code is None

    def test_sign_payload_is_stable(self):
        payload = {"b": 1, "a": 2}
        assert sign_payload(payload, "secret") == sign_payload({"a": 2, "b": 1}, "secret")


class TestDispatch:

    def test_failing_notifier_does_not_stop_others(self, organization):
        class Broken(events.Notifier):
            def notify(self, event):
                raise RuntimeError("boom")

        class Collect(events.Notifier):
            def __init__(self):
                self.seen = []

            def notify(self, event):
                self.seen.append(event.event)

        collect = Collect()
        dispatch_events([_event(organization), _event(organization, "published")], [Broken(), collect])
        assert collect.seen == ["approved", "published"]


class TestWebhookEndpoints:
    """Test webhook management endpoints."""

    def test_create_webhook_returns_secret_once(self, client, manager_headers):
        response = client.post(
            "/api/webhooks",
            headers=manager_headers,
            json={"name": "CRM", "url": "https://crm.example.com/hook", "events": ["content.approved"]},
        )
        assert response.status_code == 201
        created = response.json()["webhook"]
        assert len(created["secret"]) == 64

        response = client.get(f"/api/webhooks/{created['id']}", headers=manager_headers)
        assert "secret" not in response.json()

    def test_invalid_event_rejected(self, client, manager_headers):
        response = client.post(
            "/api/webhooks",
            headers=manager_headers,
            json={"url": "https://crm.example.com/hook", "events": ["post.created"]},
        )
        assert response.status_code == 400

    def test_designer_cannot_manage_webhooks(self, client, designer_headers):
        response = client.post(
            "/api/webhooks",
            headers=designer_headers,
            json={"url": "https://crm.example.com/hook", "events": ["content.approved"]},
        )
        assert response.status_code == 403

    def test_list_events(self, client):
        response = client.get("/api/webhooks/events")
        assert response.status_code == 200
        data = response.json()
        assert set(data["events"]) == set(data["descriptions"])

    def test_reenable_resets_failures(self, client, manager_headers, webhook, db):
        webhook.active = False
        webhook.failure_count = 10
        db.commit()

        response = client.patch(f"/api/webhooks/{webhook.id}", headers=manager_headers, json={"active": True})
        assert response.status_code == 200
        assert response.json()["webhook"]["failure_count"] == 0

    def test_send_test_event(self, client, manager_headers, webhook, sent):
        response = client.post(f"/api/webhooks/{webhook.id}/test", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert sent[0]["headers"]["X-ContentHQ-Event"] == "content.test"

    def test_delete_webhook(self, client, manager_headers, webhook, db):
        response = client.delete(f"/api/webhooks/{webhook.id}", headers=manager_headers)
        assert response.status_code == 200
        assert db.query(Webhook).count() == 0

    def test_lifecycle_event_reaches_webhook(self, client, db, make_content, manager_headers,
                                              webhook, sent, use_notifiers):
        use_notifiers(_notifier(db))
        content = make_content(status="in_production", internal_approved=True)
        token = client.post(f"/api/content/{content.id}/approval-links", headers=manager_headers).json()["token"]

        client.post(f"/api/approvals/{token}/approve")

        assert [r["json"]["event"] for r in sent] == ["content.approved"]
        assert token not in json.dumps([r["json"] for r in sent])
