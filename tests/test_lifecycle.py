"""
Tests for the content lifecycle state machine and the internal gate.
"""
from datetime import datetime, timezone

import pytest
from sqlalchemy import update

from contenthq.models import ApprovalLink, ContentItem
from contenthq.workflow import history, lifecycle
from contenthq.workflow.tokens import utcnow
from contenthq.workflow.errors import (
    ApprovalValidationError,
    InternalApprovalRequired,
    InvalidTransition,
    LinkIssueFailed,
    PermissionDenied,
    StateConflict,
)


def _links(db, content):
    return db.query(ApprovalLink).filter(ApprovalLink.content_id == content.id).all()


def _actions(db, content):
    return [a.action for a in history.activity_log(db, content.id)]


class TestInternalActions:
    """Test production-side transitions."""

    def test_submit_draft(self, db, make_content, designer):
        content = make_content()
        event = lifecycle.submit(db, content, designer)

        db.refresh(content)
        assert content.status == "in_production"
        assert event.event == "submitted"
        assert event.previous_status == "draft"
        assert event.actor_name == "Dani Designer"
        assert _actions(db, content) == ["submit"]

    def test_submit_twice_is_invalid(self, db, make_content, designer):
        content = make_content()
        lifecycle.submit(db, content, designer)
        db.refresh(content)

        with pytest.raises(InvalidTransition):
            lifecycle.submit(db, content, designer)

    def test_stale_status_raises_conflict(self, db, make_content, manager):
        """A change committed elsewhere is not overwritten."""
        content = make_content(status="adjustment_requested")
        assert content.status == "adjustment_requested"
        db.execute(
            update(ContentItem.__table__)
            .where(ContentItem.__table__.c.id == content.id)
            .values(status="canceled")
        )

        with pytest.raises(StateConflict) as exc:
            lifecycle.rework(db, content, manager)
        assert exc.value.details["current_status"] == "canceled"

    def test_rework_closes_internal_gate(self, db, make_content, manager):
        content = make_content(status="adjustment_requested", internal_approved=True)
        event = lifecycle.rework(db, content, manager, "New photos incoming")

        db.refresh(content)
        assert content.status == "in_production"
        assert content.internal_approved is False
        assert event.comment == "New photos incoming"

    def test_withdraw_from_client_review(self, db, make_content, manager):
        content = make_content(status="pending_approval", internal_approved=True)
        lifecycle.withdraw(db, content, manager)

        db.refresh(content)
        assert content.status == "in_production"
        assert content.internal_approved is False

    def test_schedule_requires_publish_date(self, db, make_content, manager):
        content = make_content(status="approved")

        with pytest.raises(ApprovalValidationError):
            lifecycle.schedule(db, content, manager)
        db.refresh(content)
        assert content.status == "approved"

    def test_schedule_and_unschedule(self, db, make_content, manager):
        content = make_content(status="approved")
        when = datetime(2026, 12, 1, 9, 0, tzinfo=timezone.utc)

        lifecycle.schedule(db, content, manager, when)
        db.refresh(content)
        assert content.status == "scheduled"
        assert content.publish_date is not None

        lifecycle.unschedule(db, content, manager)
        db.refresh(content)
        assert content.status == "approved"

    def test_publish(self, db, make_content):
        content = make_content(status="scheduled", publish_date=datetime(2026, 12, 1, tzinfo=timezone.utc))
        event = lifecycle.publish(db, content, published_url="https://instagram.com/p/abc")

        db.refresh(content)
        assert content.status == "published"
        assert content.published_at is not None
        assert content.published_url == "https://instagram.com/p/abc"
        assert event.event == "published"

    def test_unapproved_content_cannot_be_published(self, db, make_content):
        content = make_content(status="pending_approval", internal_approved=True)
        with pytest.raises(InvalidTransition):
            lifecycle.publish(db, content)

    def test_cancel(self, db, make_content, manager):
        content = make_content(status="approved")
        lifecycle.cancel(db, content, manager, "Campaign dropped")
        db.refresh(content)
        assert content.status == "canceled"

    def test_scheduled_content_cannot_be_canceled(self, db, make_content, manager):
        content = make_content(status="scheduled")
        with pytest.raises(InvalidTransition):
            lifecycle.cancel(db, content, manager)


class TestInternalReview:
    """Test the internal approval gate."""

    def test_request_internal_review(self, db, make_content, designer):
        content = make_content(status="in_production")
        event = lifecycle.request_internal_review(db, content, designer)

        assert event.event == "internal_review_requested"
        assert event.new_status == "in_production"
        assert _actions(db, content) == ["internal_review_requested"]

    def test_request_internal_review_on_draft(self, db, make_content, designer):
        content = make_content(status="draft")
        with pytest.raises(StateConflict):
            lifecycle.request_internal_review(db, content, designer)

    def test_manager_opens_gate(self, db, make_content, manager):
        content = make_content(status="in_production")
        lifecycle.internal_approve(db, content, manager, "Looks great")

        db.refresh(content)
        assert content.internal_approved is True
        assert content.internal_approved_by == manager.id
        assert content.internal_approved_at is not None
        assert content.status == "in_production"

    def test_designer_cannot_open_gate(self, db, make_content, designer):
        content = make_content(status="in_production")
        with pytest.raises(PermissionDenied):
            lifecycle.internal_approve(db, content, designer)
        db.refresh(content)
        assert content.internal_approved is False

    def test_gate_only_in_production_states(self, db, make_content, manager):
        content = make_content(status="draft")
        with pytest.raises(StateConflict):
            lifecycle.internal_approve(db, content, manager)

    def test_reject_requires_comment(self, db, make_content, manager):
        content = make_content(status="in_production", internal_approved=True)
        with pytest.raises(ApprovalValidationError):
            lifecycle.internal_reject(db, content, manager, "   ")
        db.refresh(content)
        assert content.internal_approved is True

    def test_reject_closes_gate(self, db, make_content, manager):
        content = make_content(status="in_production", internal_approved=True)
        event = lifecycle.internal_reject(db, content, manager, "Logo is cropped")

        db.refresh(content)
        assert content.internal_approved is False
        assert content.internal_approved_by is None
        assert event.event == "internal_adjustment_requested"
        assert event.comment == "Logo is cropped"


class TestIssueLink:
    """Test approval link issuance."""

    def test_gate_closed_rejects_issuance(self, db, make_content, manager):
        content = make_content(status="in_production", internal_approved=False)

        with pytest.raises(InternalApprovalRequired):
            lifecycle.issue_link(db, content, manager)

        db.refresh(content)
        assert content.status == "in_production"
        assert _links(db, content) == []

    def test_issue_fresh_pending_link(self, db, make_content, manager):
        content = make_content(status="in_production", internal_approved=True)
        link, url, event = lifecycle.issue_link(db, content, manager, "https://app.example.com")

        db.refresh(content)
        assert content.status == "pending_approval"
        assert link.status == "pending"
        assert link.resolved_at is None
        assert link.reviewer_name is None
        assert link.issued_by == manager.id
        assert url == f"https://app.example.com/aprovacao?token={link.token}"
        assert event.event == "review_requested"
        assert event.new_status == "pending_approval"

    def test_resubmit_after_adjustments(self, db, make_content, manager):
        content = make_content(status="adjustment_requested", internal_approved=True)
        lifecycle.issue_link(db, content, manager)

        db.refresh(content)
        assert content.status == "pending_approval"
        assert _actions(db, content) == ["resubmit"]

    def test_reissue_while_pending(self, db, make_content, manager):
        content = make_content(status="in_production", internal_approved=True)
        first, _, _ = lifecycle.issue_link(db, content, manager)
        second, _, event = lifecycle.issue_link(db, content, manager)

        db.refresh(content)
        assert content.status == "pending_approval"
        assert first.token != second.token
        assert [link.status for link in _links(db, content)] == ["pending", "pending"]
        assert event.previous_status == event.new_status == "pending_approval"
        assert _actions(db, content) == ["submit_for_review", "link_reissued"]

    def test_cannot_issue_for_approved_content(self, db, make_content, manager):
        content = make_content(status="approved", internal_approved=True)
        with pytest.raises(StateConflict):
            lifecycle.issue_link(db, content, manager)

    def test_gate_closed_concurrently(self, db, make_content, manager):
        """Gate check and issuance happen in one conditional update."""
        content = make_content(status="in_production", internal_approved=True)
        assert content.internal_approved is True
        db.execute(
            update(ContentItem.__table__)
            .where(ContentItem.__table__.c.id == content.id)
            .values(internal_approved=False)
        )

        with pytest.raises(InternalApprovalRequired):
            lifecycle.issue_link(db, content, manager)

        assert _links(db, content) == []

    def test_token_collision_is_retried(self, db, make_content, manager, monkeypatch):
        content = make_content(status="in_production", internal_approved=True)
        taken = ApprovalLink(
            content_id=content.id,
            client_id=content.client_id,
            org_id=content.org_id,
            token="T" * 32,
            status="approved",
            expires_at=datetime(2030, 1, 1, tzinfo=timezone.utc),
        )
        db.add(taken)
        db.commit()

        tokens = iter(["T" * 32, "F" * 32])
        monkeypatch.setattr(lifecycle, "new_token", lambda length: next(tokens))

        link, _, _ = lifecycle.issue_link(db, content, manager)

        assert link.token == "F" * 32
        db.refresh(content)
        assert content.status == "pending_approval"

    def test_issue_fails_after_repeated_collisions(self, db, make_content, manager, monkeypatch):
        content = make_content(status="in_production", internal_approved=True)
        db.add(ApprovalLink(
            content_id=content.id,
            client_id=content.client_id,
            org_id=content.org_id,
            token="T" * 32,
            status="approved",
            expires_at=datetime(2030, 1, 1, tzinfo=timezone.utc),
        ))
        db.commit()
        monkeypatch.setattr(lifecycle, "new_token", lambda length: "T" * 32)

        with pytest.raises(LinkIssueFailed):
            lifecycle.issue_link(db, content, manager)

        db.refresh(content)
        assert content.status == "in_production"
        assert len(_links(db, content)) == 1


class TestEditing:
    """Test descriptive edits and their effect on the internal gate."""

    def test_edit_after_internal_approval_closes_gate(self, db, make_content, manager, designer):
        content = make_content(status="in_production", internal_approved=True,
                               internal_approved_by=manager.id, internal_approved_at=utcnow())
        event = lifecycle.edit(db, content, designer, {"body": "New caption"})

        db.refresh(content)
        assert content.body == "New caption"
        assert content.internal_approved is False
        assert content.internal_approved_by is None
        assert content.internal_approved_at is None
        assert event.event == "internal_approval_reset"
        assert _actions(db, content) == ["edited", "internal_approval_reset"]

        with pytest.raises(InternalApprovalRequired):
            lifecycle.issue_link(db, content, manager)
        assert _links(db, content) == []

    def test_edit_with_gate_closed_returns_no_event(self, db, make_content, designer):
        content = make_content(status="in_production")
        assert lifecycle.edit(db, content, designer, {"title": "  Spring menu  "}) is None

        db.refresh(content)
        assert content.title == "Spring menu"
        assert _actions(db, content) == ["edited"]

    @pytest.mark.parametrize("status", ["pending_approval", "approved", "scheduled", "published", "canceled"])
    def test_locked_states_refuse_edits(self, db, make_content, manager, status):
        content = make_content(status=status, internal_approved=True)
        with pytest.raises(StateConflict):
            lifecycle.edit(db, content, manager, {"body": "Late change"})

        db.refresh(content)
        assert content.body != "Late change"
        assert content.internal_approved is True

    @pytest.mark.parametrize("title", [None, "", "   "])
    def test_blank_title_is_rejected(self, db, make_content, designer, title):
        content = make_content(title="Original")
        with pytest.raises(ApprovalValidationError) as exc:
            lifecycle.edit(db, content, designer, {"title": title})
        assert exc.value.details == {"field": "title"}

        db.refresh(content)
        assert content.title == "Original"
