"""
Tests for GEOACCESS Region Requests
===================================

Tests the request lifecycle, reviewer guards and terminal states.
"""

import pytest

from geoaccess.api.access.audit import AuditEventType, AuditSeverity
from geoaccess.api.region_requests.service import RequestFilter, RequestStatus
from geoaccess.core.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


@pytest.fixture
def pending(requests, basic_user):
    return requests.submit(basic_user, ["Goa", "Kerala"], "Monsoon survey")


class TestSubmit:
    """Tests for opening requests."""

    def test_submit(self, pending, basic_user, clock):
        """Should open a pending request stamped with the requester."""
        assert pending.status == RequestStatus.PENDING
        assert pending.user_id == basic_user.id
        assert pending.user_role == "User"
        assert pending.requested_regions == ["Goa", "Kerala"]
        assert pending.created_at == clock.now()
        assert pending.reviewed_by is None

    def test_submit_is_audited(self, pending, audit):
        entry = audit.query()[0]
        assert entry.event_type == AuditEventType.REGION_REQUEST_SUBMITTED
        assert entry.details["request_id"] == pending.id

    def test_empty_regions_rejected(self, requests, basic_user):
        with pytest.raises(ValidationError):
            requests.submit(basic_user, [], "nothing")

    def test_unknown_region_rejected(self, requests, basic_user):
        with pytest.raises(ValidationError):
            requests.submit(basic_user, ["Goa", "Atlantis"], "")
        assert requests.list_requests() == []

    def test_duplicate_regions_collapsed(self, requests, basic_user):
        request = requests.submit(basic_user, ["Goa", "Goa"], "")
        assert request.requested_regions == ["Goa"]


class TestReview:
    """Tests for approval and rejection."""

    def test_approve(self, pending, requests, manager_user, clock, audit):
        clock.advance(hours=1)

        approved = requests.approve(pending.id, manager_user, notes="OK")

        assert approved.status == RequestStatus.APPROVED
        assert approved.reviewed_by == manager_user.id
        assert approved.reviewed_at == clock.now()
        assert approved.review_notes == "OK"
        assert audit.query()[0].event_type == AuditEventType.REGION_REQUEST_APPROVED

    def test_approval_grants_nothing(self, pending, requests, admin_user, grants, resolver, basic_user):
        """Approving is a decision record only."""
        requests.approve(pending.id, admin_user)

        assert grants.list_grants() == []
        assert resolver.can_access_region(basic_user, "Goa") is False

    def test_reject(self, pending, requests, admin_user, audit):
        rejected = requests.reject(pending.id, admin_user, notes="Not needed")

        assert rejected.status == RequestStatus.REJECTED
        entry = audit.query()[0]
        assert entry.event_type == AuditEventType.REGION_REQUEST_REJECTED
        assert entry.severity == AuditSeverity.WARNING

    def test_review_requires_reviewer(self, pending, requests, technician_user):
        with pytest.raises(ForbiddenError):
            requests.approve(pending.id, technician_user)
        assert requests.get(pending.id).is_pending

    def test_single_terminal_transition(self, pending, requests, admin_user, manager_user):
        """A decided request cannot be decided again."""
        requests.approve(pending.id, admin_user)

        with pytest.raises(InvalidStateError):
            requests.reject(pending.id, manager_user)
        with pytest.raises(InvalidStateError):
            requests.approve(pending.id, manager_user)

        assert requests.get(pending.id).status == RequestStatus.APPROVED

    def test_review_missing(self, requests, admin_user):
        with pytest.raises(NotFoundError):
            requests.approve("req_missing", admin_user)


class TestCancelAndDelete:
    """Tests for withdrawal and deletion."""

    def test_cancel_by_owner(self, pending, requests, basic_user, audit):
        cancelled = requests.cancel(pending.id, basic_user)

        assert cancelled.status == RequestStatus.CANCELLED
        assert audit.query()[0].event_type == AuditEventType.REGION_REQUEST_CANCELLED

    def test_cancel_by_other_user(self, pending, requests, admin_user, audit):
        """Even an Admin cannot cancel someone else's request."""
        with pytest.raises(ForbiddenError):
            requests.cancel(pending.id, admin_user)

        assert requests.get(pending.id).is_pending
        assert audit.query()[0].event_type == AuditEventType.ACTION_FORBIDDEN

    def test_cancel_after_review(self, pending, requests, basic_user, manager_user):
        requests.reject(pending.id, manager_user)
        with pytest.raises(InvalidStateError):
            requests.cancel(pending.id, basic_user)

    def test_delete_by_owner(self, pending, requests, basic_user):
        assert requests.delete(pending.id, basic_user) is True
        assert requests.get(pending.id) is None

    def test_delete_by_admin(self, pending, requests, admin_user, audit):
        requests.delete(pending.id, admin_user)
        assert audit.query()[0].event_type == AuditEventType.REGION_REQUEST_DELETED

    def test_delete_by_manager_refused(self, pending, requests, manager_user):
        with pytest.raises(ForbiddenError):
            requests.delete(pending.id, manager_user)
        assert requests.get(pending.id) is not None


class TestQueries:
    """Tests for listings and statistics."""

    def test_listing_newest_first(self, pending, requests, basic_user, technician_user, clock):
        clock.advance(minutes=5)
        newer = requests.submit(technician_user, ["Assam"], "")

        assert [r.id for r in requests.list_requests()] == [newer.id, pending.id]
        assert [r.id for r in requests.user_requests(basic_user.id)] == [pending.id]

    def test_filter_by_status_and_region(self, pending, requests, technician_user, admin_user):
        other = requests.submit(technician_user, ["Assam"], "")
        requests.approve(other.id, admin_user)

        pending_only = requests.list_requests(RequestFilter(status=RequestStatus.PENDING))
        assert [r.id for r in pending_only] == [pending.id]
        assert [r.id for r in requests.list_requests(RequestFilter(region="Assam"))] == [other.id]

    def test_pending_helpers(self, pending, requests, basic_user):
        assert requests.pending_count_for_user(basic_user.id) == 1
        assert requests.has_pending_request_for_region(basic_user.id, "Kerala") is True
        assert requests.has_pending_request_for_region(basic_user.id, "Assam") is False

    def test_request_stats(self, pending, requests, basic_user, technician_user, admin_user):
        rejected = requests.submit(technician_user, ["Goa"], "")
        requests.reject(rejected.id, admin_user)
        cancelled = requests.submit(basic_user, ["Assam"], "")
        requests.cancel(cancelled.id, basic_user)

        stats = requests.request_stats()

        assert stats.total == 3
        assert stats.pending == 1
        assert stats.rejected == 1
        assert stats.cancelled == 1
        assert stats.approved == 0
        assert stats.requests_by_region["Goa"] == 2
