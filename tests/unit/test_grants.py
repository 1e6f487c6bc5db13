"""
Tests for GEOACCESS Temporary Grants
====================================

Tests granting, revoking, extending, sweeping and the lazy
expiry boundary.
"""

from datetime import timedelta

import pytest

from geoaccess.api.access.audit import AuditEventType, AuditFilter, AuditSeverity
from geoaccess.api.grants.service import GrantFilter, GrantStatus, TimeRemaining
from geoaccess.core.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


@pytest.fixture
def goa_grant(grants, clock, basic_user, manager_user):
    """One day of Goa access for the basic user."""
    return grants.grant(basic_user, "Goa", clock.now() + timedelta(days=1), "Field survey", manager_user)


class TestGranting:
    """Tests for creating grants."""

    def test_grant_fields(self, goa_grant, basic_user, manager_user, clock):
        """Should record grantee, grantor and times."""
        assert goa_grant.user_id == basic_user.id
        assert goa_grant.user_name == basic_user.name
        assert goa_grant.granted_by == manager_user.id
        assert goa_grant.granted_at == clock.now()
        assert goa_grant.is_active is True
        assert goa_grant.revoked_at is None

    def test_grant_is_audited(self, goa_grant, audit):
        entry = audit.query()[0]
        assert entry.event_type == AuditEventType.TEMPORARY_ACCESS_GRANTED
        assert entry.region == "Goa"
        assert entry.details["grant_id"] == goa_grant.id

    def test_grant_requires_grantor_role(self, grants, clock, basic_user, technician_user, audit):
        """Technicians cannot grant access."""
        with pytest.raises(ForbiddenError):
            grants.grant(basic_user, "Goa", clock.now() + timedelta(days=1), "", technician_user)

        assert grants.list_grants() == []
        assert audit.query()[0].event_type == AuditEventType.ACTION_FORBIDDEN

    def test_expiry_must_be_in_future(self, grants, clock, basic_user, admin_user):
        with pytest.raises(ValidationError):
            grants.grant(basic_user, "Goa", clock.now(), "", admin_user)

    def test_unknown_region(self, grants, clock, basic_user, admin_user):
        with pytest.raises(ValidationError):
            grants.grant(basic_user, "Atlantis", clock.now() + timedelta(days=1), "", admin_user)

    def test_duplicate_valid_grant_rejected(self, goa_grant, grants, clock, basic_user, admin_user):
        """A second valid grant for the same region is refused."""
        with pytest.raises(InvalidStateError):
            grants.grant(basic_user, "Goa", clock.now() + timedelta(days=2), "", admin_user)

    def test_regrant_after_expiry(self, goa_grant, grants, clock, basic_user, admin_user):
        """Once the old grant has lapsed a new one is accepted."""
        clock.advance(days=2)
        again = grants.grant(basic_user, "Goa", clock.now() + timedelta(days=1), "", admin_user)
        assert again.id != goa_grant.id


class TestExpiry:
    """Validity is computed against the clock on every read."""

    def test_valid_before_expiry(self, goa_grant, grants, clock, basic_user):
        clock.set(goa_grant.expires_at - timedelta(seconds=1))
        assert grants.has_temporary_access(basic_user.id, "Goa") is True

    def test_invalid_exactly_at_expiry(self, goa_grant, grants, clock, basic_user):
        """Expiry is exclusive."""
        clock.set(goa_grant.expires_at)
        assert grants.has_temporary_access(basic_user.id, "Goa") is False
        assert grants.get(goa_grant.id).status_at(clock.now()) == GrantStatus.EXPIRED

    def test_list_active_at_instant(self, goa_grant, grants, basic_user):
        later = goa_grant.expires_at + timedelta(hours=1)
        assert grants.list_active(basic_user.id, at=later) == []
        assert [g.id for g in grants.list_active(basic_user.id)] == [goa_grant.id]

    def test_user_temporary_regions(self, goa_grant, grants, clock, basic_user, admin_user):
        grants.grant(basic_user, "Assam", clock.now() + timedelta(hours=2), "", admin_user)
        assert grants.user_temporary_regions(basic_user.id) == {"Goa", "Assam"}


class TestRevokeAndExtend:
    """Tests for revoking and extending grants."""

    def test_revoke(self, goa_grant, grants, basic_user, admin_user, audit):
        revoked = grants.revoke(goa_grant.id, admin_user, reason="Survey finished")

        assert revoked.is_active is False
        assert revoked.revoked_by == admin_user.id
        assert revoked.revoked_reason == "Survey finished"
        assert grants.has_temporary_access(basic_user.id, "Goa") is False

        entry = audit.query()[0]
        assert entry.event_type == AuditEventType.TEMPORARY_ACCESS_REVOKED
        assert entry.severity == AuditSeverity.WARNING

    def test_revoke_twice(self, goa_grant, grants, admin_user):
        grants.revoke(goa_grant.id, admin_user)
        with pytest.raises(InvalidStateError):
            grants.revoke(goa_grant.id, admin_user)

    def test_revoke_expired(self, goa_grant, grants, clock, admin_user):
        clock.advance(days=2)
        with pytest.raises(InvalidStateError):
            grants.revoke(goa_grant.id, admin_user)

    def test_revoke_missing(self, grants, admin_user):
        with pytest.raises(NotFoundError):
            grants.revoke("grant_missing", admin_user)

    def test_revoke_requires_grantor_role(self, goa_grant, grants, basic_user):
        with pytest.raises(ForbiddenError):
            grants.revoke(goa_grant.id, basic_user)

    def test_extend(self, goa_grant, grants, clock, manager_user, audit):
        new_expiry = clock.now() + timedelta(days=5)

        extended = grants.extend(goa_grant.id, new_expiry, manager_user)

        assert extended.expires_at == new_expiry
        entry = audit.query()[0]
        assert entry.event_type == AuditEventType.TEMPORARY_ACCESS_EXTENDED
        assert entry.details["old_expires_at"] == goa_grant.expires_at.isoformat()
        assert entry.details["new_expires_at"] == new_expiry.isoformat()

    def test_extend_into_past(self, goa_grant, grants, clock, manager_user):
        with pytest.raises(ValidationError):
            grants.extend(goa_grant.id, clock.now() - timedelta(minutes=1), manager_user)

    def test_extend_revoked(self, goa_grant, grants, clock, admin_user):
        grants.revoke(goa_grant.id, admin_user)
        with pytest.raises(InvalidStateError):
            grants.extend(goa_grant.id, clock.now() + timedelta(days=5), admin_user)


class TestSweepAndDelete:
    """Tests for the expiry sweep and record deletion."""

    def test_sweep_deactivates_lapsed(self, goa_grant, grants, clock, basic_user, admin_user, audit):
        """Sweeping flips is_active and writes no audit entries."""
        grants.grant(basic_user, "Assam", clock.now() + timedelta(days=10), "", admin_user)
        before = audit.count()
        clock.advance(days=2)

        assert grants.sweep_expired() == 1
        assert grants.get(goa_grant.id).is_active is False
        assert grants.get(goa_grant.id).revoked_at is None
        assert audit.count() == before

    def test_sweep_is_idempotent(self, goa_grant, grants, clock):
        clock.advance(days=2)
        grants.sweep_expired()
        assert grants.sweep_expired() == 0

    def test_sweep_does_not_change_visible_validity(self, goa_grant, grants, clock, basic_user):
        clock.advance(days=2)
        before = grants.has_temporary_access(basic_user.id, "Goa")
        grants.sweep_expired()
        assert grants.has_temporary_access(basic_user.id, "Goa") == before

    def test_delete_requires_admin(self, goa_grant, grants, manager_user):
        with pytest.raises(ForbiddenError):
            grants.delete(goa_grant.id, manager_user)
        assert grants.get(goa_grant.id) is not None

    def test_delete(self, goa_grant, grants, admin_user, audit):
        assert grants.delete(goa_grant.id, admin_user) is True
        assert grants.get(goa_grant.id) is None
        assert audit.query()[0].event_type == AuditEventType.TEMPORARY_ACCESS_DELETED


class TestQueries:
    """Tests for listings, countdowns and statistics."""

    def test_list_grants_filtering(self, goa_grant, grants, clock, basic_user, technician_user, admin_user):
        clock.advance(minutes=1)
        other = grants.grant(technician_user, "Goa", clock.now() + timedelta(days=1), "", admin_user)

        assert [g.id for g in grants.list_grants()] == [other.id, goa_grant.id]
        assert [g.id for g in grants.list_grants(GrantFilter(user_id=basic_user.id))] == [goa_grant.id]
        assert [g.id for g in grants.list_grants(GrantFilter(granted_by=admin_user.id))] == [other.id]

    def test_list_grants_active_filter(self, goa_grant, grants, admin_user):
        grants.revoke(goa_grant.id, admin_user)
        assert grants.list_grants(GrantFilter(is_active=True)) == []
        assert len(grants.list_grants(GrantFilter(is_active=False))) == 1

    def test_expiring_grants(self, goa_grant, grants, clock, basic_user, admin_user):
        grants.grant(basic_user, "Assam", clock.now() + timedelta(days=30), "", admin_user)
        grants.grant(basic_user, "Bihar", clock.now() + timedelta(hours=3), "", admin_user)

        expiring = grants.expiring_grants(days_ahead=7)

        assert [g.region for g in expiring] == ["Bihar", "Goa"]

    def test_time_remaining(self, grants, clock, basic_user, admin_user):
        grant = grants.grant(
            basic_user, "Goa", clock.now() + timedelta(days=2, hours=3, seconds=20), "", admin_user
        )
        remaining = grants.time_remaining(grant)

        assert remaining.expired is False
        assert remaining.days == 2
        assert remaining.hours == 3
        assert remaining.display == "2d 3h"

    def test_time_remaining_expired(self, goa_grant, grants, clock):
        clock.advance(days=3)
        assert grants.time_remaining(goa_grant).display == "Expired"

    def test_time_remaining_short(self):
        assert TimeRemaining.from_seconds(45).display == "45s"
        assert TimeRemaining.from_seconds(0.5).display == "Expired"

    def test_grant_stats(self, goa_grant, grants, clock, basic_user, technician_user, admin_user):
        revoked = grants.grant(technician_user, "Assam", clock.now() + timedelta(days=1), "", admin_user)
        grants.revoke(revoked.id, admin_user)
        grants.grant(technician_user, "Bihar", clock.now() + timedelta(hours=1), "", admin_user)
        clock.advance(hours=2)

        stats = grants.grant_stats()

        assert stats.total_grants == 3
        assert stats.active_grants == 1
        assert stats.revoked_grants == 1
        assert stats.expired_grants == 1
        assert stats.grants_by_user[technician_user.name] == 2

    def test_audit_region_tag(self, goa_grant, audit):
        entries = audit.query(AuditFilter(region="Goa"))
        assert entries[0].event_type == AuditEventType.TEMPORARY_ACCESS_GRANTED
