"""
Tests for GEOACCESS Zone Registry
=================================

Tests zone CRUD, assignments, the delete cascade and role guards.
"""

import pytest

from geoaccess.api.access.audit import AuditEventType, AuditFilter, AuditSeverity
from geoaccess.core.exceptions import ForbiddenError, NotFoundError, ValidationError


@pytest.fixture
def north(zones, admin_user):
    return zones.create_zone("North", "Northern states", ["Punjab", "Haryana"], "#3B82F6", admin_user)


@pytest.fixture
def south(zones, admin_user):
    return zones.create_zone("South", "Southern states", ["Kerala", "Karnataka"], "#10B981", admin_user)


class TestZoneCrud:
    """Tests for creating, updating and deleting zones."""

    def test_create_zone(self, north, zones, audit):
        """Should persist the zone and audit it."""
        assert zones.get_zone(north.id).regions == ["Punjab", "Haryana"]

        entry = audit.query()[0]
        assert entry.event_type == AuditEventType.ZONE_CREATED
        assert entry.severity == AuditSeverity.INFO

    def test_create_rejects_unknown_region(self, zones, admin_user, audit):
        """Validation fails before any state change or audit entry."""
        with pytest.raises(ValidationError):
            zones.create_zone("Bad", "", ["Atlantis"], "", admin_user)
        assert zones.list_zones() == []
        assert audit.count() == 0

    def test_create_rejects_empty_name(self, zones, admin_user):
        with pytest.raises(ValidationError):
            zones.create_zone("  ", "", ["Goa"], "", admin_user)

    def test_create_requires_admin(self, zones, manager_user, audit):
        """Non-admins are refused and the refusal is audited."""
        with pytest.raises(ForbiddenError):
            zones.create_zone("North", "", ["Punjab"], "", manager_user)

        entry = audit.query()[0]
        assert entry.event_type == AuditEventType.ACTION_FORBIDDEN
        assert entry.user_id == manager_user.id

    def test_update_partial(self, north, zones, admin_user):
        """Only the given fields change."""
        updated = zones.update_zone(north.id, {"regions": ["Punjab"], "color": "#000000"}, admin_user)

        assert updated.regions == ["Punjab"]
        assert updated.color == "#000000"
        assert updated.name == "North"

    def test_update_unknown_field(self, north, zones, admin_user):
        with pytest.raises(ValidationError):
            zones.update_zone(north.id, {"created_by": "someone"}, admin_user)

    def test_update_missing_zone(self, zones, admin_user):
        with pytest.raises(NotFoundError):
            zones.update_zone("zone_missing", {"name": "X"}, admin_user)

    def test_delete_missing_zone(self, zones, admin_user):
        with pytest.raises(NotFoundError):
            zones.delete_zone("zone_missing", admin_user)

    def test_duplicate_regions_collapsed(self, zones, admin_user):
        zone = zones.create_zone("Dup", "", ["Goa", "Goa", "Kerala"], "", admin_user)
        assert zone.regions == ["Goa", "Kerala"]


class TestAssignments:
    """Tests for zone assignments."""

    def test_assign_and_resolve_regions(self, zones, north, south, admin_user, basic_user):
        zones.assign_zones(basic_user, [north.id, south.id], admin_user)
        assert zones.regions_for_user(basic_user.id) == {"Punjab", "Haryana", "Kerala", "Karnataka"}

    def test_reassign_replaces(self, zones, north, south, admin_user, basic_user):
        """The last assignment wins."""
        zones.assign_zones(basic_user, [north.id], admin_user)
        zones.assign_zones(basic_user, [south.id], admin_user)

        assert zones.get_assignment(basic_user.id).zone_ids == [south.id]
        assert len(zones.list_assignments()) == 1

    def test_assign_unknown_zone(self, zones, north, admin_user, basic_user):
        with pytest.raises(NotFoundError):
            zones.assign_zones(basic_user, [north.id, "zone_missing"], admin_user)
        assert zones.get_assignment(basic_user.id) is None

    def test_assign_requires_admin(self, zones, north, manager_user, basic_user):
        with pytest.raises(ForbiddenError):
            zones.assign_zones(basic_user, [north.id], manager_user)

    def test_unassigned_user_has_no_zone_regions(self, zones, basic_user):
        assert zones.regions_for_user(basic_user.id) == set()

    def test_remove_assignment(self, zones, north, admin_user, basic_user, audit):
        zones.assign_zones(basic_user, [north.id], admin_user)

        assert zones.remove_assignment(basic_user.id, admin_user) is True
        assert zones.get_assignment(basic_user.id) is None
        assert audit.query()[0].event_type == AuditEventType.ZONE_ASSIGNMENT_REMOVED
        assert zones.remove_assignment(basic_user.id, admin_user) is False


class TestDeleteCascade:
    """Deleting a zone shrinks assignments that reference it."""

    def test_delete_removes_zone_from_assignments(
        self, zones, north, south, admin_user, basic_user, technician_user, audit
    ):
        zones.assign_zones(basic_user, [north.id, south.id], admin_user)
        zones.assign_zones(technician_user, [north.id], admin_user)

        assert zones.delete_zone(north.id, admin_user) is True

        assert zones.get_assignment(basic_user.id).zone_ids == [south.id]
        # Emptied assignments are kept, not deleted
        assert zones.get_assignment(technician_user.id).zone_ids == []
        assert zones.regions_for_user(basic_user.id) == {"Kerala", "Karnataka"}

        entry = audit.query(AuditFilter(event_type=AuditEventType.ZONE_DELETED))[0]
        assert entry.severity == AuditSeverity.WARNING
        assert set(entry.details["affected_user_ids"]) == {basic_user.id, technician_user.id}

    def test_one_audit_entry_per_delete(self, zones, north, admin_user, basic_user, audit):
        zones.assign_zones(basic_user, [north.id], admin_user)
        before = audit.count()

        zones.delete_zone(north.id, admin_user)

        assert audit.count() == before + 1


class TestStatsAndDefaults:
    """Tests for zone statistics and default seeding."""

    def test_zone_stats(self, zones, north, south, admin_user, basic_user):
        zones.create_zone("Big", "", ["Goa", "Assam", "Bihar"], "", admin_user)
        zones.assign_zones(basic_user, [north.id], admin_user)

        stats = zones.zone_stats()

        assert stats.total_zones == 3
        assert stats.total_regions == 7
        assert stats.zones_by_region_count[0]["name"] == "Big"
        assert stats.assignment_count == 1

    def test_initialize_default_zones(self, zones, admin_user):
        created = zones.initialize_default_zones(admin_user)

        assert [z.name for z in created] == ["North Zone", "South Zone", "East Zone", "West Zone", "Central Zone"]
        assert zones.initialize_default_zones(admin_user) == []
