"""
Tests for GEOACCESS Roles and Permissions
=========================================
"""

import pytest

from geoaccess.api.access.audit import AuditEventType
from geoaccess.api.access.rbac import (
    GRANTOR_ROLES,
    Permission,
    Role,
    ensure_role,
    get_effective_permissions,
    get_role_info,
    get_role_permissions,
    parse_role,
    role_level,
)
from geoaccess.core.exceptions import ForbiddenError, ValidationError


class TestRoles:
    """Tests for role parsing and hierarchy."""

    def test_parse_role_case_insensitive(self):
        assert parse_role("manager") == Role.MANAGER
        assert parse_role(" ADMIN ") == Role.ADMIN
        assert parse_role(Role.USER) == Role.USER

    def test_parse_unknown_role(self):
        with pytest.raises(ValidationError):
            parse_role("Superuser")

    def test_role_levels(self):
        assert role_level("Admin") > role_level("Manager") > role_level("Technician") > role_level("User")
        assert role_level("Superuser") == 0

    def test_role_info_unknown(self):
        info = get_role_info("Superuser")
        assert info["level"] == 0
        assert info["permissions"] == []


class TestPermissions:
    """Tests for default permission sets."""

    def test_admin_has_everything(self):
        assert get_role_permissions(Role.ADMIN) == {p.value for p in Permission}

    def test_user_is_read_only(self):
        assert get_role_permissions(Role.USER) == {"towers:read", "analytics:read"}

    def test_effective_permissions_union(self):
        combined = get_effective_permissions([Role.USER, Role.TECHNICIAN])
        assert "towers:create" in combined
        assert "audit:read" not in combined


class TestEnsureRole:
    """Tests for the role guard."""

    def test_allowed(self, manager_user):
        ensure_role(manager_user, GRANTOR_ROLES, "Grant temporary access")

    def test_refused_and_audited(self, basic_user, audit):
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_role(basic_user, GRANTOR_ROLES, "Grant temporary access", audit=audit)

        assert exc_info.value.actor_id == basic_user.id
        entry = audit.query()[0]
        assert entry.event_type == AuditEventType.ACTION_FORBIDDEN
        assert entry.user_id == basic_user.id

    def test_anonymous_refused(self):
        with pytest.raises(ForbiddenError):
            ensure_role(None, GRANTOR_ROLES, "Grant temporary access")
