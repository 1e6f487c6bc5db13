"""
GEOACCESS - Role-Based Access Control (RBAC)

Defines roles, permissions, the role hierarchy and role guards.
This is the authoritative source for the static part of access control;
region scoping lives in the PermissionResolver.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Set

from geoaccess.core.exceptions import ForbiddenError, ValidationError


# ============================================================
# Permissions
# ============================================================


class Permission(str, Enum):
    """All permissions in the system."""

    # User Management
    USERS_CREATE = "users:create"
    USERS_READ = "users:read"
    USERS_UPDATE = "users:update"
    USERS_DELETE = "users:delete"

    # Infrastructure (towers)
    TOWERS_CREATE = "towers:create"
    TOWERS_READ = "towers:read"
    TOWERS_UPDATE = "towers:update"
    TOWERS_DELETE = "towers:delete"

    # Analytics
    ANALYTICS_READ = "analytics:read"
    ANALYTICS_EXPORT = "analytics:export"

    # Settings
    SETTINGS_READ = "settings:read"
    SETTINGS_UPDATE = "settings:update"

    # Audit
    AUDIT_READ = "audit:read"


ALL_PERMISSIONS: FrozenSet[str] = frozenset(p.value for p in Permission)


# ============================================================
# Roles
# ============================================================


class Role(str, Enum):
    """System roles."""

    ADMIN = "Admin"
    MANAGER = "Manager"
    TECHNICIAN = "Technician"
    USER = "User"


# Higher number = more privileges
ROLE_HIERARCHY: Dict[Role, int] = {
    Role.USER: 1,
    Role.TECHNICIAN: 2,
    Role.MANAGER: 3,
    Role.ADMIN: 4,
}


# ============================================================
# Role Permission Mappings
# ============================================================


ROLE_PERMISSIONS: Dict[Role, Set[Permission]] = {
    Role.ADMIN: {
        # All permissions
        *Permission,
    },

    Role.MANAGER: {
        Permission.USERS_READ,
        Permission.USERS_UPDATE,
        Permission.TOWERS_CREATE,
        Permission.TOWERS_READ,
        Permission.TOWERS_UPDATE,
        Permission.ANALYTICS_READ,
        Permission.ANALYTICS_EXPORT,
    },

    Role.TECHNICIAN: {
        Permission.TOWERS_CREATE,
        Permission.TOWERS_READ,
        Permission.TOWERS_UPDATE,
        Permission.ANALYTICS_READ,
    },

    Role.USER: {
        Permission.TOWERS_READ,
        Permission.ANALYTICS_READ,
    },
}


ROLE_COLORS: Dict[Role, str] = {
    Role.ADMIN: "purple",
    Role.MANAGER: "blue",
    Role.TECHNICIAN: "green",
    Role.USER: "gray",
}


# Roles allowed to grant, extend and revoke temporary access
GRANTOR_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.MANAGER})

# Roles allowed to approve or reject region requests
REVIEWER_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.MANAGER})

# Roles allowed to mutate zones and zone assignments
ZONE_ADMIN_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN})


def parse_role(value: Any) -> Role:
    """Coerce a role name (case-insensitive) to a Role."""
    if isinstance(value, Role):
        return value
    if isinstance(value, str):
        for role in Role:
            if role.value.lower() == value.strip().lower():
                return role
    raise ValidationError(f"Unknown role: {value!r}", field="role")


def role_level(role: Any) -> int:
    """Hierarchy level of a role; 0 for unknown roles."""
    try:
        return ROLE_HIERARCHY[parse_role(role)]
    except ValidationError:
        return 0


def get_role_permissions(role: Role) -> Set[str]:
    """Default permission values for a role."""
    return {p.value for p in ROLE_PERMISSIONS.get(role, set())}


def get_effective_permissions(roles: Iterable[Role]) -> Set[str]:
    """Get all default permissions for a set of roles."""
    permissions: Set[str] = set()
    for role in roles:
        permissions.update(get_role_permissions(role))
    return permissions


def get_role_info(role: Any) -> Dict[str, Any]:
    """Display information for a role."""
    try:
        parsed: Optional[Role] = parse_role(role)
    except ValidationError:
        parsed = None

    if parsed is None:
        return {"name": str(role), "level": 0, "color": "gray", "permissions": []}

    return {
        "name": parsed.value,
        "level": ROLE_HIERARCHY[parsed],
        "color": ROLE_COLORS[parsed],
        "permissions": sorted(get_role_permissions(parsed)),
    }


# ============================================================
# Role Guards
# ============================================================


def ensure_role(actor, allowed: Iterable[Role], action: str, audit=None) -> None:
    """
    Raise ForbiddenError unless the actor holds one of the allowed roles.

    When an audit trail is given, the refusal is recorded as an
    ACTION_FORBIDDEN entry before raising.
    """
    allowed = set(allowed)
    if actor is not None and actor.role in allowed:
        return

    roles = ", ".join(sorted(r.value for r in allowed))
    message = f"{action} requires one of: {roles}"
    if audit is not None:
        audit.record_forbidden(actor, action, message)
    raise ForbiddenError(message, actor_id=getattr(actor, "id", None))
