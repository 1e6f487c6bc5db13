"""
GEOACCESS - Access & Authority Module

Role-based access control, region resolution and audit logging.

Components:
- rbac.py: Role definitions, permissions, role guards
- audit.py: Audit trail, statistics, exports
- resolver.py: Effective permissions and regions per user

Usage:
    from geoaccess.api.access.rbac import (
        Role,
        Permission,
        ensure_role,
    )

    from geoaccess.api.access.audit import (
        AuditTrail,
        AuditEventType,
        AuditFilter,
    )
"""

from geoaccess.api.access.rbac import (
    Role,
    Permission,
    ALL_PERMISSIONS,
    ROLE_HIERARCHY,
    ROLE_PERMISSIONS,
    GRANTOR_ROLES,
    REVIEWER_ROLES,
    ZONE_ADMIN_ROLES,
    parse_role,
    get_effective_permissions,
    get_role_info,
    ensure_role,
)

from geoaccess.api.access.audit import (
    AuditTrail,
    AuditEntry,
    AuditEventType,
    AuditSeverity,
    AuditFilter,
    AuditStats,
)

__all__ = [
    # Roles and Permissions
    "Role",
    "Permission",
    "ALL_PERMISSIONS",
    "ROLE_HIERARCHY",
    "ROLE_PERMISSIONS",
    "GRANTOR_ROLES",
    "REVIEWER_ROLES",
    "ZONE_ADMIN_ROLES",
    "parse_role",
    "get_effective_permissions",
    "get_role_info",
    "ensure_role",

    # Audit
    "AuditTrail",
    "AuditEntry",
    "AuditEventType",
    "AuditSeverity",
    "AuditFilter",
    "AuditStats",
]
