"""
GEOACCESS - Permission Resolver

Point-in-time answer to "what may this user do, and where".

Effective regions merge four sources:
    1. Admin role (every region)
    2. Explicit regions on the user record
    3. Regions of the user's assigned zones
    4. Regions of the user's currently valid temporary grants

The resolver never mutates state and never writes to the audit trail.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from geoaccess.api.access.rbac import (
    ALL_PERMISSIONS,
    ROLE_HIERARCHY,
    Role,
    get_role_info,
    get_role_permissions,
    role_level,
)
from geoaccess.api.grants.service import TemporaryGrantStore
from geoaccess.api.identity import IdentityProvider
from geoaccess.api.zones.service import ZoneRegistry
from geoaccess.core.clock import Clock, SystemClock, ensure_utc
from geoaccess.core.constants import INDIAN_STATES
from geoaccess.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


# Where an allowed region came from, in precedence order
SOURCE_ADMIN = "admin"
SOURCE_EXPLICIT = "explicit"
SOURCE_ZONE = "zone"
SOURCE_TEMPORARY = "temporary"


@dataclass
class AccessDecision:
    """
    Outcome of a region access check.

    ``error`` is set when the decision could not be evaluated; ``allowed``
    is then always False.
    """

    allowed: bool
    region: str
    source: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "region": self.region,
            "source": self.source,
            "error": self.error,
        }


class PermissionResolver:
    """Read-side join across identity, zones and temporary grants."""

    def __init__(
        self,
        zones: ZoneRegistry,
        grants: TemporaryGrantStore,
        identity: IdentityProvider,
        clock: Optional[Clock] = None,
        regions: Optional[Iterable[str]] = None,
    ):
        self.zones = zones
        self.grants = grants
        self.identity = identity
        self.clock = clock or SystemClock()
        self.regions = list(regions) if regions is not None else list(INDIAN_STATES)

    # ==================== Permissions ====================

    def effective_permissions(self, user) -> Set[str]:
        if user is None:
            return set()
        if user.role == Role.ADMIN:
            return set(ALL_PERMISSIONS)
        return get_role_permissions(user.role) | set(user.explicit_permissions)

    def has_permission(self, user, permission) -> bool:
        return _value(permission) in self.effective_permissions(user)

    def has_any_permission(self, user, permissions: Iterable) -> bool:
        effective = self.effective_permissions(user)
        return any(_value(p) in effective for p in permissions)

    def has_all_permissions(self, user, permissions: Iterable) -> bool:
        effective = self.effective_permissions(user)
        return all(_value(p) in effective for p in permissions)

    def can_perform_action(self, user, action: str, resource: str) -> bool:
        """Shorthand for ``has_permission(user, f"{resource}:{action}")``."""
        return self.has_permission(user, f"{resource}:{action}")

    # ==================== Roles ====================

    def has_role(self, user, role) -> bool:
        return user is not None and user.role == role

    def has_any_role(self, user, roles: Iterable) -> bool:
        return user is not None and user.role in set(roles)

    def has_minimum_role(self, user, min_role) -> bool:
        if user is None:
            return False
        return ROLE_HIERARCHY[user.role] >= role_level(min_role)

    def role_info(self, role) -> Dict[str, Any]:
        return get_role_info(role)

    def can_manage_user(self, manager, target) -> bool:
        """
        Admins manage everyone; nobody manages themselves; Managers
        manage the users declared under them in the org hierarchy.
        """
        if manager is None or target is None:
            return False
        if manager.role == Role.ADMIN:
            return True
        if manager.id == target.id:
            return False
        if manager.role == Role.MANAGER:
            return target.id in self.identity.get_org_hierarchy(manager.id)
        return False

    # ==================== Regions ====================

    def effective_regions(self, user, at: Optional[datetime] = None) -> Set[str]:
        """Regions the user may act in at ``at`` (default now).

        Raises PersistenceError when the store cannot be read.
        """
        if user is None:
            return set()
        if user.role == Role.ADMIN:
            return set(self.regions)

        at = ensure_utc(at) if at is not None else self.clock.now()
        with self.zones.store.locked():
            regions = set(user.explicit_regions)
            regions |= self.zones.regions_for_user(user.id)
            regions |= {g.region for g in self.grants.list_active(user.id, at)}
        return regions

    def accessible_regions(self, user) -> List[str]:
        return sorted(self.effective_regions(user))

    def check_region_access(self, user, region: str) -> AccessDecision:
        """Region access with the reason it was allowed, or why it failed."""
        if user is None:
            return AccessDecision(allowed=False, region=region)
        if user.role == Role.ADMIN:
            return AccessDecision(allowed=True, region=region, source=SOURCE_ADMIN)

        now = self.clock.now()
        try:
            with self.zones.store.locked():
                if region in user.explicit_regions:
                    source = SOURCE_EXPLICIT
                elif region in self.zones.regions_for_user(user.id):
                    source = SOURCE_ZONE
                elif any(g.region == region for g in self.grants.list_active(user.id, now)):
                    source = SOURCE_TEMPORARY
                else:
                    source = None
        except PersistenceError as e:
            logger.error(f"Region access check failed for {user.id} on {region}: {e}")
            return AccessDecision(allowed=False, region=region, error=str(e))

        return AccessDecision(allowed=source is not None, region=region, source=source)

    def can_access_region(self, user, region: str) -> bool:
        """True only when access is positively established."""
        return self.check_region_access(user, region).allowed


def _value(permission) -> str:
    return getattr(permission, "value", permission)
