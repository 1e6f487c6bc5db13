"""
Zone Registry

Named groupings of regions ("zones") and per-user zone assignments.
Zones and assignments are owned and mutated by Admins only.

Invariants:
1. At most one assignment per user; re-assigning replaces the zone set
2. Deleting a zone removes its id from every assignment (never deletes one)
3. regions_for_user skips zone ids that no longer resolve
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set
from uuid import uuid4

from geoaccess.api.access.audit import AuditEventType, AuditSeverity, AuditTrail
from geoaccess.api.access.rbac import ZONE_ADMIN_ROLES, ensure_role
from geoaccess.api.db.store import RecordStore
from geoaccess.core.clock import Clock, SystemClock, ensure_utc
from geoaccess.core.constants import DEFAULT_ZONES, INDIAN_STATES, ZONE_ASSIGNMENTS, ZONES
from geoaccess.core.exceptions import NotFoundError, ValidationError
from geoaccess.core.validation import require_text, validate_regions

logger = logging.getLogger(__name__)


UPDATABLE_FIELDS = frozenset({"name", "description", "regions", "color"})


@dataclass
class Zone:
    """Admin-defined named grouping of regions."""

    id: str
    name: str
    description: str
    color: str
    regions: List[str]
    created_by: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "regions": list(self.regions),
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Zone":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            color=data.get("color", ""),
            regions=list(data.get("regions", [])),
            created_by=data.get("created_by", ""),
            created_at=ensure_utc(datetime.fromisoformat(data["created_at"])),
            updated_at=ensure_utc(datetime.fromisoformat(data["updated_at"])),
        )


@dataclass
class ZoneAssignment:
    """The zones a single user is assigned."""

    user_id: str
    zone_ids: List[str]
    assigned_by: str
    assigned_at: datetime
    user_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "user_name": self.user_name,
            "zone_ids": list(self.zone_ids),
            "assigned_by": self.assigned_by,
            "assigned_at": self.assigned_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ZoneAssignment":
        return cls(
            user_id=data["user_id"],
            user_name=data.get("user_name", ""),
            zone_ids=list(data.get("zone_ids", [])),
            assigned_by=data.get("assigned_by", ""),
            assigned_at=ensure_utc(datetime.fromisoformat(data["assigned_at"])),
        )


@dataclass
class ZoneStats:
    """Registry-wide zone statistics."""

    total_zones: int
    total_regions: int
    zones_by_region_count: List[Dict[str, Any]] = field(default_factory=list)
    assignment_count: int = 0


class ZoneRegistry:
    """Service for zone and zone assignment management."""

    def __init__(
        self,
        store: RecordStore,
        audit: AuditTrail,
        clock: Optional[Clock] = None,
        regions: Optional[Iterable[str]] = None,
    ):
        self.store = store
        self.audit = audit
        self.clock = clock or SystemClock()
        self.regions = list(regions) if regions is not None else list(INDIAN_STATES)

    # ==================== Zones ====================

    def list_zones(self) -> List[Zone]:
        """All zones in creation order."""
        return [Zone.from_dict(r) for r in self.store.load_all(ZONES)]

    def get_zone(self, zone_id: str) -> Optional[Zone]:
        record = self.store.get(ZONES, zone_id)
        return Zone.from_dict(record) if record else None

    def _require_zone(self, zone_id: str) -> Zone:
        zone = self.get_zone(zone_id)
        if zone is None:
            raise NotFoundError(f"Zone not found: {zone_id}", entity="zone", entity_id=zone_id)
        return zone

    def create_zone(
        self,
        name: str,
        description: str,
        regions: Iterable[str],
        color: str,
        admin,
    ) -> Zone:
        """Create a new zone."""
        ensure_role(admin, ZONE_ADMIN_ROLES, "Create zone", audit=self.audit)
        name = require_text(name, "name")
        region_list = validate_regions(regions, self.regions)

        now = self.clock.now()
        zone = Zone(
            id=f"zone_{uuid4().hex[:12]}",
            name=name,
            description=description or "",
            color=color or "",
            regions=region_list,
            created_by=admin.id,
            created_at=now,
            updated_at=now,
        )

        with self.store.locked():
            self.store.upsert(ZONES, zone.to_dict())

        logger.info(f"Zone created: {zone.name} ({zone.id}) with {len(region_list)} regions")
        self.audit.record(
            admin,
            AuditEventType.ZONE_CREATED,
            f"Created region zone: {zone.name}",
            severity=AuditSeverity.INFO,
            details={"zone_id": zone.id, "regions": region_list, "color": zone.color},
        )
        return zone

    def update_zone(self, zone_id: str, updates: Mapping[str, Any], admin) -> Zone:
        """Apply a partial update to a zone."""
        ensure_role(admin, ZONE_ADMIN_ROLES, "Update zone", audit=self.audit)

        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot update zone fields: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        clean: Dict[str, Any] = {}
        if "name" in updates:
            clean["name"] = require_text(updates["name"], "name")
        if "regions" in updates:
            clean["regions"] = validate_regions(updates["regions"], self.regions)
        if "description" in updates:
            clean["description"] = updates["description"] or ""
        if "color" in updates:
            clean["color"] = updates["color"] or ""

        with self.store.locked():
            zone = self._require_zone(zone_id)
            for key, value in clean.items():
                setattr(zone, key, value)
            zone.updated_at = self.clock.now()
            self.store.upsert(ZONES, zone.to_dict())

        logger.info(f"Zone updated: {zone.name} ({zone.id}) fields={sorted(clean)}")
        self.audit.record(
            admin,
            AuditEventType.ZONE_UPDATED,
            f"Updated region zone: {zone.name}",
            severity=AuditSeverity.INFO,
            details={"zone_id": zone.id, "updates": clean},
        )
        return zone

    def delete_zone(self, zone_id: str, admin) -> bool:
        """Delete a zone and remove it from every assignment."""
        ensure_role(admin, ZONE_ADMIN_ROLES, "Delete zone", audit=self.audit)

        with self.store.locked():
            zone = self._require_zone(zone_id)
            self.store.delete(ZONES, zone_id)

            affected: List[str] = []
            for record in self.store.load_all(ZONE_ASSIGNMENTS):
                assignment = ZoneAssignment.from_dict(record)
                if zone_id in assignment.zone_ids:
                    assignment.zone_ids = [z for z in assignment.zone_ids if z != zone_id]
                    self.store.upsert(ZONE_ASSIGNMENTS, assignment.to_dict())
                    affected.append(assignment.user_id)

        logger.warning(
            f"Zone deleted: {zone.name} ({zone.id}); removed from {len(affected)} assignments"
        )
        self.audit.record(
            admin,
            AuditEventType.ZONE_DELETED,
            f"Deleted region zone: {zone.name}",
            severity=AuditSeverity.WARNING,
            details={
                "zone_id": zone.id,
                "regions": zone.regions,
                "affected_user_ids": affected,
            },
        )
        return True

    def initialize_default_zones(self, admin) -> List[Zone]:
        """Seed the default zones when the registry is empty."""
        if self.store.count(ZONES) > 0:
            return []

        created = []
        for default in DEFAULT_ZONES:
            regions = [r for r in default["regions"] if r in self.regions]
            if not regions:
                continue
            created.append(
                self.create_zone(
                    default["name"], default["description"], regions, default["color"], admin
                )
            )
        return created

    # ==================== Assignments ====================

    def assign_zones(self, user, zone_ids: Iterable[str], admin) -> ZoneAssignment:
        """Replace the user's zone assignment."""
        ensure_role(admin, ZONE_ADMIN_ROLES, "Assign zones", audit=self.audit)

        if isinstance(zone_ids, str):
            raise ValidationError("zone_ids must be a list of zone ids", field="zone_ids")

        ids: List[str] = []
        for zone_id in zone_ids:
            if zone_id not in ids:
                ids.append(zone_id)

        with self.store.locked():
            zones = [self._require_zone(zone_id) for zone_id in ids]
            previous = self.get_assignment(user.id)
            assignment = ZoneAssignment(
                user_id=user.id,
                user_name=getattr(user, "name", ""),
                zone_ids=ids,
                assigned_by=admin.id,
                assigned_at=self.clock.now(),
            )
            self.store.upsert(ZONE_ASSIGNMENTS, assignment.to_dict())

        zone_names = ", ".join(z.name for z in zones)
        logger.info(f"Zones assigned to {user.id}: {zone_names or '(none)'}")
        self.audit.record(
            admin,
            AuditEventType.ZONES_ASSIGNED,
            f"Assigned zones to {assignment.user_name or user.id}: {zone_names}",
            severity=AuditSeverity.INFO,
            details={
                "user_id": user.id,
                "zone_ids": ids,
                "zone_names": [z.name for z in zones],
                "previous_zone_ids": previous.zone_ids if previous else [],
            },
        )
        return assignment

    def remove_assignment(self, user_id: str, admin) -> bool:
        """Remove a user's zone assignment entirely."""
        ensure_role(admin, ZONE_ADMIN_ROLES, "Remove zone assignment", audit=self.audit)

        with self.store.locked():
            removed = self.store.delete(ZONE_ASSIGNMENTS, user_id)

        if not removed:
            return False

        logger.warning(f"Zone assignment removed for {user_id}")
        self.audit.record(
            admin,
            AuditEventType.ZONE_ASSIGNMENT_REMOVED,
            "Removed zone assignment from user",
            severity=AuditSeverity.WARNING,
            details={"user_id": user_id},
        )
        return True

    def get_assignment(self, user_id: str) -> Optional[ZoneAssignment]:
        record = self.store.get(ZONE_ASSIGNMENTS, user_id)
        return ZoneAssignment.from_dict(record) if record else None

    def list_assignments(self) -> List[ZoneAssignment]:
        return [ZoneAssignment.from_dict(r) for r in self.store.load_all(ZONE_ASSIGNMENTS)]

    def regions_for_user(self, user_id: str) -> Set[str]:
        """Union of regions across the user's assigned zones."""
        with self.store.locked():
            assignment = self.get_assignment(user_id)
            if assignment is None:
                return set()

            regions: Set[str] = set()
            for zone_id in assignment.zone_ids:
                zone = self.get_zone(zone_id)
                if zone is None:
                    continue
                regions.update(zone.regions)
            return regions

    # ==================== Stats ====================

    def zone_stats(self) -> ZoneStats:
        with self.store.locked():
            zones = self.list_zones()
            assignment_count = self.store.count(ZONE_ASSIGNMENTS)

        all_regions: Set[str] = set()
        for zone in zones:
            all_regions.update(zone.regions)

        ranked = sorted(zones, key=lambda z: len(z.regions), reverse=True)
        return ZoneStats(
            total_zones=len(zones),
            total_regions=len(all_regions),
            zones_by_region_count=[
                {"zone_id": z.id, "name": z.name, "region_count": len(z.regions)}
                for z in ranked
            ],
            assignment_count=assignment_count,
        )
