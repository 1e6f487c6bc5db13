"""
GEOACCESS - Audit Trail

Append-only, size-bounded log of every authorization-relevant event.
Every other component writes here; nothing writes back.

Entries are immutable once written, returned newest-first, and capped at
``max_entries``: inserting beyond the cap evicts the oldest entry.
"""

import csv
import hashlib
import io
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from geoaccess.api.access.rbac import Role, ensure_role
from geoaccess.api.db.store import RecordStore
from geoaccess.core.clock import Clock, SystemClock, ensure_utc
from geoaccess.core.constants import AUDIT_ENTRIES, MAX_AUDIT_LOGS, RECENT_ACTIVITY_LIMIT


logger = logging.getLogger(__name__)


# ============================================================
# Audit Event Types
# ============================================================


class AuditEventType(str, Enum):
    """Categories of auditable events."""

    # Region access decisions
    REGION_ACCESS_GRANTED = "REGION_ACCESS_GRANTED"
    REGION_ACCESS_DENIED = "REGION_ACCESS_DENIED"

    # Console activity
    GIS_TOOL_USED = "GIS_TOOL_USED"
    INFRASTRUCTURE_ADDED = "INFRASTRUCTURE_ADDED"
    INFRASTRUCTURE_UPDATED = "INFRASTRUCTURE_UPDATED"
    INFRASTRUCTURE_DELETED = "INFRASTRUCTURE_DELETED"
    REGION_ASSIGNED = "REGION_ASSIGNED"
    REGION_REVOKED = "REGION_REVOKED"
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    MAP_SEARCHED = "MAP_SEARCHED"
    BOOKMARK_CREATED = "BOOKMARK_CREATED"
    BOOKMARK_DELETED = "BOOKMARK_DELETED"
    DATA_EXPORTED = "DATA_EXPORTED"

    # Zones
    ZONE_CREATED = "ZONE_CREATED"
    ZONE_UPDATED = "ZONE_UPDATED"
    ZONE_DELETED = "ZONE_DELETED"
    ZONES_ASSIGNED = "ZONES_ASSIGNED"
    ZONE_ASSIGNMENT_REMOVED = "ZONE_ASSIGNMENT_REMOVED"

    # Temporary access
    TEMPORARY_ACCESS_GRANTED = "TEMPORARY_ACCESS_GRANTED"
    TEMPORARY_ACCESS_EXTENDED = "TEMPORARY_ACCESS_EXTENDED"
    TEMPORARY_ACCESS_REVOKED = "TEMPORARY_ACCESS_REVOKED"
    TEMPORARY_ACCESS_DELETED = "TEMPORARY_ACCESS_DELETED"

    # Region requests
    REGION_REQUEST_SUBMITTED = "REGION_REQUEST_SUBMITTED"
    REGION_REQUEST_APPROVED = "REGION_REQUEST_APPROVED"
    REGION_REQUEST_REJECTED = "REGION_REQUEST_REJECTED"
    REGION_REQUEST_CANCELLED = "REGION_REQUEST_CANCELLED"
    REGION_REQUEST_DELETED = "REGION_REQUEST_DELETED"

    # Refusals and maintenance
    ACTION_FORBIDDEN = "ACTION_FORBIDDEN"
    AUDIT_LOG_CLEARED = "AUDIT_LOG_CLEARED"


class AuditSeverity(str, Enum):
    """Severity level of audit event."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# ============================================================
# Audit Entry Structure
# ============================================================


@dataclass(frozen=True)
class AuditEntry:
    """Complete audit record."""

    id: str
    timestamp: datetime
    user_id: str
    user_name: str
    user_email: str
    user_role: str
    event_type: AuditEventType
    severity: AuditSeverity
    action: str
    details: Dict[str, Any] = field(default_factory=dict)
    success: bool = True
    region: Optional[str] = None
    tool_name: Optional[str] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "user_id": self.user_id,
            "user_name": self.user_name,
            "user_email": self.user_email,
            "user_role": self.user_role,
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "region": self.region,
            "tool_name": self.tool_name,
            "action": self.action,
            "details": self.details,
            "success": self.success,
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEntry":
        return cls(
            id=data["id"],
            timestamp=ensure_utc(datetime.fromisoformat(data["timestamp"])),
            user_id=data.get("user_id", "anonymous"),
            user_name=data.get("user_name", "Anonymous"),
            user_email=data.get("user_email", "unknown"),
            user_role=data.get("user_role", "Unknown"),
            event_type=AuditEventType(data["event_type"]),
            severity=AuditSeverity(data.get("severity", AuditSeverity.INFO.value)),
            action=data.get("action", ""),
            details=data.get("details") or {},
            success=data.get("success", True),
            region=data.get("region"),
            tool_name=data.get("tool_name"),
            error_message=data.get("error_message"),
        )

    def compute_hash(self) -> str:
        """Compute SHA256 hash for integrity verification."""
        content = f"{self.id}{self.timestamp.isoformat()}{self.user_id}{self.event_type.value}"
        return hashlib.sha256(content.encode()).hexdigest()


@dataclass
class AuditFilter:
    """Conjunctive filter; unset fields match everything."""

    user_id: Optional[str] = None
    region: Optional[str] = None
    event_type: Optional[AuditEventType] = None
    severity: Optional[AuditSeverity] = None
    success: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    def matches(self, entry: AuditEntry) -> bool:
        if self.user_id and entry.user_id != self.user_id:
            return False
        if self.region and entry.region != self.region:
            return False
        if self.event_type and entry.event_type != self.event_type:
            return False
        if self.severity and entry.severity != self.severity:
            return False
        if self.success is not None and entry.success != self.success:
            return False
        if self.start_date and entry.timestamp < ensure_utc(self.start_date):
            return False
        if self.end_date and entry.timestamp > ensure_utc(self.end_date):
            return False
        return True


@dataclass
class AuditStats:
    """Aggregate counts over (filtered) audit entries."""

    total_events: int
    successful_events: int
    failed_events: int
    events_by_type: Dict[str, int]
    events_by_region: Dict[str, int]
    events_by_user: Dict[str, int]
    recent_activity: List[AuditEntry]


@dataclass
class UserActivitySummary:
    """Everything one user did, according to the trail."""

    user_id: str
    total_actions: int
    regions_accessed: List[str]
    tools_used: List[str]
    recent_activity: List[AuditEntry]


CSV_HEADERS = [
    "Timestamp",
    "User Name",
    "User Email",
    "User Role",
    "Event Type",
    "Severity",
    "Region",
    "Tool Name",
    "Action",
    "Success",
    "Error Message",
]


# ============================================================
# Audit Trail
# ============================================================


class AuditTrail:
    """
    Central audit logging service.

    All audit entries flow through this class. ``record`` never fails the
    caller's business operation: a persistence failure is logged and
    swallowed.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Optional[Clock] = None,
        max_entries: int = MAX_AUDIT_LOGS,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.max_entries = max_entries

    # ==================== Write ====================

    def record(
        self,
        user,
        event_type: AuditEventType,
        action: str,
        severity: AuditSeverity = AuditSeverity.INFO,
        region: Optional[str] = None,
        tool_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        success: bool = True,
        error_message: Optional[str] = None,
    ) -> AuditEntry:
        """Record an audit entry."""
        entry = AuditEntry(
            id=f"audit_{uuid4().hex[:16]}",
            timestamp=self.clock.now(),
            user_id=getattr(user, "id", None) or "anonymous",
            user_name=getattr(user, "name", None) or "Anonymous",
            user_email=getattr(user, "email", None) or "unknown",
            user_role=user.role.value if user is not None else "Unknown",
            event_type=event_type,
            severity=severity,
            region=region,
            tool_name=tool_name,
            action=action,
            details=details or {},
            success=success,
            error_message=error_message,
        )

        logger.info(
            "AUDIT",
            extra={
                "audit_event": entry.to_dict(),
                "event_hash": entry.compute_hash(),
            },
        )

        try:
            with self.store.locked():
                self.store.upsert(AUDIT_ENTRIES, entry.to_dict())
                evicted = self.store.trim(AUDIT_ENTRIES, self.max_entries)
            if evicted:
                logger.debug(f"Evicted {evicted} oldest audit entries")
        except Exception:
            logger.exception(f"Failed to persist audit entry {entry.id} ({event_type.value})")

        return entry

    def record_forbidden(self, actor, action: str, message: str) -> AuditEntry:
        """Record a refused administrative action."""
        return self.record(
            actor,
            AuditEventType.ACTION_FORBIDDEN,
            f"Forbidden: {action}",
            severity=AuditSeverity.WARNING,
            success=False,
            error_message=message,
        )

    def clear(self, admin) -> AuditEntry:
        """Remove every entry (Admin only), leaving a record of the clear."""
        ensure_role(admin, {Role.ADMIN}, "Clear audit log", audit=self)

        with self.store.locked():
            removed = self.store.count(AUDIT_ENTRIES)
            self.store.save_all(AUDIT_ENTRIES, [])

        logger.warning(f"Audit log cleared by {admin.id} ({removed} entries)")
        return self.record(
            admin,
            AuditEventType.AUDIT_LOG_CLEARED,
            "Cleared audit log",
            severity=AuditSeverity.WARNING,
            details={"removed_entries": removed},
        )

    # ==================== Read ====================

    def _load(self) -> List[AuditEntry]:
        records = self.store.load_all(AUDIT_ENTRIES)
        return [AuditEntry.from_dict(r) for r in reversed(records)]

    def query(self, filter: Optional[AuditFilter] = None) -> List[AuditEntry]:
        """Entries matching the filter, newest first."""
        entries = self._load()
        if filter is None:
            return entries
        return [e for e in entries if filter.matches(e)]

    def get(self, entry_id: str) -> Optional[AuditEntry]:
        record = self.store.get(AUDIT_ENTRIES, entry_id)
        return AuditEntry.from_dict(record) if record else None

    def count(self) -> int:
        return self.store.count(AUDIT_ENTRIES)

    def stats(self, filter: Optional[AuditFilter] = None) -> AuditStats:
        """Aggregate counts by type, region and user."""
        entries = self.query(filter)

        events_by_type: Dict[str, int] = {}
        events_by_region: Dict[str, int] = {}
        events_by_user: Dict[str, int] = {}
        successful = 0

        for entry in entries:
            key = entry.event_type.value
            events_by_type[key] = events_by_type.get(key, 0) + 1

            if entry.region:
                events_by_region[entry.region] = events_by_region.get(entry.region, 0) + 1

            user_key = f"{entry.user_name} ({entry.user_email})"
            events_by_user[user_key] = events_by_user.get(user_key, 0) + 1

            if entry.success:
                successful += 1

        return AuditStats(
            total_events=len(entries),
            successful_events=successful,
            failed_events=len(entries) - successful,
            events_by_type=events_by_type,
            events_by_region=events_by_region,
            events_by_user=events_by_user,
            recent_activity=entries[:RECENT_ACTIVITY_LIMIT],
        )

    def region_access_denials(
        self, region: Optional[str] = None, limit: int = 20
    ) -> List[AuditEntry]:
        """Recent denied region access attempts."""
        denials = self.query(
            AuditFilter(
                event_type=AuditEventType.REGION_ACCESS_DENIED,
                success=False,
                region=region,
            )
        )
        return denials[:limit]

    def user_activity_summary(self, user_id: str) -> UserActivitySummary:
        """Regions and tools a user touched."""
        entries = self.query(AuditFilter(user_id=user_id))

        regions: List[str] = []
        tools: List[str] = []
        for entry in entries:
            if entry.region and entry.region not in regions:
                regions.append(entry.region)
            if entry.tool_name and entry.tool_name not in tools:
                tools.append(entry.tool_name)

        return UserActivitySummary(
            user_id=user_id,
            total_actions=len(entries),
            regions_accessed=regions,
            tools_used=tools,
            recent_activity=entries[:20],
        )

    # ==================== Export ====================

    def export_json(
        self, filter: Optional[AuditFilter] = None, include_hash: bool = True
    ) -> str:
        """Export entries as a JSON document."""
        entries = self.query(filter)
        export_data: Dict[str, Any] = {
            "export_timestamp": self.clock.now().isoformat(),
            "event_count": len(entries),
            "events": [e.to_dict() for e in entries],
        }
        if include_hash:
            content = json.dumps(export_data, sort_keys=True, default=str)
            export_data["integrity_hash"] = hashlib.sha256(content.encode()).hexdigest()

        return json.dumps(export_data, indent=2, default=str)

    def export_csv(self, filter: Optional[AuditFilter] = None) -> str:
        """Export entries as CSV with every cell quoted."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for entry in self.query(filter):
            writer.writerow([
                entry.timestamp.isoformat(),
                entry.user_name,
                entry.user_email,
                entry.user_role,
                entry.event_type.value,
                entry.severity.value,
                entry.region or "",
                entry.tool_name or "",
                entry.action,
                "Yes" if entry.success else "No",
                entry.error_message or "",
            ])
        return buffer.getvalue()
