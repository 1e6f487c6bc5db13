"""
Temporary Access Grants

Time-bounded, revocable access to a single region.

State machine:
    ACTIVE --revoke--> REVOKED
    ACTIVE --time passes expires_at--> EXPIRED  (lazy, observed on read)
    ACTIVE --extend--> ACTIVE

Validity is never stored. It is recomputed on every read from
``is_active``, ``revoked_at`` and ``expires_at`` against the clock.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Set
from uuid import uuid4

from geoaccess.api.access.audit import AuditEventType, AuditSeverity, AuditTrail
from geoaccess.api.access.rbac import GRANTOR_ROLES, Role, ensure_role
from geoaccess.api.db.store import RecordStore
from geoaccess.core.clock import Clock, SystemClock, ensure_utc
from geoaccess.core.constants import EXPIRING_SOON_DAYS, INDIAN_STATES, TEMPORARY_GRANTS
from geoaccess.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from geoaccess.core.validation import validate_region

logger = logging.getLogger(__name__)


class GrantStatus(str, Enum):
    """Derived display status of a grant."""

    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


def _parse_optional(value: Optional[str]) -> Optional[datetime]:
    return ensure_utc(datetime.fromisoformat(value)) if value else None


@dataclass
class TemporaryGrant:
    """Temporary access to one region for one user."""

    id: str
    user_id: str
    user_name: str
    region: str
    granted_by: str
    granted_at: datetime
    expires_at: datetime
    reason: str = ""
    is_active: bool = True
    granted_by_name: str = ""
    revoked_at: Optional[datetime] = None
    revoked_by: Optional[str] = None
    revoked_reason: Optional[str] = None

    def is_valid_at(self, at: datetime) -> bool:
        """Effective validity at ``at``; expiry is exclusive."""
        return self.is_active and self.revoked_at is None and ensure_utc(at) < self.expires_at

    def status_at(self, at: datetime) -> GrantStatus:
        if self.revoked_at is not None:
            return GrantStatus.REVOKED
        if self.is_valid_at(at):
            return GrantStatus.ACTIVE
        return GrantStatus.EXPIRED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "region": self.region,
            "granted_by": self.granted_by,
            "granted_by_name": self.granted_by_name,
            "granted_at": self.granted_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "reason": self.reason,
            "is_active": self.is_active,
            "revoked_at": self.revoked_at.isoformat() if self.revoked_at else None,
            "revoked_by": self.revoked_by,
            "revoked_reason": self.revoked_reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemporaryGrant":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            user_name=data.get("user_name", ""),
            region=data["region"],
            granted_by=data.get("granted_by", ""),
            granted_by_name=data.get("granted_by_name", ""),
            granted_at=ensure_utc(datetime.fromisoformat(data["granted_at"])),
            expires_at=ensure_utc(datetime.fromisoformat(data["expires_at"])),
            reason=data.get("reason", ""),
            is_active=data.get("is_active", True),
            revoked_at=_parse_optional(data.get("revoked_at")),
            revoked_by=data.get("revoked_by"),
            revoked_reason=data.get("revoked_reason"),
        )


@dataclass
class TimeRemaining:
    """Human-friendly countdown to a grant's expiry."""

    expired: bool
    display: str
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    total_seconds: int = 0

    @classmethod
    def from_seconds(cls, total: float) -> "TimeRemaining":
        total = int(total)
        if total <= 0:
            return cls(expired=True, display="Expired")

        days, rest = divmod(total, 86400)
        hours, rest = divmod(rest, 3600)
        minutes, secs = divmod(rest, 60)

        parts = []
        if days:
            parts.append(f"{days}d")
        if hours:
            parts.append(f"{hours}h")
        if minutes:
            parts.append(f"{minutes}m")
        # Seconds are noise once the countdown is measured in days
        if secs and not days:
            parts.append(f"{secs}s")

        return cls(
            expired=False,
            display=" ".join(parts) or "Just now",
            days=days,
            hours=hours,
            minutes=minutes,
            seconds=secs,
            total_seconds=total,
        )


@dataclass
class GrantFilter:
    """Conjunctive grant filter. ``is_active`` means currently valid."""

    user_id: Optional[str] = None
    region: Optional[str] = None
    granted_by: Optional[str] = None
    is_active: Optional[bool] = None


@dataclass
class GrantStats:
    total_grants: int = 0
    active_grants: int = 0
    expired_grants: int = 0
    revoked_grants: int = 0
    grants_by_region: Dict[str, int] = field(default_factory=dict)
    grants_by_user: Dict[str, int] = field(default_factory=dict)


class TemporaryGrantStore:
    """Service for temporary region access grants."""

    def __init__(
        self,
        store: RecordStore,
        audit: AuditTrail,
        clock: Optional[Clock] = None,
        regions: Optional[List[str]] = None,
    ):
        self.store = store
        self.audit = audit
        self.clock = clock or SystemClock()
        self.regions = list(regions) if regions is not None else list(INDIAN_STATES)

    # ==================== Lookup ====================

    def _all(self) -> List[TemporaryGrant]:
        return [TemporaryGrant.from_dict(r) for r in self.store.load_all(TEMPORARY_GRANTS)]

    def get(self, grant_id: str) -> Optional[TemporaryGrant]:
        record = self.store.get(TEMPORARY_GRANTS, grant_id)
        return TemporaryGrant.from_dict(record) if record else None

    def _require(self, grant_id: str) -> TemporaryGrant:
        grant = self.get(grant_id)
        if grant is None:
            raise NotFoundError(
                f"Temporary access grant not found: {grant_id}",
                entity="temporary_grant",
                entity_id=grant_id,
            )
        return grant

    def list_grants(self, filter: Optional[GrantFilter] = None) -> List[TemporaryGrant]:
        """Grants matching the filter, newest grant first."""
        now = self.clock.now()
        grants = self._all()
        if filter is not None:
            if filter.user_id:
                grants = [g for g in grants if g.user_id == filter.user_id]
            if filter.region:
                grants = [g for g in grants if g.region == filter.region]
            if filter.granted_by:
                grants = [g for g in grants if g.granted_by == filter.granted_by]
            if filter.is_active is not None:
                grants = [g for g in grants if g.is_valid_at(now) == filter.is_active]
        return sorted(grants, key=lambda g: g.granted_at, reverse=True)

    def list_active(self, user_id: str, at: Optional[datetime] = None) -> List[TemporaryGrant]:
        """Grants for the user that are valid at ``at`` (default now)."""
        at = ensure_utc(at) if at is not None else self.clock.now()
        return [g for g in self._all() if g.user_id == user_id and g.is_valid_at(at)]

    def has_temporary_access(self, user_id: str, region: str) -> bool:
        return any(g.region == region for g in self.list_active(user_id))

    def user_temporary_regions(self, user_id: str) -> Set[str]:
        return {g.region for g in self.list_active(user_id)}

    def expiring_grants(self, days_ahead: int = EXPIRING_SOON_DAYS) -> List[TemporaryGrant]:
        """Valid grants expiring within ``days_ahead`` days, soonest first."""
        now = self.clock.now()
        horizon = now + timedelta(days=days_ahead)
        expiring = [g for g in self._all() if g.is_valid_at(now) and g.expires_at <= horizon]
        return sorted(expiring, key=lambda g: g.expires_at)

    def time_remaining(self, grant: TemporaryGrant) -> TimeRemaining:
        if not grant.is_valid_at(self.clock.now()):
            return TimeRemaining(expired=True, display="Expired")
        return TimeRemaining.from_seconds((grant.expires_at - self.clock.now()).total_seconds())

    def grant_stats(self, filter: Optional[GrantFilter] = None) -> GrantStats:
        now = self.clock.now()
        stats = GrantStats()
        for grant in self.list_grants(filter):
            stats.total_grants += 1
            status = grant.status_at(now)
            if status == GrantStatus.ACTIVE:
                stats.active_grants += 1
            elif status == GrantStatus.REVOKED:
                stats.revoked_grants += 1
            else:
                stats.expired_grants += 1
            stats.grants_by_region[grant.region] = stats.grants_by_region.get(grant.region, 0) + 1
            user_key = grant.user_name or grant.user_id
            stats.grants_by_user[user_key] = stats.grants_by_user.get(user_key, 0) + 1
        return stats

    # ==================== Mutations ====================

    def grant(
        self,
        target_user,
        region: str,
        expires_at: datetime,
        reason: str,
        grantor,
    ) -> TemporaryGrant:
        """
        Grant temporary access to a region.

        Raises:
            ForbiddenError: grantor is not an Admin or Manager
            ValidationError: unknown region or expiry not in the future
            InvalidStateError: the user already holds a valid grant for the region
        """
        ensure_role(grantor, GRANTOR_ROLES, "Grant temporary access", audit=self.audit)
        region = validate_region(region, self.regions)
        expires_at = ensure_utc(expires_at)

        with self.store.locked():
            now = self.clock.now()
            if expires_at <= now:
                raise ValidationError("Expiration must be in the future", field="expires_at")

            if any(g.region == region for g in self.list_active(target_user.id, now)):
                raise InvalidStateError(
                    f"User already has active temporary access to {region}",
                    current_state=GrantStatus.ACTIVE.value,
                )

            grant = TemporaryGrant(
                id=f"grant_{uuid4().hex[:12]}",
                user_id=target_user.id,
                user_name=getattr(target_user, "name", ""),
                region=region,
                granted_by=grantor.id,
                granted_by_name=getattr(grantor, "name", ""),
                granted_at=now,
                expires_at=expires_at,
                reason=reason or "",
            )
            self.store.upsert(TEMPORARY_GRANTS, grant.to_dict())

        logger.info(
            f"Temporary access granted: {grant.user_id} -> {region} until "
            f"{expires_at.isoformat()} by {grantor.id}"
        )
        self.audit.record(
            grantor,
            AuditEventType.TEMPORARY_ACCESS_GRANTED,
            f"Granted temporary access to {region} for {grant.user_name or grant.user_id}",
            severity=AuditSeverity.INFO,
            region=region,
            details={
                "grant_id": grant.id,
                "user_id": grant.user_id,
                "expires_at": expires_at.isoformat(),
                "reason": grant.reason,
            },
        )
        return grant

    def revoke(self, grant_id: str, revoker, reason: Optional[str] = None) -> TemporaryGrant:
        """Revoke a currently valid grant."""
        ensure_role(revoker, GRANTOR_ROLES, "Revoke temporary access", audit=self.audit)

        with self.store.locked():
            grant = self._require(grant_id)
            now = self.clock.now()
            if not grant.is_valid_at(now):
                raise InvalidStateError(
                    f"Temporary access {grant_id} is not active",
                    current_state=grant.status_at(now).value,
                )

            grant.is_active = False
            grant.revoked_at = now
            grant.revoked_by = revoker.id
            grant.revoked_reason = reason
            self.store.upsert(TEMPORARY_GRANTS, grant.to_dict())

        logger.warning(f"Temporary access revoked: {grant.id} ({grant.region}) by {revoker.id}")
        self.audit.record(
            revoker,
            AuditEventType.TEMPORARY_ACCESS_REVOKED,
            f"Revoked temporary access to {grant.region} for {grant.user_name or grant.user_id}",
            severity=AuditSeverity.WARNING,
            region=grant.region,
            details={"grant_id": grant.id, "user_id": grant.user_id, "reason": reason},
        )
        return grant

    def extend(self, grant_id: str, new_expires_at: datetime, extender) -> TemporaryGrant:
        """Move the expiry of a currently valid grant."""
        ensure_role(extender, GRANTOR_ROLES, "Extend temporary access", audit=self.audit)
        new_expires_at = ensure_utc(new_expires_at)

        with self.store.locked():
            grant = self._require(grant_id)
            now = self.clock.now()
            if not grant.is_valid_at(now):
                raise InvalidStateError(
                    f"Temporary access {grant_id} is not active",
                    current_state=grant.status_at(now).value,
                )
            if new_expires_at <= now:
                raise ValidationError("New expiration must be in the future", field="expires_at")

            old_expires_at = grant.expires_at
            grant.expires_at = new_expires_at
            self.store.upsert(TEMPORARY_GRANTS, grant.to_dict())

        logger.info(
            f"Temporary access extended: {grant.id} "
            f"{old_expires_at.isoformat()} -> {new_expires_at.isoformat()}"
        )
        self.audit.record(
            extender,
            AuditEventType.TEMPORARY_ACCESS_EXTENDED,
            f"Extended temporary access to {grant.region} for {grant.user_name or grant.user_id}",
            severity=AuditSeverity.INFO,
            region=grant.region,
            details={
                "grant_id": grant.id,
                "user_id": grant.user_id,
                "old_expires_at": old_expires_at.isoformat(),
                "new_expires_at": new_expires_at.isoformat(),
            },
        )
        return grant

    def sweep_expired(self) -> int:
        """Deactivate every grant whose expiry has passed. Idempotent."""
        swept = 0
        with self.store.locked():
            now = self.clock.now()
            for grant in self._all():
                if grant.is_active and grant.revoked_at is None and now >= grant.expires_at:
                    grant.is_active = False
                    self.store.upsert(TEMPORARY_GRANTS, grant.to_dict())
                    swept += 1

        if swept:
            logger.info(f"Swept {swept} expired temporary access grants")
        return swept

    def delete(self, grant_id: str, admin) -> bool:
        """Permanently remove a grant record (Admin only)."""
        ensure_role(admin, {Role.ADMIN}, "Delete temporary access", audit=self.audit)

        with self.store.locked():
            grant = self._require(grant_id)
            self.audit.record(
                admin,
                AuditEventType.TEMPORARY_ACCESS_DELETED,
                f"Deleted temporary access record for {grant.user_name or grant.user_id}",
                severity=AuditSeverity.WARNING,
                region=grant.region,
                details={"grant_id": grant.id, "user_id": grant.user_id},
            )
            self.store.delete(TEMPORARY_GRANTS, grant_id)

        logger.warning(f"Temporary access record deleted: {grant_id} by {admin.id}")
        return True
