"""
Authorization Engine

Composition root: wires one store, one clock and one identity provider
into the audit trail, registries, workflow, resolver and analytics.
Every engine is an isolated instance; nothing here is global.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import Engine

from geoaccess.api.access.audit import AuditEventType, AuditSeverity, AuditTrail
from geoaccess.api.access.resolver import AccessDecision, PermissionResolver
from geoaccess.api.analytics.service import AnalyticsAggregator
from geoaccess.api.config import Settings, get_settings
from geoaccess.api.db.session import close_db, create_db_engine, create_session_factory, init_db
from geoaccess.api.db.store import InMemoryRecordStore, RecordStore, SqlRecordStore
from geoaccess.api.grants.service import TemporaryGrantStore
from geoaccess.api.identity import IdentityProvider, InMemoryIdentityProvider
from geoaccess.api.region_requests.service import AccessRequestWorkflow
from geoaccess.api.services.background_tasks import MonitorManager
from geoaccess.api.zones.service import ZoneRegistry
from geoaccess.core.clock import Clock, SystemClock
from geoaccess.core.constants import DEFAULT_MONITOR_INTERVAL_SECONDS, INDIAN_STATES, MAX_AUDIT_LOGS

logger = logging.getLogger(__name__)


class AuthorizationEngine:
    """All components of the region authorization engine."""

    def __init__(
        self,
        store: RecordStore,
        identity: IdentityProvider,
        clock: Optional[Clock] = None,
        regions: Optional[Iterable[str]] = None,
        max_audit_entries: int = MAX_AUDIT_LOGS,
        monitor_interval_seconds: float = DEFAULT_MONITOR_INTERVAL_SECONDS,
        db_engine: Optional[Engine] = None,
    ):
        self.store = store
        self.identity = identity
        self.clock = clock or SystemClock()
        self.regions = list(regions) if regions is not None else list(INDIAN_STATES)
        self._db_engine = db_engine

        self.audit = AuditTrail(store, self.clock, max_entries=max_audit_entries)
        self.zones = ZoneRegistry(store, self.audit, self.clock, self.regions)
        self.grants = TemporaryGrantStore(store, self.audit, self.clock, self.regions)
        self.requests = AccessRequestWorkflow(store, self.audit, self.clock, self.regions)
        self.resolver = PermissionResolver(
            self.zones, self.grants, identity, self.clock, self.regions
        )
        self.analytics = AnalyticsAggregator(self.audit, self.clock)
        self.monitors = MonitorManager(
            self.grants, self.resolver, identity, interval_seconds=monitor_interval_seconds
        )

    @classmethod
    def in_memory(
        cls,
        identity: Optional[IdentityProvider] = None,
        clock: Optional[Clock] = None,
        **kwargs,
    ) -> "AuthorizationEngine":
        """Engine over a fresh in-memory store."""
        return cls(
            InMemoryRecordStore(),
            identity if identity is not None else InMemoryIdentityProvider(),
            clock=clock,
            **kwargs,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        identity: Optional[IdentityProvider] = None,
        clock: Optional[Clock] = None,
    ) -> "AuthorizationEngine":
        """Engine over the SQL store configured by DATABASE_URL."""
        settings = settings or get_settings()
        db_engine = create_db_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
        init_db(db_engine)

        return cls(
            SqlRecordStore(create_session_factory(db_engine)),
            identity if identity is not None else InMemoryIdentityProvider(),
            clock=clock,
            regions=settings.REGIONS,
            max_audit_entries=settings.MAX_AUDIT_LOGS,
            monitor_interval_seconds=settings.MONITOR_INTERVAL_SECONDS,
            db_engine=db_engine,
        )

    def authorize_region(self, user, region: str, tool_name: Optional[str] = None) -> AccessDecision:
        """Check region access and record the decision in the audit trail."""
        decision = self.resolver.check_region_access(user, region)

        if decision.allowed:
            self.audit.record(
                user,
                AuditEventType.REGION_ACCESS_GRANTED,
                f"Accessed region {region}",
                severity=AuditSeverity.INFO,
                region=region,
                tool_name=tool_name,
                details={"source": decision.source},
            )
        else:
            self.audit.record(
                user,
                AuditEventType.REGION_ACCESS_DENIED,
                f"Denied access to region {region}",
                severity=AuditSeverity.ERROR if decision.error else AuditSeverity.WARNING,
                region=region,
                tool_name=tool_name,
                success=False,
                error_message=decision.error or "User does not have access to this region",
            )
        return decision

    async def close(self) -> None:
        """Stop monitors and release the database."""
        await self.monitors.stop_all()
        if self._db_engine is not None:
            close_db(self._db_engine)
            self._db_engine = None
