"""
Background Region Access Monitors

The only asynchronous actors in the engine. Each monitor answers, every
tick: "Has anyone's access changed just because time passed?"

Responsibilities:
1. Deactivate temporary grants whose expiry has passed
2. Recompute a session user's effective regions
3. Notify listeners when that set changes

Ticks are idempotent. The store stays authoritative; monitors only
observe it, so stopping one never loses state.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

from geoaccess.api.access.resolver import PermissionResolver
from geoaccess.api.grants.service import TemporaryGrantStore
from geoaccess.api.identity import IdentityProvider
from geoaccess.core.constants import DEFAULT_MONITOR_INTERVAL_SECONDS
from geoaccess.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


@dataclass
class RegionChange:
    """
    Effective region set before and after a tick.

    ``regions_unavailable`` is set when the store could not be read; the
    current set is then empty until a later tick can check again.
    """
    user_id: str
    previous: Set[str]
    current: Set[str]
    detected_at: datetime
    regions_unavailable: bool = False

    @property
    def added(self) -> Set[str]:
        return self.current - self.previous

    @property
    def removed(self) -> Set[str]:
        return self.previous - self.current


RegionListener = Callable[[RegionChange], Union[None, Awaitable[None]]]


@dataclass
class WorkerStats:
    """Statistics for a background worker."""
    name: str
    started_at: datetime
    last_run_at: Optional[datetime] = None
    run_count: int = 0
    error_count: int = 0
    last_error: Optional[str] = None
    grants_swept: int = 0
    changes_detected: int = 0


class RegionAccessMonitor:
    """
    Periodic grant sweep plus, when bound to a user, effective-region
    change detection for that user's session.
    """

    def __init__(
        self,
        grant_store: TemporaryGrantStore,
        resolver: PermissionResolver,
        identity: IdentityProvider,
        user_id: Optional[str] = None,
        interval_seconds: float = DEFAULT_MONITOR_INTERVAL_SECONDS,
        listeners: Optional[List[RegionListener]] = None,
    ):
        self.grant_store = grant_store
        self.resolver = resolver
        self.identity = identity
        self.user_id = user_id
        self.interval = interval_seconds
        self._listeners: List[RegionListener] = list(listeners or [])
        self._regions: Optional[Set[str]] = None
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._start_lock = asyncio.Lock()
        self._stats = WorkerStats(
            name=f"region_monitor:{user_id}" if user_id else "grant_sweep",
            started_at=datetime.now(timezone.utc),
        )

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def current_regions(self) -> Optional[Set[str]]:
        """Last observed effective regions; None before the first tick."""
        return set(self._regions) if self._regions is not None else None

    def add_listener(self, listener: RegionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: RegionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def start(self) -> None:
        """
        Start the monitor.

        Session monitors take their baseline first; if that read fails the
        error propagates and the monitor stays stopped.
        """
        async with self._start_lock:
            if self._running:
                return

            if self.user_id:
                # Baseline so the first tick only reports real changes
                self._regions = await asyncio.to_thread(self._compute_regions)
            self._running = True
            self._stats.started_at = datetime.now(timezone.utc)
            self._task = asyncio.create_task(self._run_loop())
            logger.info(f"Region access monitor started ({self._stats.name}, every {self.interval}s)")

    async def stop(self) -> None:
        """Stop the monitor and wait for its task to finish."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info(f"Region access monitor stopped ({self._stats.name})")

    async def _run_loop(self) -> None:
        """Main worker loop."""
        while self._running:
            try:
                await asyncio.sleep(self.interval)
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Region monitor error ({self._stats.name}): {e}")
                self._stats.error_count += 1
                self._stats.last_error = str(e)

    def _compute_regions(self) -> Set[str]:
        user = self.identity.get_user(self.user_id)
        if user is None or not user.is_active:
            return set()
        return self.resolver.effective_regions(user)

    async def run_once(self) -> Optional[RegionChange]:
        """One tick: sweep, recompute, notify. Returns the change if any."""
        swept = await asyncio.to_thread(self.grant_store.sweep_expired)
        self._stats.grants_swept += swept

        change = None
        if self.user_id:
            unavailable = False
            try:
                current = await asyncio.to_thread(self._compute_regions)
            except PersistenceError as e:
                # Fail closed: no regions until the store answers again
                logger.warning(f"Could not check regions for {self.user_id}: {e}")
                self._stats.error_count += 1
                self._stats.last_error = str(e)
                current = set()
                unavailable = True
            if self._regions is not None and current != self._regions:
                change = RegionChange(
                    user_id=self.user_id,
                    previous=self._regions,
                    current=current,
                    detected_at=datetime.now(timezone.utc),
                    regions_unavailable=unavailable,
                )
            self._regions = current

        self._stats.run_count += 1
        self._stats.last_run_at = datetime.now(timezone.utc)

        if change is not None:
            self._stats.changes_detected += 1
            logger.info(
                f"Effective regions changed for {change.user_id}: "
                f"+{sorted(change.added)} -{sorted(change.removed)}"
            )
            await self._notify(change)
        return change

    async def _notify(self, change: RegionChange) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(change)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Region change listener failed for {change.user_id}: {e}")
                self._stats.error_count += 1
                self._stats.last_error = str(e)

    def get_stats(self) -> WorkerStats:
        """Get worker statistics."""
        return self._stats


class MonitorManager:
    """
    Owns the application-wide grant sweep and the per-session monitors.

    Provides unified start/stop and status monitoring.
    """

    def __init__(
        self,
        grant_store: TemporaryGrantStore,
        resolver: PermissionResolver,
        identity: IdentityProvider,
        interval_seconds: float = DEFAULT_MONITOR_INTERVAL_SECONDS,
    ):
        self.grant_store = grant_store
        self.resolver = resolver
        self.identity = identity
        self.interval = interval_seconds
        self.sweeper = RegionAccessMonitor(
            grant_store, resolver, identity, interval_seconds=interval_seconds
        )
        self._sessions: Dict[str, RegionAccessMonitor] = {}

    async def start_all(self) -> None:
        """Start the application-wide sweep."""
        await self.sweeper.start()

    async def start_session(
        self, user_id: str, listener: Optional[RegionListener] = None
    ) -> RegionAccessMonitor:
        """
        Start (or reuse) the monitor for one user's session.

        A monitor is registered only once it has started.
        """
        monitor = self._sessions.get(user_id)
        if monitor is None:
            monitor = RegionAccessMonitor(
                self.grant_store,
                self.resolver,
                self.identity,
                user_id=user_id,
                interval_seconds=self.interval,
            )
        if listener is not None:
            monitor.add_listener(listener)
        await monitor.start()

        registered = self._sessions.setdefault(user_id, monitor)
        if registered is not monitor:
            # A concurrent call registered this user first
            await monitor.stop()
            if listener is not None:
                registered.add_listener(listener)
        return registered

    async def stop_session(self, user_id: str) -> bool:
        monitor = self._sessions.pop(user_id, None)
        if monitor is None:
            return False
        await monitor.stop()
        return True

    def get_session(self, user_id: str) -> Optional[RegionAccessMonitor]:
        return self._sessions.get(user_id)

    async def stop_all(self) -> None:
        """Stop every monitor."""
        for user_id in list(self._sessions):
            await self.stop_session(user_id)
        await self.sweeper.stop()
        logger.info("All region access monitors stopped")

    def get_all_stats(self) -> Dict[str, Any]:
        """Get statistics for all monitors."""
        stats: Dict[str, Any] = {"grant_sweep": self.sweeper.get_stats()}
        for user_id, monitor in self._sessions.items():
            stats[f"session:{user_id}"] = monitor.get_stats()
        return stats
