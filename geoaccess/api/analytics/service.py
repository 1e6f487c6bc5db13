"""
Region Usage Analytics

Derived, recomputable views over the audit trail's region access
decisions. Holds no state of its own.
"""

import csv
import io
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from geoaccess.api.access.audit import AuditEntry, AuditEventType, AuditTrail
from geoaccess.core.clock import Clock, SystemClock


ACCESS_EVENTS = (AuditEventType.REGION_ACCESS_GRANTED, AuditEventType.REGION_ACCESS_DENIED)


@dataclass
class MostActiveUser:
    user_id: str
    user_name: str
    access_count: int


@dataclass
class RegionUsageStats:
    region: str
    total_accesses: int = 0
    successful_accesses: int = 0
    denied_accesses: int = 0
    unique_users: int = 0
    tools_used: Dict[str, int] = field(default_factory=dict)
    last_accessed: Optional[datetime] = None
    most_active_user: Optional[MostActiveUser] = None

    @property
    def success_rate(self) -> float:
        if not self.total_accesses:
            return 0.0
        return self.successful_accesses / self.total_accesses * 100


@dataclass
class UserRegionActivity:
    user_id: str
    user_name: str
    user_email: str
    regions_accessed: List[str] = field(default_factory=list)
    total_accesses: int = 0
    denied_attempts: int = 0
    most_accessed_region: str = ""
    tools_used: Dict[str, int] = field(default_factory=dict)
    last_active: Optional[datetime] = None


@dataclass
class HeatmapCell:
    region: str
    intensity: int  # 0-100
    access_count: int
    unique_users: int


@dataclass
class TimelinePoint:
    date: str
    region: str
    access_count: int = 0
    denial_count: int = 0


@dataclass
class AnalyticsSummary:
    total_regions_accessed: int = 0
    total_access_attempts: int = 0
    total_successful_accesses: int = 0
    total_denied_accesses: int = 0
    average_accesses_per_region: float = 0.0
    most_active_region: str = "N/A"
    least_active_region: str = "N/A"
    overall_success_rate: float = 0.0


CSV_HEADERS = [
    "Region",
    "Total Accesses",
    "Successful Accesses",
    "Denied Accesses",
    "Unique Users",
    "Success Rate (%)",
    "Most Active User",
    "Last Accessed",
]


def _intensity(count: int, maximum: int) -> int:
    # Half-up rounding
    if maximum <= 0:
        return 0
    return int(math.floor(count / maximum * 100 + 0.5))


class AnalyticsAggregator:
    """Read-only aggregation over REGION_ACCESS_GRANTED/DENIED entries."""

    def __init__(self, audit: AuditTrail, clock: Optional[Clock] = None):
        self.audit = audit
        self.clock = clock or SystemClock()

    def _access_entries(self) -> List[AuditEntry]:
        return [e for e in self.audit.query() if e.event_type in ACCESS_EVENTS and e.region]

    # ==================== Per region ====================

    def region_usage_stats(self) -> List[RegionUsageStats]:
        """Usage per region, busiest first."""
        stats: Dict[str, RegionUsageStats] = {}
        user_counts: Dict[str, Dict[str, List[Any]]] = {}

        for entry in self._access_entries():
            region_stats = stats.setdefault(entry.region, RegionUsageStats(region=entry.region))
            region_stats.total_accesses += 1
            if entry.event_type == AuditEventType.REGION_ACCESS_GRANTED:
                region_stats.successful_accesses += 1
            else:
                region_stats.denied_accesses += 1

            if entry.tool_name:
                tools = region_stats.tools_used
                tools[entry.tool_name] = tools.get(entry.tool_name, 0) + 1

            if region_stats.last_accessed is None or entry.timestamp > region_stats.last_accessed:
                region_stats.last_accessed = entry.timestamp

            users = user_counts.setdefault(entry.region, {})
            counter = users.setdefault(entry.user_id, [entry.user_name, 0])
            counter[1] += 1

        for region, region_stats in stats.items():
            users = user_counts[region]
            region_stats.unique_users = len(users)
            best_id, best = None, 0
            for user_id, (_, count) in users.items():
                if count > best:
                    best_id, best = user_id, count
            if best_id is not None:
                region_stats.most_active_user = MostActiveUser(
                    user_id=best_id,
                    user_name=users[best_id][0],
                    access_count=best,
                )

        return sorted(stats.values(), key=lambda s: s.total_accesses, reverse=True)

    def region_usage(self, region: str) -> Optional[RegionUsageStats]:
        for stats in self.region_usage_stats():
            if stats.region == region:
                return stats
        return None

    def top_accessed_regions(self, limit: int = 10) -> List[RegionUsageStats]:
        return self.region_usage_stats()[:limit]

    def top_denied_regions(self, limit: int = 10) -> List[RegionUsageStats]:
        ranked = sorted(self.region_usage_stats(), key=lambda s: s.denied_accesses, reverse=True)
        return ranked[:limit]

    def success_rates(self) -> List[Dict[str, Any]]:
        rates = [
            {
                "region": s.region,
                "success_rate": s.success_rate,
                "total_attempts": s.total_accesses,
            }
            for s in self.region_usage_stats()
        ]
        return sorted(rates, key=lambda r: r["success_rate"], reverse=True)

    def heatmap(self) -> List[HeatmapCell]:
        """Intensity 0-100 relative to the region with most successful accesses."""
        usage = self.region_usage_stats()
        if not usage:
            return []

        maximum = max(s.successful_accesses for s in usage)
        return [
            HeatmapCell(
                region=s.region,
                intensity=_intensity(s.successful_accesses, maximum),
                access_count=s.successful_accesses,
                unique_users=s.unique_users,
            )
            for s in usage
        ]

    def activity_timeline(self, days_back: int = 30) -> List[TimelinePoint]:
        """Daily access and denial counts per region, oldest day first."""
        cutoff = self.clock.now() - timedelta(days=days_back)
        points: Dict[tuple, TimelinePoint] = {}

        for entry in self._access_entries():
            if entry.timestamp < cutoff:
                continue
            day = entry.timestamp.date().isoformat()
            point = points.setdefault((day, entry.region), TimelinePoint(date=day, region=entry.region))
            if entry.event_type == AuditEventType.REGION_ACCESS_GRANTED:
                point.access_count += 1
            else:
                point.denial_count += 1

        return sorted(points.values(), key=lambda p: p.date)

    # ==================== Per user ====================

    def user_region_activity(self) -> List[UserRegionActivity]:
        """Region activity per user, most active first."""
        activity: Dict[str, UserRegionActivity] = {}
        granted_counts: Dict[str, Dict[str, int]] = {}

        for entry in self._access_entries():
            item = activity.setdefault(
                entry.user_id,
                UserRegionActivity(
                    user_id=entry.user_id,
                    user_name=entry.user_name,
                    user_email=entry.user_email,
                ),
            )
            item.total_accesses += 1
            if entry.tool_name:
                item.tools_used[entry.tool_name] = item.tools_used.get(entry.tool_name, 0) + 1

            if entry.event_type == AuditEventType.REGION_ACCESS_GRANTED:
                if entry.region not in item.regions_accessed:
                    item.regions_accessed.append(entry.region)
                counts = granted_counts.setdefault(entry.user_id, {})
                counts[entry.region] = counts.get(entry.region, 0) + 1
            else:
                item.denied_attempts += 1

            if item.last_active is None or entry.timestamp > item.last_active:
                item.last_active = entry.timestamp

        for user_id, item in activity.items():
            best = 0
            for region, count in granted_counts.get(user_id, {}).items():
                if count > best:
                    item.most_accessed_region, best = region, count

        return sorted(activity.values(), key=lambda a: a.total_accesses, reverse=True)

    # ==================== Summary ====================

    def summary(self) -> AnalyticsSummary:
        usage = self.region_usage_stats()
        if not usage:
            return AnalyticsSummary()

        attempts = sum(s.total_accesses for s in usage)
        successful = sum(s.successful_accesses for s in usage)
        most_active = max(usage, key=lambda s: s.total_accesses)
        least_active = min(usage, key=lambda s: s.total_accesses)

        return AnalyticsSummary(
            total_regions_accessed=len(usage),
            total_access_attempts=attempts,
            total_successful_accesses=successful,
            total_denied_accesses=sum(s.denied_accesses for s in usage),
            average_accesses_per_region=attempts / len(usage),
            most_active_region=most_active.region,
            least_active_region=least_active.region,
            overall_success_rate=successful / attempts * 100 if attempts else 0.0,
        )

    def export_csv(self) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for s in self.region_usage_stats():
            writer.writerow([
                s.region,
                s.total_accesses,
                s.successful_accesses,
                s.denied_accesses,
                s.unique_users,
                f"{s.success_rate:.2f}",
                s.most_active_user.user_name if s.most_active_user else "N/A",
                s.last_accessed.isoformat() if s.last_accessed else "N/A",
            ])
        return buffer.getvalue()
