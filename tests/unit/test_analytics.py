"""
Tests for GEOACCESS Region Analytics
====================================

Tests usage statistics, heatmap intensity, the timeline and CSV export.
"""

import csv
import io

import pytest

from geoaccess.api.access.audit import AuditEventType
from geoaccess.api.analytics.service import CSV_HEADERS


def grant_access(audit, user, region, tool=None):
    return audit.record(user, AuditEventType.REGION_ACCESS_GRANTED, f"Accessed {region}", region=region, tool_name=tool)


def deny_access(audit, user, region):
    return audit.record(
        user, AuditEventType.REGION_ACCESS_DENIED, f"Denied {region}", region=region, success=False
    )


@pytest.fixture
def activity(audit, basic_user, technician_user, clock):
    """Goa busiest, Kerala quieter, one Assam denial."""
    for _ in range(4):
        grant_access(audit, basic_user, "Goa", tool="measure")
    grant_access(audit, technician_user, "Goa")
    deny_access(audit, technician_user, "Goa")
    clock.advance(days=1)
    grant_access(audit, technician_user, "Kerala")
    grant_access(audit, technician_user, "Kerala")
    deny_access(audit, basic_user, "Assam")
    # Non-access events are ignored
    audit.record(basic_user, AuditEventType.MAP_SEARCHED, "search", region="Goa")
    return audit


class TestRegionUsage:
    """Tests for per-region statistics."""

    def test_region_usage_stats(self, activity, analytics, basic_user):
        goa = analytics.region_usage("Goa")

        assert goa.total_accesses == 6
        assert goa.successful_accesses == 5
        assert goa.denied_accesses == 1
        assert goa.unique_users == 2
        assert goa.tools_used == {"measure": 4}
        assert goa.most_active_user.user_id == basic_user.id
        assert goa.most_active_user.access_count == 4

    def test_busiest_first(self, activity, analytics):
        assert [s.region for s in analytics.region_usage_stats()][0] == "Goa"
        assert [s.region for s in analytics.top_accessed_regions(1)] == ["Goa"]

    def test_unknown_region(self, activity, analytics):
        assert analytics.region_usage("Bihar") is None

    def test_success_rates(self, activity, analytics):
        rates = {r["region"]: r["success_rate"] for r in analytics.success_rates()}
        assert rates["Kerala"] == 100.0
        assert rates["Assam"] == 0.0
        assert rates["Goa"] == pytest.approx(5 / 6 * 100)

    def test_top_denied(self, activity, analytics):
        top = analytics.top_denied_regions(2)
        assert {s.region for s in top} == {"Goa", "Assam"}

    def test_empty_trail(self, analytics):
        assert analytics.region_usage_stats() == []
        assert analytics.heatmap() == []
        assert analytics.summary().most_active_region == "N/A"


class TestHeatmap:
    """Intensity is relative to the region with most successful accesses."""

    def test_intensity(self, activity, analytics):
        cells = {c.region: c for c in analytics.heatmap()}

        assert cells["Goa"].intensity == 100
        assert cells["Kerala"].intensity == 40
        assert cells["Assam"].intensity == 0

    def test_half_up_rounding(self, audit, analytics, basic_user):
        """1/8 = 12.5 rounds up to 13."""
        for _ in range(8):
            grant_access(audit, basic_user, "Goa")
        grant_access(audit, basic_user, "Kerala")

        cells = {c.region: c for c in analytics.heatmap()}
        assert cells["Kerala"].intensity == 13

    def test_only_denials(self, audit, analytics, basic_user):
        deny_access(audit, basic_user, "Goa")
        assert analytics.heatmap()[0].intensity == 0


class TestTimelineAndUsers:
    """Tests for the daily timeline and per-user activity."""

    def test_timeline_by_day(self, activity, analytics, clock):
        points = analytics.activity_timeline(days_back=30)

        days = sorted({p.date for p in points})
        assert len(days) == 2
        assert points[0].date == days[0]

        goa = [p for p in points if p.region == "Goa"][0]
        assert goa.access_count == 5
        assert goa.denial_count == 1

    def test_timeline_cutoff(self, activity, analytics, clock):
        clock.advance(days=40)
        assert analytics.activity_timeline(days_back=30) == []

    def test_user_region_activity(self, activity, analytics, technician_user):
        by_user = {a.user_id: a for a in analytics.user_region_activity()}
        tech = by_user[technician_user.id]

        assert tech.total_accesses == 4
        assert tech.denied_attempts == 1
        assert set(tech.regions_accessed) == {"Goa", "Kerala"}
        assert tech.most_accessed_region == "Kerala"

    def test_user_tool_usage(self, activity, analytics, basic_user, technician_user):
        by_user = {a.user_id: a for a in analytics.user_region_activity()}

        assert by_user[basic_user.id].tools_used == {"measure": 4}
        assert by_user[technician_user.id].tools_used == {}


class TestSummaryAndExport:
    """Tests for the summary and CSV export."""

    def test_summary(self, activity, analytics):
        summary = analytics.summary()

        assert summary.total_regions_accessed == 3
        assert summary.total_access_attempts == 9
        assert summary.total_successful_accesses == 7
        assert summary.total_denied_accesses == 2
        assert summary.average_accesses_per_region == 3.0
        assert summary.most_active_region == "Goa"
        assert summary.least_active_region == "Assam"

    def test_export_csv(self, activity, analytics, basic_user):
        rows = list(csv.reader(io.StringIO(analytics.export_csv())))

        assert rows[0] == CSV_HEADERS
        goa = [r for r in rows[1:] if r[0] == "Goa"][0]
        assert goa[1] == "6"
        assert goa[5] == "83.33"
        assert goa[6] == basic_user.name
