"""
Analytics Routes

Region usage analytics derived from the audit trail.
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from geoaccess.api.access.audit import AuditEventType
from geoaccess.api.access.rbac import Permission
from geoaccess.api.analytics.schemas import (
    AnalyticsSummaryResponse,
    HeatmapCellResponse,
    RegionUsageResponse,
    SuccessRateResponse,
    TimelinePointResponse,
    UserRegionActivityResponse,
)
from geoaccess.api.dependencies import get_engine, require_permission
from geoaccess.api.engine import AuthorizationEngine
from geoaccess.api.identity import User
from geoaccess.core.exceptions import NotFoundError


router = APIRouter()

read_analytics = require_permission(Permission.ANALYTICS_READ)


@router.get(
    "/summary",
    response_model=AnalyticsSummaryResponse,
    summary="Analytics summary",
)
def analytics_summary(
    user: User = Depends(read_analytics),
    engine: AuthorizationEngine = Depends(get_engine),
) -> AnalyticsSummaryResponse:
    return AnalyticsSummaryResponse.model_validate(engine.analytics.summary())


@router.get(
    "/regions",
    response_model=List[RegionUsageResponse],
    summary="Usage per region",
)
def region_usage_stats(
    user: User = Depends(read_analytics),
    engine: AuthorizationEngine = Depends(get_engine),
) -> List[RegionUsageResponse]:
    return [RegionUsageResponse.model_validate(s) for s in engine.analytics.region_usage_stats()]


@router.get(
    "/regions/top-accessed",
    response_model=List[RegionUsageResponse],
    summary="Most accessed regions",
)
def top_accessed_regions(
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(read_analytics),
    engine: AuthorizationEngine = Depends(get_engine),
) -> List[RegionUsageResponse]:
    return [
        RegionUsageResponse.model_validate(s)
        for s in engine.analytics.top_accessed_regions(limit)
    ]


@router.get(
    "/regions/top-denied",
    response_model=List[RegionUsageResponse],
    summary="Most denied regions",
)
def top_denied_regions(
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(read_analytics),
    engine: AuthorizationEngine = Depends(get_engine),
) -> List[RegionUsageResponse]:
    return [
        RegionUsageResponse.model_validate(s)
        for s in engine.analytics.top_denied_regions(limit)
    ]


@router.get(
    "/regions/{region}",
    response_model=RegionUsageResponse,
    summary="Usage of one region",
)
def region_usage(
    region: str,
    user: User = Depends(read_analytics),
    engine: AuthorizationEngine = Depends(get_engine),
) -> RegionUsageResponse:
    stats = engine.analytics.region_usage(region)
    if stats is None:
        raise NotFoundError(f"No access recorded for region: {region}", entity="region", entity_id=region)
    return RegionUsageResponse.model_validate(stats)


@router.get(
    "/users",
    response_model=List[UserRegionActivityResponse],
    summary="Region activity per user",
)
def user_region_activity(
    user: User = Depends(read_analytics),
    engine: AuthorizationEngine = Depends(get_engine),
) -> List[UserRegionActivityResponse]:
    return [
        UserRegionActivityResponse.model_validate(a)
        for a in engine.analytics.user_region_activity()
    ]


@router.get(
    "/heatmap",
    response_model=List[HeatmapCellResponse],
    summary="Region heatmap",
)
def heatmap(
    user: User = Depends(read_analytics),
    engine: AuthorizationEngine = Depends(get_engine),
) -> List[HeatmapCellResponse]:
    return [HeatmapCellResponse.model_validate(c) for c in engine.analytics.heatmap()]


@router.get(
    "/timeline",
    response_model=List[TimelinePointResponse],
    summary="Daily access timeline",
)
def activity_timeline(
    days_back: int = Query(30, ge=1, le=365),
    user: User = Depends(read_analytics),
    engine: AuthorizationEngine = Depends(get_engine),
) -> List[TimelinePointResponse]:
    return [
        TimelinePointResponse.model_validate(p)
        for p in engine.analytics.activity_timeline(days_back)
    ]


@router.get(
    "/success-rates",
    response_model=List[SuccessRateResponse],
    summary="Access success rate per region",
)
def success_rates(
    user: User = Depends(read_analytics),
    engine: AuthorizationEngine = Depends(get_engine),
) -> List[SuccessRateResponse]:
    return [SuccessRateResponse(**r) for r in engine.analytics.success_rates()]


@router.get(
    "/export",
    summary="Export region analytics as CSV",
)
def export_analytics(
    user: User = Depends(require_permission(Permission.ANALYTICS_EXPORT)),
    engine: AuthorizationEngine = Depends(get_engine),
) -> PlainTextResponse:
    content = engine.analytics.export_csv()
    engine.audit.record(
        user,
        AuditEventType.DATA_EXPORTED,
        "Exported region analytics as CSV",
        details={"format": "csv"},
    )
    return PlainTextResponse(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="region_analytics.csv"'},
    )
