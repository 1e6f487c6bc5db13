"""
Access & Audit Routes

Authorization checks for the calling user, and the audit trail.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, Response

from geoaccess.api.access.audit import AuditEventType, AuditFilter, AuditSeverity
from geoaccess.api.access.rbac import Permission
from geoaccess.api.access.schemas import (
    AccessDecisionResponse,
    AccessibleRegionsResponse,
    AuditEntryResponse,
    AuditListResponse,
    AuditStatsResponse,
    EffectivePermissionsResponse,
    ManageCheckResponse,
    MessageResponse,
    RoleInfoResponse,
    UserActivitySummaryResponse,
)
from geoaccess.api.dependencies import (
    get_current_user,
    get_engine,
    get_target_user,
    require_permission,
)
from geoaccess.api.engine import AuthorizationEngine
from geoaccess.api.identity import User
from geoaccess.core.exceptions import ForbiddenError


router = APIRouter()
audit_router = APIRouter()


# ==================== Access Checks ====================


@router.get(
    "/check",
    response_model=AccessDecisionResponse,
    summary="Check region access",
)
def check_region_access(
    region: str = Query(..., description="Region to check"),
    tool_name: Optional[str] = Query(None, description="Tool the caller wants to use"),
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> AccessDecisionResponse:
    """
    Decide whether the caller may act in a region.

    The decision is recorded in the audit trail either way.
    """
    decision = engine.authorize_region(user, region, tool_name=tool_name)
    return AccessDecisionResponse.model_validate(decision)


@router.get(
    "/regions",
    response_model=AccessibleRegionsResponse,
    summary="List accessible regions",
)
def list_accessible_regions(
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> AccessibleRegionsResponse:
    """Effective regions of the caller right now."""
    regions = engine.resolver.accessible_regions(user)
    return AccessibleRegionsResponse(
        user_id=user.id,
        role=user.role.value,
        regions=regions,
        count=len(regions),
    )


@router.get(
    "/permissions",
    response_model=EffectivePermissionsResponse,
    summary="List effective permissions",
)
def list_effective_permissions(
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> EffectivePermissionsResponse:
    return EffectivePermissionsResponse(
        user_id=user.id,
        role=RoleInfoResponse(**engine.resolver.role_info(user.role)),
        permissions=sorted(engine.resolver.effective_permissions(user)),
    )


@router.get(
    "/roles/{role}",
    response_model=RoleInfoResponse,
    summary="Get role information",
)
def get_role(
    role: str,
    engine: AuthorizationEngine = Depends(get_engine),
) -> RoleInfoResponse:
    return RoleInfoResponse(**engine.resolver.role_info(role))


@router.get(
    "/manage/{user_id}",
    response_model=ManageCheckResponse,
    summary="Check whether the caller can manage a user",
)
def check_can_manage(
    target: User = Depends(get_target_user),
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> ManageCheckResponse:
    return ManageCheckResponse(
        manager_id=user.id,
        target_id=target.id,
        can_manage=engine.resolver.can_manage_user(user, target),
    )


@router.get(
    "/users/{user_id}/regions",
    response_model=AccessibleRegionsResponse,
    summary="List a managed user's accessible regions",
)
def list_user_regions(
    target: User = Depends(get_target_user),
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> AccessibleRegionsResponse:
    """Only available to callers who can manage the target user."""
    if user.id != target.id and not engine.resolver.can_manage_user(user, target):
        raise ForbiddenError("Cannot view regions of an unmanaged user", actor_id=user.id)

    regions = engine.resolver.accessible_regions(target)
    return AccessibleRegionsResponse(
        user_id=target.id,
        role=target.role.value,
        regions=regions,
        count=len(regions),
    )


# ==================== Audit Trail ====================


def _audit_filter(
    user_id: Optional[str] = Query(None),
    region: Optional[str] = Query(None),
    event_type: Optional[AuditEventType] = Query(None),
    severity: Optional[AuditSeverity] = Query(None),
    success: Optional[bool] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
) -> AuditFilter:
    return AuditFilter(
        user_id=user_id,
        region=region,
        event_type=event_type,
        severity=severity,
        success=success,
        start_date=start_date,
        end_date=end_date,
    )


@audit_router.get(
    "",
    response_model=AuditListResponse,
    summary="Query audit trail",
)
def query_audit(
    filter: AuditFilter = Depends(_audit_filter),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    user: User = Depends(require_permission(Permission.AUDIT_READ)),
    engine: AuthorizationEngine = Depends(get_engine),
) -> AuditListResponse:
    """Entries newest first."""
    entries = engine.audit.query(filter)
    return AuditListResponse(
        entries=[AuditEntryResponse.model_validate(e) for e in entries[offset:offset + limit]],
        total=len(entries),
    )


@audit_router.get(
    "/stats",
    response_model=AuditStatsResponse,
    summary="Audit statistics",
)
def audit_stats(
    filter: AuditFilter = Depends(_audit_filter),
    user: User = Depends(require_permission(Permission.AUDIT_READ)),
    engine: AuthorizationEngine = Depends(get_engine),
) -> AuditStatsResponse:
    return AuditStatsResponse.model_validate(engine.audit.stats(filter))


@audit_router.get(
    "/denials",
    response_model=AuditListResponse,
    summary="Recent region access denials",
)
def region_access_denials(
    region: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=1000),
    user: User = Depends(require_permission(Permission.AUDIT_READ)),
    engine: AuthorizationEngine = Depends(get_engine),
) -> AuditListResponse:
    denials = engine.audit.region_access_denials(region=region, limit=limit)
    return AuditListResponse(
        entries=[AuditEntryResponse.model_validate(e) for e in denials],
        total=len(denials),
    )


@audit_router.get(
    "/users/{user_id}/summary",
    response_model=UserActivitySummaryResponse,
    summary="User activity summary",
)
def user_activity_summary(
    user_id: str,
    user: User = Depends(require_permission(Permission.AUDIT_READ)),
    engine: AuthorizationEngine = Depends(get_engine),
) -> UserActivitySummaryResponse:
    return UserActivitySummaryResponse.model_validate(engine.audit.user_activity_summary(user_id))


@audit_router.get(
    "/export",
    summary="Export audit trail",
)
def export_audit(
    format: str = Query("json", pattern="^(json|csv)$"),
    filter: AuditFilter = Depends(_audit_filter),
    user: User = Depends(require_permission(Permission.AUDIT_READ)),
    engine: AuthorizationEngine = Depends(get_engine),
) -> Response:
    """JSON (with integrity hash) or CSV download."""
    if format == "csv":
        content = engine.audit.export_csv(filter)
        media_type = "text/csv"
    else:
        content = engine.audit.export_json(filter)
        media_type = "application/json"

    engine.audit.record(
        user,
        AuditEventType.DATA_EXPORTED,
        f"Exported audit trail as {format.upper()}",
        details={"format": format},
    )
    return PlainTextResponse(
        content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="audit_logs.{format}"'},
    )


@audit_router.delete(
    "",
    response_model=MessageResponse,
    summary="Clear audit trail",
)
def clear_audit(
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> MessageResponse:
    """Admin only; a record of the clear remains."""
    engine.audit.clear(user)
    return MessageResponse(message="Audit log cleared")

