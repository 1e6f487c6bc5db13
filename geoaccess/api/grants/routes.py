"""
Temporary Access Routes

API endpoints for granting, extending, revoking and listing temporary
region access. Listing all grants is limited to Admins and Managers;
any user can see their own active access.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from geoaccess.api.access.rbac import GRANTOR_ROLES, Role
from geoaccess.api.access.schemas import MessageResponse
from geoaccess.api.dependencies import get_current_user, get_engine, require_roles
from geoaccess.api.engine import AuthorizationEngine
from geoaccess.api.grants.schemas import (
    GrantCreateRequest,
    GrantExtendRequest,
    GrantListResponse,
    GrantResponse,
    GrantRevokeRequest,
    GrantStatsResponse,
    SweepResponse,
    TimeRemainingResponse,
)
from geoaccess.api.grants.service import GrantFilter, TemporaryGrant
from geoaccess.api.identity import User
from geoaccess.core.exceptions import NotFoundError


router = APIRouter()


def _to_response(engine: AuthorizationEngine, grant: TemporaryGrant) -> GrantResponse:
    return GrantResponse(
        **grant.to_dict(),
        status=grant.status_at(engine.clock.now()),
        time_remaining=TimeRemainingResponse.model_validate(engine.grants.time_remaining(grant)),
    )


def _list_response(engine: AuthorizationEngine, grants) -> GrantListResponse:
    return GrantListResponse(
        grants=[_to_response(engine, g) for g in grants],
        total=len(grants),
    )


# ==================== Queries ====================


@router.get(
    "",
    response_model=GrantListResponse,
    summary="List temporary access grants",
)
def list_grants(
    user_id: Optional[str] = Query(None),
    region: Optional[str] = Query(None),
    granted_by: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None, description="Currently valid grants only"),
    user: User = Depends(require_roles(GRANTOR_ROLES)),
    engine: AuthorizationEngine = Depends(get_engine),
) -> GrantListResponse:
    grants = engine.grants.list_grants(
        GrantFilter(user_id=user_id, region=region, granted_by=granted_by, is_active=is_active)
    )
    return _list_response(engine, grants)


@router.get(
    "/my-access",
    response_model=GrantListResponse,
    summary="List my active temporary access",
)
def my_access(
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> GrantListResponse:
    return _list_response(engine, engine.grants.list_active(user.id))


@router.get(
    "/expiring",
    response_model=GrantListResponse,
    summary="List grants expiring soon",
)
def expiring_grants(
    request: Request,
    days_ahead: Optional[int] = Query(None, ge=0, le=365),
    user: User = Depends(require_roles(GRANTOR_ROLES)),
    engine: AuthorizationEngine = Depends(get_engine),
) -> GrantListResponse:
    if days_ahead is None:
        days_ahead = request.app.state.settings.EXPIRING_SOON_DAYS
    grants = engine.grants.expiring_grants(days_ahead)
    return _list_response(engine, grants)


@router.get(
    "/stats",
    response_model=GrantStatsResponse,
    summary="Temporary access statistics",
)
def grant_stats(
    user: User = Depends(require_roles(GRANTOR_ROLES)),
    engine: AuthorizationEngine = Depends(get_engine),
) -> GrantStatsResponse:
    return GrantStatsResponse.model_validate(engine.grants.grant_stats())


@router.post(
    "/sweep",
    response_model=SweepResponse,
    summary="Deactivate expired grants now",
)
def sweep_expired(
    user: User = Depends(require_roles({Role.ADMIN})),
    engine: AuthorizationEngine = Depends(get_engine),
) -> SweepResponse:
    return SweepResponse(swept=engine.grants.sweep_expired())


@router.get(
    "/{grant_id}",
    response_model=GrantResponse,
    summary="Get grant",
)
def get_grant(
    grant_id: str,
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> GrantResponse:
    """Visible to Admins, Managers and the grantee."""
    grant = engine.grants.get(grant_id)
    if grant is None or (user.role not in GRANTOR_ROLES and grant.user_id != user.id):
        raise NotFoundError(
            f"Temporary access grant not found: {grant_id}",
            entity="temporary_grant",
            entity_id=grant_id,
        )
    return _to_response(engine, grant)


# ==================== Mutations ====================


@router.post(
    "",
    response_model=GrantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Grant temporary access",
)
def grant_access(
    data: GrantCreateRequest,
    grantor: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> GrantResponse:
    target = engine.identity.get_user(data.user_id)
    if target is None:
        raise NotFoundError(f"User not found: {data.user_id}", entity="user", entity_id=data.user_id)

    grant = engine.grants.grant(target, data.region, data.expires_at, data.reason, grantor)
    return _to_response(engine, grant)


@router.post(
    "/{grant_id}/revoke",
    response_model=GrantResponse,
    summary="Revoke temporary access",
)
def revoke_access(
    grant_id: str,
    data: Optional[GrantRevokeRequest] = None,
    revoker: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> GrantResponse:
    grant = engine.grants.revoke(grant_id, revoker, data.reason if data else None)
    return _to_response(engine, grant)


@router.post(
    "/{grant_id}/extend",
    response_model=GrantResponse,
    summary="Extend temporary access",
)
def extend_access(
    grant_id: str,
    data: GrantExtendRequest,
    extender: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> GrantResponse:
    grant = engine.grants.extend(grant_id, data.expires_at, extender)
    return _to_response(engine, grant)


@router.delete(
    "/{grant_id}",
    response_model=MessageResponse,
    summary="Delete grant record",
)
def delete_grant(
    grant_id: str,
    admin: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> MessageResponse:
    engine.grants.delete(grant_id, admin)
    return MessageResponse(message="Temporary access record deleted")
