"""
Zone Routes

API endpoints for region zones and zone assignments.
Reads are open to any authenticated user; every mutation is Admin-only
and enforced (and audited) by the registry.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from geoaccess.api.access.schemas import MessageResponse
from geoaccess.api.dependencies import get_current_user, get_engine, get_target_user
from geoaccess.api.engine import AuthorizationEngine
from geoaccess.api.identity import User
from geoaccess.api.zones.schemas import (
    UserZoneRegionsResponse,
    ZoneAssignmentRequest,
    ZoneAssignmentResponse,
    ZoneCreateRequest,
    ZoneResponse,
    ZoneStatsResponse,
    ZoneUpdateRequest,
)
from geoaccess.core.exceptions import NotFoundError


router = APIRouter()


# ==================== Assignments ====================


@router.get(
    "/assignments",
    response_model=List[ZoneAssignmentResponse],
    summary="List zone assignments",
)
def list_assignments(
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> List[ZoneAssignmentResponse]:
    return [ZoneAssignmentResponse.model_validate(a) for a in engine.zones.list_assignments()]


@router.get(
    "/assignments/{user_id}",
    response_model=ZoneAssignmentResponse,
    summary="Get a user's zone assignment",
)
def get_assignment(
    user_id: str,
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> ZoneAssignmentResponse:
    assignment = engine.zones.get_assignment(user_id)
    if assignment is None:
        raise NotFoundError(
            f"No zone assignment for user: {user_id}",
            entity="zone_assignment",
            entity_id=user_id,
        )
    return ZoneAssignmentResponse.model_validate(assignment)


@router.put(
    "/assignments/{user_id}",
    response_model=ZoneAssignmentResponse,
    summary="Assign zones to a user",
)
def assign_zones(
    data: ZoneAssignmentRequest,
    target: User = Depends(get_target_user),
    admin: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> ZoneAssignmentResponse:
    """Replaces any previous assignment."""
    assignment = engine.zones.assign_zones(target, data.zone_ids, admin)
    return ZoneAssignmentResponse.model_validate(assignment)


@router.delete(
    "/assignments/{user_id}",
    response_model=MessageResponse,
    summary="Remove a user's zone assignment",
)
def remove_assignment(
    user_id: str,
    admin: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> MessageResponse:
    if not engine.zones.remove_assignment(user_id, admin):
        raise NotFoundError(
            f"No zone assignment for user: {user_id}",
            entity="zone_assignment",
            entity_id=user_id,
        )
    return MessageResponse(message="Zone assignment removed")


@router.get(
    "/users/{user_id}/regions",
    response_model=UserZoneRegionsResponse,
    summary="Regions a user gets through zones",
)
def user_zone_regions(
    user_id: str,
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> UserZoneRegionsResponse:
    return UserZoneRegionsResponse(
        user_id=user_id,
        regions=sorted(engine.zones.regions_for_user(user_id)),
    )


# ==================== Zones ====================


@router.get(
    "",
    response_model=List[ZoneResponse],
    summary="List zones",
)
def list_zones(
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> List[ZoneResponse]:
    return [ZoneResponse.model_validate(z) for z in engine.zones.list_zones()]


@router.post(
    "",
    response_model=ZoneResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create zone",
)
def create_zone(
    data: ZoneCreateRequest,
    admin: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> ZoneResponse:
    zone = engine.zones.create_zone(
        data.name, data.description, data.regions, data.color, admin
    )
    return ZoneResponse.model_validate(zone)


@router.post(
    "/defaults",
    response_model=List[ZoneResponse],
    summary="Seed default zones",
)
def seed_default_zones(
    admin: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> List[ZoneResponse]:
    """Creates North/South/East/West/Central only when no zone exists yet."""
    return [ZoneResponse.model_validate(z) for z in engine.zones.initialize_default_zones(admin)]


@router.get(
    "/stats",
    response_model=ZoneStatsResponse,
    summary="Zone statistics",
)
def zone_stats(
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> ZoneStatsResponse:
    return ZoneStatsResponse.model_validate(engine.zones.zone_stats())


@router.get(
    "/{zone_id}",
    response_model=ZoneResponse,
    summary="Get zone",
)
def get_zone(
    zone_id: str,
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> ZoneResponse:
    zone = engine.zones.get_zone(zone_id)
    if zone is None:
        raise NotFoundError(f"Zone not found: {zone_id}", entity="zone", entity_id=zone_id)
    return ZoneResponse.model_validate(zone)


@router.patch(
    "/{zone_id}",
    response_model=ZoneResponse,
    summary="Update zone",
)
def update_zone(
    zone_id: str,
    data: ZoneUpdateRequest,
    admin: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> ZoneResponse:
    zone = engine.zones.update_zone(zone_id, data.model_dump(exclude_unset=True), admin)
    return ZoneResponse.model_validate(zone)


@router.delete(
    "/{zone_id}",
    response_model=MessageResponse,
    summary="Delete zone",
)
def delete_zone(
    zone_id: str,
    admin: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> MessageResponse:
    """Assignments that referenced the zone keep their other zones."""
    engine.zones.delete_zone(zone_id, admin)
    return MessageResponse(message="Zone deleted")
