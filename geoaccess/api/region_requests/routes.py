"""
Region Request Routes

API endpoints for submitting and reviewing region access requests.
Approving a request records the decision only; access is granted
separately through zones or temporary access.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from geoaccess.api.access.rbac import REVIEWER_ROLES
from geoaccess.api.access.schemas import MessageResponse
from geoaccess.api.dependencies import get_current_user, get_engine, require_roles
from geoaccess.api.engine import AuthorizationEngine
from geoaccess.api.identity import User
from geoaccess.api.region_requests.schemas import (
    RegionRequestListResponse,
    RegionRequestResponse,
    RegionRequestReview,
    RegionRequestStatsResponse,
    RegionRequestSubmit,
)
from geoaccess.api.region_requests.service import RequestFilter, RequestStatus
from geoaccess.core.exceptions import NotFoundError


router = APIRouter()


def _list_response(requests) -> RegionRequestListResponse:
    return RegionRequestListResponse(
        requests=[RegionRequestResponse.model_validate(r) for r in requests],
        total=len(requests),
        pending=sum(1 for r in requests if r.is_pending),
    )


@router.post(
    "",
    response_model=RegionRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit region request",
)
def submit_request(
    data: RegionRequestSubmit,
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> RegionRequestResponse:
    request = engine.requests.submit(user, data.regions, data.reason)
    return RegionRequestResponse.model_validate(request)


@router.get(
    "",
    response_model=RegionRequestListResponse,
    summary="List region requests",
)
def list_requests(
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    user_id: Optional[str] = Query(None),
    region: Optional[str] = Query(None),
    reviewer: User = Depends(require_roles(REVIEWER_ROLES)),
    engine: AuthorizationEngine = Depends(get_engine),
) -> RegionRequestListResponse:
    """All requests, for reviewers."""
    requests = engine.requests.list_requests(
        RequestFilter(user_id=user_id, status=status_filter, region=region)
    )
    return _list_response(requests)


@router.get(
    "/mine",
    response_model=RegionRequestListResponse,
    summary="List my region requests",
)
def my_requests(
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> RegionRequestListResponse:
    return _list_response(engine.requests.user_requests(user.id))


@router.get(
    "/stats",
    response_model=RegionRequestStatsResponse,
    summary="Region request statistics",
)
def request_stats(
    reviewer: User = Depends(require_roles(REVIEWER_ROLES)),
    engine: AuthorizationEngine = Depends(get_engine),
) -> RegionRequestStatsResponse:
    return RegionRequestStatsResponse.model_validate(engine.requests.request_stats())


@router.get(
    "/{request_id}",
    response_model=RegionRequestResponse,
    summary="Get region request",
)
def get_request(
    request_id: str,
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> RegionRequestResponse:
    request = engine.requests.get(request_id)
    if request is None or (user.role not in REVIEWER_ROLES and request.user_id != user.id):
        raise NotFoundError(
            f"Region request not found: {request_id}",
            entity="access_request",
            entity_id=request_id,
        )
    return RegionRequestResponse.model_validate(request)


@router.post(
    "/{request_id}/approve",
    response_model=RegionRequestResponse,
    summary="Approve region request",
)
def approve_request(
    request_id: str,
    data: Optional[RegionRequestReview] = None,
    reviewer: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> RegionRequestResponse:
    request = engine.requests.approve(request_id, reviewer, data.notes if data else None)
    return RegionRequestResponse.model_validate(request)


@router.post(
    "/{request_id}/reject",
    response_model=RegionRequestResponse,
    summary="Reject region request",
)
def reject_request(
    request_id: str,
    data: Optional[RegionRequestReview] = None,
    reviewer: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> RegionRequestResponse:
    request = engine.requests.reject(request_id, reviewer, data.notes if data else None)
    return RegionRequestResponse.model_validate(request)


@router.post(
    "/{request_id}/cancel",
    response_model=RegionRequestResponse,
    summary="Cancel my region request",
)
def cancel_request(
    request_id: str,
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> RegionRequestResponse:
    request = engine.requests.cancel(request_id, user)
    return RegionRequestResponse.model_validate(request)


@router.delete(
    "/{request_id}",
    response_model=MessageResponse,
    summary="Delete region request",
)
def delete_request(
    request_id: str,
    user: User = Depends(get_current_user),
    engine: AuthorizationEngine = Depends(get_engine),
) -> MessageResponse:
    engine.requests.delete(request_id, user)
    return MessageResponse(message="Region request deleted")
