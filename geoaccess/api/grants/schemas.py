"""
Temporary Access Schemas

Pydantic models for temporary region access grants.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from geoaccess.api.grants.service import GrantStatus


class GrantCreateRequest(BaseModel):
    """Request to grant temporary access to one region."""

    user_id: str
    region: str
    expires_at: datetime
    reason: str = Field("", max_length=500)


class GrantRevokeRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class GrantExtendRequest(BaseModel):
    expires_at: datetime


class TimeRemainingResponse(BaseModel):
    expired: bool
    display: str
    days: int
    hours: int
    minutes: int
    seconds: int
    total_seconds: int

    model_config = ConfigDict(from_attributes=True)


class GrantResponse(BaseModel):
    """Grant with its derived status at response time."""

    id: str
    user_id: str
    user_name: str
    region: str
    granted_by: str
    granted_by_name: str = ""
    granted_at: datetime
    expires_at: datetime
    reason: str
    is_active: bool
    revoked_at: Optional[datetime] = None
    revoked_by: Optional[str] = None
    revoked_reason: Optional[str] = None
    status: GrantStatus
    time_remaining: TimeRemainingResponse


class GrantListResponse(BaseModel):
    grants: List[GrantResponse]
    total: int


class GrantStatsResponse(BaseModel):
    total_grants: int
    active_grants: int
    expired_grants: int
    revoked_grants: int
    grants_by_region: Dict[str, int]
    grants_by_user: Dict[str, int]

    model_config = ConfigDict(from_attributes=True)


class SweepResponse(BaseModel):
    swept: int
