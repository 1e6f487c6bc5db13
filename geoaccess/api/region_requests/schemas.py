"""
Region Request Schemas

Pydantic models for the region access request workflow.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from geoaccess.api.region_requests.service import RequestStatus


class RegionRequestSubmit(BaseModel):
    """Request access to one or more regions."""

    regions: List[str] = Field(..., min_length=1)
    reason: str = Field("", max_length=1000)


class RegionRequestReview(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)


class RegionRequestResponse(BaseModel):
    id: str
    user_id: str
    user_name: str
    user_email: str = ""
    user_role: str
    requested_regions: List[str]
    reason: str
    status: RequestStatus
    created_at: datetime
    updated_at: datetime
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RegionRequestListResponse(BaseModel):
    requests: List[RegionRequestResponse]
    total: int
    pending: int = 0


class RegionRequestStatsResponse(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
    cancelled: int
    requests_by_region: Dict[str, int]

    model_config = ConfigDict(from_attributes=True)
