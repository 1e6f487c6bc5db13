"""
Zone Schemas

Pydantic models for zones and zone assignments.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ==================== Zones ====================


class ZoneCreateRequest(BaseModel):
    """Request to create a zone."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    regions: List[str] = Field(..., min_length=1)
    color: str = Field("#3B82F6", max_length=20)


class ZoneUpdateRequest(BaseModel):
    """Partial zone update; only fields that are sent are changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    regions: Optional[List[str]] = None
    color: Optional[str] = Field(None, max_length=20)


class ZoneResponse(BaseModel):
    id: str
    name: str
    description: str
    color: str
    regions: List[str]
    created_by: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ZoneStatsResponse(BaseModel):
    total_zones: int
    total_regions: int
    zones_by_region_count: List[Dict[str, Any]]
    assignment_count: int

    model_config = ConfigDict(from_attributes=True)


# ==================== Assignments ====================


class ZoneAssignmentRequest(BaseModel):
    """Replace a user's zones with this list."""

    zone_ids: List[str]


class ZoneAssignmentResponse(BaseModel):
    user_id: str
    user_name: str = ""
    zone_ids: List[str]
    assigned_by: str
    assigned_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserZoneRegionsResponse(BaseModel):
    user_id: str
    regions: List[str]
