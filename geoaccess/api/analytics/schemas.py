"""
Analytics Schemas

Pydantic models for region usage analytics.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class MostActiveUserResponse(BaseModel):
    user_id: str
    user_name: str
    access_count: int

    model_config = ConfigDict(from_attributes=True)


class RegionUsageResponse(BaseModel):
    """Usage of one region."""

    region: str
    total_accesses: int
    successful_accesses: int
    denied_accesses: int
    unique_users: int
    tools_used: Dict[str, int]
    last_accessed: Optional[datetime] = None
    most_active_user: Optional[MostActiveUserResponse] = None
    success_rate: float

    model_config = ConfigDict(from_attributes=True)


class UserRegionActivityResponse(BaseModel):
    user_id: str
    user_name: str
    user_email: str
    regions_accessed: List[str]
    total_accesses: int
    denied_attempts: int
    most_accessed_region: str
    tools_used: Dict[str, int]
    last_active: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class HeatmapCellResponse(BaseModel):
    region: str
    intensity: int
    access_count: int
    unique_users: int

    model_config = ConfigDict(from_attributes=True)


class TimelinePointResponse(BaseModel):
    date: str
    region: str
    access_count: int
    denial_count: int

    model_config = ConfigDict(from_attributes=True)


class SuccessRateResponse(BaseModel):
    region: str
    success_rate: float
    total_attempts: int


class AnalyticsSummaryResponse(BaseModel):
    """Overall region access summary."""

    total_regions_accessed: int
    total_access_attempts: int
    total_successful_accesses: int
    total_denied_accesses: int
    average_accesses_per_region: float
    most_active_region: str
    least_active_region: str
    overall_success_rate: float

    model_config = ConfigDict(from_attributes=True)
