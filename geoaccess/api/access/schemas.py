"""
Access & Audit Schemas

Pydantic models for authorization checks and the audit trail.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from geoaccess.api.access.audit import AuditEventType, AuditSeverity


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str
    success: bool = True


# ==================== Access ====================


class AccessDecisionResponse(BaseModel):
    """Result of a region access check."""

    allowed: bool
    region: str
    source: Optional[str] = None
    error: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AccessibleRegionsResponse(BaseModel):
    user_id: str
    role: str
    regions: List[str]
    count: int


class RoleInfoResponse(BaseModel):
    name: str
    level: int
    color: str
    permissions: List[str]


class EffectivePermissionsResponse(BaseModel):
    """Permissions the caller holds right now."""

    user_id: str
    role: RoleInfoResponse
    permissions: List[str]


class ManageCheckResponse(BaseModel):
    manager_id: str
    target_id: str
    can_manage: bool


# ==================== Audit ====================


class AuditEntryResponse(BaseModel):
    """Single audit trail entry."""

    id: str
    timestamp: datetime
    user_id: str
    user_name: str
    user_email: str
    user_role: str
    event_type: AuditEventType
    severity: AuditSeverity
    region: Optional[str] = None
    tool_name: Optional[str] = None
    action: str
    details: Dict[str, Any] = {}
    success: bool
    error_message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AuditListResponse(BaseModel):
    entries: List[AuditEntryResponse]
    total: int


class AuditStatsResponse(BaseModel):
    """Aggregate audit counts."""

    total_events: int
    successful_events: int
    failed_events: int
    events_by_type: Dict[str, int]
    events_by_region: Dict[str, int]
    events_by_user: Dict[str, int]
    recent_activity: List[AuditEntryResponse]

    model_config = ConfigDict(from_attributes=True)


class UserActivitySummaryResponse(BaseModel):
    user_id: str
    total_actions: int
    regions_accessed: List[str]
    tools_used: List[str]
    recent_activity: List[AuditEntryResponse]

    model_config = ConfigDict(from_attributes=True)
