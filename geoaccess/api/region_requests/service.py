"""
Region Access Requests

Users ask for access to regions; Managers and Admins review.

    PENDING -> APPROVED | REJECTED | CANCELLED   (all terminal)

Approval is a decision record only. Granting the access (zones or a
temporary grant) is a separate administrative action.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from geoaccess.api.access.audit import AuditEventType, AuditSeverity, AuditTrail
from geoaccess.api.access.rbac import REVIEWER_ROLES, Role, ensure_role
from geoaccess.api.db.store import RecordStore
from geoaccess.core.clock import Clock, SystemClock, ensure_utc
from geoaccess.core.constants import ACCESS_REQUESTS, INDIAN_STATES
from geoaccess.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from geoaccess.core.validation import validate_regions

logger = logging.getLogger(__name__)


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


@dataclass
class AccessRequest:
    """A user's request for access to one or more regions."""

    id: str
    user_id: str
    user_name: str
    user_role: str
    requested_regions: List[str]
    reason: str
    status: RequestStatus
    created_at: datetime
    updated_at: datetime
    user_email: str = ""
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "user_email": self.user_email,
            "user_role": self.user_role,
            "requested_regions": list(self.requested_regions),
            "reason": self.reason,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "review_notes": self.review_notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccessRequest":
        reviewed_at = data.get("reviewed_at")
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            user_name=data.get("user_name", ""),
            user_email=data.get("user_email", ""),
            user_role=data.get("user_role", ""),
            requested_regions=list(data.get("requested_regions", [])),
            reason=data.get("reason", ""),
            status=RequestStatus(data["status"]),
            created_at=ensure_utc(datetime.fromisoformat(data["created_at"])),
            updated_at=ensure_utc(datetime.fromisoformat(data["updated_at"])),
            reviewed_by=data.get("reviewed_by"),
            reviewed_at=ensure_utc(datetime.fromisoformat(reviewed_at)) if reviewed_at else None,
            review_notes=data.get("review_notes"),
        )


@dataclass
class RequestFilter:
    user_id: Optional[str] = None
    status: Optional[RequestStatus] = None
    region: Optional[str] = None


@dataclass
class RequestStats:
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    cancelled: int = 0
    requests_by_region: Dict[str, int] = field(default_factory=dict)


class AccessRequestWorkflow:
    """Service for the region access request lifecycle."""

    def __init__(
        self,
        store: RecordStore,
        audit: AuditTrail,
        clock: Optional[Clock] = None,
        regions: Optional[Iterable[str]] = None,
    ):
        self.store = store
        self.audit = audit
        self.clock = clock or SystemClock()
        self.regions = list(regions) if regions is not None else list(INDIAN_STATES)

    # ==================== Lookup ====================

    def get(self, request_id: str) -> Optional[AccessRequest]:
        record = self.store.get(ACCESS_REQUESTS, request_id)
        return AccessRequest.from_dict(record) if record else None

    def _require(self, request_id: str) -> AccessRequest:
        request = self.get(request_id)
        if request is None:
            raise NotFoundError(
                f"Region request not found: {request_id}",
                entity="access_request",
                entity_id=request_id,
            )
        return request

    def _require_pending(self, request: AccessRequest) -> None:
        if not request.is_pending:
            raise InvalidStateError(
                f"Region request {request.id} is already {request.status.value}",
                current_state=request.status.value,
            )

    def list_requests(self, filter: Optional[RequestFilter] = None) -> List[AccessRequest]:
        """Requests matching the filter, newest first."""
        requests = [AccessRequest.from_dict(r) for r in self.store.load_all(ACCESS_REQUESTS)]
        if filter is not None:
            if filter.user_id:
                requests = [r for r in requests if r.user_id == filter.user_id]
            if filter.status:
                requests = [r for r in requests if r.status == filter.status]
            if filter.region:
                requests = [r for r in requests if filter.region in r.requested_regions]
        return sorted(requests, key=lambda r: r.created_at, reverse=True)

    def user_requests(self, user_id: str) -> List[AccessRequest]:
        return self.list_requests(RequestFilter(user_id=user_id))

    def pending_count_for_user(self, user_id: str) -> int:
        return len(self.list_requests(RequestFilter(user_id=user_id, status=RequestStatus.PENDING)))

    def has_pending_request_for_region(self, user_id: str, region: str) -> bool:
        pending = self.list_requests(
            RequestFilter(user_id=user_id, status=RequestStatus.PENDING, region=region)
        )
        return bool(pending)

    def request_stats(self, filter: Optional[RequestFilter] = None) -> RequestStats:
        stats = RequestStats()
        for request in self.list_requests(filter):
            stats.total += 1
            if request.status == RequestStatus.PENDING:
                stats.pending += 1
            elif request.status == RequestStatus.APPROVED:
                stats.approved += 1
            elif request.status == RequestStatus.REJECTED:
                stats.rejected += 1
            else:
                stats.cancelled += 1
            for region in request.requested_regions:
                stats.requests_by_region[region] = stats.requests_by_region.get(region, 0) + 1
        return stats

    # ==================== Lifecycle ====================

    def submit(self, user, regions: Iterable[str], reason: str) -> AccessRequest:
        """Open a new pending request."""
        requested = validate_regions(regions, self.regions, field="requested_regions")

        now = self.clock.now()
        request = AccessRequest(
            id=f"req_{uuid4().hex[:12]}",
            user_id=user.id,
            user_name=getattr(user, "name", ""),
            user_email=getattr(user, "email", ""),
            user_role=user.role.value,
            requested_regions=requested,
            reason=reason or "",
            status=RequestStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

        with self.store.locked():
            self.store.upsert(ACCESS_REQUESTS, request.to_dict())

        logger.info(f"Region request submitted: {request.id} by {user.id} for {requested}")
        self.audit.record(
            user,
            AuditEventType.REGION_REQUEST_SUBMITTED,
            f"Requested access to {', '.join(requested)}",
            severity=AuditSeverity.INFO,
            details={"request_id": request.id, "regions": requested, "reason": request.reason},
        )
        return request

    def _review(
        self,
        request_id: str,
        reviewer,
        status: RequestStatus,
        notes: Optional[str],
    ) -> AccessRequest:
        with self.store.locked():
            request = self._require(request_id)
            self._require_pending(request)

            now = self.clock.now()
            request.status = status
            request.reviewed_by = reviewer.id
            request.reviewed_at = now
            request.review_notes = notes
            request.updated_at = now
            self.store.upsert(ACCESS_REQUESTS, request.to_dict())
        return request

    def approve(self, request_id: str, reviewer, notes: Optional[str] = None) -> AccessRequest:
        """Approve a pending request. Does not grant any access by itself."""
        ensure_role(reviewer, REVIEWER_ROLES, "Approve region request", audit=self.audit)
        request = self._review(request_id, reviewer, RequestStatus.APPROVED, notes)

        logger.info(f"Region request approved: {request.id} by {reviewer.id}")
        self.audit.record(
            reviewer,
            AuditEventType.REGION_REQUEST_APPROVED,
            f"Approved region request from {request.user_name or request.user_id}",
            severity=AuditSeverity.INFO,
            details={
                "request_id": request.id,
                "user_id": request.user_id,
                "regions": request.requested_regions,
                "notes": notes,
            },
        )
        return request

    def reject(self, request_id: str, reviewer, notes: Optional[str] = None) -> AccessRequest:
        ensure_role(reviewer, REVIEWER_ROLES, "Reject region request", audit=self.audit)
        request = self._review(request_id, reviewer, RequestStatus.REJECTED, notes)

        logger.warning(f"Region request rejected: {request.id} by {reviewer.id}")
        self.audit.record(
            reviewer,
            AuditEventType.REGION_REQUEST_REJECTED,
            f"Rejected region request from {request.user_name or request.user_id}",
            severity=AuditSeverity.WARNING,
            details={
                "request_id": request.id,
                "user_id": request.user_id,
                "regions": request.requested_regions,
                "notes": notes,
            },
        )
        return request

    def cancel(self, request_id: str, user) -> AccessRequest:
        """Withdraw one's own pending request."""
        with self.store.locked():
            request = self._require(request_id)
            if request.user_id != user.id:
                message = "Only the requester can cancel a region request"
                self.audit.record_forbidden(user, "Cancel region request", message)
                raise ForbiddenError(message, actor_id=user.id)
            self._require_pending(request)

            now = self.clock.now()
            request.status = RequestStatus.CANCELLED
            request.updated_at = now
            self.store.upsert(ACCESS_REQUESTS, request.to_dict())

        logger.info(f"Region request cancelled: {request.id} by {user.id}")
        self.audit.record(
            user,
            AuditEventType.REGION_REQUEST_CANCELLED,
            "Cancelled region request",
            severity=AuditSeverity.INFO,
            details={"request_id": request.id, "regions": request.requested_regions},
        )
        return request

    def delete(self, request_id: str, user) -> bool:
        """Remove a request record (Admin or the requester)."""
        with self.store.locked():
            request = self._require(request_id)
            if user.role != Role.ADMIN and request.user_id != user.id:
                message = "Only an Admin or the requester can delete a region request"
                self.audit.record_forbidden(user, "Delete region request", message)
                raise ForbiddenError(message, actor_id=user.id)
            self.store.delete(ACCESS_REQUESTS, request_id)

        logger.info(f"Region request deleted: {request_id} by {user.id}")
        self.audit.record(
            user,
            AuditEventType.REGION_REQUEST_DELETED,
            "Deleted region request",
            severity=AuditSeverity.INFO,
            details={"request_id": request_id, "status": request.status.value},
        )
        return True
