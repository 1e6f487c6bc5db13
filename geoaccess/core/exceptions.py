"""
GEOACCESS - Centralized Exception Hierarchy
===========================================

Structured exception types for the region authorization engine.

Exception Categories:
    - NotFoundError: Referenced zone/grant/request does not exist
    - ForbiddenError: Actor lacks the role or ownership required
    - InvalidStateError: Operation not legal in the entity's current state
    - ValidationError: Malformed input, rejected before any state change
    - PersistenceError: Underlying store read/write failed

Every kind is raised to the direct caller as a distinct, inspectable
exception. A denied authorization check is a boolean outcome, not an error.
"""

from typing import Any, Dict, Optional


class GeoAccessError(Exception):
    """
    Base exception for all GEOACCESS errors.

    Attributes:
        message: Human-readable error description
        code: Stable error code for programmatic handling
        details: Optional dict with additional context
    """

    code: str = "geoaccess_error"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# LOOKUP ERRORS
# =============================================================================


class NotFoundError(GeoAccessError):
    """Referenced entity does not exist."""

    code = "not_found"

    def __init__(self, message: str, entity: str = "", entity_id: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.entity = entity
        self.entity_id = entity_id


# =============================================================================
# AUTHORIZATION ERRORS
# =============================================================================


class ForbiddenError(GeoAccessError):
    """Actor lacks the role or ownership required for the operation."""

    code = "forbidden"

    def __init__(self, message: str, actor_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.actor_id = actor_id


# =============================================================================
# STATE & INPUT ERRORS
# =============================================================================


class InvalidStateError(GeoAccessError):
    """Operation is not legal in the entity's current state."""

    code = "invalid_state"

    def __init__(
        self,
        message: str,
        current_state: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.current_state = current_state


class ValidationError(GeoAccessError):
    """Malformed input."""

    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field


# =============================================================================
# INFRASTRUCTURE ERRORS
# =============================================================================


class PersistenceError(GeoAccessError):
    """The underlying record store failed."""

    code = "persistence_failure"

    def __init__(
        self,
        message: str,
        collection: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.collection = collection


__all__ = [
    "GeoAccessError",
    "NotFoundError",
    "ForbiddenError",
    "InvalidStateError",
    "ValidationError",
    "PersistenceError",
]
