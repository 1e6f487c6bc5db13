# GEOACCESS Core
"""
Shared building blocks for the region authorization engine.

Modules:
    constants: Region universe, default zones, storage limits
    exceptions: Error taxonomy surfaced to callers
    clock: Injectable time source
"""

from .constants import (
    VERSION,
    SYSTEM_NAME,
    MAX_AUDIT_LOGS,
    INDIAN_STATES,
    DEFAULT_ZONES,
    COLLECTIONS,
)

from .exceptions import (
    GeoAccessError,
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
    ValidationError,
    PersistenceError,
)

from .clock import (
    Clock,
    SystemClock,
    ManualClock,
    utcnow,
    ensure_utc,
)

__all__ = [
    # Constants
    "VERSION",
    "SYSTEM_NAME",
    "MAX_AUDIT_LOGS",
    "INDIAN_STATES",
    "DEFAULT_ZONES",
    "COLLECTIONS",
    # Exceptions
    "GeoAccessError",
    "NotFoundError",
    "ForbiddenError",
    "InvalidStateError",
    "ValidationError",
    "PersistenceError",
    # Clock
    "Clock",
    "SystemClock",
    "ManualClock",
    "utcnow",
    "ensure_utc",
]
