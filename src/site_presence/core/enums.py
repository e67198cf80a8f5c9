from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for zone management permissions."""

    MANAGER = "manager"
    WORKER = "worker"


class ShapeKind(str, Enum):
    CIRCLE = "circle"
    POLYGON = "polygon"


class PresenceState(str, Enum):
    """Per-worker attendance state."""

    ABSENT = "ABSENT"
    PRESENT = "PRESENT"


class AuditAction(str, Enum):
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"
    INVALIDATE = "INVALIDATE"


class AuditOutcome(str, Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
