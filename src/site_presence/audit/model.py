from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AuditAction, AuditOutcome
from ..geometry.model import LatLng


@dataclass(frozen=True)
class AuditEvent:
    """One accepted or rejected attendance transition."""

    occurred_at: datetime
    action: AuditAction
    outcome: AuditOutcome
    user_id: Optional[int]
    record_id: Optional[int] = None
    zone_id: Optional[int] = None
    point: Optional[LatLng] = None
    reason: Optional[str] = None
    detail: Optional[str] = None
    event_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.event_id,
            "occurredAt": self.occurred_at.isoformat(),
            "action": self.action.value,
            "outcome": self.outcome.value,
            "userId": self.user_id,
            "recordId": self.record_id,
            "zoneId": self.zone_id,
            "coordinates": self.point.as_dict() if self.point else None,
            "reason": self.reason,
            "detail": self.detail,
        }
