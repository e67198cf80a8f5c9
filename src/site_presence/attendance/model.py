from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import isoformat_or_none
from ..geometry.model import LatLng


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one check-in/check-out session of a worker."""

    record_id: int
    user_id: int
    zone_id: int
    check_in_time: datetime
    check_in_point: LatLng
    check_out_time: Optional[datetime] = None
    check_out_point: Optional[LatLng] = None
    device_id: Optional[str] = None
    is_valid: bool = True
    invalid_reason: Optional[str] = None

    @property
    def is_open(self) -> bool:
        """Counts toward presence: no checkout yet and not invalidated."""
        return self.check_out_time is None and self.is_valid

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "userId": self.user_id,
            "zoneId": self.zone_id,
            "checkInTime": self.check_in_time.isoformat(),
            "checkOutTime": isoformat_or_none(self.check_out_time),
            "checkInCoordinates": self.check_in_point.as_dict(),
            "checkOutCoordinates": self.check_out_point.as_dict() if self.check_out_point else None,
            "deviceId": self.device_id,
            "isValid": self.is_valid,
            "invalidReason": self.invalid_reason,
        }
