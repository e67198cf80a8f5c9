from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..geometry.model import LatLng
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    """Storage for attendance records.

    Implementations must make ``open_session`` and ``close_session`` atomic
    on their own: at most one open, valid record per user may ever exist,
    even if two writers get past the ledger's lock (e.g. on different
    instances). A lost race is reported as ConcurrencyConflict.
    """

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_open_for_user(self, user_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_open(self) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_user(self, user_id: int, *, limit: Optional[int] = None) -> Sequence[AttendanceRecord]:
        """Newest check-in first."""

        raise NotImplementedError

    def list_between(self, start: datetime, end: datetime) -> Sequence[AttendanceRecord]:
        """Records whose check-in time falls in [start, end], oldest first."""

        raise NotImplementedError

    def has_records_for_zone(self, zone_id: int) -> bool:
        raise NotImplementedError

    def open_session(
        self,
        *,
        user_id: int,
        zone_id: int,
        check_in_time: datetime,
        check_in_point: LatLng,
        device_id: Optional[str] = None,
    ) -> AttendanceRecord:
        raise NotImplementedError

    def close_session(
        self,
        *,
        record_id: int,
        check_out_time: datetime,
        check_out_point: LatLng,
    ) -> AttendanceRecord:
        raise NotImplementedError

    def invalidate(self, record_id: int, *, reason: str) -> Optional[AttendanceRecord]:
        """Void a valid record. An already-invalid record is returned unchanged."""
        raise NotImplementedError
