from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional, Sequence

from ..core.exceptions import ConcurrencyConflict
from ..geometry.model import LatLng
from .model import AttendanceRecord
from .repository import AttendanceRepository


class InMemoryAttendanceRepository(AttendanceRepository):
    """Process-local attendance storage.

    A single internal lock makes every read a consistent snapshot and every
    write a check-and-set, so the one-open-session rule holds here too.
    """

    def __init__(self):
        self._records: Dict[int, AttendanceRecord] = {}
        self._open_by_user: Dict[int, int] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with self._lock:
            return self._records.get(int(record_id))

    def get_open_for_user(self, user_id: int) -> Optional[AttendanceRecord]:
        with self._lock:
            record_id = self._open_by_user.get(int(user_id))
            return self._records[record_id] if record_id is not None else None

    def list_open(self) -> Sequence[AttendanceRecord]:
        with self._lock:
            return [self._records[rid] for rid in self._open_by_user.values()]

    def list_for_user(self, user_id: int, *, limit: Optional[int] = None) -> Sequence[AttendanceRecord]:
        with self._lock:
            items = [r for r in self._records.values() if r.user_id == int(user_id)]
        items.sort(key=lambda r: (r.check_in_time, r.record_id), reverse=True)
        return items[:limit] if limit is not None else items

    def list_between(self, start: datetime, end: datetime) -> Sequence[AttendanceRecord]:
        with self._lock:
            items = [r for r in self._records.values() if start <= r.check_in_time <= end]
        items.sort(key=lambda r: (r.check_in_time, r.record_id))
        return items

    def has_records_for_zone(self, zone_id: int) -> bool:
        with self._lock:
            return any(r.zone_id == int(zone_id) for r in self._records.values())

    def open_session(
        self,
        *,
        user_id: int,
        zone_id: int,
        check_in_time: datetime,
        check_in_point: LatLng,
        device_id: Optional[str] = None,
    ) -> AttendanceRecord:
        with self._lock:
            if int(user_id) in self._open_by_user:
                raise ConcurrencyConflict(f"User {user_id} already has an open session")
            record = AttendanceRecord(
                record_id=self._next_id,
                user_id=int(user_id),
                zone_id=int(zone_id),
                check_in_time=check_in_time,
                check_in_point=check_in_point,
                device_id=device_id,
            )
            self._next_id += 1
            self._records[record.record_id] = record
            self._open_by_user[record.user_id] = record.record_id
            return record

    def close_session(
        self,
        *,
        record_id: int,
        check_out_time: datetime,
        check_out_point: LatLng,
    ) -> AttendanceRecord:
        with self._lock:
            current = self._records.get(int(record_id))
            if current is None or not current.is_open:
                raise ConcurrencyConflict(f"Session {record_id} is no longer open")
            closed = replace(current, check_out_time=check_out_time, check_out_point=check_out_point)
            self._records[closed.record_id] = closed
            del self._open_by_user[closed.user_id]
            return closed

    def invalidate(self, record_id: int, *, reason: str) -> Optional[AttendanceRecord]:
        with self._lock:
            current = self._records.get(int(record_id))
            if current is None:
                return None
            if not current.is_valid:
                return current
            voided = replace(current, is_valid=False, invalid_reason=reason)
            self._records[voided.record_id] = voided
            if self._open_by_user.get(voided.user_id) == voided.record_id:
                del self._open_by_user[voided.user_id]
            return voided
