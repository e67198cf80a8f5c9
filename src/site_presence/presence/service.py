from __future__ import annotations

from typing import Dict, FrozenSet, Optional

from ..attendance.ledger import AttendanceLedger
from ..attendance.model import AttendanceRecord
from ..geometry.model import LatLng
from ..zones.registry import ZoneRegistry


class PresenceQueryService:
    """Entry point for callers: who is on site, and where.

    Check-in/check-out take raw decimal degrees and delegate to the ledger;
    queries are plain reads over the ledger's committed state.
    """

    def __init__(self, zones: ZoneRegistry, ledger: AttendanceLedger):
        self._zones = zones
        self._ledger = ledger

    def check_in(self, user_id: int, lat: float, lng: float, device_id: Optional[str] = None) -> AttendanceRecord:
        return self._ledger.check_in(user_id, LatLng(lat, lng), device_id=device_id)

    def check_out(self, user_id: int, lat: float, lng: float, *, record_id: Optional[int] = None) -> AttendanceRecord:
        return self._ledger.check_out(user_id, LatLng(lat, lng), record_id=record_id)

    def is_present(self, user_id: int) -> bool:
        return self._ledger.current_session(user_id) is not None

    def workers_in_zone(self, zone_id: int) -> FrozenSet[int]:
        """Users with an open, valid session assigned to ``zone_id``.

        Unknown zone ids simply have nobody in them.
        """
        zone_id = int(zone_id)
        return frozenset(r.user_id for r in self._ledger.open_sessions() if r.zone_id == zone_id)

    def headcount_by_zone(self) -> Dict[int, FrozenSet[int]]:
        grouped: Dict[int, set] = {}
        for record in self._ledger.open_sessions():
            grouped.setdefault(record.zone_id, set()).add(record.user_id)
        return {zone_id: frozenset(users) for zone_id, users in sorted(grouped.items())}

    def zones_at(self, lat: float, lng: float) -> FrozenSet[int]:
        return self._zones.resolve_zones(LatLng(lat, lng))
