from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from site_presence.attendance.ledger import AttendanceLedger
from site_presence.attendance.memory_attendance_repository import InMemoryAttendanceRepository
from site_presence.audit.log import AuditLog
from site_presence.audit.repository import InMemoryAuditRepository
from site_presence.geometry.model import Circle, LatLng
from site_presence.presence.service import PresenceQueryService
from site_presence.zones.memory_zone_repository import InMemoryZoneRepository
from site_presence.zones.model import NewZone
from site_presence.zones.registry import ZoneRegistry


class SteppingClock:
    """Deterministic clock: each call advances by one second."""

    def __init__(self, start: datetime = datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(seconds=1)
        return value


class Site:
    def __init__(self):
        self.clock = SteppingClock()
        self.zones_repo = InMemoryZoneRepository()
        self.attendance_repo = InMemoryAttendanceRepository()
        self.audit_repo = InMemoryAuditRepository()
        self.registry = ZoneRegistry(
            self.zones_repo,
            has_history=self.attendance_repo.has_records_for_zone,
            clock=self.clock,
        )
        self.audit = AuditLog(self.audit_repo)
        self.ledger = AttendanceLedger(self.attendance_repo, self.registry, audit=self.audit, clock=self.clock)
        self.presence = PresenceQueryService(self.registry, self.ledger)

    def add_circle(self, name: str, lat: float, lng: float, radius: float):
        return self.registry.create(
            NewZone(name=name, shape=Circle(center=LatLng(lat, lng), radius_meters=radius)),
            created_by=1,
        )


@pytest.fixture
def site() -> Site:
    return Site()


@pytest.fixture
def pit_site(site: Site) -> Site:
    # Z1: circle of 50 m around (10.0, 20.0)
    site.add_circle("Open pit", 10.0, 20.0, 50.0)
    return site
