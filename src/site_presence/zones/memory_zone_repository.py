from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional, Sequence

from ..geometry.model import Shape
from .model import GeofenceZone
from .repository import ZoneRepository


class InMemoryZoneRepository(ZoneRepository):
    """Process-local zone storage for single-instance deployments and tests."""

    def __init__(self):
        self._zones: Dict[int, GeofenceZone] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def list_all(self) -> Sequence[GeofenceZone]:
        with self._lock:
            return sorted(self._zones.values(), key=lambda z: z.zone_id)

    def get_by_id(self, zone_id: int) -> Optional[GeofenceZone]:
        with self._lock:
            return self._zones.get(int(zone_id))

    def insert(
        self,
        *,
        name: str,
        description: Optional[str],
        shape: Shape,
        is_active: bool,
        created_by: Optional[int],
        created_at: datetime,
    ) -> GeofenceZone:
        with self._lock:
            zone = GeofenceZone(
                zone_id=self._next_id,
                name=name,
                description=description,
                shape=shape,
                is_active=is_active,
                created_by=created_by,
                created_at=created_at,
                updated_at=created_at,
            )
            self._zones[zone.zone_id] = zone
            self._next_id += 1
            return zone

    def save(self, zone: GeofenceZone) -> bool:
        with self._lock:
            existing = self._zones.get(zone.zone_id)
            if existing is None:
                return False
            # id, creator and creation time are immutable.
            self._zones[zone.zone_id] = replace(
                zone, created_by=existing.created_by, created_at=existing.created_at
            )
            return True

    def delete(self, zone_id: int) -> bool:
        with self._lock:
            return self._zones.pop(int(zone_id), None) is not None
