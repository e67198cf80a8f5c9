from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..geometry.model import Shape
from .model import GeofenceZone


class ZoneRepository(Protocol):
    def list_all(self) -> Sequence[GeofenceZone]:
        raise NotImplementedError

    def get_by_id(self, zone_id: int) -> Optional[GeofenceZone]:
        raise NotImplementedError

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
        raise NotImplementedError

    def save(self, zone: GeofenceZone) -> bool:
        """Overwrite all mutable fields of an existing zone."""

        raise NotImplementedError

    def delete(self, zone_id: int) -> bool:
        raise NotImplementedError
