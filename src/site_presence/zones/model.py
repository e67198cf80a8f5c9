from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..geometry.model import Shape, shape_to_dict


@dataclass(frozen=True)
class GeofenceZone:
    """Domain entity: a named work area workers check in against."""

    zone_id: int
    name: str
    description: Optional[str]
    shape: Shape
    is_active: bool
    created_by: Optional[int]
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.zone_id,
            "name": self.name,
            "description": self.description,
            "shape": shape_to_dict(self.shape),
            "isActive": self.is_active,
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class NewZone:
    name: str
    shape: Shape
    description: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class ZonePatch:
    """Fields to change on update. None means "leave unchanged"."""

    name: Optional[str] = None
    description: Optional[str] = None
    shape: Optional[Shape] = None
    is_active: Optional[bool] = None

    def is_empty(self) -> bool:
        return self.name is None and self.description is None and self.shape is None and self.is_active is None
