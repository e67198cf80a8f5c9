from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from ..common.validators import require_latitude, require_longitude
from ..core.enums import ShapeKind
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class LatLng:
    """A decimal-degree coordinate. Range-checked on construction."""

    lat: float
    lng: float

    def __post_init__(self):
        object.__setattr__(self, "lat", require_latitude(self.lat))
        object.__setattr__(self, "lng", require_longitude(self.lng))

    def as_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class Circle:
    center: LatLng
    radius_meters: float

    kind = ShapeKind.CIRCLE


@dataclass(frozen=True)
class Polygon:
    """Closed ring of vertices; the closing edge is implicit."""

    vertices: Tuple[LatLng, ...]

    kind = ShapeKind.POLYGON


Shape = Union[Circle, Polygon]


def shape_to_dict(shape: Shape) -> dict:
    if isinstance(shape, Circle):
        return {
            "type": ShapeKind.CIRCLE.value,
            "center": shape.center.as_dict(),
            "radiusMeters": shape.radius_meters,
        }
    return {
        "type": ShapeKind.POLYGON.value,
        "vertices": [v.as_dict() for v in shape.vertices],
    }


def shape_from_dict(data: dict) -> Shape:
    """Build a shape from its JSON form. Geometry is not validated here."""

    if not isinstance(data, dict):
        raise ValidationError("shape must be an object")
    kind = data.get("type")
    try:
        if kind == ShapeKind.CIRCLE.value:
            center = data["center"]
            return Circle(
                center=LatLng(center["lat"], center["lng"]),
                radius_meters=data["radiusMeters"],
            )
        if kind == ShapeKind.POLYGON.value:
            return Polygon(vertices=tuple(LatLng(v["lat"], v["lng"]) for v in data["vertices"]))
    except (KeyError, TypeError):
        raise ValidationError(f"malformed {kind} shape")
    raise ValidationError(f"unknown shape type: {kind!r}")
