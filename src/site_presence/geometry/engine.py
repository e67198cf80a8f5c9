"""Containment tests for geofence shapes.

Pure functions: no state, no I/O, safe to call from any number of threads.

Circles use the haversine great-circle distance on a spherical earth
(mean radius 6,371 km), which is adequate for site-scale zones.

Polygons use a planar even-odd ray cast with longitude as x and latitude as
y. This is only accurate for small zones (under roughly 1 km across); very
large zones, polar zones and rings crossing the antimeridian are not
supported.

Boundary points are inclusive for both shapes.
"""

from __future__ import annotations

import math
from typing import Sequence

from ..common.validators import require_finite
from ..core.constants import (
    BOUNDARY_TOLERANCE_DEGREES,
    EARTH_RADIUS_METERS,
    MIN_POLYGON_VERTICES,
)
from ..core.exceptions import ValidationError
from .model import Circle, LatLng, Polygon, Shape


def haversine_distance(a: LatLng, b: LatLng) -> float:
    """Great-circle distance in meters."""
    phi1, phi2 = math.radians(a.lat), math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lng - a.lng)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_METERS * c


def contains(shape: Shape, point: LatLng) -> bool:
    if isinstance(shape, Circle):
        return haversine_distance(shape.center, point) <= shape.radius_meters
    if isinstance(shape, Polygon):
        return _polygon_contains(shape.vertices, point)
    raise TypeError(f"Unsupported shape type: {type(shape)!r}")


def _cross(o: LatLng, a: LatLng, b: LatLng) -> float:
    return (a.lng - o.lng) * (b.lat - o.lat) - (a.lat - o.lat) * (b.lng - o.lng)


def _on_segment(p: LatLng, a: LatLng, b: LatLng) -> bool:
    if abs(_cross(a, b, p)) > BOUNDARY_TOLERANCE_DEGREES:
        return False
    return (
        min(a.lng, b.lng) - BOUNDARY_TOLERANCE_DEGREES <= p.lng <= max(a.lng, b.lng) + BOUNDARY_TOLERANCE_DEGREES
        and min(a.lat, b.lat) - BOUNDARY_TOLERANCE_DEGREES <= p.lat <= max(a.lat, b.lat) + BOUNDARY_TOLERANCE_DEGREES
    )


def _polygon_contains(vertices: Sequence[LatLng], point: LatLng) -> bool:
    n = len(vertices)
    inside = False
    j = n - 1
    for i in range(n):
        vi, vj = vertices[i], vertices[j]
        if _on_segment(point, vj, vi):
            return True
        if (vi.lat > point.lat) != (vj.lat > point.lat):
            x_cross = (vj.lng - vi.lng) * (point.lat - vi.lat) / (vj.lat - vi.lat) + vi.lng
            if point.lng < x_cross:
                inside = not inside
        j = i
    return inside


def _orientation(a: LatLng, b: LatLng, c: LatLng) -> int:
    value = _cross(a, b, c)
    if abs(value) <= BOUNDARY_TOLERANCE_DEGREES:
        return 0
    return 1 if value > 0 else -1


def _segments_intersect(p1: LatLng, p2: LatLng, q1: LatLng, q2: LatLng) -> bool:
    o1 = _orientation(p1, p2, q1)
    o2 = _orientation(p1, p2, q2)
    o3 = _orientation(q1, q2, p1)
    o4 = _orientation(q1, q2, p2)

    if o1 != o2 and o3 != o4:
        return True
    if o1 == 0 and _on_segment(q1, p1, p2):
        return True
    if o2 == 0 and _on_segment(q2, p1, p2):
        return True
    if o3 == 0 and _on_segment(p1, q1, q2):
        return True
    if o4 == 0 and _on_segment(p2, q1, q2):
        return True
    return False


def _signed_area(vertices: Sequence[LatLng]) -> float:
    total = 0.0
    n = len(vertices)
    for i in range(n):
        a, b = vertices[i], vertices[(i + 1) % n]
        total += a.lng * b.lat - b.lng * a.lat
    return total / 2.0


def _validate_ring(vertices: Sequence[LatLng]) -> tuple[LatLng, ...]:
    ring = list(vertices)
    # Accept rings given in closed form (first vertex repeated at the end).
    if len(ring) > MIN_POLYGON_VERTICES and ring[0] == ring[-1]:
        ring.pop()

    if len(ring) < MIN_POLYGON_VERTICES:
        raise ValidationError(f"polygon needs at least {MIN_POLYGON_VERTICES} vertices, got {len(ring)}")

    n = len(ring)
    for i in range(n):
        if ring[i] == ring[(i + 1) % n]:
            raise ValidationError(f"polygon has repeated consecutive vertex at index {i}")

    if abs(_signed_area(ring)) <= BOUNDARY_TOLERANCE_DEGREES:
        raise ValidationError("polygon is degenerate (zero area)")

    edges = [(ring[i], ring[(i + 1) % n]) for i in range(n)]
    for i in range(n):
        a, b = edges[i]
        # Adjacent edges folding back onto each other.
        c = edges[(i + 1) % n][1]
        if _orientation(a, b, c) == 0 and (_on_segment(c, a, b) or _on_segment(a, b, c)):
            raise ValidationError(f"polygon folds back on itself at vertex {(i + 1) % n}")
        for j in range(i + 2, n):
            if i == 0 and j == n - 1:
                continue
            q1, q2 = edges[j]
            if _segments_intersect(a, b, q1, q2):
                raise ValidationError(f"polygon edges {i} and {j} intersect")

    return tuple(ring)


def validate_shape(shape: Shape) -> Shape:
    """Check zone shape invariants and return the normalized shape.

    Raises ValidationError for a non-positive radius or a polygon that is
    not a simple ring. Only called when a zone is created or its shape
    changes, never per query.
    """
    if isinstance(shape, Circle):
        radius = require_finite(shape.radius_meters, "radiusMeters")
        if radius <= 0:
            raise ValidationError(f"radiusMeters must be > 0, got {radius}")
        return Circle(center=shape.center, radius_meters=radius)

    if isinstance(shape, Polygon):
        return Polygon(vertices=_validate_ring(shape.vertices))

    raise ValidationError(f"Unsupported shape type: {type(shape).__name__}")
