from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import ShapeKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, to_db_datetime
from ..geometry.model import Circle, LatLng, Polygon, Shape
from .model import GeofenceZone
from .repository import ZoneRepository

_COLUMNS = """
    zone_id, name, description, shape_kind, center_lat, center_lng, radius_m, vertices,
    is_active, created_by, created_at, updated_at
"""


def _shape_columns(shape: Shape) -> tuple:
    if isinstance(shape, Circle):
        return (ShapeKind.CIRCLE.value, shape.center.lat, shape.center.lng, shape.radius_meters, None)
    vertices = json.dumps([[v.lat, v.lng] for v in shape.vertices])
    return (ShapeKind.POLYGON.value, None, None, None, vertices)


def _row_to_shape(r: Dict[str, Any]) -> Shape:
    kind = ShapeKind(r["shape_kind"])
    if kind == ShapeKind.CIRCLE:
        return Circle(
            center=LatLng(float(r["center_lat"]), float(r["center_lng"])),
            radius_meters=float(r["radius_m"]),
        )
    raw = r["vertices"]
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    return Polygon(vertices=tuple(LatLng(float(lat), float(lng)) for lat, lng in json.loads(raw)))


def _row_to_zone(r: Dict[str, Any]) -> GeofenceZone:
    return GeofenceZone(
        zone_id=int(r["zone_id"]),
        name=r["name"],
        description=r.get("description"),
        shape=_row_to_shape(r),
        is_active=bool(r["is_active"]),
        created_by=int(r["created_by"]) if r.get("created_by") is not None else None,
        created_at=from_db_datetime(r["created_at"]),
        updated_at=from_db_datetime(r["updated_at"]),
    )


class MySQLZoneRepository(ZoneRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[GeofenceZone]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM geofence_zones ORDER BY zone_id ASC")
            return [_row_to_zone(r) for r in fetchall(cur)]

    def get_by_id(self, zone_id: int) -> Optional[GeofenceZone]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM geofence_zones WHERE zone_id=%s", (int(zone_id),))
            r = fetchone(cur)
            return _row_to_zone(r) if r else None

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
        stamp = to_db_datetime(created_at)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO geofence_zones(
                    name, description, shape_kind, center_lat, center_lng, radius_m, vertices,
                    is_active, created_by, created_at, updated_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (name, description, *_shape_columns(shape), int(is_active), created_by, stamp, stamp),
            )
            zone_id = int(cur.lastrowid)

        return GeofenceZone(
            zone_id=zone_id,
            name=name,
            description=description,
            shape=shape,
            is_active=is_active,
            created_by=created_by,
            created_at=created_at,
            updated_at=created_at,
        )

    def save(self, zone: GeofenceZone) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE geofence_zones
                SET name=%s, description=%s, shape_kind=%s, center_lat=%s, center_lng=%s,
                    radius_m=%s, vertices=%s, is_active=%s, updated_at=%s
                WHERE zone_id=%s
                """,
                (
                    zone.name,
                    zone.description,
                    *_shape_columns(zone.shape),
                    int(zone.is_active),
                    to_db_datetime(zone.updated_at),
                    zone.zone_id,
                ),
            )
            return cur.rowcount > 0

    def delete(self, zone_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM geofence_zones WHERE zone_id=%s", (int(zone_id),))
            return cur.rowcount > 0
