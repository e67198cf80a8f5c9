from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..core.constants import DEFAULT_AUDIT_LIMIT
from ..core.enums import AuditAction, AuditOutcome
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, from_db_datetime, to_db_datetime
from ..geometry.model import LatLng
from .model import AuditEvent
from .repository import AuditRepository


def _row_to_event(r: Dict[str, Any]) -> AuditEvent:
    point = None
    if r.get("lat") is not None:
        point = LatLng(float(r["lat"]), float(r["lng"]))
    return AuditEvent(
        event_id=int(r["event_id"]),
        occurred_at=from_db_datetime(r["occurred_at"]),
        action=AuditAction(r["action"]),
        outcome=AuditOutcome(r["outcome"]),
        user_id=r.get("user_id"),
        record_id=r.get("record_id"),
        zone_id=r.get("zone_id"),
        point=point,
        reason=r.get("reason"),
        detail=r.get("detail"),
    )


class MySQLAuditRepository(AuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(self, event: AuditEvent) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_events(
                    occurred_at, action, outcome, user_id, record_id, zone_id, lat, lng, reason, detail
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    to_db_datetime(event.occurred_at),
                    event.action.value,
                    event.outcome.value,
                    event.user_id,
                    event.record_id,
                    event.zone_id,
                    event.point.lat if event.point else None,
                    event.point.lng if event.point else None,
                    event.reason,
                    event.detail,
                ),
            )

    def list_events(self, *, user_id: Optional[int] = None, limit: int = DEFAULT_AUDIT_LIMIT) -> Sequence[AuditEvent]:
        clauses = []
        params: list[object] = []
        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT event_id, occurred_at, action, outcome, user_id, record_id, zone_id,
                       lat, lng, reason, detail
                FROM audit_events
                {where}
                ORDER BY event_id DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [_row_to_event(r) for r in fetchall(cur)]
