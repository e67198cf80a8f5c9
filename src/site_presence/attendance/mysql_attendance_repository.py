from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

import mysql.connector

from ..core.exceptions import ConcurrencyConflict
from ..database.connection import DatabaseConnection
from ..database.mysql_base import ER_DUP_ENTRY, db_cursor, fetchall, fetchone, from_db_datetime, to_db_datetime
from ..geometry.model import LatLng
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    record_id, user_id, zone_id, check_in_time, check_in_lat, check_in_lng,
    check_out_time, check_out_lat, check_out_lng, device_id, is_valid, invalid_reason
"""


def _row_to_record(r: Dict[str, Any]) -> AttendanceRecord:
    check_out_point = None
    if r.get("check_out_lat") is not None:
        check_out_point = LatLng(float(r["check_out_lat"]), float(r["check_out_lng"]))
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        user_id=int(r["user_id"]),
        zone_id=int(r["zone_id"]),
        check_in_time=from_db_datetime(r["check_in_time"]),
        check_in_point=LatLng(float(r["check_in_lat"]), float(r["check_in_lng"])),
        check_out_time=from_db_datetime(r.get("check_out_time")),
        check_out_point=check_out_point,
        device_id=r.get("device_id"),
        is_valid=bool(r["is_valid"]),
        invalid_reason=r.get("invalid_reason"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    """Attendance storage where MySQL is the serialization point.

    The generated column ``open_user_id`` is non-NULL only for an open,
    valid record, and a UNIQUE index on it rejects a second open session
    for the same user regardless of which instance writes it.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE record_id=%s", (int(record_id),))
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_open_for_user(self, user_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE open_user_id=%s",
                (int(user_id),),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def list_open(self) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE open_user_id IS NOT NULL")
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_for_user(self, user_id: int, *, limit: Optional[int] = None) -> Sequence[AttendanceRecord]:
        sql = f"""
            SELECT {_COLUMNS} FROM attendance_records
            WHERE user_id=%s
            ORDER BY check_in_time DESC, record_id DESC
        """
        params: list[object] = [int(user_id)]
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_between(self, start: datetime, end: datetime) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_records
                WHERE check_in_time BETWEEN %s AND %s
                ORDER BY check_in_time ASC, record_id ASC
                """,
                (to_db_datetime(start), to_db_datetime(end)),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def has_records_for_zone(self, zone_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS found FROM attendance_records WHERE zone_id=%s LIMIT 1", (int(zone_id),))
            return fetchone(cur) is not None

    def open_session(
        self,
        *,
        user_id: int,
        zone_id: int,
        check_in_time: datetime,
        check_in_point: LatLng,
        device_id: Optional[str] = None,
    ) -> AttendanceRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        user_id, zone_id, check_in_time, check_in_lat, check_in_lng, device_id, is_valid
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,1)
                    """,
                    (
                        int(user_id),
                        int(zone_id),
                        to_db_datetime(check_in_time),
                        check_in_point.lat,
                        check_in_point.lng,
                        device_id,
                    ),
                )
                record_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            if e.errno == ER_DUP_ENTRY:
                raise ConcurrencyConflict(f"User {user_id} already has an open session") from e
            raise

        return AttendanceRecord(
            record_id=record_id,
            user_id=int(user_id),
            zone_id=int(zone_id),
            check_in_time=check_in_time,
            check_in_point=check_in_point,
            device_id=device_id,
        )

    def close_session(
        self,
        *,
        record_id: int,
        check_out_time: datetime,
        check_out_point: LatLng,
    ) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_out_time=%s, check_out_lat=%s, check_out_lng=%s
                WHERE record_id=%s AND check_out_time IS NULL AND is_valid=1
                """,
                (to_db_datetime(check_out_time), check_out_point.lat, check_out_point.lng, int(record_id)),
            )
            if cur.rowcount == 0:
                raise ConcurrencyConflict(f"Session {record_id} is no longer open")
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE record_id=%s", (int(record_id),))
            return _row_to_record(fetchone(cur))

    def invalidate(self, record_id: int, *, reason: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_records SET is_valid=0, invalid_reason=%s WHERE record_id=%s AND is_valid=1",
                (reason, int(record_id)),
            )
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE record_id=%s", (int(record_id),))
            r = fetchone(cur)
            return _row_to_record(r) if r else None
