from __future__ import annotations

from datetime import datetime, timezone

import mysql.connector
import pytest

from site_presence.attendance.mysql_attendance_repository import MySQLAttendanceRepository
from site_presence.core.exceptions import ConcurrencyConflict
from site_presence.geometry.model import LatLng

from fake_mysql import FakeConnectionFactory

CHECK_IN = datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)
POINT = LatLng(10.0003, 20.0)


def _row(**overrides):
    row = {
        "record_id": 5,
        "user_id": 7,
        "zone_id": 1,
        "check_in_time": datetime(2026, 3, 2, 6, 0),
        "check_in_lat": 10.0003,
        "check_in_lng": 20.0,
        "check_out_time": None,
        "check_out_lat": None,
        "check_out_lng": None,
        "device_id": "tablet-7",
        "is_valid": 1,
        "invalid_reason": None,
    }
    row.update(overrides)
    return row


def test_open_session_inserts_and_returns_record():
    factory = FakeConnectionFactory([{"lastrowid": 5}])
    record = MySQLAttendanceRepository(factory).open_session(
        user_id=7, zone_id=1, check_in_time=CHECK_IN, check_in_point=POINT, device_id="tablet-7"
    )

    assert record.record_id == 5
    assert record.is_open
    sql, params = factory.statements[0]
    assert sql.startswith("INSERT INTO attendance_records")
    assert params == (7, 1, datetime(2026, 3, 2, 6, 0), 10.0003, 20.0, "tablet-7")
    assert factory.committed == 1


def test_duplicate_open_session_becomes_concurrency_conflict():
    dup = mysql.connector.IntegrityError(msg="Duplicate entry '7' for key 'uq_attendance_open_user'", errno=1062)
    factory = FakeConnectionFactory([{"raise": dup}])

    with pytest.raises(ConcurrencyConflict):
        MySQLAttendanceRepository(factory).open_session(
            user_id=7, zone_id=1, check_in_time=CHECK_IN, check_in_point=POINT
        )
    assert factory.rolled_back == 1
    assert factory.committed == 0


def test_other_integrity_errors_propagate_unchanged():
    fk = mysql.connector.IntegrityError(msg="Cannot add or update a child row", errno=1452)
    factory = FakeConnectionFactory([{"raise": fk}])

    with pytest.raises(mysql.connector.IntegrityError):
        MySQLAttendanceRepository(factory).open_session(
            user_id=7, zone_id=99, check_in_time=CHECK_IN, check_in_point=POINT
        )


def test_close_session_is_a_conditional_update():
    closed_row = _row(
        check_out_time=datetime(2026, 3, 2, 14, 0),
        check_out_lat=10.001,
        check_out_lng=20.0,
    )
    factory = FakeConnectionFactory([{"rowcount": 1}, {"rows": [closed_row]}])

    record = MySQLAttendanceRepository(factory).close_session(
        record_id=5,
        check_out_time=datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc),
        check_out_point=LatLng(10.001, 20.0),
    )

    sql, _ = factory.statements[0]
    assert "check_out_time IS NULL AND is_valid=1" in sql
    assert record.check_out_time == datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc)
    assert record.check_out_point == LatLng(10.001, 20.0)
    assert not record.is_open


def test_close_session_that_lost_the_race_rolls_back():
    factory = FakeConnectionFactory([{"rowcount": 0}])

    with pytest.raises(ConcurrencyConflict):
        MySQLAttendanceRepository(factory).close_session(
            record_id=5, check_out_time=CHECK_IN, check_out_point=POINT
        )
    assert factory.rolled_back == 1


def test_open_lookup_uses_generated_column():
    factory = FakeConnectionFactory([{"rows": [_row()]}])
    record = MySQLAttendanceRepository(factory).get_open_for_user(7)

    sql, params = factory.statements[0]
    assert "WHERE open_user_id=%s" in sql
    assert params == (7,)
    assert record.check_in_time == CHECK_IN
    assert record.device_id == "tablet-7"


def test_history_limit_is_passed_to_sql():
    factory = FakeConnectionFactory([{"rows": [_row(), _row(record_id=4)]}])
    rows = MySQLAttendanceRepository(factory).list_for_user(7, limit=2)

    sql, params = factory.statements[0]
    assert sql.endswith("LIMIT %s")
    assert params == (7, 2)
    assert [r.record_id for r in rows] == [5, 4]


def test_invalidate_only_touches_valid_records():
    voided_row = _row(is_valid=0, invalid_reason="GPS spoofing")
    factory = FakeConnectionFactory([{"rowcount": 1}, {"rows": [voided_row]}])

    record = MySQLAttendanceRepository(factory).invalidate(5, reason="GPS spoofing")

    sql, params = factory.statements[0]
    assert sql.startswith("UPDATE attendance_records SET is_valid=0")
    assert sql.endswith("WHERE record_id=%s AND is_valid=1")
    assert params == ("GPS spoofing", 5)
    assert record.is_valid is False
    assert record.invalid_reason == "GPS spoofing"
