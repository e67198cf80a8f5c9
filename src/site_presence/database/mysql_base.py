from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .connection import DatabaseConnection

# MySQL error number for a duplicate key on a UNIQUE index.
ER_DUP_ENTRY = 1062


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield (conn, cursor); commit on success, roll back on any error."""
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def to_db_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """DATETIME columns hold naive UTC."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def from_db_datetime(value: Any) -> Optional[datetime]:
    """Normalize DATETIME values read back from MySQL to aware UTC.

    mysql-connector returns DATETIME as a naive datetime, or as a string
    when the pure-Python connector is used without type conversion.
    """

    if value is None:
        return None

    if isinstance(value, str):
        value = datetime.fromisoformat(value)

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    raise TypeError(f"Unsupported MySQL DATETIME value type: {type(value)!r}")
