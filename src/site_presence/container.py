from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.ledger import AttendanceLedger
from .attendance.memory_attendance_repository import InMemoryAttendanceRepository
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .audit.log import AuditLog
from .audit.mysql_audit_repository import MySQLAuditRepository
from .audit.repository import AuditRepository, InMemoryAuditRepository
from .core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS
from .core.exceptions import ValidationError
from .database.connection import DBConfig, DatabaseConnection
from .presence.service import PresenceQueryService
from .zones.memory_zone_repository import InMemoryZoneRepository
from .zones.mysql_zone_repository import MySQLZoneRepository
from .zones.registry import ZoneRegistry
from .zones.repository import ZoneRepository


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    zones_repo: ZoneRepository
    attendance_repo: AttendanceRepository
    audit_repo: AuditRepository

    zone_registry: ZoneRegistry
    audit_log: AuditLog
    ledger: AttendanceLedger
    presence_service: PresenceQueryService


def build_container(
    *,
    storage_backend: str = "memory",
    db_config: dict | None = None,
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
    audit_async: bool = False,
    zone_refresh_seconds: float | None = None,
) -> Container:
    conn: Optional[DatabaseConnection] = None

    if storage_backend == "memory":
        zones_repo = InMemoryZoneRepository()
        attendance_repo = InMemoryAttendanceRepository()
        audit_repo = InMemoryAuditRepository()
    elif storage_backend == "mysql":
        if not db_config:
            raise ValidationError("DB_CONFIG is required for the mysql storage backend")
        conn = DatabaseConnection(DBConfig.from_dict(db_config))
        zones_repo = MySQLZoneRepository(conn)
        attendance_repo = MySQLAttendanceRepository(conn)
        audit_repo = MySQLAuditRepository(conn)
    else:
        raise ValidationError(f"Unknown storage backend: {storage_backend!r}")

    # Only shared storage can change underneath this process.
    max_staleness = zone_refresh_seconds if storage_backend == "mysql" else None
    zone_registry = ZoneRegistry(
        zones_repo,
        has_history=attendance_repo.has_records_for_zone,
        max_staleness=max_staleness,
    )
    audit_log = AuditLog(audit_repo, asynchronous=audit_async)
    ledger = AttendanceLedger(attendance_repo, zone_registry, audit=audit_log, lock_timeout=lock_timeout)
    presence_service = PresenceQueryService(zone_registry, ledger)

    return Container(
        conn=conn,
        zones_repo=zones_repo,
        attendance_repo=attendance_repo,
        audit_repo=audit_repo,
        zone_registry=zone_registry,
        audit_log=audit_log,
        ledger=ledger,
        presence_service=presence_service,
    )
