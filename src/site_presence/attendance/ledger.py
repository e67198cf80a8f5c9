"""Attendance state machine.

Per worker: ABSENT (no open record) <-> PRESENT (exactly one open record).
Every transition for a user runs as one check-and-set inside that user's
lock; the repository enforces the same rule again at the storage layer so
that writers on other instances cannot open a second session either.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..audit.log import AuditLog
from ..audit.model import AuditEvent
from ..common.datetime_utils import now_utc
from ..common.validators import require_max_length, require_non_empty
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_LOCK_TIMEOUT_SECONDS, MAX_INVALID_REASON_LENGTH
from ..core.enums import AuditAction, AuditOutcome, PresenceState
from ..core.exceptions import (
    AlreadyCheckedIn,
    AttendanceError,
    NotCheckedIn,
    NotFoundError,
    OutsideAnyZone,
    ValidationError,
)
from ..geometry.model import LatLng
from ..zones.registry import ZoneRegistry
from .locks import UserLockTable
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceLedger:
    def __init__(
        self,
        attendance: AttendanceRepository,
        zones: ZoneRegistry,
        *,
        audit: AuditLog | None = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._attendance = attendance
        self._zones = zones
        self._audit = audit
        self._locks = UserLockTable(timeout=lock_timeout)
        self._clock = clock

    # -- transitions --------------------------------------------------------

    def check_in(self, user_id: int, point: LatLng, device_id: Optional[str] = None) -> AttendanceRecord:
        """Open a session in the lowest-id active zone containing ``point``.

        Raises OutsideAnyZone, AlreadyCheckedIn or ConcurrencyConflict.
        """
        user_id = int(user_id)
        try:
            zone = self._zones.resolve_canonical(point)
            if zone is None:
                raise OutsideAnyZone("You are not inside a registered zone")

            with self._zones.admitting(zone.zone_id), self._locks.hold(user_id):
                current = self._attendance.get_open_for_user(user_id)
                if current is not None:
                    raise AlreadyCheckedIn("Already checked in", record_id=current.record_id)
                record = self._attendance.open_session(
                    user_id=user_id,
                    zone_id=zone.zone_id,
                    check_in_time=self._clock(),
                    check_in_point=point,
                    device_id=device_id,
                )
        except AttendanceError as e:
            self._rejected(AuditAction.CHECK_IN, user_id, point, e)
            raise

        logger.info("User %s checked in to zone %s (record %s)", user_id, record.zone_id, record.record_id)
        self._accepted(AuditAction.CHECK_IN, record, point)
        return record

    def check_out(self, user_id: int, point: LatLng, *, record_id: Optional[int] = None) -> AttendanceRecord:
        """Close the worker's open session, recording where they were.

        The checkout point is not required to be inside any zone. When
        ``record_id`` is given it must name the open session.

        Raises NotCheckedIn or ConcurrencyConflict.
        """
        user_id = int(user_id)
        try:
            with self._locks.hold(user_id):
                current = self._attendance.get_open_for_user(user_id)
                if current is None:
                    raise NotCheckedIn("You are not checked in")
                if record_id is not None and current.record_id != int(record_id):
                    raise NotCheckedIn(f"Attendance record {record_id} is not your open session")

                # Keep check_out_time >= check_in_time even if the clock steps back.
                check_out_time = max(self._clock(), current.check_in_time)
                record = self._attendance.close_session(
                    record_id=current.record_id,
                    check_out_time=check_out_time,
                    check_out_point=point,
                )
        except AttendanceError as e:
            self._rejected(AuditAction.CHECK_OUT, user_id, point, e)
            raise

        logger.info("User %s checked out of zone %s (record %s)", user_id, record.zone_id, record.record_id)
        self._accepted(AuditAction.CHECK_OUT, record, point)
        return record

    def invalidate(self, record_id: int, reason: str) -> AttendanceRecord:
        """Void a record (e.g. GPS spoofing found out of band).

        Does not open or close anything; an invalidated open record simply
        stops counting toward presence. A record is invalidated once; the
        first reason is kept.
        """
        reason = require_max_length(require_non_empty(reason, "reason"), MAX_INVALID_REASON_LENGTH, "reason")
        record = self.get_record(record_id)

        with self._locks.hold(record.user_id):
            current = self._attendance.get_by_id(record.record_id)
            if current is not None and not current.is_valid:
                raise ValidationError(f"Attendance record {record_id} is already invalidated")
            voided = self._attendance.invalidate(record.record_id, reason=reason)
        if voided is None:
            raise NotFoundError(f"Attendance record {record_id} not found")

        logger.info("Invalidated attendance record %s of user %s: %s", voided.record_id, voided.user_id, reason)
        self._accepted(AuditAction.INVALIDATE, voided, None, detail=reason)
        return voided

    # -- reads --------------------------------------------------------------

    def get_record(self, record_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(int(record_id))
        if record is None:
            raise NotFoundError(f"Attendance record {record_id} not found")
        return record

    def current_session(self, user_id: int) -> Optional[AttendanceRecord]:
        return self._attendance.get_open_for_user(int(user_id))

    def state_of(self, user_id: int) -> PresenceState:
        return PresenceState.PRESENT if self.current_session(user_id) else PresenceState.ABSENT

    def open_sessions(self) -> Sequence[AttendanceRecord]:
        return self._attendance.list_open()

    def history_for_user(self, user_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceRecord]:
        return self._attendance.list_for_user(int(user_id), limit=limit)

    def records_between(self, start: datetime, end: datetime) -> Sequence[AttendanceRecord]:
        if end < start:
            raise ValidationError("End date must not be before start date")
        return self._attendance.list_between(start, end)

    # -- audit --------------------------------------------------------------

    def _accepted(
        self,
        action: AuditAction,
        record: AttendanceRecord,
        point: Optional[LatLng],
        *,
        detail: Optional[str] = None,
    ) -> None:
        if self._audit is None:
            return
        self._audit.record(
            AuditEvent(
                occurred_at=self._clock(),
                action=action,
                outcome=AuditOutcome.ACCEPTED,
                user_id=record.user_id,
                record_id=record.record_id,
                zone_id=record.zone_id,
                point=point,
                detail=detail,
            )
        )

    def _rejected(self, action: AuditAction, user_id: int, point: LatLng, error: AttendanceError) -> None:
        logger.warning("Rejected %s for user %s: %s (%s)", action.value, user_id, error.code, error)
        if self._audit is None:
            return
        self._audit.record(
            AuditEvent(
                occurred_at=self._clock(),
                action=action,
                outcome=AuditOutcome.REJECTED,
                user_id=user_id,
                record_id=getattr(error, "record_id", None),
                point=point,
                reason=error.code,
                detail=str(error),
            )
        )
