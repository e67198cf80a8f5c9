from __future__ import annotations

from datetime import datetime, time, timezone

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import current_user_id, json_view, login_required, manager_required
from ..common.validators import require_positive_int
from ..container import Container
from ..core.constants import DEFAULT_AUDIT_LIMIT, DEFAULT_HISTORY_LIMIT
from ..core.exceptions import ValidationError


def _coordinates(data: dict) -> tuple:
    coords = data.get("coordinates")
    if isinstance(coords, dict):
        return coords.get("lat"), coords.get("lng")
    if "lat" in data and "lng" in data:
        return data["lat"], data["lng"]
    raise ValidationError("Missing required fields")


def _optional_id(value):
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("attendanceId must be an integer")


def _limit(value: str | None, default: int) -> int:
    if value is None:
        return default
    return require_positive_int(value, "limit")


def _parse_day(value: str | None, field_name: str):
    if not value:
        raise ValidationError("Missing date range")
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field_name} must be YYYY-MM-DD")


def register(app: Flask, container: Container) -> None:
    presence = container.presence_service
    ledger = container.ledger

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="attendance_check_in")
    @login_required
    @json_view("Failed to record check-in")
    def attendance_check_in():
        data = request.get_json(silent=True) or {}
        lat, lng = _coordinates(data)
        record = presence.check_in(current_user_id(), lat, lng, device_id=data.get("deviceId"))
        return jsonify(record.to_dict()), 201

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="attendance_check_out")
    @login_required
    @json_view("Failed to record check-out")
    def attendance_check_out():
        data = request.get_json(silent=True) or {}
        lat, lng = _coordinates(data)
        record = presence.check_out(current_user_id(), lat, lng, record_id=_optional_id(data.get("attendanceId")))
        return jsonify(record.to_dict())

    @app.route("/api/attendance/status", methods=["GET"], endpoint="attendance_status")
    @login_required
    @json_view("Failed to fetch attendance status")
    def attendance_status():
        user_id = current_user_id()
        session_record = ledger.current_session(user_id)
        return jsonify(
            {
                "userId": user_id,
                "state": ledger.state_of(user_id).value,
                "present": session_record is not None,
                "session": session_record.to_dict() if session_record else None,
            }
        )

    @app.route("/api/attendance/me", methods=["GET"], endpoint="attendance_me")
    @login_required
    @json_view("Failed to fetch attendance records")
    def attendance_me():
        limit = _limit(request.args.get("limit"), DEFAULT_HISTORY_LIMIT)
        rows = ledger.history_for_user(current_user_id(), limit=limit)
        return jsonify([r.to_dict() for r in rows])

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_range")
    @manager_required
    @json_view("Failed to fetch attendance records")
    def attendance_range():
        start_day = _parse_day(request.args.get("startDate"), "startDate")
        end_day = _parse_day(request.args.get("endDate"), "endDate")

        # End date covers the whole day.
        start = datetime.combine(start_day, time.min, tzinfo=timezone.utc)
        end = datetime.combine(end_day, time.max, tzinfo=timezone.utc)
        rows = ledger.records_between(start, end)
        return jsonify([r.to_dict() for r in rows])

    @app.route("/api/attendance/<int:record_id>/invalidate", methods=["POST"], endpoint="attendance_invalidate")
    @manager_required
    @json_view("Failed to invalidate attendance record")
    def attendance_invalidate(record_id: int):
        data = request.get_json(silent=True) or {}
        record = ledger.invalidate(record_id, str(data.get("reason") or ""))
        return jsonify(record.to_dict())

    @app.route("/api/attendance/audit", methods=["GET"], endpoint="attendance_audit")
    @manager_required
    @json_view("Failed to fetch audit log")
    def attendance_audit():
        user_id = request.args.get("userId", type=int)
        limit = _limit(request.args.get("limit"), DEFAULT_AUDIT_LIMIT)
        events = container.audit_log.events(user_id=user_id, limit=limit)
        return jsonify([e.to_dict() for e in events])
