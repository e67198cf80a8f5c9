"""Helpers shared by the JSON controllers."""

from __future__ import annotations

import logging
from functools import wraps

from flask import jsonify, session

from ..core.enums import Role
from ..core.exceptions import (
    AlreadyCheckedIn,
    AuthorizationError,
    ConcurrencyConflict,
    DomainError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


def _status_for(error: DomainError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, AuthorizationError):
        return 403
    if isinstance(error, ConcurrencyConflict):
        return 409
    return 400


def error_response(error: DomainError):
    body = {"message": str(error), "code": error.code}
    if isinstance(error, AlreadyCheckedIn) and error.record_id is not None:
        body["attendanceId"] = error.record_id
    return jsonify(body), _status_for(error)


def json_view(failure_message: str):
    """Map domain errors to JSON responses; anything else becomes a 500."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except DomainError as e:
                return error_response(e)
            except Exception:
                logger.exception(failure_message)
                return jsonify({"message": failure_message}), 500

        return wrapper

    return decorator


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"message": "Not authenticated"}), 401
        return view(*args, **kwargs)

    return wrapper


def manager_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"message": "Not authenticated"}), 401
        if session.get("role") != Role.MANAGER.value:
            return jsonify({"message": "Unauthorized"}), 403
        return view(*args, **kwargs)

    return wrapper


def current_user_id() -> int:
    return int(session["user_id"])
