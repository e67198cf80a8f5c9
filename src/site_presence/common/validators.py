from __future__ import annotations

import math

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} must not be empty")
    return value.strip()


def require_max_length(value: str, max_length: int, field_name: str) -> str:
    if len(value) > max_length:
        raise ValidationError(f"{field_name} must be at most {max_length} characters")
    return value


def require_positive_int(value, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if number <= 0:
        raise ValidationError(f"{field_name} must be positive")
    return number


def require_finite(value, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not math.isfinite(number):
        raise ValidationError(f"{field_name} must be finite")
    return number


def require_latitude(value) -> float:
    lat = require_finite(value, "latitude")
    if not -90.0 <= lat <= 90.0:
        raise ValidationError(f"latitude out of range: {lat}")
    return lat


def require_longitude(value) -> float:
    lng = require_finite(value, "longitude")
    if not -180.0 <= lng <= 180.0:
        raise ValidationError(f"longitude out of range: {lng}")
    return lng
