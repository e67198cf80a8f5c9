"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Mean earth radius for the spherical haversine approximation.
EARTH_RADIUS_METERS = 6_371_000.0

MIN_POLYGON_VERTICES = 3

# Tolerance (in degrees) for treating a point as lying on a polygon edge.
BOUNDARY_TOLERANCE_DEGREES = 1e-12

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_AUDIT_LIMIT = 100
DEFAULT_LOCK_TIMEOUT_SECONDS = 2.0
AUDIT_QUEUE_SIZE = 1024

# Matches attendance_records.invalid_reason VARCHAR(255).
MAX_INVALID_REASON_LENGTH = 255
