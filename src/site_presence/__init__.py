"""Site Presence package.

Geofence zone membership and attendance tracking for a mining site. The
package is organized by feature modules (geometry, zones, attendance,
presence, audit) with thin Flask controllers over service/repository layers.
"""
