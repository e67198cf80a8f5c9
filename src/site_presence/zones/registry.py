"""Zone registry with copy-on-write snapshots.

Writers serialize on a lock, persist the change, then publish a fresh
immutable snapshot by rebinding one attribute. Readers grab the current
snapshot reference and never wait on writers.

With `max_staleness` set, a read that finds the snapshot older than that
reloads it from storage, so zones written by other instances sharing the
database show up. Check-ins pin the zone they are admitted to, and a
pinned zone is tombstoned rather than purged.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, Dict, FrozenSet, Iterator, Optional, Sequence, Tuple

from ..common.datetime_utils import now_utc
from ..common.validators import require_non_empty
from ..core.exceptions import NotFoundError, OutsideAnyZone, ValidationError
from ..geometry.engine import contains, validate_shape
from ..geometry.model import LatLng
from .model import GeofenceZone, NewZone, ZonePatch
from .repository import ZoneRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZoneSnapshot:
    """Immutable view of the zone set at one point in time."""

    by_id: Dict[int, GeofenceZone]
    active: Tuple[GeofenceZone, ...]

    @classmethod
    def build(cls, zones: Sequence[GeofenceZone]) -> "ZoneSnapshot":
        ordered = sorted(zones, key=lambda z: z.zone_id)
        return cls(
            by_id={z.zone_id: z for z in ordered},
            active=tuple(z for z in ordered if z.is_active),
        )


@dataclass(frozen=True)
class DeleteOutcome:
    zone_id: int
    purged: bool


class ZoneRegistry:
    def __init__(
        self,
        zones: ZoneRepository,
        *,
        has_history: Callable[[int], bool] | None = None,
        clock: Callable = now_utc,
        max_staleness: Optional[float] = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self._zones = zones
        self._has_history = has_history or (lambda zone_id: True)
        self._clock = clock
        self._max_staleness = max_staleness
        self._monotonic = monotonic
        self._write_lock = threading.Lock()
        self._pins: Dict[int, int] = {}
        self._snapshot = ZoneSnapshot.build(zones.list_all())
        self._loaded_at = monotonic()

    def snapshot(self) -> ZoneSnapshot:
        return self._current()

    def refresh(self) -> None:
        """Reload from storage (picks up writes made by other instances)."""
        with self._write_lock:
            self._reload()

    def _reload(self) -> None:
        self._snapshot = ZoneSnapshot.build(self._zones.list_all())
        self._loaded_at = self._monotonic()

    def _current(self) -> ZoneSnapshot:
        if self._max_staleness is not None and self._monotonic() - self._loaded_at >= self._max_staleness:
            # One reader reloads; the others keep using the snapshot they have.
            if self._write_lock.acquire(blocking=False):
                try:
                    if self._monotonic() - self._loaded_at >= self._max_staleness:
                        self._reload()
                        logger.debug("Reloaded %d zones from storage", len(self._snapshot.by_id))
                finally:
                    self._write_lock.release()
        return self._snapshot

    def _publish(self, zone: GeofenceZone | None, *, removed_id: int | None = None) -> None:
        by_id = dict(self._snapshot.by_id)
        if zone is not None:
            by_id[zone.zone_id] = zone
        if removed_id is not None:
            by_id.pop(removed_id, None)
        self._snapshot = ZoneSnapshot.build(list(by_id.values()))

    # -- reads --------------------------------------------------------------

    def resolve_zones(self, point: LatLng) -> FrozenSet[int]:
        """Ids of every active zone whose shape contains the point."""
        snap = self._current()
        return frozenset(z.zone_id for z in snap.active if contains(z.shape, point))

    def resolve_canonical(self, point: LatLng) -> Optional[GeofenceZone]:
        """Lowest-id active zone containing the point, if any."""
        snap = self._current()
        for zone in snap.active:
            if contains(zone.shape, point):
                return zone
        return None

    def is_active(self, zone_id: int) -> bool:
        zone = self._current().by_id.get(int(zone_id))
        return bool(zone and zone.is_active)

    def get_zone(self, zone_id: int) -> GeofenceZone:
        zone = self._current().by_id.get(int(zone_id))
        if zone is None:
            raise NotFoundError(f"Geofence zone {zone_id} not found")
        return zone

    def list_zones(self, *, include_inactive: bool = True) -> Sequence[GeofenceZone]:
        snap = self._current()
        if include_inactive:
            return list(snap.by_id.values())
        return list(snap.active)

    @contextmanager
    def admitting(self, zone_id: int) -> Iterator[GeofenceZone]:
        """Pin an active zone for the duration of a check-in.

        Raises OutsideAnyZone if the zone was deactivated or removed after
        it was resolved.
        """
        zone_id = int(zone_id)
        with self._write_lock:
            zone = self._snapshot.by_id.get(zone_id)
            if zone is None or not zone.is_active:
                raise OutsideAnyZone("You are not inside a registered zone")
            self._pins[zone_id] = self._pins.get(zone_id, 0) + 1
        try:
            yield zone
        finally:
            with self._write_lock:
                remaining = self._pins[zone_id] - 1
                if remaining:
                    self._pins[zone_id] = remaining
                else:
                    del self._pins[zone_id]

    # -- writes -------------------------------------------------------------

    def create(self, new_zone: NewZone, *, created_by: int | None = None) -> GeofenceZone:
        name = require_non_empty(new_zone.name, "name")
        shape = validate_shape(new_zone.shape)

        with self._write_lock:
            zone = self._zones.insert(
                name=name,
                description=new_zone.description,
                shape=shape,
                is_active=bool(new_zone.is_active),
                created_by=created_by,
                created_at=self._clock(),
            )
            self._publish(zone)

        logger.info("Created zone %s (%s, %s)", zone.zone_id, zone.name, zone.shape.kind.value)
        return zone

    def update(self, zone_id: int, patch: ZonePatch) -> GeofenceZone:
        if patch.is_empty():
            raise ValidationError("Nothing to update")

        changes: dict = {}
        if patch.name is not None:
            changes["name"] = require_non_empty(patch.name, "name")
        if patch.description is not None:
            changes["description"] = patch.description
        if patch.shape is not None:
            changes["shape"] = validate_shape(patch.shape)
        if patch.is_active is not None:
            changes["is_active"] = bool(patch.is_active)

        with self._write_lock:
            current = self._stored_zone(zone_id)
            updated = replace(current, updated_at=self._clock(), **changes)
            if not self._zones.save(updated):
                raise NotFoundError(f"Geofence zone {zone_id} not found")
            self._publish(updated)

        logger.info("Updated zone %s fields=%s", updated.zone_id, sorted(changes))
        return updated

    def deactivate(self, zone_id: int) -> GeofenceZone:
        return self.update(zone_id, ZonePatch(is_active=False))

    def delete(self, zone_id: int) -> DeleteOutcome:
        """Purge a zone with no attendance history, otherwise tombstone it.

        A zone pinned by an in-flight check-in counts as having history.
        """
        zone_id = int(zone_id)
        with self._write_lock:
            current = self._stored_zone(zone_id)
            if not self._pins.get(zone_id) and not self._has_history(zone_id):
                self._zones.delete(zone_id)
                self._publish(None, removed_id=zone_id)
                logger.info("Purged zone %s", zone_id)
                return DeleteOutcome(zone_id=zone_id, purged=True)

            if current.is_active:
                tombstoned = replace(current, is_active=False, updated_at=self._clock())
                self._zones.save(tombstoned)
                self._publish(tombstoned)
            logger.info("Tombstoned zone %s (attendance history exists)", zone_id)
            return DeleteOutcome(zone_id=zone_id, purged=False)

    def _stored_zone(self, zone_id: int) -> GeofenceZone:
        # Storage, not the snapshot: other instances may have written since.
        zone = self._zones.get_by_id(int(zone_id))
        if zone is None:
            raise NotFoundError(f"Geofence zone {zone_id} not found")
        return zone
