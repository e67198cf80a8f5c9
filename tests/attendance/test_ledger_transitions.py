from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from site_presence.core.enums import AuditAction, AuditOutcome, PresenceState
from site_presence.core.exceptions import (
    AlreadyCheckedIn,
    NotCheckedIn,
    NotFoundError,
    OutsideAnyZone,
    ValidationError,
)
from site_presence.geometry.model import LatLng

INSIDE_Z1 = LatLng(10.0003, 20.0)  # ~33 m from the center
OUTSIDE_Z1 = LatLng(10.0010, 20.0)  # ~111 m from the center


def test_walkthrough_check_in_twice_then_check_out_twice(pit_site):
    ledger = pit_site.ledger

    record = ledger.check_in("1", INSIDE_Z1, device_id="tablet-7")
    assert record.zone_id == 1
    assert record.user_id == 1
    assert record.device_id == "tablet-7"
    assert record.check_out_time is None

    with pytest.raises(AlreadyCheckedIn) as exc:
        ledger.check_in(1, INSIDE_Z1)
    assert exc.value.record_id == record.record_id

    closed = ledger.check_out(1, OUTSIDE_Z1)
    assert closed.record_id == record.record_id
    assert closed.check_out_point == OUTSIDE_Z1
    assert closed.check_out_time >= closed.check_in_time

    with pytest.raises(NotCheckedIn):
        ledger.check_out(1, OUTSIDE_Z1)

    assert len(pit_site.attendance_repo.list_for_user(1)) == 1


def test_check_in_outside_every_zone_is_rejected(pit_site):
    with pytest.raises(OutsideAnyZone):
        pit_site.ledger.check_in(1, OUTSIDE_Z1)
    assert pit_site.attendance_repo.list_for_user(1) == []
    assert pit_site.ledger.state_of(1) == PresenceState.ABSENT


def test_check_in_with_no_zones_at_all_is_rejected(site):
    with pytest.raises(OutsideAnyZone):
        site.ledger.check_in(1, INSIDE_Z1)


def test_second_check_in_creates_no_record(pit_site):
    pit_site.ledger.check_in(1, INSIDE_Z1)
    for _ in range(3):
        with pytest.raises(AlreadyCheckedIn):
            pit_site.ledger.check_in(1, INSIDE_Z1)
    assert len(pit_site.attendance_repo.list_for_user(1)) == 1


def test_check_out_when_absent_mutates_nothing(pit_site):
    first = pit_site.ledger.check_in(1, INSIDE_Z1)
    pit_site.ledger.check_out(1, INSIDE_Z1)
    before = pit_site.attendance_repo.get_by_id(first.record_id)

    with pytest.raises(NotCheckedIn):
        pit_site.ledger.check_out(1, INSIDE_Z1)

    assert pit_site.attendance_repo.get_by_id(first.record_id) == before


def test_overlapping_zones_pick_lowest_id_for_every_worker(site):
    z1 = site.add_circle("Pit", 10.0, 20.0, 50.0)
    z2 = site.add_circle("Haul road", 10.0, 20.0, 200.0)
    assert z1.zone_id < z2.zone_id

    first = site.ledger.check_in(1, INSIDE_Z1)
    second = site.ledger.check_in(2, INSIDE_Z1)
    assert first.zone_id == z1.zone_id
    assert second.zone_id == z1.zone_id


def test_deactivated_zone_no_longer_accepts_check_ins(site):
    z1 = site.add_circle("Pit", 10.0, 20.0, 50.0)
    z2 = site.add_circle("Haul road", 10.0, 20.0, 200.0)
    site.registry.deactivate(z1.zone_id)

    assert site.ledger.check_in(1, INSIDE_Z1).zone_id == z2.zone_id


def test_check_out_with_wrong_record_id_is_rejected(pit_site):
    record = pit_site.ledger.check_in(1, INSIDE_Z1)
    with pytest.raises(NotCheckedIn):
        pit_site.ledger.check_out(1, INSIDE_Z1, record_id=record.record_id + 100)
    assert pit_site.ledger.check_out(1, INSIDE_Z1, record_id=record.record_id).check_out_time is not None


def test_worker_can_start_a_new_session_after_checking_out(pit_site):
    pit_site.ledger.check_in(1, INSIDE_Z1)
    pit_site.ledger.check_out(1, INSIDE_Z1)
    pit_site.ledger.check_in(1, INSIDE_Z1)

    history = pit_site.ledger.history_for_user(1)
    assert len(history) == 2
    assert history[0].check_in_time > history[1].check_in_time
    assert history[0].is_open and not history[1].is_open


def test_invalidate_open_record_frees_the_worker(pit_site):
    record = pit_site.ledger.check_in(1, INSIDE_Z1)

    voided = pit_site.ledger.invalidate(record.record_id, "GPS spoofing")

    assert voided.is_valid is False
    assert voided.invalid_reason == "GPS spoofing"
    assert voided.check_out_time is None
    assert pit_site.ledger.state_of(1) == PresenceState.ABSENT
    with pytest.raises(NotCheckedIn):
        pit_site.ledger.check_out(1, INSIDE_Z1)
    assert pit_site.ledger.check_in(1, INSIDE_Z1).record_id != record.record_id
    assert pit_site.ledger.get_record(record.record_id).is_valid is False


def test_invalidate_requires_reason_and_existing_record(pit_site):
    record = pit_site.ledger.check_in(1, INSIDE_Z1)
    with pytest.raises(ValidationError):
        pit_site.ledger.invalidate(record.record_id, " ")
    with pytest.raises(NotFoundError):
        pit_site.ledger.invalidate(999, "bad")


def test_check_out_time_never_precedes_check_in_time(pit_site):
    clock = pit_site.clock
    record = pit_site.ledger.check_in(1, INSIDE_Z1)
    clock.current = record.check_in_time - timedelta(minutes=5)

    closed = pit_site.ledger.check_out(1, INSIDE_Z1)
    assert closed.check_out_time == record.check_in_time


def test_records_between_is_inclusive_and_validates_order(pit_site):
    record = pit_site.ledger.check_in(1, INSIDE_Z1)
    day_start = datetime(2026, 3, 2, tzinfo=timezone.utc)
    day_end = day_start + timedelta(days=1)

    assert pit_site.ledger.records_between(day_start, day_end) == [record]
    assert pit_site.ledger.records_between(record.check_in_time, record.check_in_time) == [record]
    assert pit_site.ledger.records_between(day_end, day_end + timedelta(days=1)) == []
    with pytest.raises(ValidationError):
        pit_site.ledger.records_between(day_end, day_start)


def test_transitions_are_audited(pit_site):
    pit_site.ledger.check_in(1, INSIDE_Z1)
    with pytest.raises(AlreadyCheckedIn):
        pit_site.ledger.check_in(1, INSIDE_Z1)
    pit_site.ledger.check_out(1, OUTSIDE_Z1)
    with pytest.raises(NotCheckedIn):
        pit_site.ledger.check_out(1, OUTSIDE_Z1)
    with pytest.raises(OutsideAnyZone):
        pit_site.ledger.check_in(1, OUTSIDE_Z1)

    events = list(reversed(pit_site.audit.events(user_id=1)))
    assert [(e.action, e.outcome, e.reason) for e in events] == [
        (AuditAction.CHECK_IN, AuditOutcome.ACCEPTED, None),
        (AuditAction.CHECK_IN, AuditOutcome.REJECTED, "already_checked_in"),
        (AuditAction.CHECK_OUT, AuditOutcome.ACCEPTED, None),
        (AuditAction.CHECK_OUT, AuditOutcome.REJECTED, "not_checked_in"),
        (AuditAction.CHECK_IN, AuditOutcome.REJECTED, "outside_any_zone"),
    ]
    assert events[2].point == OUTSIDE_Z1
    assert events[1].record_id == events[0].record_id


def test_invalidate_rejects_overlong_reason(pit_site):
    record = pit_site.ledger.check_in(1, INSIDE_Z1)
    with pytest.raises(ValidationError):
        pit_site.ledger.invalidate(record.record_id, "x" * 256)
    assert pit_site.ledger.get_record(record.record_id).is_valid is True
    assert pit_site.ledger.invalidate(record.record_id, "y" * 255).is_valid is False


def test_invalidating_twice_keeps_the_first_reason(pit_site):
    record = pit_site.ledger.check_in(1, INSIDE_Z1)
    pit_site.ledger.invalidate(record.record_id, "GPS spoofing")

    with pytest.raises(ValidationError):
        pit_site.ledger.invalidate(record.record_id, "shared device")
    assert pit_site.ledger.get_record(record.record_id).invalid_reason == "GPS spoofing"
