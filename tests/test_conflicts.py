"""Tests for the conflict-detection service."""

from __future__ import annotations

import itertools
from datetime import date, time

import pytest

from campus_booking.domain.models import (
    BOOKING_ACTIVE_STATUSES,
    MEETING_ACTIVE_STATUSES,
    BookingStatus,
    Meeting,
    MeetingStatus,
    RoomBooking,
)
from campus_booking.errors import StorageError
from campus_booking.repos.memory import MeetingRepository, RoomBookingRepository
from campus_booking.services.conflicts import (
    find_conflicting_reservations,
    find_conflicts,
    has_conflict,
    overlaps,
)

DAY = date(2024, 3, 1)


def t(hhmm: str) -> time:
    hours, minutes = hhmm.split(":")
    return time(int(hours), int(minutes))


def _book(
    repo: RoomBookingRepository,
    start: str,
    end: str,
    room_id: int = 1,
    day: date = DAY,
    status: BookingStatus = BookingStatus.CONFIRMED,
) -> RoomBooking:
    return repo.add(
        RoomBooking(
            room_id=room_id,
            user_id=7,
            booking_date=day,
            start_time=t(start),
            end_time=t(end),
            status=status,
        )
    )


# ---------------------------------------------------------------------------
# Overlap predicate
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "a, b, expected",
    [
        (("9:00", "10:00"), ("10:00", "11:00"), False),  # touching
        (("9:00", "10:00"), ("9:00", "10:00"), True),  # identical
        (("9:00", "12:00"), ("10:00", "11:00"), True),  # b inside a
        (("10:00", "11:00"), ("9:00", "12:00"), True),  # a inside b
        (("9:00", "10:30"), ("10:00", "11:00"), True),  # partial
        (("9:00", "10:00"), ("11:00", "12:00"), False),  # disjoint
    ],
)
def test_overlaps_boundary_cases(a, b, expected):
    a_start, a_end = map(t, a)
    b_start, b_end = map(t, b)
    assert overlaps(a_start, a_end, b_start, b_end) is expected
    # Symmetric in its two intervals.
    assert overlaps(b_start, b_end, a_start, a_end) is expected


def _three_clause_overlap(existing_start, existing_end, start, end) -> bool:
    """The OR-of-three-clauses form used by the old SQL conflict queries."""
    return (
        (existing_start <= start and existing_end > start)
        or (existing_start < end and existing_end >= end)
        or (existing_start >= start and existing_end <= end)
    )


def test_two_inequality_form_matches_three_clause_form():
    """Every pair of valid intervals on a quarter-hour grid from 9:00 to 11:00."""
    grid = [time(9 + m // 60, m % 60) for m in range(0, 121, 15)]
    intervals = [(s, e) for s, e in itertools.product(grid, grid) if s < e]

    for (s1, e1), (s2, e2) in itertools.product(intervals, intervals):
        assert overlaps(s1, e1, s2, e2) == _three_clause_overlap(s1, e1, s2, e2), (
            s1,
            e1,
            s2,
            e2,
        )


def test_find_conflicts_returns_only_overlapping():
    repo = RoomBookingRepository()
    early = _book(repo, "8:00", "9:00")
    overlapping = _book(repo, "9:30", "10:30")
    touching = _book(repo, "11:00", "12:00")

    conflicts = find_conflicts(t("9:00"), t("11:00"), [early, overlapping, touching])
    assert conflicts == [overlapping]


# ---------------------------------------------------------------------------
# has_conflict against a store
# ---------------------------------------------------------------------------


def test_exclusion_ignores_the_reservation_being_rechecked():
    repo = RoomBookingRepository()
    booking = _book(repo, "9:00", "10:00")

    assert has_conflict(repo, 1, DAY, t("9:30"), t("10:30"), BOOKING_ACTIVE_STATUSES)
    assert not has_conflict(
        repo,
        1,
        DAY,
        t("9:30"),
        t("10:30"),
        BOOKING_ACTIVE_STATUSES,
        exclude_id=booking.id,
    )


def test_exclusion_still_sees_other_reservations():
    repo = RoomBookingRepository()
    booking = _book(repo, "9:00", "10:00")
    other = _book(repo, "10:00", "11:00")

    conflicts = find_conflicting_reservations(
        repo, 1, DAY, t("9:30"), t("10:30"), BOOKING_ACTIVE_STATUSES, booking.id
    )
    assert [c.id for c in conflicts] == [other.id]


def test_inactive_statuses_never_conflict():
    repo = RoomBookingRepository()
    _book(repo, "9:00", "10:00", status=BookingStatus.CANCELLED)

    assert not has_conflict(repo, 1, DAY, t("9:00"), t("10:00"), BOOKING_ACTIVE_STATUSES)


def test_active_status_set_is_supplied_by_caller():
    repo = RoomBookingRepository()
    _book(repo, "9:00", "10:00", status=BookingStatus.CANCELLED)

    assert has_conflict(
        repo, 1, DAY, t("9:00"), t("10:00"), {BookingStatus.CANCELLED}
    )


def test_other_resources_do_not_conflict():
    repo = RoomBookingRepository()
    _book(repo, "9:00", "10:00", room_id=1)

    assert not has_conflict(repo, 2, DAY, t("9:00"), t("10:00"), BOOKING_ACTIVE_STATUSES)


def test_other_dates_do_not_conflict():
    repo = RoomBookingRepository()
    _book(repo, "9:00", "10:00", day=date(2024, 3, 2))

    assert not has_conflict(repo, 1, DAY, t("9:00"), t("10:00"), BOOKING_ACTIVE_STATUSES)


def test_empty_active_statuses_rejected():
    with pytest.raises(ValueError):
        has_conflict(RoomBookingRepository(), 1, DAY, t("9:00"), t("10:00"), set())


class _BrokenStore:
    def find_active_reservations(self, resource_id, day, active_statuses, exclude_id=None):
        raise StorageError("connection reset")


def test_storage_errors_propagate():
    with pytest.raises(StorageError, match="connection reset"):
        has_conflict(_BrokenStore(), 1, DAY, t("9:00"), t("10:00"), BOOKING_ACTIVE_STATUSES)


def test_meeting_scenario_by_staff_member():
    """R1 holds an approved 9:00-10:00 meeting on 2024-03-01."""
    repo = MeetingRepository()
    repo.add(
        Meeting(
            student_id=100,
            staff_id=1,
            subject="Thesis check-in",
            meeting_date=DAY,
            start_time=t("9:00"),
            end_time=t("10:00"),
            status=MeetingStatus.APPROVED,
        )
    )

    assert has_conflict(repo, 1, DAY, t("9:30"), t("10:30"), MEETING_ACTIVE_STATUSES)
    assert not has_conflict(repo, 1, DAY, t("10:00"), t("11:00"), MEETING_ACTIVE_STATUSES)
    assert not has_conflict(repo, 2, DAY, t("9:00"), t("10:00"), MEETING_ACTIVE_STATUSES)
