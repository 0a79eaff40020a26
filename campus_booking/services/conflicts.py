"""Service for detecting scheduling conflicts between reservations."""

from __future__ import annotations

from collections.abc import Collection, Hashable
from datetime import date, time
from typing import Protocol, TypeVar


class Interval(Protocol):
    id: int | None
    start_time: time
    end_time: time


R = TypeVar("R", bound=Interval)
R_co = TypeVar("R_co", bound=Interval, covariant=True)


class ReservationStore(Protocol[R_co]):
    """Lookup the conflict checker needs from a reservation store.

    Implementations return every reservation for *resource_id* on *day* whose
    status is in *active_statuses*, leaving out *exclude_id* when given.
    """

    def find_active_reservations(
        self,
        resource_id: int,
        day: date,
        active_statuses: Collection[Hashable],
        exclude_id: int | None = None,
    ) -> list[R_co]: ...


def overlaps(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    """Half-open overlap test for ``[a_start, a_end)`` and ``[b_start, b_end)``.

    Intervals that only touch (``a_end == b_start``) do not overlap.
    """
    return a_start < b_end and b_start < a_end


def find_conflicts(new_start: time, new_end: time, existing: list[R]) -> list[R]:
    """Return the existing reservations that overlap the given time range."""
    return [
        reservation
        for reservation in existing
        if overlaps(new_start, new_end, reservation.start_time, reservation.end_time)
    ]


def find_conflicting_reservations(
    store: ReservationStore[R],
    resource_id: int,
    day: date,
    start_time: time,
    end_time: time,
    active_statuses: Collection[Hashable],
    exclude_id: int | None = None,
) -> list[R]:
    """Return active reservations of *resource_id* on *day* overlapping the range.

    Storage errors raised by *store* propagate unchanged.
    """
    if resource_id is None:
        raise ValueError("resource_id is required")
    if not active_statuses:
        raise ValueError("active_statuses must not be empty")

    candidates = store.find_active_reservations(
        resource_id, day, active_statuses, exclude_id
    )
    return find_conflicts(start_time, end_time, candidates)


def has_conflict(
    store: ReservationStore[R],
    resource_id: int,
    day: date,
    start_time: time,
    end_time: time,
    active_statuses: Collection[Hashable],
    exclude_id: int | None = None,
) -> bool:
    """True if another active reservation of the resource overlaps the range.

    The caller guarantees ``start_time < end_time``.
    """
    return bool(
        find_conflicting_reservations(
            store, resource_id, day, start_time, end_time, active_statuses, exclude_id
        )
    )
