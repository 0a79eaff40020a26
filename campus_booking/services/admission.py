"""Admission checks shared by the meeting and room-booking services."""

from __future__ import annotations

import logging
from collections.abc import Collection, Hashable
from datetime import date, time

from campus_booking.domain.bus import EventBus
from campus_booking.domain.events import ReservationConflict
from campus_booking.domain.models import ReservationKind
from campus_booking.errors import ConflictError, InvalidIntervalError
from campus_booking.services.conflicts import (
    ReservationStore,
    find_conflicting_reservations,
)

logger = logging.getLogger(__name__)


def ensure_valid_interval(start_time: time, end_time: time) -> None:
    if start_time >= end_time:
        raise InvalidIntervalError("End time must be after start time")


def ensure_no_conflict(
    store: ReservationStore,
    bus: EventBus,
    kind: ReservationKind,
    resource_id: int,
    day: date,
    start_time: time,
    end_time: time,
    active_statuses: Collection[Hashable],
    message: str,
    exclude_id: int | None = None,
) -> None:
    """Raise ConflictError if the slot overlaps an active reservation.

    *exclude_id* is the reservation being edited, approved or restored, which
    must not conflict with itself. Callers hold the resource lock until they
    have committed.
    """
    conflicts = find_conflicting_reservations(
        store, resource_id, day, start_time, end_time, active_statuses, exclude_id
    )
    if not conflicts:
        return

    conflicting_ids = [c.id for c in conflicts]
    logger.warning(
        f"Refused {kind} on resource {resource_id} for {day} "
        f"{start_time:%H:%M}-{end_time:%H:%M}: overlaps {conflicting_ids}"
    )
    bus.publish(
        ReservationConflict(
            kind=kind,
            resource_id=resource_id,
            day=day,
            start_time=start_time,
            end_time=end_time,
            conflicting_ids=conflicting_ids,
            reservation_id=exclude_id,
        )
    )
    raise ConflictError(
        message,
        resource_kind=kind,
        resource_id=resource_id,
        day=day,
        start_time=start_time,
        end_time=end_time,
        conflicting_ids=conflicting_ids,
    )
