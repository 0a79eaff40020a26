"""Domain event handlers, wired up at application startup."""

from __future__ import annotations

import logging

from campus_booking.domain.bus import EventBus
from campus_booking.domain.events import (
    BookingCancelled,
    BookingRestored,
    BookingUpdated,
    MeetingApproved,
    MeetingCancelled,
    MeetingCompleted,
    MeetingRejected,
    MeetingRequested,
    MeetingRescheduled,
    ReservationConflict,
    RoomBooked,
)
from campus_booking.domain.models import (
    ReservationKind,
    TimelineEntry,
    TimelineEntryType,
)
from campus_booking.repos.memory import TimelineRepository

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires domain-event handlers to the bus so every transition lands on a timeline."""

    def __init__(self, bus: EventBus, timeline_repo: TimelineRepository) -> None:
        self.bus = bus
        self.timeline_repo = timeline_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(MeetingRequested, self.on_meeting_requested)
        self.bus.subscribe(MeetingApproved, self.on_meeting_approved)
        self.bus.subscribe(MeetingRejected, self.on_meeting_rejected)
        self.bus.subscribe(MeetingCancelled, self.on_meeting_cancelled)
        self.bus.subscribe(MeetingCompleted, self.on_meeting_completed)
        self.bus.subscribe(MeetingRescheduled, self.on_meeting_rescheduled)
        self.bus.subscribe(RoomBooked, self.on_room_booked)
        self.bus.subscribe(BookingUpdated, self.on_booking_updated)
        self.bus.subscribe(BookingCancelled, self.on_booking_cancelled)
        self.bus.subscribe(BookingRestored, self.on_booking_restored)
        self.bus.subscribe(ReservationConflict, self.on_reservation_conflict)

    def _record(
        self,
        kind: ReservationKind,
        reservation_id: int,
        entry_type: TimelineEntryType,
        payload: dict | None = None,
    ) -> None:
        self.timeline_repo.add(
            TimelineEntry(
                reservation_kind=kind,
                reservation_id=reservation_id,
                type=entry_type,
                payload=payload or {},
            )
        )

    # ------------------------------------------------------------------
    # Meetings
    # ------------------------------------------------------------------

    def on_meeting_requested(self, event: MeetingRequested) -> None:
        self._record(
            ReservationKind.MEETING,
            event.meeting_id,
            TimelineEntryType.REQUESTED,
            {"student_id": event.student_id, "staff_id": event.staff_id},
        )

    def on_meeting_approved(self, event: MeetingApproved) -> None:
        self._record(
            ReservationKind.MEETING,
            event.meeting_id,
            TimelineEntryType.APPROVED,
            {"responder_id": event.responder_id, "notes": event.notes},
        )

    def on_meeting_rejected(self, event: MeetingRejected) -> None:
        self._record(
            ReservationKind.MEETING,
            event.meeting_id,
            TimelineEntryType.REJECTED,
            {"responder_id": event.responder_id, "notes": event.notes},
        )

    def on_meeting_cancelled(self, event: MeetingCancelled) -> None:
        self._record(
            ReservationKind.MEETING,
            event.meeting_id,
            TimelineEntryType.CANCELLED,
            {"cancelled_by": event.cancelled_by},
        )

    def on_meeting_completed(self, event: MeetingCompleted) -> None:
        self._record(
            ReservationKind.MEETING, event.meeting_id, TimelineEntryType.COMPLETED
        )

    def on_meeting_rescheduled(self, event: MeetingRescheduled) -> None:
        self._record(
            ReservationKind.MEETING,
            event.meeting_id,
            TimelineEntryType.RESCHEDULED,
            {
                "rescheduled_by": event.rescheduled_by,
                "previous_date": event.previous_date.isoformat(),
                "previous_start_time": event.previous_start_time.isoformat("minutes"),
                "previous_end_time": event.previous_end_time.isoformat("minutes"),
            },
        )

    # ------------------------------------------------------------------
    # Room bookings
    # ------------------------------------------------------------------

    def on_room_booked(self, event: RoomBooked) -> None:
        self._record(
            ReservationKind.ROOM_BOOKING,
            event.booking_id,
            TimelineEntryType.BOOKED,
            {"room_id": event.room_id, "user_id": event.user_id},
        )

    def on_booking_updated(self, event: BookingUpdated) -> None:
        self._record(
            ReservationKind.ROOM_BOOKING,
            event.booking_id,
            TimelineEntryType.UPDATED,
            {"previous_room_id": event.previous_room_id, "room_id": event.room_id},
        )

    def on_booking_cancelled(self, event: BookingCancelled) -> None:
        self._record(
            ReservationKind.ROOM_BOOKING, event.booking_id, TimelineEntryType.CANCELLED
        )

    def on_booking_restored(self, event: BookingRestored) -> None:
        self._record(
            ReservationKind.ROOM_BOOKING, event.booking_id, TimelineEntryType.RESTORED
        )

    # ------------------------------------------------------------------
    # Refused admissions
    # ------------------------------------------------------------------

    def on_reservation_conflict(self, event: ReservationConflict) -> None:
        # A refused create has no reservation of its own to attach the entry to.
        if event.reservation_id is None:
            return
        self._record(
            event.kind,
            event.reservation_id,
            TimelineEntryType.CONFLICT_REJECTED,
            {
                "resource_id": event.resource_id,
                "date": event.day.isoformat(),
                "start_time": event.start_time.isoformat("minutes"),
                "end_time": event.end_time.isoformat("minutes"),
                "conflicting_ids": event.conflicting_ids,
            },
        )
        logger.info(
            f"{event.kind} {event.reservation_id} kept its previous state after a conflict "
            f"with {event.conflicting_ids}"
        )
