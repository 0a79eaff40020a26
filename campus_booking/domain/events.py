"""Domain events emitted during the meeting and room-booking lifecycles."""

from __future__ import annotations

from datetime import date, time

from pydantic import BaseModel

from campus_booking.domain.models import ReservationKind


class MeetingRequested(BaseModel):
    """Fired when a student's meeting request is stored as PENDING."""

    meeting_id: int
    student_id: int
    staff_id: int


class MeetingApproved(BaseModel):
    meeting_id: int
    responder_id: int
    notes: str | None = None


class MeetingRejected(BaseModel):
    meeting_id: int
    responder_id: int
    notes: str | None = None


class MeetingCancelled(BaseModel):
    meeting_id: int
    cancelled_by: int


class MeetingCompleted(BaseModel):
    meeting_id: int


class MeetingRescheduled(BaseModel):
    """Fired when a meeting moves to a new slot and goes back to PENDING."""

    meeting_id: int
    rescheduled_by: int
    previous_date: date
    previous_start_time: time
    previous_end_time: time


class RoomBooked(BaseModel):
    booking_id: int
    room_id: int
    user_id: int


class BookingUpdated(BaseModel):
    booking_id: int
    previous_room_id: int
    room_id: int


class BookingCancelled(BaseModel):
    booking_id: int


class BookingRestored(BaseModel):
    booking_id: int


class ReservationConflict(BaseModel):
    """Fired when an admission is refused because of an overlapping reservation.

    ``reservation_id`` is set when an existing reservation was being edited,
    approved or restored; it is None for a refused create.
    """

    kind: ReservationKind
    resource_id: int
    day: date
    start_time: time
    end_time: time
    conflicting_ids: list[int]
    reservation_id: int | None = None
