"""Domain models for meetings, rooms and room bookings."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator


class MeetingStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class BookingStatus(StrEnum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class RoomStatus(StrEnum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"


class ReservationKind(StrEnum):
    MEETING = "meeting"
    ROOM_BOOKING = "room_booking"


class TimelineEntryType(StrEnum):
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    RESCHEDULED = "rescheduled"
    BOOKED = "booked"
    UPDATED = "updated"
    RESTORED = "restored"
    CONFLICT_REJECTED = "conflict_rejected"


# Statuses that occupy the resource and therefore take part in conflict checks.
MEETING_ACTIVE_STATUSES = frozenset({MeetingStatus.PENDING, MeetingStatus.APPROVED})
BOOKING_ACTIVE_STATUSES = frozenset({BookingStatus.CONFIRMED})

MEETING_TRANSITIONS: dict[MeetingStatus, frozenset[MeetingStatus]] = {
    MeetingStatus.PENDING: frozenset(
        {MeetingStatus.APPROVED, MeetingStatus.REJECTED, MeetingStatus.CANCELLED}
    ),
    MeetingStatus.APPROVED: frozenset(
        {MeetingStatus.CANCELLED, MeetingStatus.COMPLETED}
    ),
    MeetingStatus.REJECTED: frozenset(),
    MeetingStatus.CANCELLED: frozenset(),
    MeetingStatus.COMPLETED: frozenset(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_interval(start_time: time, end_time: time) -> None:
    if end_time <= start_time:
        raise ValueError("end_time must be after start_time")


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Meeting(BaseModel):
    id: int | None = None
    student_id: int
    staff_id: int
    subject: str
    description: str = ""
    meeting_date: date
    start_time: time
    end_time: time
    location: str = ""
    status: MeetingStatus = MeetingStatus.PENDING
    requested_at: datetime = Field(default_factory=_utcnow)
    responded_at: datetime | None = None
    response_notes: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def resource_id(self) -> int:
        return self.staff_id

    @property
    def day(self) -> date:
        return self.meeting_date


class Room(BaseModel):
    id: int | None = None
    code: str
    name: str
    room_type: str = "CLASSROOM"
    capacity: int = Field(default=0, ge=0)
    location: str = ""
    status: RoomStatus = RoomStatus.AVAILABLE


class RoomBooking(BaseModel):
    id: int | None = None
    room_id: int
    user_id: int
    booking_date: date
    start_time: time
    end_time: time
    purpose: str = ""
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def resource_id(self) -> int:
        return self.room_id

    @property
    def day(self) -> date:
        return self.booking_date


class TimelineEntry(BaseModel):
    reservation_kind: ReservationKind
    reservation_id: int
    timestamp: datetime = Field(default_factory=_utcnow)
    type: TimelineEntryType
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request DTOs
# ---------------------------------------------------------------------------


class MeetingRequest(BaseModel):
    student_id: int
    staff_id: int
    subject: str = Field(min_length=1)
    description: str = ""
    meeting_date: date
    start_time: time
    end_time: time
    location: str = ""

    @model_validator(mode="after")
    def _end_after_start(self) -> MeetingRequest:
        _check_interval(self.start_time, self.end_time)
        return self


class MeetingDecision(BaseModel):
    status: MeetingStatus
    responder_id: int
    notes: str | None = None


class MeetingReschedule(BaseModel):
    user_id: int
    meeting_date: date
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def _end_after_start(self) -> MeetingReschedule:
        _check_interval(self.start_time, self.end_time)
        return self


class ParticipantAction(BaseModel):
    user_id: int


class RoomCreate(BaseModel):
    code: str = Field(min_length=1)
    name: str
    room_type: str = "CLASSROOM"
    capacity: int = Field(default=0, ge=0)
    location: str = ""
    status: RoomStatus = RoomStatus.AVAILABLE


class RoomStatusUpdate(BaseModel):
    status: RoomStatus


class BookingRequest(BaseModel):
    room_id: int
    user_id: int
    booking_date: date
    start_time: time
    end_time: time
    purpose: str = ""

    @model_validator(mode="after")
    def _end_after_start(self) -> BookingRequest:
        _check_interval(self.start_time, self.end_time)
        return self


class BookingUpdate(BaseModel):
    room_id: int
    booking_date: date
    start_time: time
    end_time: time
    purpose: str | None = None

    @model_validator(mode="after")
    def _end_after_start(self) -> BookingUpdate:
        _check_interval(self.start_time, self.end_time)
        return self


class Availability(BaseModel):
    room_id: int
    day: date
    start_time: time
    end_time: time
    available: bool
