"""In-memory repositories for meetings, rooms, bookings and timelines."""

from __future__ import annotations

import itertools
from collections.abc import Collection, Hashable
from datetime import date

from campus_booking.domain.models import (
    BookingStatus,
    Meeting,
    MeetingStatus,
    ReservationKind,
    Room,
    RoomBooking,
    RoomStatus,
    TimelineEntry,
)


class MeetingRepository:
    """Dict-backed store for Meeting instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[int, Meeting] = {}
        self._ids = itertools.count(1)

    def add(self, meeting: Meeting) -> Meeting:
        stored = meeting.model_copy(update={"id": next(self._ids)})
        self._store[stored.id] = stored
        return stored

    def get(self, meeting_id: int) -> Meeting | None:
        return self._store.get(meeting_id)

    def save(self, meeting: Meeting) -> None:
        self._store[meeting.id] = meeting

    def list_for_student(self, student_id: int) -> list[Meeting]:
        return sorted(
            [m for m in self._store.values() if m.student_id == student_id],
            key=lambda m: (m.meeting_date, m.start_time),
            reverse=True,
        )

    def list_for_staff(self, staff_id: int) -> list[Meeting]:
        return sorted(
            [m for m in self._store.values() if m.staff_id == staff_id],
            key=lambda m: (m.meeting_date, m.start_time),
            reverse=True,
        )

    def list_pending_for_staff(self, staff_id: int) -> list[Meeting]:
        """Pending requests for a staff member, oldest request first."""
        return sorted(
            [
                m
                for m in self._store.values()
                if m.staff_id == staff_id and m.status == MeetingStatus.PENDING
            ],
            key=lambda m: m.requested_at,
        )

    def find_active_reservations(
        self,
        resource_id: int,
        day: date,
        active_statuses: Collection[Hashable],
        exclude_id: int | None = None,
    ) -> list[Meeting]:
        return [
            m
            for m in self._store.values()
            if m.staff_id == resource_id
            and m.meeting_date == day
            and m.status in active_statuses
            and (exclude_id is None or m.id != exclude_id)
        ]


class RoomRepository:
    """Dict-backed store for Room instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[int, Room] = {}
        self._ids = itertools.count(1)

    def add(self, room: Room) -> Room:
        stored = room.model_copy(update={"id": next(self._ids)})
        self._store[stored.id] = stored
        return stored

    def get(self, room_id: int) -> Room | None:
        return self._store.get(room_id)

    def get_by_code(self, code: str) -> Room | None:
        for room in self._store.values():
            if room.code.lower() == code.lower():
                return room
        return None

    def list_all(self) -> list[Room]:
        return sorted(self._store.values(), key=lambda r: r.code)

    def save(self, room: Room) -> None:
        self._store[room.id] = room

    def delete(self, room_id: int) -> None:
        self._store.pop(room_id, None)


class RoomBookingRepository:
    """Dict-backed store for RoomBooking instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[int, RoomBooking] = {}
        self._ids = itertools.count(1)

    def add(self, booking: RoomBooking) -> RoomBooking:
        stored = booking.model_copy(update={"id": next(self._ids)})
        self._store[stored.id] = stored
        return stored

    def get(self, booking_id: int) -> RoomBooking | None:
        return self._store.get(booking_id)

    def save(self, booking: RoomBooking) -> None:
        self._store[booking.id] = booking

    def list_for_user(self, user_id: int) -> list[RoomBooking]:
        return sorted(
            [
                b
                for b in self._store.values()
                if b.user_id == user_id and b.status == BookingStatus.CONFIRMED
            ],
            key=lambda b: (b.booking_date, b.start_time),
            reverse=True,
        )

    def list_for_room(self, room_id: int) -> list[RoomBooking]:
        return sorted(
            [
                b
                for b in self._store.values()
                if b.room_id == room_id and b.status == BookingStatus.CONFIRMED
            ],
            key=lambda b: (b.booking_date, b.start_time),
        )

    def find_active_reservations(
        self,
        resource_id: int,
        day: date,
        active_statuses: Collection[Hashable],
        exclude_id: int | None = None,
    ) -> list[RoomBooking]:
        return [
            b
            for b in self._store.values()
            if b.room_id == resource_id
            and b.booking_date == day
            and b.status in active_statuses
            and (exclude_id is None or b.id != exclude_id)
        ]


class TimelineRepository:
    """List-backed store for TimelineEntry instances."""

    def __init__(self) -> None:
        self._entries: list[TimelineEntry] = []

    def add(self, entry: TimelineEntry) -> None:
        self._entries.append(entry)

    def list_for(
        self, kind: ReservationKind, reservation_id: int
    ) -> list[TimelineEntry]:
        return sorted(
            [
                e
                for e in self._entries
                if e.reservation_kind == kind and e.reservation_id == reservation_id
            ],
            key=lambda e: e.timestamp,
        )


# ---------------------------------------------------------------------------
# Seed data – a handful of campus rooms for demos
# ---------------------------------------------------------------------------


def _seed_rooms(repo: RoomRepository) -> None:
    repo.add(
        Room(
            code="B-101",
            name="Lecture Hall B101",
            room_type="LECTURE_HALL",
            capacity=120,
            location="Building B, ground floor",
        )
    )
    repo.add(
        Room(
            code="C-204",
            name="Seminar Room C204",
            room_type="CLASSROOM",
            capacity=30,
            location="Building C, second floor",
        )
    )
    repo.add(
        Room(
            code="L-012",
            name="Computer Lab L012",
            room_type="LAB",
            capacity=24,
            location="Library basement",
            status=RoomStatus.MAINTENANCE,
        )
    )


def create_room_repository(seed: bool = False) -> RoomRepository:
    """Return a RoomRepository, pre-loaded with sample rooms when *seed* is set."""
    repo = RoomRepository()
    if seed:
        _seed_rooms(repo)
    return repo
