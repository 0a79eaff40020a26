"""Room bookings for professors and staff."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Callable

from campus_booking.domain.bus import EventBus
from campus_booking.domain.events import (
    BookingCancelled,
    BookingRestored,
    BookingUpdated,
    RoomBooked,
)
from campus_booking.domain.models import (
    BOOKING_ACTIVE_STATUSES,
    BookingRequest,
    BookingStatus,
    BookingUpdate,
    ReservationKind,
    Room,
    RoomBooking,
    RoomStatus,
)
from campus_booking.errors import (
    InvalidIntervalError,
    InvalidTransitionError,
    NotFoundError,
    RoomUnavailableError,
)
from campus_booking.repos.memory import RoomBookingRepository, RoomRepository
from campus_booking.services.admission import ensure_no_conflict, ensure_valid_interval
from campus_booking.services.conflicts import has_conflict
from campus_booking.services.locking import ResourceLockRegistry

logger = logging.getLogger(__name__)

ROOM_CONFLICT_MESSAGE = (
    "Room is not available for the requested time slot. "
    "Please choose a different time or room."
)
ROOM_LOCK_KIND = "room"


class RoomBookingService:
    def __init__(
        self,
        rooms: RoomRepository,
        bookings: RoomBookingRepository,
        bus: EventBus,
        locks: ResourceLockRegistry,
        clock: Callable[[], datetime] | None = None,
        allow_past_bookings: bool = False,
    ) -> None:
        self.rooms = rooms
        self.bookings = bookings
        self.bus = bus
        self.locks = locks
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.allow_past_bookings = allow_past_bookings

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: int) -> RoomBooking:
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    def bookings_for_user(self, user_id: int) -> list[RoomBooking]:
        return self.bookings.list_for_user(user_id)

    def bookings_for_room(self, room_id: int) -> list[RoomBooking]:
        self._get_room(room_id)
        return self.bookings.list_for_room(room_id)

    def is_room_available(
        self,
        room_id: int,
        day: date,
        start_time: time,
        end_time: time,
        exclude_booking_id: int | None = None,
    ) -> bool:
        """False when the room is unknown, not AVAILABLE, or already booked."""
        ensure_valid_interval(start_time, end_time)
        room = self.rooms.get(room_id)
        if room is None or room.status != RoomStatus.AVAILABLE:
            return False
        return not has_conflict(
            self.bookings,
            room_id,
            day,
            start_time,
            end_time,
            BOOKING_ACTIVE_STATUSES,
            exclude_booking_id,
        )

    def future_booking_dates(self, room_id: int) -> list[datetime]:
        """Start datetimes of confirmed bookings that have not begun yet."""
        now = self._wall_clock()
        starts = (
            datetime.combine(b.booking_date, b.start_time)
            for b in self.bookings.list_for_room(room_id)
        )
        return sorted(start for start in starts if start >= now)

    def has_future_bookings(self, room_id: int) -> bool:
        return bool(self.future_booking_dates(room_id))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def book_room(self, request: BookingRequest) -> RoomBooking:
        self._validate_slot(request.booking_date, request.start_time, request.end_time)

        with self.locks.hold(ROOM_LOCK_KIND, request.room_id):
            self._ensure_bookable(request.room_id)
            ensure_no_conflict(
                self.bookings,
                self.bus,
                ReservationKind.ROOM_BOOKING,
                request.room_id,
                request.booking_date,
                request.start_time,
                request.end_time,
                BOOKING_ACTIVE_STATUSES,
                ROOM_CONFLICT_MESSAGE,
            )
            booking = self.bookings.add(
                RoomBooking(
                    **request.model_dump(),
                    status=BookingStatus.CONFIRMED,
                    created_at=self._clock(),
                )
            )

        logger.info(
            f"Booking {booking.id} created: room {booking.room_id}, "
            f"user {booking.user_id}, {booking.booking_date} "
            f"{booking.start_time:%H:%M}-{booking.end_time:%H:%M}"
        )
        self.bus.publish(
            RoomBooked(
                booking_id=booking.id, room_id=booking.room_id, user_id=booking.user_id
            )
        )
        return booking

    def update_booking(self, booking_id: int, update: BookingUpdate) -> RoomBooking:
        """Move a confirmed booking to a new slot, possibly in another room."""
        self._validate_slot(update.booking_date, update.start_time, update.end_time)

        while True:
            previous_room_id = self.get_booking(booking_id).room_id
            with self.locks.hold_all(ROOM_LOCK_KIND, (previous_room_id, update.room_id)):
                current = self.get_booking(booking_id)
                if current.room_id != previous_room_id:
                    # Moved by another update before the locks were taken.
                    continue
                if current.status != BookingStatus.CONFIRMED:
                    raise InvalidTransitionError("Can only update confirmed bookings")
                self._ensure_not_started(current, "edit")
                self._ensure_bookable(update.room_id)
                ensure_no_conflict(
                    self.bookings,
                    self.bus,
                    ReservationKind.ROOM_BOOKING,
                    update.room_id,
                    update.booking_date,
                    update.start_time,
                    update.end_time,
                    BOOKING_ACTIVE_STATUSES,
                    ROOM_CONFLICT_MESSAGE,
                    exclude_id=booking_id,
                )
                changes = update.model_dump(exclude_none=True)
                booking = current.model_copy(update=changes)
                self.bookings.save(booking)
                break

        logger.info(f"Booking {booking.id} updated: room {booking.room_id}")
        self.bus.publish(
            BookingUpdated(
                booking_id=booking.id,
                previous_room_id=current.room_id,
                room_id=booking.room_id,
            )
        )
        return booking

    def cancel_booking(self, booking_id: int) -> RoomBooking:
        booking = self.get_booking(booking_id)

        with self.locks.hold(ROOM_LOCK_KIND, booking.room_id):
            booking = self.get_booking(booking_id)
            if booking.status != BookingStatus.CONFIRMED:
                raise InvalidTransitionError(f"Booking is already {booking.status.lower()}")
            self._ensure_not_started(booking, "cancel")
            booking = booking.model_copy(update={"status": BookingStatus.CANCELLED})
            self.bookings.save(booking)

        logger.info(f"Booking {booking.id} cancelled")
        self.bus.publish(BookingCancelled(booking_id=booking.id))
        return booking

    def restore_booking(self, booking_id: int) -> RoomBooking:
        """Bring a cancelled booking back, if its slot is still free."""
        booking = self.get_booking(booking_id)
        self._validate_slot(booking.booking_date, booking.start_time, booking.end_time)

        with self.locks.hold(ROOM_LOCK_KIND, booking.room_id):
            booking = self.get_booking(booking_id)
            if booking.status != BookingStatus.CANCELLED:
                raise InvalidTransitionError(f"Booking is already {booking.status.lower()}")
            self._ensure_bookable(booking.room_id)
            ensure_no_conflict(
                self.bookings,
                self.bus,
                ReservationKind.ROOM_BOOKING,
                booking.room_id,
                booking.booking_date,
                booking.start_time,
                booking.end_time,
                BOOKING_ACTIVE_STATUSES,
                ROOM_CONFLICT_MESSAGE,
                exclude_id=booking.id,
            )
            booking = booking.model_copy(update={"status": BookingStatus.CONFIRMED})
            self.bookings.save(booking)

        logger.info(f"Booking {booking.id} restored")
        self.bus.publish(BookingRestored(booking_id=booking.id))
        return booking

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _wall_clock(self) -> datetime:
        # Bookings carry local wall-clock dates and times with no zone.
        return self._clock().replace(tzinfo=None)

    def _validate_slot(self, day: date, start_time: time, end_time: time) -> None:
        ensure_valid_interval(start_time, end_time)
        if not self.allow_past_bookings:
            if datetime.combine(day, start_time) < self._wall_clock():
                raise InvalidIntervalError("Cannot book rooms in the past")

    def _ensure_not_started(self, booking: RoomBooking, action: str) -> None:
        if self.allow_past_bookings:
            return
        if datetime.combine(booking.booking_date, booking.start_time) < self._wall_clock():
            raise InvalidTransitionError(f"Cannot {action} past bookings")

    def _get_room(self, room_id: int) -> Room:
        room = self.rooms.get(room_id)
        if room is None:
            raise NotFoundError("Room not found")
        return room

    def _ensure_bookable(self, room_id: int) -> None:
        room = self._get_room(room_id)
        if room.status != RoomStatus.AVAILABLE:
            raise RoomUnavailableError(
                f"Room {room.code} is not available for booking ({room.status.lower()})"
            )
