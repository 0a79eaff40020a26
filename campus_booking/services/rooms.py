"""Room registry: the resources that room bookings occupy."""

from __future__ import annotations

import logging

from campus_booking.domain.models import Room, RoomCreate, RoomStatus
from campus_booking.errors import DuplicateRoomError, NotFoundError, RoomInUseError
from campus_booking.repos.memory import RoomRepository
from campus_booking.services.bookings import ROOM_LOCK_KIND, RoomBookingService

logger = logging.getLogger(__name__)


class RoomService:
    def __init__(self, rooms: RoomRepository, bookings: RoomBookingService) -> None:
        self.rooms = rooms
        self.bookings = bookings

    def add_room(self, room: RoomCreate) -> Room:
        if self.rooms.get_by_code(room.code) is not None:
            raise DuplicateRoomError(f"Room with code '{room.code}' already exists")
        stored = self.rooms.add(Room(**room.model_dump()))
        logger.info(f"Room {stored.code} added with id {stored.id}")
        return stored

    def get_room(self, room_id: int) -> Room:
        room = self.rooms.get(room_id)
        if room is None:
            raise NotFoundError("Room not found")
        return room

    def list_rooms(self) -> list[Room]:
        return self.rooms.list_all()

    def set_room_status(self, room_id: int, status: RoomStatus) -> Room:
        """Change a room's status.

        Existing bookings are left alone; only new admissions need AVAILABLE.
        """
        room = self.get_room(room_id).model_copy(update={"status": status})
        self.rooms.save(room)
        logger.info(f"Room {room.code} is now {status}")
        return room

    def delete_room(self, room_id: int) -> None:
        """Delete a room that has no upcoming confirmed bookings."""
        room = self.get_room(room_id)

        with self.bookings.locks.hold(ROOM_LOCK_KIND, room_id):
            upcoming = self.bookings.future_booking_dates(room_id)
            if upcoming:
                raise RoomInUseError(
                    f"Room {room.code} has {len(upcoming)} future booking(s), "
                    f"the next on {upcoming[0]:%Y-%m-%d %H:%M}. Cancel them first."
                )
            self.rooms.delete(room_id)
        logger.info(f"Room {room.code} deleted")
