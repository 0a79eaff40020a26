"""FastAPI application and HTTP routes for the campus booking service."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Callable
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from campus_booking.config import Settings
from campus_booking.domain.bus import EventBus
from campus_booking.domain.handlers import HandlerRegistry
from campus_booking.domain.models import (
    Availability,
    BookingRequest,
    BookingUpdate,
    Meeting,
    MeetingDecision,
    MeetingRequest,
    MeetingReschedule,
    ParticipantAction,
    ReservationKind,
    Room,
    RoomBooking,
    RoomCreate,
    RoomStatusUpdate,
    TimelineEntry,
)
from campus_booking.errors import ConflictError, SchedulingError
from campus_booking.repos.memory import (
    MeetingRepository,
    RoomBookingRepository,
    TimelineRepository,
    create_room_repository,
)
from campus_booking.services.bookings import RoomBookingService
from campus_booking.services.locking import ResourceLockRegistry
from campus_booking.services.meetings import MeetingService
from campus_booking.services.rooms import RoomService

logger = logging.getLogger(__name__)


class AppContainer:
    """Repositories, bus and services for one application instance."""

    def __init__(
        self,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings
        tz = (
            timezone.utc
            if settings.local_timezone.upper() == "UTC"
            else ZoneInfo(settings.local_timezone)
        )
        self.clock = clock or (lambda: datetime.now(tz))

        self.bus = EventBus()
        self.locks = ResourceLockRegistry()
        self.meeting_repo = MeetingRepository()
        self.room_repo = create_room_repository(seed=settings.seed_demo_data)
        self.booking_repo = RoomBookingRepository()
        self.timeline_repo = TimelineRepository()

        self.handler_registry = HandlerRegistry(
            bus=self.bus, timeline_repo=self.timeline_repo
        )
        self.meetings = MeetingService(
            meetings=self.meeting_repo, bus=self.bus, locks=self.locks, clock=self.clock
        )
        self.bookings = RoomBookingService(
            rooms=self.room_repo,
            bookings=self.booking_repo,
            bus=self.bus,
            locks=self.locks,
            clock=self.clock,
            allow_past_bookings=settings.allow_past_bookings,
        )
        self.rooms = RoomService(rooms=self.room_repo, bookings=self.bookings)


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


router = APIRouter()


# ── Health ────────────────────────────────────────────────────────────


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


# ── Meetings ──────────────────────────────────────────────────────────


@router.post("/meetings", response_model=Meeting, status_code=201)
def request_meeting(
    payload: MeetingRequest, container: AppContainer = Depends(get_container)
) -> Meeting:
    """Ask a staff member for a meeting; refused if they are already booked."""
    return container.meetings.request_meeting(payload)


@router.get("/meetings/{meeting_id}", response_model=Meeting)
def get_meeting(
    meeting_id: int, container: AppContainer = Depends(get_container)
) -> Meeting:
    return container.meetings.get_meeting(meeting_id)


@router.post("/meetings/{meeting_id}/respond", response_model=Meeting)
def respond_to_meeting(
    meeting_id: int,
    body: MeetingDecision,
    container: AppContainer = Depends(get_container),
) -> Meeting:
    """Approve or reject a pending meeting."""
    return container.meetings.respond_to_meeting(
        meeting_id, body.status, body.responder_id, body.notes
    )


@router.post("/meetings/{meeting_id}/cancel", response_model=Meeting)
def cancel_meeting(
    meeting_id: int,
    body: ParticipantAction,
    container: AppContainer = Depends(get_container),
) -> Meeting:
    return container.meetings.cancel_meeting(meeting_id, body.user_id)


@router.post("/meetings/{meeting_id}/complete", response_model=Meeting)
def complete_meeting(
    meeting_id: int, container: AppContainer = Depends(get_container)
) -> Meeting:
    return container.meetings.complete_meeting(meeting_id)


@router.put("/meetings/{meeting_id}/schedule", response_model=Meeting)
def reschedule_meeting(
    meeting_id: int,
    body: MeetingReschedule,
    container: AppContainer = Depends(get_container),
) -> Meeting:
    """Move a meeting to a new slot; it needs approval again afterwards."""
    return container.meetings.reschedule_meeting(meeting_id, body)


@router.get("/meetings/{meeting_id}/timeline", response_model=list[TimelineEntry])
def meeting_timeline(
    meeting_id: int, container: AppContainer = Depends(get_container)
) -> list[TimelineEntry]:
    container.meetings.get_meeting(meeting_id)
    return container.timeline_repo.list_for(ReservationKind.MEETING, meeting_id)


@router.get("/staff/{staff_id}/meetings", response_model=list[Meeting])
def staff_meetings(
    staff_id: int,
    pending_only: bool = False,
    container: AppContainer = Depends(get_container),
) -> list[Meeting]:
    if pending_only:
        return container.meetings.pending_meetings_for_staff(staff_id)
    return container.meetings.meetings_for_staff(staff_id)


@router.get("/students/{student_id}/meetings", response_model=list[Meeting])
def student_meetings(
    student_id: int, container: AppContainer = Depends(get_container)
) -> list[Meeting]:
    return container.meetings.meetings_for_student(student_id)


# ── Rooms ─────────────────────────────────────────────────────────────


@router.post("/rooms", response_model=Room, status_code=201)
def add_room(payload: RoomCreate, container: AppContainer = Depends(get_container)) -> Room:
    return container.rooms.add_room(payload)


@router.get("/rooms", response_model=list[Room])
def list_rooms(container: AppContainer = Depends(get_container)) -> list[Room]:
    return container.rooms.list_rooms()


@router.get("/rooms/{room_id}", response_model=Room)
def get_room(room_id: int, container: AppContainer = Depends(get_container)) -> Room:
    return container.rooms.get_room(room_id)


@router.patch("/rooms/{room_id}/status", response_model=Room)
def set_room_status(
    room_id: int,
    body: RoomStatusUpdate,
    container: AppContainer = Depends(get_container),
) -> Room:
    return container.rooms.set_room_status(room_id, body.status)


@router.delete("/rooms/{room_id}", status_code=204)
def delete_room(room_id: int, container: AppContainer = Depends(get_container)) -> None:
    """Delete a room; refused while it still has future bookings."""
    container.rooms.delete_room(room_id)


@router.get("/rooms/{room_id}/availability", response_model=Availability)
def room_availability(
    room_id: int,
    day: date = Query(alias="date"),
    start_time: time = Query(),
    end_time: time = Query(),
    exclude_booking_id: int | None = None,
    container: AppContainer = Depends(get_container),
) -> Availability:
    container.rooms.get_room(room_id)
    available = container.bookings.is_room_available(
        room_id, day, start_time, end_time, exclude_booking_id
    )
    return Availability(
        room_id=room_id,
        day=day,
        start_time=start_time,
        end_time=end_time,
        available=available,
    )


@router.get("/rooms/{room_id}/bookings", response_model=list[RoomBooking])
def room_bookings(
    room_id: int, container: AppContainer = Depends(get_container)
) -> list[RoomBooking]:
    return container.bookings.bookings_for_room(room_id)


# ── Bookings ──────────────────────────────────────────────────────────


@router.post("/bookings", response_model=RoomBooking, status_code=201)
def book_room(
    payload: BookingRequest, container: AppContainer = Depends(get_container)
) -> RoomBooking:
    return container.bookings.book_room(payload)


@router.get("/bookings/{booking_id}", response_model=RoomBooking)
def get_booking(
    booking_id: int, container: AppContainer = Depends(get_container)
) -> RoomBooking:
    return container.bookings.get_booking(booking_id)


@router.put("/bookings/{booking_id}", response_model=RoomBooking)
def update_booking(
    booking_id: int,
    body: BookingUpdate,
    container: AppContainer = Depends(get_container),
) -> RoomBooking:
    return container.bookings.update_booking(booking_id, body)


@router.post("/bookings/{booking_id}/cancel", response_model=RoomBooking)
def cancel_booking(
    booking_id: int, container: AppContainer = Depends(get_container)
) -> RoomBooking:
    return container.bookings.cancel_booking(booking_id)


@router.post("/bookings/{booking_id}/restore", response_model=RoomBooking)
def restore_booking(
    booking_id: int, container: AppContainer = Depends(get_container)
) -> RoomBooking:
    return container.bookings.restore_booking(booking_id)


@router.get("/bookings/{booking_id}/timeline", response_model=list[TimelineEntry])
def booking_timeline(
    booking_id: int, container: AppContainer = Depends(get_container)
) -> list[TimelineEntry]:
    container.bookings.get_booking(booking_id)
    return container.timeline_repo.list_for(ReservationKind.ROOM_BOOKING, booking_id)


@router.get("/users/{user_id}/bookings", response_model=list[RoomBooking])
def user_bookings(
    user_id: int, container: AppContainer = Depends(get_container)
) -> list[RoomBooking]:
    return container.bookings.bookings_for_user(user_id)


# ── Application factory ───────────────────────────────────────────────


async def _scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    content: dict = {"detail": exc.message}
    if isinstance(exc, ConflictError):
        content["conflicting_ids"] = exc.conflicting_ids
    return JSONResponse(status_code=exc.status_code, content=content)


def create_app(
    settings: Settings | None = None,
    container: AppContainer | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title=settings.app_title)
    app.state.container = container or AppContainer(settings)
    app.add_exception_handler(SchedulingError, _scheduling_error_handler)
    app.include_router(router)
    logger.info(f"{settings.app_title} ready")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("campus_booking.main:app", host="0.0.0.0", port=8000)
