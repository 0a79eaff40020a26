"""Meeting requests between students and staff members."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Callable

from campus_booking.domain.bus import EventBus
from campus_booking.domain.events import (
    MeetingApproved,
    MeetingCancelled,
    MeetingCompleted,
    MeetingRejected,
    MeetingRequested,
    MeetingRescheduled,
)
from campus_booking.domain.models import (
    MEETING_ACTIVE_STATUSES,
    MEETING_TRANSITIONS,
    Meeting,
    MeetingRequest,
    MeetingReschedule,
    MeetingStatus,
    ReservationKind,
)
from campus_booking.errors import (
    InvalidIntervalError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
)
from campus_booking.repos.memory import MeetingRepository
from campus_booking.services.admission import ensure_no_conflict, ensure_valid_interval
from campus_booking.services.locking import ResourceLockRegistry

logger = logging.getLogger(__name__)

STAFF_CONFLICT_MESSAGE = "Staff member has a conflicting meeting at this time."
_LOCK_KIND = "staff"


class MeetingService:
    def __init__(
        self,
        meetings: MeetingRepository,
        bus: EventBus,
        locks: ResourceLockRegistry,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.meetings = meetings
        self.bus = bus
        self.locks = locks
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_meeting(self, meeting_id: int) -> Meeting:
        meeting = self.meetings.get(meeting_id)
        if meeting is None:
            raise NotFoundError("Meeting not found")
        return meeting

    def meetings_for_student(self, student_id: int) -> list[Meeting]:
        return self.meetings.list_for_student(student_id)

    def meetings_for_staff(self, staff_id: int) -> list[Meeting]:
        return self.meetings.list_for_staff(staff_id)

    def pending_meetings_for_staff(self, staff_id: int) -> list[Meeting]:
        return self.meetings.list_pending_for_staff(staff_id)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def request_meeting(self, request: MeetingRequest) -> Meeting:
        """Store a new PENDING meeting unless the staff member is already booked."""
        ensure_valid_interval(request.start_time, request.end_time)
        now = self._clock()
        self._ensure_not_past(request.meeting_date, now)

        with self.locks.hold(_LOCK_KIND, request.staff_id):
            ensure_no_conflict(
                self.meetings,
                self.bus,
                ReservationKind.MEETING,
                request.staff_id,
                request.meeting_date,
                request.start_time,
                request.end_time,
                MEETING_ACTIVE_STATUSES,
                STAFF_CONFLICT_MESSAGE,
            )
            meeting = self.meetings.add(
                Meeting(
                    **request.model_dump(),
                    status=MeetingStatus.PENDING,
                    requested_at=now,
                    created_at=now,
                )
            )

        logger.info(
            f"Meeting {meeting.id} requested by student {meeting.student_id} "
            f"with staff {meeting.staff_id} on {meeting.meeting_date}"
        )
        self.bus.publish(
            MeetingRequested(
                meeting_id=meeting.id,
                student_id=meeting.student_id,
                staff_id=meeting.staff_id,
            )
        )
        return meeting

    def respond_to_meeting(
        self,
        meeting_id: int,
        status: MeetingStatus,
        responder_id: int,
        notes: str | None = None,
    ) -> Meeting:
        """Approve or reject a meeting; only the assigned staff member may respond."""
        if status not in (MeetingStatus.APPROVED, MeetingStatus.REJECTED):
            raise InvalidTransitionError("Status must be APPROVED or REJECTED")

        meeting = self.get_meeting(meeting_id)
        if meeting.staff_id != responder_id:
            raise PermissionDeniedError(
                "Only the assigned staff member can respond to this meeting"
            )

        with self.locks.hold(_LOCK_KIND, meeting.staff_id):
            meeting = self.get_meeting(meeting_id)
            self._check_transition(meeting, status)
            if status == MeetingStatus.APPROVED:
                ensure_no_conflict(
                    self.meetings,
                    self.bus,
                    ReservationKind.MEETING,
                    meeting.staff_id,
                    meeting.meeting_date,
                    meeting.start_time,
                    meeting.end_time,
                    MEETING_ACTIVE_STATUSES,
                    STAFF_CONFLICT_MESSAGE,
                    exclude_id=meeting.id,
                )
            meeting = meeting.model_copy(
                update={
                    "status": status,
                    "responded_at": self._clock(),
                    "response_notes": notes or "",
                }
            )
            self.meetings.save(meeting)

        logger.info(f"Meeting {meeting.id} {status.lower()} by staff {responder_id}")
        if status == MeetingStatus.APPROVED:
            self.bus.publish(
                MeetingApproved(
                    meeting_id=meeting.id, responder_id=responder_id, notes=notes
                )
            )
        else:
            self.bus.publish(
                MeetingRejected(
                    meeting_id=meeting.id, responder_id=responder_id, notes=notes
                )
            )
        return meeting

    def cancel_meeting(self, meeting_id: int, user_id: int) -> Meeting:
        meeting = self.get_meeting(meeting_id)
        self._check_participant(
            meeting, user_id, "You do not have permission to cancel this meeting"
        )

        with self.locks.hold(_LOCK_KIND, meeting.staff_id):
            meeting = self.get_meeting(meeting_id)
            self._check_transition(meeting, MeetingStatus.CANCELLED)
            meeting = meeting.model_copy(update={"status": MeetingStatus.CANCELLED})
            self.meetings.save(meeting)

        logger.info(f"Meeting {meeting.id} cancelled by user {user_id}")
        self.bus.publish(MeetingCancelled(meeting_id=meeting.id, cancelled_by=user_id))
        return meeting

    def complete_meeting(self, meeting_id: int) -> Meeting:
        meeting = self.get_meeting(meeting_id)

        with self.locks.hold(_LOCK_KIND, meeting.staff_id):
            meeting = self.get_meeting(meeting_id)
            self._check_transition(meeting, MeetingStatus.COMPLETED)
            meeting = meeting.model_copy(update={"status": MeetingStatus.COMPLETED})
            self.meetings.save(meeting)

        logger.info(f"Meeting {meeting.id} completed")
        self.bus.publish(MeetingCompleted(meeting_id=meeting.id))
        return meeting

    def reschedule_meeting(
        self, meeting_id: int, change: MeetingReschedule
    ) -> Meeting:
        """Move a pending or approved meeting to a new slot.

        The meeting goes back to PENDING so the staff member approves the new
        time. The old slot is ignored by the conflict check.
        """
        ensure_valid_interval(change.start_time, change.end_time)
        self._ensure_not_past(change.meeting_date, self._clock())
        meeting = self.get_meeting(meeting_id)
        self._check_participant(
            meeting, change.user_id, "You do not have permission to reschedule this meeting"
        )

        with self.locks.hold(_LOCK_KIND, meeting.staff_id):
            meeting = self.get_meeting(meeting_id)
            if meeting.status not in MEETING_ACTIVE_STATUSES:
                raise InvalidTransitionError(
                    f"Cannot reschedule a meeting that is {meeting.status.lower()}"
                )
            ensure_no_conflict(
                self.meetings,
                self.bus,
                ReservationKind.MEETING,
                meeting.staff_id,
                change.meeting_date,
                change.start_time,
                change.end_time,
                MEETING_ACTIVE_STATUSES,
                STAFF_CONFLICT_MESSAGE,
                exclude_id=meeting.id,
            )
            previous = meeting
            meeting = meeting.model_copy(
                update={
                    "meeting_date": change.meeting_date,
                    "start_time": change.start_time,
                    "end_time": change.end_time,
                    "status": MeetingStatus.PENDING,
                    "responded_at": None,
                    "response_notes": None,
                }
            )
            self.meetings.save(meeting)

        logger.info(
            f"Meeting {meeting.id} rescheduled to {meeting.meeting_date} "
            f"{meeting.start_time:%H:%M}-{meeting.end_time:%H:%M}"
        )
        self.bus.publish(
            MeetingRescheduled(
                meeting_id=meeting.id,
                rescheduled_by=change.user_id,
                previous_date=previous.meeting_date,
                previous_start_time=previous.start_time,
                previous_end_time=previous.end_time,
            )
        )
        return meeting

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _ensure_not_past(day: date, now: datetime) -> None:
        # Whole-day granularity: a meeting later today is still accepted.
        if day < now.date():
            raise InvalidIntervalError("Meeting date cannot be in the past")

    @staticmethod
    def _check_participant(meeting: Meeting, user_id: int, message: str) -> None:
        if user_id not in (meeting.student_id, meeting.staff_id):
            raise PermissionDeniedError(message)

    @staticmethod
    def _check_transition(meeting: Meeting, target: MeetingStatus) -> None:
        allowed = MEETING_TRANSITIONS[meeting.status]
        if not allowed:
            raise InvalidTransitionError(
                f"Meeting is already {meeting.status.lower()}"
            )
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot change meeting from {meeting.status.lower()} to {target.lower()}"
            )
