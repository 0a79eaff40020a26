"""Error types raised by the scheduling services."""

from __future__ import annotations

from datetime import date, time


class SchedulingError(Exception):
    """Base class for every error the service layer raises on purpose.

    ``status_code`` is the HTTP status the API layer answers with.
    """

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StorageError(SchedulingError):
    """The reservation store could not answer a lookup or write."""

    status_code = 503


class NotFoundError(SchedulingError):
    status_code = 404


class PermissionDeniedError(SchedulingError):
    status_code = 403


class InvalidIntervalError(SchedulingError):
    """start_time is not before end_time, or the start lies in the past."""


class InvalidTransitionError(SchedulingError):
    """The requested status change is not allowed from the current status."""


class RoomUnavailableError(SchedulingError):
    status_code = 409


class RoomInUseError(SchedulingError):
    status_code = 409


class DuplicateRoomError(SchedulingError):
    status_code = 409


class ConflictError(SchedulingError):
    """An admission was refused because the resource is already reserved."""

    status_code = 409

    def __init__(
        self,
        message: str,
        *,
        resource_kind: str,
        resource_id: int,
        day: date,
        start_time: time,
        end_time: time,
        conflicting_ids: list[int] | None = None,
    ) -> None:
        super().__init__(message)
        self.resource_kind = resource_kind
        self.resource_id = resource_id
        self.day = day
        self.start_time = start_time
        self.end_time = end_time
        self.conflicting_ids = conflicting_ids or []
