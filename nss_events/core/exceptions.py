"""
Error taxonomy for participation and attendance operations.

Business-rule outcomes are raised as ``AppError`` subclasses. Each one is
an ``HTTPException`` so the REST layer maps it to a status code without
extra translation, while library callers can catch the concrete type.
"""
from typing import Dict, Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    code = "app_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Unexpected application error"

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None):
        self.message = message or self.message
        self.details = details or {}
        super().__init__(status_code=self.status_code, detail=self.message)

    def to_dict(self) -> dict:
        body = {
            "success": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            body["details"] = self.details
        return body


class EventNotFound(AppError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Event not found"


class VolunteerNotFound(AppError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Volunteer not found"


class EventNotOpen(AppError):
    code = "event_not_open"
    status_code = status.HTTP_409_CONFLICT
    message = "Event is not open for registration"


class EventFull(AppError):
    code = "event_full"
    status_code = status.HTTP_409_CONFLICT
    message = "Event is full"


class NotEligible(AppError):
    code = "not_eligible"
    status_code = status.HTTP_403_FORBIDDEN
    message = "Only approved NSS volunteers can register for internal events"


class AlreadyRegistered(AppError):
    code = "already_registered"
    status_code = status.HTTP_409_CONFLICT
    message = "Already registered for this event"


class NotRegistered(AppError):
    code = "not_registered"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Participant is not registered for this event"


class NotPublicEvent(AppError):
    code = "not_public_event"
    status_code = status.HTTP_403_FORBIDDEN
    message = "This event does not allow external registration"


class AttendanceNotAllowed(AppError):
    code = "attendance_not_allowed"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Attendance can only be marked on or after the event date"


class ContactValidationError(AppError):
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Registration details are invalid"

    def __init__(self, fields: Dict[str, str], message: Optional[str] = None):
        self.fields = fields
        super().__init__(message=message)

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["fields"] = self.fields
        return body


class StoreConflict(AppError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT
    message = "The event was modified concurrently. Please retry."


class StoreUnavailable(AppError):
    code = "unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "The event store is currently unavailable"
