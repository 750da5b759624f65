from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from nss_events.core.database import get_db
from nss_events.models.event import EventStatus, EventType
from nss_events.models.registration import ParticipantType
from nss_events.schemas.event import (
    CategorizedEventsResponse,
    EventDetailResponse,
    EventMutationResponse,
    EventsListResponse,
    StatusSyncResponse,
)
from nss_events.schemas.registration import (
    AttendanceUpdate,
    ParticipantsResponse,
    RegistrationCreate,
    RegistrationCreateResponse,
    participant_ref,
)
from nss_events.services.attendance_service import AttendanceService
from nss_events.services.event_service import EventService
from nss_events.services.registration_service import RegistrationService

router = APIRouter(prefix="/api/events", tags=["events"])


@router.get("", response_model=EventsListResponse)
def list_events(
    status_filter: Optional[EventStatus] = Query(None, alias="status"),
    event_type: Optional[EventType] = Query(None, alias="eventType"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    events = EventService(db).list_events(
        status=status_filter,
        event_type=event_type,
        start_date=start_date,
        end_date=end_date
    )
    return {"success": True, "events": [e.to_dict() for e in events]}


@router.post("/update-statuses", response_model=StatusSyncResponse)
def update_statuses(db: Session = Depends(get_db)):
    """
    Reconcile event status labels with their schedule.
    """
    updated = EventService(db).sync_event_statuses()
    return {"success": True, "updated": updated}


@router.get("/categories", response_model=CategorizedEventsResponse)
def get_categorized_events(db: Session = Depends(get_db)):
    """
    Events split into upcoming and past by their schedule.
    """
    categories = EventService(db).get_categorized_events()
    return {
        "success": True,
        "upcoming": [e.to_dict() for e in categories["upcoming"]],
        "past": [e.to_dict() for e in categories["past"]],
    }


@router.get("/{event_id}", response_model=EventDetailResponse)
def get_event(event_id: str, db: Session = Depends(get_db)):
    event = EventService(db).get_event(event_id)
    return {"success": True, "event": event.to_dict()}


@router.post(
    "/{event_id}/register",
    response_model=RegistrationCreateResponse,
    status_code=status.HTTP_201_CREATED
)
def register_for_event(
    event_id: str,
    registration_data: RegistrationCreate,
    db: Session = Depends(get_db),
):
    """
    Register a roster volunteer for an event.
    """
    event, registration = RegistrationService(db).register(
        event_id=event_id,
        participant_id=registration_data.participantId,
        role=registration_data.role
    )
    return {
        "success": True,
        "message": "Successfully registered for the event!",
        "event": event.to_dict(),
        "registration": registration.to_dict(include_participant=True),
    }


@router.post(
    "/{event_id}/external-register",
    response_model=RegistrationCreateResponse,
    status_code=status.HTTP_201_CREATED
)
def register_external(
    event_id: str,
    contact: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
):
    """
    Register an external participant on a public event.

    The body is validated by the service so that every invalid field is
    reported together in a 400 response.
    """
    event, registration = RegistrationService(db).register_external(event_id, contact)
    return {
        "success": True,
        "message": "Registration successful!",
        "event": event.to_dict(),
        "registration": registration.to_dict(include_participant=True),
    }


@router.delete("/{event_id}/registrations/{participant_id}", response_model=EventMutationResponse)
def unregister_from_event(
    event_id: str,
    participant_id: str,
    participant_type: ParticipantType = Query(
        ParticipantType.NSS_VOLUNTEER, alias="participantType"
    ),
    db: Session = Depends(get_db),
):
    """
    Remove a registration. External participants are addressed by email.
    """
    event = RegistrationService(db).unregister(
        event_id,
        participant_ref(participant_id, participant_type)
    )
    return {
        "success": True,
        "message": "Successfully unregistered from the event",
        "event": event.to_dict(),
    }


@router.put("/{event_id}/attendance", response_model=EventMutationResponse)
def set_attendance(
    event_id: str,
    attendance: AttendanceUpdate,
    db: Session = Depends(get_db),
):
    event = AttendanceService(db).set_attendance(
        event_id,
        attendance.ref(),
        attendance.attended
    )
    return {
        "success": True,
        "message": f"Attendance marked as {'present' if attendance.attended else 'absent'}",
        "event": event.to_dict(include_registrations=True),
    }


@router.get("/{event_id}/participants", response_model=ParticipantsResponse)
def get_participants(
    event_id: str,
    participant_type: Optional[ParticipantType] = Query(None, alias="participantType"),
    attended: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
):
    event, registrations = RegistrationService(db).get_participants(
        event_id,
        participant_type=participant_type,
        attended=attended
    )
    return {
        "success": True,
        "eventTitle": event.title,
        "maxParticipants": event.max_participants,
        "currentParticipants": event.current_participants,
        "participants": [r.to_dict(include_participant=True) for r in registrations],
    }
