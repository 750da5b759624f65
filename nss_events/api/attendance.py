from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from nss_events.core.database import get_db
from nss_events.schemas.attendance import (
    AttendanceHistoryResponse,
    AttendanceStatsResponse,
    EventAttendanceReportResponse,
)
from nss_events.schemas.event import EventMutationResponse, EventsListResponse
from nss_events.schemas.registration import BulkAttendanceRequest
from nss_events.services.attendance_service import AttendanceService
from nss_events.services.registration_service import RegistrationService

router = APIRouter(tags=["attendance"])


@router.post("/api/attendance/events/{event_id}/mark", response_model=EventMutationResponse)
def mark_attendance(
    event_id: str,
    request: BulkAttendanceRequest,
    db: Session = Depends(get_db),
):
    event = AttendanceService(db).mark_attendance_bulk(event_id, request.records)
    return {
        "success": True,
        "message": "Attendance marked successfully",
        "event": event.to_dict(include_registrations=True),
    }


@router.get("/api/attendance/events/{event_id}/export", response_model=EventAttendanceReportResponse)
def export_event_attendance(event_id: str, db: Session = Depends(get_db)):
    """
    Attendance sheet of one event covering every approved volunteer.
    """
    report = AttendanceService(db).get_event_attendance_report(event_id)
    return {"success": True, **report}


@router.get("/api/attendance/volunteers/{volunteer_id}", response_model=AttendanceHistoryResponse)
def get_attendance_history(volunteer_id: str, db: Session = Depends(get_db)):
    history = AttendanceService(db).get_volunteer_history(volunteer_id)
    return {"success": True, "volunteerId": volunteer_id, "history": history}


@router.get("/api/attendance/stats", response_model=AttendanceStatsResponse)
def get_attendance_stats(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    stats = AttendanceService(db).get_attendance_stats(start_date=start_date, end_date=end_date)
    return {"success": True, **stats}


@router.get("/api/volunteers/{volunteer_id}/events", response_model=EventsListResponse)
def get_volunteer_events(volunteer_id: str, db: Session = Depends(get_db)):
    events = RegistrationService(db).get_volunteer_events(volunteer_id)
    return {"success": True, "events": [e.to_dict() for e in events]}
