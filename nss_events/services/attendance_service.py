from sqlalchemy.orm import Session
from typing import Dict, List, Optional, Sequence, Union
from datetime import date, datetime
import logging

from nss_events.core.exceptions import (
    AppError,
    AttendanceNotAllowed,
    EventNotFound,
    NotRegistered,
    VolunteerNotFound,
)
from nss_events.models.event import Event
from nss_events.models.registration import Registration
from nss_events.repositories.event_repository import EventRepository
from nss_events.repositories.registration_repository import RegistrationRepository
from nss_events.repositories.volunteer_repository import VolunteerRepository
from nss_events.schemas.registration import AttendanceUpdate, ExternalRef, VolunteerRef
from nss_events.services.registration_service import find_registration
from nss_events.utils.datetime_utils import isoformat_or_none, local_now, utc_now

logger = logging.getLogger(__name__)


def apply_attendance(registration: Registration, attended: bool) -> None:
    """
    Set the attended flag on one registration.

    ``attendance_date`` is stamped on the false -> true transition only and
    cleared when attendance is withdrawn, so repeating a call is a no-op.
    """
    if attended and not registration.attended:
        registration.attendance_date = utc_now()
    elif not attended:
        registration.attendance_date = None
    registration.attended = attended


class AttendanceService:

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventRepository(db)
        self.registration_repo = RegistrationRepository(db)
        self.volunteer_repo = VolunteerRepository(db)

    def set_attendance(
        self,
        event_id: str,
        ref: Union[VolunteerRef, ExternalRef],
        attended: bool
    ) -> Event:
        """
        Mark one participant present or absent.

        Raises:
            EventNotFound, NotRegistered, StoreConflict
        """
        def apply(event: Event) -> Event:
            registration = find_registration(event, ref)
            if not registration:
                raise NotRegistered("Participant not found for this event")

            apply_attendance(registration, attended)
            return event

        try:
            event = self.event_repo.with_event_lock(event_id, apply)
        except AppError as e:
            logger.info(f"Attendance update on event {event_id} rejected: {e.code}")
            raise

        logger.info(
            f"Attendance for {ref.model_dump()} on event {event_id} marked as "
            f"{'present' if attended else 'absent'}"
        )
        return event

    def mark_attendance_bulk(
        self,
        event_id: str,
        records: Sequence[AttendanceUpdate],
        today: Optional[date] = None
    ) -> Event:
        """
        Apply many attendance flags in one atomic write.

        The whole batch is rejected when any participant is not registered,
        or when the event has not started yet.

        Raises:
            EventNotFound, AttendanceNotAllowed, NotRegistered, StoreConflict
        """
        today = today or local_now().date()

        def apply(event: Event) -> Event:
            if event.start_date > today:
                raise AttendanceNotAllowed(
                    "Cannot mark attendance for future events. "
                    "Attendance can only be marked on or after the event date."
                )

            resolved = []
            missing = []
            for record in records:
                registration = find_registration(event, record.ref())
                if registration is None:
                    missing.append(record.participantId)
                else:
                    resolved.append((registration, record.attended))

            if missing:
                raise NotRegistered(
                    "Some participants are not registered for this event",
                    details={"participants": missing}
                )

            for registration, attended in resolved:
                apply_attendance(registration, attended)
            return event

        try:
            event = self.event_repo.with_event_lock(event_id, apply)
        except AppError as e:
            logger.info(f"Bulk attendance on event {event_id} rejected: {e.code}")
            raise

        logger.info(f"Marked attendance for {len(records)} participant(s) on event {event_id}")
        return event

    def get_volunteer_history(
        self,
        volunteer_id: str,
        now: Optional[datetime] = None
    ) -> List[Dict]:
        """Attendance of one volunteer across completed events, oldest first."""
        if not self.volunteer_repo.get_volunteer(volunteer_id):
            raise VolunteerNotFound()

        now = now or local_now()
        registrations = self.registration_repo.get_volunteer_registrations(volunteer_id)

        history = []
        for reg in registrations:
            event = reg.event
            if not event.is_completed(now):
                continue
            history.append({
                "eventId": event.id,
                "eventTitle": event.title,
                "eventDate": event.start_date.isoformat(),
                "eventTime": f"{event.start_time} - {event.effective_end_time}",
                "location": event.location,
                "role": reg.role,
                "attended": bool(reg.attended),
                "attendanceDate": isoformat_or_none(reg.attendance_date),
            })

        return history

    def get_event_attendance_report(self, event_id: str) -> Dict:
        """
        Attendance sheet of one event against the whole approved roster.

        Registered volunteers are reported present or absent; approved
        volunteers who never registered are reported as ``not-marked``.
        External participants are not part of the roster and are left out.
        """
        event = self.event_repo.get_by_id(event_id, include_relations=True)
        if not event:
            raise EventNotFound()

        volunteers = self.volunteer_repo.list_approved_volunteers()
        by_volunteer = {
            reg.volunteer_id: reg for reg in event.registrations if not reg.is_external
        }

        attendance = []
        for volunteer in volunteers:
            registration = by_volunteer.get(volunteer.id)
            if registration is None:
                status = "not-marked"
            else:
                status = "present" if registration.attended else "absent"

            attendance.append({
                "volunteerId": volunteer.id,
                "name": volunteer.name,
                "email": volunteer.email,
                "phone": volunteer.phone,
                "department": volunteer.department,
                "year": volunteer.year,
                "status": status,
                "markedAt": isoformat_or_none(registration.attendance_date) if registration else None,
            })

        return {
            "eventDetails": {
                "eventId": event.id,
                "title": event.title,
                "date": event.start_date.isoformat(),
                "time": f"{event.start_time} - {event.effective_end_time}",
                "location": event.location,
                "totalVolunteers": len(volunteers),
            },
            "attendance": attendance,
        }

    def get_attendance_stats(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> Dict:
        events = self.event_repo.get_all(start_date=start_date, end_date=end_date)

        stats = {
            "totalEvents": len(events),
            "totalAttendanceRecords": 0,
            "presentCount": 0,
            "absentCount": 0,
            "attendanceByEvent": []
        }

        for event in events:
            present = sum(1 for reg in event.registrations if reg.attended)
            total = len(event.registrations)

            stats["totalAttendanceRecords"] += total
            stats["presentCount"] += present
            stats["absentCount"] += total - present

            stats["attendanceByEvent"].append({
                "eventId": event.id,
                "eventTitle": event.title,
                "eventDate": event.start_date.isoformat(),
                "totalRegistered": total,
                "present": present,
                "absent": total - present
            })

        return stats
