"""
Year-wise and month-wise attendance analytics.

``aggregate_attendance`` is a pure function over already-loaded events and
the approved roster, so the same inputs always give the same report.
``AnalyticsService`` loads those inputs and applies the caller's filters.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional
import csv
import io
import logging

from sqlalchemy.orm import Session

from nss_events.models.event import Event
from nss_events.models.volunteer import Volunteer
from nss_events.repositories.event_repository import EventRepository
from nss_events.repositories.volunteer_repository import VolunteerRepository
from nss_events.schemas.analytics import AnalyticsFilters
from nss_events.utils.datetime_utils import local_now

logger = logging.getLogger(__name__)


MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def attendance_percentage(present: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(present / total * 100, 1)


@dataclass
class VolunteerTally:
    volunteer: Volunteer
    present: int = 0
    absent: int = 0

    @property
    def total_events(self) -> int:
        return self.present + self.absent

    def to_dict(self) -> dict:
        return {
            "volunteerId": self.volunteer.id,
            "name": self.volunteer.name,
            "email": self.volunteer.email,
            "department": self.volunteer.department,
            "year": self.volunteer.year,
            "totalEvents": self.total_events,
            "present": self.present,
            "absent": self.absent,
            "attendancePercentage": attendance_percentage(self.present, self.total_events),
        }


@dataclass
class Bucket:
    total_events: int = 0
    present: int = 0
    absent: int = 0
    tallies: Dict[str, VolunteerTally] = field(default_factory=dict)

    def record(self, volunteer: Volunteer, attended: bool) -> None:
        tally = self.tallies.setdefault(volunteer.id, VolunteerTally(volunteer))
        if attended:
            tally.present += 1
            self.present += 1
        else:
            tally.absent += 1
            self.absent += 1

    def to_dict(self) -> dict:
        tallies = sorted(self.tallies.values(), key=lambda t: (t.volunteer.name, t.volunteer.id))
        return {
            "totalEvents": self.total_events,
            "summary": {
                "totalRecords": self.present + self.absent,
                "present": self.present,
                "absent": self.absent,
            },
            "volunteers": [t.to_dict() for t in tallies],
        }


@dataclass
class AttendanceAnalytics:
    year_wise: Dict[str, Bucket]
    month_wise: Dict[str, Bucket]
    total_events: int
    total_volunteers: int
    present: int
    absent: int

    @property
    def total_records(self) -> int:
        return self.present + self.absent

    def overall(self) -> dict:
        return {
            "totalEvents": self.total_events,
            "totalVolunteers": self.total_volunteers,
            "totalAttendanceRecords": self.total_records,
            "presentCount": self.present,
            "absentCount": self.absent,
            "attendanceRate": attendance_percentage(self.present, self.total_records),
        }


def aggregate_attendance(
    events: Iterable[Event],
    volunteers: Iterable[Volunteer]
) -> AttendanceAnalytics:
    """
    Bucket attendance of roster volunteers over completed events.

    Year buckets are keyed by the volunteer's cohort year and every event
    counts towards every cohort, since any cohort could attend it. Month
    buckets are keyed by the month of the event's start date. Registrations
    that do not resolve to a roster volunteer (external participants,
    unapproved members) are ignored.
    """
    roster = {v.id: v for v in volunteers}
    cohorts = sorted({v.year for v in roster.values() if v.year})

    year_wise = {str(year): Bucket() for year in cohorts}
    month_wise = {month: Bucket() for month in MONTHS}

    seen_events = set()
    present = absent = 0

    for event in events:
        if event.id in seen_events:
            continue
        seen_events.add(event.id)

        month_bucket = month_wise[MONTHS[event.start_date.month - 1]]
        month_bucket.total_events += 1
        for bucket in year_wise.values():
            bucket.total_events += 1

        for registration in event.registrations:
            if registration.is_external:
                continue
            volunteer = roster.get(registration.volunteer_id)
            if volunteer is None:
                continue

            attended = bool(registration.attended)
            if attended:
                present += 1
            else:
                absent += 1

            month_bucket.record(volunteer, attended)
            if volunteer.year:
                year_wise[str(volunteer.year)].record(volunteer, attended)

    return AttendanceAnalytics(
        year_wise=year_wise,
        month_wise=month_wise,
        total_events=len(seen_events),
        total_volunteers=len(roster),
        present=present,
        absent=absent,
    )


class AnalyticsService:

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventRepository(db)
        self.volunteer_repo = VolunteerRepository(db)

    def _build(self, filters: AnalyticsFilters, now: Optional[datetime]) -> AttendanceAnalytics:
        now = now or local_now()
        events = self.event_repo.get_completed(now, event_type=filters.eventType)
        volunteers = self.volunteer_repo.list_approved_volunteers(department=filters.department)

        logger.debug(
            f"Aggregating attendance over {len(events)} completed event(s) "
            f"and {len(volunteers)} approved volunteer(s)"
        )
        return aggregate_attendance(events, volunteers)

    @staticmethod
    def _select_buckets(analytics: AttendanceAnalytics, filters: AnalyticsFilters) -> Dict[str, Bucket]:
        if filters.viewMode == "year":
            buckets = analytics.year_wise
            if filters.year is not None:
                key = str(filters.year)
                return {key: buckets[key]} if key in buckets else {}
            return buckets

        buckets = analytics.month_wise
        if filters.month:
            month = filters.month.capitalize()
            return {month: buckets[month]} if month in buckets else {}
        return buckets

    def get_attendance_analytics(
        self,
        filters: AnalyticsFilters,
        now: Optional[datetime] = None
    ) -> dict:
        analytics = self._build(filters, now)
        buckets = {
            key: bucket.to_dict()
            for key, bucket in self._select_buckets(analytics, filters).items()
        }

        result = {
            "viewMode": filters.viewMode,
            "overall": analytics.overall(),
        }
        if filters.viewMode == "year":
            result["yearWise"] = buckets
        else:
            result["monthWise"] = buckets
        return result

    def export_csv(
        self,
        filters: AnalyticsFilters,
        now: Optional[datetime] = None
    ) -> str:
        """
        Export the selected buckets as CSV, one section per bucket.
        """
        analytics = self._build(filters, now)
        label = "Year" if filters.viewMode == "year" else "Month"

        output = io.StringIO()
        writer = csv.writer(output)

        for key, bucket in self._select_buckets(analytics, filters).items():
            writer.writerow([f"{label}: {key}"])
            writer.writerow([
                "Volunteer Name",
                "Email",
                "Department",
                "Year",
                "Total Events",
                "Present",
                "Absent",
                "Attendance %"
            ])

            for row in bucket.to_dict()["volunteers"]:
                writer.writerow([
                    row["name"],
                    row["email"],
                    row["department"] or "N/A",
                    row["year"] if row["year"] is not None else "N/A",
                    row["totalEvents"],
                    row["present"],
                    row["absent"],
                    f"{row['attendancePercentage']}%"
                ])

            writer.writerow([])

        return output.getvalue()
