"""
Analytics Aggregator tests.
"""
import csv
import io
from datetime import date, datetime, timedelta

from fastapi import status

from nss_events.models.event import Event, EventType
from nss_events.models.registration import Registration, ParticipantType
from nss_events.models.volunteer import Volunteer, NSSApplicationStatus
from nss_events.schemas.analytics import AnalyticsFilters
from nss_events.services.analytics_service import (
    MONTHS,
    AnalyticsService,
    aggregate_attendance,
    attendance_percentage,
)
from nss_events.services.attendance_service import AttendanceService
from nss_events.services.registration_service import RegistrationService
from nss_events.schemas.registration import VolunteerRef


NOW = datetime(2024, 12, 31, 23, 0)


def _volunteer(vid, name, year, department="Computer Science"):
    return Volunteer(
        id=vid,
        name=name,
        email=f"{vid}@nss.org",
        department=department,
        year=year,
        nss_application_status=NSSApplicationStatus.APPROVED
    )


def _event(eid, day, *registrations):
    return Event(
        id=eid,
        title=f"Event {eid}",
        start_date=day,
        start_time="09:00",
        registrations=list(registrations)
    )


def _member(volunteer_id, attended):
    return Registration(
        participant_type=ParticipantType.NSS_VOLUNTEER,
        volunteer_id=volunteer_id,
        attended=attended
    )


def _external(email, attended):
    return Registration(
        participant_type=ParticipantType.EXTERNAL,
        external_email=email,
        contact={"name": "Guest"},
        attended=attended
    )


class TestAttendancePercentage:

    def test_zero_total(self):
        assert attendance_percentage(0, 0) == 0.0

    def test_rounds_to_one_decimal(self):
        assert attendance_percentage(2, 3) == 66.7
        assert attendance_percentage(1, 3) == 33.3


class TestAggregateAttendance:
    """Unit tests for the pure aggregation function."""

    def test_year_view_counts_every_event_for_every_cohort(self):
        """Cohort A attends both events, cohort B skips the second."""
        a = _volunteer("a", "Asha", 1)
        b = _volunteer("b", "Bilal", 2)
        events = [
            _event("e1", date(2024, 3, 5), _member("a", True), _member("b", True)),
            _event("e2", date(2024, 3, 19), _member("a", True), _member("b", False)),
        ]

        result = aggregate_attendance(events, [a, b])

        assert set(result.year_wise) == {"1", "2"}
        year_one = result.year_wise["1"].to_dict()
        year_two = result.year_wise["2"].to_dict()
        assert year_one["totalEvents"] == 2
        assert year_two["totalEvents"] == 2
        assert year_one["volunteers"][0]["attendancePercentage"] == 100.0
        assert year_two["volunteers"][0]["attendancePercentage"] == 50.0
        assert year_two["summary"] == {"totalRecords": 2, "present": 1, "absent": 1}

        overall = result.overall()
        assert overall["totalEvents"] == 2
        assert overall["totalVolunteers"] == 2
        assert overall["totalAttendanceRecords"] == 4
        assert overall["presentCount"] == 3
        assert overall["absentCount"] == 1
        assert overall["attendanceRate"] == 75.0

    def test_month_view(self):
        a = _volunteer("a", "Asha", 1)
        events = [
            _event("e1", date(2024, 3, 5), _member("a", True)),
            _event("e2", date(2024, 4, 2), _member("a", False)),
        ]

        result = aggregate_attendance(events, [a])

        assert list(result.month_wise) == list(MONTHS)
        march = result.month_wise["March"].to_dict()
        april = result.month_wise["April"].to_dict()
        assert march["totalEvents"] == 1
        assert march["volunteers"][0]["present"] == 1
        assert april["volunteers"][0]["absent"] == 1
        assert result.month_wise["January"].to_dict() == {
            "totalEvents": 0,
            "summary": {"totalRecords": 0, "present": 0, "absent": 0},
            "volunteers": [],
        }

    def test_external_and_unknown_registrations_ignored(self):
        a = _volunteer("a", "Asha", 1)
        events = [
            _event(
                "e1",
                date(2024, 3, 5),
                _member("a", True),
                _member("not-on-roster", True),
                _external("guest@x.com", True)
            ),
        ]

        result = aggregate_attendance(events, [a])

        assert result.overall()["totalAttendanceRecords"] == 1
        assert len(result.year_wise["1"].to_dict()["volunteers"]) == 1

    def test_volunteer_without_year_skips_year_buckets(self):
        a = _volunteer("a", "Asha", None)
        events = [_event("e1", date(2024, 3, 5), _member("a", True))]

        result = aggregate_attendance(events, [a])

        assert result.year_wise == {}
        assert result.month_wise["March"].present == 1
        assert result.overall()["presentCount"] == 1

    def test_empty_inputs(self):
        result = aggregate_attendance([], [])

        assert result.year_wise == {}
        assert result.overall() == {
            "totalEvents": 0,
            "totalVolunteers": 0,
            "totalAttendanceRecords": 0,
            "presentCount": 0,
            "absentCount": 0,
            "attendanceRate": 0.0,
        }

    def test_deterministic(self):
        """Same inputs in a different order give the same report."""
        volunteers = [_volunteer("b", "Bilal", 1), _volunteer("a", "Asha", 1)]

        def build(order):
            events = [
                _event("e1", date(2024, 3, 5), _member("a", True), _member("b", False)),
                _event("e2", date(2024, 3, 6), _member("b", True)),
            ]
            return aggregate_attendance([events[i] for i in order], volunteers)

        first = build([0, 1])
        second = build([1, 0])

        assert first.year_wise["1"].to_dict() == second.year_wise["1"].to_dict()
        assert [v["name"] for v in first.year_wise["1"].to_dict()["volunteers"]] == ["Asha", "Bilal"]

    def test_duplicate_events_counted_once(self):
        a = _volunteer("a", "Asha", 1)
        event = _event("e1", date(2024, 3, 5), _member("a", True))

        result = aggregate_attendance([event, event], [a])

        assert result.overall()["totalEvents"] == 1
        assert result.overall()["presentCount"] == 1


class TestAnalyticsService:
    """Service tests against the database."""

    def _seed(self, make_volunteer, make_event, register_directly):
        first = make_volunteer(name="Asha", year=1, department="Civil")
        second = make_volunteer(name="Bilal", year=2)
        pending = make_volunteer(name="Chen", year=1, status=NSSApplicationStatus.PENDING)

        march = make_event(title="March", start_date=date(2024, 3, 5))
        april = make_event(title="April", start_date=date(2024, 4, 9), event_type=EventType.HEALTH)
        make_event(title="Next Year", start_date=date(2025, 1, 20))

        register_directly(march, first, attended=True)
        register_directly(march, second, attended=False)
        register_directly(march, pending, attended=True)
        register_directly(april, first, attended=True)
        return first, second

    def test_year_view(self, db, make_volunteer, make_event, register_directly):
        self._seed(make_volunteer, make_event, register_directly)

        result = AnalyticsService(db).get_attendance_analytics(AnalyticsFilters(), now=NOW)

        assert result["viewMode"] == "year"
        assert "monthWise" not in result
        assert result["yearWise"]["1"]["totalEvents"] == 2
        assert [v["name"] for v in result["yearWise"]["1"]["volunteers"]] == ["Asha"]
        assert result["overall"]["totalEvents"] == 2
        assert result["overall"]["totalVolunteers"] == 2
        assert result["overall"]["presentCount"] == 2
        assert result["overall"]["absentCount"] == 1

    def test_completion_uses_end_time(self, db, make_volunteer, make_event, register_directly):
        volunteer = make_volunteer(year=3)
        event = make_event(start_date=date(2024, 6, 1), start_time="09:00", end_time="17:00")
        register_directly(event, volunteer, attended=True)
        service = AnalyticsService(db)

        during = service.get_attendance_analytics(AnalyticsFilters(), now=datetime(2024, 6, 1, 12, 0))
        after = service.get_attendance_analytics(AnalyticsFilters(), now=datetime(2024, 6, 1, 17, 1))

        assert during["overall"]["totalEvents"] == 0
        assert after["overall"]["totalEvents"] == 1

    def test_year_filter(self, db, make_volunteer, make_event, register_directly):
        self._seed(make_volunteer, make_event, register_directly)
        service = AnalyticsService(db)

        result = service.get_attendance_analytics(AnalyticsFilters(year=2), now=NOW)
        missing = service.get_attendance_analytics(AnalyticsFilters(year=5), now=NOW)

        assert list(result["yearWise"]) == ["2"]
        assert missing["yearWise"] == {}

    def test_month_view_with_filters(self, db, make_volunteer, make_event, register_directly):
        self._seed(make_volunteer, make_event, register_directly)
        service = AnalyticsService(db)

        result = service.get_attendance_analytics(
            AnalyticsFilters(viewMode="month", month="april"), now=NOW
        )

        assert list(result["monthWise"]) == ["April"]
        assert result["monthWise"]["April"]["summary"]["present"] == 1

    def test_event_type_and_department_filters(self, db, make_volunteer, make_event, register_directly):
        self._seed(make_volunteer, make_event, register_directly)
        service = AnalyticsService(db)

        by_type = service.get_attendance_analytics(
            AnalyticsFilters(eventType=EventType.HEALTH), now=NOW
        )
        by_department = service.get_attendance_analytics(
            AnalyticsFilters(department="Civil"), now=NOW
        )

        assert by_type["overall"]["totalEvents"] == 1
        assert by_type["overall"]["presentCount"] == 1
        assert by_department["overall"]["totalVolunteers"] == 1
        assert list(by_department["yearWise"]) == ["1"]

    def test_export_csv(self, db, make_volunteer, make_event, register_directly):
        self._seed(make_volunteer, make_event, register_directly)

        content = AnalyticsService(db).export_csv(AnalyticsFilters(year=1), now=NOW)

        rows = list(csv.reader(io.StringIO(content)))
        assert rows[0] == ["Year: 1"]
        assert rows[1][0] == "Volunteer Name"
        assert rows[2][0] == "Asha"
        assert rows[2][2] == "Civil"
        assert rows[2][-1] == "100.0%"


class TestAnalyticsEndpoints:

    def test_year_view_endpoint(self, client, make_volunteer, past_event, register_directly):
        volunteer = make_volunteer(name="Asha", year=4)
        register_directly(past_event, volunteer, attended=True)

        response = client.get("/api/analytics/attendance")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["viewMode"] == "year"
        assert "monthWise" not in data
        assert data["yearWise"]["4"]["volunteers"][0]["attendancePercentage"] == 100.0
        assert data["overall"]["attendanceRate"] == 100.0

    def test_month_view_endpoint(self, client, make_volunteer, past_event, register_directly):
        register_directly(past_event, make_volunteer(), attended=False)
        month = MONTHS[past_event.start_date.month - 1]

        response = client.get("/api/analytics/attendance", params={"viewMode": "month"})

        data = response.json()
        assert len(data["monthWise"]) == 12
        assert data["monthWise"][month]["summary"]["absent"] == 1

    def test_invalid_view_mode(self, client):
        response = client.get("/api/analytics/attendance", params={"viewMode": "week"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_export_endpoint(self, client, make_volunteer, past_event, register_directly):
        register_directly(past_event, make_volunteer(name="Asha"), attended=True)

        response = client.get("/api/analytics/attendance/export", params={"viewMode": "month"})

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        assert "Asha" in response.text

    def test_no_completed_events(self, client, make_volunteer, make_event):
        make_volunteer(year=1)
        make_event(start_date=date.today() + timedelta(days=3))

        data = client.get("/api/analytics/attendance").json()

        assert data["overall"]["totalEvents"] == 0
        assert data["yearWise"]["1"]["totalEvents"] == 0


class TestAnalyticsAfterWrites:
    """Analytics reflect attendance and unregistration made through the services."""

    def test_marked_attendance_counts_as_present(self, db, make_volunteer, make_event):
        volunteer = make_volunteer(name="Asha", year=1)
        event = make_event(start_date=date(2024, 3, 5))
        RegistrationService(db).register(event.id, volunteer.id)

        AttendanceService(db).set_attendance(event.id, VolunteerRef(volunteerId=volunteer.id), True)
        result = AnalyticsService(db).get_attendance_analytics(AnalyticsFilters(), now=NOW)

        bucket = result["yearWise"]["1"]
        assert bucket["summary"] == {"totalRecords": 1, "present": 1, "absent": 0}
        assert bucket["volunteers"][0]["present"] == 1
        assert bucket["volunteers"][0]["absent"] == 0
        assert bucket["volunteers"][0]["attendancePercentage"] == 100.0

    def test_unregistered_volunteer_drops_out(self, db, make_volunteer, make_event):
        volunteer = make_volunteer(name="Asha", year=1)
        event = make_event(start_date=date(2024, 3, 5))
        RegistrationService(db).register(event.id, volunteer.id)
        AttendanceService(db).set_attendance(event.id, VolunteerRef(volunteerId=volunteer.id), True)

        RegistrationService(db).unregister(event.id, VolunteerRef(volunteerId=volunteer.id))
        result = AnalyticsService(db).get_attendance_analytics(AnalyticsFilters(), now=NOW)

        assert result["yearWise"]["1"]["volunteers"] == []
        assert result["yearWise"]["1"]["totalEvents"] == 1
        assert result["overall"]["totalAttendanceRecords"] == 0
