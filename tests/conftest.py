"""
Pytest configuration file.
"""
import os

# Point the application at a throwaway SQLite database before it is imported
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ.setdefault("ENVIRONMENT", "local")

import pytest
from fastapi.testclient import TestClient
from datetime import date, timedelta
import uuid

from nss_events.core.database import Base, SessionLocal, engine, get_db
from nss_events.models.event import Event, EventStatus, EventType, RegistrationType
from nss_events.models.registration import Registration, ParticipantType
from nss_events.models.volunteer import Volunteer, NSSApplicationStatus
from main import app


def override_get_db():
    """Override database dependency for testing."""
    try:
        db = SessionLocal()
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def db():
    """Create test database."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    yield db
    db.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Create test client."""
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_volunteer(db):
    """Factory for roster volunteers."""
    def _make(
        name: str = "Test Volunteer",
        status: NSSApplicationStatus = NSSApplicationStatus.APPROVED,
        year: int = 2,
        department: str = "Computer Science",
        email: str = None
    ) -> Volunteer:
        volunteer = Volunteer(
            id=str(uuid.uuid4()),
            name=name,
            email=email or f"{uuid.uuid4().hex[:8]}@nss.org",
            phone="9876543210",
            department=department,
            year=year,
            nss_application_status=status,
        )
        db.add(volunteer)
        db.commit()
        db.refresh(volunteer)
        return volunteer
    return _make


@pytest.fixture
def make_event(db):
    """Factory for events; upcoming internal event by default."""
    def _make(
        title: str = "Beach Cleanup Drive",
        registration_type: RegistrationType = RegistrationType.INTERNAL,
        max_participants: int = 10,
        status: EventStatus = EventStatus.UPCOMING,
        start_date: date = None,
        end_date: date = None,
        start_time: str = "10:00",
        end_time: str = "12:00",
        event_type: EventType = EventType.COMMUNITY_SERVICE
    ) -> Event:
        event = Event(
            id=str(uuid.uuid4()),
            title=title,
            description="Cleaning up the shoreline with the local community.",
            location="Juhu Beach",
            event_type=event_type,
            registration_type=registration_type,
            start_date=start_date or date.today() + timedelta(days=7),
            end_date=end_date,
            start_time=start_time,
            end_time=end_time,
            status=status,
            max_participants=max_participants,
            current_participants=0,
        )
        db.add(event)
        db.commit()
        db.refresh(event)
        return event
    return _make


@pytest.fixture
def approved_volunteer(make_volunteer):
    return make_volunteer(name="Asha Patel", email="asha@nss.org")


@pytest.fixture
def pending_volunteer(make_volunteer):
    return make_volunteer(
        name="Dev Rao",
        email="dev@nss.org",
        status=NSSApplicationStatus.PENDING
    )


@pytest.fixture
def internal_event(make_event):
    return make_event(title="Tree Plantation", max_participants=2)


@pytest.fixture
def public_event(make_event):
    return make_event(
        title="Blood Donation Camp",
        registration_type=RegistrationType.PUBLIC,
        max_participants=2,
        event_type=EventType.HEALTH
    )


@pytest.fixture
def past_event(make_event):
    """An internal event that ended last month."""
    day = date.today() - timedelta(days=30)
    return make_event(title="Literacy Workshop", start_date=day, event_type=EventType.EDUCATIONAL)


@pytest.fixture
def register_directly(db):
    """Attach a volunteer registration without going through the service."""
    def _register(event: Event, volunteer: Volunteer, attended: bool = False) -> Registration:
        registration = Registration(
            id=str(uuid.uuid4()),
            event_id=event.id,
            participant_type=ParticipantType.NSS_VOLUNTEER,
            volunteer_id=volunteer.id,
            role="Participant",
            attended=attended,
        )
        db.add(registration)
        db.flush()
        event.current_participants = len(event.registrations)
        db.commit()
        db.refresh(event)
        return registration
    return _register


@pytest.fixture
def external_contact():
    return {
        "name": "Jane",
        "email": "jane@x.com",
        "phone": "9876543210",
        "age": 20,
        "bloodGroup": "O+",
        "role": "Staff",
    }
