from sqlalchemy.orm import Session
from pydantic import ValidationError
from typing import Any, Dict, List, Optional, Tuple, Union
import logging
import uuid

from nss_events.core.exceptions import (
    AppError,
    AlreadyRegistered,
    ContactValidationError,
    EventFull,
    EventNotFound,
    EventNotOpen,
    NotEligible,
    NotPublicEvent,
    NotRegistered,
    VolunteerNotFound,
)
from nss_events.models.event import Event, RegistrationType
from nss_events.models.registration import Registration, ParticipantType
from nss_events.models.volunteer import Volunteer
from nss_events.repositories.event_repository import EventRepository
from nss_events.repositories.registration_repository import RegistrationRepository
from nss_events.repositories.volunteer_repository import VolunteerRepository
from nss_events.schemas.registration import (
    BLOOD_GROUPS,
    EXTERNAL_ROLES,
    ExternalContact,
    ExternalRef,
    VolunteerRef,
)
from nss_events.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


FIELD_LABELS = {
    "name": "Name",
    "email": "Email",
    "phone": "Phone",
    "role": "Role",
    "age": "Age",
    "bloodGroup": "Blood group",
    "universityId": "University ID",
    "course": "Course",
    "year": "Year",
}

FIELD_MESSAGES = {
    "name": "Name is required",
    "email": "Please enter a valid email address",
    "phone": "Phone must be exactly 10 digits",
    "role": f"Role must be one of: {', '.join(EXTERNAL_ROLES)}",
    "age": "Age must be between 16 and 100",
    "bloodGroup": f"Blood group must be one of: {', '.join(BLOOD_GROUPS)}",
    "year": "Year must be between 1 and 5",
}

STUDENT_FIELDS = ("course", "year", "universityId")


def find_registration(
    event: Event,
    ref: Union[VolunteerRef, ExternalRef]
) -> Optional[Registration]:
    """Locate the registration a participant reference points at, if any."""
    for registration in event.registrations:
        if isinstance(ref, ExternalRef):
            if registration.is_external and registration.external_email == ref.email:
                return registration
        elif not registration.is_external and registration.volunteer_id == ref.volunteerId:
            return registration
    return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_contact(data: Any) -> ExternalContact:
    """
    Validate an external registrant's contact data.

    Every invalid field is reported at once as ``{field: message}`` so the
    form can highlight all of them.

    Raises:
        ContactValidationError: one or more fields are invalid
    """
    if not isinstance(data, dict):
        raise ContactValidationError({"contact": "Registration details must be an object"})

    errors: Dict[str, str] = {}
    contact = None

    try:
        contact = ExternalContact.model_validate(data)
    except ValidationError as e:
        for err in e.errors():
            field = str(err["loc"][0]) if err["loc"] else "contact"
            if err["type"] == "missing":
                message = f"{FIELD_LABELS.get(field, field)} is required"
            else:
                message = FIELD_MESSAGES.get(field, err["msg"])
            errors.setdefault(field, message)

    if data.get("role", "Student") == "Student":
        for field in STUDENT_FIELDS:
            if _is_blank(data.get(field)):
                errors.setdefault(field, f"{FIELD_LABELS[field]} is required for students")

    if errors:
        raise ContactValidationError(errors)

    return contact


class RegistrationService:

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventRepository(db)
        self.registration_repo = RegistrationRepository(db)
        self.volunteer_repo = VolunteerRepository(db)

    @staticmethod
    def _check_open(event: Event) -> None:
        if not event.is_open_for_registration:
            raise EventNotOpen(
                f"Event is not open for registration. Current status: {event.status.value}"
            )

    @staticmethod
    def _check_capacity(event: Event) -> None:
        if len(event.registrations) >= event.max_participants:
            raise EventFull()

    def _resolve_volunteer(self, volunteer_id: str) -> Volunteer:
        volunteer = self.volunteer_repo.get_volunteer(volunteer_id)
        if not volunteer:
            raise VolunteerNotFound()
        return volunteer

    @staticmethod
    def _check_eligibility(event: Event, volunteer: Volunteer) -> None:
        if event.registration_type == RegistrationType.INTERNAL and not volunteer.is_approved:
            raise NotEligible()

    def register(
        self,
        event_id: str,
        participant_id: str,
        role: str = "Participant"
    ) -> Tuple[Event, Registration]:
        """
        Register a roster volunteer for an event.

        Checks run in a fixed order inside the event lock: event open,
        capacity, eligibility, then duplicates.

        Raises:
            EventNotFound, EventNotOpen, EventFull, VolunteerNotFound,
            NotEligible, AlreadyRegistered, StoreConflict
        """
        def apply(event: Event) -> Tuple[Event, Registration]:
            self._check_open(event)
            self._check_capacity(event)

            volunteer = self._resolve_volunteer(participant_id)
            self._check_eligibility(event, volunteer)

            if find_registration(event, VolunteerRef(volunteerId=volunteer.id)):
                raise AlreadyRegistered()

            registration = Registration(
                id=str(uuid.uuid4()),
                participant_type=ParticipantType.NSS_VOLUNTEER,
                volunteer_id=volunteer.id,
                role=role,
                registered_at=utc_now(),
                attended=False
            )
            registration.volunteer = volunteer
            event.registrations.append(registration)
            return event, registration

        try:
            event, registration = self.event_repo.with_event_lock(event_id, apply)
        except AppError as e:
            logger.info(f"Registration of volunteer {participant_id} on event {event_id} rejected: {e.code}")
            raise

        logger.info(
            f"Volunteer {participant_id} registered for event {event_id} "
            f"({event.current_participants}/{event.max_participants})"
        )
        return event, registration

    def register_external(
        self,
        event_id: str,
        contact_data: Any
    ) -> Tuple[Event, Registration]:
        """
        Register an external participant on a public event.

        Raises:
            ContactValidationError, EventNotFound, NotPublicEvent,
            EventNotOpen, EventFull, AlreadyRegistered, StoreConflict
        """
        contact = validate_contact(contact_data)

        contact_record = contact.model_dump()
        if contact.role != "Student":
            contact_record["course"] = None
            contact_record["year"] = None

        def apply(event: Event) -> Tuple[Event, Registration]:
            if event.registration_type != RegistrationType.PUBLIC:
                raise NotPublicEvent()

            self._check_open(event)
            self._check_capacity(event)

            if find_registration(event, ExternalRef(email=contact.email)):
                raise AlreadyRegistered("Email already registered for this event")

            registration = Registration(
                id=str(uuid.uuid4()),
                participant_type=ParticipantType.EXTERNAL,
                external_email=contact.email,
                contact=contact_record,
                role=contact.role,
                registered_at=utc_now(),
                attended=False
            )
            event.registrations.append(registration)
            return event, registration

        try:
            event, registration = self.event_repo.with_event_lock(event_id, apply)
        except AppError as e:
            logger.info(f"External registration of {contact.email} on event {event_id} rejected: {e.code}")
            raise

        logger.info(
            f"External participant {contact.email} registered for event {event_id} "
            f"({event.current_participants}/{event.max_participants})"
        )
        return event, registration

    def unregister(
        self,
        event_id: str,
        ref: Union[VolunteerRef, ExternalRef]
    ) -> Event:
        """
        Remove a participant's registration, including any attendance recorded on it.

        Allowed in every event status.
        """
        def apply(event: Event) -> Event:
            registration = find_registration(event, ref)
            if not registration:
                raise NotRegistered()

            event.registrations.remove(registration)
            return event

        try:
            event = self.event_repo.with_event_lock(event_id, apply)
        except AppError as e:
            logger.info(f"Unregistration from event {event_id} rejected: {e.code}")
            raise

        logger.info(
            f"Participant {ref.model_dump()} unregistered from event {event_id} "
            f"({event.current_participants}/{event.max_participants})"
        )
        return event

    def get_participants(
        self,
        event_id: str,
        participant_type: Optional[ParticipantType] = None,
        attended: Optional[bool] = None
    ) -> Tuple[Event, List[Registration]]:
        event = self.event_repo.get_by_id(event_id, include_relations=False)
        if not event:
            raise EventNotFound()

        registrations = self.registration_repo.get_event_registrations(
            event_id,
            participant_type=participant_type,
            attended=attended
        )
        return event, registrations

    def get_volunteer_events(self, volunteer_id: str) -> List[Event]:
        self._resolve_volunteer(volunteer_id)
        return self.event_repo.get_by_volunteer(volunteer_id)
