from typing import Optional, List
from sqlalchemy.orm import Session, joinedload
from nss_events.models.event import Event
from nss_events.models.registration import Registration, ParticipantType


class RegistrationRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_volunteer_registrations(self, volunteer_id: str) -> List[Registration]:
        return self.db.query(Registration).join(Event).filter(
            Registration.participant_type == ParticipantType.NSS_VOLUNTEER,
            Registration.volunteer_id == volunteer_id
        ).options(
            joinedload(Registration.event)
        ).order_by(Event.start_date, Event.start_time).all()

    def get_event_registrations(
        self,
        event_id: str,
        participant_type: Optional[ParticipantType] = None,
        attended: Optional[bool] = None
    ) -> List[Registration]:
        query = self.db.query(Registration).filter(
            Registration.event_id == event_id
        )

        if participant_type:
            query = query.filter(Registration.participant_type == participant_type)

        if attended is not None:
            query = query.filter(Registration.attended == attended)

        return query.options(joinedload(Registration.volunteer)).order_by(
            Registration.registered_at
        ).all()
