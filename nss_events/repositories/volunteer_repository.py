from typing import List, Optional
from sqlalchemy.orm import Session
from nss_events.models.volunteer import Volunteer, NSSApplicationStatus


class VolunteerRepository:
    """Volunteer Directory: read-only access to the roster."""

    def __init__(self, db: Session):
        self.db = db

    def get_volunteer(self, volunteer_id: str) -> Optional[Volunteer]:
        return self.db.query(Volunteer).filter(Volunteer.id == volunteer_id).first()

    def list_approved_volunteers(self, department: Optional[str] = None) -> List[Volunteer]:
        query = self.db.query(Volunteer).filter(
            Volunteer.nss_application_status == NSSApplicationStatus.APPROVED
        )

        if department:
            query = query.filter(Volunteer.department == department)

        return query.order_by(Volunteer.name, Volunteer.id).all()
