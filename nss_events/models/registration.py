from sqlalchemy import (
    Column, String, Boolean, DateTime, ForeignKey, JSON, CheckConstraint,
    UniqueConstraint, Enum as SQLEnum
)
from sqlalchemy.orm import relationship
import enum
from nss_events.core.database import Base
from nss_events.utils.datetime_utils import isoformat_or_none, utc_now


class ParticipantType(str, enum.Enum):
    NSS_VOLUNTEER = "nss_volunteer"
    EXTERNAL = "external"


class Registration(Base):
    """
    One participant's place on one event.

    Internal participants point at a roster volunteer; external
    participants carry their submitted contact data. Exactly one of the
    two is populated, enforced by ``ck_registrations_participant``.
    """
    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("event_id", "volunteer_id", name="uq_registrations_event_volunteer"),
        UniqueConstraint("event_id", "external_email", name="uq_registrations_event_email"),
        CheckConstraint(
            "(participant_type = 'nss_volunteer' AND volunteer_id IS NOT NULL "
            "AND external_email IS NULL AND contact IS NULL) OR "
            "(participant_type = 'external' AND volunteer_id IS NULL "
            "AND external_email IS NOT NULL AND contact IS NOT NULL)",
            name="ck_registrations_participant"
        ),
    )

    id = Column(String(36), primary_key=True, index=True)

    event_id = Column(
        String(36),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    participant_type = Column(
        SQLEnum(
            ParticipantType,
            name="participant_type",
            values_callable=lambda e: [m.value for m in e]
        ),
        nullable=False
    )

    volunteer_id = Column(String(36), ForeignKey("volunteers.id"), nullable=True, index=True)

    external_email = Column(
        String(255),
        nullable=True,
        comment="Normalized (trimmed, lower-cased) email of an external participant"
    )
    contact = Column(JSON(none_as_null=True), nullable=True)

    role = Column(String(50), nullable=False, default="Participant")

    registered_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    attended = Column(Boolean, nullable=False, default=False)
    attendance_date = Column(DateTime(timezone=True), nullable=True)

    event = relationship("Event", back_populates="registrations")
    volunteer = relationship("Volunteer")

    @property
    def is_external(self) -> bool:
        return self.participant_type == ParticipantType.EXTERNAL

    @property
    def participant_id(self) -> str:
        """Volunteer id for members, normalized email for external registrants."""
        return self.external_email if self.is_external else self.volunteer_id

    def __repr__(self) -> str:
        return (
            f"<Registration(id={self.id}, event_id={self.event_id}, "
            f"type={self.participant_type}, participant={self.participant_id})>"
        )

    def to_dict(self, include_participant: bool = False) -> dict:
        registration_dict = {
            "id": self.id,
            "eventId": self.event_id,
            "participantType": self.participant_type.value,
            "participantId": self.participant_id,
            "role": self.role,
            "registrationDate": isoformat_or_none(self.registered_at),
            "attended": bool(self.attended),
            "attendanceDate": isoformat_or_none(self.attendance_date),
        }

        if include_participant:
            if self.is_external:
                registration_dict["participant"] = dict(self.contact or {})
            elif self.volunteer:
                registration_dict["participant"] = self.volunteer.to_dict()
            else:
                registration_dict["participant"] = None

        return registration_dict


from nss_events.models.volunteer import Volunteer  # noqa: E402,F401
