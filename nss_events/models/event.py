from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Column, String, Integer, Date, DateTime, Text, CheckConstraint,
    Enum as SQLEnum
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from nss_events.core.database import Base
from nss_events.utils.datetime_utils import combine, isoformat_or_none, local_now


class EventStatus(str, enum.Enum):
    UPCOMING = "Upcoming"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    POSTPONED = "Postponed"


class RegistrationType(str, enum.Enum):
    INTERNAL = "internal"
    PUBLIC = "public"


class EventType(str, enum.Enum):
    COMMUNITY_SERVICE = "Community Service"
    EDUCATIONAL = "Educational"
    CULTURAL = "Cultural"
    ENVIRONMENTAL = "Environmental"
    HEALTH = "Health"
    EMERGENCY = "Emergency"
    OTHER = "Other"


CLOSED_STATUSES = (EventStatus.CANCELLED, EventStatus.COMPLETED)


def _values(enum_cls):
    return [m.value for m in enum_cls]


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("max_participants >= 1", name="ck_events_max_participants"),
        CheckConstraint(
            "current_participants >= 0 AND current_participants <= max_participants",
            name="ck_events_current_participants"
        ),
    )

    id = Column(String(36), primary_key=True, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(500), nullable=False)

    event_type = Column(
        SQLEnum(EventType, name="event_type", values_callable=_values),
        nullable=False,
        default=EventType.OTHER,
        index=True
    )
    registration_type = Column(
        SQLEnum(RegistrationType, name="registration_type", values_callable=_values),
        nullable=False,
        default=RegistrationType.INTERNAL
    )

    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True, comment="Defaults to start_date when absent")
    start_time = Column(String(5), nullable=False, comment="HH:MM, 24-hour")
    end_time = Column(String(5), nullable=True, comment="Defaults to start_time when absent")

    status = Column(
        SQLEnum(EventStatus, name="event_status", values_callable=_values),
        nullable=False,
        default=EventStatus.UPCOMING,
        index=True
    )

    max_participants = Column(Integer, nullable=False, default=50)
    current_participants = Column(
        Integer,
        nullable=False,
        default=0,
        comment="Cached len(registrations); only written by the event store accessor"
    )

    version = Column(Integer, nullable=False)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    registrations = relationship(
        "Registration",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="Registration.registered_at"
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def effective_end_date(self):
        return self.end_date or self.start_date

    @property
    def effective_end_time(self) -> str:
        return self.end_time or self.start_time

    @property
    def starts_at(self) -> datetime:
        return combine(self.start_date, self.start_time)

    @property
    def ends_at(self) -> datetime:
        return combine(self.effective_end_date, self.effective_end_time)

    @property
    def is_full(self) -> bool:
        return self.current_participants >= self.max_participants

    @property
    def available_spots(self) -> int:
        return max(0, self.max_participants - self.current_participants)

    @property
    def is_open_for_registration(self) -> bool:
        return self.status not in CLOSED_STATUSES

    def is_completed(self, now: Optional[datetime] = None) -> bool:
        """An event counts as completed once its end has passed, whatever its status label."""
        return self.ends_at < (now or local_now())

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, status={self.status})>"

    def to_dict(self, include_registrations: bool = False) -> dict:
        event_dict = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "eventType": self.event_type.value,
            "registrationType": self.registration_type.value,
            "startDate": isoformat_or_none(self.start_date),
            "endDate": isoformat_or_none(self.effective_end_date),
            "startTime": self.start_time,
            "endTime": self.effective_end_time,
            "status": self.status.value,
            "maxParticipants": self.max_participants,
            "currentParticipants": self.current_participants,
            "availableSpots": self.available_spots,
            "isFull": self.is_full,
        }

        if include_registrations:
            event_dict["registrations"] = [r.to_dict() for r in self.registrations]

        return event_dict


from nss_events.models.registration import Registration  # noqa: E402,F401
