from sqlalchemy import Column, String, Boolean, DateTime, Integer, Enum as SQLEnum
from sqlalchemy.sql import func
import enum
from nss_events.core.database import Base


class NSSApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Volunteer(Base):
    """
    Read-only view of the volunteer roster.

    Records are owned by the membership flow; participation code only
    reads them to check eligibility and to bucket analytics.
    """
    __tablename__ = "volunteers"

    id = Column(String(36), primary_key=True, index=True)

    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(20), nullable=True)
    department = Column(String(100), nullable=True, index=True)
    year = Column(Integer, nullable=True, comment="Cohort year (1-5)")

    nss_application_status = Column(
        SQLEnum(
            NSSApplicationStatus,
            name="nss_application_status",
            values_callable=lambda e: [m.value for m in e]
        ),
        nullable=False,
        default=NSSApplicationStatus.PENDING,
        index=True
    )

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )

    @property
    def is_approved(self) -> bool:
        return self.nss_application_status == NSSApplicationStatus.APPROVED

    def __repr__(self) -> str:
        return f"<Volunteer(id={self.id}, email={self.email}, status={self.nss_application_status})>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "department": self.department,
            "year": self.year,
            "nssApplicationStatus": self.nss_application_status.value,
        }
