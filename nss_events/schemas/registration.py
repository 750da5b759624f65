from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Annotated, List, Literal, Optional, Union

from nss_events.models.registration import ParticipantType


BLOOD_GROUPS = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")
EXTERNAL_ROLES = ("Student", "Staff")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class VolunteerRef(BaseModel):
    type: Literal["nss_volunteer"] = "nss_volunteer"
    volunteerId: str = Field(..., min_length=1)


class ExternalRef(BaseModel):
    type: Literal["external"] = "external"
    email: str = Field(..., min_length=3)

    @field_validator("email")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_email(v)


ParticipantRef = Annotated[Union[VolunteerRef, ExternalRef], Field(discriminator="type")]


def participant_ref(
    participant_id: str,
    participant_type: ParticipantType = ParticipantType.NSS_VOLUNTEER
) -> Union[VolunteerRef, ExternalRef]:
    """Build the tagged reference from a REST-style (id, type) pair."""
    if participant_type == ParticipantType.EXTERNAL:
        return ExternalRef(email=participant_id)
    return VolunteerRef(volunteerId=participant_id)


class RegistrationCreate(BaseModel):
    participantId: str = Field(..., min_length=1, description="Volunteer ID")
    role: str = Field("Participant", min_length=1, max_length=50)


class ExternalContact(BaseModel):
    """
    Contact data submitted by an external registrant.

    Student-only requirements (course, year, universityId) depend on the
    role, so they are checked by ``RegistrationService`` alongside these
    field rules to report every problem in one response.
    """
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., pattern=r"^\d{10}$")
    role: Literal["Student", "Staff"] = "Student"
    age: int = Field(..., ge=16, le=100)
    bloodGroup: Literal["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]
    universityId: Optional[str] = Field(None, max_length=50)
    course: Optional[str] = Field(None, max_length=100)
    year: Optional[int] = Field(None, ge=1, le=5)

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("universityId", "course", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return normalize_email(v)


class AttendanceUpdate(BaseModel):
    participantId: str = Field(..., min_length=1)
    participantType: ParticipantType = ParticipantType.NSS_VOLUNTEER
    attended: bool

    def ref(self):
        return participant_ref(self.participantId, self.participantType)


class BulkAttendanceRequest(BaseModel):
    records: List[AttendanceUpdate] = Field(..., min_length=1)


class RegistrationResponse(BaseModel):
    id: str
    eventId: str
    participantType: str
    participantId: str
    role: str
    registrationDate: Optional[str] = None
    attended: bool
    attendanceDate: Optional[str] = None
    participant: Optional[dict] = None


class RegistrationCreateResponse(BaseModel):
    success: bool = True
    message: str = "Successfully registered for the event"
    event: dict
    registration: RegistrationResponse


class ParticipantsResponse(BaseModel):
    success: bool = True
    eventTitle: str
    maxParticipants: int
    currentParticipants: int
    participants: List[RegistrationResponse]
