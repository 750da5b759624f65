from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional

from nss_events.models.event import EventType


ViewMode = Literal["year", "month"]


class AnalyticsFilters(BaseModel):
    viewMode: ViewMode = "year"
    eventType: Optional[EventType] = None
    year: Optional[int] = Field(None, description="Cohort year, year view only")
    month: Optional[str] = Field(None, description="Month name, month view only")
    department: Optional[str] = None


class VolunteerAttendance(BaseModel):
    volunteerId: str
    name: str
    email: str
    department: Optional[str] = None
    year: Optional[int] = None
    totalEvents: int
    present: int
    absent: int
    attendancePercentage: float


class BucketSummary(BaseModel):
    totalRecords: int
    present: int
    absent: int


class AttendanceBucket(BaseModel):
    totalEvents: int
    summary: BucketSummary
    volunteers: List[VolunteerAttendance]


class OverallSummary(BaseModel):
    totalEvents: int
    totalVolunteers: int
    totalAttendanceRecords: int
    presentCount: int
    absentCount: int
    attendanceRate: float


class AnalyticsResponse(BaseModel):
    success: bool = True
    viewMode: ViewMode
    yearWise: Optional[Dict[str, AttendanceBucket]] = None
    monthWise: Optional[Dict[str, AttendanceBucket]] = None
    overall: OverallSummary
