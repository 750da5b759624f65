from pydantic import BaseModel
from typing import List, Literal, Optional


class AttendanceHistoryEntry(BaseModel):
    eventId: str
    eventTitle: str
    eventDate: str
    eventTime: str
    location: str
    role: str
    attended: bool
    attendanceDate: Optional[str] = None


class AttendanceHistoryResponse(BaseModel):
    success: bool = True
    volunteerId: str
    history: List[AttendanceHistoryEntry]


class EventAttendanceStats(BaseModel):
    eventId: str
    eventTitle: str
    eventDate: str
    totalRegistered: int
    present: int
    absent: int


class AttendanceStatsResponse(BaseModel):
    success: bool = True
    totalEvents: int
    totalAttendanceRecords: int
    presentCount: int
    absentCount: int
    attendanceByEvent: List[EventAttendanceStats]


class ReportEventDetails(BaseModel):
    eventId: str
    title: str
    date: str
    time: str
    location: str
    totalVolunteers: int


class ReportEntry(BaseModel):
    volunteerId: str
    name: str
    email: str
    phone: Optional[str] = None
    department: Optional[str] = None
    year: Optional[int] = None
    status: Literal["present", "absent", "not-marked"]
    markedAt: Optional[str] = None


class EventAttendanceReportResponse(BaseModel):
    success: bool = True
    eventDetails: ReportEventDetails
    attendance: List[ReportEntry]
