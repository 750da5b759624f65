from pydantic import BaseModel
from typing import Dict, List, Optional


class EventResponse(BaseModel):
    id: str
    title: str
    description: str
    location: str
    eventType: str
    registrationType: str
    startDate: str
    endDate: str
    startTime: str
    endTime: str
    status: str
    maxParticipants: int
    currentParticipants: int
    availableSpots: int
    isFull: bool
    registrations: Optional[List[dict]] = None


class EventDetailResponse(BaseModel):
    success: bool = True
    event: EventResponse


class EventsListResponse(BaseModel):
    success: bool = True
    events: List[EventResponse]


class CategorizedEventsResponse(BaseModel):
    success: bool = True
    upcoming: List[EventResponse]
    past: List[EventResponse]


class EventMutationResponse(BaseModel):
    success: bool = True
    message: str
    event: EventResponse


class StatusSyncResponse(BaseModel):
    success: bool = True
    message: str = "Event statuses updated successfully"
    updated: Dict[str, int]
