from typing import Optional, List, Dict
from sqlalchemy.orm import Session
from datetime import date, datetime
import logging

from nss_events.core.exceptions import AppError, EventNotFound
from nss_events.models.event import Event, EventStatus, EventType
from nss_events.repositories.event_repository import EventRepository
from nss_events.utils.datetime_utils import local_now

logger = logging.getLogger(__name__)

SYNCED_STATUSES = (EventStatus.UPCOMING, EventStatus.ONGOING)


class EventService:

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventRepository(db)

    def get_event(self, event_id: str) -> Event:
        event = self.event_repo.get_by_id(event_id, include_relations=True)

        if not event:
            raise EventNotFound()

        return event

    def list_events(
        self,
        status: Optional[EventStatus] = None,
        event_type: Optional[EventType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Event]:
        return self.event_repo.get_all(
            status=status,
            event_type=event_type,
            start_date=start_date,
            end_date=end_date
        )

    @staticmethod
    def _target_status(event: Event, now: datetime) -> Optional[EventStatus]:
        if event.status not in SYNCED_STATUSES:
            return None
        if event.is_completed(now):
            return EventStatus.COMPLETED
        if event.status == EventStatus.UPCOMING and event.starts_at <= now:
            return EventStatus.ONGOING
        return None

    def get_categorized_events(self, now: Optional[datetime] = None) -> Dict[str, List[Event]]:
        """
        Split all events into upcoming and past by their schedule.

        Upcoming events are ordered soonest first, past events most recent first.
        """
        now = now or local_now()
        events = self.event_repo.get_all()

        upcoming = [e for e in events if not e.is_completed(now)]
        past = [e for e in events if e.is_completed(now)]
        past.sort(key=lambda e: (e.start_date, e.start_time), reverse=True)

        return {"upcoming": upcoming, "past": past}

    def sync_event_statuses(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Reconcile status labels with the schedule.

        Upcoming events that have started become Ongoing; Upcoming or Ongoing
        events that have ended become Completed. Cancelled and Postponed
        events are left alone.

        Returns:
            dict: Number of events moved to each status
        """
        now = now or local_now()
        updated = {"ongoing": 0, "completed": 0}

        events = self.event_repo.get_by_statuses(SYNCED_STATUSES)

        for event in events:
            if self._target_status(event, now) is None:
                continue

            def apply(locked: Event) -> Optional[EventStatus]:
                # Decided again on the locked row; it may have been cancelled meanwhile
                target = self._target_status(locked, now)
                if target is not None:
                    locked.status = target
                return target

            try:
                target = self.event_repo.with_event_lock(event.id, apply)
            except AppError as e:
                logger.warning(f"Could not update status of event {event.id}: {e.code}")
                continue

            if target is not None:
                updated[target.value.lower()] += 1

        if updated["ongoing"] or updated["completed"]:
            logger.info(
                f"Event statuses updated: {updated['ongoing']} ongoing, "
                f"{updated['completed']} completed"
            )

        return updated
