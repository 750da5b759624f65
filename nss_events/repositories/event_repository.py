from typing import Callable, List, Optional, Sequence, TypeVar
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy import func
from datetime import date, datetime
import logging

from nss_events.core.config import settings
from nss_events.core.exceptions import EventNotFound, StoreConflict, StoreUnavailable
from nss_events.models.event import Event, EventStatus, EventType
from nss_events.models.registration import Registration
from nss_events.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventRepository:
    """
    Loads and saves Event aggregates.

    ``with_event_lock`` is the only way registration and attendance code
    mutates an event: it re-reads the event, applies the mutation,
    reconciles ``current_participants`` and commits, retrying on
    optimistic-version conflicts.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, event_id: str, include_relations: bool = True) -> Optional[Event]:
        query = self.db.query(Event).filter(Event.id == event_id)
        if include_relations:
            query = query.options(
                selectinload(Event.registrations).selectinload(Registration.volunteer)
            )
        return query.first()

    def get_all(
        self,
        status: Optional[EventStatus] = None,
        event_type: Optional[EventType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Event]:
        query = self.db.query(Event)

        if status:
            query = query.filter(Event.status == status)

        if event_type:
            query = query.filter(Event.event_type == event_type)

        if start_date:
            query = query.filter(Event.start_date >= start_date)

        if end_date:
            query = query.filter(Event.start_date <= end_date)

        return query.options(
            selectinload(Event.registrations)
        ).order_by(Event.start_date, Event.start_time).all()

    def get_by_statuses(self, statuses: Sequence[EventStatus]) -> List[Event]:
        return self.db.query(Event).filter(
            Event.status.in_(list(statuses))
        ).order_by(Event.start_date).all()

    def get_completed(
        self,
        now: datetime,
        event_type: Optional[EventType] = None
    ) -> List[Event]:
        """Events whose end (date + time) lies strictly before ``now``."""
        query = self.db.query(Event).filter(
            func.coalesce(Event.end_date, Event.start_date) <= now.date()
        )

        if event_type:
            query = query.filter(Event.event_type == event_type)

        candidates = query.options(
            selectinload(Event.registrations)
        ).order_by(Event.start_date, Event.start_time, Event.id).all()

        return [event for event in candidates if event.is_completed(now)]

    def get_by_volunteer(self, volunteer_id: str) -> List[Event]:
        return self.db.query(Event).join(Registration).filter(
            Registration.volunteer_id == volunteer_id
        ).options(
            selectinload(Event.registrations)
        ).order_by(Event.start_date, Event.start_time).all()

    def _load_for_update(self, event_id: str) -> Optional[Event]:
        return self.db.query(Event).filter(
            Event.id == event_id
        ).options(
            selectinload(Event.registrations).selectinload(Registration.volunteer)
        ).populate_existing().with_for_update().first()

    @staticmethod
    def _reconcile(event: Event) -> None:
        event.current_participants = len(event.registrations)
        # Always touch the row so the version check covers every mutation
        event.updated_at = utc_now()

    def with_event_lock(
        self,
        event_id: str,
        fn: Callable[[Event], T],
        max_retries: Optional[int] = None
    ) -> T:
        """
        Run ``fn(event)`` against a fresh copy of the event and persist it atomically.

        Args:
            event_id: Event to mutate
            fn: Mutation; may raise an ``AppError`` to reject the operation
            max_retries: Attempts before giving up (defaults to STORE_MAX_RETRIES)

        Returns:
            Whatever ``fn`` returned, after the commit succeeded

        Raises:
            EventNotFound: the event does not exist
            StoreConflict: every attempt lost a concurrent write
            StoreUnavailable: the database could not be reached
        """
        attempts = max_retries or settings.STORE_MAX_RETRIES

        for attempt in range(1, attempts + 1):
            try:
                event = self._load_for_update(event_id)
                if not event:
                    raise EventNotFound()

                result = fn(event)

                self._reconcile(event)
                self.db.commit()
                return result
            except (StaleDataError, IntegrityError) as e:
                self.db.rollback()
                logger.warning(
                    f"Write conflict on event {event_id} "
                    f"(attempt {attempt}/{attempts}): {e.__class__.__name__}"
                )
            except OperationalError as e:
                self.db.rollback()
                logger.error(f"Event store unavailable for event {event_id}", exc_info=True)
                raise StoreUnavailable() from e
            except Exception:
                self.db.rollback()
                raise

        logger.error(f"Giving up on event {event_id} after {attempts} conflicting attempts")
        raise StoreConflict()
