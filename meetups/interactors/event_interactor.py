# meetups/interactors/event_interactor.py
import logging
from collections.abc import Callable
from datetime import datetime, time, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

from meetups.config import AppConfig
from meetups.domain.calendar import add_month, local_datetime, local_day_bounds
from meetups.domain.entities import (
    Identity,
    ListingWindow,
    Role,
    Thematique,
    Visibility,
    hotel_name_lower,
    normalize_hotel_name,
)
from meetups.domain.errors import (
    DailyQuotaExceededError,
    EventFullError,
    InvalidInputError,
    MeetupError,
    NotFoundError,
    OrganizerCannotLeaveError,
    PartialWriteError,
)
from meetups.domain.events import (
    MeetupCreated,
    MeetupUpdated,
    ParticipantJoined,
    ParticipantLeft,
)
from meetups.gateways.interfaces import IEventGateway, IParticipantGateway
from meetups.infrastructure import schemas
from meetups.infrastructure.event_dispatcher import EventDispatcher
from meetups.interactors.chat_interactor import ChatInteractor

CREATE_STEPS = ["event", "organizer_participant", "event_chat"]
JOIN_STEPS = ["participant", "participants_count", "chat_membership"]
LEAVE_STEPS = ["participant", "participants_count"]


class EventInteractor:
    """
    Event creation, join and leave.

    Each step of these operations is its own store write. Nothing is rolled
    back when a later step fails: the caller gets a PartialWriteError that
    names what landed and what did not.
    """

    def __init__(
            self,
            event_gateway: IEventGateway,
            participant_gateway: IParticipantGateway,
            chat_interactor: ChatInteractor,
            dispatcher: EventDispatcher,
            config: AppConfig,
            logger: logging.Logger,
            clock: Callable[[], datetime],
    ):
        self.event_gateway = event_gateway
        self.participant_gateway = participant_gateway
        self.chat_interactor = chat_interactor
        self.dispatcher = dispatcher
        self.config = config
        self.logger = logger
        self.clock = clock
        self.tz = ZoneInfo(config.TIMEZONE)

    def validate(self, data: schemas.EventCreate, now: datetime) -> dict:
        """Checks the form and returns the event datetimes, in UTC."""
        if not data.title.strip():
            raise InvalidInputError("title", "A title is required")
        if not data.hotel.name.strip():
            raise InvalidInputError("hotel.name", "The hotel name is required")
        if not data.hotel.city.strip():
            raise InvalidInputError("hotel.city", "The city is required")
        if data.event_date is None:
            raise InvalidInputError("event_date", "The event date is required")
        if data.event_time is None:
            raise InvalidInputError("event_time", "The event time is required")
        if data.thematique is None:
            raise InvalidInputError("thematique", "A theme is required")

        event_at = local_datetime(data.event_date, data.event_time, self.tz)
        if event_at <= now:
            raise InvalidInputError("event_date", "The event must be in the future")

        arrival_at = departure_at = None
        if data.arrival_date is not None:
            arrival_at = local_datetime(data.arrival_date, time.min, self.tz)
        if data.departure_date is not None:
            departure_at = local_datetime(data.departure_date, time.min, self.tz)
        if arrival_at is not None and departure_at is not None:
            if departure_at <= arrival_at:
                raise InvalidInputError(
                    "departure_date", "The departure must be after the arrival"
                )
            # the whole departure day belongs to the stay
            stay_end = local_datetime(
                data.departure_date + timedelta(days=1), time.min, self.tz
            )
            if not arrival_at <= event_at < stay_end:
                raise InvalidInputError(
                    "event_date", "The event must take place during your stay"
                )
        return {
            "event_date": event_at,
            "arrival_date": arrival_at,
            "departure_date": departure_at,
        }

    async def check_daily_quota(self, organizer_id: str, now: datetime) -> None:
        start, end = local_day_bounds(now, self.tz)
        created_today = await self.event_gateway.count_created_between(
            organizer_id, start, end
        )
        if created_today >= self.config.DAILY_EVENT_LIMIT:
            raise DailyQuotaExceededError(self.config.DAILY_EVENT_LIMIT)

    async def create_event(
            self,
            data: schemas.EventCreate,
            organizer: Identity
    ) -> schemas.Event:
        now = self.clock()
        dates = self.validate(data, now)
        await self.check_daily_quota(organizer.id, now)

        hotel_name = data.hotel.name.strip()
        event = await self.event_gateway.insert_event(
            {
                "title": data.title.strip(),
                "description": data.description.strip(),
                "hotel_name": hotel_name,
                "hotel_address": data.hotel.address.strip(),
                "hotel_city": data.hotel.city.strip(),
                "hotel_place_id": data.hotel.place_id or None,
                "hotel_name_lower": normalize_hotel_name(hotel_name),
                "thematique": data.thematique.value,
                "max_participants": data.max_participants,
                "visibility": data.visibility.value,
                "organizer_id": organizer.id,
                "organizer_name": organizer.display_name,
                "organizer_photo": organizer.photo_url,
                "participants_count": 1,
                "created_at": now,
                "updated_at": now,
                **dates,
            }
        )
        completed = ["event"]
        try:
            await self.participant_gateway.insert_participant(
                self._participant_fields(event.id, organizer, Role.ORGANIZER, now)
            )
            completed.append("organizer_participant")
            await self.chat_interactor.create_event_chat(event)
            completed.append("event_chat")
        except MeetupError as e:
            failed_step = CREATE_STEPS[len(completed)]
            self.logger.error(
                f"Event {event.id} created without its {failed_step}: {e!s}"
            )
            raise PartialWriteError(
                "create_event", failed_step, completed, event.id, e
            ) from e

        self.logger.info(f"Event {event.id} created by {organizer.id}")
        await self.dispatcher.dispatch(
            MeetupCreated(event_id=event.id, organizer_id=organizer.id)
        )
        return event

    async def get_event(self, event_id: str) -> schemas.Event:
        event = await self.event_gateway.get_event(event_id)
        if event is None:
            raise NotFoundError(f"Event {event_id} not found")
        return event

    async def join_event(
            self,
            event_id: str,
            user: Identity
    ) -> schemas.Participant:
        event = await self.get_event(event_id)
        existing = await self.participant_gateway.get_participant(event_id, user.id)
        if existing is not None:
            return existing

        # read-then-write: concurrent joiners may both pass this check
        if (
            event.max_participants
            and event.participants_count >= event.max_participants
        ):
            raise EventFullError()

        participant, created = await self.participant_gateway.insert_participant(
            self._participant_fields(event_id, user, Role.PARTICIPANT, self.clock())
        )
        if not created:
            return participant
        await self.dispatcher.dispatch(
            ParticipantJoined(event_id=event_id, user_id=user.id)
        )

        completed = ["participant"]
        try:
            await self.event_gateway.increment_participants(event_id, 1)
            completed.append("participants_count")
            await self.chat_interactor.link_event_member(event_id, user.id)
            completed.append("chat_membership")
        except MeetupError as e:
            failed_step = JOIN_STEPS[len(completed)]
            self.logger.error(
                f"Join of {user.id} to event {event_id} stopped at {failed_step}: {e!s}"
            )
            raise PartialWriteError(
                "join_event", failed_step, completed, participant.id, e
            ) from e

        await self.dispatcher.dispatch(
            MeetupUpdated(event_id=event_id, participants_delta=1)
        )
        return participant

    async def leave_event(self, event_id: str, user_id: str) -> None:
        participant = await self.participant_gateway.get_participant(event_id, user_id)
        if participant is None:
            raise NotFoundError("You are not a participant of this event")
        if participant.role == Role.ORGANIZER:
            raise OrganizerCannotLeaveError()

        # chat membership is kept on purpose: history stays readable
        deleted = await self.participant_gateway.delete_participant(participant.id)
        if not deleted:
            return
        # the roster changed even if the counter update below fails
        await self.dispatcher.dispatch(ParticipantLeft(event_id=event_id, user_id=user_id))
        try:
            await self.event_gateway.increment_participants(event_id, -1)
        except MeetupError as e:
            self.logger.error(
                f"Leave of {user_id} from event {event_id} left the counter stale: {e!s}"
            )
            raise PartialWriteError(
                "leave_event", LEAVE_STEPS[1], LEAVE_STEPS[:1], participant.id, e
            ) from e

        await self.dispatcher.dispatch(
            MeetupUpdated(event_id=event_id, participants_delta=-1)
        )

    async def list_events(
            self,
            thematique: Optional[Thematique] = None,
            window: Optional[ListingWindow] = None,
            hotel: Optional[str] = None,
            city: Optional[str] = None,
    ) -> tuple[List[schemas.Event], List[schemas.Event]]:
        """
        Public discovery listing, or a hotel-name prefix search when `hotel`
        is given.

        Returns the events to show and the ones whose stored search key is
        missing, for `backfill_hotel_names` to repair after the response.
        """
        limit = self.config.EVENT_LIST_LIMIT
        if hotel is not None:
            prefix = normalize_hotel_name(hotel)
            if not prefix:
                raise InvalidInputError("hotel", "Enter a hotel to search for")
            events = await self.event_gateway.search_by_hotel_prefix(prefix, limit)
        else:
            now = self.clock()
            events = await self.event_gateway.list_public_upcoming(
                now, self._window_end(now, window), thematique, limit
            )

        events = [e for e in events if e.visibility != Visibility.PRIVATE]
        if thematique is not None:
            events = [e for e in events if e.thematique == thematique]
        if city:
            needle = city.strip().lower()
            events = [
                e for e in events
                if needle in e.hotel_city.lower() or needle in e.hotel_name.lower()
            ]

        missing = [
            e for e in events
            if not normalize_hotel_name(e.hotel_name_lower)
            and normalize_hotel_name(e.hotel_name)
        ]
        shown = [
            e.model_copy(update={"hotel_name_lower": hotel_name_lower(e)})
            for e in events
        ]
        return shown, missing[: self.config.BACKFILL_BATCH_SIZE]

    def _window_end(
            self,
            now: datetime,
            window: Optional[ListingWindow]
    ) -> Optional[datetime]:
        if window is None:
            return None
        if window == ListingWindow.TODAY:
            return local_day_bounds(now, self.tz)[1]
        if window == ListingWindow.WEEK:
            return now + timedelta(days=7)
        return add_month(now)

    async def backfill_hotel_names(self, events: List[schemas.Event]) -> int:
        """Writes the missing search keys; rows already repaired are left alone."""
        repaired = 0
        for event in events[: self.config.BACKFILL_BATCH_SIZE]:
            value = normalize_hotel_name(event.hotel_name)
            if not value:
                continue
            if await self.event_gateway.set_hotel_name_lower(event.id, value):
                repaired += 1
        if repaired:
            self.logger.info(f"Backfilled hotel search key on {repaired} events")
        return repaired

    async def list_organizer_events(self, organizer_id: str) -> List[schemas.Event]:
        return await self.event_gateway.list_public_by_organizer(organizer_id)

    @staticmethod
    def _participant_fields(
            event_id: str,
            user: Identity,
            role: Role,
            joined_at: datetime
    ) -> dict:
        return {
            "event_id": event_id,
            "user_id": user.id,
            "user_name": user.display_name,
            "user_photo": user.photo_url,
            "user_company": user.company,
            "user_job_title": user.job_title,
            "role": role.value,
            "joined_at": joined_at,
        }
