# meetups/api/events.py
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from meetups.api.dependencies import (
    get_current_user,
    get_event_interactor,
    get_roster_interactor,
    get_services,
)
from meetups.domain.entities import Identity, ListingWindow, Thematique
from meetups.domain.errors import MeetupError
from meetups.infrastructure import schemas
from meetups.interactors.container import ServiceContainer
from meetups.interactors.event_interactor import EventInteractor
from meetups.interactors.roster_interactor import RosterInteractor


async def run_backfill(services: ServiceContainer, events: List[schemas.Event]) -> None:
    try:
        async with services.scope() as interactors:
            await interactors.events.backfill_hotel_names(events)
    except MeetupError as e:
        # the next listing retries the same rows
        services.logger.warning(f"Hotel search key backfill failed: {e!s}")


def create_router():
    router = APIRouter()

    @router.post("/", response_model=schemas.Event, status_code=201)
    async def create_event(
            event: schemas.EventCreate,
            current_user: Identity = Depends(get_current_user),
            event_interactor: EventInteractor = Depends(get_event_interactor),
    ):
        return await event_interactor.create_event(event, current_user)

    @router.get("/", response_model=List[schemas.Event])
    async def read_events(
            background_tasks: BackgroundTasks,
            thematique: Optional[Thematique] = None,
            window: Optional[ListingWindow] = None,
            hotel: Optional[str] = Query(None, description="Hotel name prefix"),
            city: Optional[str] = None,
            current_user: Identity = Depends(get_current_user),
            event_interactor: EventInteractor = Depends(get_event_interactor),
            services: ServiceContainer = Depends(get_services),
    ):
        events, missing_key = await event_interactor.list_events(
            thematique, window, hotel, city
        )
        if missing_key:
            background_tasks.add_task(run_backfill, services, missing_key)
        return events

    @router.get("/{event_id}", response_model=schemas.Event)
    async def read_event(
            event_id: str,
            current_user: Identity = Depends(get_current_user),
            event_interactor: EventInteractor = Depends(get_event_interactor),
    ):
        return await event_interactor.get_event(event_id)

    @router.get("/{event_id}/participants", response_model=schemas.Roster)
    async def read_participants(
            event_id: str,
            current_user: Identity = Depends(get_current_user),
            roster_interactor: RosterInteractor = Depends(get_roster_interactor),
    ):
        return await roster_interactor.get_roster(event_id)

    @router.get("/{event_id}/membership", response_model=Optional[schemas.Participant])
    async def read_membership(
            event_id: str,
            current_user: Identity = Depends(get_current_user),
            roster_interactor: RosterInteractor = Depends(get_roster_interactor),
    ):
        return await roster_interactor.find_membership(event_id, current_user.id)

    @router.post("/{event_id}/join", response_model=schemas.Participant)
    async def join_event(
            event_id: str,
            current_user: Identity = Depends(get_current_user),
            event_interactor: EventInteractor = Depends(get_event_interactor),
    ):
        return await event_interactor.join_event(event_id, current_user)

    @router.post("/{event_id}/leave", status_code=204)
    async def leave_event(
            event_id: str,
            current_user: Identity = Depends(get_current_user),
            event_interactor: EventInteractor = Depends(get_event_interactor),
    ):
        await event_interactor.leave_event(event_id, current_user.id)

    return router
