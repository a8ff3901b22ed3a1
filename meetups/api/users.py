# meetups/api/users.py
from typing import List

from fastapi import APIRouter, Depends

from meetups.api.dependencies import (
    get_current_user,
    get_event_interactor,
    get_user_interactor,
)
from meetups.domain.entities import Identity
from meetups.infrastructure import schemas
from meetups.interactors.event_interactor import EventInteractor
from meetups.interactors.user_interactor import UserInteractor

router = APIRouter()


@router.get("/me", response_model=schemas.PublicProfile)
async def read_users_me(
    current_user: Identity = Depends(get_current_user),
    user_interactor: UserInteractor = Depends(get_user_interactor),
):
    return await user_interactor.get_profile(current_user.id)


@router.get("/{user_id}", response_model=schemas.PublicProfile)
async def read_user(
    user_id: str,
    current_user: Identity = Depends(get_current_user),
    user_interactor: UserInteractor = Depends(get_user_interactor),
):
    return await user_interactor.get_profile(user_id)


@router.get("/{user_id}/events", response_model=List[schemas.Event])
async def read_user_events(
    user_id: str,
    current_user: Identity = Depends(get_current_user),
    event_interactor: EventInteractor = Depends(get_event_interactor),
):
    return await event_interactor.list_organizer_events(user_id)
