# meetups/api/messages.py
from typing import List

from fastapi import APIRouter, Depends

from meetups.api.dependencies import get_current_user, get_message_interactor
from meetups.domain.entities import Identity
from meetups.infrastructure import schemas
from meetups.interactors.message_interactor import MessageInteractor


def create_router():
    router = APIRouter()

    @router.get("/{chat_id}", response_model=List[schemas.Message])
    async def read_messages(
            chat_id: str,
            current_user: Identity = Depends(get_current_user),
            message_interactor: MessageInteractor = Depends(get_message_interactor),
    ):
        return await message_interactor.list_messages(chat_id, current_user.id)

    @router.post("/{chat_id}", response_model=schemas.Message, status_code=201)
    async def create_message(
            chat_id: str,
            message: schemas.MessageCreate,
            current_user: Identity = Depends(get_current_user),
            message_interactor: MessageInteractor = Depends(get_message_interactor),
    ):
        return await message_interactor.send_message(chat_id, current_user, message.text)

    return router
