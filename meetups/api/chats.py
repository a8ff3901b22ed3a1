# meetups/api/chats.py
from fastapi import APIRouter, Depends, Response, status

from meetups.api.dependencies import (
    get_access_gate,
    get_chat_interactor,
    get_current_user,
)
from meetups.domain.entities import ChatType, Identity
from meetups.domain.errors import NotFoundError
from meetups.infrastructure import schemas
from meetups.interactors.access_gate import AccessGate
from meetups.interactors.chat_interactor import ChatInteractor


def create_router():
    router = APIRouter()

    @router.get("/", response_model=schemas.ChatList)
    async def read_chats(
            type: ChatType = ChatType.PRIVATE,
            current_user: Identity = Depends(get_current_user),
            chat_interactor: ChatInteractor = Depends(get_chat_interactor),
    ):
        return await chat_interactor.list_user_chats(current_user.id, type)

    @router.post("/private", response_model=schemas.Chat)
    async def start_private_chat(
            request: schemas.StartPrivateChat,
            response: Response,
            current_user: Identity = Depends(get_current_user),
            chat_interactor: ChatInteractor = Depends(get_chat_interactor),
    ):
        chat, created = await chat_interactor.start_private_chat(
            current_user, request.other_user_id
        )
        response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
        return chat

    @router.get("/event/{event_id}", response_model=schemas.Chat)
    async def read_event_chat(
            event_id: str,
            current_user: Identity = Depends(get_current_user),
            chat_interactor: ChatInteractor = Depends(get_chat_interactor),
            access_gate: AccessGate = Depends(get_access_gate),
    ):
        await access_gate.ensure_event_participant(event_id, current_user.id)
        chat = await chat_interactor.resolve_event_chat(event_id)
        if chat is None:
            raise NotFoundError("The chat of this event is not available yet")
        return chat

    @router.get("/{chat_id}", response_model=schemas.Chat)
    async def read_chat(
            chat_id: str,
            current_user: Identity = Depends(get_current_user),
            chat_interactor: ChatInteractor = Depends(get_chat_interactor),
    ):
        return await chat_interactor.get_chat(chat_id, current_user.id)

    return router
