# meetups/interactors/chat_interactor.py
import logging
from typing import List, Optional

from meetups.domain.entities import ChatType, Identity, private_pair_key
from meetups.domain.errors import (
    AccessDeniedError,
    FailedPreconditionError,
    InvalidInputError,
    NotFoundError,
)
from meetups.domain.events import ChatCreated, ChatUpdated
from meetups.gateways.interfaces import IChatGateway, IUserGateway
from meetups.infrastructure import schemas
from meetups.infrastructure.event_dispatcher import EventDispatcher


class ChatInteractor:
    """Keeps event chats linked to their events and private chats unique per pair."""

    def __init__(
            self,
            chat_gateway: IChatGateway,
            user_gateway: IUserGateway,
            dispatcher: EventDispatcher,
            logger: logging.Logger,
    ):
        self.chat_gateway = chat_gateway
        self.user_gateway = user_gateway
        self.dispatcher = dispatcher
        self.logger = logger

    async def create_event_chat(
            self,
            event: schemas.Event
    ) -> schemas.Chat:
        chat = await self.chat_gateway.insert_event_chat(
            event.id, event.title, event.organizer_id
        )
        await self.dispatcher.dispatch(
            ChatCreated(
                chat_id=chat.id,
                chat_type=chat.type.value,
                event_id=event.id,
                member_ids=chat.members,
            )
        )
        return chat

    async def resolve_event_chat(self, event_id: str) -> Optional[schemas.Chat]:
        chats = await self.chat_gateway.find_event_chats(event_id)
        if not chats:
            return None
        if len(chats) > 1:
            self.logger.warning(
                f"Event {event_id} has {len(chats)} linked chats, using {chats[0].id}"
            )
        return chats[0]

    async def add_member(
            self,
            chat: schemas.Chat,
            user_id: str
    ) -> bool:
        changed = await self.chat_gateway.add_member(chat.id, user_id)
        if changed:
            await self.dispatcher.dispatch(
                ChatUpdated(
                    chat_id=chat.id,
                    chat_type=chat.type.value,
                    event_id=chat.event_id,
                    member_ids=[*chat.members, user_id],
                )
            )
        return changed

    async def link_event_member(self, event_id: str, user_id: str) -> bool:
        """Adds a new participant to the event's chat; False when nothing changed."""
        chat = await self.resolve_event_chat(event_id)
        if chat is None:
            self.logger.warning(
                f"No chat linked to event {event_id}, {user_id} not added"
            )
            return False
        return await self.add_member(chat, user_id)

    async def start_private_chat(
            self,
            requester: Identity,
            other_user_id: str
    ) -> tuple[schemas.Chat, bool]:
        if other_user_id == requester.id:
            raise InvalidInputError(
                "other_user_id", "You cannot start a conversation with yourself"
            )

        for chat in await self.chat_gateway.find_private_chats_for(requester.id):
            if other_user_id in chat.members:
                return chat, False

        other = await self.user_gateway.get_user(other_user_id)
        if other is None:
            raise NotFoundError(f"User {other_user_id} not found")

        members_data = {
            requester.id: {"name": requester.display_name, "photo": requester.photo_url},
            other.id: {"name": other.display_name, "photo": other.photo_url},
        }
        chat, created = await self.chat_gateway.insert_private_chat(
            [requester.id, other.id],
            members_data,
            private_pair_key(requester.id, other.id),
        )
        if created:
            await self.dispatcher.dispatch(
                ChatCreated(
                    chat_id=chat.id,
                    chat_type=chat.type.value,
                    member_ids=chat.members,
                )
            )
        else:
            self.logger.info(
                f"Private chat {chat.id} was created concurrently, reusing it"
            )
        return chat, created

    async def get_chat(
            self,
            chat_id: str,
            user_id: str
    ) -> schemas.Chat:
        chat = await self.chat_gateway.get_chat(chat_id)
        if chat is None:
            raise NotFoundError(f"Chat {chat_id} not found")
        if user_id not in chat.members:
            raise AccessDeniedError()
        return chat

    async def list_user_chats(
            self,
            user_id: str,
            chat_type: ChatType
    ) -> schemas.ChatList:
        try:
            chats = await self.chat_gateway.list_for_user(user_id, chat_type)
            return schemas.ChatList(chats=chats)
        except FailedPreconditionError as e:
            self.logger.warning(
                f"Ordered {chat_type.value} chat list unavailable, falling back: {e!s}"
            )
        chats: List[schemas.Chat] = await self.chat_gateway.list_for_user(
            user_id, chat_type, ordered=False
        )
        return schemas.ChatList(chats=chats, degraded=True)
