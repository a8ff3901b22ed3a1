# meetups/interactors/message_interactor.py
import logging
from collections.abc import Callable
from datetime import datetime
from typing import List

from meetups.domain.entities import Identity
from meetups.domain.errors import InvalidInputError, MeetupError
from meetups.domain.events import ChatUpdated, MessageCreated
from meetups.gateways.interfaces import IChatGateway, IMessageGateway
from meetups.infrastructure import schemas
from meetups.infrastructure.event_dispatcher import EventDispatcher


class MessageInteractor:
    def __init__(
            self,
            message_gateway: IMessageGateway,
            chat_gateway: IChatGateway,
            dispatcher: EventDispatcher,
            logger: logging.Logger,
            clock: Callable[[], datetime],
            window: int = 100,
    ):
        self.message_gateway = message_gateway
        self.chat_gateway = chat_gateway
        self.dispatcher = dispatcher
        self.logger = logger
        self.clock = clock
        self.window = window

    async def list_messages(
            self,
            chat_id: str,
            user_id: str
    ) -> List[schemas.Message]:
        """The most recent messages of the chat, oldest first."""
        return await self.message_gateway.list_recent(chat_id, user_id, self.window)

    async def send_message(
            self,
            chat_id: str,
            sender: Identity,
            text: str
    ) -> schemas.Message:
        """
        Appends a message, then refreshes the chat preview.

        A failed append propagates and nothing is stored. A failed preview
        update is only logged: the message is sent and the preview catches
        up with the next one.
        """
        text = text.strip()
        if not text:
            raise InvalidInputError("text", "The message is empty")

        message = await self.message_gateway.insert_message(
            {
                "chat_id": chat_id,
                "sender_id": sender.id,
                "sender_name": sender.display_name,
                "sender_photo": sender.photo_url,
                "text": text,
                "created_at": self.clock(),
            }
        )
        await self.dispatcher.dispatch(
            MessageCreated(
                message_id=message.id,
                chat_id=chat_id,
                sender_id=sender.id,
                sender_name=sender.display_name,
                text=text,
                created_at=message.created_at,
            )
        )

        try:
            await self.chat_gateway.update_last_message(
                chat_id, text, message.created_at, sender.display_name
            )
            chat = await self.chat_gateway.get_chat(chat_id)
        except MeetupError as e:
            self.logger.warning(
                f"Message {message.id} sent but chat {chat_id} preview is stale: {e!s}"
            )
            return message

        if chat is not None:
            await self.dispatcher.dispatch(
                ChatUpdated(
                    chat_id=chat.id,
                    chat_type=chat.type.value,
                    event_id=chat.event_id,
                    member_ids=chat.members,
                )
            )
        return message
