# meetups/gateways/chat_gateway.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from meetups.domain.entities import ChatType
from meetups.domain.errors import NotFoundError
from meetups.gateways.interfaces import IChatGateway
from meetups.infrastructure import models, schemas
from meetups.infrastructure.store_errors import store_operation


def to_chat(chat: models.Chat) -> schemas.Chat:
    return schemas.Chat(
        id=chat.id,
        type=chat.type,
        event_id=chat.event_id,
        title=chat.title,
        members=[link.user_id for link in chat.member_links],
        members_data=chat.members_data,
        last_message=chat.last_message,
        last_message_at=chat.last_message_at,
        last_message_sender=chat.last_message_sender,
        created_at=chat.created_at,
    )


class ChatGateway(IChatGateway):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _fetch(self, stmt) -> List[schemas.Chat]:
        result = await self.session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return [to_chat(chat) for chat in result.scalars().unique().all()]

    def _member_of(self, user_id: str, chat_type: ChatType):
        return (
            select(models.Chat)
            .join(models.ChatMember, models.ChatMember.chat_id == models.Chat.id)
            .filter(
                models.ChatMember.user_id == user_id,
                models.Chat.type == chat_type.value,
            )
        )

    @store_operation
    async def get_chat(self, chat_id: str) -> Optional[schemas.Chat]:
        chat = await self.session.get(models.Chat, chat_id, populate_existing=True)
        return to_chat(chat) if chat else None

    @store_operation
    async def find_event_chats(self, event_id: str) -> List[schemas.Chat]:
        stmt = (
            select(models.Chat)
            .filter(
                models.Chat.event_id == event_id,
                models.Chat.type == ChatType.EVENT.value,
            )
            .order_by(models.Chat.created_at.asc(), models.Chat.id.asc())
        )
        return await self._fetch(stmt)

    @store_operation
    async def insert_event_chat(
        self, event_id: str, title: str, organizer_id: str
    ) -> schemas.Chat:
        db_chat = models.Chat(
            type=ChatType.EVENT.value,
            event_id=event_id,
            title=title,
            member_links=[models.ChatMember(user_id=organizer_id, position=0)],
        )
        self.session.add(db_chat)
        await self.session.commit()
        return to_chat(db_chat)

    @store_operation
    async def insert_private_chat(
        self, member_ids: list[str], members_data: dict, pair_key: str
    ) -> tuple[schemas.Chat, bool]:
        db_chat = models.Chat(
            type=ChatType.PRIVATE.value,
            pair_key=pair_key,
            members_data=members_data,
            member_links=[
                models.ChatMember(user_id=user_id, position=position)
                for position, user_id in enumerate(member_ids)
            ],
        )
        self.session.add(db_chat)
        try:
            await self.session.commit()
        except IntegrityError:
            # another request created the chat for this pair first
            await self.session.rollback()
            stmt = select(models.Chat).filter(models.Chat.pair_key == pair_key)
            existing = await self._fetch(stmt)
            if not existing:
                raise
            return existing[0], False
        return to_chat(db_chat), True

    @store_operation
    async def find_private_chats_for(self, user_id: str) -> List[schemas.Chat]:
        return await self._fetch(self._member_of(user_id, ChatType.PRIVATE))

    @store_operation
    async def add_member(self, chat_id: str, user_id: str) -> bool:
        """Set-union of one user into the chat members; False when already there."""
        if await self._is_member(chat_id, user_id):
            return False
        position = await self.session.scalar(
            select(func.count())
            .select_from(models.ChatMember)
            .filter(models.ChatMember.chat_id == chat_id)
        )
        self.session.add(
            models.ChatMember(chat_id=chat_id, user_id=user_id, position=position)
        )
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            return False
        return True

    async def _is_member(self, chat_id: str, user_id: str) -> bool:
        stmt = select(models.ChatMember.user_id).filter(
            models.ChatMember.chat_id == chat_id,
            models.ChatMember.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @store_operation
    async def update_last_message(
        self, chat_id: str, text: str, sent_at: datetime, sender_name: str
    ) -> None:
        stmt = (
            update(models.Chat)
            .where(models.Chat.id == chat_id)
            .values(
                last_message=text,
                last_message_at=sent_at,
                last_message_sender=sender_name,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        if result.rowcount == 0:
            raise NotFoundError(f"Chat {chat_id} not found")

    @store_operation
    async def list_for_user(
        self, user_id: str, chat_type: ChatType, ordered: bool = True
    ) -> List[schemas.Chat]:
        stmt = self._member_of(user_id, chat_type)
        if ordered:
            stmt = stmt.order_by(
                models.Chat.last_message_at.desc().nulls_last(),
                models.Chat.created_at.desc(),
            )
        return await self._fetch(stmt)
