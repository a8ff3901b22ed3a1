# meetups/gateways/message_gateway.py
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from meetups.domain.errors import PermissionDeniedError
from meetups.gateways.interfaces import IMessageGateway
from meetups.infrastructure import models, schemas
from meetups.infrastructure.store_errors import store_operation


class MessageGateway(IMessageGateway):
    """
    Messages are only readable and writable by members of their chat. The
    check lives here, next to the queries, the same way the store rules sit
    in front of the collections; callers may pre-check but cannot skip it.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _ensure_member(self, chat_id: str, user_id: str) -> None:
        stmt = select(models.ChatMember.user_id).filter(
            models.ChatMember.chat_id == chat_id,
            models.ChatMember.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        if result.scalar_one_or_none() is None:
            raise PermissionDeniedError()

    @store_operation
    async def list_recent(
        self, chat_id: str, user_id: str, limit: int = 100
    ) -> List[schemas.Message]:
        await self._ensure_member(chat_id, user_id)
        stmt = (
            select(models.Message)
            .filter(models.Message.chat_id == chat_id)
            .order_by(models.Message.created_at.desc(), models.Message.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        newest_first = [
            schemas.Message.model_validate(m) for m in result.scalars().all()
        ]
        return list(reversed(newest_first))

    @store_operation
    async def insert_message(self, fields: dict) -> schemas.Message:
        await self._ensure_member(fields["chat_id"], fields["sender_id"])
        db_message = models.Message(**fields)
        self.session.add(db_message)
        await self.session.commit()
        return schemas.Message.model_validate(db_message)
