# meetups/gateways/participant_gateway.py
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from meetups.domain.entities import participant_key
from meetups.gateways.interfaces import IParticipantGateway
from meetups.infrastructure import models, schemas
from meetups.infrastructure.store_errors import store_operation


class ParticipantGateway(IParticipantGateway):
    def __init__(self, session: AsyncSession):
        self.session = session

    @store_operation
    async def insert_participant(
        self, fields: dict
    ) -> tuple[schemas.Participant, bool]:
        """
        Inserts the membership under its composite key.

        Returns the stored record and whether this call created it; a second
        insert for the same (event, user) pair hands back the existing one.
        """
        key = participant_key(fields["event_id"], fields["user_id"])
        db_participant = models.EventParticipant(id=key, **fields)
        self.session.add(db_participant)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            existing = await self.session.get(
                models.EventParticipant, key, populate_existing=True
            )
            if existing is None:
                raise
            return schemas.Participant.model_validate(existing), False
        return schemas.Participant.model_validate(db_participant), True

    @store_operation
    async def get_participant(
        self, event_id: str, user_id: str
    ) -> Optional[schemas.Participant]:
        participant = await self.session.get(
            models.EventParticipant,
            participant_key(event_id, user_id),
            populate_existing=True,
        )
        return schemas.Participant.model_validate(participant) if participant else None

    @store_operation
    async def exists(self, event_id: str, user_id: str) -> bool:
        stmt = select(models.EventParticipant.id).filter(
            models.EventParticipant.id == participant_key(event_id, user_id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @store_operation
    async def list_for_event(self, event_id: str) -> List[schemas.Participant]:
        stmt = (
            select(models.EventParticipant)
            .filter(models.EventParticipant.event_id == event_id)
            .order_by(models.EventParticipant.joined_at.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return [
            schemas.Participant.model_validate(p) for p in result.scalars().all()
        ]

    @store_operation
    async def delete_participant(self, participant_id: str) -> bool:
        participant = await self.session.get(
            models.EventParticipant, participant_id, populate_existing=True
        )
        if participant is None:
            return False
        await self.session.delete(participant)
        await self.session.commit()
        return True
