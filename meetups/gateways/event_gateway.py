# meetups/gateways/event_gateway.py
from datetime import UTC, datetime
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from meetups.domain.entities import Thematique, Visibility
from meetups.domain.errors import NotFoundError
from meetups.gateways.interfaces import IEventGateway
from meetups.infrastructure import models, schemas
from meetups.infrastructure.store_errors import store_operation

# upper bound used for prefix range scans on hotel_name_lower
PREFIX_SENTINEL = "\uf8ff"


class EventGateway(IEventGateway):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _fetch(self, stmt) -> List[schemas.Event]:
        result = await self.session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return [schemas.Event.model_validate(row) for row in result.scalars().all()]

    @store_operation
    async def get_event(self, event_id: str) -> Optional[schemas.Event]:
        event = await self.session.get(models.Event, event_id, populate_existing=True)
        return schemas.Event.model_validate(event) if event else None

    @store_operation
    async def insert_event(self, fields: dict) -> schemas.Event:
        db_event = models.Event(**fields)
        self.session.add(db_event)
        await self.session.commit()
        return schemas.Event.model_validate(db_event)

    @store_operation
    async def increment_participants(self, event_id: str, delta: int) -> None:
        # single atomic UPDATE: concurrent joins and leaves never lose a step
        stmt = (
            update(models.Event)
            .where(models.Event.id == event_id)
            .values(
                participants_count=models.Event.participants_count + delta,
                updated_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        if result.rowcount == 0:
            raise NotFoundError(f"Event {event_id} not found")

    @store_operation
    async def count_created_between(
        self, organizer_id: str, start: datetime, end: datetime
    ) -> int:
        stmt = select(func.count(models.Event.id)).filter(
            models.Event.organizer_id == organizer_id,
            models.Event.created_at >= start,
            models.Event.created_at < end,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    @store_operation
    async def list_public_upcoming(
        self,
        now: datetime,
        until: Optional[datetime] = None,
        thematique: Optional[Thematique] = None,
        limit: int = 50,
    ) -> List[schemas.Event]:
        stmt = select(models.Event).filter(
            models.Event.visibility == Visibility.PUBLIC.value,
            models.Event.event_date >= now,
        )
        if until is not None:
            stmt = stmt.filter(models.Event.event_date <= until)
        if thematique is not None:
            stmt = stmt.filter(models.Event.thematique == thematique.value)
        stmt = stmt.order_by(models.Event.event_date.asc()).limit(limit)
        return await self._fetch(stmt)

    @store_operation
    async def search_by_hotel_prefix(
        self, prefix: str, limit: int = 50
    ) -> List[schemas.Event]:
        stmt = (
            select(models.Event)
            .filter(
                models.Event.hotel_name_lower >= prefix,
                models.Event.hotel_name_lower <= f"{prefix}{PREFIX_SENTINEL}",
            )
            .order_by(models.Event.hotel_name_lower.asc())
            .limit(limit)
        )
        return await self._fetch(stmt)

    @store_operation
    async def set_hotel_name_lower(self, event_id: str, value: str) -> bool:
        # only fills the blank, so concurrent repairs of the same row are harmless
        stmt = (
            update(models.Event)
            .where(
                models.Event.id == event_id,
                (models.Event.hotel_name_lower.is_(None))
                | (models.Event.hotel_name_lower == ""),
            )
            .values(hotel_name_lower=value)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount > 0

    @store_operation
    async def list_public_by_organizer(
        self, organizer_id: str
    ) -> List[schemas.Event]:
        stmt = (
            select(models.Event)
            .filter(
                models.Event.organizer_id == organizer_id,
                models.Event.visibility == Visibility.PUBLIC.value,
            )
            .order_by(models.Event.event_date.desc())
        )
        return await self._fetch(stmt)
