# meetups/gateways/user_gateway.py
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from meetups.gateways.interfaces import IUserGateway
from meetups.infrastructure import models, schemas
from meetups.infrastructure.security import SecurityService
from meetups.infrastructure.store_errors import store_operation


class UserGateway(IUserGateway):
    def __init__(self, session: AsyncSession):
        self.session = session

    @store_operation
    async def get_user(self, user_id: str) -> Optional[schemas.User]:
        user = await self.session.get(models.User, user_id, populate_existing=True)
        return schemas.User.model_validate(user) if user else None

    @store_operation
    async def get_credentials(
        self, email: str
    ) -> Optional[tuple[schemas.User, str]]:
        stmt = select(models.User).filter(models.User.email == email)
        result = await self.session.execute(stmt)
        user = result.scalar_one_or_none()
        if user is None:
            return None
        return schemas.User.model_validate(user), user.hashed_password

    @store_operation
    async def create_user(
        self, user: schemas.UserCreate, security_service: SecurityService
    ) -> Optional[schemas.User]:
        db_user = models.User(
            email=user.email,
            hashed_password=security_service.get_password_hash(user.password),
            display_name=user.display_name,
            photo_url=user.photo_url,
            company=user.company,
            job_title=user.job_title,
            is_active=True,
        )
        self.session.add(db_user)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            return None
        return schemas.User.model_validate(db_user)
