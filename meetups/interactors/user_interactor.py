# meetups/interactors/user_interactor.py

from meetups.domain.errors import NotFoundError
from meetups.gateways.interfaces import IUserGateway
from meetups.infrastructure import schemas
from meetups.infrastructure.security import SecurityService


class UserInteractor:
    def __init__(self, security_service: SecurityService, user_gateway: IUserGateway):
        self.security_service = security_service
        self.user_gateway = user_gateway

    async def get_user(self, user_id: str) -> schemas.User | None:
        return await self.user_gateway.get_user(user_id)

    async def get_profile(self, user_id: str) -> schemas.PublicProfile:
        user = await self.user_gateway.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return schemas.PublicProfile.model_validate(user, from_attributes=True)

    async def create_user(self, user: schemas.UserCreate) -> schemas.User | None:
        return await self.user_gateway.create_user(user, self.security_service)

    async def verify_user_password(
            self, email: str, password: str
    ) -> schemas.User | None:
        credentials = await self.user_gateway.get_credentials(email)
        if credentials is None:
            return None
        user, hashed_password = credentials
        if not self.security_service.verify_password(password, hashed_password):
            return None
        return user
