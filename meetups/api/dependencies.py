# meetups/api/dependencies.py
from typing import AsyncGenerator, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from meetups.config import AppConfig
from meetups.domain.entities import Identity
from meetups.gateways.user_gateway import UserGateway
from meetups.infrastructure.security import SecurityService
from meetups.interactors.access_gate import AccessGate
from meetups.interactors.chat_interactor import ChatInteractor
from meetups.interactors.container import Interactors, ServiceContainer
from meetups.interactors.event_interactor import EventInteractor
from meetups.interactors.message_interactor import MessageInteractor
from meetups.interactors.roster_interactor import RosterInteractor
from meetups.interactors.user_interactor import UserInteractor
from meetups.realtime.session_registry import SessionRegistry

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/login")


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_security_service(request: Request) -> SecurityService:
    return request.app.state.security_service


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_access_gate(request: Request) -> AccessGate:
    return request.app.state.access_gate


def get_session_registry(request: Request) -> SessionRegistry:
    return request.app.state.session_registry


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    # gateways commit each write themselves; anything left open is discarded
    async with request.app.state.database.session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_interactors(
    session: AsyncSession = Depends(get_session),
    services: ServiceContainer = Depends(get_services),
) -> Interactors:
    return services.build(session)


async def get_user_interactor(
    interactors: Interactors = Depends(get_interactors),
) -> UserInteractor:
    return interactors.users


async def get_event_interactor(
    interactors: Interactors = Depends(get_interactors),
) -> EventInteractor:
    return interactors.events


async def get_roster_interactor(
    interactors: Interactors = Depends(get_interactors),
) -> RosterInteractor:
    return interactors.roster


async def get_chat_interactor(
    interactors: Interactors = Depends(get_interactors),
) -> ChatInteractor:
    return interactors.chats


async def get_message_interactor(
    interactors: Interactors = Depends(get_interactors),
) -> MessageInteractor:
    return interactors.messages


async def authenticate_token(
    token: str, security_service: SecurityService, session: AsyncSession
) -> Optional[Identity]:
    """Resolves a bearer token to the signed-in identity, or None."""
    user_id = security_service.decode_access_token(token)
    if user_id is None:
        return None
    user = await UserGateway(session).get_user(user_id)
    if user is None or not user.is_active:
        return None
    return Identity.from_user(user)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    security_service: SecurityService = Depends(get_security_service),
    session: AsyncSession = Depends(get_session),
) -> Identity:
    identity = await authenticate_token(token, security_service, session)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity
