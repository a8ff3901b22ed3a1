# meetups/interactors/container.py
import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from meetups.config import AppConfig
from meetups.gateways.chat_gateway import ChatGateway
from meetups.gateways.event_gateway import EventGateway
from meetups.gateways.message_gateway import MessageGateway
from meetups.gateways.participant_gateway import ParticipantGateway
from meetups.gateways.user_gateway import UserGateway
from meetups.infrastructure.database import Database
from meetups.infrastructure.event_dispatcher import EventDispatcher
from meetups.infrastructure.security import SecurityService
from meetups.interactors.chat_interactor import ChatInteractor
from meetups.interactors.event_interactor import EventInteractor
from meetups.interactors.message_interactor import MessageInteractor
from meetups.interactors.roster_interactor import RosterInteractor
from meetups.interactors.user_interactor import UserInteractor


def system_clock() -> datetime:
    return datetime.now(UTC)


@dataclass
class Interactors:
    events: EventInteractor
    roster: RosterInteractor
    chats: ChatInteractor
    messages: MessageInteractor
    users: UserInteractor


class ServiceContainer:
    """
    Builds the interactors over one store session.

    HTTP requests get theirs from the request-scoped session; live sessions
    and background tasks open a fresh scope for every read or write.
    """

    def __init__(
            self,
            database: Database,
            dispatcher: EventDispatcher,
            security_service: SecurityService,
            config: AppConfig,
            logger: logging.Logger,
            clock: Callable[[], datetime] = system_clock,
    ):
        self.database = database
        self.dispatcher = dispatcher
        self.security_service = security_service
        self.config = config
        self.logger = logger
        self.clock = clock

    def build(self, session: AsyncSession) -> Interactors:
        chat_gateway = ChatGateway(session)
        user_gateway = UserGateway(session)
        event_gateway = EventGateway(session)
        participant_gateway = ParticipantGateway(session)
        chats = ChatInteractor(chat_gateway, user_gateway, self.dispatcher, self.logger)
        return Interactors(
            events=EventInteractor(
                event_gateway,
                participant_gateway,
                chats,
                self.dispatcher,
                self.config,
                self.logger,
                self.clock,
            ),
            roster=RosterInteractor(participant_gateway, event_gateway),
            chats=chats,
            messages=MessageInteractor(
                MessageGateway(session),
                chat_gateway,
                self.dispatcher,
                self.logger,
                self.clock,
                self.config.MESSAGE_WINDOW,
            ),
            users=UserInteractor(self.security_service, user_gateway),
        )

    @asynccontextmanager
    async def scope(self) -> AsyncGenerator[Interactors, None]:
        async with self.database.session() as session:
            yield self.build(session)
