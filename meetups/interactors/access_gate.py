# meetups/interactors/access_gate.py
import logging

from meetups.domain.errors import AccessDeniedError, JoinRequiredError
from meetups.gateways.participant_gateway import ParticipantGateway
from meetups.infrastructure import schemas
from meetups.infrastructure.database import Database


class AccessGate:
    """
    Answers "may this user open that chat" before any listener is attached.

    Positive event-membership answers are cached per (event, user). Joins and
    leaves invalidate their pair through the event handlers; signing out drops
    every answer about the user.
    """

    def __init__(self, database: Database, logger: logging.Logger):
        self.database = database
        self.logger = logger
        self._participants: set[tuple[str, str]] = set()

    async def is_event_participant(self, event_id: str, user_id: str) -> bool:
        if (event_id, user_id) in self._participants:
            return True
        async with self.database.session() as session:
            found = await ParticipantGateway(session).exists(event_id, user_id)
        if found:
            self._participants.add((event_id, user_id))
        return found

    async def ensure_event_participant(self, event_id: str, user_id: str) -> None:
        if not await self.is_event_participant(event_id, user_id):
            self.logger.info(f"User {user_id} has not joined event {event_id}")
            raise JoinRequiredError()

    @staticmethod
    def ensure_chat_member(chat: schemas.Chat, user_id: str) -> None:
        if user_id not in chat.members:
            raise AccessDeniedError()

    def invalidate(self, event_id: str, user_id: str) -> None:
        self._participants.discard((event_id, user_id))

    def forget_user(self, user_id: str) -> None:
        self._participants = {
            pair for pair in self._participants if pair[1] != user_id
        }
