# meetups/gateways/interfaces.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from meetups.domain.entities import ChatType, Thematique
from meetups.infrastructure import schemas
from meetups.infrastructure.security import SecurityService


class IUserGateway(ABC):
    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[schemas.User]:
        pass

    @abstractmethod
    async def get_credentials(
        self, email: str
    ) -> Optional[tuple[schemas.User, str]]:
        pass

    @abstractmethod
    async def create_user(
        self, user: schemas.UserCreate, security_service: SecurityService
    ) -> Optional[schemas.User]:
        pass


class IEventGateway(ABC):
    @abstractmethod
    async def get_event(self, event_id: str) -> Optional[schemas.Event]:
        pass

    @abstractmethod
    async def insert_event(self, fields: dict) -> schemas.Event:
        pass

    @abstractmethod
    async def increment_participants(self, event_id: str, delta: int) -> None:
        pass

    @abstractmethod
    async def count_created_between(
        self, organizer_id: str, start: datetime, end: datetime
    ) -> int:
        pass

    @abstractmethod
    async def list_public_upcoming(
        self,
        now: datetime,
        until: Optional[datetime] = None,
        thematique: Optional[Thematique] = None,
        limit: int = 50,
    ) -> List[schemas.Event]:
        pass

    @abstractmethod
    async def search_by_hotel_prefix(
        self, prefix: str, limit: int = 50
    ) -> List[schemas.Event]:
        pass

    @abstractmethod
    async def set_hotel_name_lower(self, event_id: str, value: str) -> bool:
        pass

    @abstractmethod
    async def list_public_by_organizer(
        self, organizer_id: str
    ) -> List[schemas.Event]:
        pass


class IParticipantGateway(ABC):
    @abstractmethod
    async def insert_participant(
        self, fields: dict
    ) -> tuple[schemas.Participant, bool]:
        pass

    @abstractmethod
    async def get_participant(
        self, event_id: str, user_id: str
    ) -> Optional[schemas.Participant]:
        pass

    @abstractmethod
    async def exists(self, event_id: str, user_id: str) -> bool:
        pass

    @abstractmethod
    async def list_for_event(self, event_id: str) -> List[schemas.Participant]:
        pass

    @abstractmethod
    async def delete_participant(self, participant_id: str) -> bool:
        pass


class IChatGateway(ABC):
    @abstractmethod
    async def get_chat(self, chat_id: str) -> Optional[schemas.Chat]:
        pass

    @abstractmethod
    async def find_event_chats(self, event_id: str) -> List[schemas.Chat]:
        pass

    @abstractmethod
    async def insert_event_chat(
        self, event_id: str, title: str, organizer_id: str
    ) -> schemas.Chat:
        pass

    @abstractmethod
    async def insert_private_chat(
        self, member_ids: list[str], members_data: dict, pair_key: str
    ) -> tuple[schemas.Chat, bool]:
        pass

    @abstractmethod
    async def find_private_chats_for(self, user_id: str) -> List[schemas.Chat]:
        pass

    @abstractmethod
    async def add_member(self, chat_id: str, user_id: str) -> bool:
        pass

    @abstractmethod
    async def update_last_message(
        self, chat_id: str, text: str, sent_at: datetime, sender_name: str
    ) -> None:
        pass

    @abstractmethod
    async def list_for_user(
        self, user_id: str, chat_type: ChatType, ordered: bool = True
    ) -> List[schemas.Chat]:
        pass


class IMessageGateway(ABC):
    @abstractmethod
    async def list_recent(
        self, chat_id: str, user_id: str, limit: int = 100
    ) -> List[schemas.Message]:
        pass

    @abstractmethod
    async def insert_message(self, fields: dict) -> schemas.Message:
        pass
