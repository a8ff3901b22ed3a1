# meetups/interactors/roster_interactor.py
from typing import List, Optional

from meetups.domain.errors import NotFoundError
from meetups.gateways.interfaces import IEventGateway, IParticipantGateway
from meetups.infrastructure import schemas


class RosterInteractor:
    def __init__(
            self,
            participant_gateway: IParticipantGateway,
            event_gateway: IEventGateway,
    ):
        self.participant_gateway = participant_gateway
        self.event_gateway = event_gateway

    async def list_participants(self, event_id: str) -> List[schemas.Participant]:
        return await self.participant_gateway.list_for_event(event_id)

    async def find_membership(
            self,
            event_id: str,
            user_id: str
    ) -> Optional[schemas.Participant]:
        return await self.participant_gateway.get_participant(event_id, user_id)

    async def is_participant(self, event_id: str, user_id: str) -> bool:
        return await self.participant_gateway.exists(event_id, user_id)

    async def get_roster(self, event_id: str) -> schemas.Roster:
        event = await self.event_gateway.get_event(event_id)
        if event is None:
            raise NotFoundError(f"Event {event_id} not found")
        participants = await self.participant_gateway.list_for_event(event_id)
        return schemas.Roster(
            event_id=event_id,
            participants=participants,
            max_participants=event.max_participants,
        )
