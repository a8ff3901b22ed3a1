# meetups/infrastructure/event_handlers.py
from typing import Any

from meetups.domain.events import (
    ChatCreated,
    ChatUpdated,
    MeetupCreated,
    MeetupUpdated,
    MessageCreated,
    ParticipantJoined,
    ParticipantLeft,
)
from meetups.infrastructure.change_feed import ChangeFeed, ListenerRegistration
from meetups.infrastructure.event_dispatcher import EventDispatcher
from meetups.interactors.access_gate import AccessGate


def event_channel(event_id: str) -> str:
    return f"events:{event_id}"


def roster_channel(event_id: str) -> str:
    return f"events:{event_id}:participants"


def event_chat_channel(event_id: str) -> str:
    return f"events:{event_id}:chat"


def chat_channel(chat_id: str) -> str:
    return f"chats:{chat_id}"


def messages_channel(chat_id: str) -> str:
    return f"chats:{chat_id}:messages"


def user_chats_channel(user_id: str) -> str:
    return f"users:{user_id}:chats"


class EventHandlers:
    def __init__(self, change_feed: ChangeFeed, access_gate: AccessGate | None = None):
        self.change_feed = change_feed
        self.access_gate = access_gate
        self._roster_registration: ListenerRegistration | None = None

    def bind(self, dispatcher: EventDispatcher) -> EventDispatcher:
        dispatcher.register("MeetupCreated", self.publish_meetup_created)
        dispatcher.register("MeetupUpdated", self.publish_meetup_updated)
        dispatcher.register("ParticipantJoined", self.publish_participant_joined)
        dispatcher.register("ParticipantLeft", self.publish_participant_left)
        dispatcher.register("ChatCreated", self.publish_chat_created)
        dispatcher.register("ChatUpdated", self.publish_chat_updated)
        dispatcher.register("MessageCreated", self.publish_message_created)
        if self.access_gate is not None and self._roster_registration is None:
            # roster changes from any process, relayed ones included
            self._roster_registration = self.change_feed.listen_pattern(
                roster_channel("*"), self.invalidate_access
            )
        return dispatcher

    async def invalidate_access(self, channel: str, payload: dict[str, Any]):
        event_id = payload.get("event_id")
        user_id = payload.get("user_id")
        if event_id and user_id:
            self.access_gate.invalidate(event_id, user_id)

    async def publish_meetup_created(self, event: MeetupCreated):
        await self.change_feed.publish(event_channel(event.event_id), event.model_dump())

    async def publish_meetup_updated(self, event: MeetupUpdated):
        await self.change_feed.publish(event_channel(event.event_id), event.model_dump())

    async def publish_participant_joined(self, event: ParticipantJoined):
        if self.access_gate is not None:
            self.access_gate.invalidate(event.event_id, event.user_id)
        await self.change_feed.publish(
            roster_channel(event.event_id), event.model_dump()
        )

    async def publish_participant_left(self, event: ParticipantLeft):
        if self.access_gate is not None:
            self.access_gate.invalidate(event.event_id, event.user_id)
        await self.change_feed.publish(
            roster_channel(event.event_id), event.model_dump()
        )

    async def publish_chat_event(self, event: ChatCreated | ChatUpdated):
        payload = event.model_dump()
        await self.change_feed.publish(chat_channel(event.chat_id), payload)
        if event.event_id:
            await self.change_feed.publish(event_chat_channel(event.event_id), payload)
        for member_id in event.member_ids:
            await self.change_feed.publish(user_chats_channel(member_id), payload)

    async def publish_chat_created(self, event: ChatCreated):
        await self.publish_chat_event(event)

    async def publish_chat_updated(self, event: ChatUpdated):
        await self.publish_chat_event(event)

    async def publish_message_created(self, event: MessageCreated):
        await self.change_feed.publish(
            messages_channel(event.chat_id), event.model_dump(mode="json")
        )
