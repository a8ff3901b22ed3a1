# meetups/domain/events.py
from datetime import datetime

from pydantic import BaseModel


class Event(BaseModel):
    pass


class MeetupCreated(Event):
    event_id: str
    organizer_id: str


class MeetupUpdated(Event):
    event_id: str
    participants_delta: int = 0


class ParticipantJoined(Event):
    event_id: str
    user_id: str


class ParticipantLeft(Event):
    event_id: str
    user_id: str


class ChatCreated(Event):
    chat_id: str
    chat_type: str
    event_id: str | None = None
    member_ids: list[str]


class ChatUpdated(Event):
    chat_id: str
    chat_type: str
    event_id: str | None = None
    member_ids: list[str]


class MessageCreated(Event):
    message_id: str
    chat_id: str
    sender_id: str
    sender_name: str
    text: str
    created_at: datetime
