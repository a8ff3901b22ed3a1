# meetups/infrastructure/schemas.py
from datetime import date, datetime, time

from pydantic import BaseModel, ConfigDict, EmailStr, Field, computed_field

from meetups.domain.entities import ChatType, Role, Thematique, Visibility


class UserBase(BaseModel):
    email: EmailStr
    display_name: str = Field(..., min_length=1)
    photo_url: str | None = None
    company: str = ""
    job_title: str = ""


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)


class User(UserBase):
    id: str
    created_at: datetime
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class PublicProfile(BaseModel):
    id: str
    display_name: str
    photo_url: str | None = None
    company: str = ""
    job_title: str = ""

    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class HotelPlace(BaseModel):
    """Shape handed over by the places lookup service."""

    name: str = ""
    address: str = ""
    city: str = ""
    country: str = ""
    place_id: str | None = None


class EventCreate(BaseModel):
    title: str = ""
    description: str = ""
    hotel: HotelPlace = Field(default_factory=HotelPlace)
    event_date: date | None = None
    event_time: time | None = None
    arrival_date: date | None = None
    departure_date: date | None = None
    thematique: Thematique | None = None
    max_participants: int | None = Field(None, ge=1)
    visibility: Visibility = Visibility.PUBLIC


class Event(BaseModel):
    id: str
    title: str
    description: str
    hotel_name: str
    hotel_address: str
    hotel_city: str
    hotel_place_id: str | None = None
    hotel_name_lower: str | None = None
    event_date: datetime
    arrival_date: datetime | None = None
    departure_date: datetime | None = None
    thematique: Thematique
    max_participants: int | None = None
    visibility: Visibility
    organizer_id: str
    organizer_name: str
    organizer_photo: str | None = None
    participants_count: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Participant(BaseModel):
    id: str
    event_id: str
    user_id: str
    user_name: str
    user_photo: str | None = None
    user_company: str = ""
    user_job_title: str = ""
    role: Role
    joined_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Roster(BaseModel):
    event_id: str
    participants: list[Participant]
    max_participants: int | None = None

    @computed_field
    @property
    def size(self) -> int:
        return len(self.participants)

    @computed_field
    @property
    def is_full(self) -> bool:
        # display-level answer, from the roster length rather than the counter
        return bool(self.max_participants) and self.size >= self.max_participants


class MemberSnapshot(BaseModel):
    name: str | None = None
    photo: str | None = None


class Chat(BaseModel):
    id: str
    type: ChatType
    event_id: str | None = None
    title: str | None = None
    members: list[str] = Field(default_factory=list)
    members_data: dict[str, MemberSnapshot] | None = None
    last_message: str | None = None
    last_message_at: datetime | None = None
    last_message_sender: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StartPrivateChat(BaseModel):
    other_user_id: str


class MessageCreate(BaseModel):
    text: str = Field(..., min_length=1)


class Message(BaseModel):
    id: str
    chat_id: str
    sender_id: str
    sender_name: str
    sender_photo: str | None = None
    text: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChatList(BaseModel):
    chats: list[Chat]
    degraded: bool = False
