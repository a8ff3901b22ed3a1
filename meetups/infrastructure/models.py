# meetups/infrastructure/models.py
import uuid
from datetime import UTC, datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from meetups.infrastructure.database import Base


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator):
    """Stores naive UTC and always hands back aware UTC datetimes."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value
        return value.astimezone(UTC).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String)
    display_name: Mapped[str] = mapped_column(String)
    photo_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    company: Mapped[str] = mapped_column(String, default="")
    job_title: Mapped[str] = mapped_column(String, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class Event(Base):
    __tablename__ = "events"

    __table_args__ = (
        Index("ix_events_organizer_created", "organizer_id", "created_at"),
        Index("ix_events_visibility_date", "visibility", "event_date"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String)
    description: Mapped[str] = mapped_column(Text, default="")
    hotel_name: Mapped[str] = mapped_column(String)
    hotel_address: Mapped[str] = mapped_column(String, default="")
    hotel_city: Mapped[str] = mapped_column(String)
    hotel_place_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    # derived lookup key, backfilled lazily on read for rows written without it
    hotel_name_lower: Mapped[Optional[str]] = mapped_column(
        String, nullable=True, index=True
    )
    event_date: Mapped[datetime] = mapped_column(UTCDateTime)
    arrival_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    departure_date: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime, nullable=True
    )
    thematique: Mapped[str] = mapped_column(String)
    max_participants: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    visibility: Mapped[str] = mapped_column(String, default="public")
    organizer_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"))
    organizer_name: Mapped[str] = mapped_column(String)
    organizer_photo: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    participants_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class EventParticipant(Base):
    __tablename__ = "event_participants"

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_participant"),
    )

    # "<event_id>_<user_id>", see domain.entities.participant_key
    id: Mapped[str] = mapped_column(String(160), primary_key=True)
    event_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("events.id"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    user_name: Mapped[str] = mapped_column(String)
    user_photo: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    user_company: Mapped[str] = mapped_column(String, default="")
    user_job_title: Mapped[str] = mapped_column(String, default="")
    role: Mapped[str] = mapped_column(String)
    joined_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class ChatMember(Base):
    __tablename__ = "chat_members"

    chat_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("chats.id"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)


class Chat(Base):
    __tablename__ = "chats"

    __table_args__ = (Index("ix_chats_type_event", "type", "event_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    type: Mapped[str] = mapped_column(String)
    event_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("events.id"), nullable=True, index=True
    )
    title: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    # unordered user pair for private chats, NULL for event chats
    pair_key: Mapped[Optional[str]] = mapped_column(
        String(160), unique=True, nullable=True
    )
    members_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    last_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_message_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime, nullable=True
    )
    last_message_sender: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    member_links: Mapped[List[ChatMember]] = relationship(
        "ChatMember",
        lazy="selectin",
        order_by="ChatMember.position",
    )


class Message(Base):
    __tablename__ = "messages"

    __table_args__ = (Index("ix_messages_chat_created", "chat_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    chat_id: Mapped[str] = mapped_column(String(64), ForeignKey("chats.id"))
    sender_id: Mapped[str] = mapped_column(String(64), index=True)
    sender_name: Mapped[str] = mapped_column(String)
    sender_photo: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    text: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
