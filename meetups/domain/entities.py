# meetups/domain/entities.py
from dataclasses import dataclass
from enum import Enum


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class Role(str, Enum):
    ORGANIZER = "organizer"
    PARTICIPANT = "participant"


class ChatType(str, Enum):
    EVENT = "event"
    PRIVATE = "private"


class Thematique(str, Enum):
    APERO = "apero"
    DINER = "diner"
    COWORKING = "coworking"
    PETIT_DEJ = "petit-dej"
    SPORT = "sport"
    TALK_BUSINESS = "talk-business"


class ListingWindow(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class Identity:
    """The signed-in user as the identity provider describes them."""

    id: str
    display_name: str
    photo_url: str | None = None
    company: str = ""
    job_title: str = ""

    @classmethod
    def from_user(cls, user) -> "Identity":
        return cls(
            id=user.id,
            display_name=user.display_name,
            photo_url=user.photo_url,
            company=user.company or "",
            job_title=user.job_title or "",
        )


def participant_key(event_id: str, user_id: str) -> str:
    return f"{event_id}_{user_id}"


def private_pair_key(user_a: str, user_b: str) -> str:
    first, second = sorted((user_a, user_b))
    return f"{first}:{second}"


def normalize_hotel_name(value) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def hotel_name_lower(event) -> str:
    """The search key of an event, from the stored key or derived from its name."""
    if event.hotel_name_lower:
        return normalize_hotel_name(event.hotel_name_lower)
    return normalize_hotel_name(event.hotel_name)
