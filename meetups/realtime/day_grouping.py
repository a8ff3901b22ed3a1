# meetups/realtime/day_grouping.py
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Union
from zoneinfo import ZoneInfo

from babel.dates import format_date

from meetups.domain.calendar import local_date
from meetups.infrastructure import schemas

TODAY_LABEL = "Aujourd'hui"
YESTERDAY_LABEL = "Hier"


@dataclass(frozen=True)
class DaySeparator:
    day: date
    label: str

    def to_dict(self) -> dict:
        return {"kind": "separator", "date": self.day.isoformat(), "label": self.label}


def day_label(day: date, today: date, locale: str = "fr_FR") -> str:
    if day == today:
        return TODAY_LABEL
    if day == today - timedelta(days=1):
        return YESTERDAY_LABEL
    return format_date(day, "EEEE d MMMM", locale=locale)


def group_by_day(
    messages: List[schemas.Message],
    tz: ZoneInfo,
    now: datetime,
    locale: str = "fr_FR",
) -> List[Union[DaySeparator, schemas.Message]]:
    """Interleaves a separator before the first message of each local day."""
    today = local_date(now, tz)
    items: List[Union[DaySeparator, schemas.Message]] = []
    current = None
    for message in messages:
        day = local_date(message.created_at, tz)
        if day != current:
            items.append(DaySeparator(day, day_label(day, today, locale)))
            current = day
        items.append(message)
    return items


def serialize_items(items: List[Union[DaySeparator, schemas.Message]]) -> List[dict]:
    return [
        item.to_dict()
        if isinstance(item, DaySeparator)
        else {"kind": "message", **item.model_dump(mode="json")}
        for item in items
    ]
