# meetups/domain/calendar.py
import calendar
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo


def local_datetime(day: date, at: time, tz: ZoneInfo) -> datetime:
    """Wall-clock time in the given zone, returned as aware UTC."""
    return datetime.combine(day, at, tzinfo=tz).astimezone(UTC)


def local_day_bounds(moment: datetime, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """[local midnight, next local midnight) around `moment`, both in UTC."""
    today = moment.astimezone(tz).date()
    return (
        local_datetime(today, time.min, tz),
        local_datetime(today + timedelta(days=1), time.min, tz),
    )


def local_date(moment: datetime, tz: ZoneInfo) -> date:
    return moment.astimezone(tz).date()


def add_month(moment: datetime) -> datetime:
    year = moment.year + moment.month // 12
    month = moment.month % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
