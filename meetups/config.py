# meetups/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    PROJECT_NAME: str = "Hotel Meetups API"
    PROJECT_VERSION: str = "1.0.0"
    PROJECT_DESCRIPTION: str = (
        "Meetups between travelers staying at the same hotel: events, rosters and chats"
    )
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REDIS_HOST: str | None = None
    REDIS_PORT: int = 6379
    REDIS_CHANNEL_PREFIX: str = "meetups:"
    DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"

    # calendar days (daily quota, message day separators) are local to this zone
    TIMEZONE: str = "Europe/Paris"
    LOCALE: str = "fr_FR"
    DAILY_EVENT_LIMIT: int = 3
    MESSAGE_WINDOW: int = 100
    EVENT_LIST_LIMIT: int = 50
    BACKFILL_BATCH_SIZE: int = 50

    model_config = SettingsConfigDict(env_file=".env", extra="allow")
