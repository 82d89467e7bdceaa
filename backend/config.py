from datetime import UTC, datetime
from pathlib import Path

from pydantic_settings import BaseSettings

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive so they stay compatible with SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "Flashdeck"
    database_url: str = f"sqlite+aiosqlite:///{DATA_DIR / 'flashdeck.db'}"
    timezone: str = "UTC"  # calendar-day boundaries for streaks
    search_default_limit: int = 20
    suggestion_limit: int = 5
    recent_searches_limit: int = 10
    recent_searches_key: str = "flashdeck_recent_searches"
    recent_searches_path: str = str(DATA_DIR / "recent_searches.json")
    user_id: str = ""  # default user for the CLI
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    debug: bool = False

    model_config = {"env_prefix": "FLASHDECK_", "env_file": ".env"}


settings = Settings()
