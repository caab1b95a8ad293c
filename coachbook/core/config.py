"""
Application configuration.
Values come from environment variables, falling back to a local .env file
so development works without any exported variables.
"""
import logging
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    APP_ENV: str = "development"
    DATABASE_URL: str = "sqlite+aiosqlite:///./coachbook.db"
    LOG_LEVEL: str = "INFO"

    # Scheduling rules
    SERIES_HORIZON_WEEKS: int = 52  # cap for schedules with no end date
    ENFORCE_AVAILABILITY: bool = True  # reject bookings outside availability rules
    ALLOW_MIDNIGHT_ROLLOVER: bool = True  # 23:30 + 60min -> 00:30 is accepted as-is

    class Config:
        env_file = ".env"


settings = Settings()

if settings.SERIES_HORIZON_WEEKS < 1:
    raise ValueError(
        "SERIES_HORIZON_WEEKS must be at least 1, "
        f"got {settings.SERIES_HORIZON_WEEKS}"
    )
