"""Runtime settings, read from the environment (and a .env file if present)."""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    app_title: str = "Campus Booking Service"
    log_level: str = "INFO"
    # Zone the wall-clock "now" is taken in for past-booking checks.
    local_timezone: str = "UTC"
    allow_past_bookings: bool = False
    seed_demo_data: bool = False

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            app_title=os.getenv("APP_TITLE", "Campus Booking Service"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            local_timezone=os.getenv("LOCAL_TZ", "UTC"),
            allow_past_bookings=_env_flag("ALLOW_PAST_BOOKINGS"),
            seed_demo_data=_env_flag("SEED_DEMO_DATA"),
        )
