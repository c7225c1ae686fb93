"""
Timegeist - Centralized configuration.

Loads all settings from .env and validates them.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

_REMOTE_STORES = ("sqlite", "memory", "caldav")
_THEME_MODES = ("light", "dark", "system")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Calendar
    TIMEZONE: str = "UTC"
    WEEK_START: int = 0              # 0 = Sunday ... 6 = Saturday

    # Remote store: "sqlite" | "memory" | "caldav"
    REMOTE_STORE: str = "sqlite"

    # SQLite
    DATABASE_PATH: str = "data/calendar.db"

    # Persisted view state (selected date, month index, theme)
    VIEW_STATE_PATH: str = "data/view_state.json"

    # Local session
    DEFAULT_USER_ID: str = "local-user"

    # Display preferences
    THEME_MODE: str = "system"
    ACCENT_COLOR: str = "#8664A0"

    # CalDAV (only needed when REMOTE_STORE=caldav)
    CALDAV_URL: str = ""
    CALDAV_USERNAME: str = ""
    CALDAV_PASSWORD: str = ""
    CALDAV_CALENDAR_NAME: str = ""

    LOG_LEVEL: str = "INFO"

    @field_validator("TIMEZONE")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {v!r}") from exc
        return v

    @field_validator("WEEK_START", mode="before")
    @classmethod
    def parse_week_start(cls, v: str | int) -> int:
        day = int(v)
        if not 0 <= day <= 6:
            raise ValueError(f"WEEK_START must be 0-6, got {day}")
        return day

    @field_validator("REMOTE_STORE")
    @classmethod
    def check_remote_store(cls, v: str) -> str:
        if v.lower() not in _REMOTE_STORES:
            raise ValueError(f"REMOTE_STORE must be one of {_REMOTE_STORES}, got {v!r}")
        return v.lower()

    @field_validator("THEME_MODE")
    @classmethod
    def check_theme_mode(cls, v: str) -> str:
        if v not in _THEME_MODES:
            raise ValueError(f"THEME_MODE must be one of {_THEME_MODES}, got {v!r}")
        return v


def _load_settings() -> Settings:
    """Load settings from environment, exiting on invalid values."""
    try:
        return Settings(
            TIMEZONE=os.getenv("TIMEZONE", "UTC"),
            WEEK_START=os.getenv("WEEK_START", "0"),
            REMOTE_STORE=os.getenv("REMOTE_STORE", "sqlite"),
            DATABASE_PATH=os.getenv("DATABASE_PATH", "data/calendar.db"),
            VIEW_STATE_PATH=os.getenv("VIEW_STATE_PATH", "data/view_state.json"),
            DEFAULT_USER_ID=os.getenv("DEFAULT_USER_ID", "local-user"),
            THEME_MODE=os.getenv("THEME_MODE", "system"),
            ACCENT_COLOR=os.getenv("ACCENT_COLOR", "#8664A0"),
            CALDAV_URL=os.getenv("CALDAV_URL", ""),
            CALDAV_USERNAME=os.getenv("CALDAV_USERNAME", ""),
            CALDAV_PASSWORD=os.getenv("CALDAV_PASSWORD", ""),
            CALDAV_CALENDAR_NAME=os.getenv("CALDAV_CALENDAR_NAME", ""),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        )
    except ValidationError as exc:
        print(f"ERROR: invalid configuration in .env:\n{exc}", file=sys.stderr)
        sys.exit(1)


# Singleton - imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
