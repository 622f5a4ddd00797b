"""Configuration schema using Pydantic."""

from datetime import timedelta, timezone, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from threadline.utils.helpers import get_identity_path, get_store_path

DEFAULT_IDENTITY_FILES = ["SOUL.md", "IDENTITY.md", "USER.md", "REMINDERS.md"]


class ContextConfig(BaseModel):
    """Conversation context assembly settings."""
    active_thread_window_minutes: float = Field(
        default=30, gt=0, json_schema_extra={"label": "Active thread window (minutes)"},
    )
    today_window_hours: float = Field(
        default=24, gt=0, json_schema_extra={"label": "Today window (hours)"},
    )
    max_context_chars: int = Field(
        default=80_000, gt=0, json_schema_extra={"label": "Context budget (chars)"},
    )
    truncation_floor: int = Field(
        default=200, ge=0, json_schema_extra={"label": "Minimum budget left to truncate"},
    )
    head_ratio: float = Field(default=0.7, gt=0, lt=1)
    tail_ratio: float = Field(default=0.2, ge=0, lt=1)
    timezone: str | None = None  # IANA name, e.g. "Europe/Berlin"; None = system local

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str | None) -> str | None:
        if not value:
            return None
        if value.upper() == "UTC":
            return "UTC"
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @model_validator(mode="after")
    def _check_ratios(self) -> "ContextConfig":
        if self.head_ratio + self.tail_ratio >= 1:
            raise ValueError("head_ratio + tail_ratio must be below 1")
        return self

    @property
    def thread_window(self) -> timedelta:
        return timedelta(minutes=self.active_thread_window_minutes)

    @property
    def today_window(self) -> timedelta:
        return timedelta(hours=self.today_window_hours)

    @property
    def tzinfo(self) -> tzinfo | None:
        """Zone used for calendar-day comparisons (None means system local)."""
        if not self.timezone:
            return None
        if self.timezone == "UTC":
            return timezone.utc
        return ZoneInfo(self.timezone)


class StoreConfig(BaseModel):
    """Conversation store configuration."""
    path: str = "~/.threadline/conversations"
    days_back: int = Field(default=7, ge=0)  # 0 disables the age filter


class IdentityConfig(BaseModel):
    """Identity files injected alongside conversation history."""
    path: str = "~/.threadline/identity"
    files: list[str] = Field(default_factory=lambda: list(DEFAULT_IDENTITY_FILES))


class Config(BaseSettings):
    """Root configuration for threadline."""
    context: ContextConfig = Field(default_factory=ContextConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)

    @property
    def store_path(self) -> Path:
        """Get expanded store path."""
        return get_store_path(self.store.path)

    @property
    def identity_path(self) -> Path:
        """Get expanded identity path."""
        return get_identity_path(self.identity.path)

    class Config:
        env_prefix = "THREADLINE_"
        env_nested_delimiter = "__"
