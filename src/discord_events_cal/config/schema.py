from __future__ import annotations

import re
from datetime import timedelta
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


class DiscordConfig(BaseModel):
    guild_id: str
    bot_token: SecretStr
    api_base_url: str = "https://discord.com/api/v10"
    max_retries: int = 3
    retry_delay_seconds: float = 1.0
    timeout_seconds: int = 30

    @field_validator("guild_id")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("value must be non-empty")
        return v

    @field_validator("bot_token")
    @classmethod
    def _token_non_empty(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("bot_token must be non-empty")
        return v

    @field_validator("max_retries")
    @classmethod
    def _retries_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_retries must be >= 1")
        return v

    @field_validator("api_base_url")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.rstrip("/")


class CalendarConfig(BaseModel):
    timezone: str = "America/New_York"
    hex_color: str = "#6D87BE"
    default_event_duration_minutes: int = 240
    max_occurrences: int = 15
    uid_domain: str = "discord-events"
    publish_ttl: str = "PT1H"
    suppress_cancelled: bool = False
    skip_invalid_events: bool = True

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {v}") from exc
        return v

    @field_validator("hex_color")
    @classmethod
    def _hex_color(cls, v: str) -> str:
        if v and not HEX_COLOR_PATTERN.match(v):
            raise ValueError("hex_color must look like #RRGGBB")
        return v

    @field_validator("default_event_duration_minutes")
    @classmethod
    def _duration_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("default_event_duration_minutes must be > 0")
        return v

    @field_validator("max_occurrences")
    @classmethod
    def _cap_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_occurrences must be >= 0")
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def is_utc(self) -> bool:
        return self.timezone.upper() in {"UTC", "ETC/UTC"}

    @property
    def default_duration(self) -> timedelta:
        return timedelta(minutes=self.default_event_duration_minutes)


class OutputConfig(BaseModel):
    file_path: str = "./dist/events.ics"
    public_dir: str | None = None


class ServiceConfig(BaseModel):
    auto_build_on_missing_feed: bool = False
    reload_interval_seconds: int = 10

    @field_validator("reload_interval_seconds")
    @classmethod
    def _reload_interval_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("reload_interval_seconds must be >= 1")
        return v


class FeedConfig(BaseModel):
    discord: DiscordConfig
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)


def validate_config(data: dict[str, Any]) -> FeedConfig:
    try:
        return FeedConfig.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid feed config: {exc}") from exc
