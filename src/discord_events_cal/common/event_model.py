from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from discord_events_cal.common.dates import as_utc

logger = logging.getLogger(__name__)


class InvalidEventError(ValueError):
    def __init__(self, event_id: str | None, field: str, reason: str) -> None:
        self.event_id = event_id
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid event {event_id or '<unknown>'}: {field}: {reason}")


class RecurrenceError(InvalidEventError):
    pass


class Frequency(IntEnum):
    YEARLY = 0
    MONTHLY = 1
    WEEKLY = 2
    DAILY = 3


# Older payloads carry codes outside the enum; they step weekly.
FALLBACK_FREQUENCY = Frequency.WEEKLY


def _as_utc(value: datetime | None) -> datetime | None:
    return None if value is None else as_utc(value)


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class RecurrenceRule(_Record):
    start: datetime
    end: datetime | None = None
    frequency: int
    interval: int | None = 1
    by_weekday: list[Any] | None = None
    by_n_weekday: list[Any] | None = None
    by_month: list[Any] | None = None
    by_month_day: list[Any] | None = None
    by_year_day: list[Any] | None = None
    count: int | None = None

    @field_validator("start", "end")
    @classmethod
    def _to_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    @property
    def step_interval(self) -> int:
        return 1 if self.interval is None else self.interval

    @property
    def resolved_frequency(self) -> Frequency:
        try:
            return Frequency(self.frequency)
        except ValueError:
            return FALLBACK_FREQUENCY


class ExceptionRecord(_Record):
    event_exception_id: str
    event_id: str | None = None
    guild_id: str | None = None
    scheduled_start_time: datetime
    scheduled_end_time: datetime | None = None
    is_canceled: bool = False

    @field_validator("scheduled_start_time", "scheduled_end_time")
    @classmethod
    def _to_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)


class EntityMetadata(_Record):
    location: str | None = None


class EventRecord(_Record):
    id: str
    guild_id: str
    channel_id: str | None = None
    name: str | None = None
    description: str | None = None
    scheduled_start_time: datetime | None = None
    scheduled_end_time: datetime | None = None
    entity_metadata: EntityMetadata | None = None
    recurrence_rule: RecurrenceRule | None = None
    guild_scheduled_event_exceptions: list[ExceptionRecord] = Field(default_factory=list)

    @field_validator("scheduled_start_time", "scheduled_end_time")
    @classmethod
    def _to_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    @field_validator("guild_scheduled_event_exceptions", mode="before")
    @classmethod
    def _none_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def location(self) -> str | None:
        if self.entity_metadata is None:
            return None
        return self.entity_metadata.location

    def require_start(self) -> datetime:
        if self.scheduled_start_time is None:
            raise InvalidEventError(self.id, "scheduled_start_time", "missing start time")
        return self.scheduled_start_time

    def require_title(self) -> str:
        if not self.name or not self.name.strip():
            raise InvalidEventError(self.id, "name", "missing title")
        return self.name


def parse_events(
    raw_events: Iterable[dict[str, Any]], *, skip_invalid: bool = True
) -> list[EventRecord]:
    events: list[EventRecord] = []
    for raw in raw_events:
        try:
            events.append(EventRecord.model_validate(raw))
        except ValidationError as exc:
            event_id = raw.get("id") if isinstance(raw, dict) else None
            errors = exc.errors()
            fields = ".".join(str(p) for p in errors[0]["loc"]) if errors else "record"
            error = InvalidEventError(event_id, fields, str(exc))
            if not skip_invalid:
                raise error from exc
            logger.warning("Skipping event %s: invalid %s", event_id, fields)
    return events
