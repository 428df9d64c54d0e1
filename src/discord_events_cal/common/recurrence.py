from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo

from dateutil.relativedelta import relativedelta

from discord_events_cal.common.dates import as_utc, format_ics_datetime
from discord_events_cal.common.event_model import (
    EventRecord,
    ExceptionRecord,
    Frequency,
    RecurrenceError,
    RecurrenceRule,
)
from discord_events_cal.config.schema import CalendarConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Occurrence:
    start: datetime
    end: datetime
    start_text: str
    end_text: str
    exception_id: str | None = None
    is_canceled: bool = False

    @property
    def is_exception(self) -> bool:
        return self.exception_id is not None


def _day_step(frequency: Frequency, interval: int) -> timedelta:
    if frequency is Frequency.DAILY:
        return timedelta(days=interval)
    return timedelta(weeks=interval)


def _advance(value: datetime, frequency: Frequency, interval: int) -> datetime:
    if frequency is Frequency.YEARLY:
        months = 12 * interval
    elif frequency is Frequency.MONTHLY:
        months = interval
    else:
        return value + _day_step(frequency, interval)
    # Days past the target month's end roll into the next month (Jan 31 -> Mar 3).
    return value + relativedelta(months=months, day=1, days=value.day - 1)


def _first_slot(rule: RecurrenceRule, now: datetime) -> datetime:
    """First slot at or after ``now``, stepping forward from the rule start.

    Month and year steps move a running cursor, so an overflowed day carries
    into every later slot.
    """
    cursor = rule.start
    if cursor >= now:
        return cursor
    frequency = rule.resolved_frequency
    interval = rule.step_interval
    if frequency in (Frequency.DAILY, Frequency.WEEKLY):
        step = _day_step(frequency, interval)
        return cursor + step * -((cursor - now) // step)
    while cursor < now:
        cursor = _advance(cursor, frequency, interval)
    return cursor


def regular_slots(rule: RecurrenceRule, now: datetime, limit: int) -> list[datetime]:
    if limit <= 0:
        return []
    frequency = rule.resolved_frequency
    interval = rule.step_interval
    slots = [_first_slot(rule, now)]
    while len(slots) < limit:
        slots.append(_advance(slots[-1], frequency, interval))
    return slots


def match_exceptions(
    slots: Sequence[datetime], exceptions: Sequence[ExceptionRecord]
) -> dict[int, ExceptionRecord]:
    matched: dict[int, ExceptionRecord] = {}
    if not slots:
        return matched
    for exception in exceptions:
        target = exception.scheduled_start_time
        # min() keeps the first slot on ties
        nearest = min(range(len(slots)), key=lambda idx: abs(slots[idx] - target))
        matched[nearest] = exception
    return matched


def _occurrence(
    start: datetime,
    duration: timedelta,
    tz: tzinfo,
    exception: ExceptionRecord | None = None,
) -> Occurrence:
    end = start + duration
    return Occurrence(
        start=start,
        end=end,
        start_text=format_ics_datetime(start, tz),
        end_text=format_ics_datetime(end, tz),
        exception_id=exception.event_exception_id if exception else None,
        is_canceled=exception.is_canceled if exception else False,
    )


def event_duration(event: EventRecord, default: timedelta) -> timedelta:
    start = event.require_start()
    if event.scheduled_end_time is None:
        return default
    return event.scheduled_end_time - start


def expand_occurrences(
    event: EventRecord, now: datetime, calendar: CalendarConfig
) -> list[Occurrence]:
    start = event.require_start()
    duration = event_duration(event, calendar.default_duration)
    tz = calendar.tzinfo
    rule = event.recurrence_rule

    if rule is not None and rule.step_interval < 1:
        raise RecurrenceError(
            event.id,
            "recurrence_rule.interval",
            f"interval must be positive, got {rule.step_interval}",
        )

    try:
        if rule is None:
            return [_occurrence(start, duration, tz)]
        slots = regular_slots(rule, as_utc(now), calendar.max_occurrences)
        overrides = match_exceptions(slots, event.guild_scheduled_event_exceptions)
        occurrences = [
            _occurrence(overrides[idx].scheduled_start_time, duration, tz, overrides[idx])
            if idx in overrides
            else _occurrence(slot, duration, tz)
            for idx, slot in enumerate(slots)
        ]
    except (OverflowError, ValueError) as exc:
        raise RecurrenceError(
            event.id, "recurrence_rule", f"date arithmetic out of range: {exc}"
        ) from exc

    logger.debug(
        "Expanded event %s into %d occurrences (%d exceptions)",
        event.id,
        len(occurrences),
        len(overrides),
    )
    return occurrences
