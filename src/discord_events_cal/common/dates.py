from __future__ import annotations

from datetime import UTC, datetime, tzinfo

UTC_ZONE_KEYS = {"UTC", "Etc/UTC"}


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def is_utc_zone(tz: tzinfo) -> bool:
    return tz is UTC or getattr(tz, "key", None) in UTC_ZONE_KEYS


def format_ics_datetime(value: datetime, tz: tzinfo) -> str:
    """Render ``value`` as ICS local time (``YYYYMMDDTHHMMSS``) in ``tz``.

    The zone offset is resolved for the instant itself, so the same UTC
    wall-clock time maps to different local hours across DST changes.
    UTC output carries the trailing ``Z`` marker.
    """
    local = as_utc(value).astimezone(tz)
    text = (
        f"{local.year:04d}{local.month:02d}{local.day:02d}"
        f"T{local.hour:02d}{local.minute:02d}{local.second:02d}"
    )
    if is_utc_zone(tz):
        return text + "Z"
    return text
