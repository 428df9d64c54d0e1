from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime

from discord_events_cal.common.dates import as_utc, format_ics_datetime
from discord_events_cal.common.event_model import EventRecord, InvalidEventError
from discord_events_cal.common.recurrence import Occurrence, expand_occurrences
from discord_events_cal.config.schema import CalendarConfig

logger = logging.getLogger(__name__)

CRLF = "\r\n"
MAX_LINE_OCTETS = 75
NO_DESCRIPTION = "No description provided."
UNKNOWN_CHANNEL = "Unknown Channel"
DISCORD_WEB_URL = "https://discord.com"


def escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace("\r", "\\n")
    )


def fold_line(line: str, limit: int = MAX_LINE_OCTETS) -> str:
    """Fold a content line into chunks of at most ``limit`` UTF-8 octets.

    Continuation chunks start with a single space, which counts towards the
    limit. Multi-byte characters are never split across chunks.
    """
    if len(line.encode("utf-8")) <= limit:
        return line
    chunks: list[str] = []
    current: list[str] = []
    size = 0
    budget = limit
    for char in line:
        width = len(char.encode("utf-8"))
        if size + width > budget:
            chunks.append("".join(current))
            current, size = [], 0
            budget = limit - 1
        current.append(char)
        size += width
    chunks.append("".join(current))
    return (CRLF + " ").join(chunks)


def event_uid(
    start_text: str,
    end_text: str,
    title: str,
    discriminator: str,
    domain: str = "discord-events",
) -> str:
    seed = f"{start_text}{end_text}{title}{discriminator}"
    digest = hashlib.md5(seed.encode("utf-8"), usedforsecurity=False).hexdigest()
    return f"{digest[:8]}@{domain}"


def _location(event: EventRecord, channels: Mapping[str, str]) -> str:
    if event.location:
        return event.location
    if event.channel_id:
        return f"Channel: {channels.get(event.channel_id) or UNKNOWN_CHANNEL}"
    return ""


def _event_url(event: EventRecord, guild_id: str) -> str:
    if event.channel_id:
        return f"{DISCORD_WEB_URL}/channels/{guild_id}/{event.channel_id}"
    return f"{DISCORD_WEB_URL}/events/{guild_id}/{event.id}"


def _date_property(name: str, value: str, calendar: CalendarConfig) -> str:
    if calendar.is_utc:
        return f"{name}:{value}"
    return f"{name};TZID={calendar.timezone}:{value}"


def render_event(
    event: EventRecord,
    occurrence: Occurrence,
    index: int,
    channels: Mapping[str, str],
    guild_id: str,
    *,
    calendar: CalendarConfig,
    dtstamp: datetime,
) -> str:
    title = event.require_title()
    if occurrence.is_exception:
        discriminator = f"{event.id}-{occurrence.exception_id}"
    else:
        discriminator = f"{event.id}-{index}"
    uid = event_uid(
        occurrence.start_text,
        occurrence.end_text,
        title,
        discriminator,
        calendar.uid_domain,
    )

    lines = [
        "BEGIN:VEVENT",
        f"UID:{uid}",
        f"DTSTAMP:{format_ics_datetime(dtstamp, UTC)}",
        _date_property("DTSTART", occurrence.start_text, calendar),
        _date_property("DTEND", occurrence.end_text, calendar),
        f"SUMMARY:{escape_text(title)}",
        f"DESCRIPTION:{escape_text(event.description or NO_DESCRIPTION)}",
        f"LOCATION:{escape_text(_location(event, channels))}",
        f"URL:{_event_url(event, guild_id)}",
        "END:VEVENT",
    ]
    return CRLF.join(fold_line(line) for line in lines)


def _header(guild_name: str, calendar: CalendarConfig) -> list[str]:
    name = escape_text(guild_name)
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:-//{name}//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{name}",
    ]
    if not calendar.is_utc:
        lines.append(f"X-WR-TIMEZONE:{calendar.timezone}")
    if calendar.hex_color:
        lines.append(f"X-APPLE-CALENDAR-COLOR:{calendar.hex_color}")
    lines.append(f"X-PUBLISHED-TTL:{calendar.publish_ttl}")
    return [fold_line(line) for line in lines]


def _render_occurrences(
    event: EventRecord,
    guild_id: str,
    channels: Mapping[str, str],
    calendar: CalendarConfig,
    now: datetime,
) -> list[str]:
    event.require_title()
    blocks: list[str] = []
    for index, occurrence in enumerate(expand_occurrences(event, now, calendar)):
        if occurrence.is_canceled and calendar.suppress_cancelled:
            logger.debug(
                "Dropping cancelled occurrence %s of event %s", occurrence.exception_id, event.id
            )
            continue
        blocks.append(
            render_event(
                event,
                occurrence,
                index,
                channels,
                guild_id,
                calendar=calendar,
                dtstamp=now,
            )
        )
    return blocks


def build_ics(
    events: Iterable[EventRecord],
    guild_id: str,
    guild_name: str,
    channels: Mapping[str, str],
    *,
    calendar: CalendarConfig,
    now: datetime | None = None,
) -> str:
    now = as_utc(now) if now else datetime.now(UTC)
    lines = _header(guild_name, calendar)

    skipped = 0
    entries = 0
    for event in events:
        try:
            blocks = _render_occurrences(event, guild_id, channels, calendar, now)
        except InvalidEventError as exc:
            if not calendar.skip_invalid_events:
                raise
            skipped += 1
            logger.warning("Skipping event %s: %s: %s", exc.event_id, exc.field, exc.reason)
            continue
        entries += len(blocks)
        lines.extend(blocks)

    lines.append("END:VCALENDAR")
    logger.info("Built calendar for %s: entries=%d skipped_events=%d", guild_name, entries, skipped)
    return CRLF.join(lines) + CRLF
