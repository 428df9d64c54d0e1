from __future__ import annotations

import argparse
import logging
import shutil
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from discord_events_cal.common.event_model import EventRecord, parse_events
from discord_events_cal.common.ics import UNKNOWN_CHANNEL, build_ics
from discord_events_cal.config.loader import load_feed_config, load_from_env
from discord_events_cal.config.schema import FeedConfig
from discord_events_cal.updater.discord_client import DiscordApiError, DiscordClient

logger = logging.getLogger(__name__)


def resolve_channel_names(client: DiscordClient, events: Iterable[EventRecord]) -> dict[str, str]:
    channel_ids = sorted({e.channel_id for e in events if e.channel_id})
    channels: dict[str, str] = {}
    for channel_id in channel_ids:
        try:
            channels[channel_id] = client.fetch_channel_name(channel_id)
        except (DiscordApiError, KeyError) as exc:
            logger.error("Failed to fetch channel name for %s: %s", channel_id, exc)
            channels[channel_id] = UNKNOWN_CHANNEL
    return channels


def write_feed(out_path: Path, ics_text: str) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = out_path.with_suffix(out_path.suffix + ".tmp")
    # newline="" keeps the CRLF terminators intact
    with tmp_path.open("w", encoding="utf-8", newline="") as f:
        f.write(ics_text)
    tmp_path.replace(out_path)
    logger.info("Feed written to %s", out_path)


def copy_public_assets(public_dir: Path, out_path: Path) -> int:
    if not public_dir.is_dir():
        raise FileNotFoundError(f"Public assets directory missing: {public_dir}")
    dist_dir = out_path.parent
    dist_dir.mkdir(parents=True, exist_ok=True)
    copied = 0
    for asset in sorted(public_dir.iterdir()):
        if asset.is_file():
            shutil.copyfile(asset, dist_dir / asset.name)
            copied += 1
    logger.info("Copied %d public assets to %s", copied, dist_dir)
    return copied


def build_feed(
    config: FeedConfig,
    *,
    client: DiscordClient | None = None,
    out_path: Path | None = None,
    now: datetime | None = None,
    validate_only: bool = False,
) -> str | None:
    client = client or DiscordClient(config.discord)
    guild_id = config.discord.guild_id

    guild_name = client.fetch_guild_name(guild_id)
    raw_events = client.fetch_scheduled_events(guild_id)
    if not raw_events:
        logger.info("No events found to process.")
        return None

    events = parse_events(raw_events, skip_invalid=config.calendar.skip_invalid_events)
    channels = resolve_channel_names(client, events)

    ics_text = build_ics(
        events,
        guild_id,
        guild_name,
        channels,
        calendar=config.calendar,
        now=now or datetime.now(UTC),
    )
    if validate_only:
        return ics_text

    out_path = out_path or Path(config.output.file_path)
    write_feed(out_path, ics_text)
    if config.output.public_dir:
        copy_public_assets(Path(config.output.public_dir), out_path)
    logger.info("ICS generation complete!")
    return ics_text


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Build Discord events calendar feed")
    parser.add_argument("--config", help="Path to feed.yaml (defaults to FEED_CONFIG_PATH)")
    parser.add_argument("--out", help="Output ICS path (overrides config)")
    parser.add_argument("--validate-only", action="store_true", help="Build without writing")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level, format="%(levelname)s %(message)s")

    try:
        config = load_feed_config(Path(args.config)) if args.config else load_from_env()
        build_feed(
            config,
            out_path=Path(args.out) if args.out else None,
            validate_only=args.validate_only,
        )
    except (OSError, ValueError, DiscordApiError) as exc:
        logger.error("Error: %s", exc)
        return 1
    return 0
