from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from discord_events_cal.config.schema import FeedConfig, validate_config

# (env var, section, key)
ENV_OVERRIDES: tuple[tuple[str, str, str], ...] = (
    ("DSE_DISCORD_GUILD_ID", "discord", "guild_id"),
    ("DSE_DISCORD_BOT_TOKEN", "discord", "bot_token"),
    ("DSE_DISCORD_CALENDAR_HEX_COLOR", "calendar", "hex_color"),
    ("DSE_CALENDAR_TIMEZONE", "calendar", "timezone"),
    ("FEED_OUTPUT_PATH", "output", "file_path"),
)
REQUIRED_SETTINGS = ENV_OVERRIDES[:2]


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must be a mapping: {path}")
    return data


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    merged = {section: dict(values or {}) for section, values in data.items()}
    for env_name, section, key in ENV_OVERRIDES:
        value = environ.get(env_name)
        if value:
            merged.setdefault(section, {})[key] = value
    for env_name, section, key in REQUIRED_SETTINGS:
        if not merged.get(section, {}).get(key):
            raise ValueError(f"Missing required environment variable: {env_name}")
    return merged


def load_feed_config(
    config_path: Path | None = None, environ: Mapping[str, str] | None = None
) -> FeedConfig:
    data = _load_yaml(config_path) if config_path else {}
    merged = apply_env_overrides(data, os.environ if environ is None else environ)
    return validate_config(merged)


def load_from_env() -> FeedConfig:
    config_path = os.getenv("FEED_CONFIG_PATH")
    path = Path(config_path).expanduser().resolve() if config_path else None
    return load_feed_config(path)
