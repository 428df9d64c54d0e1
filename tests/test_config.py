from pathlib import Path

import pytest

from discord_events_cal.config.loader import load_feed_config, load_from_env

ENV = {"DSE_DISCORD_GUILD_ID": "123", "DSE_DISCORD_BOT_TOKEN": "secret"}


def test_defaults_from_env_only() -> None:
    config = load_feed_config(environ=ENV)
    assert config.discord.guild_id == "123"
    assert config.discord.bot_token.get_secret_value() == "secret"
    assert config.calendar.timezone == "America/New_York"
    assert config.calendar.max_occurrences == 15
    assert config.calendar.default_event_duration_minutes == 240
    assert config.output.file_path == "./dist/events.ics"


def test_yaml_with_env_overrides(tmp_path: Path) -> None:
    path = tmp_path / "feed.yaml"
    path.write_text(
        "discord:\n"
        "  guild_id: '999'\n"
        "calendar:\n"
        "  timezone: Europe/Berlin\n"
        "  max_occurrences: 5\n"
        "output:\n"
        "  file_path: out/feed.ics\n",
        encoding="utf-8",
    )
    env = {**ENV, "DSE_DISCORD_CALENDAR_HEX_COLOR": "#112233"}
    config = load_feed_config(path, environ=env)
    assert config.discord.guild_id == "123"
    assert config.calendar.timezone == "Europe/Berlin"
    assert config.calendar.max_occurrences == 5
    assert config.calendar.hex_color == "#112233"
    assert config.output.file_path == "out/feed.ics"


def test_unknown_timezone_fails_at_load() -> None:
    with pytest.raises(ValueError, match="Unknown timezone"):
        load_feed_config(environ={**ENV, "DSE_CALENDAR_TIMEZONE": "Mars/Olympus_Mons"})


def test_missing_token_fails() -> None:
    with pytest.raises(ValueError, match="DSE_DISCORD_BOT_TOKEN"):
        load_feed_config(environ={"DSE_DISCORD_GUILD_ID": "123"})


def test_missing_guild_fails() -> None:
    with pytest.raises(ValueError, match="DSE_DISCORD_GUILD_ID"):
        load_feed_config(environ={})


def test_bad_color_rejected() -> None:
    with pytest.raises(ValueError, match="hex_color"):
        load_feed_config(environ={**ENV, "DSE_DISCORD_CALENDAR_HEX_COLOR": "blue"})


def test_non_mapping_yaml_rejected(tmp_path: Path) -> None:
    path = tmp_path / "feed.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError, match="must be a mapping"):
        load_feed_config(path, environ=ENV)


def test_load_from_env_reads_config_path(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "feed.yaml"
    path.write_text("calendar:\n  default_event_duration_minutes: 60\n", encoding="utf-8")
    monkeypatch.setenv("FEED_CONFIG_PATH", str(path))
    for key, value in ENV.items():
        monkeypatch.setenv(key, value)
    config = load_from_env()
    assert config.calendar.default_event_duration_minutes == 60
