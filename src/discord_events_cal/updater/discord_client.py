from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import requests

from discord_events_cal.config.schema import DiscordConfig

logger = logging.getLogger(__name__)


class DiscordApiError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class NameCache:
    """Guild and channel names resolved during one process run.

    Entries are never evicted; a fresh cache is created per run.
    """

    guilds: dict[str, str] = field(default_factory=dict)
    channels: dict[str, str] = field(default_factory=dict)


def _retry_after_seconds(response: requests.Response, fallback: float) -> float:
    header = response.headers.get("Retry-After")
    if header is not None:
        try:
            return float(header)
        except ValueError:
            pass
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and isinstance(body.get("retry_after"), (int, float)):
        return float(body["retry_after"])
    return fallback


class DiscordClient:
    def __init__(
        self,
        config: DiscordConfig,
        *,
        session: requests.Session | None = None,
        cache: NameCache | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bot {config.bot_token.get_secret_value()}",
                "Content-Type": "application/json",
            }
        )
        self.cache = cache or NameCache()
        self._sleep = sleep

    def _get(self, path: str) -> Any:
        url = f"{self._config.api_base_url}{path}"
        attempts = self._config.max_retries
        for attempt in range(attempts):
            try:
                response = self._session.get(url, timeout=self._config.timeout_seconds)
            except requests.RequestException as exc:
                raise DiscordApiError(f"Request to {path} failed: {exc}") from exc

            if response.status_code == 429:
                fallback = self._config.retry_delay_seconds * (2**attempt)
                delay = _retry_after_seconds(response, fallback)
                logger.warning(
                    "Discord API rate-limited on %s, retrying in %.1fs (attempt %d/%d)",
                    path,
                    delay,
                    attempt + 1,
                    attempts,
                )
                if attempt + 1 < attempts:
                    self._sleep(delay)
                continue

            if not response.ok:
                raise DiscordApiError(
                    f"Discord API {path} returned {response.status_code}",
                    status_code=response.status_code,
                )
            return response.json()

        raise DiscordApiError(
            f"Discord API {path} still rate-limited after {attempts} attempts",
            status_code=429,
        )

    def fetch_guild_name(self, guild_id: str) -> str:
        if cached := self.cache.guilds.get(guild_id):
            return cached
        data = self._get(f"/guilds/{guild_id}")
        name = data["name"]
        self.cache.guilds[guild_id] = name
        logger.info("Fetched guild name id=%s name=%s", guild_id, name)
        return name

    def fetch_channel_name(self, channel_id: str) -> str:
        if cached := self.cache.channels.get(channel_id):
            return cached
        data = self._get(f"/channels/{channel_id}")
        name = data["name"]
        self.cache.channels[channel_id] = name
        logger.info("Fetched channel name id=%s name=%s", channel_id, name)
        return name

    def fetch_scheduled_events(self, guild_id: str) -> list[dict[str, Any]]:
        data = self._get(f"/guilds/{guild_id}/scheduled-events")
        if not isinstance(data, list):
            raise DiscordApiError(f"Unexpected scheduled events payload for guild {guild_id}")
        logger.info("Fetched %d events", len(data))
        return data
