from __future__ import annotations

import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from flask import Flask, Response, jsonify, request

from discord_events_cal.config.loader import load_from_env
from discord_events_cal.config.schema import FeedConfig
from discord_events_cal.service.feed import FeedLoader
from discord_events_cal.updater.build_feed import build_feed

logger = logging.getLogger(__name__)


def _cors_allowed_origins_from_env() -> set[str]:
    raw = os.getenv("CORS_ALLOWED_ORIGINS") or os.getenv("DSE_CORS_ALLOWED_ORIGINS") or ""
    return {origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()}


def _append_vary_header(response: Response, value: str) -> None:
    existing = [v.strip() for v in response.headers.get("Vary", "").split(",") if v.strip()]
    if value.lower() not in {v.lower() for v in existing}:
        existing.append(value)
    response.headers["Vary"] = ", ".join(existing)


def create_app(config: FeedConfig | None = None) -> Flask:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    config = config or load_from_env()

    feed_path = Path(config.output.file_path).resolve()
    if not feed_path.exists():
        if config.service.auto_build_on_missing_feed:
            logger.info("Feed missing; attempting build")
            build_feed(config, out_path=feed_path)
        if not feed_path.exists():
            raise FileNotFoundError(f"Feed file missing: {feed_path}")

    feed_loader = FeedLoader(feed_path, config.service.reload_interval_seconds)
    allowed_origins = _cors_allowed_origins_from_env()

    app = Flask(__name__)
    app.config["FEED_CONFIG"] = config
    app.config["FEED_LOADER"] = feed_loader

    @app.after_request
    def cors(response: Response) -> Response:
        origin = (request.headers.get("Origin") or "").rstrip("/")
        if origin and origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            _append_vary_header(response, "Origin")
        return response

    @app.get("/healthz")
    def healthz() -> Any:
        return jsonify({"ok": True})

    @app.get("/version")
    def version() -> Any:
        feed = feed_loader.get_feed()
        return jsonify(
            {
                "guild_id": config.discord.guild_id,
                "generated_at": datetime.fromtimestamp(feed.mtime, UTC).isoformat(),
                "entries": feed.entry_count,
            }
        )

    @app.get("/events.ics")
    def events_ics() -> Any:
        feed = feed_loader.get_feed()
        return app.response_class(feed.text, mimetype="text/calendar")

    return app
