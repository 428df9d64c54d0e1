from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Feed:
    text: str
    mtime: float

    @property
    def entry_count(self) -> int:
        return self.text.count("BEGIN:VEVENT")


def load_feed(path: Path) -> Feed:
    if not path.exists():
        raise FileNotFoundError(f"Feed file not found: {path}")
    text = path.read_bytes().decode("utf-8")
    if not text.startswith("BEGIN:VCALENDAR") or "END:VCALENDAR" not in text:
        raise ValueError(f"Invalid feed format: {path}")
    return Feed(text=text, mtime=path.stat().st_mtime)


@dataclass
class FeedLoader:
    path: Path
    reload_interval_seconds: int
    _cached: Feed | None = None
    _last_check: float = 0.0

    def get_feed(self) -> Feed:
        now = time.monotonic()
        if self._cached is None:
            self._reload()
            return self._cached  # type: ignore[return-value]

        if now - self._last_check >= self.reload_interval_seconds:
            self._last_check = now
            if self.path.stat().st_mtime > self._cached.mtime:
                self._reload()

        return self._cached

    def _reload(self) -> None:
        self._cached = load_feed(self.path)
        self._last_check = time.monotonic()
