from __future__ import annotations

from typing import Any

import pytest

from discord_events_cal.common.event_model import EventRecord
from discord_events_cal.config.schema import CalendarConfig


@pytest.fixture
def calendar() -> CalendarConfig:
    return CalendarConfig(timezone="America/New_York", max_occurrences=15)


@pytest.fixture
def make_event():
    def _make(**overrides: Any) -> EventRecord:
        data: dict[str, Any] = {
            "id": "evt1",
            "guild_id": "guild1",
            "channel_id": None,
            "name": "Sync",
            "description": "Weekly sync",
            "scheduled_start_time": "2025-12-15T10:00:00Z",
            "scheduled_end_time": "2025-12-15T12:00:00Z",
        }
        data.update(overrides)
        return EventRecord.model_validate(data)

    return _make
