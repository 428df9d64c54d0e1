from datetime import UTC, datetime

import pytest

from discord_events_cal.common.event_model import (
    EventRecord,
    Frequency,
    InvalidEventError,
    RecurrenceRule,
    parse_events,
)


def _raw(**overrides) -> dict:
    data = {
        "id": "evt1",
        "guild_id": "guild1",
        "name": "Sync",
        "scheduled_start_time": "2025-12-15T10:00:00+00:00",
        "scheduled_end_time": None,
        "privacy_level": 2,
        "status": 1,
        "entity_type": 3,
    }
    data.update(overrides)
    return data


def test_api_payload_parses_and_ignores_unknown_keys() -> None:
    event = EventRecord.model_validate(
        _raw(entity_metadata={"location": "Cafe"}, guild_scheduled_event_exceptions=None)
    )
    assert event.location == "Cafe"
    assert event.scheduled_start_time == datetime(2025, 12, 15, 10, tzinfo=UTC)
    assert event.guild_scheduled_event_exceptions == []


def test_naive_and_offset_times_normalized_to_utc() -> None:
    naive = EventRecord.model_validate(_raw(scheduled_start_time="2025-12-15T10:00:00"))
    offset = EventRecord.model_validate(_raw(scheduled_start_time="2025-12-15T05:00:00-05:00"))
    assert naive.scheduled_start_time == offset.scheduled_start_time
    assert offset.scheduled_start_time.tzinfo == UTC


def test_frequency_fallback() -> None:
    assert RecurrenceRule(start="2025-01-01T00:00:00Z", frequency=1).resolved_frequency is (
        Frequency.MONTHLY
    )
    assert RecurrenceRule(start="2025-01-01T00:00:00Z", frequency=99).resolved_frequency is (
        Frequency.WEEKLY
    )


def test_require_helpers() -> None:
    event = EventRecord.model_validate(_raw(name=None, scheduled_start_time=None))
    with pytest.raises(InvalidEventError) as excinfo:
        event.require_title()
    assert excinfo.value.field == "name"
    with pytest.raises(InvalidEventError) as excinfo:
        event.require_start()
    assert excinfo.value.field == "scheduled_start_time"
    assert "evt1" in str(excinfo.value)


def test_parse_events_skips_invalid() -> None:
    events = parse_events([_raw(), _raw(id="bad", scheduled_start_time="not a date")])
    assert [e.id for e in events] == ["evt1"]


def test_parse_events_strict_raises() -> None:
    with pytest.raises(InvalidEventError) as excinfo:
        parse_events([_raw(id="bad", scheduled_start_time="not a date")], skip_invalid=False)
    assert excinfo.value.event_id == "bad"
    assert excinfo.value.field == "scheduled_start_time"


def test_refinement_fields_accept_any_shape() -> None:
    rule = {
        "start": "2025-12-01T09:00:00Z",
        "frequency": 1,
        "by_weekday": [0, 2],
        "by_n_weekday": [{"n": 2, "day": 4}],
        "by_month_day": None,
    }
    (event,) = parse_events([_raw(recurrence_rule=rule)])
    assert event.recurrence_rule.by_n_weekday == [{"n": 2, "day": 4}]

    flat = {**rule, "by_n_weekday": [1, 3]}
    (event,) = parse_events([_raw(recurrence_rule=flat)])
    assert event.recurrence_rule.by_n_weekday == [1, 3]
