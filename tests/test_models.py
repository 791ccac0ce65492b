from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from inkuinfo.models import EventDecodeError, to_display_event

TZ = ZoneInfo("Europe/Helsinki")


def test_all_day_item_becomes_local_midnight_range():
    event = to_display_event(
        {"summary": "Wappu", "start": {"date": "2024-04-30"}, "end": {"date": "2024-05-02"}},
        TZ,
    )

    assert event.all_day is True
    assert event.start == datetime(2024, 4, 30, 0, 0, tzinfo=TZ)
    assert event.end == datetime(2024, 5, 2, 0, 0, tzinfo=TZ)
    assert event.last_day == date(2024, 5, 1)


def test_timed_item_is_converted_to_configured_timezone():
    event = to_display_event(
        {
            "summary": "Standup",
            "location": "Otaniemi",
            "description": "Daily",
            "start": {"dateTime": "2024-03-01T08:00:00Z"},
            "end": {"dateTime": "2024-03-01T08:15:00Z"},
        },
        TZ,
    )

    assert event.all_day is False
    assert event.start.hour == 10
    assert event.start.utcoffset().total_seconds() == 2 * 3600
    assert event.location == "Otaniemi"
    assert event.description == "Daily"


def test_naive_datetime_uses_item_timezone():
    event = to_display_event(
        {
            "summary": "Call",
            "start": {"dateTime": "2024-03-01T09:00:00", "timeZone": "Europe/London"},
            "end": {"dateTime": "2024-03-01T10:00:00", "timeZone": "Europe/London"},
        },
        TZ,
    )

    assert event.start.hour == 11


def test_missing_summary_gets_placeholder_title():
    event = to_display_event({"start": {"date": "2024-03-01"}, "end": {"date": "2024-03-02"}}, TZ)

    assert event.title == "(No title)"


def test_missing_end_falls_back_to_start():
    timed = to_display_event({"summary": "x", "start": {"dateTime": "2024-03-01T10:00:00+02:00"}}, TZ)
    all_day = to_display_event({"summary": "x", "start": {"date": "2024-03-01"}}, TZ)

    assert timed.end == timed.start
    assert all_day.last_day == date(2024, 3, 1)


@pytest.mark.parametrize(
    "item",
    [
        {"summary": "no start"},
        {"summary": "empty start", "start": {}},
        {"summary": "bad date", "start": {"date": "tomorrow"}, "end": {"date": "2024-03-02"}},
        {"summary": "bad time", "start": {"dateTime": "10 o'clock"}},
        {"summary": "mixed", "start": {"date": "2024-03-01"}, "end": {"dateTime": "2024-03-01T10:00:00Z"}},
        "not an object",
    ],
)
def test_malformed_items_raise_decode_error(item):
    with pytest.raises(EventDecodeError):
        to_display_event(item, TZ)
