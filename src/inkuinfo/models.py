from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class EventDecodeError(ValueError):
    """Raised when a calendar API item cannot be mapped to a DisplayEvent."""


@dataclass(frozen=True)
class DisplayEvent:
    title: str
    start: datetime             # timezone-aware
    end: datetime               # timezone-aware; exclusive midnight for all-day
    all_day: bool = False
    description: Optional[str] = None
    location: Optional[str] = None

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def last_day(self) -> date:
        # All-day end dates are exclusive; step back in calendar days, not hours.
        if self.all_day:
            return self.end.date() - timedelta(days=1)
        return self.end.date()


def _parse_date(value: Any) -> date:
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise EventDecodeError(f"Invalid date {value!r}") from e


def _parse_datetime(value: Any, fallback_tz: ZoneInfo) -> datetime:
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError as e:
        raise EventDecodeError(f"Invalid dateTime {value!r}") from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=fallback_tz)
    return dt


def _item_zone(obj: Dict[str, Any], tz: ZoneInfo) -> ZoneInfo:
    name = obj.get("timeZone")
    if not name:
        return tz
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return tz


def to_display_event(item: Dict[str, Any], tz: ZoneInfo) -> DisplayEvent:
    """Map one Google Calendar API item to a DisplayEvent in ``tz``."""
    if not isinstance(item, dict):
        raise EventDecodeError(f"Event item must be an object, got {type(item).__name__}")

    start_obj = item.get("start")
    end_obj = item.get("end") or {}
    if not isinstance(start_obj, dict) or not start_obj:
        raise EventDecodeError("Event has no start")
    if not isinstance(end_obj, dict):
        raise EventDecodeError("Event end must be an object")

    # All-day events have "date" not "dateTime"
    if "date" in start_obj:
        if "dateTime" in end_obj:
            raise EventDecodeError("Event mixes an all-day start with a timed end")
        start_day = _parse_date(start_obj["date"])
        end_day = _parse_date(end_obj["date"]) if "date" in end_obj else start_day + timedelta(days=1)
        start = datetime.combine(start_day, datetime.min.time(), tzinfo=tz)
        end = datetime.combine(end_day, datetime.min.time(), tzinfo=tz)
        all_day = True
    elif "dateTime" in start_obj:
        if "date" in end_obj:
            raise EventDecodeError("Event mixes a timed start with an all-day end")
        start = _parse_datetime(start_obj["dateTime"], _item_zone(start_obj, tz)).astimezone(tz)
        if "dateTime" in end_obj:
            end = _parse_datetime(end_obj["dateTime"], _item_zone(end_obj, tz)).astimezone(tz)
        else:
            end = start
        all_day = False
    else:
        raise EventDecodeError("Event start has neither date nor dateTime")

    title = item.get("summary") or "(No title)"
    return DisplayEvent(
        title=str(title),
        start=start,
        end=end,
        all_day=all_day,
        description=item.get("description") or None,
        location=item.get("location") or None,
    )


def event_sort_key(e: DisplayEvent):
    return e.start.astimezone(timezone.utc)
