"""Human-readable date ranges and location text for display events.

Everything here is pure: the same event and configuration always give the
same string. Dates are rendered in the configured timezone using one of the
built-in locales below.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from .models import DisplayEvent

RANGE_SEPARATOR = " – "


@dataclass(frozen=True)
class Locale:
    weekdays: Tuple[str, ...]           # Monday first, like date.weekday()
    weekdays_short: Tuple[str, ...]
    months: Tuple[str, ...]             # January first
    long_date: str
    short_date: str
    time: str
    date_time_join: str


LOCALES: Dict[str, Locale] = {
    "en": Locale(
        weekdays=("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
        weekdays_short=("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"),
        months=(
            "January", "February", "March", "April", "May", "June",
            "July", "August", "September", "October", "November", "December",
        ),
        long_date="{weekday}, {month} {day}, {year}",
        short_date="{weekday}, {month_num}/{day}/{year}",
        time="{hour:02d}:{minute:02d}",
        date_time_join=", ",
    ),
    "fi": Locale(
        weekdays=("maanantai", "tiistai", "keskiviikko", "torstai", "perjantai", "lauantai", "sunnuntai"),
        weekdays_short=("ma", "ti", "ke", "to", "pe", "la", "su"),
        # Partitive forms, as used after the day number ("1. maaliskuuta").
        months=(
            "tammikuuta", "helmikuuta", "maaliskuuta", "huhtikuuta", "toukokuuta", "kesäkuuta",
            "heinäkuuta", "elokuuta", "syyskuuta", "lokakuuta", "marraskuuta", "joulukuuta",
        ),
        long_date="{weekday} {day}. {month} {year}",
        short_date="{weekday} {day}.{month_num}.{year}",
        time="{hour:02d}.{minute:02d}",
        date_time_join=" klo ",
    ),
}


def filter_location(location: Optional[str], filters: Iterable[str]) -> str:
    """Drop comma-separated location parts that contain any filter string."""
    if not location:
        return ""
    filters = [f for f in filters if f]
    parts = [part.strip() for part in location.split(",")]
    kept = [part for part in parts if part and not any(f in part for f in filters)]
    return ", ".join(kept)


class EventFormatter:
    def __init__(self, timezone: str, locale: str = "en", location_filters: Sequence[str] = ()):
        self.tz = ZoneInfo(timezone)
        self.locale = LOCALES[locale]
        self.location_filters = tuple(location_filters)

    def _date(self, d: date, short: bool) -> str:
        loc = self.locale
        pattern = loc.short_date if short else loc.long_date
        names = loc.weekdays_short if short else loc.weekdays
        return pattern.format(
            weekday=names[d.weekday()],
            month=loc.months[d.month - 1],
            month_num=d.month,
            day=d.day,
            year=d.year,
        )

    def _time(self, dt: datetime) -> str:
        return self.locale.time.format(hour=dt.hour, minute=dt.minute)

    def _date_time(self, dt: datetime, short: bool) -> str:
        return f"{self._date(dt.date(), short)}{self.locale.date_time_join}{self._time(dt)}"

    def _range(self, event: DisplayEvent, short: bool) -> str:
        if event.all_day:
            first = event.start_date
            last = event.last_day
            if last <= first:
                return self._date(first, short)
            return f"{self._date(first, short)}{RANGE_SEPARATOR}{self._date(last, short)}"

        start = event.start.astimezone(self.tz)
        end = event.end.astimezone(self.tz)
        # Same local day: only the ending time is appended.
        end_text = self._time(end) if start.date() == end.date() else self._date_time(end, short)
        return f"{self._date_time(start, short)}{RANGE_SEPARATOR}{end_text}"

    def long_date(self, event: DisplayEvent) -> str:
        return self._range(event, short=False)

    def short_date(self, event: DisplayEvent) -> str:
        return self._range(event, short=True)

    def filter_location(self, event: DisplayEvent) -> str:
        return filter_location(event.location, self.location_filters)

    def heading(self, now: datetime) -> str:
        return self._date(now.astimezone(self.tz).date(), short=False)
