from __future__ import annotations
import asyncio
from datetime import datetime, timezone
import itertools
import logging
from typing import Any, Callable, Dict, List, Protocol
from zoneinfo import ZoneInfo

from .calendar_google import CalendarFetchError
from .models import DisplayEvent, EventDecodeError, event_sort_key, to_display_event
from .state import AppState

logger = logging.getLogger(__name__)

MAX_EVENTS = 10
# Larger than MAX_EVENTS: cancelled and undecodable items are dropped before truncation.
FETCH_PAGE_SIZE = 50


class EventSource(Protocol):
    def list_events(self, time_min: datetime, max_results: int = ...) -> List[Dict[str, Any]]: ...


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def normalize_events(items: List[Dict[str, Any]], tz: ZoneInfo, limit: int = MAX_EVENTS) -> List[DisplayEvent]:
    events: List[DisplayEvent] = []
    for item in items:
        if isinstance(item, dict) and item.get("status") == "cancelled":
            continue
        try:
            events.append(to_display_event(item, tz))
        except EventDecodeError as e:
            summary = item.get("summary") if isinstance(item, dict) else None
            logger.warning("Skipping undecodable event %r: %s", summary, e)
    # Sort on parsed instants; raw timestamp strings with mixed offsets do not compare correctly.
    events.sort(key=event_sort_key)
    return events[:limit]


class Poller:
    """Keeps ``state`` filled with the next upcoming events from ``source``."""

    def __init__(
        self,
        source: EventSource,
        state: AppState,
        tz: ZoneInfo,
        max_events: int = MAX_EVENTS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.source = source
        self.state = state
        self.tz = tz
        self.max_events = min(max_events, MAX_EVENTS)
        self.clock = clock
        self._tokens = itertools.count(1)
        self._published_token = 0

    async def refresh(self) -> bool:
        token = next(self._tokens)
        # Re-read the clock on every call so past events age out of the window.
        time_min = self.clock()
        try:
            items = await asyncio.to_thread(self.source.list_events, time_min, FETCH_PAGE_SIZE)
        except CalendarFetchError as e:
            logger.warning("Calendar refresh failed; keeping %d previous events: %s", len(self.state.events), e)
            return False

        events = normalize_events(items, self.tz, self.max_events)

        if token < self._published_token:
            logger.debug("Discarding stale refresh #%d; #%d already published", token, self._published_token)
            return False
        self._published_token = token
        self.state.replace(events)
        logger.info("Published %d upcoming events", len(events))
        return True
