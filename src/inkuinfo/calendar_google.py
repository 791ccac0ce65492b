from __future__ import annotations
from datetime import datetime
import logging
from typing import Any, Dict, List, Optional

import httplib2
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleApiError, HttpError

logger = logging.getLogger(__name__)

HTTP_TIMEOUT_SECONDS = 10


class CalendarFetchError(RuntimeError):
    """Raised when upcoming events cannot be fetched or decoded."""


class GoogleCalendarSource:
    """Read-only upcoming-events query against one Google calendar.

    Authenticates with a plain API key, so the calendar must be public.
    Recurring events are expanded by the API (``singleEvents=True``).
    """

    def __init__(self, calendar_id: str, api_key: str, service: Any = None) -> None:
        self.calendar_id = calendar_id
        self.api_key = api_key
        self._service = service

    def _get_service(self) -> Any:
        if self._service is None:
            self._service = build("calendar", "v3", developerKey=self.api_key, cache_discovery=False)
        return self._service

    def _new_http(self) -> httplib2.Http:
        # httplib2 is not thread-safe; overlapping refreshes each get their own transport.
        return httplib2.Http(timeout=HTTP_TIMEOUT_SECONDS)

    def list_events(self, time_min: datetime, max_results: int = 50) -> List[Dict[str, Any]]:
        try:
            resp = self._get_service().events().list(
                calendarId=self.calendar_id,
                timeMin=time_min.isoformat(),
                singleEvents=True,
                orderBy="startTime",
                maxResults=max_results,
            ).execute(http=self._new_http())
        except HttpError as e:
            status: Optional[int] = getattr(e.resp, "status", None)
            raise CalendarFetchError(f"Calendar API returned HTTP {status} for {self.calendar_id}") from e
        except (GoogleApiError, httplib2.HttpLib2Error, OSError) as e:
            raise CalendarFetchError(f"Calendar request failed: {e}") from e
        except ValueError as e:
            raise CalendarFetchError(f"Calendar response could not be decoded: {e}") from e

        if not isinstance(resp, dict):
            raise CalendarFetchError(f"Unexpected calendar response type {type(resp).__name__}")
        items = resp.get("items", [])
        if not isinstance(items, list):
            raise CalendarFetchError("Calendar response 'items' is not a list")

        logger.debug("Fetched %d items from %s", len(items), self.calendar_id)
        return items
