from __future__ import annotations
import logging
from typing import Callable, List, Sequence, Tuple

from .models import DisplayEvent

logger = logging.getLogger(__name__)

Listener = Callable[[Tuple[DisplayEvent, ...]], None]


class AppState:
    """In-memory holder of the current upcoming-events window.

    The window is an immutable tuple and is only ever replaced as a whole.
    Nothing is persisted; a fresh process starts with no events.
    """

    def __init__(self) -> None:
        self._events: Tuple[DisplayEvent, ...] = ()
        self._listeners: List[Listener] = []

    @property
    def events(self) -> Tuple[DisplayEvent, ...]:
        return self._events

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def replace(self, events: Sequence[DisplayEvent]) -> None:
        snapshot = tuple(events)
        self._events = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("State listener %r failed", listener)
