from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import sys
from datetime import datetime
from typing import Callable, Optional, Sequence, Set, Tuple

from dotenv import load_dotenv

from .calendar_google import GoogleCalendarSource
from .config import AppConfig, ConfigError, load_config
from .display import output_image
from .formatting import EventFormatter
from .models import DisplayEvent
from .poller import EventSource, Poller
from .render import card_lines, render_board, split_tiers
from .scheduler import Scheduler
from .state import AppState

CONFIG_PATH_DEFAULT = "/opt/inkuinfo/config.yaml"

logger = logging.getLogger(__name__)


def _board_signature(formatter: EventFormatter, events: Sequence[DisplayEvent], header_date: str) -> str:
    # Only include what ends up on screen.
    tiers = split_tiers(events)

    def _payload(e: DisplayEvent, tier: str) -> dict:
        return {"title": e.title, "tier": tier, "lines": card_lines(e, tier, formatter)}

    payload = {
        "header_date": header_date,
        "events": (
            ([_payload(tiers.big, "big")] if tiers.big else [])
            + [_payload(e, "medium") for e in tiers.medium]
            + [_payload(e, "small") for e in tiers.small]
        ),
    }
    b = json.dumps(payload, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return hashlib.sha256(b).hexdigest()


class BoardRenderer:
    """State listener that redraws the board when its visible content changes.

    Drawing and the display update run in a worker thread, one board at a
    time; a board superseded while waiting for its turn is skipped.
    """

    def __init__(
        self,
        cfg: AppConfig,
        formatter: EventFormatter,
        output: Optional[Callable] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.cfg = cfg
        self.formatter = formatter
        self.output = output or output_image
        self.clock = clock or (lambda: datetime.now(tz=cfg.tz))
        self.last_signature = ""
        self._lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()

    def __call__(self, events: Sequence[DisplayEvent]) -> None:
        now = self.clock()
        sig = _board_signature(self.formatter, events, self.formatter.heading(now))
        if sig == self.last_signature:
            logger.debug("No board change; skipping display refresh")
            return

        self.last_signature = sig
        task = asyncio.get_running_loop().create_task(self._draw_in_turn(tuple(events), now, sig))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _draw_in_turn(self, events: Tuple[DisplayEvent, ...], now: datetime, sig: str) -> None:
        async with self._lock:
            if sig != self.last_signature:
                logger.debug("Board superseded before drawing; skipping")
                return
            try:
                await asyncio.to_thread(self._draw, events, now)
            except Exception:
                logger.exception("Board render failed")
                if self.last_signature == sig:
                    self.last_signature = ""
                return
        logger.info("Board rendered with %d events", len(events))

    def _draw(self, events: Tuple[DisplayEvent, ...], now: datetime) -> None:
        img = render_board(
            canvas_w=self.cfg.display.width,
            canvas_h=self.cfg.display.height,
            now=now,
            events=events,
            formatter=self.formatter,
            font_path=self.cfg.display.font_path,
        )
        self.output(img, self.cfg.display)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks))


def build_app(cfg: AppConfig, source: Optional[EventSource] = None):
    formatter = EventFormatter(cfg.timezone, cfg.locale, cfg.location_filters)
    state = AppState()
    if source is None:
        source = GoogleCalendarSource(cfg.calendar.calendar_id, cfg.calendar.api_key)
    poller = Poller(source, state, cfg.tz, max_events=cfg.max_events)
    scheduler = Scheduler(poller.refresh, cfg.refresh_interval_seconds)
    return formatter, state, poller, scheduler


def print_board(formatter: EventFormatter, events: Sequence[DisplayEvent]) -> None:
    tiers = split_tiers(events)
    groups = (
        ("big", [tiers.big] if tiers.big else []),
        ("medium", tiers.medium),
        ("small", tiers.small),
    )
    if not events:
        print("No upcoming events")
    for tier, group in groups:
        for e in group:
            print(f"[{tier}] {e.title}")
            for line in card_lines(e, tier, formatter):
                print(f"    {line}")


async def _run(cfg: AppConfig, once: bool) -> None:
    formatter, state, poller, scheduler = build_app(cfg)
    renderer = BoardRenderer(cfg, formatter)
    state.subscribe(renderer)
    if once:
        published = await poller.refresh()
        await renderer.drain()
        if not published:
            print("Calendar refresh failed; nothing rendered")
        print_board(formatter, state.events)
        return
    await scheduler.run()


def main(argv: Optional[Sequence[str]] = None) -> int:
    import argparse

    ap = argparse.ArgumentParser(description="Upcoming calendar events board")
    ap.add_argument("--config", default=CONFIG_PATH_DEFAULT)
    ap.add_argument("--once", action="store_true", help="refresh and render once, then exit")
    ap.add_argument("--log-level", default="INFO")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    if not cfg.calendar.api_key:
        print("GOOGLE_API_KEY is not set; cannot query the calendar", file=sys.stderr)
        return 2

    try:
        asyncio.run(_run(cfg, once=args.once))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
