from __future__ import annotations
from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any, Dict, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import yaml

from .formatting import LOCALES

MAX_EVENTS_LIMIT = 10


class ConfigError(ValueError):
    """Raised when the configuration file holds unusable values."""


@dataclass(frozen=True)
class CalendarConfig:
    calendar_id: str = "primary"
    api_key: str = ""

@dataclass(frozen=True)
class DisplayConfig:
    width: int = 1200
    height: int = 1600
    rotate_degrees: int = 0
    border: str = "white"
    output: str = "png"
    output_path: str = "/var/lib/inkuinfo/board.png"
    font_path: str = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"

@dataclass(frozen=True)
class AppConfig:
    timezone: str = "Europe/Helsinki"
    locale: str = "en"
    refresh_interval_seconds: float = 5.0
    max_events: int = MAX_EVENTS_LIMIT
    location_filters: Tuple[str, ...] = ()
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _validate(cfg: AppConfig) -> AppConfig:
    try:
        ZoneInfo(cfg.timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"Unknown timezone {cfg.timezone!r}") from e
    if cfg.locale not in LOCALES:
        raise ConfigError(f"Unknown locale {cfg.locale!r}; expected one of {sorted(LOCALES)}")
    if cfg.refresh_interval_seconds <= 0:
        raise ConfigError("refresh_interval_seconds must be positive")
    if not 1 <= cfg.max_events <= MAX_EVENTS_LIMIT:
        raise ConfigError(f"max_events must be between 1 and {MAX_EVENTS_LIMIT}")
    if cfg.display.output not in {"png", "inky"}:
        raise ConfigError(f"Unknown display output {cfg.display.output!r}")
    return cfg


def load_config(path: str) -> AppConfig:
    p = Path(path)
    data: Dict[str, Any] = {}
    if p.exists():
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")

    calendar = data.get("calendar", {}) or {}
    display = data.get("display", {}) or {}
    location_filters = data.get("location_filters") or []
    if not isinstance(location_filters, list):
        raise ConfigError("location_filters must be a list of strings")
    defaults = DisplayConfig()

    try:
        cfg = AppConfig(
            timezone=str(data.get("timezone", "Europe/Helsinki")),
            locale=str(data.get("locale", "en")),
            refresh_interval_seconds=float(data.get("refresh_interval_seconds", 5)),
            max_events=int(data.get("max_events", MAX_EVENTS_LIMIT)),
            location_filters=tuple(str(s) for s in location_filters),
            calendar=CalendarConfig(
                calendar_id=os.environ.get("GOOGLE_CALENDAR_ID") or str(calendar.get("calendar_id", "primary")),
                api_key=os.environ.get("GOOGLE_API_KEY") or str(calendar.get("api_key", "")),
            ),
            display=DisplayConfig(
                width=int(display.get("width", defaults.width)),
                height=int(display.get("height", defaults.height)),
                rotate_degrees=int(display.get("rotate_degrees", defaults.rotate_degrees)),
                border=str(display.get("border", defaults.border)),
                output=str(display.get("output", defaults.output)),
                output_path=str(display.get("output_path", defaults.output_path)),
                font_path=str(display.get("font_path", defaults.font_path)),
            ),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value in {path}: {e}") from e

    return _validate(cfg)
