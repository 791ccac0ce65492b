from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple
from PIL import Image, ImageDraw, ImageFont

from .formatting import EventFormatter
from .models import DisplayEvent

MEDIUM_SLOTS = 3
SMALL_SLOTS = 5

# (title size, body size) per tier
TIER_FONT_SIZES = {
    "big": (64, 36),
    "medium": (44, 30),
    "small": (32, 24),
}

@dataclass(frozen=True)
class Tiers:
    big: Optional[DisplayEvent]
    medium: Tuple[DisplayEvent, ...]
    small: Tuple[DisplayEvent, ...]


def split_tiers(events: Sequence[DisplayEvent]) -> Tiers:
    """Next event goes big, the following three medium, then five small."""
    return Tiers(
        big=events[0] if events else None,
        medium=tuple(events[1:1 + MEDIUM_SLOTS]),
        small=tuple(events[1 + MEDIUM_SLOTS:1 + MEDIUM_SLOTS + SMALL_SLOTS]),
    )


def _load_font(path: str, size: int) -> ImageFont.FreeTypeFont:
    try:
        return ImageFont.truetype(path, size)
    except OSError:
        return ImageFont.load_default(size=size)


ELLIPSIS = "…"


def _fit_with_ellipsis(draw: ImageDraw.ImageDraw, line: str, font: ImageFont.FreeTypeFont, max_width: float) -> str:
    line = line.removesuffix(ELLIPSIS)
    while line and draw.textlength(line + ELLIPSIS, font=font) > max_width:
        line = line[:-1].rstrip()
    return line + ELLIPSIS


def _wrap_text(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: ImageFont.FreeTypeFont,
    max_width: float,
    max_lines: int = 2,
) -> List[str]:
    """Greedy word wrap into at most ``max_lines`` card lines.

    Text that does not fit ends in an ellipsis on the last kept line. A
    single word wider than the card is cut the same way.
    """
    lines: List[str] = []
    for word in text.split():
        joined = f"{lines[-1]} {word}" if lines else word
        if lines and not lines[-1].endswith(ELLIPSIS) and draw.textlength(joined, font=font) <= max_width:
            lines[-1] = joined
        else:
            lines.append(word)
        if draw.textlength(lines[-1], font=font) > max_width:
            lines[-1] = _fit_with_ellipsis(draw, lines[-1], font, max_width)

    if len(lines) > max_lines:
        lines = lines[:max_lines]
        lines[-1] = _fit_with_ellipsis(draw, lines[-1], font, max_width)
    return lines


def card_lines(event: DisplayEvent, tier: str, formatter: EventFormatter) -> List[str]:
    """Body lines under the title for one card, in drawing order."""
    lines: List[str] = []
    if tier == "big" and event.description:
        lines.append(event.description.strip())
    lines.append(formatter.short_date(event) if tier == "small" else formatter.long_date(event))
    if event.location:
        location = formatter.filter_location(event)
        if location:
            lines.append(location)
    return lines


def _draw_card(
    d: ImageDraw.ImageDraw,
    x: float,
    y: float,
    width: float,
    max_y: float,
    event: DisplayEvent,
    tier: str,
    formatter: EventFormatter,
    font_path: str,
) -> Optional[float]:
    """Draw one card at (x, y); returns the y below it, or None if it does not fit."""
    title_size, body_size = TIER_FONT_SIZES[tier]
    font_title = _load_font(font_path, title_size)
    font_body = _load_font(font_path, body_size)
    inset = 16
    inner_w = width - 2 * inset

    title_lines = _wrap_text(d, event.title, font_title, inner_w) or [""]
    body_lines: List[str] = []
    for text in card_lines(event, tier, formatter):
        body_lines.extend(_wrap_text(d, text, font_body, inner_w, max_lines=3 if tier == "big" else 2))

    title_line_h = title_size + 8
    body_line_h = body_size + 6
    card_h = inset * 2 + title_line_h * len(title_lines) + body_line_h * len(body_lines)
    if y + card_h > max_y:
        return None

    d.rectangle((x, y, x + width, y + card_h), outline="black", width=2 if tier == "big" else 1)
    cy = y + inset
    for line in title_lines:
        d.text((x + inset, cy), line, fill="black", font=font_title)
        cy += title_line_h
    for line in body_lines:
        d.text((x + inset, cy), line, fill="black", font=font_body)
        cy += body_line_h
    return y + card_h


def render_board(
    canvas_w: int,
    canvas_h: int,
    now: datetime,
    events: Sequence[DisplayEvent],
    formatter: EventFormatter,
    font_path: str,
) -> Image.Image:
    img = Image.new("RGB", (canvas_w, canvas_h), "white")
    d = ImageDraw.Draw(img)

    padding = 40
    gap = 20
    y = padding
    max_y = canvas_h - padding

    font_header = _load_font(font_path, 48)
    header = formatter.heading(now)
    header_w = d.textlength(header, font=font_header)
    d.text(((canvas_w - header_w) / 2, y), header, fill="black", font=font_header)
    y += 48 + 16
    d.line((padding, y, canvas_w - padding, y), fill="black", width=2)
    y += 24

    tiers = split_tiers(events)
    if tiers.big is None:
        font_empty = _load_font(font_path, 44)
        d.text((padding, y), "No upcoming events", fill="black", font=font_empty)
        return img

    bottom = _draw_card(d, padding, y, canvas_w - 2 * padding, max_y, tiers.big, "big", formatter, font_path)
    y = (bottom if bottom is not None else y) + gap

    usable_w = canvas_w - 2 * padding - gap
    medium_w = usable_w * 2 / 3
    small_w = usable_w - medium_w
    columns = (
        (padding, medium_w, tiers.medium, "medium"),
        (padding + medium_w + gap, small_w, tiers.small, "small"),
    )
    for x, width, column_events, tier in columns:
        cy = y
        for e in column_events:
            bottom = _draw_card(d, x, cy, width, max_y, e, tier, formatter, font_path)
            if bottom is None:
                break
            cy = bottom + gap

    return img
