"""
Time normalization.

Legacy exports write the same clock time in many ways:

    "09:00", "9:00", "9:00 a.m", "11.00 a.m", "2.00 p.m", "2 PM"

Everything is normalized to canonical 24-hour "HH:MM".
This is ingestion of historical data, not a validation boundary:
unparseable input falls back to DEFAULT_TIME instead of raising.
"""

from __future__ import annotations

import re

DEFAULT_TIME = "09:00"

# Used when a duration cannot be computed from two times
FALLBACK_DURATION_MINUTES = 120

MINUTES_PER_DAY = 24 * 60

_CANONICAL_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

# hour, optional minutes (":" or "." separated, or glued "930"), meridiem with optional dots
_MERIDIEM_RE = re.compile(
    r"(\d{1,2})(?:[:.]?(\d{2}))?\s*([ap])\.?\s*m\b\.?",
    re.IGNORECASE,
)

_CLOCK_RE = re.compile(r"(\d{1,2})[:.](\d{2})")


def _fmt(hours: int, minutes: int) -> str:
    return f"{hours:02d}:{minutes:02d}"


def normalize_time(raw: str | None) -> str:
    """
    Convert arbitrary legacy time text to "HH:MM" (24h).

    Never raises. Returns DEFAULT_TIME for empty, NULL or unparseable input.
    """
    if raw is None:
        return DEFAULT_TIME

    text = str(raw).strip()
    if not text or text.upper() == "NULL":
        return DEFAULT_TIME

    # Already canonical (or H:MM which only needs padding)
    m = _CANONICAL_RE.match(text)
    if m:
        hours, minutes = int(m.group(1)), int(m.group(2))
        if hours <= 23 and minutes <= 59:
            return _fmt(hours, minutes)
        return DEFAULT_TIME

    # Meridiem forms: "9:00 a.m", "2.00 p.m", "2 PM"
    m = _MERIDIEM_RE.search(text)
    if m:
        hours = int(m.group(1))
        minutes = int(m.group(2) or "00")
        period = m.group(3).lower()
        if not (1 <= hours <= 12) or minutes > 59:
            return DEFAULT_TIME
        if period == "p" and hours != 12:
            hours += 12
        elif period == "a" and hours == 12:
            hours = 0
        return _fmt(hours, minutes)

    # Anything else that still contains a clock time, e.g. "9.30" or "ca. 14:15 Uhr"
    m = _CLOCK_RE.search(text)
    if m:
        hours, minutes = int(m.group(1)), int(m.group(2))
        if hours <= 23 and minutes <= 59:
            return _fmt(hours, minutes)

    return DEFAULT_TIME


def time_to_minutes(hhmm: str) -> int:
    """
    Convert 'HH:MM' to minutes since midnight.
    Raises ValueError for invalid formats.
    """
    parts = hhmm.strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid time format: {hhmm!r}")
    h = int(parts[0])
    m = int(parts[1])
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValueError(f"Invalid time value: {hhmm!r}")
    return h * 60 + m


def duration_minutes(start: str, end: str) -> int:
    """
    Minutes between two "HH:MM" times.

    An end before the start is read as crossing midnight (+1440).
    This also swallows transcription errors in legacy rows: a genuinely
    negative duration cannot be told apart from an overnight session.
    """
    try:
        start_total = time_to_minutes(start)
        end_total = time_to_minutes(end)
    except (ValueError, AttributeError):
        return FALLBACK_DURATION_MINUTES

    duration = end_total - start_total
    if duration < 0:
        duration += MINUTES_PER_DAY
    return duration


def format_time_12h(hhmm: str) -> str:
    """
    Display helper: "14:00" -> "2:00 PM", "00:30" -> "12:30 AM".

    Returns the input unchanged if it is not a valid "HH:MM".
    """
    try:
        total = time_to_minutes(hhmm)
    except (ValueError, AttributeError):
        return hhmm
    hours, minutes = divmod(total, 60)
    period = "PM" if hours >= 12 else "AM"
    display_hours = hours - 12 if hours > 12 else (12 if hours == 0 else hours)
    return f"{display_hours}:{minutes:02d} {period}"
