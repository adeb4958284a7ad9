"""
Session templates.

The business calendar is fixed: every course day is cut into the same
session slots. The declared course duration only decides how many of
those slots (and how many days) a timetable has.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import List

from courseschedule.model import ScheduleTemplate, SessionSlot
from courseschedule.times import time_to_minutes

# Session length written to every grouped session and flattened record
TEMPLATE_SESSION_MINUTES = 120


class DurationUnit(str, Enum):
    DAYS = "days"
    HOURS = "hours"
    HALF_DAY = "half_day"


FULL_DAY_SESSIONS = (
    ("Session 1", "09:00", "11:00"),
    ("Session 2", "11:00", "14:00"),
    ("Session 3", "14:00", "16:00"),
    ("Session 4", "16:00", "18:00"),
)

# Half days and short courses use the first two sessions
HALF_DAY_SESSIONS = FULL_DAY_SESSIONS[:2]


def _slots(rows: tuple) -> List[SessionSlot]:
    return [SessionSlot(name=name, start_time=start, end_time=end) for name, start, end in rows]


def parse_duration_unit(raw: object) -> DurationUnit:
    """
    Map a legacy duration unit string to DurationUnit.

    "Days", "day", "half day", "Half-Day" ... are all accepted.
    Unknown or empty values mean hours, the store's default unit.
    """
    if isinstance(raw, DurationUnit):
        return raw
    text = str(raw or "").strip().lower().replace("-", "_").replace(" ", "_")
    if text in ("day", "days"):
        return DurationUnit.DAYS
    if text in ("half_day", "half_days", "halfday"):
        return DurationUnit.HALF_DAY
    return DurationUnit.HOURS


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def resolve_template(duration_value: float, duration_unit: DurationUnit | str) -> ScheduleTemplate:
    """
    Return the session slots and day count of a course timetable.

    - half_day: 2 sessions, 1 day (duration_value is ignored)
    - days:     4 sessions per day, round(duration_value) days, at least 1
    - hours:    1 session up to 2 hours, otherwise 2 sessions, 1 day
    """
    unit = parse_duration_unit(duration_unit)
    value = float(duration_value or 0)

    if unit is DurationUnit.HALF_DAY:
        return ScheduleTemplate(sessions=_slots(HALF_DAY_SESSIONS), day_count=1)

    if unit is DurationUnit.DAYS:
        day_count = max(1, _round_half_up(value))
        return ScheduleTemplate(sessions=_slots(FULL_DAY_SESSIONS), day_count=day_count)

    sessions_count = 2 if value > 2 else 1
    return ScheduleTemplate(sessions=_slots(HALF_DAY_SESSIONS[:sessions_count]), day_count=1)


def session_name_for(start_time: str) -> str:
    """
    Name a session by the hour it starts in ("Session 1" ... "Session 4").

    Times outside the business calendar are just "Session".
    """
    try:
        minutes = time_to_minutes(start_time)
    except (ValueError, AttributeError):
        return "Session"

    for name, start, end in FULL_DAY_SESSIONS:
        if time_to_minutes(start) <= minutes < time_to_minutes(end):
            return name
    return "Session"
