"""
Shared fixtures for the test-suite.
"""

from __future__ import annotations

import itertools
from collections import Counter
from typing import Iterable, List, Optional

from courseschedule.model import Course, ScheduleEntry

COURSE_ID = "6b0e4c1a-2f4d-4a8e-9c1b-1d2e3f4a5b6c"

_ids = itertools.count(1)


def make_entry(
    day: int,
    start: str,
    end: str,
    title: str,
    submodules: Optional[List[str]] = None,
    course_id: str = COURSE_ID,
    entry_id: Optional[str] = None,
    duration: int = 120,
) -> ScheduleEntry:
    return ScheduleEntry(
        id=entry_id or f"entry-{next(_ids)}",
        course_id=course_id,
        day_number=day,
        start_time=start,
        end_time=end,
        module_title=title,
        submodules=list(submodules or []),
        duration_minutes=duration,
    )


def make_course(duration_value: float = 2, duration_unit: str = "days", course_id: str = COURSE_ID) -> Course:
    return Course(
        id=course_id,
        title="Workplace Safety",
        course_code="WS-101",
        duration_value=duration_value,
        duration_unit=duration_unit,
    )


def entry_tuples(items: Iterable) -> Counter:
    """Multiset of (day, start_time, module_title, submodules) of entries or flat records."""
    out: Counter = Counter()
    for item in items:
        if isinstance(item, ScheduleEntry):
            out[(item.day_number, item.start_time, item.module_title, tuple(item.submodules))] += 1
        else:
            out[(item["day_number"], item["start_time"], item["module_title"], tuple(item["submodules"]))] += 1
    return out
