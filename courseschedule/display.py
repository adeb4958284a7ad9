"""
Read-only schedule view.

Unlike transform.group(), this view does not need a template: it shows
whatever is stored, merged for reading:

- entries without a module title are hidden
- entries sharing (day, start_time, end_time) become one session,
  with module titles and submodules de-duplicated in first-seen order
- sessions are sorted by start time, days ascending
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from courseschedule.model import ScheduleEntry
from courseschedule.templates import session_name_for
from courseschedule.times import format_time_12h, time_to_minutes


@dataclass
class SessionView:
    day_number: int
    start_time: str
    end_time: str
    module_titles: List[str] = field(default_factory=list)
    submodules: List[str] = field(default_factory=list)

    @property
    def session_name(self) -> str:
        return session_name_for(self.start_time)

    @property
    def time_range(self) -> str:
        return f"{format_time_12h(self.start_time)} - {format_time_12h(self.end_time)}"

    @property
    def title(self) -> str:
        return ", ".join(self.module_titles)


@dataclass
class DayView:
    day_number: int
    sessions: List[SessionView] = field(default_factory=list)


def _sort_minutes(hhmm: str) -> int:
    try:
        return time_to_minutes(hhmm)
    except ValueError:
        # Malformed stored times go last
        return 24 * 60


def _add_unique(target: List[str], items: Iterable[str]) -> None:
    for item in items:
        if item not in target:
            target.append(item)


def group_for_display(entries: Iterable[ScheduleEntry]) -> List[DayView]:
    by_slot: Dict[Tuple[int, str, str], SessionView] = {}

    for entry in entries:
        title = entry.module_title.strip() if isinstance(entry.module_title, str) else ""
        if not title:
            continue

        submodules = [s.strip() for s in entry.submodules if isinstance(s, str) and s.strip()]
        slot = (entry.day_number, entry.start_time, entry.end_time)

        view = by_slot.get(slot)
        if view is None:
            by_slot[slot] = SessionView(
                day_number=entry.day_number,
                start_time=entry.start_time,
                end_time=entry.end_time,
                module_titles=[title],
                submodules=_dedupe(submodules),
            )
        else:
            _add_unique(view.module_titles, [title])
            _add_unique(view.submodules, submodules)

    days: Dict[int, DayView] = {}
    for view in by_slot.values():
        days.setdefault(view.day_number, DayView(day_number=view.day_number)).sessions.append(view)

    out = [days[d] for d in sorted(days)]
    for day in out:
        day.sessions.sort(key=lambda s: _sort_minutes(s.start_time))
    return out


def _dedupe(items: List[str]) -> List[str]:
    out: List[str] = []
    _add_unique(out, items)
    return out
