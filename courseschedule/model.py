"""
Central data model definitions used across the project.

This module defines the canonical structure of the schedule objects so that:
- the importer, the store and the editing surface share the same field names
- the flat (persisted) and the hierarchical (editing) shapes stay clearly apart

Flat shape:
    ScheduleEntry  -> one row per (day, time slot, module)

Hierarchical shape:
    Day -> Session -> Module -> submodules (list of strings)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

# (day_number, start_time) identifies one session of a course
SessionKey = Tuple[int, str]

# (course_id, day_number, start_time, end_time, module_title)
NaturalKey = Tuple[str, int, str, str, str]


@dataclass
class Course:
    """
    Represents one course as known to the store.

    Only the fields the schedule engine needs are modelled here:
    the declared duration decides the shape of the timetable.
    """

    id: str
    title: str
    course_code: Optional[str] = None
    duration_value: float = 1
    duration_unit: str = "hours"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Course":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            course_code=data.get("course_code") or None,
            duration_value=data.get("duration_value", 1),
            duration_unit=str(data.get("duration_unit") or "hours"),
        )


@dataclass
class ScheduleEntry:
    """
    Represents one persisted schedule row.

    Each entry names exactly ONE module taught in one day/time slot.
    Several entries with the same (course_id, day_number, start_time, end_time)
    are sibling modules of the same session, not duplicates.
    """

    id: str
    course_id: str
    day_number: int
    start_time: str
    end_time: str
    module_title: str
    submodules: List[str] = field(default_factory=list)
    duration_minutes: int = 120
    created_at: Optional[str] = None

    @property
    def session_key(self) -> SessionKey:
        return (self.day_number, self.start_time)

    @property
    def natural_key(self) -> NaturalKey:
        return natural_key_for(
            self.course_id, self.day_number, self.start_time, self.end_time, self.module_title
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleEntry":
        return cls(
            id=str(data["id"]),
            course_id=str(data["course_id"]),
            day_number=int(data["day_number"]),
            start_time=str(data["start_time"]),
            end_time=str(data["end_time"]),
            module_title=str(data.get("module_title") or ""),
            submodules=[str(s) for s in data.get("submodules") or []],
            duration_minutes=int(data.get("duration_minutes", 120)),
            created_at=data.get("created_at"),
        )


def natural_key_for(
    course_id: str, day_number: int, start_time: str, end_time: str, module_title: str
) -> NaturalKey:
    """
    Build the duplicate-detection key of a schedule row.

    The module title is part of the key because sibling modules share
    the same day and time slot.
    """
    return (str(course_id).strip(), int(day_number), start_time, end_time, module_title.strip())


@dataclass
class SessionSlot:
    """One fixed time slot of the business calendar (e.g. 09:00-11:00)."""

    name: str
    start_time: str
    end_time: str


@dataclass
class ScheduleTemplate:
    """
    The shape of a course timetable: which slots exist on each day.
    """

    sessions: List[SessionSlot]
    day_count: int

    def keys(self) -> Iterator[SessionKey]:
        """Yield every valid (day, start_time) bucket in display order."""
        for day in range(1, self.day_count + 1):
            for slot in self.sessions:
                yield (day, slot.start_time)

    def __contains__(self, key: object) -> bool:
        return key in set(self.keys())


@dataclass
class Module:
    """
    One editable module inside a session.

    The title and the submodules may be empty while the user is still typing.
    """

    id: str
    title: str = ""
    submodules: List[str] = field(default_factory=list)


@dataclass
class Session:
    """
    One session of one course day. Owns its modules.
    """

    day_number: int
    start_time: str
    end_time: str
    duration_minutes: int = 120
    modules: List[Module] = field(default_factory=list)

    @property
    def key(self) -> SessionKey:
        return (self.day_number, self.start_time)
