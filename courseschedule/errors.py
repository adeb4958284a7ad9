"""
Exception hierarchy.

Malformed legacy field data is never an error (it is normalized to defaults).
These exceptions cover the failures a caller has to react to: broken storage,
unknown references in the editing surface, failed saves and unreadable sources.
"""

from __future__ import annotations


class ScheduleError(Exception):
    """Base class for every error raised by courseschedule."""


class StoreError(ScheduleError):
    """The store file could not be read or written."""


class CourseNotFoundError(ScheduleError):
    """A course id does not reference an existing course."""

    def __init__(self, course_id: str) -> None:
        super().__init__(f"Course not found: {course_id!r}")
        self.course_id = course_id


class SessionNotFoundError(ScheduleError, KeyError):
    """A (day, start_time) key is not a session of the grouped schedule."""

    def __init__(self, day_number: int, start_time: str) -> None:
        super().__init__(f"No session on day {day_number} at {start_time}")
        self.day_number = day_number
        self.start_time = start_time

    def __str__(self) -> str:
        return str(self.args[0])


class UnknownModuleError(ScheduleError, KeyError):
    """A module id does not exist in the addressed session."""

    def __init__(self, module_id: str) -> None:
        super().__init__(f"No module with id {module_id!r}")
        self.module_id = module_id

    def __str__(self) -> str:
        return str(self.args[0])


class ScheduleSaveError(ScheduleError):
    """Replacing a course schedule failed; the previous schedule is intact."""


class SourceError(ScheduleError):
    """A legacy CSV source could not be read."""
