"""
Editing surface: load a course schedule as a grouped tree, save it back.

Saving replaces the complete schedule of a course:

    delete every entry of the course  ->  create one entry per module

Both steps run inside one store transaction, so a failure half-way leaves
the previous schedule untouched.
"""

from __future__ import annotations

import logging
from typing import List

from courseschedule.errors import CourseNotFoundError, ScheduleSaveError
from courseschedule.model import Course, ScheduleEntry
from courseschedule.storage import ScheduleStore
from courseschedule.transform import GroupedSchedule, Regrouped, flatten, is_draft_module_id, regroup_for_duration

logger = logging.getLogger(__name__)


def _require_course(store: ScheduleStore, course_id: str) -> Course:
    course = store.find_course(course_id)
    if course is None:
        raise CourseNotFoundError(course_id)
    return course


def load_schedule(store: ScheduleStore, course_id: str) -> Regrouped:
    """
    Group the stored entries of a course against its current template.

    Entries outside the template are reported in `dropped`.
    """
    course = _require_course(store, course_id)
    entries = store.list_entries_for_course(course.id)
    return regroup_for_duration(entries, course.duration_value, course.duration_unit)


def save_schedule(
    store: ScheduleStore,
    course_id: str,
    sessions: GroupedSchedule,
    drop_untitled: bool = True,
) -> List[ScheduleEntry]:
    """
    Replace the stored schedule of a course with the grouped tree.

    - untitled modules are not persisted (unless drop_untitled=False)
    - blank submodules are removed
    - ids of modules loaded from the store are kept, new modules get new ids

    Raises ScheduleSaveError if anything fails; nothing is changed then.
    """
    course = _require_course(store, course_id)

    records = flatten(sessions)
    if drop_untitled:
        records = [r for r in records if r["module_title"].strip()]

    try:
        with store.transaction():
            removed = store.delete_all_entries_for_course(course.id)
            created: List[ScheduleEntry] = []
            for record in records:
                data = dict(record)
                if is_draft_module_id(data["id"]):
                    data["id"] = None
                data["course_id"] = course.id
                data["module_title"] = data["module_title"].strip()
                data["submodules"] = [s.strip() for s in data["submodules"] if s.strip()]
                created.append(store.create_entry(data))
    except Exception as exc:
        raise ScheduleSaveError(f"Saving schedule of course {course.id} failed: {exc}") from exc

    logger.info("Saved schedule of course %s: %d entries replaced by %d", course.id, removed, len(created))
    return created
