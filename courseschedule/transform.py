"""
Flat <-> hierarchical schedule transform.

Persisted shape (flat):

    ScheduleEntry(day_number=1, start_time="09:00", module_title="Intro", ...)
    ScheduleEntry(day_number=1, start_time="09:00", module_title="Safety", ...)

Editing shape (grouped):

    {(1, "09:00"): Session(modules=[Module("Intro"), Module("Safety")]), ...}

Rules:
- group() creates every template session, even without entries
- one Module per entry (1:1); modules are never merged by title
- entries outside the template are dropped from the grouped view
- flatten() writes the template session length, not a recomputed duration

The mutation helpers are pure: they return a new grouped mapping and
leave their input untouched. Nothing here talks to the store.
"""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from courseschedule.errors import SessionNotFoundError, UnknownModuleError
from courseschedule.model import Module, ScheduleEntry, ScheduleTemplate, Session, SessionKey
from courseschedule.templates import TEMPLATE_SESSION_MINUTES, DurationUnit, resolve_template

logger = logging.getLogger(__name__)

GroupedSchedule = Dict[SessionKey, Session]

# Modules created in the editor carry this prefix until they are saved
DRAFT_MODULE_PREFIX = "module-"


def new_module_id() -> str:
    return f"{DRAFT_MODULE_PREFIX}{uuid.uuid4().hex}"


def is_draft_module_id(module_id: str) -> bool:
    return not module_id or module_id.startswith(DRAFT_MODULE_PREFIX)


# ---------------------------------------------------------------------------
# Grouping / flattening
# ---------------------------------------------------------------------------


def empty_sessions(template: ScheduleTemplate) -> GroupedSchedule:
    """One empty Session per (day, slot) of the template, in display order."""
    sessions: GroupedSchedule = {}
    for day in range(1, template.day_count + 1):
        for slot in template.sessions:
            sessions[(day, slot.start_time)] = Session(
                day_number=day,
                start_time=slot.start_time,
                end_time=slot.end_time,
                duration_minutes=TEMPLATE_SESSION_MINUTES,
            )
    return sessions


def group(entries: Iterable[ScheduleEntry], template: ScheduleTemplate) -> GroupedSchedule:
    """
    Group flat entries into template sessions.

    Entries whose (day, start_time) is not a template slot are left out.
    Use regroup_for_duration() when the caller needs to see them.
    """
    sessions = empty_sessions(template)

    for entry in entries:
        session = sessions.get((entry.day_number, entry.start_time))
        if session is None:
            logger.debug(
                "Entry %s (day %s, %s) is outside the template, not grouped",
                entry.id,
                entry.day_number,
                entry.start_time,
            )
            continue
        session.modules.append(
            Module(
                id=entry.id or new_module_id(),
                title=entry.module_title if isinstance(entry.module_title, str) else "",
                submodules=list(entry.submodules or []),
            )
        )

    return sessions


def flatten(sessions: GroupedSchedule) -> List[Dict[str, Any]]:
    """
    Turn a grouped schedule back into flat records, one per module.

    Untitled modules are kept; whether to persist them is the caller's call.
    """
    records: List[Dict[str, Any]] = []
    for session in sessions.values():
        for module in session.modules:
            records.append(
                {
                    "id": module.id,
                    "day_number": session.day_number,
                    "start_time": session.start_time,
                    "end_time": session.end_time,
                    "module_title": module.title,
                    "submodules": list(module.submodules),
                    "duration_minutes": session.duration_minutes,
                }
            )
    return records


@dataclass
class Regrouped:
    """Result of re-grouping entries against a (possibly new) template."""

    template: ScheduleTemplate
    sessions: GroupedSchedule
    dropped: List[ScheduleEntry] = field(default_factory=list)


def regroup_for_duration(
    entries: Iterable[ScheduleEntry],
    duration_value: float,
    duration_unit: DurationUnit | str,
) -> Regrouped:
    """
    Recompute the template for a course duration and re-group its entries.

    Call this whenever the declared duration or unit of a course changes.
    Entries that no longer fit a slot are returned in `dropped`; a later
    save of `sessions` does not contain them.
    """
    entries = list(entries)
    template = resolve_template(duration_value, duration_unit)
    valid = set(template.keys())
    dropped = [e for e in entries if (e.day_number, e.start_time) not in valid]
    if dropped:
        logger.info("%d schedule entries fall outside the new template", len(dropped))
    return Regrouped(template=template, sessions=group(entries, template), dropped=dropped)


def initialize_empty(template: ScheduleTemplate) -> GroupedSchedule:
    """Skeleton for a new schedule: one blank module in every session."""
    sessions = empty_sessions(template)
    for session in sessions.values():
        session.modules.append(Module(id=new_module_id()))
    return sessions


# ---------------------------------------------------------------------------
# Pure edit operations
# ---------------------------------------------------------------------------


def _copy_session(sessions: GroupedSchedule, day_number: int, start_time: str) -> tuple[GroupedSchedule, Session]:
    key = (day_number, start_time)
    if key not in sessions:
        raise SessionNotFoundError(day_number, start_time)
    new_sessions = copy.deepcopy(sessions)
    return new_sessions, new_sessions[key]


def _find_module(session: Session, module_id: str) -> Module:
    for module in session.modules:
        if module.id == module_id:
            return module
    raise UnknownModuleError(module_id)


def add_module(sessions: GroupedSchedule, day_number: int, start_time: str, title: str = "") -> GroupedSchedule:
    new_sessions, session = _copy_session(sessions, day_number, start_time)
    session.modules.append(Module(id=new_module_id(), title=title))
    return new_sessions


def remove_module(sessions: GroupedSchedule, day_number: int, start_time: str, module_id: str) -> GroupedSchedule:
    """
    Remove a module. A session may end up with no modules at all;
    keeping at least one is up to the UI.
    """
    new_sessions, session = _copy_session(sessions, day_number, start_time)
    module = _find_module(session, module_id)
    session.modules.remove(module)
    return new_sessions


def update_module_title(
    sessions: GroupedSchedule, day_number: int, start_time: str, module_id: str, title: str
) -> GroupedSchedule:
    new_sessions, session = _copy_session(sessions, day_number, start_time)
    _find_module(session, module_id).title = title
    return new_sessions


def add_submodule(
    sessions: GroupedSchedule, day_number: int, start_time: str, module_id: str, value: str = ""
) -> GroupedSchedule:
    new_sessions, session = _copy_session(sessions, day_number, start_time)
    _find_module(session, module_id).submodules.append(value)
    return new_sessions


def remove_submodule(
    sessions: GroupedSchedule, day_number: int, start_time: str, module_id: str, index: int
) -> GroupedSchedule:
    new_sessions, session = _copy_session(sessions, day_number, start_time)
    module = _find_module(session, module_id)
    if not 0 <= index < len(module.submodules):
        raise IndexError(f"Submodule index {index} out of range")
    del module.submodules[index]
    return new_sessions


def update_submodule(
    sessions: GroupedSchedule, day_number: int, start_time: str, module_id: str, index: int, value: str
) -> GroupedSchedule:
    new_sessions, session = _copy_session(sessions, day_number, start_time)
    module = _find_module(session, module_id)
    if not 0 <= index < len(module.submodules):
        raise IndexError(f"Submodule index {index} out of range")
    module.submodules[index] = value
    return new_sessions
