"""
Legacy CSV import (rows -> persisted schedule entries).

Every row is handled on its own and strictly in order:

1. validate course_id (must reference an existing course)
2. validate day_number (positive integer)
3. normalize times, module titles and submodules
4. resolve duration_minutes (explicit positive value, else derived)
5. decide identity and write (insert-only or create-or-update)

A bad row is skipped or recorded as an error; it never stops the batch.
Identity resolution is idempotent, so a failed batch can simply be rerun.

Batch states:

    PENDING -> CONNECTED -> PROCESSING(row_index) -> SUMMARIZED
"""

from __future__ import annotations

import logging
import re
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from courseschedule.fields import collapse_whitespace, is_sentinel, parse_module_list, parse_submodule_list
from courseschedule.model import Course, natural_key_for
from courseschedule.storage import ScheduleStore, now_iso
from courseschedule.templates import parse_duration_unit
from courseschedule.times import FALLBACK_DURATION_MINUTES, duration_minutes, normalize_time

logger = logging.getLogger(__name__)

# Legacy exports without an end time meant the first session
DEFAULT_END_TIME = "11:00"

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
_LEADING_INT_RE = re.compile(r"^\s*\+?(\d+)")
_NUMBER_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)")

# Namespace for ids of extra modules split off a legacy row with a known id
_SPLIT_NAMESPACE = uuid.UUID("6f1c2a4e-8d0b-4f7e-9a51-3c2d7b9e0a14")


class ImportMode(str, Enum):
    SKIP_EXISTING = "skip"
    UPSERT = "upsert"


class IdentityKey(str, Enum):
    ID = "id"
    NATURAL = "natural"


class BatchState(str, Enum):
    PENDING = "pending"
    CONNECTED = "connected"
    PROCESSING = "processing"
    SUMMARIZED = "summarized"


class SkipReason(str, Enum):
    MISSING_COURSE_ID = "missing_course_id"
    COURSE_NOT_FOUND = "course_not_found"
    INVALID_DAY_NUMBER = "invalid_day_number"
    MISSING_MODULE_TITLE = "missing_module_title"
    MISSING_TITLE = "missing_title"
    ALREADY_EXISTS = "already_exists"


@dataclass
class ImportOptions:
    """
    Caller-selected import policy.

    split_modules: split "A | B" module cells into one entry per module
    (older exports); when off, the cell is one title with collapsed whitespace.
    """

    mode: ImportMode = ImportMode.SKIP_EXISTING
    key: IdentityKey = IdentityKey.ID
    split_modules: bool = True


@dataclass
class RowError:
    row_index: int
    message: str


@dataclass
class ImportSummary:
    """
    Outcome of one batch. Counts are per row.

    entries_written counts store writes, which can be more than the
    imported rows when module cells are split.
    """

    total_rows: int = 0
    imported: int = 0
    updated: int = 0
    entries_written: int = 0
    skipped: Counter = field(default_factory=Counter)
    errors: List[RowError] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        return sum(self.skipped.values())

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_rows": self.total_rows,
            "imported": self.imported,
            "updated": self.updated,
            "entries_written": self.entries_written,
            "skipped": dict(self.skipped),
            "errors": [{"row": e.row_index, "message": e.message} for e in self.errors],
        }


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def valid_uuid(raw: Any) -> Optional[str]:
    text = str(raw or "").strip()
    return text.lower() if _UUID_RE.match(text) else None


def parse_day_number(raw: Any) -> Optional[int]:
    """Leading integer of the cell ("3", "3.0", " 3 "), or None if not >= 1."""
    m = _LEADING_INT_RE.match(str(raw or ""))
    if not m:
        return None
    day = int(m.group(1))
    return day if day >= 1 else None


def parse_positive_int(raw: Any) -> Optional[int]:
    m = _LEADING_INT_RE.match(str(raw or ""))
    if not m:
        return None
    value = int(m.group(1))
    return value if value > 0 else None


def parse_positive_number(raw: Any) -> Optional[float]:
    m = _NUMBER_RE.match(str(raw or ""))
    if not m:
        return None
    value = float(m.group(1))
    return value if value > 0 else None


def parse_created_at(raw: Any) -> str:
    """
    ISO timestamp of the legacy created_at cell.

    Some exports hold fragments like "28:53.6"; those get the current time.
    """
    text = str(raw or "").strip()
    if not is_sentinel(text):
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).isoformat()
        except ValueError:
            pass
    return now_iso()


def split_entry_id(row_id: Optional[str], index: int) -> Optional[str]:
    """
    Id of the index-th module of a row.

    The first module keeps the row id; the others get ids derived from it,
    so rerunning the same file yields the same ids.
    """
    if not row_id:
        return None
    if index == 0:
        return row_id
    return str(uuid.uuid5(_SPLIT_NAMESPACE, f"{row_id}:{index}"))


# ---------------------------------------------------------------------------
# Batch driver
# ---------------------------------------------------------------------------


class _Skip(Exception):
    def __init__(self, reason: SkipReason, detail: str = "") -> None:
        super().__init__(detail or reason.value)
        self.reason = reason


class _BatchReconciler:
    """Shared batch loop: state machine, counting, per-row isolation."""

    kind = "row"

    def __init__(self, store: ScheduleStore, options: ImportOptions | None = None) -> None:
        self.store = store
        self.options = options or ImportOptions()
        self.state = BatchState.PENDING
        self.row_index = 0
        self.summary = ImportSummary()

    def run(self, rows: Iterable[Dict[str, Any]]) -> ImportSummary:
        rows = list(rows)
        self.summary = ImportSummary(total_rows=len(rows))
        self.state = BatchState.CONNECTED
        logger.info("Importing %d %s rows (mode=%s, key=%s)", len(rows), self.kind, self.options.mode.value,
                    self.options.key.value)

        self.state = BatchState.PROCESSING
        for i, row in enumerate(rows, start=1):
            self.row_index = i
            try:
                outcome = self.import_row(row)
            except _Skip as skip:
                self.summary.skipped[skip.reason.value] += 1
                logger.info("Skipping %s %d: %s", self.kind, i, skip)
                continue
            except Exception as exc:  # one broken row must not stop the batch
                self.summary.errors.append(RowError(row_index=i, message=str(exc)))
                logger.error("Failed to import %s %d: %s", self.kind, i, exc)
                continue

            if outcome == "created":
                self.summary.imported += 1
            elif outcome == "updated":
                self.summary.updated += 1
            else:
                self.summary.skipped[SkipReason.ALREADY_EXISTS.value] += 1

            if i % 100 == 0:
                logger.info("Processed %d/%d %s rows", i, len(rows), self.kind)

        self.state = BatchState.SUMMARIZED
        return self.summary

    def import_row(self, row: Dict[str, Any]) -> str:  # pragma: no cover - abstract
        raise NotImplementedError


class ScheduleImportReconciler(_BatchReconciler):
    """
    Import legacy schedule rows into the store.

    Columns: id?, course_id, day_number, start_time, end_time,
    module_title, submodule_title, duration_minutes?, created_at?
    """

    kind = "schedule"

    def _module_titles(self, raw: Any) -> List[str]:
        if self.options.split_modules:
            return parse_module_list(raw)
        if is_sentinel(raw):
            return []
        title = collapse_whitespace(str(raw))
        return [title] if title else []

    def import_row(self, row: Dict[str, Any]) -> str:
        course_id = str(row.get("course_id") or "").strip()
        if is_sentinel(course_id):
            raise _Skip(SkipReason.MISSING_COURSE_ID, "Missing course_id")
        if self.store.find_course(course_id) is None:
            raise _Skip(SkipReason.COURSE_NOT_FOUND, f"Course {course_id} not found")

        day_number = parse_day_number(row.get("day_number"))
        if day_number is None:
            raise _Skip(SkipReason.INVALID_DAY_NUMBER, f"Invalid day_number {row.get('day_number')!r}")

        titles = self._module_titles(row.get("module_title"))
        if not titles:
            raise _Skip(SkipReason.MISSING_MODULE_TITLE, "No module title")

        start_time = normalize_time(row.get("start_time"))
        end_time = normalize_time(row.get("end_time") or DEFAULT_END_TIME)
        submodules = parse_submodule_list(row.get("submodule_title"))

        duration = parse_positive_int(row.get("duration_minutes"))
        if duration is None:
            # Equal start and end (both times missing) is not a real session length
            duration = duration_minutes(start_time, end_time) or FALLBACK_DURATION_MINUTES

        created_at = parse_created_at(row.get("created_at"))
        row_id = valid_uuid(row.get("id"))

        # A row is all-or-nothing: a failing module rolls back its siblings
        outcomes = []
        with self.store.transaction():
            for index, title in enumerate(titles):
                data = {
                    "course_id": course_id,
                    "day_number": day_number,
                    "start_time": start_time,
                    "end_time": end_time,
                    "module_title": title,
                    "submodules": list(submodules),
                    "duration_minutes": duration,
                    "created_at": created_at,
                }
                outcomes.append(self._reconcile(split_entry_id(row_id, index), data))

        # Counted after commit, so a rolled back row writes nothing
        self.summary.entries_written += sum(1 for o in outcomes if o != "exists")

        if "created" in outcomes:
            return "created"
        if "updated" in outcomes:
            return "updated"
        return "exists"

    def _reconcile(self, entry_id: Optional[str], data: Dict[str, Any]) -> str:
        upsert = self.options.mode is ImportMode.UPSERT

        # Stable identifier, when the row has a usable one
        if self.options.key is IdentityKey.ID and entry_id:
            if self.store.get_entry(entry_id) is not None:
                if not upsert:
                    return "exists"
                self.store.update_entry(entry_id, data)
                return "updated"
            self.store.create_entry({**data, "id": entry_id})
            return "created"

        # Natural key: also the fallback for rows without a valid id
        key = natural_key_for(
            data["course_id"], data["day_number"], data["start_time"], data["end_time"], data["module_title"]
        )
        existing = self.store.find_entry_by_natural_key(key)
        if existing is not None and not upsert:
            return "exists"

        payload = dict(data)
        if existing is None and entry_id:
            payload["id"] = entry_id
        self.store.upsert_entry_by_natural_key(key, payload)
        return "updated" if existing is not None else "created"


class CourseImportReconciler(_BatchReconciler):
    """
    Import legacy course rows so schedule rows can reference them.

    Columns used: id, title, course_code, duration_hours, duration_unit.
    Identity is the course_code when present, otherwise the id.
    """

    kind = "course"

    def import_row(self, row: Dict[str, Any]) -> str:
        title = collapse_whitespace(str(row.get("title") or ""))
        if is_sentinel(title):
            raise _Skip(SkipReason.MISSING_TITLE, "Missing title")

        code = str(row.get("course_code") or "").strip()
        code = None if is_sentinel(code) else code
        course_id = str(row.get("id") or "").strip()
        course_id = "" if is_sentinel(course_id) else course_id

        # Duration defaults to 1 (hour) when missing
        duration_value = parse_positive_number(row.get("duration_hours")) or 1
        duration_unit = parse_duration_unit(row.get("duration_unit")).value

        existing = None
        if code:
            existing = self.store.find_course_by_code(code)
        if existing is None and course_id:
            existing = self.store.find_course(course_id)

        if existing is not None:
            if self.options.mode is ImportMode.SKIP_EXISTING:
                return "exists"
            existing.title = title
            existing.course_code = code or existing.course_code
            existing.duration_value = duration_value
            existing.duration_unit = duration_unit
            self.store.update_course(existing)
            self.summary.entries_written += 1
            return "updated"

        self.store.create_course(
            Course(
                id=course_id or str(uuid.uuid4()),
                title=title,
                course_code=code,
                duration_value=duration_value,
                duration_unit=duration_unit,
            )
        )
        self.summary.entries_written += 1
        return "created"
