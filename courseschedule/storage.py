"""
Persistent storage for courses and schedule entries.

This module manages one JSON document (see config.default_store_path()):

    {
      "courses": [ {...}, ... ],
      "schedule_entries": [ {...}, ... ]
    }

Design rationale:
- the whole store lives in one file, so a write is all-or-nothing
- writes go to a temporary file first and are moved into place with os.replace
- transaction() groups several operations; on any exception the in-memory
  state is restored from a snapshot and nothing is written
- records are replaced on change, never edited in place, so a snapshot only
  copies the top-level mappings
- entries are indexed by natural key; large imports look up rows by it

The store assumes exclusive access: one import or save per course at a time.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import uuid
from collections import Counter
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from courseschedule import config
from courseschedule.errors import StoreError
from courseschedule.model import Course, NaturalKey, ScheduleEntry

logger = logging.getLogger(__name__)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class ScheduleStore:
    """
    JSON-file backed store offering create/find/update/upsert/delete by key.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        # Use custom path if provided (mainly for tests),
        # otherwise fall back to the configured location
        self.path = Path(path) if path is not None else config.default_store_path()
        self._courses: Dict[str, Dict[str, Any]] = {}
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._by_natural: Dict[NaturalKey, str] = {}
        self._tx_depth = 0
        self._dirty = False
        self._load()

    # -----------------------------------------------------------------------
    # File handling
    # -----------------------------------------------------------------------

    def _load(self) -> None:
        # First run: file does not exist yet -> empty store
        if not self.path.exists():
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StoreError(f"Cannot read store {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StoreError(f"Store {self.path} is not a JSON object")

        for c in data.get("courses", []):
            if isinstance(c, dict) and c.get("id"):
                self._courses[str(c["id"])] = c
        for e in data.get("schedule_entries", []):
            if isinstance(e, dict) and e.get("id"):
                try:
                    record = ScheduleEntry.from_dict(e).to_dict()
                except (KeyError, TypeError, ValueError) as exc:
                    raise StoreError(f"Malformed schedule entry {e.get('id')!r} in {self.path}: {exc}") from exc
                self._entries[record["id"]] = record
        self._reindex()

    def _write(self) -> None:
        payload = {
            "courses": list(self._courses.values()),
            "schedule_entries": list(self._entries.values()),
        }
        text = json.dumps(payload, indent=2, ensure_ascii=False)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".store-", suffix=".json", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(text)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StoreError(f"Cannot write store {self.path}: {exc}") from exc

    def _persist(self) -> None:
        # Inside a transaction the outermost block writes once on commit
        if self._tx_depth == 0:
            self._write()
        else:
            self._dirty = True

    @contextmanager
    def transaction(self) -> Iterator["ScheduleStore"]:
        """
        All-or-nothing block.

        Either every operation inside the block is written, or (on any
        exception) the store is rolled back to its state before the block.
        Nested blocks join the outermost one.
        """
        if self._tx_depth > 0:
            self._tx_depth += 1
            try:
                yield self
            finally:
                self._tx_depth -= 1
            return

        snapshot = (dict(self._courses), dict(self._entries), dict(self._by_natural))
        self._tx_depth = 1
        self._dirty = False
        try:
            yield self
            self._tx_depth = 0
            if self._dirty:
                self._write()
        except BaseException:
            self._tx_depth = 0
            self._courses, self._entries, self._by_natural = snapshot
            logger.warning("Store transaction rolled back")
            raise

    # -----------------------------------------------------------------------
    # Courses
    # -----------------------------------------------------------------------

    def find_course(self, course_id: str) -> Optional[Course]:
        data = self._courses.get(str(course_id).strip())
        return Course.from_dict(data) if data else None

    def find_course_by_code(self, course_code: str) -> Optional[Course]:
        code = str(course_code).strip()
        if not code:
            return None
        for data in self._courses.values():
            if (data.get("course_code") or "") == code:
                return Course.from_dict(data)
        return None

    def list_courses(self) -> List[Course]:
        return [Course.from_dict(c) for c in self._courses.values()]

    def create_course(self, course: Course) -> Course:
        if not course.id:
            course.id = str(uuid.uuid4())
        if course.id in self._courses:
            raise StoreError(f"Course id already exists: {course.id}")
        if course.course_code and self.find_course_by_code(course.course_code):
            raise StoreError(f"Course code already exists: {course.course_code}")
        self._courses[course.id] = course.to_dict()
        self._persist()
        return course

    def update_course(self, course: Course) -> Course:
        if course.id not in self._courses:
            raise StoreError(f"Unknown course id: {course.id}")
        self._courses[course.id] = course.to_dict()
        self._persist()
        return course

    # -----------------------------------------------------------------------
    # Schedule entries
    # -----------------------------------------------------------------------

    def list_entries_for_course(self, course_id: str) -> List[ScheduleEntry]:
        cid = str(course_id).strip()
        return [ScheduleEntry.from_dict(e) for e in self._entries.values() if e.get("course_id") == cid]

    def get_entry(self, entry_id: str) -> Optional[ScheduleEntry]:
        data = self._entries.get(str(entry_id))
        return ScheduleEntry.from_dict(data) if data else None

    def create_entry(self, data: Dict[str, Any]) -> ScheduleEntry:
        """
        Create an entry. The id is generated unless the data carries one.

        Raises StoreError if the id is already taken.
        """
        record = dict(data)
        record["id"] = str(record.get("id") or uuid.uuid4())
        record.setdefault("created_at", None)
        if not record["created_at"]:
            record["created_at"] = now_iso()
        if record["id"] in self._entries:
            raise StoreError(f"Schedule entry id already exists: {record['id']}")

        entry = ScheduleEntry.from_dict(record)
        self._entries[entry.id] = entry.to_dict()
        self._by_natural.setdefault(entry.natural_key, entry.id)
        self._persist()
        return entry

    def update_entry(self, entry_id: str, data: Dict[str, Any]) -> ScheduleEntry:
        current = self._entries.get(str(entry_id))
        if current is None:
            raise StoreError(f"Unknown schedule entry id: {entry_id}")
        merged = {**current, **data, "id": current["id"]}
        # Keep the original creation time unless a new one is given
        if not merged.get("created_at"):
            merged["created_at"] = current.get("created_at")
        entry = ScheduleEntry.from_dict(merged)
        self._entries[entry.id] = entry.to_dict()
        self._unindex(ScheduleEntry.from_dict(current))
        self._by_natural.setdefault(entry.natural_key, entry.id)
        self._persist()
        return entry

    def find_entry_by_natural_key(self, key: NaturalKey) -> Optional[ScheduleEntry]:
        entry_id = self._by_natural.get(key)
        return self.get_entry(entry_id) if entry_id else None

    def upsert_entry_by_natural_key(self, key: NaturalKey, data: Dict[str, Any]) -> ScheduleEntry:
        existing = self.find_entry_by_natural_key(key)
        if existing is not None:
            return self.update_entry(existing.id, data)
        return self.create_entry(data)

    def delete_all_entries_for_course(self, course_id: str) -> int:
        cid = str(course_id).strip()
        doomed = [eid for eid, e in self._entries.items() if e.get("course_id") == cid]
        for eid in doomed:
            del self._entries[eid]
        self._reindex()
        self._persist()
        return len(doomed)

    # Natural key index: key -> id of the first stored entry with that key.
    # Sibling modules may share a key (same title twice in one session).

    def _reindex(self) -> None:
        self._by_natural = {}
        for record in self._entries.values():
            entry = ScheduleEntry.from_dict(record)
            self._by_natural.setdefault(entry.natural_key, entry.id)

    def _unindex(self, old: ScheduleEntry) -> None:
        key = old.natural_key
        if self._by_natural.get(key) != old.id:
            return
        del self._by_natural[key]
        for record in self._entries.values():
            other = ScheduleEntry.from_dict(record)
            if other.id != old.id and other.natural_key == key:
                self._by_natural[key] = other.id
                return

    def count_entries(self) -> int:
        return len(self._entries)

    def entries_per_course(self) -> Counter:
        return Counter(str(e.get("course_id")) for e in self._entries.values())
