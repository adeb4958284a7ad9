"""
Unit tests for the JSON store.

Storage contract:
- missing file -> empty store
- every write outside a transaction is persisted immediately
- transaction(): all-or-nothing, rollback restores the previous state
- lookup by natural key stays in step with creates, updates and deletes
- corrupt file -> StoreError (never silently treated as empty)
"""

import json
import tempfile
import unittest
from pathlib import Path

from courseschedule.errors import StoreError
from courseschedule.model import natural_key_for
from courseschedule.storage import ScheduleStore

from tests.helpers import COURSE_ID, make_course


def _entry_data(title: str = "Intro", day: int = 1, **extra) -> dict:
    data = {
        "course_id": COURSE_ID,
        "day_number": day,
        "start_time": "09:00",
        "end_time": "11:00",
        "module_title": title,
        "submodules": ["A"],
        "duration_minutes": 120,
    }
    data.update(extra)
    return data


class TestStore(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "store.json"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_file_is_empty(self) -> None:
        store = ScheduleStore(self.path)
        self.assertEqual(store.count_entries(), 0)
        self.assertIsNone(store.find_course(COURSE_ID))
        self.assertFalse(self.path.exists())

    def test_create_and_reload(self) -> None:
        store = ScheduleStore(self.path)
        store.create_course(make_course())
        entry = store.create_entry(_entry_data())
        self.assertTrue(entry.id)
        self.assertTrue(entry.created_at)

        reloaded = ScheduleStore(self.path)
        self.assertEqual(reloaded.find_course(COURSE_ID).title, "Workplace Safety")
        self.assertEqual(reloaded.find_course_by_code("WS-101").id, COURSE_ID)
        self.assertEqual(reloaded.get_entry(entry.id), entry)

        data = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(set(data), {"courses", "schedule_entries"})

    def test_duplicate_ids_are_rejected(self) -> None:
        store = ScheduleStore(self.path)
        store.create_entry(_entry_data(id="fixed"))
        with self.assertRaises(StoreError):
            store.create_entry(_entry_data(id="fixed"))

        store.create_course(make_course())
        with self.assertRaises(StoreError):
            store.create_course(make_course(course_id="other"))  # same course code

    def test_upsert_by_natural_key(self) -> None:
        store = ScheduleStore(self.path)
        key = natural_key_for(COURSE_ID, 1, "09:00", "11:00", "Intro")

        first = store.upsert_entry_by_natural_key(key, _entry_data())
        second = store.upsert_entry_by_natural_key(key, _entry_data(submodules=["B", "C"]))

        self.assertEqual(first.id, second.id)
        self.assertEqual(store.count_entries(), 1)
        self.assertEqual(store.get_entry(first.id).submodules, ["B", "C"])
        self.assertEqual(store.get_entry(first.id).created_at, first.created_at)

    def test_delete_all_entries_for_course(self) -> None:
        store = ScheduleStore(self.path)
        store.create_entry(_entry_data("A"))
        store.create_entry(_entry_data("B"))
        store.create_entry(_entry_data("C", course_id="other-course"))

        self.assertEqual(store.delete_all_entries_for_course(COURSE_ID), 2)
        self.assertEqual(store.list_entries_for_course(COURSE_ID), [])
        self.assertEqual(store.entries_per_course(), {"other-course": 1})

    def test_transaction_rollback(self) -> None:
        store = ScheduleStore(self.path)
        store.create_entry(_entry_data("Keep"))
        before = self.path.read_text(encoding="utf-8")

        with self.assertRaises(RuntimeError):
            with store.transaction():
                store.delete_all_entries_for_course(COURSE_ID)
                store.create_entry(_entry_data("New"))
                raise RuntimeError("boom")

        self.assertEqual([e.module_title for e in store.list_entries_for_course(COURSE_ID)], ["Keep"])
        self.assertEqual(self.path.read_text(encoding="utf-8"), before)

    def test_transaction_commit_writes_once(self) -> None:
        store = ScheduleStore(self.path)
        with store.transaction():
            store.create_entry(_entry_data("A"))
            with store.transaction():
                store.create_entry(_entry_data("B"))
            # nothing on disk until the outermost block ends
            self.assertFalse(self.path.exists())

        self.assertEqual(ScheduleStore(self.path).count_entries(), 2)

    def test_transaction_without_changes_does_not_write(self) -> None:
        store = ScheduleStore(self.path)
        with store.transaction():
            store.find_entry_by_natural_key(natural_key_for(COURSE_ID, 1, "09:00", "11:00", "Intro"))
        self.assertFalse(self.path.exists())

    def test_natural_key_lookup_follows_changes(self) -> None:
        store = ScheduleStore(self.path)
        old_key = natural_key_for(COURSE_ID, 1, "09:00", "11:00", "Intro")
        new_key = natural_key_for(COURSE_ID, 1, "09:00", "11:00", "Introduction")

        entry = store.create_entry(_entry_data())
        store.update_entry(entry.id, {"module_title": "Introduction"})
        self.assertIsNone(store.find_entry_by_natural_key(old_key))
        self.assertEqual(store.find_entry_by_natural_key(new_key).id, entry.id)

        # reloading rebuilds the lookup from the file
        self.assertEqual(ScheduleStore(self.path).find_entry_by_natural_key(new_key).id, entry.id)

        store.delete_all_entries_for_course(COURSE_ID)
        self.assertIsNone(store.find_entry_by_natural_key(new_key))

    def test_natural_key_lookup_with_sibling_of_same_title(self) -> None:
        store = ScheduleStore(self.path)
        key = natural_key_for(COURSE_ID, 1, "09:00", "11:00", "Intro")
        first = store.create_entry(_entry_data())
        second = store.create_entry(_entry_data())

        self.assertEqual(store.find_entry_by_natural_key(key).id, first.id)
        store.update_entry(first.id, {"module_title": "Renamed"})
        self.assertEqual(store.find_entry_by_natural_key(key).id, second.id)

    def test_natural_key_lookup_is_rolled_back(self) -> None:
        store = ScheduleStore(self.path)
        key = natural_key_for(COURSE_ID, 1, "09:00", "11:00", "Intro")

        with self.assertRaises(RuntimeError):
            with store.transaction():
                store.create_entry(_entry_data())
                raise RuntimeError("boom")

        self.assertIsNone(store.find_entry_by_natural_key(key))
        self.assertEqual(store.count_entries(), 0)

    def test_corrupt_file_raises(self) -> None:
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(StoreError):
            ScheduleStore(self.path)

    def test_malformed_entry_raises(self) -> None:
        payload = {"courses": [], "schedule_entries": [{"id": "e1", "course_id": COURSE_ID, "day_number": "x"}]}
        self.path.write_text(json.dumps(payload), encoding="utf-8")
        with self.assertRaises(StoreError):
            ScheduleStore(self.path)


if __name__ == "__main__":
    unittest.main()
