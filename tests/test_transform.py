"""
Unit tests for the flat <-> grouped schedule transform.

Contract:
- group() always contains every template session
- one module per entry, siblings in one slot are kept apart
- flatten(group(entries)) == entries (as multiset) for in-template entries
- edit operations never mutate their input
"""

import unittest

from courseschedule.errors import SessionNotFoundError, UnknownModuleError
from courseschedule.templates import resolve_template
from courseschedule.transform import (
    add_module,
    add_submodule,
    flatten,
    group,
    initialize_empty,
    is_draft_module_id,
    regroup_for_duration,
    remove_module,
    remove_submodule,
    update_module_title,
    update_submodule,
)

from tests.helpers import entry_tuples, make_entry


class TestGroup(unittest.TestCase):
    def setUp(self) -> None:
        self.template = resolve_template(2, "days")

    def test_empty_input_has_full_skeleton(self) -> None:
        sessions = group([], self.template)
        self.assertEqual(list(sessions.keys()), list(self.template.keys()))
        self.assertTrue(all(not s.modules for s in sessions.values()))
        self.assertEqual(sessions[(2, "14:00")].end_time, "16:00")

    def test_siblings_stay_separate_modules(self) -> None:
        entries = [
            make_entry(1, "09:00", "11:00", "Intro"),
            make_entry(1, "09:00", "11:00", "Intro"),
            make_entry(1, "09:00", "11:00", "Safety"),
        ]
        sessions = group(entries, self.template)
        modules = sessions[(1, "09:00")].modules
        self.assertEqual([m.title for m in modules], ["Intro", "Intro", "Safety"])
        self.assertEqual([m.id for m in modules], [e.id for e in entries])

    def test_entries_outside_template_are_dropped(self) -> None:
        entries = [
            make_entry(1, "10:00", "12:00", "Odd slot"),
            make_entry(3, "09:00", "11:00", "Day three"),
            make_entry(2, "16:00", "18:00", "Kept"),
        ]
        sessions = group(entries, self.template)
        titles = [m.title for s in sessions.values() for m in s.modules]
        self.assertEqual(titles, ["Kept"])

    def test_round_trip(self) -> None:
        entries = [
            make_entry(1, "09:00", "11:00", "Intro", ["What", "Why"]),
            make_entry(1, "09:00", "11:00", "Safety"),
            make_entry(1, "14:00", "16:00", "Tools", ["Hammer"]),
            make_entry(2, "11:00", "14:00", "Practice", ["A", "B", "C"]),
            make_entry(2, "11:00", "14:00", "Practice", ["A", "B", "C"]),
        ]
        records = flatten(group(entries, self.template))
        self.assertEqual(entry_tuples(records), entry_tuples(entries))


class TestFlatten(unittest.TestCase):
    def test_duration_comes_from_template(self) -> None:
        template = resolve_template(1, "days")
        entries = [make_entry(1, "11:00", "14:00", "Long", duration=180)]
        records = flatten(group(entries, template))
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0]["duration_minutes"], 120)
        self.assertEqual(records[0]["end_time"], "14:00")
        self.assertEqual(records[0]["id"], entries[0].id)

    def test_untitled_modules_are_emitted(self) -> None:
        sessions = initialize_empty(resolve_template(1, "half_day"))
        records = flatten(sessions)
        self.assertEqual(len(records), 2)
        self.assertTrue(all(r["module_title"] == "" for r in records))


class TestEditOperations(unittest.TestCase):
    def setUp(self) -> None:
        self.template = resolve_template(1, "days")
        self.entry = make_entry(1, "09:00", "11:00", "Intro", ["One", "Two"])
        self.sessions = group([self.entry], self.template)

    def test_add_module_is_pure(self) -> None:
        edited = add_module(self.sessions, 1, "09:00")
        self.assertEqual(len(self.sessions[(1, "09:00")].modules), 1)
        modules = edited[(1, "09:00")].modules
        self.assertEqual(len(modules), 2)
        self.assertEqual(modules[1].title, "")
        self.assertTrue(is_draft_module_id(modules[1].id))
        self.assertFalse(is_draft_module_id(modules[0].id))

    def test_remove_module(self) -> None:
        edited = remove_module(self.sessions, 1, "09:00", self.entry.id)
        self.assertEqual(edited[(1, "09:00")].modules, [])
        self.assertEqual(len(self.sessions[(1, "09:00")].modules), 1)

    def test_update_title(self) -> None:
        edited = update_module_title(self.sessions, 1, "09:00", self.entry.id, "Welcome")
        self.assertEqual(edited[(1, "09:00")].modules[0].title, "Welcome")
        self.assertEqual(self.sessions[(1, "09:00")].modules[0].title, "Intro")

    def test_submodule_operations(self) -> None:
        s = add_submodule(self.sessions, 1, "09:00", self.entry.id)
        self.assertEqual(s[(1, "09:00")].modules[0].submodules, ["One", "Two", ""])

        s = update_submodule(s, 1, "09:00", self.entry.id, 2, "Three")
        self.assertEqual(s[(1, "09:00")].modules[0].submodules, ["One", "Two", "Three"])

        s = remove_submodule(s, 1, "09:00", self.entry.id, 0)
        self.assertEqual(s[(1, "09:00")].modules[0].submodules, ["Two", "Three"])

        # original untouched
        self.assertEqual(self.sessions[(1, "09:00")].modules[0].submodules, ["One", "Two"])

    def test_unknown_session(self) -> None:
        with self.assertRaises(SessionNotFoundError):
            add_module(self.sessions, 2, "09:00")
        # also usable as a KeyError
        with self.assertRaises(KeyError):
            add_module(self.sessions, 1, "10:00")

    def test_unknown_module(self) -> None:
        with self.assertRaises(UnknownModuleError):
            update_module_title(self.sessions, 1, "09:00", "nope", "x")

    def test_submodule_index_out_of_range(self) -> None:
        with self.assertRaises(IndexError):
            remove_submodule(self.sessions, 1, "09:00", self.entry.id, 5)
        with self.assertRaises(IndexError):
            update_submodule(self.sessions, 1, "09:00", self.entry.id, -1, "x")


class TestRegroup(unittest.TestCase):
    def test_shrinking_duration_reports_dropped_entries(self) -> None:
        entries = [
            make_entry(1, "09:00", "11:00", "Day one"),
            make_entry(2, "09:00", "11:00", "Day two"),
            make_entry(1, "16:00", "18:00", "Late"),
        ]
        regrouped = regroup_for_duration(entries, 3, "hours")
        self.assertEqual(regrouped.template.day_count, 1)
        self.assertEqual(list(regrouped.sessions.keys()), [(1, "09:00"), (1, "11:00")])
        self.assertEqual([e.module_title for e in regrouped.dropped], ["Day two", "Late"])
        self.assertEqual([m.title for m in regrouped.sessions[(1, "09:00")].modules], ["Day one"])

    def test_growing_back_restores_entries(self) -> None:
        entries = [make_entry(2, "09:00", "11:00", "Day two")]
        self.assertEqual(len(regroup_for_duration(entries, 1, "days").dropped), 1)
        regrouped = regroup_for_duration(entries, 2, "days")
        self.assertEqual(regrouped.dropped, [])
        self.assertEqual(regrouped.sessions[(2, "09:00")].modules[0].title, "Day two")


class TestInitializeEmpty(unittest.TestCase):
    def test_one_blank_module_per_session(self) -> None:
        sessions = initialize_empty(resolve_template(2, "days"))
        self.assertEqual(len(sessions), 8)
        for session in sessions.values():
            self.assertEqual(len(session.modules), 1)
            self.assertEqual(session.modules[0].title, "")
            self.assertEqual(session.modules[0].submodules, [])


if __name__ == "__main__":
    unittest.main()
