"""
CLI (Command Line Interface).

Terminal commands for importing legacy exports and inspecting schedules:

    courseschedule import-courses <file.csv|url>
    courseschedule import <file.csv|url> [--mode skip|upsert] [--key id|natural]
    courseschedule show <course_id>
    courseschedule sessions <course_id>
    courseschedule template <duration_value> <days|hours|half_day>
    courseschedule clear <course_id>
    courseschedule verify

All commands accept --store to point at another store file.
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from courseschedule import __version__, config
from courseschedule.display import group_for_display
from courseschedule.editor import load_schedule
from courseschedule.errors import ScheduleError
from courseschedule.importer import (
    CourseImportReconciler,
    IdentityKey,
    ImportMode,
    ImportOptions,
    ImportSummary,
    ScheduleImportReconciler,
)
from courseschedule.sources import read_rows
from courseschedule.storage import ScheduleStore
from courseschedule.templates import DurationUnit, resolve_template

console = Console()

# Error details are listed in full up to this count
MAX_ERRORS_SHOWN = 10


def _open_store(args: argparse.Namespace) -> ScheduleStore:
    return ScheduleStore(args.store)


def _print_summary(title: str, summary: ImportSummary) -> None:
    table = Table(title=title, box=box.SIMPLE_HEAVY, show_header=False)
    table.add_column("What")
    table.add_column("Count", justify="right")
    table.add_row("Rows read", str(summary.total_rows))
    table.add_row("Imported", str(summary.imported))
    table.add_row("Updated", str(summary.updated))
    table.add_row("Entries written", str(summary.entries_written))
    for reason, count in sorted(summary.skipped.items()):
        table.add_row(f"Skipped ({reason})", str(count))
    table.add_row("Errors", str(summary.error_count))
    console.print(table)

    if summary.errors:
        shown = summary.errors[:MAX_ERRORS_SHOWN]
        if len(summary.errors) > MAX_ERRORS_SHOWN:
            console.print(f"{len(summary.errors)} errors occurred (showing first {MAX_ERRORS_SHOWN}):")
        for err in shown:
            console.print(f"  - row {err.row_index}: {err.message}", markup=False)


def _cmd_import_courses(args: argparse.Namespace) -> int:
    """
    Import legacy course rows (needed before schedules can reference them).
    """
    rows = read_rows(args.source)
    reconciler = CourseImportReconciler(_open_store(args), ImportOptions(mode=ImportMode(args.mode)))
    summary = reconciler.run(rows)
    _print_summary("Course import", summary)
    return 0


def _cmd_import(args: argparse.Namespace) -> int:
    """
    Import legacy schedule rows. Always finishes with a summary.
    """
    rows = read_rows(args.source)
    options = ImportOptions(
        mode=ImportMode(args.mode),
        key=IdentityKey(args.key),
        split_modules=not args.no_split_modules,
    )
    summary = ScheduleImportReconciler(_open_store(args), options).run(rows)
    _print_summary("Schedule import", summary)
    return 0


def _cmd_show(args: argparse.Namespace) -> int:
    """
    Print the read-only schedule view of a course.
    """
    store = _open_store(args)
    course = store.find_course(args.course_id)
    if course is None:
        console.print(f"Course not found: {args.course_id}", markup=False)
        return 1

    days = group_for_display(store.list_entries_for_course(course.id))
    console.print(f"[bold]{escape(course.title)}[/bold] ({escape(course.id)})")
    if not days:
        console.print("This course doesn't have a schedule yet.")
        return 0

    for day in days:
        table = Table(title=f"Day {day.day_number}", box=box.ROUNDED, show_lines=True)
        table.add_column("Session", no_wrap=True)
        table.add_column("Time", no_wrap=True)
        table.add_column("Modules")
        table.add_column("Submodules")
        for s in day.sessions:
            table.add_row(
                s.session_name,
                s.time_range,
                escape(s.title),
                escape("\n".join(f"• {x}" for x in s.submodules)),
            )
        console.print(table)
    return 0


def _cmd_sessions(args: argparse.Namespace) -> int:
    """
    Print the editing view: every template session with its modules,
    plus the stored entries that do not fit the template.
    """
    store = _open_store(args)
    regrouped = load_schedule(store, args.course_id)

    table = Table(box=box.SIMPLE)
    table.add_column("Day", justify="right")
    table.add_column("Session")
    table.add_column("Modules")
    for (day, _start), session in regrouped.sessions.items():
        titles = ", ".join(m.title or "(untitled)" for m in session.modules) or "-"
        table.add_row(str(day), f"{session.start_time}-{session.end_time}", escape(titles))
    console.print(table)

    if regrouped.dropped:
        console.print(f"{len(regrouped.dropped)} stored entries are outside the current template:")
        for e in regrouped.dropped:
            console.print(f"  - day {e.day_number} {e.start_time}-{e.end_time} {e.module_title}", markup=False)
    return 0


def _cmd_template(args: argparse.Namespace) -> int:
    template = resolve_template(args.duration_value, args.unit)
    table = Table(title=f"{template.day_count} day(s)", box=box.SIMPLE)
    table.add_column("Session")
    table.add_column("Start")
    table.add_column("End")
    for slot in template.sessions:
        table.add_row(slot.name, slot.start_time, slot.end_time)
    console.print(table)
    return 0


def _cmd_clear(args: argparse.Namespace) -> int:
    store = _open_store(args)
    if store.find_course(args.course_id) is None:
        console.print(f"Course not found: {args.course_id}", markup=False)
        return 1
    n = store.delete_all_entries_for_course(args.course_id)
    console.print(f"Deleted {n} schedule entries of {args.course_id}", markup=False)
    return 0


def _cmd_verify(args: argparse.Namespace) -> int:
    """
    Print store totals and the courses with the most schedule entries.
    """
    store = _open_store(args)
    console.print(f"Total course schedule records: {store.count_entries()}")

    table = Table(title="Top 10 courses by schedule entries", box=box.SIMPLE)
    table.add_column("Course")
    table.add_column("Entries", justify="right")
    for course_id, count in store.entries_per_course().most_common(10):
        course = store.find_course(course_id)
        label = course.title if course else "Unknown Course"
        table.add_row(escape(f"{label} ({course_id[:8]}...)"), str(count))
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="courseschedule", description="Course schedule import & inspection")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--store", type=str, default=None, help="Path of the JSON store file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    p_courses = sub.add_parser("import-courses", help="Import legacy course CSV")
    p_courses.add_argument("source", type=str, help="CSV path or http(s) URL")
    p_courses.add_argument("--mode", choices=[m.value for m in ImportMode], default=ImportMode.SKIP_EXISTING.value)

    p_import = sub.add_parser("import", help="Import legacy schedule CSV")
    p_import.add_argument("source", type=str, help="CSV path or http(s) URL")
    p_import.add_argument("--mode", choices=[m.value for m in ImportMode], default=ImportMode.SKIP_EXISTING.value)
    p_import.add_argument("--key", choices=[k.value for k in IdentityKey], default=IdentityKey.ID.value)
    p_import.add_argument(
        "--no-split-modules",
        action="store_true",
        help="Treat module_title as one title instead of splitting on '|'",
    )

    p_show = sub.add_parser("show", help="Show the schedule of a course")
    p_show.add_argument("course_id", type=str)

    p_sessions = sub.add_parser("sessions", help="Show the template sessions of a course")
    p_sessions.add_argument("course_id", type=str)

    p_template = sub.add_parser("template", help="Show the session template for a duration")
    p_template.add_argument("duration_value", type=float)
    p_template.add_argument("unit", choices=[u.value for u in DurationUnit])

    p_clear = sub.add_parser("clear", help="Delete all schedule entries of a course")
    p_clear.add_argument("course_id", type=str)

    sub.add_parser("verify", help="Show store totals")

    return parser


COMMANDS = {
    "import-courses": _cmd_import_courses,
    "import": _cmd_import,
    "show": _cmd_show,
    "sessions": _cmd_sessions,
    "template": _cmd_template,
    "clear": _cmd_clear,
    "verify": _cmd_verify,
}


def main(argv: Optional[List[str]] = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    config.configure_logging(logging.INFO if args.verbose else None)

    try:
        raise SystemExit(COMMANDS[args.command](args))
    except ScheduleError as exc:
        console.print(f"Error: {exc}", markup=False)
        raise SystemExit(1)
