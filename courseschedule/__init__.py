"""
courseschedule – course timetable normalization, grouping and legacy CSV import.
"""

from pathlib import Path

__version__ = (Path(__file__).resolve().parent / "VERSION").read_text(encoding="utf-8").strip()
