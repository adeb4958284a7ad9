"""
Unit tests for reading legacy CSV exports from files and URLs.
"""

import tempfile
import unittest
from pathlib import Path
from unittest import mock

import requests

from courseschedule.errors import SourceError
from courseschedule.sources import is_url, parse_csv_text, read_rows

CSV_TEXT = (
    " course_id , day_number ,module_title,submodule_title\n"
    'c1,1, Intro ,"• Welcome\n• Rules"\n'
    ",,,\n"
    "c1,2,Hazards,,surplus\n"
)


class TestParseCsvText(unittest.TestCase):
    def test_trims_and_keeps_multiline_cells(self) -> None:
        rows = parse_csv_text(CSV_TEXT)
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0]["module_title"], "Intro")
        self.assertEqual(rows[0]["course_id"], "c1")
        self.assertEqual(rows[0]["submodule_title"], "• Welcome\n• Rules")

    def test_surplus_column_is_ignored(self) -> None:
        rows = parse_csv_text(CSV_TEXT)
        self.assertEqual(set(rows[1]), {"course_id", "day_number", "module_title", "submodule_title"})
        self.assertEqual(rows[1]["submodule_title"], "")

    def test_short_row_gets_empty_values(self) -> None:
        rows = parse_csv_text("a,b,c\n1\n")
        self.assertEqual(rows, [{"a": "1", "b": "", "c": ""}])


class TestReadRows(unittest.TestCase):
    def test_file_with_bom(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "export.csv"
            path.write_text("\ufeffid,title\nc1,First Aid\n", encoding="utf-8")
            rows = read_rows(path)
        self.assertEqual(rows, [{"id": "c1", "title": "First Aid"}])

    def test_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(SourceError) as ctx:
                read_rows(Path(tmp) / "nope.csv")
        self.assertIn("CSV file not found", str(ctx.exception))

    def test_url_is_downloaded(self) -> None:
        response = mock.Mock()
        response.text = "\ufeffid,title\nc1,Fire\n"
        response.encoding = "utf-8"
        response.raise_for_status.return_value = None

        with mock.patch("courseschedule.sources.requests.get", return_value=response) as get:
            rows = read_rows("https://example.org/courses.csv")

        get.assert_called_once()
        self.assertEqual(get.call_args[0][0], "https://example.org/courses.csv")
        self.assertIn("timeout", get.call_args[1])
        self.assertEqual(rows, [{"id": "c1", "title": "Fire"}])

    def test_download_failure(self) -> None:
        with mock.patch(
            "courseschedule.sources.requests.get", side_effect=requests.ConnectionError("refused")
        ):
            with self.assertRaises(SourceError):
                read_rows("http://example.org/x.csv")

    def test_http_error_status(self) -> None:
        response = mock.Mock()
        response.raise_for_status.side_effect = requests.HTTPError("404 Client Error")
        with mock.patch("courseschedule.sources.requests.get", return_value=response):
            with self.assertRaises(SourceError):
                read_rows("https://example.org/missing.csv")

    def test_is_url(self) -> None:
        self.assertTrue(is_url("HTTPS://example.org/a.csv"))
        self.assertFalse(is_url(Path("data/a.csv")))


if __name__ == "__main__":
    unittest.main()
