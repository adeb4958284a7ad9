"""
Legacy CSV sources.

Reads a legacy export from a local file or an HTTP(S) URL and returns
one dict per row:

- header names and values are whitespace-trimmed
- quoted multi-line cells (bullet blocks) are kept intact
- rows with surplus or missing columns are tolerated
- completely empty rows are skipped
"""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Dict, List

import requests

from courseschedule import config
from courseschedule.errors import SourceError

logger = logging.getLogger(__name__)

Row = Dict[str, str]


def is_url(source: str | Path) -> bool:
    return str(source).lower().startswith(("http://", "https://"))


def _fetch_text(url: str) -> str:
    try:
        resp = requests.get(url, timeout=config.http_timeout())
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise SourceError(f"Cannot download {url}: {exc}") from exc

    # Exports saved from spreadsheets often start with a BOM
    resp.encoding = resp.encoding or "utf-8"
    return resp.text.lstrip("\ufeff")


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as exc:
        raise SourceError(f"CSV file not found at: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceError(f"Cannot read {path}: {exc}") from exc


def parse_csv_text(text: str) -> List[Row]:
    """Parse CSV text with a header line into trimmed row dicts."""
    reader = csv.DictReader(io.StringIO(text, newline=""))
    rows: List[Row] = []
    for raw in reader:
        row: Row = {}
        for key, value in raw.items():
            # Surplus columns end up under the None key
            if key is None:
                continue
            row[key.strip()] = (value or "").strip() if isinstance(value, str) else ""
        if any(row.values()):
            rows.append(row)
    return rows


def read_rows(source: str | Path) -> List[Row]:
    """
    Load all rows of a legacy CSV export.

    Raises SourceError if the source cannot be read.
    """
    if is_url(source):
        logger.info("Downloading CSV from %s", source)
        text = _fetch_text(str(source))
    else:
        text = _read_text(Path(source))

    rows = parse_csv_text(text)
    logger.info("Read %d rows from %s", len(rows), source)
    return rows
