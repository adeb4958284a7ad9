"""
List field normalization.

Legacy exports store several items in one CSV cell, in three shapes:

    "['Intro', 'Advanced']"        pseudo-JSON array with single quotes
    "Intro | Advanced"             pipe-delimited (module titles)
    "• Basics\\n- Tools\\n* Review"  bullet block (submodule titles)

Both parsers return an ordered list of trimmed, non-empty strings and are
total: malformed legacy text is expected, so nothing in here raises.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List

logger = logging.getLogger(__name__)

# Cell values that mean "nothing here" in the legacy exports
SENTINELS = {"", "NULL", "#NAME?", "[]"}

_BULLET_RE = re.compile(r"^[\s•\-\*]+")
_QUOTED_RE = re.compile(r"'([^']+)'")
_WHITESPACE_RE = re.compile(r"\s+")


def is_sentinel(raw: Any) -> bool:
    if raw is None:
        return True
    return str(raw).strip().upper() in SENTINELS


def collapse_whitespace(text: str) -> str:
    """Collapse newlines and whitespace runs to single spaces."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def _looks_like_array(text: str) -> bool:
    return text.startswith("[") and text.endswith("]")


def _clean_items(items: List[Any]) -> List[str]:
    return [collapse_whitespace(x) for x in items if isinstance(x, str) and x.strip()]


def _parse_array_literal(text: str) -> List[str]:
    """
    Parse "['A', 'B']" by rewriting it to JSON.

    Falls back to picking every '...' substring if JSON parsing fails,
    e.g. for items that contain an apostrophe themselves.
    """
    try:
        parsed = json.loads(text.replace("'", '"'))
    except json.JSONDecodeError:
        items = [m.strip() for m in _QUOTED_RE.findall(text)]
        items = [m for m in items if m]
        logger.debug("Array literal not valid JSON, extracted %d quoted items: %r", len(items), text)
        return items

    if not isinstance(parsed, list):
        return []
    return _clean_items(parsed)


def _split_pipes(text: str) -> List[str]:
    return [collapse_whitespace(part) for part in text.split("|") if part.strip()]


def _split_bullets(text: str) -> List[str]:
    out: List[str] = []
    for line in text.splitlines():
        # Remove bullet points (•, -, *) and surrounding whitespace
        cleaned = _BULLET_RE.sub("", line).strip()
        if cleaned:
            out.append(cleaned)
    return out


def parse_module_list(raw: Any) -> List[str]:
    """
    Parse a legacy module_title cell into module titles.

    Recognizers, first match wins: array literal, pipe-delimited,
    otherwise one title with its whitespace collapsed.
    """
    if is_sentinel(raw):
        return []

    text = str(raw).strip()
    if _looks_like_array(text):
        return _parse_array_literal(text)
    if "|" in text:
        return _split_pipes(text)

    title = collapse_whitespace(text)
    return [title] if title else []


def parse_submodule_list(raw: Any) -> List[str]:
    """
    Parse a legacy submodule_title cell into submodule titles.

    Recognizers, first match wins: array literal, otherwise a bullet
    block (a single line is a one-line block).
    """
    if is_sentinel(raw):
        return []

    text = str(raw).strip()
    if _looks_like_array(text):
        return _parse_array_literal(text)
    return _split_bullets(text)
