"""
Shared normalization utilities.

These exist to make parsing robust across:
- XML entities and HTML entities (including double-escaped sequences like '&amp;apos;')
- ISO8601 timestamps with or without a trailing 'Z' or fractional seconds
"""

from __future__ import annotations

import html
import re
from datetime import datetime, timezone
from typing import Optional


_WS_RE = re.compile(r"\s+")


def normalize_entities(text: Optional[str]) -> str:
    """
    Decode XML/HTML entities in a stable way.

    Unescape runs more than once because inputs like '&amp;apos;' (double-escaped
    apostrophe) occur in exported files.
    """
    if text is None:
        return ""

    s = str(text)
    for _ in range(2):
        s2 = html.unescape(s)
        if s2 == s:
            break
        s = s2
    return s


def normalize_name(text: Optional[str]) -> str:
    """Normalize a display name (decode entities, strip surrounding whitespace)."""
    return normalize_entities(text).strip()


def normalize_key(text: Optional[str]) -> str:
    """Normalize a key for comparisons (decode entities, lowercase, collapse whitespace)."""
    s = normalize_entities(text).strip().lower()
    return _WS_RE.sub(" ", s)


def parse_iso8601(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO8601 time string (as found in GPX/KML/GeoJSON) into an aware datetime.
    Naive values are taken as UTC. Returns None if parsing fails.
    """
    if not value:
        return None
    s = value.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    # fromisoformat before 3.11 only accepts 3 or 6 fractional digits
    m = re.match(r"^(.*T\d{2}:\d{2}:\d{2})\.(\d+)(.*)$", s)
    if m:
        s = f"{m.group(1)}.{(m.group(2) + '000000')[:6]}{m.group(3)}"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_iso8601(value: datetime) -> str:
    """Format a datetime as UTC ISO8601 with a trailing 'Z'."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
