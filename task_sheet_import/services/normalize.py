from __future__ import annotations

import math
import re
import warnings
from datetime import date, timedelta

import pandas as pd

from ..models.fields import TaskPriority, TaskStatus

"""Value normalizers: raw cell string -> typed task value.

Every function here is total. Unparseable input degrades to the field's
default (status, priority, progress) or to None (dates, hours, color); nothing
raises, which keeps row materialization total as well.
"""

__all__ = [
    "STATUS_SYNONYMS",
    "PRIORITY_SYNONYMS",
    "SPREADSHEET_EPOCH",
    "parse_number",
    "normalize_status",
    "normalize_priority",
    "normalize_date",
    "normalize_hours",
    "normalize_progress",
    "normalize_tags",
    "normalize_color",
]

STATUS_SYNONYMS: dict[str, TaskStatus] = {
    "todo": TaskStatus.TODO,
    "to do": TaskStatus.TODO,
    "à faire": TaskStatus.TODO,
    "a faire": TaskStatus.TODO,
    "not started": TaskStatus.TODO,
    "pending": TaskStatus.TODO,
    "en attente": TaskStatus.TODO,
    "in_progress": TaskStatus.IN_PROGRESS,
    "in progress": TaskStatus.IN_PROGRESS,
    "in-progress": TaskStatus.IN_PROGRESS,
    "en cours": TaskStatus.IN_PROGRESS,
    "started": TaskStatus.IN_PROGRESS,
    "ongoing": TaskStatus.IN_PROGRESS,
    "completed": TaskStatus.COMPLETED,
    "done": TaskStatus.COMPLETED,
    "terminé": TaskStatus.COMPLETED,
    "termine": TaskStatus.COMPLETED,
    "fini": TaskStatus.COMPLETED,
    "finished": TaskStatus.COMPLETED,
    "cancelled": TaskStatus.CANCELLED,
    "canceled": TaskStatus.CANCELLED,
    "annulé": TaskStatus.CANCELLED,
    "annule": TaskStatus.CANCELLED,
}

PRIORITY_SYNONYMS: dict[str, TaskPriority] = {
    "low": TaskPriority.LOW,
    "basse": TaskPriority.LOW,
    "faible": TaskPriority.LOW,
    "minor": TaskPriority.LOW,
    "medium": TaskPriority.MEDIUM,
    "moyenne": TaskPriority.MEDIUM,
    "normal": TaskPriority.MEDIUM,
    "normale": TaskPriority.MEDIUM,
    "moderate": TaskPriority.MEDIUM,
    "high": TaskPriority.HIGH,
    "haute": TaskPriority.HIGH,
    "élevée": TaskPriority.HIGH,
    "elevee": TaskPriority.HIGH,
    "important": TaskPriority.HIGH,
    "urgent": TaskPriority.URGENT,
    "urgente": TaskPriority.URGENT,
    "critical": TaskPriority.URGENT,
    "critique": TaskPriority.URGENT,
}

# Day 0 of the 1900 date system as spreadsheet applications count it
SPREADSHEET_EPOCH = date(1899, 12, 30)

_DMY = re.compile(r"(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})")
# A calendar string needs a year, a day/month pair or a month name; time-only
# cells ("10:30") and durations ("12 h") are not dates
_DATE_PART = re.compile(
    r"\d{4}|\d{1,2}\s*[/.\-]\s*\d{1,2}"
    r"|\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\b",
    re.IGNORECASE,
)
_HOURS_SUFFIX = re.compile(r"\s*(h|hrs?|hours?|heures?)$", re.IGNORECASE)
_HEX_COLOR = re.compile(r"#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})")
_TAG_SPLIT = re.compile(r"[,;]")


def _clean(value: str | None) -> str:
    return (value or "").strip()


def parse_number(value: str | None) -> float | None:
    """Locale-agnostic float parse ("1,5", "1.5", "1 234,5", "1,234.5").

    When both "," and "." occur the rightmost one is the decimal separator.
    Returns None for blanks, text, NaN and infinities.
    """
    s = _clean(value).replace(" ", "").replace(" ", "")
    if not s:
        return None
    if "," in s and "." in s:
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        s = s.replace(",", ".")
    try:
        n = float(s)
    except ValueError:
        return None
    return n if math.isfinite(n) else None


def normalize_status(value: str | None) -> TaskStatus:
    return STATUS_SYNONYMS.get(_clean(value).lower(), TaskStatus.TODO)


def normalize_priority(value: str | None) -> TaskPriority:
    return PRIORITY_SYNONYMS.get(_clean(value).lower(), TaskPriority.MEDIUM)


def _calendar_parse(s: str) -> date | None:
    # "today"/"now" style keywords are not dates from a spreadsheet
    if not any(ch.isdigit() for ch in s) or _DATE_PART.search(s) is None:
        return None
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            ts = pd.to_datetime(s, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if ts is None or pd.isna(ts) or ts.year < SPREADSHEET_EPOCH.year:
        return None
    return ts.date()


def _dmy_parse(s: str) -> date | None:
    match = _DMY.search(s)
    if match is None:
        return None
    day, month, year = (int(g) for g in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def normalize_date(value: str | None, *, serial_min: float = 0, serial_max: float = 100000) -> date | None:
    """Parse a date cell.

    Attempts, first success wins:
    1. bare number strictly between serial_min and serial_max -> spreadsheet
       serial (days since 1899-12-30, time of day dropped)
    2. generic calendar string (ISO, month-first "03/04/2024", "March 4 2024")
    3. explicit day/month/year with "/" or "-" ("25/12/2024", "25-12-2024")

    A bare number outside the serial bounds is not a date.
    """
    s = _clean(value)
    if not s:
        return None

    serial = parse_number(s)
    if serial is not None and re.fullmatch(r"[\d\s.,+-]+", s):
        if serial_min < serial < serial_max:
            try:
                return SPREADSHEET_EPOCH + timedelta(days=math.floor(serial))
            except OverflowError:
                return None
        return None

    parsed = _calendar_parse(s)
    if parsed is not None:
        return parsed
    return _dmy_parse(s)


def normalize_hours(value: str | None) -> float | None:
    """Non-negative hour count ("7.5", "7,5", "8h"); anything else -> None."""
    s = _HOURS_SUFFIX.sub("", _clean(value))
    n = parse_number(s)
    if n is None or n < 0:
        return None
    return n


def normalize_progress(value: str | None) -> int:
    """Percentage 0..100 ("75%", "75", "12.6" -> 13); non-numeric -> 0."""
    s = _clean(value)
    if s.endswith("%"):
        s = s[:-1]
    n = parse_number(s)
    if n is None:
        return 0
    return int(round(min(100.0, max(0.0, n))))


def normalize_tags(value: str | None) -> tuple[str, ...]:
    """Split on "," or ";", trim, drop empties and repeats (first-seen order)."""
    tags: list[str] = []
    for part in _TAG_SPLIT.split(_clean(value)):
        tag = part.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tuple(tags)


def normalize_color(value: str | None) -> str | None:
    """"#rrggbb"/"#rgb" (hash optional) -> lower-case "#rrggbb"; else None."""
    match = _HEX_COLOR.fullmatch(_clean(value))
    if match is None:
        return None
    digits = match.group(1).lower()
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return "#" + digits
