from __future__ import annotations

from datetime import date, timedelta

import pytest

from task_sheet_import.models.fields import TaskPriority, TaskStatus
from task_sheet_import.services.normalize import (
    SPREADSHEET_EPOCH,
    normalize_color,
    normalize_date,
    normalize_hours,
    normalize_priority,
    normalize_progress,
    normalize_status,
    normalize_tags,
    parse_number,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("terminé", TaskStatus.COMPLETED),
        ("  Terminé ", TaskStatus.COMPLETED),
        ("DONE", TaskStatus.COMPLETED),
        ("en cours", TaskStatus.IN_PROGRESS),
        ("in-progress", TaskStatus.IN_PROGRESS),
        ("à faire", TaskStatus.TODO),
        ("annulé", TaskStatus.CANCELLED),
        ("canceled", TaskStatus.CANCELLED),
        ("", TaskStatus.TODO),
        ("peut-être", TaskStatus.TODO),
        (None, TaskStatus.TODO),
    ],
)
def test_normalize_status(raw, expected):
    assert normalize_status(raw) is expected


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("haute", TaskPriority.HIGH),
        ("Élevée", TaskPriority.HIGH),
        ("critique", TaskPriority.URGENT),
        ("basse", TaskPriority.LOW),
        ("normale", TaskPriority.MEDIUM),
        ("???", TaskPriority.MEDIUM),
        ("", TaskPriority.MEDIUM),
    ],
)
def test_normalize_priority(raw, expected):
    assert normalize_priority(raw) is expected


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1,5", 1.5),
        ("1.5", 1.5),
        ("1 234,5", 1234.5),
        ("1,234.5", 1234.5),
        ("1.234,5", 1234.5),
        ("-2", -2.0),
        ("abc", None),
        ("", None),
        ("nan", None),
        ("inf", None),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_serial_date():
    assert normalize_date("42000") == date(2014, 12, 27)
    assert normalize_date("45366") == date(2024, 3, 15)
    # time of day is dropped
    assert normalize_date("45366.75") == date(2024, 3, 15)


@pytest.mark.parametrize("day", [date(1900, 3, 1), date(2015, 1, 1), date(2024, 2, 29), date(2099, 12, 31)])
def test_serial_date_round_trip(day):
    serial = (day - SPREADSHEET_EPOCH).days
    assert normalize_date(str(serial)) == day


def test_numbers_outside_serial_bounds_are_not_dates():
    assert normalize_date("0") is None
    assert normalize_date("-5") is None
    assert normalize_date("250000") is None
    assert normalize_date("42000", serial_min=42000, serial_max=50000) is None
    assert normalize_date("45000", serial_min=42000, serial_max=50000) == SPREADSHEET_EPOCH + timedelta(days=45000)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2024-03-15", date(2024, 3, 15)),
        ("2024-03-15T09:30:00", date(2024, 3, 15)),
        ("March 4 2024", date(2024, 3, 4)),
        ("25/12/2024", date(2024, 12, 25)),
        ("31-01-2025", date(2025, 1, 31)),
    ],
)
def test_calendar_dates(raw, expected):
    assert normalize_date(raw) == expected


@pytest.mark.parametrize(
    "raw", ["", "   ", "demain", "today", "n/a", "32/13/2024", "10:30", "12 h", "Semaine 12", "Q3", "Lot 3"]
)
def test_unparseable_dates(raw):
    assert normalize_date(raw) is None


@pytest.mark.parametrize(
    "raw,expected",
    [("7.5", 7.5), ("7,5", 7.5), ("8h", 8.0), ("3 heures", 3.0), ("0", 0.0), ("-1", None), ("beaucoup", None), ("", None)],
)
def test_normalize_hours(raw, expected):
    assert normalize_hours(raw) == expected


@pytest.mark.parametrize(
    "raw,expected",
    [("75%", 75), ("75", 75), (" 40 % ", 40), ("12.6", 13), ("150", 100), ("-3", 0), ("moitié", 0), ("", 0)],
)
def test_normalize_progress(raw, expected):
    assert normalize_progress(raw) == expected


def test_normalize_tags():
    assert normalize_tags("front, design;front ; ,urgent") == ("front", "design", "urgent")
    assert normalize_tags("") == ()
    assert normalize_tags(None) == ()


@pytest.mark.parametrize(
    "raw,expected",
    [("#FF5733", "#ff5733"), ("ff5733", "#ff5733"), ("#ABC", "#aabbcc"), ("f0a", "#ff00aa"), ("rouge", None), ("#12345", None), ("", None)],
)
def test_normalize_color(raw, expected):
    assert normalize_color(raw) == expected
