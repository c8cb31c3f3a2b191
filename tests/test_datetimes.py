from __future__ import annotations

from datetime import date, datetime, time

import pandas as pd
import pytest

from epicurve.preprocess.datetimes import (
    combine,
    normalize_date,
    normalize_time,
    parse_date,
    parse_time,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2024-01-15", "2024-01-15"),
        ("2024-1-5", "2024-01-05"),
        ("01/15/2024", "2024-01-15"),
        ("1/5/2024", "2024-01-05"),
        ("January 15, 2024", "2024-01-15"),
        ("  2024-01-15  ", "2024-01-15"),
        ("1/15/24", "2024-01-15"),
        ("3/1/49", "2049-03-01"),
        ("3/1/50", "1950-03-01"),
        ("12/31/99", "1999-12-31"),
    ],
)
def test_normalize_date_accepts_common_formats(raw: str, expected: str) -> None:
    assert normalize_date(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        "",
        None,
        "not a date",
        "2024-02-30",
        "13/01/2024",
        "2/30/24",
        "14:30",
        "3024-01-16",
        "01/16/3024",
        "1600-01-01",
        "January 16, 3024",
    ],
)
def test_normalize_date_rejects_unparseable_values(raw: object) -> None:
    assert normalize_date(raw) is None


def test_parse_date_passes_through_date_objects() -> None:
    assert parse_date(date(2024, 1, 15)) == date(2024, 1, 15)
    assert parse_date(datetime(2024, 1, 15, 8, 30)) == date(2024, 1, 15)
    assert parse_date(pd.NaT) is None
    assert parse_date(float("nan")) is None
    assert parse_date(date(3024, 1, 16)) is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("14:30", "14:30"),
        ("9:05", "09:05"),
        ("08:00:59", "08:00"),
        ("2:30 PM", "14:30"),
        ("2:30pm", "14:30"),
        ("12:15 AM", "00:15"),
        ("12:00 pm", "12:00"),
        ("7 am", "07:00"),
    ],
)
def test_normalize_time_accepts_clock_and_meridiem_forms(raw: str, expected: str) -> None:
    assert normalize_time(raw) == expected


@pytest.mark.parametrize("raw", ["", None, "25:00", "12:60", "13:00 PM", "0:30 am", "noon"])
def test_normalize_time_rejects_out_of_range_values(raw: object) -> None:
    assert normalize_time(raw) is None


def test_parse_time_drops_seconds_from_time_objects() -> None:
    assert parse_time(time(8, 15, 42)) == time(8, 15)


def test_combine_defaults_missing_time_to_noon() -> None:
    assert combine("2024-01-15") == pd.Timestamp("2024-01-15 12:00")
    assert combine("2024-01-15", "") == pd.Timestamp("2024-01-15 12:00")
    assert combine("2024-01-15", "garbage") == pd.Timestamp("2024-01-15 12:00")


def test_combine_uses_time_when_present() -> None:
    assert combine("01/15/2024", "8:00 PM") == pd.Timestamp("2024-01-15 20:00")


def test_combine_returns_none_without_a_date() -> None:
    assert combine(None, "08:00") is None
    assert combine("soon", "08:00") is None


def test_combine_orders_instants_by_date_then_time() -> None:
    instants = [
        combine("2024-01-14", "23:59"),
        combine("2024-01-15", "00:00"),
        combine("2024-01-15"),
        combine("2024-01-15", "12:01"),
        combine("01/16/2024", "1:00 am"),
    ]
    assert instants == sorted(instants)
    assert len(set(instants)) == len(instants)


def test_combine_rejects_dates_outside_the_timestamp_range() -> None:
    assert combine("3024-01-16", "08:00") is None
    assert combine("2262-12-31") is None
