from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Any

import pandas as pd

ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
# Slash dates are always read month-first; there is no locale detection.
US_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
US_SHORT_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2})$")
# Two-digit years below the pivot land in the 2000s, the rest in the 1900s.
TWO_DIGIT_YEAR_PIVOT = 50
# The general-purpose fallback only sees text that carries a four-digit year, so bare
# clock times like "14:30" are never promoted to today's date.
FALLBACK_YEAR_RE = re.compile(r"\d{4}")

CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")
AM_PM_RE = re.compile(r"^(\d{1,2}):?(\d{2})?\s*(am|pm)$", re.IGNORECASE)

DEFAULT_ONSET_TIME = time(12, 0)

# Kept a month inside the nanosecond Timestamp range so padded bins cannot overflow.
EARLIEST_ONSET_DATE = (pd.Timestamp.min + pd.Timedelta(days=31)).date()
LATEST_ONSET_DATE = (pd.Timestamp.max - pd.Timedelta(days=31)).date()


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value).strip()


def _in_range(value: date) -> date | None:
    if EARLIEST_ONSET_DATE <= value <= LATEST_ONSET_DATE:
        return value
    return None


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return _in_range(date(year, month, day))
    except ValueError:
        return None


def _expand_year(two_digit_year: int) -> int:
    if two_digit_year < TWO_DIGIT_YEAR_PIVOT:
        return 2000 + two_digit_year
    return 1900 + two_digit_year


def parse_date(value: Any) -> date | None:
    """Parse a heterogeneous date value into a calendar date, or None."""
    if value is pd.NaT:
        return None
    if isinstance(value, datetime):
        return _in_range(value.date())
    if isinstance(value, date):
        return _in_range(value)

    text = _clean_text(value)
    if not text:
        return None

    match = ISO_DATE_RE.match(text)
    if match:
        return _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    match = US_DATE_RE.match(text)
    if match:
        return _safe_date(int(match.group(3)), int(match.group(1)), int(match.group(2)))

    match = US_SHORT_DATE_RE.match(text)
    if match:
        year = _expand_year(int(match.group(3)))
        return _safe_date(year, int(match.group(1)), int(match.group(2)))

    if not FALLBACK_YEAR_RE.search(text):
        return None
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return _in_range(parsed.date())


def normalize_date(value: Any) -> str | None:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed is not None else None


def parse_time(value: Any) -> time | None:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)

    text = _clean_text(value)
    if not text:
        return None

    match = CLOCK_RE.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            return None
        return time(hours, minutes)

    match = AM_PM_RE.match(text)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2) or "0")
        if not 1 <= hours <= 12 or minutes > 59:
            return None
        is_pm = match.group(3).lower() == "pm"
        if is_pm and hours != 12:
            hours += 12
        if not is_pm and hours == 12:
            hours = 0
        return time(hours, minutes)

    return None


def normalize_time(value: Any) -> str | None:
    parsed = parse_time(value)
    return parsed.strftime("%H:%M") if parsed is not None else None


def combine(date_value: Any, time_value: Any = None) -> pd.Timestamp | None:
    """Combine a date and optional time into a naive wall-clock instant.

    A missing or unreadable time places the case at noon, the middle of its day, so
    day-or-wider bins never depend on which side of midnight an unknown time falls.
    Returns None when the date cannot be parsed.
    """
    onset_date = parse_date(date_value)
    if onset_date is None:
        return None
    onset_time = parse_time(time_value) or DEFAULT_ONSET_TIME
    return pd.Timestamp(datetime.combine(onset_date, onset_time))
