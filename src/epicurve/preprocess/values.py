from __future__ import annotations

import math
from typing import Any

import pandas as pd

CLASSIFICATIONS = ("confirmed", "probable", "suspected")
SEXES = ("male", "female", "other", "unknown")
OUTCOMES = ("alive", "deceased", "unknown")
AGE_GROUPS = ("0-4", "5-14", "15-24", "25-44", "45-64", "65+")

DEFAULT_CLASSIFICATION = "confirmed"

# Ordered keyword tables: the first row with a keyword contained in the value wins.
CLASSIFICATION_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("confirmed", ("confirm",)),
    ("probable", ("prob",)),
    ("suspected", ("suspect", "poss")),
)

OUTCOME_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("alive", ("alive", "recovered", "survived")),
    ("deceased", ("dead", "deceased", "died", "fatal")),
    ("unknown", ("unknown",)),
)

SEX_EXACT = {
    "m": "male",
    "f": "female",
    "u": "unknown",
}

# Upper age bounds (exclusive) for each group; anything above the last bound is 65+.
AGE_GROUP_BOUNDS: tuple[tuple[int, str], ...] = (
    (5, "0-4"),
    (15, "5-14"),
    (25, "15-24"),
    (45, "25-44"),
    (65, "45-64"),
)


def _lowered(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value).strip().lower()


def _match_keywords(
    text: str,
    table: tuple[tuple[str, tuple[str, ...]], ...],
) -> str | None:
    for label, keywords in table:
        if any(keyword in text for keyword in keywords):
            return label
    return None


def normalize_classification(value: Any) -> str:
    text = _lowered(value)
    if not text:
        return DEFAULT_CLASSIFICATION
    return _match_keywords(text, CLASSIFICATION_KEYWORDS) or DEFAULT_CLASSIFICATION


def normalize_sex(value: Any) -> str | None:
    text = _lowered(value)
    if not text:
        return None
    if text in SEX_EXACT:
        return SEX_EXACT[text]
    # "female" contains "male", so it has to be ruled out first.
    if "female" in text or "woman" in text:
        return "female"
    if "male" in text or text == "man":
        return "male"
    if "other" in text or "non" in text:
        return "other"
    if "unknown" in text:
        return "unknown"
    return None


def normalize_outcome(value: Any) -> str | None:
    text = _lowered(value)
    if not text:
        return None
    if text == "u":
        return "unknown"
    return _match_keywords(text, OUTCOME_KEYWORDS)


def parse_age(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    if not text:
        return None
    numeric = pd.to_numeric(text, errors="coerce")
    if pd.isna(numeric):
        return None
    age = float(numeric)
    if not math.isfinite(age) or age < 0:
        return None
    return age


def age_group_for(age: Any) -> str | None:
    parsed = parse_age(age)
    if parsed is None:
        return None
    whole_years = int(parsed)
    for upper, label in AGE_GROUP_BOUNDS:
        if whole_years < upper:
            return label
    return "65+"


def normalize_age_group(value: Any) -> str | None:
    text = _lowered(value).replace(" ", "")
    return text if text in AGE_GROUPS else None


def clean_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    text = str(value).strip()
    return text or None
