from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping


@dataclass(frozen=True)
class CanonicalColumns:
    id: str = "id"
    onset_date: str = "onset_date"
    onset_time: str = "onset_time"
    classification: str = "classification"
    age: str = "age"
    age_group: str = "age_group"
    sex: str = "sex"
    outcome: str = "outcome"
    custom: str = "custom"


CASE_FIELDS: tuple[str, ...] = (
    CanonicalColumns.id,
    CanonicalColumns.onset_date,
    CanonicalColumns.onset_time,
    CanonicalColumns.classification,
    CanonicalColumns.age,
    CanonicalColumns.age_group,
    CanonicalColumns.sex,
    CanonicalColumns.outcome,
    CanonicalColumns.custom,
)

# Export header order doubles as the identity mapping for round-tripping exports.
IDENTITY_MAPPING: dict[str, str] = {field: field for field in CASE_FIELDS}

HEADER_STRIP_RE = re.compile(r"[^a-z_]")

# Matching is by substring, so more specific synonyms come before the generic ones
# they contain (onset_time before onset, age_group before age, vital_status before
# status). Table order is the tie-breaker and is part of the contract.
FIELD_SYNONYMS: tuple[tuple[str, str], ...] = (
    ("onset_time", "onset_time"),
    ("onsettime", "onset_time"),
    ("time", "onset_time"),
    ("onset_date", "onset_date"),
    ("onsetdate", "onset_date"),
    ("onset date", "onset_date"),
    ("date", "onset_date"),
    ("date_onset", "onset_date"),
    ("symptom_onset", "onset_date"),
    ("onset", "onset_date"),
    ("case_id", "id"),
    ("caseid", "id"),
    ("case_no", "id"),
    ("id", "id"),
    ("age_group", "age_group"),
    ("agegroup", "age_group"),
    ("age_category", "age_group"),
    ("age", "age"),
    ("age_years", "age"),
    ("outcome", "outcome"),
    ("status_outcome", "outcome"),
    ("vital_status", "outcome"),
    ("classification", "classification"),
    ("case_classification", "classification"),
    ("status", "classification"),
    ("sex", "sex"),
    ("gender", "sex"),
    ("custom", "custom"),
    ("category", "custom"),
    ("group", "custom"),
    ("notes", "custom"),
)


def normalize_header(header: str) -> str:
    return HEADER_STRIP_RE.sub("", str(header).strip().lower())


def _match_key(text: str) -> str:
    # "Vital Status" and "vital_status" should meet the same synonym.
    return normalize_header(text).replace("_", "")


def detect_field(header: str) -> str | None:
    normalized = _match_key(header)
    if not normalized:
        return None
    for pattern, field in FIELD_SYNONYMS:
        token = _match_key(pattern)
        if normalized == token or token in normalized:
            return field
    return None


def detect_mappings(headers: Iterable[str]) -> dict[str, str]:
    """Map each recognised header to a case field.

    Each header maps to at most one field. A field can be claimed by several headers
    or by none; resolving that is left to the caller.
    """
    mappings: dict[str, str] = {}
    for header in headers:
        field = detect_field(header)
        if field is not None:
            mappings[header] = field
    return mappings


def has_date_column(headers: Iterable[str]) -> bool:
    return any(detect_field(header) == "onset_date" for header in headers)


def apply_overrides(
    mappings: Mapping[str, str],
    overrides: Mapping[str, str],
    headers: Iterable[str],
) -> dict[str, str]:
    """Layer explicit header -> field assignments over detected mappings.

    An override field of "" or "ignore" drops the header from the mapping.
    """
    known_headers = set(headers)
    merged = dict(mappings)
    for header, field in overrides.items():
        if header not in known_headers:
            raise ValueError(f"Column override references unknown header: {header}")
        if field in ("", "ignore"):
            merged.pop(header, None)
            continue
        if field not in CASE_FIELDS:
            raise ValueError(f"Column override for {header!r} names unknown field: {field}")
        merged[header] = field
    return merged
