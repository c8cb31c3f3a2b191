from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

from epicurve.errors import MissingRequiredColumnError, NoValidRowsError
from epicurve.io.schema import apply_overrides, detect_mappings, has_date_column
from epicurve.preprocess.datetimes import normalize_date, normalize_time
from epicurve.preprocess.values import (
    clean_text,
    normalize_age_group,
    normalize_classification,
    normalize_outcome,
    normalize_sex,
    parse_age,
)

LOGGER = logging.getLogger(__name__)

LINE_SPLIT_RE = re.compile(r"\r\n|\r|\n")
DELIMITERS = (",", "\t")

CaseInput = dict[str, Any]


@dataclass(frozen=True)
class ParseResult:
    headers: list[str]
    rows: list[dict[str, str]]
    error: str | None = None


@dataclass(frozen=True)
class IngestResult:
    headers: list[str]
    mapping: dict[str, str]
    cases: list[CaseInput]
    dropped: int = 0
    warnings: list[str] = field(default_factory=list)


def split_row(line: str) -> list[str]:
    """Split one delimited line, honouring double-quoted fields.

    Commas and tabs both delimit outside quotes, so pasted rows that mix the two
    still split. A doubled quote inside a quoted field is a literal quote.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    index = 0
    while index < len(line):
        char = line[index]
        if char == '"':
            if in_quotes and index + 1 < len(line) and line[index + 1] == '"':
                current.append('"')
                index += 1
            else:
                in_quotes = not in_quotes
        elif char in DELIMITERS and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        index += 1
    fields.append("".join(current).strip())
    return fields


def parse_delimited(text: str, require_date_column: bool = True) -> ParseResult:
    lines = [line for line in LINE_SPLIT_RE.split(text or "") if line.strip()]
    if not lines:
        return ParseResult(headers=[], rows=[], error="Input is empty: expected a header row")

    headers = split_row(lines[0].lstrip("\ufeff"))
    if require_date_column and not has_date_column(headers):
        return ParseResult(
            headers=headers,
            rows=[],
            error=str(MissingRequiredColumnError(headers)),
        )

    rows: list[dict[str, str]] = []
    for line in lines[1:]:
        values = split_row(line)
        rows.append(
            {
                header: values[position] if position < len(values) else ""
                for position, header in enumerate(headers)
            }
        )
    return ParseResult(headers=headers, rows=rows, error=None)


def _convert_value(field_name: str, value: Any) -> Any:
    if field_name == "onset_date":
        return normalize_date(value)
    if field_name == "onset_time":
        return normalize_time(value)
    if field_name == "classification":
        return normalize_classification(value)
    if field_name == "sex":
        return normalize_sex(value)
    if field_name == "outcome":
        return normalize_outcome(value)
    if field_name == "age":
        return parse_age(value)
    if field_name == "age_group":
        return normalize_age_group(value)
    return clean_text(value)


def convert_rows(
    rows: Sequence[Mapping[str, Any]],
    mapping: Mapping[str, str],
) -> list[CaseInput]:
    """Turn raw rows into case inputs, dropping rows without a parseable onset date.

    When several headers map to the same field, the last non-empty value wins.
    Identifiers and derived fields are left for the repository to fill in.
    """
    cases: list[CaseInput] = []
    dropped = 0
    for row in rows:
        case: CaseInput = {}
        for header, field_name in mapping.items():
            converted = _convert_value(field_name, row.get(header))
            if converted is None and case.get(field_name) is not None:
                continue
            case[field_name] = converted
        if not case.get("onset_date"):
            dropped += 1
            continue
        cases.append(case)
    if dropped:
        LOGGER.debug("Dropped %d row(s) without a parseable onset date", dropped)
    return cases


def ingest_text(
    text: str,
    overrides: Mapping[str, str] | None = None,
) -> IngestResult:
    """Parse, map and normalize delimited text without touching any repository."""
    overrides = dict(overrides or {})
    # An explicit date assignment stands in for a recognisable date header.
    parsed = parse_delimited(
        text,
        require_date_column="onset_date" not in overrides.values(),
    )
    if parsed.error is not None:
        raise MissingRequiredColumnError(parsed.headers)
    mapping = detect_mappings(parsed.headers)
    if overrides:
        mapping = apply_overrides(mapping, overrides, parsed.headers)
    if "onset_date" not in mapping.values():
        raise MissingRequiredColumnError(parsed.headers)

    cases = convert_rows(parsed.rows, mapping)
    dropped = len(parsed.rows) - len(cases)
    if not cases:
        raise NoValidRowsError(dropped=dropped)

    warnings: list[str] = []
    if dropped:
        warnings.append(f"{dropped} row(s) skipped: onset date could not be parsed")
    unmapped = [header for header in parsed.headers if header not in mapping]
    if unmapped:
        warnings.append(f"Unmapped columns ignored: {', '.join(unmapped)}")
    for message in warnings:
        LOGGER.info(message)
    return IngestResult(
        headers=parsed.headers,
        mapping=mapping,
        cases=cases,
        dropped=dropped,
        warnings=warnings,
    )


def read_case_file(
    path: Path,
    overrides: Mapping[str, str] | None = None,
    encoding: str = "utf-8-sig",
) -> IngestResult:
    # Spreadsheet exports often carry a BOM; utf-8-sig drops it before header detection.
    text = path.read_text(encoding=encoding)
    return ingest_text(text, overrides=overrides)
