from __future__ import annotations

import csv
import re
from pathlib import Path
from typing import Any, Sequence

import pandas as pd

from epicurve.io.schema import CASE_FIELDS
from epicurve.repository import CaseRecord

# Line breaks inside free text would split a row when the export is read back.
LINE_BREAK_RE = re.compile(r"\s*[\r\n]+\s*")

TEMPLATE_ROWS: tuple[tuple[str, ...], ...] = (
    ("CASE-0001", "2024-01-15", "14:30", "confirmed", "45", "45-64", "male", "alive", "Ward A"),
    ("CASE-0002", "2024-01-15", "16:00", "probable", "32", "25-44", "female", "alive", "Ward B"),
    ("CASE-0003", "2024-01-16", "", "suspected", "67", "65+", "male", "unknown", "Ward A"),
)


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if pd.isna(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return LINE_BREAK_RE.sub(" ", str(value))


def export_cases_csv(cases: Sequence[CaseRecord]) -> str:
    """Serialize cases in the given order; every data field is quoted."""
    if not cases:
        return ""
    frame = pd.DataFrame(
        [[_format_value(case.field_value(field)) for field in CASE_FIELDS] for case in cases],
        columns=list(CASE_FIELDS),
    )
    rows = frame.to_csv(index=False, header=False, quoting=csv.QUOTE_ALL, lineterminator="\n")
    return ",".join(CASE_FIELDS) + "\n" + rows.rstrip("\n")


def csv_template() -> str:
    lines = [",".join(CASE_FIELDS)]
    lines.extend(",".join(row) for row in TEMPLATE_ROWS)
    return "\n".join(lines)


def write_text(text: str, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def write_table(df: pd.DataFrame, path: Path, fmt: str = "csv") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "csv":
        df.to_csv(path, index=False)
        return path
    if fmt == "json":
        df.to_json(path, orient="records", date_format="iso", indent=2)
        return path
    raise ValueError(f"Unsupported table format: {fmt}")
