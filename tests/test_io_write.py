from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from epicurve.io.read import ingest_text
from epicurve.io.schema import CASE_FIELDS
from epicurve.io.write import (
    csv_template,
    export_cases_csv,
    write_table,
    write_text,
)
from epicurve.repository import CaseRepository


def test_export_cases_csv_quotes_every_field() -> None:
    repository = CaseRepository()
    repository.add(
        {
            "onset_date": "2024-01-15",
            "onset_time": "14:30",
            "age": 45,
            "sex": "M",
            "custom": 'Ward "A"',
        }
    )

    lines = export_cases_csv(repository.all()).split("\n")
    assert lines[0] == ",".join(CASE_FIELDS)
    assert lines[1] == (
        '"CASE-0001","2024-01-15","14:30","confirmed","45","45-64","male","","Ward ""A"""'
    )


def test_export_cases_csv_is_empty_without_cases() -> None:
    assert export_cases_csv([]) == ""


def test_exported_cases_reimport_with_the_same_values() -> None:
    repository = CaseRepository()
    repository.add_many(
        [
            {"onset_date": "2024-01-16", "classification": "probable", "age": 3.5},
            {"onset_date": "2024-01-15", "onset_time": "08:00", "outcome": "died"},
        ]
    )

    result = ingest_text(export_cases_csv(repository.all()))
    assert result.mapping == {field: field for field in CASE_FIELDS}

    reimported = CaseRepository()
    reimported.add_many(result.cases)
    assert reimported.all() == repository.all()


def test_csv_template_is_ingestable() -> None:
    template = csv_template()
    assert template.splitlines()[0] == ",".join(CASE_FIELDS)

    result = ingest_text(template)
    assert [case["id"] for case in result.cases] == ["CASE-0001", "CASE-0002", "CASE-0003"]
    assert result.cases[2]["onset_time"] is None


def test_write_text_creates_parent_directories(tmp_path: Path) -> None:
    text_path = write_text("hello", tmp_path / "nested" / "out.txt")
    assert text_path.read_text(encoding="utf-8") == "hello"


def test_write_table_supports_csv_and_json(tmp_path: Path) -> None:
    df = pd.DataFrame({"bin_start": [pd.Timestamp("2024-01-15")], "total": [2]})

    csv_path = write_table(df, tmp_path / "tables" / "bins.csv")
    assert csv_path.read_text(encoding="utf-8").splitlines()[0] == "bin_start,total"

    json_path = write_table(df, tmp_path / "tables" / "bins.json", fmt="json")
    records = json.loads(json_path.read_text(encoding="utf-8"))
    assert records[0]["total"] == 2

    with pytest.raises(ValueError, match="Unsupported table format"):
        write_table(df, tmp_path / "tables" / "bins.parquet", fmt="parquet")


def test_line_breaks_in_free_text_do_not_split_exported_rows() -> None:
    repository = CaseRepository()
    repository.add({"onset_date": "2024-01-15", "custom": "Ward A\r\n  bed 3"})

    exported = export_cases_csv(repository.all())
    assert len(exported.split("\n")) == 2

    result = ingest_text(exported)
    assert result.cases[0]["custom"] == "Ward A bed 3"
