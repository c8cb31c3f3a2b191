from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from epicurve.config import AppConfig, ChartConfig, load_config


def test_load_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "missing.yaml")

    assert config == load_config(None)
    assert config.chart.bin_size == "day"
    assert config.chart.stratify_by == "none"
    assert config.ingest.encoding == "utf-8-sig"


def test_bundled_configs_validate() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    default = load_config(repo_root / "configs" / "default.yaml")
    example = load_config(repo_root / "configs" / "wedding_outbreak.yaml")

    assert default.chart == ChartConfig()
    assert example.chart.bin_size == "6hour"
    assert example.chart.exposure.label == "Wedding reception dinner"
    assert example.reference.pathogen == "salmonella"


def test_load_config_resolves_relative_pathogen_path(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump({"reference": {"pathogens_path": "reference/pathogens.yaml"}}),
        encoding="utf-8",
    )

    config = load_config(config_path)
    assert config.reference.pathogens_path == str(
        (tmp_path / "reference" / "pathogens.yaml").resolve()
    )


def test_load_config_reads_pathogen_path_from_environment(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    override = tmp_path / "custom.yaml"
    monkeypatch.setenv("EPICURVE_PATHOGENS_PATH", str(override))

    assert load_config(None).reference.pathogens_path == str(override)


def test_chart_config_substitutes_defaults_for_unsupported_values() -> None:
    chart = ChartConfig.model_validate(
        {"bin_size": "Fortnight", "stratify_by": "blood_type", "color_scheme": "neon"}
    )

    assert chart.bin_size == "day"
    assert chart.stratify_by == "none"
    assert chart.color_scheme == "default"


def test_chart_config_normalizes_case_and_aliases() -> None:
    chart = ChartConfig.model_validate({"bin_size": " WEEK-ISO ", "stratify_by": "ageGroup"})

    assert chart.bin_size == "week-iso"
    assert chart.stratify_by == "age_group"


def test_app_config_rejects_unknown_sections() -> None:
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"charts": {}})


def test_incubation_hours_must_be_non_negative() -> None:
    with pytest.raises(ValidationError):
        ChartConfig.model_validate({"incubation": {"min_hours": -1, "max_hours": 5}})
