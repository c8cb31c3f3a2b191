from __future__ import annotations

from pathlib import Path

from epicurve.config import ChartConfig
from epicurve.features.annotations import resolve_annotations
from epicurve.features.binning import build_curve
from epicurve.repository import CaseRepository
from epicurve.viz.epicurve import date_format_for, plot_epicurve, tick_count_for


def test_plot_epicurve_writes_stacked_chart(tmp_path: Path) -> None:
    repository = CaseRepository()
    repository.add_many(
        [
            {"onset_date": "2024-01-15", "onset_time": "14:00", "classification": "confirmed"},
            {"onset_date": "2024-01-15", "onset_time": "22:00", "classification": "probable"},
            {"onset_date": "2024-01-17", "classification": "suspected"},
        ]
    )
    chart = ChartConfig.model_validate(
        {
            "bin_size": "12hour",
            "stratify_by": "classification",
            "title": "Test outbreak",
            "show_first_case": True,
            "exposure": {"date": "2024-01-15", "time": "02:00"},
            "interventions": [{"date": "2024-02-01"}],
            "incubation": {"min_hours": 6, "max_hours": 200},
        }
    )
    curve = build_curve(repository.all(), chart)
    annotations = resolve_annotations(chart, repository.all())

    output = plot_epicurve(curve, tmp_path / "figures" / "curve.png", annotations=annotations)
    assert output.exists()
    assert output.stat().st_size > 0


def test_plot_epicurve_without_cases_writes_placeholder(tmp_path: Path) -> None:
    output = plot_epicurve(build_curve([], ChartConfig()), tmp_path / "empty.png")
    assert output.exists()


def test_axis_helpers() -> None:
    assert date_format_for("hour") == "%b %d %H:%M"
    assert date_format_for("unknown") == "%b %d"
    assert tick_count_for(3) == 4
    assert tick_count_for(12) == 10
