from __future__ import annotations

import pandas as pd

from epicurve.config import ChartConfig
from epicurve.features.annotations import annotation_instant, resolve_annotations
from epicurve.repository import CaseRepository


def _cases() -> list:
    repository = CaseRepository()
    repository.add_many(
        [
            {"onset_date": "2024-01-15", "onset_time": "02:00"},
            {"onset_date": "2024-01-14", "onset_time": "23:30"},
            {"onset_date": "not recorded"},
        ]
    )
    return repository.all()


def test_annotation_instant_defaults_to_start_of_day() -> None:
    assert annotation_instant("2024-01-14") == pd.Timestamp("2024-01-14 00:00")
    assert annotation_instant("01/14/2024", "7:00 PM") == pd.Timestamp("2024-01-14 19:00")
    assert annotation_instant("") is None


def test_resolve_annotations_builds_markers_and_incubation_window() -> None:
    config = ChartConfig.model_validate(
        {
            "show_first_case": True,
            "exposure": {"date": "2024-01-14", "time": "19:00"},
            "interventions": [
                {"date": "2024-01-16", "label": "Kitchen closed"},
                {"date": "2024-01-17"},
                {"date": "unknown"},
            ],
            "incubation": {"min_hours": 6, "max_hours": 72},
        }
    )
    annotations = resolve_annotations(config, _cases())

    assert annotations.first_case.instant == pd.Timestamp("2024-01-14 23:30")
    assert annotations.exposure.label == "Exposure"
    assert [marker.label for marker in annotations.interventions] == [
        "Kitchen closed",
        "Intervention 2",
    ]
    assert annotations.incubation_window.start == pd.Timestamp("2024-01-15 01:00")
    assert annotations.incubation_window.end == pd.Timestamp("2024-01-17 19:00")
    assert [marker.kind for marker in annotations.markers()] == [
        "first_case",
        "exposure",
        "intervention",
        "intervention",
    ]


def test_resolve_annotations_is_empty_by_default() -> None:
    annotations = resolve_annotations(ChartConfig(), _cases())

    assert annotations.markers() == []
    assert annotations.incubation_window is None


def test_incubation_window_needs_an_exposure_and_positive_width() -> None:
    without_exposure = ChartConfig.model_validate({"incubation": {"min_hours": 6, "max_hours": 72}})
    assert resolve_annotations(without_exposure, []).incubation_window is None

    zero_width = ChartConfig.model_validate(
        {
            "exposure": {"date": "2024-01-14"},
            "incubation": {"min_hours": 12, "max_hours": 12},
        }
    )
    assert resolve_annotations(zero_width, []).incubation_window is None
