from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Sequence

import pandas as pd

from epicurve.config import ChartConfig
from epicurve.preprocess.datetimes import parse_date, parse_time
from epicurve.repository import CaseRecord

DEFAULT_EXPOSURE_LABEL = "Exposure"
FIRST_CASE_LABEL = "First case"
INCUBATION_LABEL = "Expected incubation period"


@dataclass(frozen=True)
class Marker:
    kind: str
    instant: pd.Timestamp
    label: str


@dataclass(frozen=True)
class Window:
    start: pd.Timestamp
    end: pd.Timestamp
    label: str = INCUBATION_LABEL


@dataclass(frozen=True)
class Annotations:
    first_case: Marker | None = None
    exposure: Marker | None = None
    interventions: list[Marker] = field(default_factory=list)
    incubation_window: Window | None = None

    def markers(self) -> list[Marker]:
        items = [self.first_case, self.exposure, *self.interventions]
        return [item for item in items if item is not None]


def annotation_instant(
    date_value: str | None,
    time_value: str | None = None,
) -> pd.Timestamp | None:
    """Instant for an annotation marker: start of day unless a time is given."""
    marker_date = parse_date(date_value)
    if marker_date is None:
        return None
    marker_time = parse_time(time_value) or time(0, 0)
    return pd.Timestamp(datetime.combine(marker_date, marker_time))


def resolve_annotations(config: ChartConfig, cases: Sequence[CaseRecord]) -> Annotations:
    first_case = None
    if config.show_first_case:
        dated = [case.onset_instant for case in cases if case.onset_instant is not None]
        if dated:
            first_case = Marker(kind="first_case", instant=min(dated), label=FIRST_CASE_LABEL)

    exposure = None
    if config.exposure is not None:
        instant = annotation_instant(config.exposure.date, config.exposure.time)
        if instant is not None:
            exposure = Marker(
                kind="exposure",
                instant=instant,
                label=config.exposure.label or DEFAULT_EXPOSURE_LABEL,
            )

    interventions: list[Marker] = []
    for position, intervention in enumerate(config.interventions, start=1):
        instant = annotation_instant(intervention.date, intervention.time)
        if instant is None:
            continue
        interventions.append(
            Marker(
                kind="intervention",
                instant=instant,
                label=intervention.label or f"Intervention {position}",
            )
        )

    window = None
    if exposure is not None and config.incubation is not None:
        start = exposure.instant + pd.Timedelta(hours=config.incubation.min_hours)
        end = exposure.instant + pd.Timedelta(hours=config.incubation.max_hours)
        if end > start:
            window = Window(start=start, end=end)

    return Annotations(
        first_case=first_case,
        exposure=exposure,
        interventions=interventions,
        incubation_window=window,
    )
