from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import pandas as pd

from epicurve.config import ChartConfig
from epicurve.features.colors import assign_colors
from epicurve.repository import CaseRecord

LOGGER = logging.getLogger(__name__)

BIN_WIDTHS: dict[str, pd.Timedelta] = {
    "hour": pd.Timedelta(hours=1),
    "6hour": pd.Timedelta(hours=6),
    "12hour": pd.Timedelta(hours=12),
    "day": pd.Timedelta(days=1),
    "week-cdc": pd.Timedelta(days=7),
    "week-iso": pd.Timedelta(days=7),
}

FLOOR_FREQ = {
    "hour": "h",
    "6hour": "6h",
    "12hour": "12h",
    "day": "D",
}

# pandas day-of-week numbering: Monday == 0, Sunday == 6.
WEEK_START_DAY = {
    "week-cdc": 6,
    "week-iso": 0,
}

ALL_CATEGORY = "all"
UNSPECIFIED_CATEGORY = "(unspecified)"


@dataclass(frozen=True)
class Stack:
    category: str
    count: int


@dataclass(frozen=True)
class Bin:
    start: pd.Timestamp
    end: pd.Timestamp
    total: int
    stacks: tuple[Stack, ...] = ()

    def count_for(self, category: str) -> int:
        for stack in self.stacks:
            if stack.category == category:
                return stack.count
        return 0


@dataclass(frozen=True)
class BinnedCurve:
    bins: list[Bin]
    categories: tuple[str, ...]
    colors: dict[str, str]
    config: ChartConfig


def coerce_chart_config(config: ChartConfig | Mapping[str, Any] | None) -> ChartConfig:
    if config is None:
        return ChartConfig()
    if isinstance(config, ChartConfig):
        return config
    return ChartConfig.model_validate(dict(config))


def bin_width(bin_size: str) -> pd.Timedelta:
    return BIN_WIDTHS.get(bin_size, BIN_WIDTHS["day"])


def floor_instant(instant: pd.Timestamp, bin_size: str) -> pd.Timestamp:
    """Floor a wall-clock instant to the start of its calendar-aligned bin."""
    instant = pd.Timestamp(instant)
    if bin_size in WEEK_START_DAY:
        day = instant.normalize()
        offset = (day.dayofweek - WEEK_START_DAY[bin_size]) % 7
        return day - pd.Timedelta(days=offset)
    return instant.floor(FLOOR_FREQ.get(bin_size, "D"))


def floor_series(instants: pd.Series, bin_size: str) -> pd.Series:
    if bin_size in WEEK_START_DAY:
        days = instants.dt.normalize()
        offsets = (days.dt.dayofweek - WEEK_START_DAY[bin_size]) % 7
        return days - pd.to_timedelta(offsets, unit="D")
    return instants.dt.floor(FLOOR_FREQ.get(bin_size, "D"))


def _category_label(value: Any) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return UNSPECIFIED_CATEGORY
    text = str(value).strip()
    return text or UNSPECIFIED_CATEGORY


def stratification_categories(cases: Sequence[CaseRecord], stratify_by: str) -> tuple[str, ...]:
    """Ordered categories for a stratification field across the whole case set.

    Only dated cases contribute. Cases with no value for the field are gathered under
    a single placeholder category so every bin's stacks still add up to its total.
    """
    if stratify_by == "none":
        return (ALL_CATEGORY,)
    labels = {
        _category_label(case.field_value(stratify_by))
        for case in cases
        if case.onset_instant is not None
    }
    return tuple(sorted(labels))


def bin_cases(
    cases: Sequence[CaseRecord],
    config: ChartConfig | Mapping[str, Any] | None = None,
) -> list[Bin]:
    """Bucket cases into contiguous, calendar-aligned, half-open time bins.

    The domain runs from one empty bin before the earliest case to one empty bin
    after the latest, and every interval in between is emitted even when empty.
    """
    chart = coerce_chart_config(config)
    dated = [case for case in cases if case.onset_instant is not None]
    if not dated:
        return []

    bin_size = chart.bin_size
    stratify_by = chart.stratify_by
    width = bin_width(bin_size)

    instants = pd.Series([case.onset_instant for case in dated], dtype="datetime64[ns]")
    domain_start = floor_instant(instants.min(), bin_size) - width
    domain_end = floor_instant(instants.max(), bin_size) + 2 * width
    n_bins = int((domain_end - domain_start) / width)

    if stratify_by == "none":
        labels = [ALL_CATEGORY] * len(dated)
    else:
        labels = [_category_label(case.field_value(stratify_by)) for case in dated]
    categories = stratification_categories(dated, stratify_by)

    frame = pd.DataFrame(
        {
            "position": (floor_series(instants, bin_size) - domain_start) // width,
            "category": labels,
        }
    )
    counts = (
        frame.groupby(["position", "category"])
        .size()
        .unstack(fill_value=0)
        .reindex(index=range(n_bins), columns=list(categories), fill_value=0)
    )

    bins: list[Bin] = []
    for position, row in counts.iterrows():
        stacks = tuple(
            Stack(category=category, count=int(row[category]))
            for category in categories
            if int(row[category]) > 0
        )
        bin_start = domain_start + int(position) * width
        bins.append(
            Bin(
                start=bin_start,
                end=bin_start + width,
                total=sum(stack.count for stack in stacks),
                stacks=stacks,
            )
        )
    LOGGER.debug(
        "Binned %d case(s) into %d %s bin(s) stratified by %s",
        len(dated),
        len(bins),
        bin_size,
        stratify_by,
    )
    return bins


def build_curve(
    cases: Sequence[CaseRecord],
    config: ChartConfig | Mapping[str, Any] | None = None,
) -> BinnedCurve:
    chart = coerce_chart_config(config)
    bins = bin_cases(cases, chart)
    categories = stratification_categories(cases, chart.stratify_by) if bins else ()
    colors = assign_colors(categories, stratify_by=chart.stratify_by, scheme=chart.color_scheme)
    return BinnedCurve(bins=bins, categories=categories, colors=colors, config=chart)


def bins_to_frame(bins: Sequence[Bin]) -> pd.DataFrame:
    """Tidy table with one row per bin and category; empty bins keep a single row."""
    records: list[dict[str, Any]] = []
    for item in bins:
        if not item.stacks:
            records.append(
                {
                    "bin_start": item.start,
                    "bin_end": item.end,
                    "total": 0,
                    "category": None,
                    "count": 0,
                }
            )
            continue
        for stack in item.stacks:
            records.append(
                {
                    "bin_start": item.start,
                    "bin_end": item.end,
                    "total": item.total,
                    "category": stack.category,
                    "count": stack.count,
                }
            )
    return pd.DataFrame(records, columns=["bin_start", "bin_end", "total", "category", "count"])
