from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from epicurve.config import IncubationConfig

DEFAULT_PATHOGENS_PATH = Path(__file__).with_name("pathogens.yaml")

# Upper bounds (inclusive, hours) on a quarter of the minimum incubation period.
SUGGESTED_BIN_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (1, "hour"),
    (6, "6hour"),
    (12, "12hour"),
    (24, "day"),
)
WIDEST_SUGGESTED_BIN = "week-cdc"

BIN_SIZE_LABELS = {
    "hour": "Hourly",
    "6hour": "6-hour",
    "12hour": "12-hour",
    "day": "Daily",
    "week-cdc": "Weekly (CDC)",
    "week-iso": "Weekly (ISO)",
}


@dataclass(frozen=True)
class Pathogen:
    key: str
    name: str
    category: str
    incubation_min_hours: float
    incubation_max_hours: float
    typical: str
    display: str
    suggested_bin: str


def suggest_bin_size(min_incubation_hours: float) -> str:
    """Recommend a bin about a quarter of the minimum incubation period wide."""
    quarter = float(min_incubation_hours) / 4
    for upper, bin_size in SUGGESTED_BIN_THRESHOLDS:
        if quarter <= upper:
            return bin_size
    return WIDEST_SUGGESTED_BIN


def bin_size_label(bin_size: str) -> str:
    return BIN_SIZE_LABELS.get(bin_size, bin_size)


class PathogenLibrary(Mapping[str, Pathogen]):
    """Read-only pathogen reference dataset, passed to whatever needs it."""

    def __init__(self, pathogens: Mapping[str, Pathogen]) -> None:
        self._pathogens = MappingProxyType(dict(pathogens))

    def __getitem__(self, key: str) -> Pathogen:
        return self._pathogens[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._pathogens)

    def __len__(self) -> int:
        return len(self._pathogens)

    def by_category(self) -> dict[str, list[Pathogen]]:
        grouped: dict[str, list[Pathogen]] = {}
        for pathogen in self._pathogens.values():
            grouped.setdefault(pathogen.category, []).append(pathogen)
        return grouped

    def search(self, query: str) -> list[Pathogen]:
        needle = query.strip().lower()
        return [
            pathogen
            for pathogen in self._pathogens.values()
            if needle in pathogen.name.lower() or needle in pathogen.category.lower()
        ]

    def incubation_config(self, key: str) -> IncubationConfig:
        pathogen = self[key]
        return IncubationConfig(
            min_hours=pathogen.incubation_min_hours,
            max_hours=pathogen.incubation_max_hours,
        )


def _require_number(entry: Mapping[str, Any], field_name: str, key: str) -> float:
    value = entry.get(field_name)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValueError(f"pathogen '{key}' field '{field_name}' must be a non-negative number")
    return float(value)


def _parse_pathogen(key: str, entry: Mapping[str, Any]) -> Pathogen:
    minimum = _require_number(entry, "incubation_min_hours", key)
    maximum = _require_number(entry, "incubation_max_hours", key)
    if maximum < minimum:
        raise ValueError(f"pathogen '{key}' has incubation_max_hours below incubation_min_hours")
    name = str(entry.get("name") or key)
    return Pathogen(
        key=key,
        name=name,
        category=str(entry.get("category") or "Other"),
        incubation_min_hours=minimum,
        incubation_max_hours=maximum,
        typical=str(entry.get("typical") or ""),
        display=str(entry.get("display") or ""),
        suggested_bin=str(entry.get("suggested_bin") or suggest_bin_size(minimum)),
    )


def load_pathogen_library(path: Path | str | None = None) -> PathogenLibrary:
    source = Path(path) if path else DEFAULT_PATHOGENS_PATH
    with source.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    entries = data.get("pathogens")
    if not isinstance(entries, dict):
        raise ValueError(f"pathogen reference file has no 'pathogens' mapping: {source}")
    return PathogenLibrary(
        {str(key): _parse_pathogen(str(key), entry or {}) for key, entry in entries.items()}
    )
