from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Literal, get_args

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

LOGGER = logging.getLogger(__name__)

BinSize = Literal["hour", "6hour", "12hour", "day", "week-cdc", "week-iso"]
StratifyBy = Literal["none", "classification", "sex", "age_group", "outcome", "custom"]
ColorScheme = Literal["default", "colorblind", "grayscale"]

BIN_SIZES: tuple[str, ...] = get_args(BinSize)
STRATIFY_FIELDS: tuple[str, ...] = get_args(StratifyBy)
COLOR_SCHEMES: tuple[str, ...] = get_args(ColorScheme)

DEFAULT_BIN_SIZE = "day"
DEFAULT_STRATIFY_BY = "none"

# Field names as they appear in browser-style configs.
STRATIFY_ALIASES = {
    "agegroup": "age_group",
    "age-group": "age_group",
}


def _substitute(value: Any, allowed: tuple[str, ...], default: str, label: str) -> str:
    text = str(value).strip() if value is not None else ""
    lowered = text.lower()
    candidate = STRATIFY_ALIASES.get(lowered, lowered) if label == "stratify_by" else lowered
    if candidate in allowed:
        return candidate
    LOGGER.warning("Unsupported %s %r; falling back to %r", label, value, default)
    return default


class ExposureConfig(BaseModel):
    date: str
    time: str | None = None
    label: str | None = None


class InterventionConfig(BaseModel):
    date: str
    time: str | None = None
    label: str | None = None


class IncubationConfig(BaseModel):
    min_hours: float = Field(ge=0)
    max_hours: float = Field(ge=0)


class ChartConfig(BaseModel):
    bin_size: BinSize = DEFAULT_BIN_SIZE
    stratify_by: StratifyBy = DEFAULT_STRATIFY_BY
    color_scheme: ColorScheme = "default"
    title: str = ""
    x_axis_label: str = "Date of Symptom Onset"
    y_axis_label: str = "Number of Cases"
    show_grid: bool = True
    show_counts: bool = True
    show_first_case: bool = False
    exposure: ExposureConfig | None = None
    interventions: list[InterventionConfig] = Field(default_factory=list)
    incubation: IncubationConfig | None = None

    # Binning drives a chart, so bad values degrade to defaults instead of raising.
    @field_validator("bin_size", mode="before")
    @classmethod
    def _coerce_bin_size(cls, value: Any) -> str:
        return _substitute(value, BIN_SIZES, DEFAULT_BIN_SIZE, "bin_size")

    @field_validator("stratify_by", mode="before")
    @classmethod
    def _coerce_stratify_by(cls, value: Any) -> str:
        return _substitute(value, STRATIFY_FIELDS, DEFAULT_STRATIFY_BY, "stratify_by")

    @field_validator("color_scheme", mode="before")
    @classmethod
    def _coerce_color_scheme(cls, value: Any) -> str:
        return _substitute(value, COLOR_SCHEMES, "default", "color_scheme")


class IngestConfig(BaseModel):
    # Explicit header -> field assignments applied on top of auto-detection.
    columns: dict[str, str] = Field(default_factory=dict)
    encoding: str = "utf-8-sig"


class ReferenceConfig(BaseModel):
    pathogens_path: str | None = None
    pathogen: str | None = None


class OutputsConfig(BaseModel):
    tables_format: Literal["csv", "json"] = "csv"
    figures_format: Literal["png", "svg", "pdf"] = "png"
    figure_width: float = Field(default=12.0, gt=0)
    figure_height: float = Field(default=5.0, gt=0)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    chart: ChartConfig = Field(default_factory=ChartConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    reference: ReferenceConfig = Field(default_factory=ReferenceConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path | None) -> AppConfig:
    if path is None or not path.exists():
        config = AppConfig()
        base_dir = Path.cwd()
    else:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        config = AppConfig.model_validate(data)
        base_dir = path.resolve().parent

    config.reference.pathogens_path = _resolve_optional_path(
        config.reference.pathogens_path or os.getenv("EPICURVE_PATHOGENS_PATH"),
        base_dir,
    )
    return config
