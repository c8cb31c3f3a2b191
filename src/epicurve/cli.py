from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

import typer

from epicurve.config import DEFAULT_CONFIG_PATH, AppConfig, ChartConfig, load_config
from epicurve.errors import IngestError
from epicurve.features.annotations import resolve_annotations
from epicurve.features.binning import bins_to_frame, build_curve
from epicurve.io.read import read_case_file
from epicurve.io.write import csv_template, export_cases_csv, write_table, write_text
from epicurve.logging import configure_logging
from epicurve.reference.pathogens import (
    PathogenLibrary,
    bin_size_label,
    load_pathogen_library,
    suggest_bin_size,
)
from epicurve.repository import CaseRecord, CaseRepository
from epicurve.viz.epicurve import plot_epicurve

LOGGER = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help=True, add_completion=False)


class _CaseCountLogger:
    def cases_changed(self, cases: Sequence[CaseRecord]) -> None:
        dated = sum(1 for case in cases if case.onset_instant is not None)
        LOGGER.info("Repository holds %d case(s), %d with a usable onset", len(cases), dated)


def _load_app_config(config_path: Path | None) -> AppConfig:
    return load_config(config_path)


def _parse_column_overrides(values: list[str] | None) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for item in values or []:
        if "=" not in item:
            raise typer.BadParameter(f"Expected HEADER=FIELD, got {item!r}", param_hint="--map")
        header, field_name = item.split("=", 1)
        overrides[header.strip()] = field_name.strip()
    return overrides


def _load_repository(csv: Path, cfg: AppConfig, column_map: list[str] | None) -> CaseRepository:
    overrides = {**cfg.ingest.columns, **_parse_column_overrides(column_map)}
    try:
        result = read_case_file(csv, overrides=overrides, encoding=cfg.ingest.encoding)
    except (IngestError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="CSV") from exc

    repository = CaseRepository()
    repository.subscribe(_CaseCountLogger())
    repository.add_many(result.cases)
    for message in result.warnings:
        typer.echo(f"Warning: {message}", err=True)
    return repository


def _chart_config(
    cfg: AppConfig,
    bin_size: str | None,
    stratify_by: str | None,
    title: str | None,
    pathogen: str | None,
) -> ChartConfig:
    updates: dict[str, Any] = {}
    if bin_size is not None:
        updates["bin_size"] = bin_size
    if stratify_by is not None:
        updates["stratify_by"] = stratify_by
    if title is not None:
        updates["title"] = title

    pathogen_key = pathogen or cfg.reference.pathogen
    if pathogen_key:
        library = _load_library(cfg)
        if pathogen_key not in library:
            raise typer.BadParameter(f"Unknown pathogen: {pathogen_key}", param_hint="--pathogen")
        if cfg.chart.incubation is None:
            updates["incubation"] = library.incubation_config(pathogen_key).model_dump()
        selected = library[pathogen_key]
        typer.echo(
            f"Suggested bin size for {selected.name}: {bin_size_label(selected.suggested_bin)}"
        )

    return ChartConfig.model_validate({**cfg.chart.model_dump(), **updates})


def _load_library(cfg: AppConfig) -> PathogenLibrary:
    return load_pathogen_library(cfg.reference.pathogens_path)


@app.command()
def plot(
    csv: Path = typer.Argument(..., exists=True, readable=True, resolve_path=True),
    out: Path | None = typer.Option(None, help="Defaults to out/epicurve.<figures_format>."),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
    bin_size: str | None = typer.Option(None, help="hour, 6hour, 12hour, day, week-cdc, week-iso"),
    stratify_by: str | None = typer.Option(
        None, help="none, classification, sex, age_group, outcome, custom"
    ),
    title: str | None = typer.Option(None),
    pathogen: str | None = typer.Option(None, help="Pathogen key used to pre-fill incubation."),
    column_map: list[str] | None = typer.Option(None, "--map", help="HEADER=FIELD override."),
) -> None:
    """Render a stacked epidemic curve from a line-list CSV."""
    configure_logging()
    cfg = _load_app_config(config)
    repository = _load_repository(csv, cfg, column_map)
    chart = _chart_config(cfg, bin_size, stratify_by, title, pathogen)
    if out is None:
        out = Path("out") / f"epicurve.{cfg.outputs.figures_format}"
    cases = repository.all()
    curve = build_curve(cases, chart)
    annotations = resolve_annotations(chart, cases)
    path = plot_epicurve(
        curve,
        out,
        annotations=annotations,
        figsize=(cfg.outputs.figure_width, cfg.outputs.figure_height),
    )
    typer.echo(f"Epidemic curve written: {path} ({len(curve.bins)} bins, {len(cases)} cases)")


@app.command()
def bins(
    csv: Path = typer.Argument(..., exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out/bins.csv"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
    bin_size: str | None = typer.Option(None),
    stratify_by: str | None = typer.Option(None),
    column_map: list[str] | None = typer.Option(None, "--map", help="HEADER=FIELD override."),
) -> None:
    """Write the binned, stratified case counts as a table."""
    configure_logging()
    cfg = _load_app_config(config)
    repository = _load_repository(csv, cfg, column_map)
    chart = _chart_config(cfg, bin_size, stratify_by, None, None)
    curve = build_curve(repository.all(), chart)
    path = write_table(bins_to_frame(curve.bins), out, fmt=cfg.outputs.tables_format)
    typer.echo(f"Bins written: {path} ({len(curve.bins)} bins)")


@app.command()
def export(
    csv: Path = typer.Argument(..., exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out/case-data.csv"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
    column_map: list[str] | None = typer.Option(None, "--map", help="HEADER=FIELD override."),
) -> None:
    """Normalize a line-list CSV and write it in canonical export form."""
    configure_logging()
    cfg = _load_app_config(config)
    repository = _load_repository(csv, cfg, column_map)
    path = write_text(export_cases_csv(repository.all()), out)
    typer.echo(f"Cases exported: {path} ({len(repository)} cases)")


@app.command()
def template(
    out: Path = typer.Option(Path("epi-curve-template.csv"), resolve_path=True),
) -> None:
    """Write a CSV template with example rows."""
    path = write_text(csv_template(), out)
    typer.echo(f"Template written: {path}")


@app.command()
def pathogens(
    query: str | None = typer.Option(None, help="Filter by name or category."),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
) -> None:
    """List reference pathogens with incubation periods and suggested bin sizes."""
    cfg = _load_app_config(config)
    library = _load_library(cfg)
    selected = library.search(query) if query else list(library.values())
    grouped = PathogenLibrary({item.key: item for item in selected}).by_category()
    for category, items in grouped.items():
        typer.echo(category)
        for item in items:
            typer.echo(
                f"  {item.key:<16} {item.name:<40} {item.display:<20} "
                f"{bin_size_label(item.suggested_bin)}"
            )


@app.command("suggest-bin")
def suggest_bin(
    min_incubation_hours: float = typer.Argument(..., min=0),
) -> None:
    """Recommend a bin size from the minimum incubation period in hours."""
    suggested = suggest_bin_size(min_incubation_hours)
    typer.echo(f"{suggested} ({bin_size_label(suggested)})")


if __name__ == "__main__":
    app()
