from __future__ import annotations

from pathlib import Path

import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import pandas as pd

from epicurve.features.annotations import Annotations
from epicurve.features.binning import ALL_CATEGORY, BinnedCurve
from epicurve.viz.common import save_figure

DATE_FORMATS = {
    "hour": "%b %d %H:%M",
    "6hour": "%b %d %H:%M",
    "12hour": "%b %d %H:%M",
    "day": "%b %d",
    "week-cdc": "Wk %W",
    "week-iso": "Wk %W",
}

MARKER_COLORS = {
    "first_case": "#22c55e",
    "exposure": "#ef4444",
    "intervention": "#f59e0b",
}
INCUBATION_COLOR = "#ef4444"
BAR_FILL_FRACTION = 0.9


def _to_num(instant: pd.Timestamp) -> float:
    return float(mdates.date2num(pd.Timestamp(instant).to_pydatetime()))


def date_format_for(bin_size: str) -> str:
    return DATE_FORMATS.get(bin_size, "%b %d")


def tick_count_for(width_inches: float) -> int:
    # Roughly one tick per 80px of plot width at 100 dpi.
    pixels = width_inches * 100
    if pixels < 400:
        return 4
    if pixels < 600:
        return 6
    if pixels < 800:
        return 8
    return 10


def _draw_annotations(ax: plt.Axes, curve: BinnedCurve, annotations: Annotations) -> None:
    domain_start = _to_num(curve.bins[0].start)
    domain_end = _to_num(curve.bins[-1].end)

    for marker in annotations.markers():
        position = _to_num(marker.instant)
        # The first-case marker always lies inside the domain; others may not.
        if not domain_start <= position <= domain_end:
            continue
        ax.axvline(
            position,
            color=MARKER_COLORS.get(marker.kind, "#0f172a"),
            linestyle="--",
            linewidth=2,
            label=marker.label,
        )

    window = annotations.incubation_window
    if window is not None:
        left = max(domain_start, _to_num(window.start))
        right = min(domain_end, _to_num(window.end))
        if right > left:
            ax.axvspan(
                left,
                right,
                facecolor=INCUBATION_COLOR,
                alpha=0.1,
                edgecolor=INCUBATION_COLOR,
                linestyle=":",
                label=window.label,
            )


def plot_epicurve(
    curve: BinnedCurve,
    output_path: Path,
    annotations: Annotations | None = None,
    figsize: tuple[float, float] = (12.0, 5.0),
) -> Path:
    """Draw a stacked epidemic curve from processed bins and save it."""
    config = curve.config
    fig, ax = plt.subplots(figsize=figsize)

    if not curve.bins:
        ax.text(0.5, 0.5, "No cases with a valid onset date", ha="center", va="center")
        ax.set_axis_off()
        return save_figure(output_path, fig)

    starts = [_to_num(item.start) for item in curve.bins]
    widths = [
        (item.end - item.start) / pd.Timedelta(days=1) * BAR_FILL_FRACTION for item in curve.bins
    ]
    bottoms = [0] * len(curve.bins)
    for category in curve.categories:
        heights = [item.count_for(category) for item in curve.bins]
        ax.bar(
            starts,
            heights,
            width=widths,
            bottom=bottoms,
            align="edge",
            color=curve.colors.get(category),
            label=category.capitalize() if category != ALL_CATEGORY else None,
        )
        bottoms = [bottom + height for bottom, height in zip(bottoms, heights)]

    if config.show_counts:
        for item, start, width in zip(curve.bins, starts, widths):
            if item.total > 0:
                ax.text(start + width / 2, item.total, str(item.total), ha="center", va="bottom")

    max_total = max(item.total for item in curve.bins) or 1
    ax.set_ylim(0, max_total * 1.1)
    ax.yaxis.get_major_locator().set_params(integer=True)
    ax.set_xlim(_to_num(curve.bins[0].start), _to_num(curve.bins[-1].end))
    ax.xaxis.set_major_locator(mdates.AutoDateLocator(maxticks=tick_count_for(figsize[0])))
    ax.xaxis.set_major_formatter(mdates.DateFormatter(date_format_for(config.bin_size)))
    plt.setp(ax.get_xticklabels(), rotation=45, ha="right")
    if config.show_grid:
        ax.grid(axis="y", linestyle=":", alpha=0.5)

    if annotations is not None:
        _draw_annotations(ax, curve, annotations)

    ax.set_xlabel(config.x_axis_label)
    ax.set_ylabel(config.y_axis_label)
    if config.title:
        ax.set_title(config.title)

    handles, labels = ax.get_legend_handles_labels()
    if labels and (config.stratify_by != "none" or annotations is not None):
        ax.legend(loc="upper right", fontsize="small")
    return save_figure(output_path, fig)
