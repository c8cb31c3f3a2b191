from __future__ import annotations

from typing import Sequence

DEFAULT_COLOR = "#2563eb"

FIELD_PALETTES: dict[str, dict[str, str]] = {
    "classification": {
        "confirmed": "#2563eb",
        "probable": "#f59e0b",
        "suspected": "#94a3b8",
    },
    "sex": {
        "male": "#3b82f6",
        "female": "#ec4899",
        "other": "#8b5cf6",
        "unknown": "#64748b",
    },
    "age_group": {
        "0-4": "#ef4444",
        "5-14": "#f97316",
        "15-24": "#eab308",
        "25-44": "#22c55e",
        "45-64": "#3b82f6",
        "65+": "#8b5cf6",
    },
    "outcome": {
        "alive": "#22c55e",
        "deceased": "#ef4444",
        "unknown": "#64748b",
    },
}

CYCLIC_PALETTES: dict[str, tuple[str, ...]] = {
    "colorblind": ("#0072B2", "#E69F00", "#009E73", "#CC79A7", "#F0E442", "#56B4E9"),
    "grayscale": ("#333333", "#666666", "#999999", "#CCCCCC"),
}


def color_for(category: str, index: int, stratify_by: str, scheme: str = "default") -> str:
    if scheme in CYCLIC_PALETTES:
        palette = CYCLIC_PALETTES[scheme]
        return palette[index % len(palette)]
    if stratify_by == "none":
        return DEFAULT_COLOR
    fallback = CYCLIC_PALETTES["colorblind"]
    field_palette = FIELD_PALETTES.get(stratify_by, {})
    return field_palette.get(category, fallback[index % len(fallback)])


def assign_colors(
    categories: Sequence[str],
    stratify_by: str,
    scheme: str = "default",
) -> dict[str, str]:
    """Colors keyed by category; indexes follow the category order used for stacking."""
    return {
        category: color_for(category, index, stratify_by, scheme)
        for index, category in enumerate(categories)
    }
